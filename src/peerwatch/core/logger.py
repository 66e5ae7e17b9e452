"""
Structured logging with key=value and JSON output support.

Wraps the standard library ``logging`` module so that every event is a short
snake_case name followed by structured fields:

```text
warning resolver lookup_failed hostname=peer.example.com error="timed out"
```

Two output modes are supported: human-readable key=value pairs (default) and
one JSON object per line for log aggregators. Values containing whitespace,
equals signs, or quotes are escaped and quoted; long values are truncated.

``StructuredFormatter`` is a stdlib ``logging.Formatter`` that reads the
``structured_kv`` extra attached by [Logger][peerwatch.core.logger.Logger].
Installed on a root handler, it gives the same layout to plain
``logging.getLogger(__name__)`` calls made from the utils layer.

Examples:
    ```python
    from peerwatch.core.logger import Logger

    logger = Logger("resolver")
    logger.info("endpoints_resolved", hostname="peer-1", count=3)
    # Output: endpoints_resolved hostname=peer-1 count=3

    json_logger = Logger("resolver", json_output=True)
    json_logger.info("endpoints_resolved", count=3)
    # Output: {"timestamp": "...", "level": "info", "service": "resolver", ...}
    ```
"""

from __future__ import annotations

import datetime
import json
import logging
from typing import Any, ClassVar


def _truncate(value: str, max_value_length: int | None) -> str:
    if max_value_length and len(value) > max_value_length:
        return value[:max_value_length] + f"...<truncated {len(value) - max_value_length} chars>"
    return value


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Format a dictionary as space-separated key=value pairs.

    Args:
        kwargs: Key-value pairs to format.
        max_value_length: Maximum characters per value before truncation.
            Pass None to disable truncation.
        prefix: String prepended to the output (default: single space).

    Returns:
        Formatted string, e.g. ``' hostname=peer-1 error="timed out"'``.
        Returns an empty string if *kwargs* is empty.
    """
    if not kwargs:
        return ""

    parts = []
    for k, v in kwargs.items():
        s = _truncate(str(v), max_value_length)
        if not s or any(c in s for c in ' ="\''):
            escaped = s.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'{k}="{escaped}"')
        else:
            parts.append(f"{k}={s}")

    return prefix + " ".join(parts)


class StructuredFormatter(logging.Formatter):
    """Formats all log records as ``level name message key=value ...``.

    Records without a ``structured_kv`` extra (plain ``logging`` calls) are
    emitted with the same prefix and no trailing fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        base = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        extra: dict[str, Any] = getattr(record, "structured_kv", {})
        if extra:
            base += format_kv_pairs(extra)
        return base


class Logger:
    """Structured logger that attaches keyword arguments as fields.

    All public methods mirror the standard logging API with an added
    ``**kwargs`` parameter holding the structured fields.

    Examples:
        ```python
        logger = Logger("resolver")
        logger.warning("lookup_failed", hostname="peer-1", error="SERVFAIL")
        ```
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
    ) -> None:
        """Initialize a structured logger.

        Args:
            name: Logger name passed to ``logging.getLogger(name)``.
            json_output: If True, emit JSON objects instead of key=value pairs.
            max_value_length: Maximum character length for individual values
                before truncation. Defaults to 1000.
        """
        if max_value_length is None:
            max_value_length = self._DEFAULT_MAX_VALUE_LENGTH
        self._logger = logging.getLogger(name)
        self._json_output = json_output
        self._max_value_length = max_value_length

    @property
    def name(self) -> str:
        return self._logger.name

    def _format_json(self, msg: str, level: str, kwargs: dict[str, Any]) -> str:
        record = {
            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            "level": level,
            "service": self._logger.name,
            "message": msg,
            **kwargs,
        }
        return json.dumps(record, default=str)

    def _make_extra(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        """Build the ``extra`` dict, pre-truncating string forms of long values."""
        if not kwargs:
            return {}
        fields: dict[str, Any] = {}
        for k, v in kwargs.items():
            s = str(v)
            fields[k] = _truncate(s, self._max_value_length) if len(s) > self._max_value_length else v
        return {"structured_kv": fields}

    def _log(self, level: int, msg: str, kwargs: dict[str, Any], *, exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if self._json_output:
            name = "error" if exc_info else logging.getLevelName(level).lower()
            self._logger.log(level, self._format_json(msg, name, kwargs), exc_info=exc_info)
        else:
            self._logger.log(level, msg, extra=self._make_extra(kwargs), exc_info=exc_info)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, kwargs)

    def critical(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.CRITICAL, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log at ERROR level with the active exception's traceback."""
        self._log(logging.ERROR, msg, kwargs, exc_info=True)
