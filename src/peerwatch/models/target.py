"""
Monitored target parsed from a raw endpoint string.

Accepts bare hostnames (``"localhost"``), ``host:port`` pairs, and full URLs
(``"http://svc:8080/path?x=1"``). Strings without ``//`` are given a scheme
first: ``https://`` when they end in ``:443``, ``http://`` otherwise. The
result keeps the parsed URL as a template from which resolved endpoint URLs
are derived.
"""

from __future__ import annotations

from dataclasses import InitVar, dataclass, field
from typing import TYPE_CHECKING

from rfc3986 import URIReference, uri_reference
from rfc3986.exceptions import InvalidAuthority, ValidationError
from rfc3986.validators import Validator

from peerwatch.core.exceptions import TargetParseError

from .constants import DEFAULT_APP_PORT


if TYPE_CHECKING:
    from collections.abc import Iterable


def join_host_port(host: str, port: int) -> str:
    """Combine a host and port into an authority, bracketing IPv6 hosts."""
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


@dataclass(frozen=True, slots=True)
class Target:
    """Immutable description of one monitored endpoint.

    Attributes:
        original: The raw input string, kept for diagnostics.
        url: Parsed URL used as the template for resolved endpoints.
        hostname: Host component without port (IPv6 brackets stripped).
        port: Explicit port from the input, or ``default_port``.

    Raises:
        TargetParseError: If the string is not a URL with a valid host, or
            its port is not a decimal integer in ``1..65535``.

    Examples:
        ```python
        Target("localhost").url.unsplit()       # 'http://localhost'
        Target("localhost").port                # 4040
        Target("example.com:443").scheme        # 'https'
        Target("http://svc:8080/path").path     # '/path'
        ```
    """

    original: str
    default_port: InitVar[int] = DEFAULT_APP_PORT

    url: URIReference = field(init=False, repr=False)
    hostname: str = field(init=False)
    port: int = field(init=False)

    def __post_init__(self, default_port: int) -> None:
        raw = self.original.strip()
        if not raw:
            raise TargetParseError(self.original, "empty target")

        # Bare "host" or "host:port" would otherwise parse as a relative path
        if "//" not in raw:
            raw = ("https://" if raw.endswith(":443") else "http://") + raw

        uri = uri_reference(raw)
        try:
            authority = uri.authority_info()
        except InvalidAuthority:
            raise TargetParseError(self.original, f"invalid authority {uri.authority!r}") from None

        validator = (
            Validator()
            .require_presence_of("scheme", "host")
            .check_validity_of("scheme", "host", "path", "query", "fragment")
        )
        try:
            validator.validate(uri)
        except ValidationError as e:
            raise TargetParseError(self.original, str(e)) from None

        port_text = authority["port"]
        if not port_text and (uri.authority or "").endswith(":"):
            raise TargetParseError(self.original, "empty port")
        if port_text:
            port = int(port_text)
            if not 1 <= port <= 65535:
                raise TargetParseError(self.original, f"port {port} out of range")
        else:
            port = default_port

        hostname = authority["host"].strip("[]")
        if not hostname:
            raise TargetParseError(self.original, "empty hostname")

        object.__setattr__(self, "url", uri)
        object.__setattr__(self, "hostname", hostname)
        object.__setattr__(self, "port", port)

    def __str__(self) -> str:
        return join_host_port(self.hostname, self.port)

    @property
    def scheme(self) -> str:
        return self.url.scheme

    @property
    def path(self) -> str | None:
        return self.url.path or None


def parse_targets(
    raw_targets: Iterable[str],
    *,
    default_port: int = DEFAULT_APP_PORT,
) -> list[Target]:
    """Parse every raw string into a [Target][peerwatch.models.target.Target].

    All-or-nothing: the first invalid string aborts the call and no targets
    are returned.

    Raises:
        TargetParseError: If any string fails to parse.
    """
    return [Target(raw, default_port) for raw in raw_targets]
