"""peerwatch exception hierarchy.

Provides typed exceptions that separate construction-time failures (bad
targets, bad configuration) from run-time lookup failures, which the
[Resolver][peerwatch.services.resolver.Resolver] absorbs instead of
propagating.

Exception hierarchy:

```text
PeerwatchError (base -- never raised directly)
├── ConfigurationError       -- config validation, bad DNS server address
│   └── TargetParseError     -- malformed target string or port
├── ResolutionError          -- lookup transport/protocol failure
└── LifecycleError           -- start after stop, double start
```

See Also:
    [parse_targets()][peerwatch.models.target.parse_targets]: Raises
        [TargetParseError][peerwatch.core.exceptions.TargetParseError].
    [lookup_using()][peerwatch.utils.dns.lookup_using]: Raises
        [ResolutionError][peerwatch.core.exceptions.ResolutionError] from
        the returned lookup function.
"""

from __future__ import annotations


class PeerwatchError(Exception):
    """Base exception for all peerwatch errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(PeerwatchError):
    """Invalid or missing configuration (YAML, DNS server address, ports)."""


class TargetParseError(ConfigurationError, ValueError):
    """A target string could not be parsed into a host and port.

    Also a ``ValueError`` so that callers validating user input with
    ``except ValueError`` keep working.

    Attributes:
        target: The raw target string that failed to parse.
    """

    def __init__(self, target: str, reason: str) -> None:
        super().__init__(f"invalid target {target!r}: {reason}")
        self.target = target
        self.reason = reason


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class ResolutionError(PeerwatchError):
    """A hostname lookup failed at the transport or protocol level.

    Raised by lookup functions; the resolver loop logs it once per outage
    and treats the hostname as having no addresses for that cycle.
    """


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class LifecycleError(PeerwatchError):
    """A service was started twice, or started after being stopped."""
