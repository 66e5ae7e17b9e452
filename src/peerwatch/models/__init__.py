"""Immutable target model and shared constants.

Attributes:
    Target: Frozen dataclass parsed from a raw endpoint string (``host``,
        ``host:port``, or URL) with a template URL, hostname, and port.
        See [Target][peerwatch.models.target.Target].
    parse_targets: All-or-nothing parsing of a list of raw strings.
    DEFAULT_APP_PORT: Port assumed when a target gives none.
    DNS_POLL_INTERVAL: Steady-state seconds between resolution passes.
"""

from .constants import DEFAULT_APP_PORT, DEFAULT_DNS_PORT, DEFAULT_LOOKUP_TIMEOUT, DNS_POLL_INTERVAL
from .target import Target, join_host_port, parse_targets


__all__ = [
    "DEFAULT_APP_PORT",
    "DEFAULT_DNS_PORT",
    "DEFAULT_LOOKUP_TIMEOUT",
    "DNS_POLL_INTERVAL",
    "Target",
    "join_host_port",
    "parse_targets",
]
