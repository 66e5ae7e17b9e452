"""Shared constants for peerwatch.

Attributes:
    DEFAULT_APP_PORT: Port assumed for a target that does not specify one.
    DNS_POLL_INTERVAL: Steady-state seconds between resolution passes.
    DEFAULT_DNS_PORT: Port used for a DNS server address given without one.
    DEFAULT_LOOKUP_TIMEOUT: Seconds allowed for a single hostname lookup.
"""

from __future__ import annotations

from typing import Final


DEFAULT_APP_PORT: Final[int] = 4040
DNS_POLL_INTERVAL: Final[float] = 10.0
DEFAULT_DNS_PORT: Final[int] = 53
DEFAULT_LOOKUP_TIMEOUT: Final[float] = 5.0
