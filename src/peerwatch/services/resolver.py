"""
Resolver service: keeps endpoint lists in step with DNS.

Given a fixed list of targets, the resolver re-resolves every target's
hostname on each tick of a fast-start ticker and reports the resulting
endpoint URLs to its observers, so that consumers such as connection pools
can rebalance without restarting.

Each resolution pass, for every target in construction order:

1. A hostname that is already an IP literal is used as-is (no lookup).
2. Otherwise the lookup function is awaited. A failure is logged once per
   outage (``lookup_failed``) and yields no addresses for this pass; the
   next success re-arms the warning.
3. Addresses are reduced to IPv4 unless ``ipv4_only`` is disabled.
4. One endpoint URL is built per address.
5. Every observer is called with ``(hostname, endpoints)``, even when the
   list is empty.

Note:
    The failed-hostname set is owned by the single background task and is
    never touched concurrently. Resolving targets in parallel would require
    partitioning it per worker or guarding it with a lock.

See Also:
    [BaseService][peerwatch.core.base_service.BaseService]: Lifecycle,
        ticker loop, and metrics.
    [lookup_using()][peerwatch.utils.dns.lookup_using]: DNS-server-bound
        lookup function.
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Iterable, Sequence
from ipaddress import ip_address
from typing import ClassVar, Protocol, runtime_checkable

from pydantic import Field
from rfc3986 import URIReference

from peerwatch.core.base_service import BaseService, BaseServiceConfig
from peerwatch.core.ticker import TickerFactory
from peerwatch.models.constants import (
    DEFAULT_APP_PORT,
    DEFAULT_LOOKUP_TIMEOUT,
    DNS_POLL_INTERVAL,
)
from peerwatch.models.target import Target, parse_targets
from peerwatch.utils.dns import IPAddress, LookupFn, lookup_using, system_lookup
from peerwatch.utils.endpoints import build_endpoints, usable_addresses


# ---------------------------------------------------------------------------
# Observers
# ---------------------------------------------------------------------------


@runtime_checkable
class EndpointObserver(Protocol):
    """Receives the endpoints resolved for one hostname.

    Called inline on the resolver's task once per target per pass;
    implementations must return quickly.
    """

    def notify(self, hostname: str, endpoints: Sequence[URIReference]) -> None: ...


class CallbackObserver:
    """Adapts a plain ``(hostname, endpoints)`` callable to an observer."""

    __slots__ = ("_callback",)

    def __init__(self, callback: Callable[[str, Sequence[URIReference]], object]) -> None:
        self._callback = callback

    def notify(self, hostname: str, endpoints: Sequence[URIReference]) -> None:
        self._callback(hostname, endpoints)

    def __repr__(self) -> str:
        return f"CallbackObserver({self._callback!r})"


def _as_observer(
    observer: EndpointObserver | Callable[[str, Sequence[URIReference]], object],
) -> EndpointObserver:
    if isinstance(observer, EndpointObserver):
        return observer
    if callable(observer):
        return CallbackObserver(observer)
    raise TypeError(f"observer must define notify() or be callable, got {type(observer).__name__}")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ResolverConfig(BaseServiceConfig):
    """Resolver configuration.

    Example YAML:

    ```yaml
    interval: 10.0
    default_port: 4040
    dns_server: "10.96.0.10:53"
    metrics:
      enabled: true
      port: 9101
    ```
    """

    interval: float = Field(
        default=DNS_POLL_INTERVAL,
        gt=0.0,
        description="Steady-state seconds between resolution passes",
    )
    default_port: int = Field(
        default=DEFAULT_APP_PORT,
        ge=1,
        le=65535,
        description="Port assumed for targets that do not specify one",
    )
    ipv4_only: bool = Field(
        default=True,
        description="Discard addresses without an IPv4 representation",
    )
    dns_server: str | None = Field(
        default=None,
        description="DNS server (ip[:port]) queried over TCP; system resolver when unset",
    )
    lookup_timeout: float = Field(
        default=DEFAULT_LOOKUP_TIMEOUT,
        gt=0.0,
        description="Seconds allowed for one hostname lookup",
    )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class Resolver(BaseService[ResolverConfig]):
    """Periodically resolves a fixed set of targets and notifies observers.

    Targets are parsed eagerly: a malformed target raises
    [TargetParseError][peerwatch.core.exceptions.TargetParseError] from the
    constructor and no resolver exists.

    Args:
        targets: Raw target strings (``host``, ``host:port``, or URLs).
        lookup: Async lookup function. ``None`` selects
            [lookup_using()][peerwatch.utils.dns.lookup_using] when
            ``config.dns_server`` is set, else
            [system_lookup()][peerwatch.utils.dns.system_lookup].
        *observers: Objects with ``notify(hostname, endpoints)``, or plain
            callables with the same signature.
        config: Resolver configuration (defaults from ``ResolverConfig``).
        ticker: Tick source factory; defaults to a
            [FastStartTicker][peerwatch.core.ticker.FastStartTicker].

    Examples:
        ```python
        async with Resolver(["peer-1:4040", "peer-2"], None, pool.set_endpoints):
            ...
        ```
    """

    SERVICE_NAME: ClassVar[str] = "resolver"
    CONFIG_CLASS: ClassVar[type[ResolverConfig]] = ResolverConfig

    def __init__(
        self,
        targets: Iterable[str],
        lookup: LookupFn | None = None,
        *observers: EndpointObserver | Callable[[str, Sequence[URIReference]], object],
        config: ResolverConfig | None = None,
        ticker: TickerFactory | None = None,
    ) -> None:
        super().__init__(config=config, ticker=ticker)
        self._targets: tuple[Target, ...] = tuple(
            parse_targets(targets, default_port=self._config.default_port)
        )
        self._observers: tuple[EndpointObserver, ...] = tuple(_as_observer(o) for o in observers)
        self._lookup: LookupFn = lookup or self._default_lookup()
        self._failed_hostnames: set[str] = set()

    def _default_lookup(self) -> LookupFn:
        if self._config.dns_server:
            return lookup_using(self._config.dns_server, timeout=self._config.lookup_timeout)
        return functools.partial(system_lookup, timeout=self._config.lookup_timeout)

    @property
    def targets(self) -> tuple[Target, ...]:
        return self._targets

    @property
    def failed_hostnames(self) -> frozenset[str]:
        """Hostnames whose last lookup failed (warning already emitted)."""
        return frozenset(self._failed_hostnames)

    async def run(self) -> None:
        """Resolve every target once and notify the observers."""
        total = 0
        for target in self._targets:
            addresses = await self._resolve_one(target)
            endpoints = build_endpoints(target, addresses)
            total += len(endpoints)
            self._logger.debug(
                "endpoints_resolved", hostname=target.hostname, count=len(endpoints)
            )
            for observer in self._observers:
                self._notify(observer, target.hostname, endpoints)

        self.set_gauge("targets", len(self._targets))
        self.set_gauge("endpoints", total)
        self.set_gauge("failed_hostnames", len(self._failed_hostnames))

    def _notify(
        self, observer: EndpointObserver, hostname: str, endpoints: Sequence[URIReference]
    ) -> None:
        """Deliver one notification; a raising observer does not affect the others."""
        try:
            observer.notify(hostname, endpoints)
        except Exception as e:
            self.inc_counter("observer_errors")
            self._logger.error(
                "observer_error",
                hostname=hostname,
                observer=repr(observer),
                error=str(e) or type(e).__name__,
                error_type=type(e).__name__,
            )

    async def _resolve_one(self, target: Target) -> list[IPAddress]:
        hostname = target.hostname
        try:
            literal = ip_address(hostname)
        except ValueError:
            pass
        else:
            return usable_addresses([literal], ipv4_only=self._config.ipv4_only)

        try:
            raw = await self._lookup(hostname)
        except Exception as e:  # Intentionally broad: lookup is pluggable and must not break the pass
            self.inc_counter("lookup_failures")
            if hostname not in self._failed_hostnames:
                self._failed_hostnames.add(hostname)
                self._logger.warning(
                    "lookup_failed",
                    hostname=hostname,
                    error=str(e) or type(e).__name__,
                )
            return []

        if hostname in self._failed_hostnames:
            self._failed_hostnames.discard(hostname)
            self._logger.info("lookup_recovered", hostname=hostname)

        return usable_addresses(raw, ipv4_only=self._config.ipv4_only)


async def new_resolver(
    targets: Iterable[str],
    lookup: LookupFn | None = None,
    *observers: EndpointObserver | Callable[[str, Sequence[URIReference]], object],
    config: ResolverConfig | None = None,
    ticker: TickerFactory | None = None,
) -> Resolver:
    """Create and start a [Resolver][peerwatch.services.resolver.Resolver].

    Returns once the first resolution pass has notified every observer and
    the background loop is running. Call ``stop()`` (or ``await aclose()``)
    to end it.

    Raises:
        TargetParseError: If any target string is malformed.
    """
    resolver = Resolver(targets, lookup, *observers, config=config, ticker=ticker)
    await resolver.start()
    return resolver
