"""Hostname lookup functions for the resolver.

A lookup function is any ``async`` callable mapping a hostname to the IP
addresses it currently resolves to, raising on failure. The
[Resolver][peerwatch.services.resolver.Resolver] is agnostic to how lookups
are performed; two implementations are provided:

* [lookup_using()][peerwatch.utils.dns.lookup_using] returns a lookup bound
  to one DNS server, queried over TCP with ``dnspython``.
* [system_lookup()][peerwatch.utils.dns.system_lookup] uses the operating
  system resolver via ``socket.getaddrinfo`` on a worker thread.

Note:
    Both implementations raise
    [ResolutionError][peerwatch.core.exceptions.ResolutionError] on transport
    or protocol failures. A name that does not exist (NXDOMAIN) is a
    successful lookup with no addresses.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from collections.abc import Awaitable, Callable, Iterable
from ipaddress import IPv4Address, IPv6Address, ip_address

import dns.asyncquery
import dns.exception
import dns.message
import dns.name
import dns.rcode
import dns.rdatatype

from peerwatch.core.exceptions import ConfigurationError, ResolutionError
from peerwatch.models.constants import DEFAULT_DNS_PORT, DEFAULT_LOOKUP_TIMEOUT


logger = logging.getLogger(__name__)

IPAddress = IPv4Address | IPv6Address

# Lookups may return address objects or their string forms
LookupFn = Callable[[str], Awaitable[Iterable[IPAddress | str]]]

_SUCCESS_RCODES = frozenset({dns.rcode.NOERROR, dns.rcode.NXDOMAIN})


def _parse_port(text: str, address: str) -> int:
    if not text.isdigit() or not 1 <= int(text) <= 65535:
        raise ConfigurationError(f"Invalid port in DNS server address {address!r}")
    return int(text)


def split_server_address(address: str) -> tuple[str, int]:
    """Split a DNS server address into an IP literal and a port.

    Accepts ``"10.0.0.2"``, ``"10.0.0.2:5353"``, ``"::1"`` and
    ``"[::1]:5353"``. The port defaults to 53.

    Raises:
        ConfigurationError: If the host is not an IP literal or the port is
            invalid.
    """
    text = address.strip()
    host, port = text, DEFAULT_DNS_PORT

    if text.startswith("["):
        host, closed, rest = text[1:].partition("]")
        if not closed or (rest and not rest.startswith(":")):
            raise ConfigurationError(f"Malformed DNS server address {address!r}")
        if rest:
            port = _parse_port(rest[1:], address)
    elif text.count(":") == 1:
        host, port_text = text.split(":")
        port = _parse_port(port_text, address)

    try:
        ip_address(host)
    except ValueError:
        raise ConfigurationError(
            f"DNS server address must be an IP literal, got {address!r}"
        ) from None
    return host, port


def lookup_using(
    server_address: str,
    *,
    timeout: float = DEFAULT_LOOKUP_TIMEOUT,  # noqa: ASYNC109
) -> LookupFn:
    """Produce a lookup function that queries one DNS server over TCP.

    Each call sends a single-question ``A`` query for the fully qualified
    hostname and returns the addresses of every ``A`` answer record, in the
    order the server listed them.

    Args:
        server_address: ``ip`` or ``ip:port`` of the DNS server.
        timeout: Seconds allowed for each query.

    Raises:
        ConfigurationError: Immediately, if *server_address* is malformed.

    Examples:
        ```python
        lookup = lookup_using("10.96.0.10:53")
        await lookup("peer.default.svc")   # [IPv4Address('10.1.2.3'), ...]
        ```
    """
    where, port = split_server_address(server_address)

    async def lookup(hostname: str) -> list[IPAddress]:
        try:
            query = dns.message.make_query(dns.name.from_text(hostname), dns.rdatatype.A)
            response = await dns.asyncquery.tcp(query, where, timeout=timeout, port=port)
        except (OSError, dns.exception.DNSException) as e:
            raise ResolutionError(
                f"query for {hostname!r} to {server_address} failed: {e or type(e).__name__}"
            ) from e

        rcode = response.rcode()
        if rcode not in _SUCCESS_RCODES:
            raise ResolutionError(
                f"query for {hostname!r} to {server_address} returned {dns.rcode.to_text(rcode)}"
            )

        addresses: list[IPAddress] = []
        for rrset in response.answer:
            if rrset.rdtype != dns.rdatatype.A:
                continue
            addresses.extend(ip_address(rdata.address) for rdata in rrset)
        logger.debug("dns_answer hostname=%s server=%s count=%d", hostname, server_address, len(addresses))
        return addresses

    return lookup


async def system_lookup(
    hostname: str,
    *,
    timeout: float = DEFAULT_LOOKUP_TIMEOUT,  # noqa: ASYNC109
) -> list[IPAddress]:
    """Resolve *hostname* with the operating system resolver.

    Runs ``socket.getaddrinfo`` in a worker thread, bounded by *timeout*.
    Duplicate addresses (one per socket type) are collapsed, keeping the
    resolver's order.

    Raises:
        ResolutionError: If the lookup fails or times out.
    """
    try:
        infos = await asyncio.wait_for(
            asyncio.to_thread(socket.getaddrinfo, hostname, None, proto=socket.IPPROTO_TCP),
            timeout=timeout,
        )
    except (OSError, UnicodeError, TimeoutError) as e:
        raise ResolutionError(f"system lookup for {hostname!r} failed: {e or type(e).__name__}") from e

    # IPv6 sockaddrs may carry a "%scope" suffix
    seen = dict.fromkeys(str(info[4][0]).split("%", 1)[0] for info in infos)
    return [ip_address(addr) for addr in seen]
