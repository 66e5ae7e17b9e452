"""Address filtering and endpoint URL construction.

Turns the raw result of a lookup into concrete endpoint URLs for a
[Target][peerwatch.models.target.Target]: addresses are normalized and
(by default) reduced to IPv4, then each one replaces the host of the
target's template URL.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from ipaddress import IPv4Address, ip_address

from rfc3986 import URIReference

from peerwatch.models.target import Target, join_host_port

from .dns import IPAddress


logger = logging.getLogger(__name__)


def _as_ipv4(addr: IPAddress) -> IPv4Address | None:
    if isinstance(addr, IPv4Address):
        return addr
    # IPv4-mapped IPv6 addresses (::ffff:a.b.c.d) still have an IPv4 form
    return addr.ipv4_mapped


def usable_addresses(
    addresses: Iterable[IPAddress | str],
    *,
    ipv4_only: bool = True,
) -> list[IPAddress]:
    """Normalize lookup results, keeping the input order.

    Entries that are not valid IP addresses are dropped. With *ipv4_only*
    (the default), addresses without an IPv4 representation are dropped
    silently and IPv4-mapped IPv6 addresses are converted to IPv4.
    """
    result: list[IPAddress] = []
    for entry in addresses:
        try:
            addr = ip_address(entry)
        except ValueError:
            logger.debug("address_discarded value=%s reason=invalid", entry)
            continue
        if ipv4_only:
            v4 = _as_ipv4(addr)
            if v4 is None:
                continue
            addr = v4
        result.append(addr)
    return result


def build_endpoints(target: Target, addresses: Iterable[IPAddress]) -> list[URIReference]:
    """Derive one endpoint URL per address from the target's template URL.

    Only the host changes: it becomes ``address:port`` (IPv6 addresses
    bracketed). Scheme, userinfo, path, query, and fragment are kept. The
    output order follows *addresses*.
    """
    userinfo = target.url.userinfo
    endpoints: list[URIReference] = []
    for addr in addresses:
        authority = join_host_port(str(addr), target.port)
        if userinfo:
            authority = f"{userinfo}@{authority}"
        endpoints.append(target.url.copy_with(authority=authority))
    return endpoints
