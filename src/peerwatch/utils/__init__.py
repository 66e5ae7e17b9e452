"""Lookup functions and endpoint construction.

Attributes:
    dns: Async lookup functions -- a DNS-server-bound TCP client built on
        ``dnspython`` ([lookup_using()][peerwatch.utils.dns.lookup_using]) and
        the system resolver
        ([system_lookup()][peerwatch.utils.dns.system_lookup]).
    endpoints: IPv4 filtering and per-address endpoint URL building.
"""
