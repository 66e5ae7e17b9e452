"""Services built on [BaseService][peerwatch.core.base_service.BaseService].

Attributes:
    Resolver: Keeps observers supplied with the current endpoint URLs of a
        fixed set of DNS-named targets.
"""

from .resolver import (
    CallbackObserver,
    EndpointObserver,
    Resolver,
    ResolverConfig,
    new_resolver,
)


__all__ = [
    "CallbackObserver",
    "EndpointObserver",
    "Resolver",
    "ResolverConfig",
    "new_resolver",
]
