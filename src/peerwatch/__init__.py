r"""peerwatch -- keep endpoint lists in step with DNS.

Resolves a fixed set of named targets on a fast-start cadence and notifies
observers with the current endpoint URLs of each target, so that consumers
such as connection pools can rebalance without restarting.

Imports flow strictly downward:

```text
        services          Resolver: the resolution loop
           |
         utils            Lookup functions, endpoint URL building
           |
         models           Target parsing, constants
           |
          core            Lifecycle, ticker, logging, metrics, exceptions
```

Note:
    Top-level imports (``from peerwatch import Resolver``) are lazy and
    resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("peerwatch")

__all__ = [
    "CallbackObserver",
    "ConfigurationError",
    "EndpointObserver",
    "FastStartTicker",
    "LifecycleError",
    "Logger",
    "PeerwatchError",
    "ResolutionError",
    "Resolver",
    "ResolverConfig",
    "Target",
    "TargetParseError",
    "lookup_using",
    "new_resolver",
    "parse_targets",
    "system_lookup",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "ConfigurationError": ("peerwatch.core", "ConfigurationError"),
    "FastStartTicker": ("peerwatch.core", "FastStartTicker"),
    "LifecycleError": ("peerwatch.core", "LifecycleError"),
    "Logger": ("peerwatch.core", "Logger"),
    "PeerwatchError": ("peerwatch.core", "PeerwatchError"),
    "ResolutionError": ("peerwatch.core", "ResolutionError"),
    "TargetParseError": ("peerwatch.core", "TargetParseError"),
    "Target": ("peerwatch.models", "Target"),
    "parse_targets": ("peerwatch.models", "parse_targets"),
    "lookup_using": ("peerwatch.utils.dns", "lookup_using"),
    "system_lookup": ("peerwatch.utils.dns", "system_lookup"),
    "CallbackObserver": ("peerwatch.services", "CallbackObserver"),
    "EndpointObserver": ("peerwatch.services", "EndpointObserver"),
    "Resolver": ("peerwatch.services", "Resolver"),
    "ResolverConfig": ("peerwatch.services", "ResolverConfig"),
    "new_resolver": ("peerwatch.services", "new_resolver"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module 'peerwatch' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
