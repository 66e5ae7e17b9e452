"""Core layer: service lifecycle, ticker, logging, metrics, configuration.

Depends only on the standard library and third-party packages; never on
``peerwatch.services``.

Attributes:
    BaseService: Abstract generic base class with a tick-driven background
        loop, one-shot stop, per-cycle error boundary and factory methods
        ([from_yaml()][peerwatch.core.base_service.BaseService.from_yaml],
        [from_dict()][peerwatch.core.base_service.BaseService.from_dict]).
    FastStartTicker: Tick source ramping from 1 second up to the steady
        interval. See [FastStartTicker][peerwatch.core.ticker.FastStartTicker].
    Logger: Structured logger supporting key=value and JSON output modes.
    MetricsServer: Prometheus ``/metrics`` HTTP endpoint.
    load_yaml: Safe YAML loading with ``yaml.safe_load()``.
"""

from .base_service import BaseService, BaseServiceConfig, ConfigT
from .exceptions import (
    ConfigurationError,
    LifecycleError,
    PeerwatchError,
    ResolutionError,
    TargetParseError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import (
    CYCLE_DURATION_SECONDS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    MetricsConfig,
    MetricsServer,
)
from .ticker import FastStartTicker, Ticker, TickerFactory
from .yaml import load_yaml


__all__ = [
    "CYCLE_DURATION_SECONDS",
    "SERVICE_COUNTER",
    "SERVICE_GAUGE",
    "SERVICE_INFO",
    "BaseService",
    "BaseServiceConfig",
    "ConfigT",
    "ConfigurationError",
    "FastStartTicker",
    "LifecycleError",
    "Logger",
    "MetricsConfig",
    "MetricsServer",
    "PeerwatchError",
    "ResolutionError",
    "StructuredFormatter",
    "TargetParseError",
    "Ticker",
    "TickerFactory",
    "format_kv_pairs",
    "load_yaml",
]
