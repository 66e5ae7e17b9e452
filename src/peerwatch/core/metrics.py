"""
Prometheus metrics collection and HTTP exposition.

Module-level metric objects are process-wide singletons shared by every
service instance and distinguished by the ``service`` label.
[BaseService][peerwatch.core.base_service.BaseService] records cycle counts,
durations, and failures automatically; the resolver adds lookup-specific
values through ``set_gauge()`` and ``inc_counter()``.

``MetricsServer`` exposes the registry over HTTP (aiohttp) for Prometheus
scraping. It is started by a service only when ``MetricsConfig.enabled`` is
set.

Architecture:
    SERVICE_INFO:               Static metadata set once at startup.
    SERVICE_GAUGE:              Point-in-time values (endpoint counts, targets).
    SERVICE_COUNTER:            Cumulative totals (cycles, lookup failures).
    CYCLE_DURATION_SECONDS:     Histogram of resolution pass durations.
"""

from __future__ import annotations

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class MetricsConfig(BaseModel):
    """Configuration for the Prometheus metrics endpoint.

    Metrics are neither recorded nor served unless ``enabled`` is True.
    """

    enabled: bool = Field(default=False, description="Enable metrics collection")
    port: int = Field(default=8000, ge=1024, le=65535, description="Metrics HTTP port")
    host: str = Field(default="127.0.0.1", description="Metrics HTTP bind address")
    path: str = Field(default="/metrics", description="Metrics endpoint path")


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

SERVICE_INFO = Info(
    "peerwatch_service",
    "Service information and metadata",
)

# Resolution passes are short; buckets favour sub-second latencies
CYCLE_DURATION_SECONDS = Histogram(
    "peerwatch_cycle_duration_seconds",
    "Duration of one resolution pass in seconds",
    ["service"],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30),
)

SERVICE_GAUGE = Gauge(
    "peerwatch_service_gauge",
    "Service gauge values (point-in-time state)",
    ["service", "name"],
)

SERVICE_COUNTER = Counter(
    "peerwatch_service_counter",
    "Service counter values (cumulative totals)",
    ["service", "name"],
)


# ---------------------------------------------------------------------------
# HTTP Server
# ---------------------------------------------------------------------------


class MetricsServer:
    """Async HTTP server exposing a Prometheus-compatible endpoint.

    Example:
        server = MetricsServer(MetricsConfig(enabled=True, port=9101))
        await server.start()
        ...
        await server.stop()
    """

    def __init__(self, config: MetricsConfig) -> None:
        self._config = config
        self._runner: web.AppRunner | None = None

    @property
    def is_serving(self) -> bool:
        return self._runner is not None

    async def start(self) -> None:
        """Bind the endpoint. No-op when metrics are disabled.

        Raises:
            OSError: If the port is already in use or binding fails.
        """
        if not self._config.enabled or self._runner is not None:
            return

        app = web.Application()
        app.router.add_get(self._config.path, self._handle_metrics)

        runner = web.AppRunner(app, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, self._config.host, self._config.port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner

    async def stop(self) -> None:
        """Release the bound port. Safe to call when never started."""
        if self._runner is not None:
            runner, self._runner = self._runner, None
            await runner.cleanup()

    @staticmethod
    async def _handle_metrics(_request: web.Request) -> web.Response:
        return web.Response(
            body=generate_latest(),
            headers={"Content-Type": CONTENT_TYPE_LATEST},
        )
