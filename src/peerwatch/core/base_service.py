"""
Abstract base class for tick-driven peerwatch services.

``BaseService[ConfigT]`` provides the lifecycle shared by services that repeat
a bounded unit of work: structured logging via
[Logger][peerwatch.core.logger.Logger], a one-shot stop signal backed by
``asyncio.Event``, a background loop paced by an injected
[Ticker][peerwatch.core.ticker.Ticker], a per-cycle error boundary, and
Prometheus metrics via [MetricsServer][peerwatch.core.metrics.MetricsServer].

Lifecycle:

```text
created --start()--> running --stop()--> stopped (terminal)
```

[start()][peerwatch.core.base_service.BaseService.start] runs one cycle before
returning, so callers observe initial state without waiting for a tick, and
then spawns the background task. The stop signal is only checked between
cycles: a cycle that has begun always completes.

See Also:
    [Resolver][peerwatch.services.resolver.Resolver]: The DNS resolution
        service built on this class.
    [FastStartTicker][peerwatch.core.ticker.FastStartTicker]: The default
        tick source.
"""

from __future__ import annotations

import asyncio
import functools
import time
from abc import ABC, abstractmethod
from pathlib import Path
from types import TracebackType
from typing import Any, ClassVar, Generic, Self, TypeVar, cast

from pydantic import BaseModel, Field

from .exceptions import LifecycleError
from .logger import Logger
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


# ---------------------------------------------------------------------------
# Base Configuration
# ---------------------------------------------------------------------------


class BaseServiceConfig(BaseModel):
    """Base configuration shared by all tick-driven services.

    The fields defined here shape the default
    [FastStartTicker][peerwatch.core.ticker.FastStartTicker] cadence and the
    Prometheus metrics endpoint. Subclass to add service-specific fields.
    """

    interval: float = Field(
        default=10.0,
        gt=0.0,
        description="Steady-state seconds between cycles",
    )
    initial_interval: float = Field(
        default=1.0,
        gt=0.0,
        description="First interval of the fast-start ramp, in seconds",
    )
    metrics: MetricsConfig = Field(
        default_factory=MetricsConfig,
        description="Prometheus metrics configuration",
    )


ConfigT = TypeVar("ConfigT", bound=BaseServiceConfig)


class BaseService(ABC, Generic[ConfigT]):
    """Abstract base class for peerwatch services.

    Subclasses set ``SERVICE_NAME`` and ``CONFIG_CLASS`` and implement
    [run()][peerwatch.core.base_service.BaseService.run] with one cycle of
    work.

    Attributes:
        SERVICE_NAME: Identifier used in logging and metrics labels.
        CONFIG_CLASS: Pydantic model used by the factory methods.
        _config: Typed service configuration.
        _logger: [Logger][peerwatch.core.logger.Logger] named after the service.
        _stop_event: Set once when a stop is requested; never cleared.
    """

    SERVICE_NAME: ClassVar[str]
    CONFIG_CLASS: ClassVar[type[BaseModel]]

    def __init__(
        self,
        config: ConfigT | None = None,
        *,
        ticker: TickerFactory | None = None,
    ) -> None:
        self._config: ConfigT = (
            config if config is not None else cast("ConfigT", self.CONFIG_CLASS())
        )
        self._ticker_factory: TickerFactory = ticker or functools.partial(
            FastStartTicker, initial_interval=self._config.initial_interval
        )
        self._logger = Logger(self.SERVICE_NAME)
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._started = False
        self._metrics_server = MetricsServer(self._config.metrics)

    @property
    def config(self) -> ConfigT:
        """The typed service configuration (read-only)."""
        return self._config

    @property
    def is_running(self) -> bool:
        """Whether the service has started and no stop has been requested."""
        return self._started and not self._stop_event.is_set()

    @property
    def is_stopped(self) -> bool:
        return self._stop_event.is_set()

    @abstractmethod
    async def run(self) -> None:
        """Execute one cycle of the service's work.

        Called once by
        [start()][peerwatch.core.base_service.BaseService.start] and then
        once per tick by the background loop.
        """
        ...

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Run the first cycle, then launch the background loop.

        Raises:
            LifecycleError: If the service was already started or stopped.
            OSError: If the metrics endpoint is enabled and cannot bind.
        """
        if self._stop_event.is_set():
            raise LifecycleError(f"{self.SERVICE_NAME} was stopped and cannot be restarted")
        if self._started:
            raise LifecycleError(f"{self.SERVICE_NAME} is already running")
        self._started = True

        try:
            await self._metrics_server.start()
        except OSError:
            self._started = False
            raise
        if self._config.metrics.enabled:
            SERVICE_INFO.info({"service": self.SERVICE_NAME})

        self._logger.info("service_started")
        await self._cycle()
        self._task = asyncio.create_task(self.run_forever(), name=f"{self.SERVICE_NAME}-loop")

    def stop(self) -> None:
        """Request the background loop to exit after the current cycle.

        Idempotent: only the first call has an effect. Safe to call from
        signal handlers, before ``start()``, or after the loop has exited.
        """
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        self._logger.info("stop_requested")

    async def wait_stopped(self) -> None:
        """Wait until the background loop has exited."""
        if self._task is not None:
            await asyncio.shield(self._task)

    async def aclose(self) -> None:
        """Stop the service, wait for its loop to exit, and release resources."""
        self.stop()
        try:
            await self.wait_stopped()
        finally:
            await self._metrics_server.stop()
            self._logger.info("service_stopped")

    async def run_forever(self) -> None:
        """Run cycles on every tick until a stop is requested.

        Each iteration waits for whichever comes first: the next tick or the
        stop signal. A stop observed while waiting ends the loop without
        running another cycle.
        """
        ticker: Ticker = self._ticker_factory(self._config.interval)
        ticker.start()
        self._logger.info(
            "run_forever_started",
            interval=self._config.interval,
            initial_interval=self._config.initial_interval,
        )
        try:
            while not self._stop_event.is_set():
                if await self._wait_for_tick(ticker):
                    break
                await self._cycle()
        finally:
            await ticker.aclose()
            self._logger.info("run_forever_stopped")

    async def _wait_for_tick(self, ticker: Ticker) -> bool:
        """Wait for the next tick or the stop signal; return True on stop."""
        tick = asyncio.ensure_future(ticker.next_tick())
        stopped = asyncio.ensure_future(self._stop_event.wait())
        try:
            done, _ = await asyncio.wait({tick, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for fut in (tick, stopped):
                if not fut.done():
                    fut.cancel()
        return stopped in done

    async def _cycle(self) -> None:
        """Run one cycle inside the error boundary, recording metrics."""
        cycle_start = time.monotonic()
        try:
            await self.run()
        except (asyncio.CancelledError, KeyboardInterrupt, SystemExit):
            raise
        except Exception as e:  # Intentionally broad: one bad cycle must not kill the loop
            self.inc_counter("cycles_failed")
            self.inc_counter(f"errors_{type(e).__name__}")
            self._logger.error("run_cycle_error", error=str(e), error_type=type(e).__name__)
            return

        duration = time.monotonic() - cycle_start
        self.inc_counter("cycles_success")
        self.set_gauge("last_cycle_timestamp", time.time())
        if self._config.metrics.enabled:
            CYCLE_DURATION_SECONDS.labels(service=self.SERVICE_NAME).observe(duration)
        self._logger.debug("cycle_completed", duration_s=round(duration, 4))

    # -------------------------------------------------------------------------
    # Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, config_path: str | Path, *args: Any, **kwargs: Any) -> Self:
        """Create a service instance from a YAML configuration file.

        Positional and keyword arguments other than the configuration are
        passed to the constructor unchanged.
        """
        return cls.from_dict(load_yaml(config_path), *args, **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any], *args: Any, **kwargs: Any) -> Self:
        """Create a service instance from a configuration dictionary.

        Raises:
            pydantic.ValidationError: If *data* does not match ``CONFIG_CLASS``.
        """
        config = cast("ConfigT", cls.CONFIG_CLASS(**data))
        return cls(*args, config=config, **kwargs)

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # -------------------------------------------------------------------------
    # Custom Metrics
    # -------------------------------------------------------------------------

    def set_gauge(self, name: str, value: float) -> None:
        """Set a named gauge for this service. No-op when metrics are disabled."""
        if not self._config.metrics.enabled:
            return
        SERVICE_GAUGE.labels(service=self.SERVICE_NAME, name=name).set(value)

    def inc_counter(self, name: str, value: float = 1) -> None:
        """Increment a named counter for this service. No-op when metrics are disabled."""
        if not self._config.metrics.enabled:
            return
        SERVICE_COUNTER.labels(service=self.SERVICE_NAME, name=name).inc(value)
