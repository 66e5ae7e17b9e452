"""
Unit tests for core.base_service module.

Tests:
- BaseServiceConfig defaults and validation
- start(): initial cycle, background loop, lifecycle errors
- stop()/aclose(): idempotence and loop exit
- Per-cycle error boundary
- Factory methods (from_yaml, from_dict)
- Metrics helpers
"""

import logging
from unittest.mock import AsyncMock, patch

import pytest
from prometheus_client import REGISTRY
from pydantic import Field

from peerwatch.core.base_service import BaseService, BaseServiceConfig
from peerwatch.core.exceptions import ConfigurationError, LifecycleError
from peerwatch.core.metrics import MetricsConfig
from peerwatch.core.ticker import FastStartTicker


class ConcreteServiceConfig(BaseServiceConfig):
    """Test configuration inheriting from BaseServiceConfig."""

    max_items: int = Field(default=100, ge=1)


class ConcreteService(BaseService[ConcreteServiceConfig]):
    """Test implementation counting cycles."""

    SERVICE_NAME = "test_service"
    CONFIG_CLASS = ConcreteServiceConfig

    def __init__(self, config=None, *, ticker=None, label: str = "") -> None:
        super().__init__(config=config, ticker=ticker)
        self.label = label
        self.run_count = 0
        self.should_fail = False

    async def run(self) -> None:
        self.run_count += 1
        if self.should_fail:
            raise RuntimeError("Simulated failure")


def _sample(name: str) -> float | None:
    return REGISTRY.get_sample_value(
        "peerwatch_service_counter_total", {"service": "test_service", "name": name}
    )


class TestBaseServiceConfig:
    def test_defaults(self) -> None:
        config = BaseServiceConfig()
        assert config.interval == 10.0
        assert config.initial_interval == 1.0
        assert isinstance(config.metrics, MetricsConfig)

    def test_interval_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            BaseServiceConfig(interval=0)

    def test_initial_interval_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            BaseServiceConfig(initial_interval=-1)


class TestInit:
    def test_default_config(self) -> None:
        service = ConcreteService()
        assert service.config.max_items == 100
        assert service._logger.name == "test_service"

    def test_default_ticker_uses_initial_interval(self) -> None:
        service = ConcreteService(ConcreteServiceConfig(interval=6.0, initial_interval=0.5))
        ticker = service._ticker_factory(service.config.interval)
        assert isinstance(ticker, FastStartTicker)
        assert next(ticker.intervals()) == 0.5
        assert ticker.steady_interval == 6.0


class TestStart:
    async def test_runs_initial_cycle(self, manual_ticker) -> None:
        service = ConcreteService(ticker=manual_ticker)
        await service.start()
        try:
            assert service.run_count == 1
            assert service.is_running is True
        finally:
            await service.aclose()

    async def test_ticks_drive_cycles(self, manual_ticker, wait_until) -> None:
        async with ConcreteService(ticker=manual_ticker) as service:
            for expected in (2, 3):
                manual_ticker.tick()
                await wait_until(lambda n=expected: service.run_count == n)

    async def test_start_after_stop_raises(self, manual_ticker) -> None:
        service = ConcreteService(ticker=manual_ticker)
        service.stop()
        with pytest.raises(LifecycleError):
            await service.start()
        assert service.run_count == 0

    async def test_metrics_server_started_and_stopped(self, manual_ticker) -> None:
        service = ConcreteService(ticker=manual_ticker)
        with (
            patch.object(service._metrics_server, "start", new=AsyncMock()) as start,
            patch.object(service._metrics_server, "stop", new=AsyncMock()) as stop,
        ):
            await service.start()
            await service.aclose()
        start.assert_awaited_once()
        stop.assert_awaited_once()


    async def test_metrics_bind_failure_allows_retry(self, manual_ticker) -> None:
        service = ConcreteService(ticker=manual_ticker)
        with patch.object(
            service._metrics_server, "start", new=AsyncMock(side_effect=OSError("in use"))
        ):
            with pytest.raises(OSError):
                await service.start()
        assert service.is_running is False
        assert service.run_count == 0

        await service.start()
        try:
            assert service.run_count == 1
        finally:
            await service.aclose()


class TestStop:
    async def test_loop_exits_on_stop(self, manual_ticker, wait_until) -> None:
        service = ConcreteService(ticker=manual_ticker)
        await service.start()
        await wait_until(lambda: manual_ticker.started)
        service.stop()
        await service.wait_stopped()
        assert manual_ticker.stopped is True
        assert service._task.done()
        await service.aclose()

    async def test_ticker_task_finished_after_aclose(self, wait_until) -> None:
        tickers: list[FastStartTicker] = []

        def factory(interval: float) -> FastStartTicker:
            ticker = FastStartTicker(interval, initial_interval=60.0)
            tickers.append(ticker)
            return ticker

        service = ConcreteService(ticker=factory)
        await service.start()
        await wait_until(lambda: bool(tickers) and tickers[0]._task is not None)
        await service.aclose()
        assert tickers[0]._task.done()

    async def test_stop_logged_once(self, caplog) -> None:
        service = ConcreteService()
        with caplog.at_level(logging.INFO, logger="test_service"):
            service.stop()
            service.stop()
        assert [r.getMessage() for r in caplog.records].count("stop_requested") == 1

    async def test_aclose_without_start(self) -> None:
        service = ConcreteService()
        await service.aclose()
        assert service.is_stopped is True


class TestErrorBoundary:
    async def test_failing_cycle_logged(self, caplog) -> None:
        service = ConcreteService()
        service.should_fail = True
        with caplog.at_level(logging.ERROR, logger="test_service"):
            await service._cycle()
        (record,) = [r for r in caplog.records if r.getMessage() == "run_cycle_error"]
        assert record.structured_kv["error"] == "Simulated failure"
        assert record.structured_kv["error_type"] == "RuntimeError"

    async def test_loop_survives_failures(self, manual_ticker, wait_until) -> None:
        service = ConcreteService(ticker=manual_ticker)
        service.should_fail = True
        async with service:
            manual_ticker.tick()
            await wait_until(lambda: service.run_count == 2)
            assert service.is_running is True


class TestFactoryMethods:
    def test_from_dict(self) -> None:
        service = ConcreteService.from_dict({"interval": 30.0, "max_items": 5}, label="x")
        assert service.config.interval == 30.0
        assert service.config.max_items == 5
        assert service.label == "x"

    def test_from_yaml(self, tmp_path) -> None:
        config_file = tmp_path / "service.yaml"
        config_file.write_text("interval: 15.0\nmax_items: 7\n")
        service = ConcreteService.from_yaml(str(config_file))
        assert service.config.interval == 15.0
        assert service.config.max_items == 7

    def test_from_yaml_file_not_found(self) -> None:
        with pytest.raises(FileNotFoundError):
            ConcreteService.from_yaml("/nonexistent/path/config.yaml")

    def test_from_yaml_not_a_mapping(self, tmp_path) -> None:
        config_file = tmp_path / "service.yaml"
        config_file.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            ConcreteService.from_yaml(config_file)


class TestMetrics:
    def test_noop_when_disabled(self) -> None:
        service = ConcreteService()
        before = _sample("disabled_counter")
        service.inc_counter("disabled_counter")
        service.set_gauge("disabled_gauge", 3)
        assert _sample("disabled_counter") == before

    async def test_cycle_records_success(self) -> None:
        service = ConcreteService(ConcreteServiceConfig(metrics=MetricsConfig(enabled=True)))
        before = _sample("cycles_success") or 0.0
        await service._cycle()
        assert _sample("cycles_success") == before + 1

    async def test_cycle_records_failure_by_type(self) -> None:
        service = ConcreteService(ConcreteServiceConfig(metrics=MetricsConfig(enabled=True)))
        service.should_fail = True
        before = _sample("errors_RuntimeError") or 0.0
        await service._cycle()
        assert _sample("errors_RuntimeError") == before + 1

    def test_gauge(self) -> None:
        service = ConcreteService(ConcreteServiceConfig(metrics=MetricsConfig(enabled=True)))
        service.set_gauge("queue_size", 4)
        value = REGISTRY.get_sample_value(
            "peerwatch_service_gauge", {"service": "test_service", "name": "queue_size"}
        )
        assert value == 4
