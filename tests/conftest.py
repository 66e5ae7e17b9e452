"""
Pytest configuration and shared fixtures for peerwatch tests.

Provides:
- ManualTicker: a ticker that only ticks when a test says so
- RecordingObserver: collects (hostname, endpoint URL strings) notifications
- FakeLookup: scripted async lookup recording every hostname it receives
- wait_until: polls a predicate on the event loop with a timeout
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Any

import pytest


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Test Doubles
# ============================================================================


class ManualTicker:
    """Ticker factory and ticker in one; ticks only on ``tick()``."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue[float] = asyncio.Queue(maxsize=1)
        self.interval: float | None = None
        self.started = False
        self.stopped = False
        self.dropped = 0

    def __call__(self, interval: float) -> ManualTicker:
        self.interval = interval
        return self

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    async def aclose(self) -> None:
        self.stop()

    async def next_tick(self) -> float:
        return await self.queue.get()

    def tick(self) -> None:
        try:
            self.queue.put_nowait(0.0)
        except asyncio.QueueFull:
            self.dropped += 1


class RecordingObserver:
    """Observer recording every notification with endpoints as strings."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, list[str]]] = []

    def notify(self, hostname: str, endpoints: Sequence[Any]) -> None:
        self.calls.append((hostname, [e.unsplit() for e in endpoints]))


class FakeLookup:
    """Async lookup answering from a mutable hostname -> result mapping.

    A result that is an exception instance is raised instead of returned.
    Unknown hostnames resolve to no addresses.
    """

    def __init__(self, answers: dict[str, Iterable[str] | BaseException] | None = None) -> None:
        self.answers: dict[str, Iterable[str] | BaseException] = dict(answers or {})
        self.calls: list[str] = []

    async def __call__(self, hostname: str) -> list[str]:
        self.calls.append(hostname)
        answer = self.answers.get(hostname, [])
        if isinstance(answer, BaseException):
            raise answer
        return list(answer)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def manual_ticker() -> ManualTicker:
    return ManualTicker()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def fake_lookup() -> FakeLookup:
    return FakeLookup()


@pytest.fixture
def wait_until() -> Callable[..., Awaitable[None]]:
    """Return a helper that waits for ``predicate()`` to become true."""

    async def _wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
        async with asyncio.timeout(timeout):
            while not predicate():
                await asyncio.sleep(0.001)

    return _wait_until
