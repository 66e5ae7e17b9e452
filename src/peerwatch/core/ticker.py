"""
Fast-start ticker driving the resolution cadence.

A [FastStartTicker][peerwatch.core.ticker.FastStartTicker] produces ticks on
a background task. The first interval is short (1 second by default) and each
subsequent interval doubles until it reaches the steady-state interval, so a
freshly started resolver sees new DNS state quickly without polling at a high
rate for long:

```text
sleep 1s -> tick, sleep 2s -> tick, sleep 4s -> tick, sleep 8s -> tick,
sleep 10s -> tick, sleep 10s -> tick, ...
```

Ticks are delivered through a single-slot ``asyncio.Queue``. When the slot
still holds an unconsumed tick the new one is dropped, so the producer never
waits on a slow consumer and at most one tick is ever pending.

The ticker is injected into services as a
[TickerFactory][peerwatch.core.ticker.TickerFactory]; tests pass a manual
ticker instead of sleeping.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Awaitable, Callable, Iterator
from typing import Protocol


class Ticker(Protocol):
    """Capability consumed by the service loop: a startable tick source."""

    def start(self) -> None: ...

    def stop(self) -> None: ...

    async def aclose(self) -> None: ...

    async def next_tick(self) -> float: ...


# Called with the steady-state interval in seconds
TickerFactory = Callable[[float], Ticker]


class FastStartTicker:
    """Ticker whose interval ramps geometrically up to a steady cadence.

    Args:
        steady_interval: Interval in seconds once the ramp-up is over.
        initial_interval: First interval in seconds (default 1.0).
        sleep: Awaitable sleep function, replaceable for tests.

    Attributes:
        dropped: Number of ticks discarded because the previous tick had not
            been consumed yet.

    Examples:
        ```python
        ticker = FastStartTicker(10.0)
        ticker.start()
        try:
            while True:
                await ticker.next_tick()
                ...
        finally:
            await ticker.aclose()
        ```
    """

    def __init__(
        self,
        steady_interval: float,
        *,
        initial_interval: float = 1.0,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if steady_interval <= 0:
            raise ValueError(f"steady_interval must be positive, got {steady_interval}")
        if initial_interval <= 0:
            raise ValueError(f"initial_interval must be positive, got {initial_interval}")
        self._steady_interval = steady_interval
        self._initial_interval = initial_interval
        self._sleep = sleep
        self._queue: asyncio.Queue[float] = asyncio.Queue(maxsize=1)
        self._task: asyncio.Task[None] | None = None
        self.dropped = 0

    @property
    def steady_interval(self) -> float:
        return self._steady_interval

    def intervals(self) -> Iterator[float]:
        """Yield the infinite sequence of sleep intervals, in seconds.

        The first value is always ``initial_interval``; each following value
        is double the previous one, capped at ``steady_interval``.
        """
        interval = self._initial_interval
        while True:
            yield interval
            interval = min(interval * 2, self._steady_interval)

    def start(self) -> None:
        """Spawn the producer task. Must be called from a running event loop."""
        if self._task is None:
            self._task = asyncio.create_task(self._produce(), name="fast-start-ticker")

    def stop(self) -> None:
        """Cancel the producer task. Idempotent."""
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def aclose(self) -> None:
        """Stop the producer and wait for its task to finish."""
        self.stop()
        if self._task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

    async def next_tick(self) -> float:
        """Wait for the next tick and return its ``time.monotonic()`` stamp."""
        return await self._queue.get()

    async def _produce(self) -> None:
        for interval in self.intervals():
            await self._sleep(interval)
            try:
                self._queue.put_nowait(time.monotonic())
            except asyncio.QueueFull:
                self.dropped += 1
