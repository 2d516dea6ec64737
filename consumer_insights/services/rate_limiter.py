from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable


class IntervalRateLimiter:
    """Spaces successive acquisitions at least ``interval_seconds`` apart.

    The first ``acquire()`` returns immediately. ``clock`` and ``sleep`` are
    injectable so callers can drive the limiter without wall-clock waits.
    """

    def __init__(
        self,
        interval_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._last: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> float:
        """Wait for the next slot; returns the seconds actually waited."""
        async with self._lock:
            waited = 0.0
            if self._last is not None:
                remaining = self.interval_seconds - (self._clock() - self._last)
                if remaining > 0:
                    await self._sleep(remaining)
                    waited = remaining
            self._last = self._clock()
            return waited

    def reset(self) -> None:
        self._last = None
