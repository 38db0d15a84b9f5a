"""Consecutive-failure accounting shared by reconnects and health checks."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

LOGGER = logging.getLogger(__name__)


class ErrorAccounting:
    """Counts consecutive failures inside a sliding window.

    A failure that arrives more than `window_seconds` after the previous one
    starts a new burst (count 1) instead of adding to the old one. The counter
    goes back to zero whenever the session opens or a health probe succeeds.
    """

    def __init__(
        self,
        max_failures: int = 3,
        window_seconds: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_failures < 1:
            raise ValueError("max_failures must be at least 1")
        self.max_failures = max_failures
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = asyncio.Lock()
        self._count = 0
        self._last_failure: Optional[float] = None

    @property
    def count(self) -> int:
        return self._count

    @property
    def limit_reached(self) -> bool:
        return self._count >= self.max_failures

    async def record_failure(self) -> int:
        """Register one failure and return the updated count."""

        async with self._lock:
            now = self._clock()
            if self._last_failure is not None and now - self._last_failure > self.window_seconds:
                LOGGER.info("Last failure was %.0fs ago; starting a new failure burst", now - self._last_failure)
                self._count = 1
            else:
                self._count += 1
            self._last_failure = now
            return self._count

    async def reset(self) -> None:
        async with self._lock:
            if self._count:
                LOGGER.debug("Resetting failure counter (was %s)", self._count)
            self._count = 0
