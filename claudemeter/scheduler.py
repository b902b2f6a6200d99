"""Periodic refresh driver.

Features:
- One timer task at a time; ``restart()`` cancels the old loop before
  starting a new one, so an interval change never leaves two timers
- Wake detection: if the wall clock jumped well past the interval while
  the loop slept, the machine was probably suspended and the next refresh
  is forced past the cache
- Refresh errors are logged and the loop carries on
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from claudemeter.constants import WAKE_DRIFT_SECONDS

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[bool], Awaitable[Any]]


class RefreshScheduler:
    """Calls ``refresh(force)`` every ``interval`` seconds."""

    def __init__(
        self,
        refresh: RefreshCallback,
        interval: float,
        wall_clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._refresh = refresh
        self.interval = interval
        self._wall_clock = wall_clock
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None
        self.ticks = 0
        self.wakes = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the timer loop (no-op when already running)."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop(), name="claudemeter-refresh")
        logger.info("Refresh scheduler started (interval=%ss)", self.interval)

    async def stop(self) -> None:
        """Cancel the timer loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Refresh scheduler stopped")

    async def restart(self, interval: float | None = None) -> None:
        """Replace the running timer, optionally with a new interval."""
        await self.stop()
        if interval is not None:
            self.interval = interval
        await self.start()

    async def _loop(self) -> None:
        while True:
            before = self._wall_clock()
            await self._sleep(self.interval)
            drift = self._wall_clock() - before
            force = drift > self.interval + WAKE_DRIFT_SECONDS
            if force:
                self.wakes += 1
                logger.info("Wake detected (%.0fs elapsed, interval %ss), forcing refresh", drift, self.interval)

            self.ticks += 1
            try:
                await self._refresh(force)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Scheduled refresh failed")
