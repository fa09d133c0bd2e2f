"""Periodic auto-flush trigger.

Runs a background task that wakes up every interval and fires a flush
request. Each request runs as its own task, the way an interval timer
fires callbacks: stopping the timer cancels the sleeping loop but never
an in-flight flush, and a slow flush does not delay the schedule.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger("flush_batcher.timer")


class AutoFlushTimer:
    """Fires ``tick`` every ``interval_s`` seconds until stopped.

    Args:
        tick: Async function requesting a flush.
        interval_s: Seconds between ticks. Best effort, not real-time.
        on_error: Receives any exception raised by ``tick``. The timer
            keeps running afterwards.
    """

    def __init__(
        self,
        tick: Callable[[], Awaitable[None]],
        *,
        interval_s: float,
        on_error: Callable[[BaseException], None],
    ) -> None:
        self._tick = tick
        self._interval_s = interval_s
        self._on_error = on_error
        self._task: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def interval_s(self) -> float:
        return self._interval_s

    def start(self) -> bool:
        """Start the loop. Returns False if it was already running.

        Raises:
            RuntimeError: If no event loop is running. Nothing is started.
        """
        if self.running:
            return False
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run())
        logger.info("Auto-flush started (interval=%.3fs)", self._interval_s)
        return True

    def stop(self) -> bool:
        """Cancel the loop. Returns False if it was not running.

        Flushes already running run to completion. Ticks that fired
        but have not started yet are skipped.
        """
        task = self._task
        self._task = None
        if task is None or task.done():
            return False
        task.cancel()
        logger.info("Auto-flush stopped")
        return True

    async def wait_pending(self) -> None:
        """Wait for every flush fired by a tick to finish."""
        while self._pending:
            await asyncio.wait(set(self._pending))

    async def _run(self) -> None:
        """Background task: sleep, fire, repeat."""
        try:
            while True:
                await asyncio.sleep(self._interval_s)
                task = asyncio.create_task(self._fire())
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)
        except asyncio.CancelledError:
            pass

    async def _fire(self) -> None:
        # Fired on the last tick but not started before stop()
        if not self.running:
            return
        try:
            await self._tick()
        except Exception as exc:
            self._on_error(exc)
