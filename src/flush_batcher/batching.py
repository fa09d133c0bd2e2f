"""Generic item batcher with single-flight flushing.

Collects items from any number of producers and delivers them in bulk
to one registered handler, either on a timer or when ``flush()`` is
awaited. Delivery preserves submission order, optionally split into
fixed-size chunks, and a failing handler never stops later deliveries.

Typical usage::

    from flush_batcher import Batcher

    async def send(events: list[dict]) -> None:
        await client.post("/events", json=events)

    batcher = Batcher(interval_ms=250, batch_size=100)
    batcher.register_handler(send)

    batcher.add({"type": "click"})
    batcher.add_many(more_events)

    # On shutdown, deliver whatever is left
    await batcher.close()

Flush protocol:

- At most one drain loop runs at a time. A flush requested while one
  is running only marks another pass as needed and returns.
- The drain loop takes one chunk at a time and awaits the handler
  before taking the next, so items added mid-flush are delivered by
  the same loop, after the chunk in flight and in their own call.
- When the loop empties the buffer and a flush was requested in the
  meantime, one more full pass runs before ``flush()`` returns.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Iterable
from typing import Generic, TypeVar

from flush_batcher.buffer import ItemBuffer
from flush_batcher.models import (
    BatcherOptions,
    BatcherStats,
    ErrorObserver,
    FlushState,
    Handler,
)
from flush_batcher.timer import AutoFlushTimer

logger = logging.getLogger("flush_batcher.batching")

T = TypeVar("T")


class Batcher(Generic[T]):
    """Buffers items and flushes them to a single handler.

    The auto-flush timer starts the first time a handler is registered,
    so ``register_handler`` must be called from a running event loop.
    ``add`` and ``add_many`` never block and may be called from any
    thread, including from inside the handler.

    Args:
        interval_ms: Auto-flush cadence in milliseconds (default 500).
        on_error: Called with the exception when the handler fails.
            Defaults to logging the failure.
        batch_size: Maximum items per handler call. ``None`` delivers
            everything drained in a single call.
        handler_timeout_ms: Cancel an asynchronous handler call that
            runs longer than this and report it as a timeout.

    Raises:
        pydantic.ValidationError: If an option is out of range.
    """

    def __init__(
        self,
        *,
        interval_ms: float = 500,
        on_error: ErrorObserver | None = None,
        batch_size: int | None = None,
        handler_timeout_ms: float | None = None,
    ) -> None:
        self._options = BatcherOptions(
            interval_ms=interval_ms,
            on_error=on_error,
            batch_size=batch_size,
            handler_timeout_ms=handler_timeout_ms,
        )
        self._buffer: ItemBuffer[T] = ItemBuffer()
        self._handler: Handler | None = None

        # Coordinator state
        self._state = FlushState.IDLE
        self._flush_requested = False
        self._idle = asyncio.Event()
        self._idle.set()

        self._timer = AutoFlushTimer(
            self.flush,
            interval_s=self._options.interval_s,
            on_error=self._report_error,
        )

        self._flushes = 0
        self._batches_delivered = 0
        self._items_delivered = 0
        self._handler_errors = 0

    @classmethod
    def from_options(cls, options: BatcherOptions) -> Batcher:
        """Build a batcher from a prepared :class:`BatcherOptions`."""
        return cls(
            interval_ms=options.interval_ms,
            on_error=options.on_error,
            batch_size=options.batch_size,
            handler_timeout_ms=options.handler_timeout_ms,
        )

    # ------------------------------------------------------------------
    # Producers
    # ------------------------------------------------------------------

    def add(self, item: T) -> None:
        """Buffer a single item."""
        self._buffer.add(item)

    def add_many(self, items: Iterable[T]) -> None:
        """Buffer several items, keeping their order."""
        self._buffer.add_many(items)

    def get_batch(self) -> list[T]:
        """Return a copy of the buffered items (for introspection)."""
        return self._buffer.snapshot()

    def clear(self) -> None:
        """Discard all buffered items without delivering them."""
        dropped = self._buffer.clear()
        if dropped:
            logger.debug("Cleared %d buffered item(s)", dropped)

    # ------------------------------------------------------------------
    # Consumer registration
    # ------------------------------------------------------------------

    def register_handler(self, handler: Handler) -> None:
        """Register the handler for flushed batches.

        Replaces any previously registered handler and starts the
        auto-flush timer if it is not already running.

        Raises:
            RuntimeError: If no event loop is running. The batcher is
                left unchanged.
        """
        self._timer.start()
        if self._handler is not None:
            logger.debug("Replacing registered batch handler")
        self._handler = handler

    @property
    def has_handler(self) -> bool:
        return self._handler is not None

    # ------------------------------------------------------------------
    # Flushing
    # ------------------------------------------------------------------

    async def flush(self) -> None:
        """Deliver everything buffered to the handler.

        Returns once all items buffered at call time, plus any added
        while the resulting drain ran, have been offered to the handler.
        Handler failures are reported to ``on_error`` and never raised
        here. If another flush is already running, this marks one more
        pass as needed and returns immediately.
        """
        while True:
            if self._handler is None:
                logger.warning("flush() called with no handler registered")
                return

            if self._state is FlushState.FLUSHING:
                self._flush_requested = True
                return

            if not self._buffer:
                return

            await self._drain()

            # Worker threads may append after the drain loop exits
            if not self._flush_requested and not self._buffer:
                return
            self._flush_requested = False

    async def _drain(self) -> None:
        """Take chunks off the front of the buffer until it is empty."""
        self._state = FlushState.FLUSHING
        self._idle.clear()
        self._flushes += 1
        try:
            while self._buffer:
                chunk = self._buffer.drain(self._options.batch_size)
                await self._deliver(chunk)
        finally:
            self._state = FlushState.IDLE
            self._idle.set()

    async def _deliver(self, chunk: list[T]) -> None:
        """Invoke the handler with one chunk, isolating any failure."""
        handler = self._handler
        try:
            result = handler(chunk)
            if inspect.isawaitable(result):
                timeout = self._options.handler_timeout_s
                if timeout is None:
                    await result
                else:
                    await asyncio.wait_for(result, timeout)
        except Exception as exc:
            self._handler_errors += 1
            self._report_error(exc)
            return
        self._batches_delivered += 1
        self._items_delivered += len(chunk)
        logger.debug("Delivered batch of %d item(s)", len(chunk))

    def _report_error(self, error: BaseException) -> None:
        """Route a failure to ``on_error``, or log it."""
        on_error = self._options.on_error
        if on_error is None:
            logger.error("Batch handler failed: %s", error, exc_info=error)
            return
        try:
            on_error(error)
        except Exception:
            logger.exception("on_error callback raised while handling %r", error)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def stop_auto_flush(self) -> None:
        """Stop timer-driven flushing.

        A flush already in progress runs to completion. Registering a
        handler again restarts the timer.
        """
        self._timer.stop()

    async def wait_idle(self) -> None:
        """Block until no drain loop is running."""
        while self._state is FlushState.FLUSHING:
            await self._idle.wait()

    async def close(self) -> None:
        """Stop auto-flush and deliver whatever is still buffered."""
        self.stop_auto_flush()
        await self._timer.wait_pending()
        await self.wait_idle()
        if self._handler is not None:
            await self.flush()
        logger.info("Batcher closed: %s", self.stats)

    async def __aenter__(self) -> Batcher:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def options(self) -> BatcherOptions:
        return self._options

    @property
    def state(self) -> FlushState:
        return self._state

    @property
    def is_flushing(self) -> bool:
        return self._state is FlushState.FLUSHING

    @property
    def auto_flush_running(self) -> bool:
        return self._timer.running

    @property
    def pending(self) -> int:
        """Number of buffered items."""
        return len(self._buffer)

    @property
    def stats(self) -> BatcherStats:
        """Snapshot of delivery counters."""
        return BatcherStats(
            flushes=self._flushes,
            batches_delivered=self._batches_delivered,
            items_delivered=self._items_delivered,
            handler_errors=self._handler_errors,
            pending=len(self._buffer),
        )

    def __len__(self) -> int:
        return len(self._buffer)
