"""Core data models for flush-batcher."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, PositiveFloat, PositiveInt

# ---------------------------------------------------------------------------
# Callback type aliases
# ---------------------------------------------------------------------------

Handler = Callable[[list[Any]], Awaitable[None] | None]
"""(items) → None, or an awaitable resolving to None

Called with one chunk of drained items, in submission order.
"""

ErrorObserver = Callable[[BaseException], None]
"""(error) → None

Receives handler failures. Its return value is ignored.
"""


# ---------------------------------------------------------------------------
# Flush state
# ---------------------------------------------------------------------------


class FlushState(str, Enum):
    """Coordinator state. At most one drain loop runs per batcher."""

    IDLE = "idle"
    FLUSHING = "flushing"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class BatcherOptions(BaseModel):
    """Construction-time configuration for a :class:`~flush_batcher.Batcher`.

    Immutable once built. Invalid values raise ``pydantic.ValidationError``.

    Attributes:
        interval_ms: Auto-flush cadence in milliseconds (default 500).
        batch_size: Maximum items per handler invocation. ``None`` delivers
            everything drained in a single call.
        on_error: Called with the exception whenever the handler fails.
            When unset, failures are logged.
        handler_timeout_ms: Optional upper bound on a single asynchronous
            handler invocation. A timed-out invocation is cancelled and
            reported as ``asyncio.TimeoutError``.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    interval_ms: PositiveFloat = 500
    batch_size: PositiveInt | None = None
    on_error: ErrorObserver | None = None
    handler_timeout_ms: PositiveFloat | None = None

    @property
    def interval_s(self) -> float:
        return self.interval_ms / 1000.0

    @property
    def handler_timeout_s(self) -> float | None:
        if self.handler_timeout_ms is None:
            return None
        return self.handler_timeout_ms / 1000.0


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


class BatcherStats(BaseModel):
    """Point-in-time delivery counters for one batcher."""

    flushes: int = 0
    """Drain passes that offered at least one chunk to the handler."""

    batches_delivered: int = 0
    """Handler invocations that completed without error."""

    items_delivered: int = 0
    """Items in successfully delivered chunks."""

    handler_errors: int = 0
    """Handler invocations that raised or timed out."""

    pending: int = 0
    """Items buffered at the time the snapshot was taken."""
