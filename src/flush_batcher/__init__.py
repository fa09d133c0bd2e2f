"""flush-batcher: Collect items in memory and deliver them in ordered bulk batches."""

from flush_batcher.batching import Batcher
from flush_batcher.buffer import ItemBuffer
from flush_batcher.models import (
    BatcherOptions,
    BatcherStats,
    ErrorObserver,
    FlushState,
    Handler,
)
from flush_batcher.router import BatcherRouter
from flush_batcher.timer import AutoFlushTimer

__all__ = [
    # Core
    "Batcher",
    "BatcherOptions",
    "BatcherStats",
    "FlushState",
    # Callback types
    "Handler",
    "ErrorObserver",
    # Building blocks
    "ItemBuffer",
    "AutoFlushTimer",
    # Multiple batchers
    "BatcherRouter",
]
