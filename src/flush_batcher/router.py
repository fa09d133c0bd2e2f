"""Batcher router: a registry for multiple independent batchers.

Lets one process run several batchers (e.g. one per downstream sink),
each with its own buffer, handler and timer, and flush or close them
together.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flush_batcher.batching import Batcher

logger = logging.getLogger("flush_batcher.router")


class BatcherRouter:
    """Registry of named batchers.

    Example::

        router = BatcherRouter()
        router.register("events", events_batcher)
        router.register("metrics", metrics_batcher)
        ...
        await router.close_all()
    """

    def __init__(self) -> None:
        self._batchers: dict[str, Batcher] = {}

    def register(self, name: str, batcher: Batcher) -> None:
        """Register a batcher under a name."""
        if name in self._batchers:
            logger.warning("Overwriting existing batcher: %s", name)
        self._batchers[name] = batcher
        logger.info("Batcher registered: %s", name)

    def unregister(self, name: str) -> Batcher | None:
        """Remove a batcher by name. Returns it, or None if unknown.

        The batcher itself is left running; close it separately.
        """
        return self._batchers.pop(name, None)

    def get(self, name: str) -> Batcher | None:
        """Get a registered batcher by name."""
        return self._batchers.get(name)

    def has(self, name: str) -> bool:
        return name in self._batchers

    def list(self) -> list[str]:
        """List registered batcher names."""
        return list(self._batchers.keys())

    async def flush_all(self) -> None:
        """Flush every registered batcher, one after another."""
        for name, batcher in self._batchers.items():
            logger.debug("Flushing batcher: %s", name)
            await batcher.flush()

    async def close_all(self) -> None:
        """Close every registered batcher, delivering what is left."""
        for name, batcher in self._batchers.items():
            logger.info("Closing batcher: %s", name)
            await batcher.close()
