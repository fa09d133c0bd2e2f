"""FIFO item buffer.

Holds items awaiting delivery. The only way items leave the buffer
(other than ``clear``) is ``drain``, which atomically removes a prefix.
Appends and drains are guarded by a lock so producers on worker
threads can ``add`` while the event loop drains.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import Generic, TypeVar

T = TypeVar("T")


class ItemBuffer(Generic[T]):
    """Ordered, append-only buffer with atomic prefix removal."""

    def __init__(self) -> None:
        self._items: list[T] = []
        self._lock = threading.Lock()

    def add(self, item: T) -> None:
        """Append one item."""
        with self._lock:
            self._items.append(item)

    def add_many(self, items: Iterable[T]) -> None:
        """Append several items, keeping their relative order."""
        items = list(items)
        with self._lock:
            self._items.extend(items)

    def snapshot(self) -> list[T]:
        """Return a copy of the current contents."""
        with self._lock:
            return list(self._items)

    def drain(self, limit: int | None = None) -> list[T]:
        """Remove and return the first ``limit`` items (all if ``limit`` is None).

        A ``limit`` larger than the buffer returns everything.
        """
        with self._lock:
            if limit is None or limit >= len(self._items):
                drained, self._items = self._items, []
            else:
                drained = self._items[:limit]
                del self._items[:limit]
            return drained

    def clear(self) -> int:
        """Discard all items. Returns how many were dropped."""
        with self._lock:
            dropped = len(self._items)
            self._items = []
            return dropped

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)
