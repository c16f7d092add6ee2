"""Ring buffer storage used by every collector.

Provides bounded in-memory storage that automatically evicts oldest
entries when the buffer is full. Telemetry is intentionally lossy under
pressure, so memory use stays predictable.
"""

import threading
from collections import deque
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class BoundedBuffer(Generic[T]):
    """Fixed-capacity, insertion-ordered store with FIFO eviction.

    When the buffer is full, appending evicts the oldest item regardless
    of its content. Appends and reads are serialised by a lock so parallel
    writers can never overshoot capacity and readers always receive a
    consistent copy.

    Args:
        capacity: Maximum number of items to keep.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._buffer: deque[T] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._buffer)

    def append(self, item: T) -> None:
        """Add an item to the tail, evicting from the head if full."""
        with self._lock:
            self._buffer.append(item)

    def items(self) -> list[T]:
        """Return a copy of all items in insertion order (oldest first)."""
        with self._lock:
            return list(self._buffer)

    def snapshot(
        self,
        predicate: Callable[[T], bool] | None = None,
        limit: int | None = None,
    ) -> list[T]:
        """Return a copy ordered most-recent-first.

        Args:
            predicate: Optional filter applied before truncation.
            limit: Optional maximum number of items to return.

        Returns:
            New list, safe to iterate while writers keep appending.
        """
        with self._lock:
            newest_first = list(reversed(self._buffer))
        if predicate is not None:
            newest_first = [item for item in newest_first if predicate(item)]
        if limit is not None:
            newest_first = newest_first[: max(limit, 0)]
        return newest_first

    def clear(self) -> None:
        """Remove every item."""
        with self._lock:
            self._buffer.clear()
