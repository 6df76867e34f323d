"""Bounded record of recently edited files.

The host records an entry on every file-edit event; the recency retriever
reads a snapshot. Reads and writes may come from different threads.
"""

import threading
import time
from collections import OrderedDict


class RecentEditCache:
    """Insertion-ordered map of file identifier to last edit time.

    Iteration order is most-recently-edited first. When full, recording a new
    file evicts the least recently edited one.

    Attributes:
        capacity: Maximum number of files remembered.
    """

    def __init__(self, capacity: int = 100) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._entries: OrderedDict[str, float] = OrderedDict()
        self._lock = threading.Lock()

    def record(self, filepath: str, edited_at: float | None = None) -> None:
        """Mark ``filepath`` as the most recently edited file."""
        with self._lock:
            self._entries[filepath] = time.time() if edited_at is None else edited_at
            self._entries.move_to_end(filepath)
            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)

    def discard(self, filepath: str) -> None:
        """Forget ``filepath``, e.g. after it was deleted or closed."""
        with self._lock:
            self._entries.pop(filepath, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self, limit: int | None = None) -> list[str]:
        """Snapshot of file identifiers, most recent first.

        Args:
            limit: Optional maximum number of identifiers returned.
        """
        with self._lock:
            ordered = list(reversed(self._entries))
        return ordered if limit is None else ordered[:limit]

    def last_edited(self, filepath: str) -> float | None:
        with self._lock:
            return self._entries.get(filepath)

    def __contains__(self, filepath: object) -> bool:
        with self._lock:
            return filepath in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
