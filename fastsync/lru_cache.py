"""Thread-safe least-recently-used cache keyed by block number."""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Any, Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class LRUCache(Generic[K, V]):
    """A fixed-capacity cache that evicts the least recently used entry."""

    def __init__(self, capacity: int) -> None:
        self._capacity = capacity
        self._entries: OrderedDict[K, V] = OrderedDict()
        self._lock = threading.Lock()
        self._closed = False

    def get(self, key: K) -> V | None:
        """Return the value for ``key`` and mark it most recently used, or None."""
        with self._lock:
            if key not in self._entries:
                return None
            self._entries.move_to_end(key)
            return self._entries[key]

    def put(self, key: K, value: V) -> None:
        """Insert or replace ``key``, evicting the least recently used entry if full."""
        with self._lock:
            if self._closed:
                raise RuntimeError("cache is closed")
            self._entries.pop(key, None)
            if len(self._entries) >= self._capacity and self._entries:
                self._entries.popitem(last=False)
            self._entries[key] = value

    def remove(self, key: K) -> None:
        """Drop ``key`` if present."""
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def capacity_left(self) -> int:
        """Return how many more entries fit before eviction starts."""
        with self._lock:
            return self._capacity - len(self._entries)

    def keys(self) -> list[K]:
        """Return the cached keys, least recently used first."""
        with self._lock:
            return list(self._entries)

    def close(self) -> None:
        """Release all entries; further inserts are refused."""
        with self._lock:
            self._entries.clear()
            self._closed = True

    def __enter__(self) -> "LRUCache[K, V]":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()