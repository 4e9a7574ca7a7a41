"""Least-recently-used cache bounded by total byte size."""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Callable, Optional

EvictionCallback = Callable[[str, Any], None]


def _entry_size(key: str, value: Any) -> int:
    return len(key.encode("utf-8")) + len(value)


class LRUCache:
    """A non-thread-safe LRU cache whose capacity is measured in bytes.

    Values must support ``len()``. A ``max_bytes`` of 0 means no limit.
    """

    def __init__(self, max_bytes: int = 0, on_evicted: Optional[EvictionCallback] = None) -> None:
        self._max_bytes = max_bytes
        self._used_bytes = 0
        # Ordered from least to most recently used.
        self._entries: OrderedDict[str, Any] = OrderedDict()
        self.on_evicted = on_evicted

    def get(self, key: str) -> Any:
        """Return the value for ``key`` and mark it as recently used, or None on a miss."""
        try:
            value = self._entries[key]
        except KeyError:
            return None
        self._entries.move_to_end(key)
        return value

    def add(self, key: str, value: Any) -> bool:
        """Insert or replace ``key``; return False if the entry alone exceeds the limit."""
        if self._max_bytes > 0 and _entry_size(key, value) > self._max_bytes:
            return False
        if key in self._entries:
            old = self._entries[key]
            self._entries.move_to_end(key)
            self._used_bytes += len(value) - len(old)
            self._entries[key] = value
        else:
            self._entries[key] = value
            self._used_bytes += _entry_size(key, value)
        while self._max_bytes > 0 and self._used_bytes > self._max_bytes:
            self.remove_oldest()
        return True

    def _evict(self, key: str, value: Any) -> None:
        self._used_bytes -= _entry_size(key, value)
        if self.on_evicted is not None:
            self.on_evicted(key, value)

    def remove_oldest(self) -> None:
        """Drop the least recently used entry, if any."""
        if not self._entries:
            return
        key, value = self._entries.popitem(last=False)
        self._evict(key, value)

    def remove(self, key: str) -> None:
        """Drop ``key`` if present."""
        if not key or key not in self._entries:
            return
        value = self._entries.pop(key)
        self._evict(key, value)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    @property
    def used_bytes(self) -> int:
        """Bytes currently held by keys and values."""
        return self._used_bytes

    @property
    def max_bytes(self) -> int:
        """Configured capacity in bytes (0 for unlimited)."""
        return self._max_bytes