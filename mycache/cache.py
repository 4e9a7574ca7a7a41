"""Thread-safe byte-bounded cache with optional write-through persistence."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from mycache.byteview import ByteView
from mycache.lru import LRUCache
from mycache.persistence import WriteSequence


@dataclass(frozen=True)
class CacheInfo:
    """Snapshot of a cache's fill level."""

    current_cache_bytes: int
    max_cache_bytes: int
    keys_num: int


class PersistenceDisabledError(RuntimeError):
    """Raised when an operation needs persistence but it is not enabled."""


class Cache:
    """An LRU cache guarded by a lock, optionally mirrored to an append-only log."""

    def __init__(
        self,
        cache_bytes: int,
        write_sequence: Optional[WriteSequence] = None,
        enable_persistence: bool = False,
    ) -> None:
        self.cache_bytes = cache_bytes
        self.write_sequence = write_sequence
        self.enable_persistence = enable_persistence
        self._lock = threading.RLock()
        self._lru = LRUCache(cache_bytes)

    @property
    def _persisting(self) -> bool:
        return self.enable_persistence and self.write_sequence is not None

    def load_persisted(self) -> None:
        """Fill the cache with every key held by the write sequence."""
        if self.write_sequence is None:
            return
        with self._lock:
            for key in self.write_sequence.keys():
                try:
                    value = self.write_sequence.get(key)
                except (KeyError, ValueError, OSError, EOFError):
                    continue
                self._lru.add(key, ByteView(bytes(value)))

    def add(self, key: str, value: ByteView) -> None:
        """Store ``value`` under ``key``; empty keys are ignored."""
        if not key:
            return
        with self._lock:
            if self._persisting:
                self.write_sequence.put(key, value.byte_slice())
            self._lru.add(key, value)

    def get(self, key: str) -> Optional[ByteView]:
        """Return the cached view for ``key``, or None on a miss."""
        with self._lock:
            return self._lru.get(key)

    def info(self) -> CacheInfo:
        """Report current size, capacity and number of keys."""
        with self._lock:
            return CacheInfo(
                current_cache_bytes=self._lru.used_bytes,
                max_cache_bytes=self.cache_bytes,
                keys_num=len(self._lru),
            )

    def delete(self, key: str) -> None:
        """Remove ``key`` from the cache and, if persisting, from the log."""
        with self._lock:
            if self._persisting:
                self.write_sequence.delete(key)
            self._lru.remove(key)

    def backup(self) -> str:
        """Compact the log and copy it to a timestamped file; return its path."""
        with self._lock:
            if not self._persisting:
                raise PersistenceDisabledError("backup failed, persistence is not enabled")
            self.write_sequence.merge()
            return self.write_sequence.backup()