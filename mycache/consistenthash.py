"""Consistent hashing ring with virtual nodes."""

from __future__ import annotations

import bisect
import zlib
from typing import Callable, Optional

HashFunc = Callable[[bytes], int]


class HashRing:
    """Maps keys to node names; each node is placed ``replicas`` times on the ring.

    The default hash is CRC-32 (IEEE).
    """

    def __init__(self, replicas: int, hash_fn: Optional[HashFunc] = None) -> None:
        self.replicas = replicas
        self._hash: HashFunc = hash_fn if hash_fn is not None else zlib.crc32
        self._ring: list[int] = []
        self._nodes: dict[int, str] = {}

    def add(self, *args: str) -> None:
        """Place each named node on the ring."""
        for node in args:
            for i in range(self.replicas):
                point = self._hash(f"{i}{node}".encode("utf-8"))
                self._ring.append(point)
                self._nodes[point] = node
        self._ring.sort()

    def get(self, key: str) -> Optional[str]:
        """Return the node responsible for ``key``, or None if the ring is empty."""
        if not self._ring:
            return None
        point = self._hash(key.encode("utf-8"))
        idx = bisect.bisect_left(self._ring, point)
        return self._nodes[self._ring[idx % len(self._ring)]]