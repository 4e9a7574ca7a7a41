"""Immutable view over a cached value."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ByteView:
    """A read-only snapshot of cached bytes.

    Any kind of payload (text, images, serialized objects) is held as raw bytes.
    Two views are equal when their bytes are equal.
    """

    data: bytes = b""

    def __post_init__(self) -> None:
        if not isinstance(self.data, bytes):
            object.__setattr__(self, "data", bytes(self.data))

    def byte_slice(self) -> bytes:
        """Return a copy of the underlying bytes."""
        return bytes(self.data)

    def __len__(self) -> int:
        return len(self.data)

    def __str__(self) -> str:
        return self.data.decode("utf-8", errors="surrogateescape")