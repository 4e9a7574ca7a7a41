"""Append-only on-disk log of cache writes, with an in-memory key index."""

from __future__ import annotations

import logging
import os
import shutil
import struct
import threading
import time
from contextlib import suppress
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Union

logger = logging.getLogger(__name__)

_HEADER = struct.Struct(">IIIQ")
HEADER_SIZE = _HEADER.size  # key size, value size, mark (u32 each) + timestamp (u64)

DATA_FILE_NAME = "append.data"
MERGE_FILE_NAME = "append.data.merge"
DATA_BACKUP_FILE_NAME = "append.data.bak"

KeyLike = Union[str, bytes]


class Mark(IntEnum):
    """Kind of operation a log entry records."""

    PUT = 0
    DEL = 1


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _key_bytes(key: KeyLike) -> bytes:
    if isinstance(key, str):
        return key.encode("utf-8", errors="surrogateescape")
    return bytes(key)


def _key_str(key: bytes) -> str:
    return key.decode("utf-8", errors="surrogateescape")


def _to_mark(raw: int) -> Union[Mark, int]:
    try:
        return Mark(raw)
    except ValueError:
        return raw


@dataclass
class Entry:
    """One record of the log: a header followed by the key and value bytes."""

    key: bytes = b""
    value: bytes = b""
    mark: Union[Mark, int] = Mark.PUT
    timestamp: int = 0
    key_size: Optional[int] = None
    value_size: Optional[int] = None

    def __post_init__(self) -> None:
        if self.key_size is None:
            self.key_size = len(self.key)
        if self.value_size is None:
            self.value_size = len(self.value)

    def size(self) -> int:
        """Total encoded length in bytes."""
        return HEADER_SIZE + self.key_size + self.value_size

    def encode(self) -> bytes:
        """Serialize the entry as big-endian header, key and value."""
        header = _HEADER.pack(self.key_size, self.value_size, int(self.mark), self.timestamp)
        return header + self.key[: self.key_size] + self.value[: self.value_size]


def decode_header(data: bytes) -> Entry:
    """Decode a header into an entry whose key and value are still empty."""
    if len(data) < HEADER_SIZE:
        raise ValueError("invalid data")
    key_size, value_size, mark, timestamp = _HEADER.unpack_from(data)
    return Entry(
        mark=_to_mark(mark),
        timestamp=timestamp,
        key_size=key_size,
        value_size=value_size,
    )


class DataFile:
    """A log file that is appended to and read at arbitrary offsets."""

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        self.path = os.fspath(path)
        logger.debug("opening %s", self.path)
        flags = os.O_CREAT | os.O_RDWR | getattr(os, "O_BINARY", 0)
        fd = os.open(self.path, flags, 0o644)
        self._file = os.fdopen(fd, "r+b", buffering=0)
        self._offset = os.fstat(fd).st_size
        self._lock = threading.RLock()

    @property
    def offset(self) -> int:
        """Offset at which the next entry will be written."""
        return self._offset

    def write(self, entry: Entry) -> int:
        """Append ``entry`` and return the offset it was written at."""
        data = entry.encode()
        with self._lock:
            offset = self._offset
            self._file.seek(offset)
            view = memoryview(data)
            while view:
                written = self._file.write(view)
                view = view[written:]
            self._offset += entry.size()
            return offset

    def _read_exact(self, offset: int, size: int) -> bytes:
        self._file.seek(offset)
        chunks = []
        remaining = size
        while remaining > 0:
            chunk = self._file.read(remaining)
            if not chunk:
                raise EOFError(f"unexpected end of file at offset {offset}")
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def read(self, offset: int) -> Entry:
        """Read the entry stored at ``offset``; raise EOFError past the end."""
        with self._lock:
            entry = decode_header(self._read_exact(offset, HEADER_SIZE))
            entry.key = self._read_exact(offset + HEADER_SIZE, entry.key_size)
            entry.value = self._read_exact(offset + HEADER_SIZE + entry.key_size, entry.value_size)
            return entry

    def close(self) -> None:
        self._file.close()

    def __enter__(self) -> "DataFile":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_data_file(path: Union[str, os.PathLike], file_name: str = "") -> DataFile:
    """Open ``file_name`` (the standard data file if empty) inside ``path``."""
    return DataFile(os.path.join(path, file_name or DATA_FILE_NAME))


def open_merge_file(path: Union[str, os.PathLike]) -> DataFile:
    """Open the temporary file used while compacting the log in ``path``."""
    return DataFile(os.path.join(path, MERGE_FILE_NAME))


class WriteSequence:
    """Persists key/value writes sequentially to a log file in a directory.

    If ``backup_file`` names a file other than the directory's data file, its
    contents are copied in as the data file first; an existing data file is
    kept aside under a timestamped name.
    """

    def __init__(self, dir_path: Union[str, os.PathLike], backup_file: Union[str, os.PathLike] = "") -> None:
        os.makedirs(dir_path, exist_ok=True)
        self.data_path = os.path.abspath(dir_path)
        if backup_file:
            self._restore_from(os.path.abspath(backup_file))
        self._lock = threading.RLock()
        self._file = open_data_file(self.data_path)
        self._index: dict[str, int] = {}
        try:
            self._load_index()
        except BaseException:
            self._file.close()
            raise

    def _restore_from(self, backup_abs: str) -> None:
        data_file_abs = os.path.join(self.data_path, DATA_FILE_NAME)
        if data_file_abs == backup_abs:
            return
        logger.debug("restoring %s from %s", data_file_abs, backup_abs)
        with open(backup_abs, "rb") as source:
            if os.path.exists(data_file_abs):
                os.rename(data_file_abs, f"{data_file_abs}.temp.{_now_ms()}")
            with open(data_file_abs, "wb") as target:
                shutil.copyfileobj(source, target)

    def _load_index(self) -> None:
        offset = 0
        while offset != self._file.offset:
            try:
                entry = self._file.read(offset)
            except EOFError:
                break
            key = _key_str(entry.key)
            if entry.mark == Mark.DEL:
                self._index.pop(key, None)
            else:
                self._index[key] = offset
            offset += entry.size()

    def put(self, key: KeyLike, value: bytes) -> None:
        """Append a write of ``value`` under ``key``."""
        raw_key = _key_bytes(key)
        entry = Entry(raw_key, bytes(value), Mark.PUT, _now_ms())
        with self._lock:
            offset = self._file.write(entry)
            self._index[_key_str(raw_key)] = offset

    def offset_of(self, key: KeyLike) -> Optional[int]:
        """Return the log offset of ``key``'s latest value, or None."""
        return self._index.get(_key_str(_key_bytes(key)))

    def get(self, key: KeyLike) -> bytes:
        """Return the stored value; KeyError if absent, ValueError if ``key`` is empty."""
        if not key:
            raise ValueError("key is nil")
        with self._lock:
            offset = self.offset_of(key)
            if offset is None:
                raise KeyError(key)
            return self._file.read(offset).value

    def delete(self, key: KeyLike) -> None:
        """Record a deletion of ``key`` if it is present."""
        if not key:
            raise ValueError("key is nil")
        raw_key = _key_bytes(key)
        with self._lock:
            if self.offset_of(raw_key) is None:
                return
            self._file.write(Entry(raw_key, b"", Mark.DEL, _now_ms()))
            del self._index[_key_str(raw_key)]

    def merge(self) -> None:
        """Rewrite the log so that it holds only the live entries."""
        with self._lock:
            if self._file.offset == 0:
                return
            merge_file = open_merge_file(self.data_path)
            try:
                new_index: dict[str, int] = {}
                try:
                    for key, offset in self._index.items():
                        new_index[key] = merge_file.write(self._file.read(offset))
                finally:
                    merge_file.close()

                data_file_path = self._file.path
                backup_path = os.path.join(self.data_path, DATA_BACKUP_FILE_NAME)
                self._file.close()
                os.replace(data_file_path, backup_path)
                os.replace(merge_file.path, data_file_path)
                try:
                    new_file = open_data_file(self.data_path)
                except OSError:
                    os.replace(backup_path, data_file_path)
                    self._file = open_data_file(self.data_path)
                    raise
                self._file = new_file
                self._index = new_index
                os.remove(backup_path)
            finally:
                with suppress(FileNotFoundError):
                    os.remove(merge_file.path)

    def backup(self, backup_file_name: Union[str, os.PathLike] = "") -> str:
        """Copy the log to ``backup_file_name`` (a timestamped name by default); return its path."""
        if not backup_file_name:
            backup_file_name = os.path.join(self.data_path, f"{DATA_FILE_NAME}.{_now_ms()}")
        target = os.fspath(backup_file_name)
        with self._lock:
            shutil.copyfile(self._file.path, target)
        logger.debug("backup written to %s", target)
        return target

    def keys(self) -> list[str]:
        """Keys that currently hold a value."""
        with self._lock:
            return list(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def close(self) -> None:
        self._file.close()

    def __enter__(self) -> "WriteSequence":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()