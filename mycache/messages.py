"""Wire messages exchanged between cache nodes, in protocol-buffer encoding."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

_VARINT = 0
_FIXED64 = 1
_LENGTH_DELIMITED = 2
_FIXED32 = 5

_UINT64 = 1 << 64


class DecodeError(ValueError):
    """Raised when bytes are not a valid encoding of a message."""


def _encode_varint(value: int) -> bytes:
    if value < 0:
        value += _UINT64
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _decode_varint(data: bytes, pos: int) -> tuple[int, int]:
    result = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise DecodeError("truncated varint")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result & (_UINT64 - 1), pos
        shift += 7
        if shift >= 70:
            raise DecodeError("varint too long")


def _tag(field: int, wire_type: int) -> bytes:
    return _encode_varint((field << 3) | wire_type)


def _bytes_field(field: int, value: bytes) -> bytes:
    if not value:
        return b""
    return _tag(field, _LENGTH_DELIMITED) + _encode_varint(len(value)) + value


def _int_field(field: int, value: int) -> bytes:
    if not value:
        return b""
    return _tag(field, _VARINT) + _encode_varint(value)


def _iter_fields(data: bytes) -> Iterator[tuple[int, int, object]]:
    pos = 0
    while pos < len(data):
        key, pos = _decode_varint(data, pos)
        field, wire_type = key >> 3, key & 0x7
        if field == 0:
            raise DecodeError("invalid field number 0")
        if wire_type == _VARINT:
            value, pos = _decode_varint(data, pos)
            yield field, wire_type, value
        elif wire_type == _LENGTH_DELIMITED:
            length, pos = _decode_varint(data, pos)
            end = pos + length
            if end > len(data):
                raise DecodeError("truncated length-delimited field")
            yield field, wire_type, data[pos:end]
            pos = end
        elif wire_type in (_FIXED64, _FIXED32):
            size = 8 if wire_type == _FIXED64 else 4
            if pos + size > len(data):
                raise DecodeError("truncated fixed-width field")
            yield field, wire_type, data[pos:pos + size]
            pos += size
        else:
            raise DecodeError(f"unsupported wire type {wire_type}")


def _expect(wire_type: int, expected: int, field: int) -> None:
    if wire_type != expected:
        raise DecodeError(f"field {field} has wire type {wire_type}, expected {expected}")


def _as_str(raw: object) -> str:
    try:
        return bytes(raw).decode("utf-8")  # type: ignore[arg-type]
    except UnicodeDecodeError as exc:
        raise DecodeError("invalid UTF-8 in string field") from exc


def _as_int64(raw: object) -> int:
    value = int(raw)  # type: ignore[arg-type]
    return value - _UINT64 if value >= 1 << 63 else value


@dataclass
class Request:
    """Asks a peer for one key of one group."""

    group: str = ""
    key: str = ""

    def encode(self) -> bytes:
        return _bytes_field(1, self.group.encode("utf-8")) + _bytes_field(2, self.key.encode("utf-8"))

    @classmethod
    def decode(cls, data: bytes) -> "Request":
        msg = cls()
        for field, wire_type, raw in _iter_fields(data):
            if field == 1:
                _expect(wire_type, _LENGTH_DELIMITED, field)
                msg.group = _as_str(raw)
            elif field == 2:
                _expect(wire_type, _LENGTH_DELIMITED, field)
                msg.key = _as_str(raw)
        return msg


@dataclass
class KVResponse:
    """Carries the value stored for a key."""

    value: bytes = b""

    def encode(self) -> bytes:
        return _bytes_field(1, self.value)

    @classmethod
    def decode(cls, data: bytes) -> "KVResponse":
        msg = cls()
        for field, wire_type, raw in _iter_fields(data):
            if field == 1:
                _expect(wire_type, _LENGTH_DELIMITED, field)
                msg.value = bytes(raw)  # type: ignore[arg-type]
        return msg


@dataclass
class InfoResponse:
    """Reports the size and fill level of a group's cache."""

    keys_num: int = 0
    current_used_bytes: int = 0
    max_used_bytes: int = 0

    def encode(self) -> bytes:
        return (
            _int_field(1, self.keys_num)
            + _int_field(2, self.current_used_bytes)
            + _int_field(3, self.max_used_bytes)
        )

    @classmethod
    def decode(cls, data: bytes) -> "InfoResponse":
        msg = cls()
        for field, wire_type, raw in _iter_fields(data):
            if field in (1, 2, 3):
                _expect(wire_type, _VARINT, field)
                value = _as_int64(raw)
                if field == 1:
                    msg.keys_num = value
                elif field == 2:
                    msg.current_used_bytes = value
                else:
                    msg.max_used_bytes = value
        return msg