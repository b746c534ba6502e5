"""Protocol buffer wire-format primitives used by the snapshot codec."""

from __future__ import annotations

import struct
from enum import IntEnum
from typing import Iterator, Tuple, Union

Buffer = Union[bytes, bytearray, memoryview]

MASK64 = (1 << 64) - 1
_MAX_VARINT_LEN = 10


class WireType(IntEnum):
    """Protocol buffer wire types."""

    VARINT = 0
    FIXED64 = 1
    LENGTH_DELIMITED = 2
    START_GROUP = 3
    END_GROUP = 4
    FIXED32 = 5


class DecodeError(ValueError):
    """Raised when protobuf data cannot be decoded."""


def _wire_type_name(wire_type: int) -> str:
    try:
        return WireType(wire_type).name
    except ValueError:
        return str(int(wire_type))


class UnexpectedWireTypeError(DecodeError):
    """A field was encoded with a different wire type than expected."""

    def __init__(self, tag: int, wire_type: int, expected: int) -> None:
        self.tag = tag
        self.wire_type = wire_type
        self.expected = expected
        super().__init__(
            f"unexpected wiretype for tag {tag}: "
            f"got {_wire_type_name(wire_type)}, expected {_wire_type_name(expected)}"
        )


def encode_varint(value: int) -> bytes:
    """Encode an unsigned 64-bit integer as a varint."""
    if value < 0 or value > MASK64:
        raise ValueError(f"varint value out of range: {value}")
    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def decode_varint(data: Buffer, offset: int = 0) -> Tuple[int, int]:
    """Decode a varint at ``offset``; return the value and the offset after it."""
    chunk = data[offset:offset + _MAX_VARINT_LEN]
    result = 0
    for index, byte in enumerate(chunk):
        result |= (byte & 0x7F) << (7 * index)
        if byte < 0x80:
            return result & MASK64, offset + index + 1
    if len(chunk) == _MAX_VARINT_LEN:
        raise DecodeError("varint overflows 64 bits")
    raise DecodeError("unexpected end of data in varint")


def encode_tag(tag: int, wire_type: int) -> bytes:
    """Encode a field key for ``tag`` with the given wire type."""
    if tag < 0:
        raise ValueError(f"invalid field tag: {tag}")
    return encode_varint((tag << 3) | int(wire_type))


def expect_wire_type(tag: int, got: int, expected: int) -> None:
    """Raise UnexpectedWireTypeError unless ``got`` equals ``expected``."""
    if got != expected:
        raise UnexpectedWireTypeError(tag, got, expected)


def skip_field(data: Buffer, offset: int, wire_type: int) -> int:
    """Skip the value of a field starting at ``offset``; return the new offset."""
    if wire_type == WireType.VARINT:
        _, end = decode_varint(data, offset)
    elif wire_type == WireType.LENGTH_DELIMITED:
        size, start = decode_varint(data, offset)
        end = start + size
    elif wire_type == WireType.FIXED32:
        end = offset + 4
    elif wire_type == WireType.FIXED64:
        end = offset + 8
    else:
        raise DecodeError(f"unsupported wire type: {_wire_type_name(wire_type)}")
    if end > len(data):
        raise DecodeError("unexpected end of data")
    return end


def _read_fixed(data: Buffer, offset: int, width: int) -> int:
    if len(data) - offset < width:
        raise DecodeError(f"remaining data too short for fixed{width * 8}")
    return struct.unpack_from("<Q" if width == 8 else "<I", data, offset)[0]


def iter_fields(data: Buffer) -> Iterator[Tuple[int, WireType, Union[int, bytes]]]:
    """Yield ``(tag, wire_type, value)`` for every field in a message.

    Varint and fixed values are ints, length-delimited values are bytes.
    """
    offset = 0
    end = len(data)
    while offset < end:
        key, offset = decode_varint(data, offset)
        tag, wire_type = key >> 3, key & 0x7
        value: Union[int, bytes]
        if wire_type == WireType.VARINT:
            value, offset = decode_varint(data, offset)
        elif wire_type == WireType.FIXED64:
            value = _read_fixed(data, offset, 8)
            offset += 8
        elif wire_type == WireType.FIXED32:
            value = _read_fixed(data, offset, 4)
            offset += 4
        elif wire_type == WireType.LENGTH_DELIMITED:
            size, offset = decode_varint(data, offset)
            if end - offset < size:
                raise DecodeError("remaining data too short for indicated size")
            value = bytes(data[offset:offset + size])
            offset += size
        else:
            raise DecodeError(f"unsupported wire type: {_wire_type_name(wire_type)}")
        yield tag, WireType(wire_type), value