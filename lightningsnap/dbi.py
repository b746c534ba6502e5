"""Streaming encoder and decoder for the entries of a single DBI.

A DBI keeps its protobuf encoding as one growing buffer. Entries are
appended to that buffer directly and decoded lazily while iterating, so
millions of entries never exist as separate objects at the same time.
The top-level fields (name, flags, transform) can only be set before
they are flushed, which happens when entries are written after setting
them or when the encoding is requested. A DBI loaded from existing data
has read-only top-level fields.
"""

from __future__ import annotations

from typing import Callable, Iterator, List

from .kv import KV, unmarshal_kv
from .wire import (
    DecodeError,
    WireType,
    decode_varint,
    encode_tag,
    encode_varint,
    expect_wire_type,
    skip_field,
)

FIELD_NAME = 1
FIELD_ENTRIES = 2
FIELD_FLAGS = 3
FIELD_TRANSFORM = 4


class FieldsFlushedError(RuntimeError):
    """Raised when a top-level DBI field is changed after it was flushed."""


def _encode_str(value: str) -> bytes:
    return value.encode("utf-8", "surrogateescape")


def _decode_str(raw) -> str:
    return bytes(raw).decode("utf-8", "surrogateescape")


class DBI:
    """The protobuf contents of one DBI, written and read as a stream."""

    def __init__(self, size_hint: int = 0) -> None:
        """Create an empty DBI; ``size_hint`` is the expected encoded size."""
        if size_hint < 0:
            raise ValueError(f"negative size hint: {size_hint}")
        self._name = ""
        self._flags = 0
        self._transform = ""
        self._data = bytearray()
        self._dirty = False
        self._flushed = False
        self._cursor = 0

    def _check_writable(self) -> None:
        if self._flushed:
            raise FieldsFlushedError("not allowed after fields have been flushed")

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        self._check_writable()
        self._name = value
        self._dirty = True

    @property
    def flags(self) -> int:
        return self._flags

    @flags.setter
    def flags(self, value: int) -> None:
        self._check_writable()
        self._flags = value
        self._dirty = True

    @property
    def transform(self) -> str:
        return self._transform

    @transform.setter
    def transform(self, value: str) -> None:
        self._check_writable()
        self._transform = value
        self._dirty = True

    def _flush_fields(self) -> None:
        self._flushed = True
        if not self._dirty:
            return
        self._dirty = False
        name = _encode_str(self._name)
        if name:
            self._data += encode_tag(FIELD_NAME, WireType.LENGTH_DELIMITED)
            self._data += encode_varint(len(name))
            self._data += name
        if self._flags > 0:
            self._data += encode_tag(FIELD_FLAGS, WireType.VARINT)
            self._data += encode_varint(self._flags)
        transform = _encode_str(self._transform)
        if transform:
            self._data += encode_tag(FIELD_TRANSFORM, WireType.LENGTH_DELIMITED)
            self._data += encode_varint(len(transform))
            self._data += transform

    def marshal(self) -> bytes:
        """Return the encoded DBI; top-level fields become read-only."""
        self._flush_fields()
        return bytes(self._data)

    def size(self) -> int:
        """Return the encoded size; top-level fields become read-only."""
        self._flush_fields()
        return len(self._data)

    def reset_cursor(self) -> None:
        """Restart reading entries from the beginning."""
        self._cursor = 0

    def __iter__(self) -> Iterator[KV]:
        return self

    def __next__(self) -> KV:
        """Decode the next entry, skipping other fields."""
        data = self._data
        offset = self._cursor
        while True:
            if offset >= len(data):
                raise StopIteration
            key, offset = decode_varint(data, offset)
            tag, wire_type = key >> 3, key & 0x7
            if tag == FIELD_ENTRIES:
                break
            offset = skip_field(data, offset, wire_type)

        expect_wire_type(tag, wire_type, WireType.LENGTH_DELIMITED)
        size, offset = decode_varint(data, offset)
        end = offset + size
        if end > len(data):
            raise DecodeError("remaining data too short for indicated size")
        self._cursor = end
        return unmarshal_kv(bytes(data[offset:end]))

    def _index(self, data) -> None:
        """Read the top-level fields, leaving the entries in place."""
        self._flushed = True
        offset = 0
        while offset < len(data):
            key, offset = decode_varint(data, offset)
            tag, wire_type = key >> 3, key & 0x7
            if tag in (FIELD_ENTRIES, FIELD_NAME, FIELD_TRANSFORM):
                expect_wire_type(tag, wire_type, WireType.LENGTH_DELIMITED)
                size, start = decode_varint(data, offset)
                offset = start + size
                if offset > len(data):
                    raise DecodeError("remaining data too short for indicated size")
                if tag == FIELD_NAME:
                    self._name = _decode_str(data[start:offset])
                elif tag == FIELD_TRANSFORM:
                    self._transform = _decode_str(data[start:offset])
            elif tag == FIELD_FLAGS:
                expect_wire_type(tag, wire_type, WireType.VARINT)
                self._flags, offset = decode_varint(data, offset)
            else:
                offset = skip_field(data, offset, wire_type)

    def append(self, kv: KV) -> None:
        """Append an entry; empty entries are not written."""
        if self._dirty:
            self._flush_fields()
        message = kv.marshal()
        if not message:
            return
        self._data += encode_tag(FIELD_ENTRIES, WireType.LENGTH_DELIMITED)
        self._data += encode_varint(len(message))
        self._data += message

    def map(self, transform: str, func: Callable[[KV], KV]) -> "DBI":
        """Return a new DBI with every entry passed through ``func``."""
        result = DBI(size_hint=len(self._data))
        result.name = self._name
        result.flags = self._flags
        result.transform = transform
        self.reset_cursor()
        for kv in self:
            result.append(func(kv))
        return result

    def kv_list(self) -> List[KV]:
        """Return all entries as a list, reading from the start."""
        self.reset_cursor()
        return list(self)


def dbi_from_data(data) -> DBI:
    """Load a DBI from its protobuf encoding; its top-level fields are read-only."""
    dbi = DBI()
    dbi._index(data)
    dbi._data = bytearray(data)
    return dbi