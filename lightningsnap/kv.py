"""Key-value entries of a snapshot DBI."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from .wire import WireType, encode_tag, encode_varint, expect_wire_type, iter_fields

FIELD_KEY = 1
FIELD_VALUE = 2
FIELD_TIMESTAMP_NANO = 3
FIELD_FLAGS = 4

_UINT32_MASK = 0xFFFFFFFF


@dataclass
class KV:
    """A single key-value entry with its timestamp and flags."""

    key: bytes = b""
    value: bytes = b""
    timestamp_nano: int = 0
    flags: int = 0

    def marshal(self) -> bytes:
        """Encode the entry as a protobuf message; empty fields are omitted."""
        parts = []
        if self.key:
            parts += [
                encode_tag(FIELD_KEY, WireType.LENGTH_DELIMITED),
                encode_varint(len(self.key)),
                bytes(self.key),
            ]
        if self.value:
            parts += [
                encode_tag(FIELD_VALUE, WireType.LENGTH_DELIMITED),
                encode_varint(len(self.value)),
                bytes(self.value),
            ]
        if self.flags > 0:
            parts += [encode_tag(FIELD_FLAGS, WireType.VARINT), encode_varint(self.flags)]
        if self.timestamp_nano > 0:
            parts += [
                encode_tag(FIELD_TIMESTAMP_NANO, WireType.FIXED64),
                struct.pack("<Q", self.timestamp_nano),
            ]
        return b"".join(parts)


def unmarshal_kv(data) -> KV:
    """Decode a KV protobuf message; unknown fields are skipped."""
    kv = KV()
    for tag, wire_type, value in iter_fields(data):
        if tag in (FIELD_KEY, FIELD_VALUE):
            expect_wire_type(tag, wire_type, WireType.LENGTH_DELIMITED)
            if tag == FIELD_KEY:
                kv.key = value
            else:
                kv.value = value
        elif tag == FIELD_FLAGS:
            expect_wire_type(tag, wire_type, WireType.VARINT)
            kv.flags = value & _UINT32_MASK
        elif tag == FIELD_TIMESTAMP_NANO:
            expect_wire_type(tag, wire_type, WireType.FIXED64)
            kv.timestamp_nano = value
    return kv