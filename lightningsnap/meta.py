"""Snapshot metadata message."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from .wire import WireType, encode_tag, encode_varint, expect_wire_type, iter_fields

FIELD_GENERATION_ID = 1
FIELD_INSTANCE_ID = 2
FIELD_HOSTNAME = 3
FIELD_LMDB_TXN_ID = 4
FIELD_TIMESTAMP_NANO = 5
FIELD_DATABASE_NAME = 7

_STRING_FIELDS = {
    FIELD_GENERATION_ID: "generation_id",
    FIELD_INSTANCE_ID: "instance_id",
    FIELD_HOSTNAME: "hostname",
    FIELD_DATABASE_NAME: "database_name",
}


def _to_int64(value: int) -> int:
    return value - (1 << 64) if value >= (1 << 63) else value


@dataclass
class Meta:
    """Information about who made a snapshot and when."""

    generation_id: str = ""
    instance_id: str = ""
    hostname: str = ""
    lmdb_txn_id: int = 0
    timestamp_nano: int = 0
    database_name: str = ""

    def marshal(self) -> bytes:
        """Encode as a protobuf message; empty and zero fields are omitted."""
        parts = []
        for tag, attr in _STRING_FIELDS.items():
            raw = getattr(self, attr).encode("utf-8", "surrogateescape")
            if raw:
                parts += [
                    encode_tag(tag, WireType.LENGTH_DELIMITED),
                    encode_varint(len(raw)),
                    raw,
                ]
        if self.lmdb_txn_id > 0:
            parts += [
                encode_tag(FIELD_LMDB_TXN_ID, WireType.VARINT),
                encode_varint(self.lmdb_txn_id),
            ]
        if self.timestamp_nano > 0:
            parts += [
                encode_tag(FIELD_TIMESTAMP_NANO, WireType.FIXED64),
                struct.pack("<Q", self.timestamp_nano),
            ]
        return b"".join(parts)


def unmarshal_meta(data) -> Meta:
    """Decode a Meta protobuf message; unknown fields are skipped."""
    meta = Meta()
    for tag, wire_type, value in iter_fields(data):
        if tag in _STRING_FIELDS:
            expect_wire_type(tag, wire_type, WireType.LENGTH_DELIMITED)
            setattr(meta, _STRING_FIELDS[tag], value.decode("utf-8", "surrogateescape"))
        elif tag == FIELD_LMDB_TXN_ID:
            expect_wire_type(tag, wire_type, WireType.VARINT)
            meta.lmdb_txn_id = _to_int64(value)
        elif tag == FIELD_TIMESTAMP_NANO:
            expect_wire_type(tag, wire_type, WireType.FIXED64)
            meta.timestamp_nano = value
    return meta