"""The snapshot root message and its gzip-compressed file form."""

from __future__ import annotations

import gzip
import io
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import BinaryIO, List, Tuple

from .dbi import DBI, dbi_from_data
from .meta import Meta, unmarshal_meta
from .wire import WireType, encode_tag, encode_varint, expect_wire_type, iter_fields

# Version 2 added the flags fields and the Deleted flag; before it, empty
# values indicated deleted entries.
# Version 3 made the DBI flags always describe the original DBI instead of
# the shadow DBI, and added the compat_version and per-database transform.
CURRENT_FORMAT_VERSION = 3
# The oldest snapshot version that can be read.
COMPAT_FORMAT_VERSION = 1
# The oldest reader version that can read the snapshots written here.
WRITE_COMPAT_FORMAT_VERSION = 1

FIELD_FORMAT_VERSION = 1
FIELD_META = 2
FIELD_DBI = 3
FIELD_COMPAT_VERSION = 4

_UINT32_MASK = 0xFFFFFFFF


@dataclass
class Snapshot:
    """The root object of a snapshot."""

    format_version: int = 0
    compat_version: int = 0
    meta: Meta = field(default_factory=Meta)
    databases: List[DBI] = field(default_factory=list)

    def write_to(self, stream: BinaryIO) -> int:
        """Stream the protobuf encoding to ``stream``; return the bytes written."""
        written = 0

        def emit(chunk: bytes) -> None:
            nonlocal written
            if chunk:
                stream.write(chunk)
                written += len(chunk)

        header = bytearray()
        for tag, value in (
            (FIELD_FORMAT_VERSION, self.format_version),
            (FIELD_COMPAT_VERSION, self.compat_version),
        ):
            if value > 0:
                header += encode_tag(tag, WireType.VARINT)
                header += encode_varint(value)
        emit(bytes(header))

        meta = self.meta.marshal()
        if meta:
            emit(encode_tag(FIELD_META, WireType.LENGTH_DELIMITED) + encode_varint(len(meta)))
            emit(meta)

        for dbi in self.databases:
            encoded = dbi.marshal()
            if not encoded:
                continue
            emit(encode_tag(FIELD_DBI, WireType.LENGTH_DELIMITED) + encode_varint(len(encoded)))
            emit(encoded)

        return written

    def marshal(self) -> bytes:
        """Return the full protobuf encoding."""
        buffer = io.BytesIO()
        self.write_to(buffer)
        return buffer.getvalue()


def unmarshal_snapshot(data) -> Snapshot:
    """Decode a snapshot protobuf message; unknown fields are skipped."""
    snap = Snapshot()
    for tag, wire_type, value in iter_fields(data):
        if tag == FIELD_FORMAT_VERSION:
            expect_wire_type(tag, wire_type, WireType.VARINT)
            snap.format_version = value & _UINT32_MASK
        elif tag == FIELD_COMPAT_VERSION:
            expect_wire_type(tag, wire_type, WireType.VARINT)
            snap.compat_version = value & _UINT32_MASK
        elif tag == FIELD_META:
            expect_wire_type(tag, wire_type, WireType.LENGTH_DELIMITED)
            snap.meta = unmarshal_meta(value)
        elif tag == FIELD_DBI:
            expect_wire_type(tag, wire_type, WireType.LENGTH_DELIMITED)
            snap.databases.append(dbi_from_data(value))
    return snap


@dataclass(frozen=True)
class DumpDataStats:
    """Statistics about a compressed snapshot dump."""

    t_compressed: timedelta = timedelta(0)
    protobuf_size: int = 0
    compressed_size: int = 0


def load_data(data: bytes) -> Snapshot:
    """Load snapshot file contents: a gzip-compressed protobuf."""
    return unmarshal_snapshot(gzip.decompress(data))


def dump_data(snapshot: Snapshot) -> Tuple[bytes, DumpDataStats]:
    """Return the gzip-compressed encoding of ``snapshot`` with statistics."""
    started = time.monotonic()
    out = io.BytesIO()
    with gzip.GzipFile(fileobj=out, mode="wb", compresslevel=1) as writer:
        protobuf_size = snapshot.write_to(writer)
    compressed = out.getvalue()
    stats = DumpDataStats(
        t_compressed=timedelta(seconds=time.monotonic() - started),
        protobuf_size=protobuf_size,
        compressed_size=len(compressed),
    )
    return compressed, stats