import io
import struct

import pytest

from lightningsnap.dbi import DBI
from lightningsnap.kv import KV
from lightningsnap.meta import Meta
from lightningsnap.snapshot import (
    Snapshot,
    dump_data,
    load_data,
    unmarshal_snapshot,
)
from lightningsnap.wire import UnexpectedWireTypeError


def make_test_dbi(n):
    d = DBI()
    d.name = "this-will-be-overridden"
    d.name = "test-name"
    d.transform = "test-transform"
    d.flags = 42
    extra = b"TEST1234567890ABCDEF"
    for i in range(n):
        key = b"k" + struct.pack(">I", i) + extra
        val = b"v" + bytes([i & 0xFF]) + extra
        d.append(KV(key=key, value=val, flags=i % 2, timestamp_nano=i))
    return d


def make_test_meta():
    return Meta(
        generation_id="gen",
        instance_id="inst",
        hostname="host",
        lmdb_txn_id=123,
        timestamp_nano=1678946171_001_002_003,
        database_name="db",
    )


def make_test_snapshot(entries):
    return Snapshot(
        format_version=1,
        compat_version=2,
        meta=make_test_meta(),
        databases=[make_test_dbi(entries)],
    )


def test_write_to():
    snap = make_test_snapshot(10_000)
    assert snap.databases[0].size() >= 50_000
    buf = io.BytesIO()
    n = snap.write_to(buf)
    assert len(buf.getvalue()) == n
    assert n >= 50_000


def test_write_to_unmarshal_roundtrip():
    orig = make_test_snapshot(10_000)
    buf = io.BytesIO()
    orig.write_to(buf)
    snap = unmarshal_snapshot(buf.getvalue())
    assert snap.format_version == orig.format_version
    assert snap.compat_version == orig.compat_version
    assert snap.meta == orig.meta
    assert len(snap.databases) == 1
    assert snap.databases[0].marshal() == orig.databases[0].marshal()


def test_dump_load_roundtrip():
    orig = make_test_snapshot(2_000)
    data, stats = dump_data(orig)
    assert stats.compressed_size == len(data)
    assert stats.protobuf_size == len(orig.marshal())
    assert stats.t_compressed.total_seconds() >= 0
    loaded = load_data(data)
    assert loaded.meta == orig.meta
    assert loaded.databases[0].name == "test-name"
    assert loaded.databases[0].kv_list() == orig.databases[0].kv_list()


def test_marshal_version_fields_wire_bytes():
    assert Snapshot(format_version=3, compat_version=1).marshal() == b"\x08\x03\x20\x01"


def test_empty_parts_are_omitted():
    assert Snapshot(databases=[DBI()]).marshal() == b""


def test_unmarshal_wrong_wire_type():
    with pytest.raises(UnexpectedWireTypeError):
        unmarshal_snapshot(b"\x0a\x00")


def test_load_data_rejects_non_gzip():
    with pytest.raises(OSError):
        load_data(b"not gzip data at all")