import struct

import pytest

from lightningsnap.kv import (
    FIELD_FLAGS,
    FIELD_KEY,
    FIELD_TIMESTAMP_NANO,
    KV,
    unmarshal_kv,
)
from lightningsnap.wire import (
    DecodeError,
    UnexpectedWireTypeError,
    WireType,
    encode_tag,
    encode_varint,
)


def test_empty_kv_marshals_to_nothing():
    assert KV().marshal() == b""


@pytest.mark.parametrize(
    "kv",
    [
        KV(key=b"k", value=b"v"),
        KV(key=b"key", value=b"", flags=1),
        KV(key=b"\x00\x01\x02", value=b"x" * 300, timestamp_nano=1678946171001002003, flags=3),
        KV(value=b"only-value"),
        KV(timestamp_nano=1),
    ],
)
def test_roundtrip(kv):
    assert unmarshal_kv(kv.marshal()) == kv


def test_key_field_comes_first():
    data = KV(key=b"abc", value=b"def").marshal()
    assert data.startswith(encode_tag(FIELD_KEY, WireType.LENGTH_DELIMITED))


def test_unmarshal_empty():
    assert unmarshal_kv(b"") == KV()


def test_unknown_fields_are_skipped():
    kv = KV(key=b"a", value=b"b", flags=2)
    data = encode_tag(15, WireType.VARINT) + encode_varint(99) + kv.marshal()
    data += encode_tag(16, WireType.LENGTH_DELIMITED) + encode_varint(2) + b"zz"
    assert unmarshal_kv(data) == kv


def test_flags_truncated_to_uint32():
    data = encode_tag(FIELD_FLAGS, WireType.VARINT) + encode_varint(2**32 + 5)
    assert unmarshal_kv(data).flags == 5


def test_key_with_wrong_wire_type():
    data = encode_tag(FIELD_KEY, WireType.VARINT) + encode_varint(1)
    with pytest.raises(UnexpectedWireTypeError):
        unmarshal_kv(data)


def test_timestamp_with_wrong_wire_type():
    data = encode_tag(FIELD_TIMESTAMP_NANO, WireType.VARINT) + encode_varint(1)
    with pytest.raises(UnexpectedWireTypeError):
        unmarshal_kv(data)


def test_truncated_timestamp():
    data = encode_tag(FIELD_TIMESTAMP_NANO, WireType.FIXED64) + struct.pack("<I", 1)
    with pytest.raises(DecodeError):
        unmarshal_kv(data)


def test_truncated_value():
    data = KV(key=b"key", value=b"value").marshal()[:-2]
    with pytest.raises(DecodeError):
        unmarshal_kv(data)