import struct

import pytest

from lightningsnap.wire import (
    MASK64,
    DecodeError,
    UnexpectedWireTypeError,
    WireType,
    decode_varint,
    encode_tag,
    encode_varint,
    expect_wire_type,
    iter_fields,
    skip_field,
)


def test_encode_varint_known_value():
    assert encode_varint(300) == b"\xac\x02"


def test_decode_varint_known_value():
    assert decode_varint(b"\x96\x01", 0) == (150, 2)


def test_encode_tag_length_delimited():
    assert encode_tag(2, WireType.LENGTH_DELIMITED) == b"\x12"


@pytest.mark.parametrize("value", [0, 1, 127, 128, 16383, 16384, 2**32, MASK64])
def test_varint_roundtrip(value):
    encoded = encode_varint(value)
    assert decode_varint(encoded, 0) == (value, len(encoded))


def test_decode_varint_with_offset():
    data = b"xyz" + encode_varint(1000) + b"rest"
    value, end = decode_varint(data, 3)
    assert value == 1000
    assert data[end:] == b"rest"


@pytest.mark.parametrize("value", [-1, MASK64 + 1])
def test_encode_varint_out_of_range(value):
    with pytest.raises(ValueError):
        encode_varint(value)


def test_decode_varint_truncated():
    with pytest.raises(DecodeError):
        decode_varint(b"\x80\x80", 0)


def test_decode_varint_empty():
    with pytest.raises(DecodeError):
        decode_varint(b"", 0)


def test_decode_varint_overflow():
    with pytest.raises(DecodeError):
        decode_varint(b"\xff" * 11, 0)


def test_expect_wire_type_mismatch():
    with pytest.raises(UnexpectedWireTypeError) as info:
        expect_wire_type(3, WireType.VARINT, WireType.FIXED64)
    assert info.value.tag == 3
    assert info.value.wire_type == WireType.VARINT
    assert info.value.expected == WireType.FIXED64
    assert "tag 3" in str(info.value)


def test_unexpected_wire_type_is_decode_error():
    with pytest.raises(DecodeError):
        expect_wire_type(1, WireType.LENGTH_DELIMITED, WireType.VARINT)


def test_skip_field_varint():
    data = encode_varint(123456) + b"after"
    end = skip_field(data, 0, WireType.VARINT)
    assert data[end:] == b"after"


def test_skip_field_length_delimited():
    data = encode_varint(3) + b"abc" + b"after"
    end = skip_field(data, 0, WireType.LENGTH_DELIMITED)
    assert data[end:] == b"after"


@pytest.mark.parametrize("wire_type,width", [(WireType.FIXED32, 4), (WireType.FIXED64, 8)])
def test_skip_field_fixed(wire_type, width):
    data = b"\x00" * width + b"tail"
    assert skip_field(data, 0, wire_type) == width


def test_skip_field_truncated():
    data = encode_varint(10) + b"abc"
    with pytest.raises(DecodeError):
        skip_field(data, 0, WireType.LENGTH_DELIMITED)


def test_skip_field_fixed64_truncated():
    with pytest.raises(DecodeError):
        skip_field(b"\x00" * 7, 0, WireType.FIXED64)


def test_skip_field_group_unsupported():
    with pytest.raises(DecodeError):
        skip_field(b"\x00", 0, WireType.START_GROUP)


def test_iter_fields():
    data = (
        encode_tag(1, WireType.VARINT) + encode_varint(150)
        + encode_tag(2, WireType.LENGTH_DELIMITED) + encode_varint(3) + b"abc"
        + encode_tag(3, WireType.FIXED64) + struct.pack("<Q", 7)
        + encode_tag(4, WireType.FIXED32) + struct.pack("<I", 9)
    )
    assert list(iter_fields(data)) == [
        (1, WireType.VARINT, 150),
        (2, WireType.LENGTH_DELIMITED, b"abc"),
        (3, WireType.FIXED64, 7),
        (4, WireType.FIXED32, 9),
    ]


def test_iter_fields_empty():
    assert list(iter_fields(b"")) == []


def test_iter_fields_truncated_length():
    data = encode_tag(1, WireType.LENGTH_DELIMITED) + encode_varint(5) + b"ab"
    with pytest.raises(DecodeError):
        list(iter_fields(data))


def test_iter_fields_group_unsupported():
    with pytest.raises(DecodeError):
        list(iter_fields(encode_tag(1, WireType.START_GROUP)))