"""Tests for BinaryReader — all synthetic bytes, no ESM needed."""

import struct

import pytest

from esm_parser.parser.binary_reader import BinaryReader
from esm_parser.parser.errors import TruncatedError


def test_uint8():
    r = BinaryReader(bytes([0x00, 0x7F, 0xFF]))
    assert r.uint8() == 0
    assert r.uint8() == 127
    assert r.uint8() == 255


def test_uint16_and_int16():
    r = BinaryReader(struct.pack("<Hh", 0xFFFF, -2))
    assert r.uint16() == 65535
    assert r.int16() == -2


def test_uint32_and_int32():
    r = BinaryReader(struct.pack("<Ii", 0xDEADBEEF, -1))
    assert r.uint32() == 0xDEADBEEF
    assert r.int32() == -1


def test_uint64():
    r = BinaryReader(struct.pack("<Q", 0x0102030405060708))
    assert r.uint64() == 0x0102030405060708


def test_float32():
    r = BinaryReader(struct.pack("<f", 3.14))
    assert r.float32() == pytest.approx(3.14, abs=0.001)


def test_signature():
    r = BinaryReader(b"GLOB")
    assert r.signature() == "GLOB"


def test_signature_with_unprintable_bytes_does_not_raise():
    r = BinaryReader(b"\xffAB\x00")
    sig = r.signature()
    assert len(sig) == 4
    assert sig[1:3] == "AB"


def test_zstring_consumes_declared_size():
    r = BinaryReader(b"abc\x00\x00\x00XY")
    assert r.zstring(6) == "abc"
    assert r.position == 6
    assert r.read_exact(2) == b"XY"


def test_zstring_without_terminator():
    r = BinaryReader(b"abcd")
    assert r.zstring(4) == "abcd"


def test_read_exact():
    r = BinaryReader(b"\x01\x02\x03\x04")
    assert r.read_exact(2) == b"\x01\x02"
    assert r.read_exact(2) == b"\x03\x04"


def test_remaining_and_position():
    r = BinaryReader(b"abcdef")
    assert r.position == 0
    assert r.remaining == 6
    r.skip(2)
    assert r.position == 2
    assert r.remaining == 4


def test_peek_does_not_advance():
    r = BinaryReader(struct.pack("<II", 7, 8))
    assert r.peek_bytes(4) == struct.pack("<I", 7)
    assert r.peek_struct(struct.Struct("<II")) == (7, 8)
    assert r.position == 0
    assert r.uint32() == 7


def test_seek():
    r = BinaryReader(struct.pack("<III", 100, 200, 300))
    r.seek(8)
    assert r.uint32() == 300
    r.seek(0)
    assert r.uint32() == 100


def test_rewind():
    r = BinaryReader(struct.pack("<II", 1, 2))
    r.skip(8)
    r.rewind(4)
    assert r.position == 4
    assert r.uint32() == 2


def test_rewind_before_start():
    r = BinaryReader(b"\x00\x00")
    r.skip(1)
    with pytest.raises(TruncatedError, match="before start"):
        r.rewind(2)


def test_read_past_end():
    r = BinaryReader(b"\x01\x02")
    r.uint16()
    with pytest.raises(TruncatedError, match="exceed boundary"):
        r.uint16()


def test_truncated_is_a_value_error():
    r = BinaryReader(b"")
    with pytest.raises(ValueError):
        r.uint8()


def test_skip_past_end():
    r = BinaryReader(b"\x01\x02")
    with pytest.raises(TruncatedError, match="exceed boundary"):
        r.skip(10)


def test_peek_past_end():
    r = BinaryReader(b"\x01\x02")
    with pytest.raises(TruncatedError, match="exceed boundary"):
        r.peek_bytes(3)


def test_seek_out_of_bounds():
    r = BinaryReader(b"\x01\x02")
    with pytest.raises(TruncatedError, match="outside bounds"):
        r.seek(3)


def test_read_stops_at_end_of_buffer():
    r = BinaryReader(b"abcdef")
    r.seek(4)
    assert r.remaining == 2
    assert r.read_exact(2) == b"ef"
    with pytest.raises(TruncatedError, match="exceed boundary at 6"):
        r.uint8()


def test_from_path(tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(b"TES4")
    r = BinaryReader.from_path(path)
    assert r.size == 4
    assert r.signature() == "TES4"
