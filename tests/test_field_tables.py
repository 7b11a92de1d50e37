"""Tests for field tables: decoding, unknown-tag skipping and oversize fields."""

import struct

import pytest

from esm_builders import field, record, zstr
from esm_parser.models.records import FieldHeader
from esm_parser.parser import field_tables
from esm_parser.parser.binary_reader import BinaryReader
from esm_parser.parser.chunk_parser import ChunkParser
from esm_parser.parser.errors import ParseError, UnimplementedError
from esm_parser.parser.field_tables import FIELD_TABLES, FieldTable
from esm_parser.parser.plugin_parser import PluginParser
from esm_parser.parser.trace import RecordingTraceSink


def _parse_record(data: bytes, **kwargs):
    return PluginParser.from_bytes(data, **kwargs).parse_record()


def test_glob_fields_decoded():
    rec = _parse_record(record("GLOB", [
        field("EDID", zstr("GameYear")),
        field("FNAM", b"s"),
        field("FLTV", struct.pack("<f", 2281.0)),
    ], form_id=0x100))

    assert rec.form_id == 0x100
    assert [f.header.type for f in rec.fields] == ["EDID", "FNAM", "FLTV"]
    assert rec.get("EDID") == "GameYear"
    assert rec.get("FNAM") == ord("s")
    assert rec.get("FLTV") == pytest.approx(2281.0)


def test_unknown_field_is_skipped_by_size():
    rec = _parse_record(record("GLOB", [
        field("EDID", zstr("GameDay")),
        field("ZZZZ", b"\xde\xad\xbe\xef\x00\x01\x02"),
        field("FNAM", b"l"),
        field("FLTV", struct.pack("<f", 12.0)),
    ]))

    assert [f.header.type for f in rec.fields] == ["EDID", "ZZZZ", "FNAM", "FLTV"]
    assert rec.fields[1].value is None
    assert rec.get("FNAM") == ord("l")
    assert rec.get("FLTV") == pytest.approx(12.0)


def test_unknown_field_is_traced_as_unknown():
    sink = RecordingTraceSink()
    _parse_record(record("GLOB", [field("ZZZZ", b"\x00\x00")]), sink=sink)
    unknown = sink.of_kind("unknown")
    assert [(e.tag, e.size) for e in unknown] == [("ZZZZ", 2)]


def test_record_without_table_is_skipped():
    sink = RecordingTraceSink()
    rec = _parse_record(record("REFR", [field("NAME", b"\x01\x00\x00\x00")]), sink=sink)
    assert rec.fields == []
    assert sink.of_kind("record")[0].detail.endswith("(skipped)")


def test_tes4_fields():
    rec = _parse_record(record("TES4", [
        field("HEDR", struct.pack("<fiI", 1.34, 10, 0x900)),
        field("CNAM", zstr("author")),
        field("MAST", zstr("FalloutNV.esm")),
        field("DATA", struct.pack("<Q", 0)),
        field("ONAM", struct.pack("<II", 0x10, 0x20)),
    ]))
    assert rec.get("HEDR").num_records == 10
    assert rec.get("MAST") == "FalloutNV.esm"
    assert rec.get("ONAM") == [0x10, 0x20]


def test_txst_texture_slots():
    rec = _parse_record(record("TXST", [
        field("TX00", zstr("diffuse.dds")),
        field("TX07", zstr("env.dds")),
        field("DNAM", struct.pack("<H", 1)),
    ]))
    assert rec.get("TX00") == "diffuse.dds"
    assert rec.get("TX07") == "env.dds"
    assert rec.get("DNAM") == 1


def test_fixed_layout_with_wrong_declared_size_is_fatal():
    # OBND is 12 bytes; a 10-byte OBND cannot be consumed exactly
    data = record("STAT", [field("OBND", bytes(10)), field("MODL", zstr("a.nif"))])
    with pytest.raises(ParseError, match="OBND"):
        _parse_record(data)


def test_lstring_in_localized_file_is_unimplemented():
    p = PluginParser.from_bytes(record("MISC", [field("FULL", struct.pack("<I", 77))]))
    p.localized = True
    with pytest.raises(UnimplementedError, match="Localized string"):
        p.parse_record()


def test_lstring_in_plain_file_is_text():
    rec = _parse_record(record("MISC", [field("FULL", zstr("Scrap Metal"))]))
    assert rec.get("FULL") == "Scrap Metal"


def _wrld_with_oversize(trailing: list[bytes]) -> bytes:
    blob = bytes(range(10))
    payload = (
        field("EDID", zstr("Wasteland"))
        + field("XXXX", struct.pack("<I", len(blob)))
        + struct.pack("<4sH", b"OFST", 0) + blob
    )
    return record("WRLD", [payload, *trailing], form_id=0x3C)


def test_oversize_field_as_last_field():
    rec = _parse_record(_wrld_with_oversize([]))
    assert [f.header.type for f in rec.fields] == ["EDID", "XXXX"]
    assert rec.get("XXXX") == "OFST (10 bytes)"


def test_oversize_field_followed_by_more_fields_is_rejected():
    with pytest.raises(ParseError, match="XXXX"):
        _parse_record(_wrld_with_oversize([field("CNAM", struct.pack("<I", 1))]))


def test_custom_table_and_decoder():
    def upper(parser, header):
        return parser.read_zstring(header.size).upper()

    tables = {"BOOK": FieldTable("BOOK", {"DESC": upper})}
    rec = _parse_record(record("BOOK", [field("DESC", zstr("wasteland survival"))]),
                        tables=tables)
    assert rec.get("DESC") == "WASTELAND SURVIVAL"


def test_decode_field_emits_value():
    data = field("FLTV", struct.pack("<f", 0.5))
    parser = ChunkParser(BinaryReader(data))
    sink = RecordingTraceSink()
    parser.sink = sink
    header = parser.read_field_header()
    result = FIELD_TABLES["GLOB"].decode_field(parser, header)
    assert result.value == 0.5
    assert sink.events[0][1].detail == "0.5"


def test_form_id_array_ignores_partial_trailing_bytes():
    parser = ChunkParser(BinaryReader(struct.pack("<II", 1, 2) + b"\x00\x00"))
    assert field_tables.form_id_array(parser, FieldHeader("ONAM", 10)) == [1, 2]
    assert parser.position == 10


def test_unaligned_form_id_array_field_stays_in_step():
    data = field("SCRO", struct.pack("<I", 0x700) + b"\x01\x02") + field("EDID", zstr("Next"))
    parser = ChunkParser(BinaryReader(data))
    table = FieldTable("TEST", {"SCRO": field_tables.form_id_array, "EDID": field_tables.zstring})
    fields = []
    parser.parse_fields(table.handler(fields), len(data))
    assert [f.value for f in fields] == [[0x700], "Next"]


def test_format_value():
    assert field_tables.format_value("abc") == "'abc'"
    assert field_tables.format_value(b"\x01\x02") == "<01 02>"
    assert field_tables.format_value(bytes(20)).endswith(" ...>")
