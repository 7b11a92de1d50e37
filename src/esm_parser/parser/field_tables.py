"""Per-record field tables: field tag → decoder.

A decoder is any callable (parser, header) -> value that consumes the
field's bytes. Tables are partial on purpose: a tag with no decoder is
skipped using its declared size alone, so unseen fields and records never
break a parse.

Only a representative subset of record types is covered. Extend by adding
to FIELD_TABLES or passing a custom mapping to PluginParser.
"""

import logging
import struct
from collections.abc import Callable, Mapping
from typing import Any

from esm_parser.models.records import Field, FieldHeader
from esm_parser.parser import layouts
from esm_parser.parser.chunk_parser import ChunkParser, FieldHandler
from esm_parser.parser.layouts import FixedLayout


logger = logging.getLogger(__name__)

FieldDecoder = Callable[[ChunkParser, FieldHeader], Any]


# --- Decoders ---

def zstring(parser: ChunkParser, header: FieldHeader) -> str:
    return parser.read_zstring(header.size)


def lstring(parser: ChunkParser, header: FieldHeader) -> str:
    """A string that is a string-table ID when the file is localized."""
    return parser.read_lstring(header.size)


def raw(parser: ChunkParser, header: FieldHeader) -> bytes:
    return parser.reader.read_exact(header.size)


def uint8(parser: ChunkParser, header: FieldHeader) -> int:
    return parser.reader.uint8()


def uint16(parser: ChunkParser, header: FieldHeader) -> int:
    return parser.reader.uint16()


def uint32(parser: ChunkParser, header: FieldHeader) -> int:
    return parser.reader.uint32()


def uint64(parser: ChunkParser, header: FieldHeader) -> int:
    return parser.reader.uint64()


def float32(parser: ChunkParser, header: FieldHeader) -> float:
    return parser.reader.float32()


form_id = uint32


def form_id_array(parser: ChunkParser, header: FieldHeader) -> list[int]:
    data = parser.reader.read_exact(header.size)
    # A partial trailing value is consumed and dropped
    return [v for (v,) in struct.iter_unpack("<I", data[: len(data) - len(data) % 4])]


def layout(fixed: FixedLayout) -> FieldDecoder:
    """Decoder reading one fixed-size struct."""
    def decode(parser: ChunkParser, header: FieldHeader):
        return parser.read(fixed)
    decode.__name__ = fixed.name
    return decode


def oversize_field(parser: ChunkParser, header: FieldHeader) -> str:
    """XXXX: holds the real u32 size of the next field, whose own u16 size is 0.

    Reads the next field's header and skips its body, so the cursor ends
    past XXXX's declared 4 bytes. This only balances when the oversized
    field is the last one in the record.
    """
    real_size = parser.reader.uint32()
    following = parser.read_field_header()
    parser.skip(real_size)
    return f"{following.type} ({real_size} bytes)"


# --- Tables ---

def format_value(value: Any) -> str:
    if isinstance(value, bytes):
        text = value[:16].hex(" ")
        return f"<{text}{' ...' if len(value) > 16 else ''}>"
    return repr(value)


class FieldTable:
    """Decoders for the fields of one record type."""

    def __init__(self, record_type: str, decoders: Mapping[str, FieldDecoder]) -> None:
        self.record_type = record_type
        self.decoders = dict(decoders)

    def __contains__(self, field_type: str) -> bool:
        return field_type in self.decoders

    def decode_field(self, parser: ChunkParser, header: FieldHeader) -> Field:
        """Decode one field whose header was just read; skip it if unknown."""
        decoder = self.decoders.get(header.type)
        if decoder is None:
            parser.skip(header.size)
            parser.emit("unknown", header.type, header.size)
            logger.debug("Skipped unknown %s field %s (%d bytes)",
                         self.record_type, header.type, header.size)
            return Field(header=header)
        value = decoder(parser, header)
        parser.emit("field", header.type, header.size, format_value(value))
        return Field(header=header, value=value)

    def handler(self, fields: list[Field]) -> FieldHandler:
        """A parse_fields handler that appends each decoded field to fields."""
        def handle(parser: ChunkParser, header: FieldHeader) -> None:
            fields.append(self.decode_field(parser, header))
        return handle


def _table(record_type: str, **decoders: FieldDecoder) -> FieldTable:
    return FieldTable(record_type, {"EDID": zstring, **decoders})


FIELD_TABLES: dict[str, FieldTable] = {
    table.record_type: table
    for table in (
        _table(
            "TES4",
            HEDR=layout(layouts.HEDR),
            CNAM=zstring,   # author
            SNAM=zstring,   # description
            MAST=zstring,
            DATA=uint64,
            ONAM=form_id_array,
        ),
        _table("GLOB", FNAM=uint8, FLTV=float32),
        # DATA type depends on the EDID prefix (f/i/s), left raw here
        _table("GMST", DATA=raw),
        _table(
            "FACT",
            FULL=lstring,
            XNAM=layout(layouts.XNAM),
            DATA=raw,
            CNAM=float32,
            RNAM=uint32,
            MNAM=zstring,
            FNAM=zstring,
            INAM=zstring,
        ),
        _table(
            "TXST",
            OBND=layout(layouts.OBND),
            DNAM=uint16,
            **{f"TX0{i}": zstring for i in range(8)},
        ),
        _table(
            "SPEL",
            FULL=lstring,
            SPIT=layout(layouts.SPIT),
            EFID=form_id,
            EFIT=layout(layouts.EFIT),
            CTDA=layout(layouts.CTDA),
        ),
        _table(
            "MISC",
            OBND=layout(layouts.OBND),
            FULL=lstring,
            MODL=zstring,
            ICON=zstring,
            SCRI=form_id,
            DATA=raw,
        ),
        _table("STAT", OBND=layout(layouts.OBND), MODL=zstring),
        _table(
            "NPC_",
            OBND=layout(layouts.OBND),
            FULL=lstring,
            MODL=zstring,
            SCRI=form_id,
        ),
        _table(
            "WRLD",
            FULL=lstring,
            CNAM=form_id,   # climate
            NAM2=form_id,   # water
            XXXX=oversize_field,
        ),
        _table("CELL", FULL=lstring, DATA=uint8),
        _table("DIAL", FULL=lstring, QSTI=form_id, DATA=raw),
        FieldTable("INFO", {"QSTI": form_id, "TCLT": form_id, "NAM1": lstring}),
        _table("QUST", FULL=lstring, SCRI=form_id, DATA=raw),
    )
}
