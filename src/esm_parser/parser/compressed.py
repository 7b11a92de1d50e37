"""Inflate a compressed record's fields and walk them with the same handler.

Compressed record data = uint32 decompressed size + zlib stream. The
inflated bytes are a plain field list, parsed by a child ChunkParser that
inherits depth, localized flag and trace sink from the outer one.
"""

import logging
import zlib

from esm_parser.models.records import RecordHeader
from esm_parser.parser.binary_reader import BinaryReader
from esm_parser.parser.chunk_parser import ChunkParser, FieldHandler
from esm_parser.parser.errors import DecompressionError, ParseError


logger = logging.getLogger(__name__)


def inflate_record_data(parser: ChunkParser, header: RecordHeader) -> bytes:
    """Read and inflate the data of a compressed record at the cursor."""
    start = parser.position
    if header.size < 4:
        raise ParseError(
            f"Compressed {header.type} at offset {start} declares {header.size} bytes, "
            "too small for the size prefix"
        )
    expected_size = parser.reader.uint32()
    compressed = parser.reader.read_exact(header.size - 4)
    try:
        raw = zlib.decompress(compressed)
    except zlib.error as exc:
        raise DecompressionError(
            f"Compressed {header.type} 0x{header.form_id:08X} at offset {start}: {exc}"
        ) from exc
    if len(raw) != expected_size:
        logger.warning(
            "%s 0x%08X: size prefix says %d bytes, inflated to %d",
            header.type, header.form_id, expected_size, len(raw),
        )
    return raw


def parse_compressed_fields(
    parser: ChunkParser,
    header: RecordHeader,
    handler: FieldHandler,
) -> None:
    """Inflate the record at the cursor and run handler over its fields.

    The outer cursor ends exactly header.size bytes later.
    """
    raw = inflate_record_data(parser, header)
    inner = ChunkParser(
        BinaryReader(raw),
        sink=parser.sink,
        localized=parser.localized,
        depth=parser.depth,
    )
    inner.parse_fields(handler, len(raw))
