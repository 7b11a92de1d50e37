"""Size-driven walker over nested length-prefixed chunks.

Every chunk in a plugin declares its own size, so the walker never needs to
understand a chunk to get past it. A handler is called once per chunk and may
read as much or as little as it likes; afterwards the walker checks that the
cursor landed where the declared size says it should:

  fields:  start (after the 6-byte header) + size
  records: start (before the 24-byte header) + 24 + size
  groups:  start (before the header) + size   (GRUP size includes its header)

A handler may also stop exactly on the parent's end boundary. That is the
only tolerated overrun (used by XXXX, whose real size is only known by
reading the following field).
"""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TypeVar

from esm_parser.models.constants import (
    FIELD_HEADER_SIZE,
    GROUP_HEADER_SIZE,
    GROUP_TAG,
    RECORD_HEADER_SIZE,
)
from esm_parser.models.group_label import decode_tag
from esm_parser.models.records import FieldHeader, GroupHeader, RecordHeader
from esm_parser.parser.binary_reader import BinaryReader
from esm_parser.parser.errors import ParseError, UnexpectedChunkShape, UnimplementedError
from esm_parser.parser.layouts import FIELD_HEADER, GROUP_HEADER, RECORD_HEADER, FixedLayout
from esm_parser.parser.trace import TraceEvent, TraceSink


logger = logging.getLogger(__name__)

T = TypeVar("T")

ChunkHeader = RecordHeader | GroupHeader
FieldHandler = Callable[["ChunkParser", FieldHeader], None]
RecordHandler = Callable[["ChunkParser", ChunkHeader], None]


class ChunkParser:
    """Cursor plus the shared state of one parse: depth, localized flag, sink."""

    def __init__(
        self,
        reader: BinaryReader,
        *,
        sink: TraceSink | None = None,
        localized: bool = False,
        depth: int = 0,
    ) -> None:
        self._reader = reader
        self._depth = depth
        self.sink = sink if sink is not None else TraceSink()
        self.localized = localized

    @property
    def reader(self) -> BinaryReader:
        return self._reader

    @property
    def position(self) -> int:
        return self._reader.position

    @property
    def depth(self) -> int:
        return self._depth

    # --- Depth ---

    def push(self) -> None:
        self._depth += 1

    def pop(self) -> None:
        if self._depth == 0:
            raise RuntimeError("Depth popped below zero")
        self._depth -= 1

    @contextmanager
    def nested(self) -> Iterator[None]:
        """One nesting level for the duration of the block, on every exit path."""
        self.push()
        try:
            yield
        finally:
            self.pop()

    def emit(self, kind: str, tag: str, size: int, detail: str = "") -> None:
        self.sink.emit(self._depth, TraceEvent(kind, tag, size, detail))

    # --- Primitive reads ---

    def read(self, layout: FixedLayout):
        return layout.read(self._reader)

    def skip(self, size: int) -> None:
        self._reader.skip(size)

    def read_zstring(self, size: int) -> str:
        return self._reader.zstring(size)

    def read_lstring(self, size: int) -> str:
        """Read a string field that may be a string-table reference.

        Localized files store a u32 lookup ID instead of text; resolving it
        needs the external .STRINGS tables, which are not supported.
        """
        if self.localized:
            raise UnimplementedError(
                f"Localized string at offset {self.position}: string tables are not supported"
            )
        return self.read_zstring(size)

    # --- Headers ---

    def read_field_header(self) -> FieldHeader:
        raw = self.read(FIELD_HEADER)
        return FieldHeader(type=decode_tag(raw.type), size=raw.size)

    def read_record_header(self) -> RecordHeader:
        """Read a 24-byte record header. A GRUP here is a shape error."""
        start = self.position
        raw = self.read(RECORD_HEADER)
        tag = decode_tag(raw.type)
        if tag == GROUP_TAG:
            self._reader.seek(start)
            raise UnexpectedChunkShape(f"Expected a record at offset {start}, got GRUP")
        return RecordHeader(
            type=tag,
            size=raw.size,
            flags=raw.flags,
            form_id=raw.form_id,
            revision=raw.revision,
            version=raw.version,
            unknown=raw.unknown,
        )

    def read_group_header(self) -> GroupHeader:
        """Read a raw 24-byte GRUP header (size still includes the header)."""
        start = self.position
        raw = self.read(GROUP_HEADER)
        tag = decode_tag(raw.type)
        if tag != GROUP_TAG:
            self._reader.seek(start)
            raise UnexpectedChunkShape(f"Expected GRUP at offset {start}, got {tag!r}")
        if raw.size < GROUP_HEADER_SIZE:
            raise ParseError(
                f"GRUP at offset {start} declares size {raw.size}, "
                f"smaller than its own {GROUP_HEADER_SIZE}-byte header"
            )
        return GroupHeader(
            type=tag,
            size=raw.size,
            label=raw.label,
            group_type=raw.group_type,
            stamp=raw.stamp,
            unknown=raw.unknown,
        )

    def read_chunk_header(self) -> ChunkHeader:
        """Read whichever 24-byte header comes next. Groups come back raw."""
        if decode_tag(self._reader.peek_bytes(4)) == GROUP_TAG:
            return self.read_group_header()
        return self.read_record_header()

    def peek_chunk_header(self) -> ChunkHeader | None:
        """Look at the next 24-byte header and rewind. None if fewer bytes remain."""
        if self._reader.remaining < RECORD_HEADER_SIZE:
            return None
        header = self.read_chunk_header()
        self._reader.rewind(RECORD_HEADER_SIZE)
        return header

    # --- Bounded iteration ---

    def parse_fields(self, handler: FieldHandler, total_size: int) -> None:
        """Run handler once per field in the next total_size bytes."""
        if total_size == 0:
            return
        loop_end = self.position + total_size
        self.push()
        try:
            while self.position < loop_end:
                header = self.read_field_header()
                start = self.position
                handler(self, header)
                end = start + header.size
                pos = self.position
                if pos == loop_end:
                    break
                if pos != end:
                    raise ParseError(
                        f"Field {header.type} at offset {start - FIELD_HEADER_SIZE}: "
                        f"handler stopped at {pos}, expected {end} "
                        f"(declared size {header.size}, parent ends at {loop_end})"
                    )
        finally:
            self.pop()

    def parse_records(self, handler: RecordHandler, total_size: int) -> None:
        """Run handler once per record or group in the next total_size bytes.

        Group headers are passed normalized: size is the content size.
        """
        if total_size == 0:
            return
        loop_end = self.position + total_size
        self.push()
        try:
            while self.position < loop_end:
                start = self.position
                header = self.read_chunk_header()
                if isinstance(header, GroupHeader):
                    size = header.size
                    header = header.normalize()
                else:
                    size = header.size + RECORD_HEADER_SIZE
                handler(self, header)
                end = start + size
                pos = self.position
                if pos == loop_end:
                    break
                if pos != end:
                    raise ParseError(
                        f"{header.type} at offset {start}: handler stopped at {pos}, "
                        f"expected {end} (chunk size {size}, parent ends at {loop_end})"
                    )
        finally:
            self.pop()

    def parse_until(self, limit: int, producer: Callable[[], T]) -> list[T]:
        """Call producer until the cursor reaches limit; collect the results.

        Units are sized by whatever the producer reads, so there is no
        per-call size check here.
        """
        out: list[T] = []
        while self.position < limit:
            start = self.position
            out.append(producer())
            if self.position <= start:
                raise ParseError(f"Producer made no progress at offset {start}")
        return out
