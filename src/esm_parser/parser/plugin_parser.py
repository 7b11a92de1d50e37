"""Structural walk of a whole plugin file.

Navigates the plugin file structure:
  TES4 header → top-level GRUPs → Records → Fields

Most top-level groups are a flat list of records. Three are trees:
  WRLD: world record, then its WorldChildren GRUP (persistent cell,
        exterior blocks → sub-blocks → cells → cell children)
  CELL: interior cell blocks (skipped by size)
  DIAL: topic record, optionally followed by its TopicChildren GRUP

Records with a field table are decoded field by field; everything else is
skipped using its declared size.
"""

import logging
from collections import Counter
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from esm_parser.models.constants import (
    CELL_GROUP,
    DIALOG_GROUP,
    FILE_HEADER_TAG,
    GROUP_TAG,
    RECORD_HEADER_SIZE,
    WORLD_GROUP,
    GroupType,
)
from esm_parser.models.group_label import (
    CellChildrenGroup,
    CellPersistentChildrenGroup,
    CellTemporaryChildrenGroup,
    CellVisibleDistantChildrenGroup,
    ExteriorCellBlockGroup,
    ExteriorCellSubBlockGroup,
    GroupLabel,
    TopGroup,
    TopicChildrenGroup,
    WorldChildrenGroup,
    decode_group_label,
    describe_label,
)
from esm_parser.models.records import (
    Cell,
    CellChildren,
    Dialog,
    Group,
    GroupHeader,
    Record,
    RecordHeader,
    WorldChildren,
    WorldEntry,
)
from esm_parser.parser.binary_reader import BinaryReader
from esm_parser.parser.chunk_parser import ChunkHeader, ChunkParser
from esm_parser.parser.compressed import parse_compressed_fields
from esm_parser.parser.errors import ParseError, UnexpectedChunkShape
from esm_parser.parser.field_tables import FIELD_TABLES, FieldTable
from esm_parser.parser.trace import TraceSink


logger = logging.getLogger(__name__)

_RECORD_LIST_LABELS = (
    TopicChildrenGroup,
    CellPersistentChildrenGroup,
    CellTemporaryChildrenGroup,
    CellVisibleDistantChildrenGroup,
)


@dataclass(slots=True)
class ParseSummary:
    """What a parse_top_level() pass visited."""
    header: Record | None = None
    record_counts: Counter = field(default_factory=Counter)
    groups: int = 0
    skipped_records: int = 0   # no field table; skipped by size
    skipped_groups: int = 0    # skipped by size (interior blocks, unknown labels, ...)

    @property
    def total_records(self) -> int:
        return sum(self.record_counts.values())


class PluginParser(ChunkParser):
    """Walks a plugin from its TES4 header to the end of the buffer.

    Args:
        reader: Cursor over the whole file.
        sink: Receives the chunk trace. Defaults to discarding it.
        tables: Record type → field table. Defaults to FIELD_TABLES.
        on_record: Called with every completed Record.
        skip_malformed_groups: If True, a top-level group that raises
            UnexpectedChunkShape is logged and skipped by its declared size
            instead of aborting the parse.
    """

    def __init__(
        self,
        reader: BinaryReader,
        *,
        sink: TraceSink | None = None,
        tables: Mapping[str, FieldTable] | None = None,
        on_record: Callable[[Record], None] | None = None,
        skip_malformed_groups: bool = False,
    ) -> None:
        super().__init__(reader, sink=sink)
        self.tables = FIELD_TABLES if tables is None else tables
        self.on_record = on_record
        self.skip_malformed_groups = skip_malformed_groups
        self.summary = ParseSummary()

    @classmethod
    def from_bytes(cls, data: bytes, **kwargs) -> "PluginParser":
        return cls(BinaryReader(data), **kwargs)

    @classmethod
    def from_path(cls, path: Path | str, **kwargs) -> "PluginParser":
        return cls(BinaryReader.from_path(path), **kwargs)

    # --- Top level ---

    def parse_top_level(self) -> ParseSummary:
        """Parse the TES4 header record, then every top-level group."""
        self.reader.seek(0)
        total_size = self.reader.size

        header = self.read_record_header()
        if header.type != FILE_HEADER_TAG:
            raise UnexpectedChunkShape(f"Expected TES4 header, got {header.type!r}")
        self.summary.header = self._parse_record_body(header)

        self.parse_until(total_size, self._parse_top_group)
        return self.summary

    def _parse_top_group(self) -> Group | None:
        if not self.skip_malformed_groups:
            return self.parse_group()

        start = self.position
        header = self.peek_chunk_header()
        if header is None:
            return self.parse_group()
        if isinstance(header, RecordHeader):
            logger.warning(
                "Skipping stray %s record at offset %d where a top-level group was expected",
                header.type, start,
            )
            self.reader.seek(start + RECORD_HEADER_SIZE + header.size)
            self.summary.skipped_records += 1
            return None
        try:
            return self.parse_group()
        except UnexpectedChunkShape as exc:
            logger.warning("Skipping top-level group at offset %d: %s", start, exc)
            self.reader.seek(start + header.size)
            self.summary.skipped_groups += 1
            return None

    # --- Records ---

    def parse_record(self) -> Record:
        """Parse one record at the cursor. A GRUP here is UnexpectedChunkShape."""
        return self._parse_record_body(self.read_record_header())

    def _parse_record_body(self, header: RecordHeader) -> Record:
        if header.type == FILE_HEADER_TAG:
            self.localized = header.is_localized

        table = self.tables.get(header.type)
        detail = f"0x{header.form_id:08X} flags=0x{header.flags:08X}"
        if table is None:
            detail += " (skipped)"
        self.emit("record", header.type, header.size, detail)

        record = Record(header=header)
        start = self.position
        if table is None:
            logger.debug("No field table for %s, skipping %d bytes", header.type, header.size)
            self.skip(header.size)
            self.summary.skipped_records += 1
        elif header.is_compressed:
            parse_compressed_fields(self, header, table.handler(record.fields))
        else:
            self.parse_fields(table.handler(record.fields), header.size)

        if self.position != start + header.size:
            raise ParseError(
                f"{header.type} 0x{header.form_id:08X} at offset {start - RECORD_HEADER_SIZE}: "
                f"fields ended at {self.position}, expected {start + header.size} "
                f"(declared size {header.size})"
            )

        self.summary.record_counts[header.type] += 1
        if self.on_record is not None:
            self.on_record(record)
        return record

    def _parse_record_list(self, size: int) -> list:
        """Parse size bytes of records (and any nested groups) with size checks."""
        children: list = []

        def handle(parser: ChunkParser, header: ChunkHeader) -> None:
            if isinstance(header, GroupHeader):
                children.append(self._parse_group_body(header))
            else:
                children.append(self._parse_record_body(header))

        self.parse_records(handle, size)
        return children

    # --- Groups ---

    def _enter_group(self, header: GroupHeader) -> tuple[GroupLabel, int]:
        """Decode and trace a normalized group header; return (label, content end)."""
        label = decode_group_label(header.label, header.group_type)
        self.emit("group", GROUP_TAG, header.size, describe_label(label))
        self.summary.groups += 1
        return label, self.position + header.size

    def parse_group(self) -> Group:
        """Parse one GRUP at the cursor, dispatching on its label."""
        header = self.read_group_header().normalize()
        return self._parse_group_body(header)

    def _parse_group_body(self, header: GroupHeader) -> Group:
        label, end = self._enter_group(header)
        group = Group(header=header, label=label)

        if isinstance(label, TopGroup) and label.record_type == WORLD_GROUP:
            with self.nested():
                group.children = self.parse_until(end, self.parse_world_entry)
        elif isinstance(label, TopGroup) and label.record_type == CELL_GROUP:
            with self.nested():
                group.children = self.parse_until(end, self.parse_group)
        elif isinstance(label, TopGroup) and label.record_type == DIALOG_GROUP:
            group.children = self.parse_dialog_topics(end)
        elif isinstance(label, TopGroup):
            group.children = self._parse_record_list(header.size)
        elif isinstance(label, ExteriorCellBlockGroup):
            with self.nested():
                group.children = self.parse_until(end, self.parse_group)
        elif isinstance(label, ExteriorCellSubBlockGroup):
            with self.nested():
                group.children = self.parse_until(end, self.parse_cell)
        elif isinstance(label, _RECORD_LIST_LABELS):
            group.children = self._parse_record_list(header.size)
        else:
            # Interior blocks, world/cell children outside their parent, unknown labels
            logger.debug("Skipping %s (%d bytes)", describe_label(label), header.size)
            self.skip(header.size)
            self.summary.skipped_groups += 1
        return group

    def parse_dialog_topics(self, end: int) -> list[Dialog]:
        """DIAL top group: each topic record may be followed by its INFO group."""
        dialogs: list[Dialog] = []
        with self.nested():
            while self.position < end:
                topic = self.parse_record()
                children = None
                if self.position < end:
                    following = self.peek_chunk_header()
                    if (
                        isinstance(following, GroupHeader)
                        and following.group_type == GroupType.TOPIC_CHILDREN
                    ):
                        with self.nested():
                            children = self.parse_group()
                dialogs.append(Dialog(topic=topic, children=children))
        return dialogs

    # --- Worlds and cells ---

    def parse_world_entry(self) -> WorldEntry:
        """A WRLD record and, if present, its WorldChildren group."""
        world = self.parse_record()
        children = None
        following = self.peek_chunk_header()
        if (
            isinstance(following, GroupHeader)
            and following.group_type == GroupType.WORLD_CHILDREN
        ):
            children = self.parse_world_children()
        return WorldEntry(world=world, children=children)

    def parse_world_children(self) -> WorldChildren:
        with self.nested():
            start = self.position
            label, end = self._enter_group(self.read_group_header().normalize())
            if not isinstance(label, WorldChildrenGroup):
                raise UnexpectedChunkShape(
                    f"Expected WorldChildren group at offset {start}, got {describe_label(label)}"
                )
            children = WorldChildren(world_id=label.world_id)
            with self.nested():
                if self.position < end:
                    following = self.peek_chunk_header()
                    if isinstance(following, RecordHeader) and following.type == CELL_GROUP:
                        children.cell = self.parse_cell()
                children.blocks = self.parse_until(end, self.parse_group)
        return children

    def parse_cell(self) -> Cell:
        """A CELL record and, if the next chunk is one, its CellChildren group."""
        record = self.parse_record()
        children = None
        following = self.peek_chunk_header()
        if (
            isinstance(following, GroupHeader)
            and following.group_type == GroupType.CELL_CHILDREN
        ):
            children = self.parse_cell_children()
        return Cell(record=record, children=children)

    def parse_cell_children(self) -> CellChildren:
        """CellChildren GRUP: persistent / temporary / visible-distant sub-groups."""
        with self.nested():
            start = self.position
            label, end = self._enter_group(self.read_group_header().normalize())
            if not isinstance(label, CellChildrenGroup):
                raise UnexpectedChunkShape(
                    f"Expected CellChildren group at offset {start}, got {describe_label(label)}"
                )
            children = CellChildren(parent_id=label.cell_id)
            with self.nested():
                while self.position < end:
                    sub_header = self.read_group_header().normalize()
                    sub_label, _ = self._enter_group(sub_header)
                    if isinstance(sub_label, CellPersistentChildrenGroup):
                        children.persistent = self._parse_record_list(sub_header.size)
                    elif isinstance(sub_label, CellTemporaryChildrenGroup):
                        children.temporary = self._parse_record_list(sub_header.size)
                    elif isinstance(sub_label, CellVisibleDistantChildrenGroup):
                        children.visible_distant = self._parse_record_list(sub_header.size)
                    else:
                        raise UnexpectedChunkShape(
                            f"Unexpected {describe_label(sub_label)} inside "
                            f"CellChildren(0x{label.cell_id:08X})"
                        )
        return children
