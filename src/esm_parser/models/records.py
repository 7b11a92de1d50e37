"""Chunk headers and the parse-tree entities built from them."""

from dataclasses import dataclass, field, replace
from typing import Any

from esm_parser.models.constants import GROUP_HEADER_SIZE, RecordFlag
from esm_parser.models.group_label import GroupLabel


@dataclass(frozen=True, slots=True)
class FieldHeader:
    """6-byte field (subrecord) header."""
    type: str        # 4-char signature (e.g. "EDID", "DATA")
    size: int        # size of the field data (after header), u16


@dataclass(frozen=True, slots=True)
class RecordHeader:
    """24-byte record header preceding the record data."""
    type: str        # 4-char signature (e.g. "GLOB", "NPC_")
    size: int        # size of the record data (after header)
    flags: int
    form_id: int
    revision: int
    version: int
    unknown: int = 0

    @property
    def is_compressed(self) -> bool:
        return bool(self.flags & RecordFlag.COMPRESSED)

    @property
    def is_deleted(self) -> bool:
        return bool(self.flags & RecordFlag.DELETED)

    @property
    def is_master(self) -> bool:
        return bool(self.flags & RecordFlag.MASTER)

    @property
    def is_light_master(self) -> bool:
        return bool(self.flags & RecordFlag.LIGHT_MASTER)

    @property
    def is_localized(self) -> bool:
        return bool(self.flags & RecordFlag.LOCALIZED)


@dataclass(frozen=True, slots=True)
class GroupHeader:
    """24-byte GRUP header.

    As read from the file, size includes the header itself. The parser
    hands out normalized copies where size is the content size only.
    """
    type: str
    size: int
    label: bytes     # raw 4 bytes; meaning depends on group_type
    group_type: int
    stamp: int
    unknown: int = 0
    normalized: bool = False

    @property
    def content_size(self) -> int:
        return self.size if self.normalized else self.size - GROUP_HEADER_SIZE

    def normalize(self) -> "GroupHeader":
        """Return a copy whose size excludes the 24-byte header."""
        if self.normalized:
            return self
        return replace(self, size=self.size - GROUP_HEADER_SIZE, normalized=True)


@dataclass(slots=True)
class Field:
    """A decoded field. value is whatever the field table's decoder returned."""
    header: FieldHeader
    value: Any = None


@dataclass(slots=True)
class Record:
    """A parsed record: header + decoded fields."""
    header: RecordHeader
    fields: list[Field] = field(default_factory=list)

    @property
    def type(self) -> str:
        return self.header.type

    @property
    def form_id(self) -> int:
        return self.header.form_id

    def get(self, field_type: str) -> Any:
        """Return the value of the first field with this tag, or None."""
        for f in self.fields:
            if f.header.type == field_type:
                return f.value
        return None


@dataclass(slots=True)
class Group:
    """A parsed GRUP. children holds records, groups or cells, by label."""
    header: GroupHeader
    label: GroupLabel
    children: list = field(default_factory=list)


@dataclass(slots=True)
class CellChildren:
    """The GRUP following a CELL record, split by child group kind."""
    parent_id: int
    persistent: list[Record] | None = None
    temporary: list[Record] | None = None
    visible_distant: list[Record] | None = None


@dataclass(slots=True)
class Cell:
    record: Record
    children: CellChildren | None = None


@dataclass(slots=True)
class WorldChildren:
    """Children of one worldspace: its persistent cell and exterior blocks."""
    world_id: int
    cell: Cell | None = None
    blocks: list[Group] = field(default_factory=list)


@dataclass(slots=True)
class WorldEntry:
    world: Record
    children: WorldChildren | None = None


@dataclass(slots=True)
class Dialog:
    """A DIAL topic record and its optional topic-children GRUP."""
    topic: Record
    children: Group | None = None
