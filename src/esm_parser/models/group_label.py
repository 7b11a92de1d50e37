"""Typed interpretation of a GRUP header's 4-byte label.

The label is opaque until paired with the header's group_type:

  type 0       → record type tag of a top-level group (e.g. "GLOB")
  types 1,6-10 → form ID of the parent WRLD / CELL / DIAL record
  types 2,3    → interior block / sub-block index (int32)
  types 4,5    → exterior grid coordinates, stored as int16 Y then int16 X

Anything else decodes to UnknownGroup. Decoding never raises.
"""

import struct
from dataclasses import dataclass, fields

from esm_parser.models.constants import GroupType


@dataclass(frozen=True, slots=True)
class TopGroup:
    record_type: str


@dataclass(frozen=True, slots=True)
class WorldChildrenGroup:
    world_id: int


@dataclass(frozen=True, slots=True)
class InteriorCellBlockGroup:
    index: int


@dataclass(frozen=True, slots=True)
class InteriorCellSubBlockGroup:
    index: int


@dataclass(frozen=True, slots=True)
class ExteriorCellBlockGroup:
    x: int
    y: int


@dataclass(frozen=True, slots=True)
class ExteriorCellSubBlockGroup:
    x: int
    y: int


@dataclass(frozen=True, slots=True)
class CellChildrenGroup:
    cell_id: int


@dataclass(frozen=True, slots=True)
class CellPersistentChildrenGroup:
    cell_id: int


@dataclass(frozen=True, slots=True)
class CellTemporaryChildrenGroup:
    cell_id: int


@dataclass(frozen=True, slots=True)
class CellVisibleDistantChildrenGroup:
    cell_id: int


@dataclass(frozen=True, slots=True)
class TopicChildrenGroup:
    topic_id: int


@dataclass(frozen=True, slots=True)
class UnknownGroup:
    raw: bytes
    group_type: int


GroupLabel = (
    TopGroup
    | WorldChildrenGroup
    | InteriorCellBlockGroup
    | InteriorCellSubBlockGroup
    | ExteriorCellBlockGroup
    | ExteriorCellSubBlockGroup
    | CellChildrenGroup
    | CellPersistentChildrenGroup
    | CellTemporaryChildrenGroup
    | CellVisibleDistantChildrenGroup
    | TopicChildrenGroup
    | UnknownGroup
)

# Labels that carry the form ID of a parent record
_PARENT_ID_LABELS = {
    GroupType.WORLD_CHILDREN: WorldChildrenGroup,
    GroupType.CELL_CHILDREN: CellChildrenGroup,
    GroupType.TOPIC_CHILDREN: TopicChildrenGroup,
    GroupType.CELL_PERSISTENT_CHILDREN: CellPersistentChildrenGroup,
    GroupType.CELL_TEMPORARY_CHILDREN: CellTemporaryChildrenGroup,
    GroupType.CELL_VISIBLE_DISTANT_CHILDREN: CellVisibleDistantChildrenGroup,
}


def decode_tag(raw: bytes) -> str:
    """Decode a 4-byte type tag. Non-ASCII bytes become U+FFFD, never raise."""
    return raw.decode("ascii", errors="replace")


def decode_group_label(raw: bytes, group_type: int) -> GroupLabel:
    """Classify a raw GRUP label by its group_type."""
    if len(raw) != 4:
        return UnknownGroup(raw=bytes(raw), group_type=group_type)

    if group_type == GroupType.TOP:
        return TopGroup(decode_tag(raw))

    label_cls = _PARENT_ID_LABELS.get(group_type)
    if label_cls is not None:
        return label_cls(struct.unpack("<I", raw)[0])

    if group_type == GroupType.INTERIOR_CELL_BLOCK:
        return InteriorCellBlockGroup(struct.unpack("<i", raw)[0])
    if group_type == GroupType.INTERIOR_CELL_SUB_BLOCK:
        return InteriorCellSubBlockGroup(struct.unpack("<i", raw)[0])

    if group_type in (GroupType.EXTERIOR_CELL_BLOCK, GroupType.EXTERIOR_CELL_SUB_BLOCK):
        y, x = struct.unpack("<hh", raw)
        if group_type == GroupType.EXTERIOR_CELL_BLOCK:
            return ExteriorCellBlockGroup(x=x, y=y)
        return ExteriorCellSubBlockGroup(x=x, y=y)

    return UnknownGroup(raw=bytes(raw), group_type=group_type)


def describe_label(label: GroupLabel) -> str:
    """Short human-readable form used in traces."""
    if isinstance(label, TopGroup):
        return f"Top({label.record_type})"
    if isinstance(label, (ExteriorCellBlockGroup, ExteriorCellSubBlockGroup)):
        name = type(label).__name__.removesuffix("Group")
        return f"{name}({label.x}, {label.y})"
    if isinstance(label, (InteriorCellBlockGroup, InteriorCellSubBlockGroup)):
        name = type(label).__name__.removesuffix("Group")
        return f"{name}({label.index})"
    if isinstance(label, UnknownGroup):
        return f"Unknown(type={label.group_type}, raw={label.raw.hex()})"
    name = type(label).__name__.removesuffix("Group")
    parent_id = getattr(label, fields(label)[0].name)
    return f"{name}(0x{parent_id:08X})"
