"""Plugin format constants: header sizes, record flags and group types.

Values follow the Fallout 3 / New Vegas plugin layout (UESP and the GECK
wiki). Later games share the header shapes.
"""

from enum import IntEnum, IntFlag


# Sizes in bytes
RECORD_HEADER_SIZE = 24
GROUP_HEADER_SIZE = 24
FIELD_HEADER_SIZE = 6

GROUP_TAG = "GRUP"
FILE_HEADER_TAG = "TES4"
OVERSIZE_FIELD_TAG = "XXXX"


class RecordFlag(IntFlag):
    """Record header flag bits.

    LOCALIZED and LIGHT_MASTER are only meaningful on the TES4 file header.
    """
    MASTER = 0x0000_0001
    DELETED = 0x0000_0020
    LOCALIZED = 0x0000_0080
    LIGHT_MASTER = 0x0000_0200
    COMPRESSED = 0x0004_0000


class GroupType(IntEnum):
    """GRUP group_type values. Decides how the 4-byte label is read."""
    TOP = 0
    WORLD_CHILDREN = 1
    INTERIOR_CELL_BLOCK = 2
    INTERIOR_CELL_SUB_BLOCK = 3
    EXTERIOR_CELL_BLOCK = 4
    EXTERIOR_CELL_SUB_BLOCK = 5
    CELL_CHILDREN = 6
    TOPIC_CHILDREN = 7
    CELL_PERSISTENT_CHILDREN = 8
    CELL_TEMPORARY_CHILDREN = 9
    CELL_VISIBLE_DISTANT_CHILDREN = 10


# Top-level groups that are not a flat list of records
WORLD_GROUP = "WRLD"
CELL_GROUP = "CELL"
DIALOG_GROUP = "DIAL"
