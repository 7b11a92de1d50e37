"""Fixed-size plain-data layouts read straight off the cursor.

A FixedLayout is a compiled little-endian struct plus field names. Reading
one consumes exactly layout.size bytes and performs no validation: a
malformed file still produces a structurally valid (if meaningless) value.
"""

import struct
from collections import namedtuple

from esm_parser.parser.binary_reader import BinaryReader


class FixedLayout:
    """A named, statically-sized record layout."""

    __slots__ = ("name", "struct", "_tuple")

    def __init__(self, name: str, fmt: str, fields: tuple[str, ...]) -> None:
        if not fmt.startswith("<"):
            fmt = "<" + fmt
        self.name = name
        self.struct = struct.Struct(fmt)
        self._tuple = namedtuple(name, fields)
        if len(self.struct.unpack(bytes(self.struct.size))) != len(fields):
            raise ValueError(f"Layout {name}: {fmt!r} does not match {len(fields)} fields")

    @property
    def size(self) -> int:
        return self.struct.size

    def read(self, reader: BinaryReader):
        return self._tuple._make(reader.unpack(self.struct))

    def peek(self, reader: BinaryReader):
        return self._tuple._make(reader.peek_struct(self.struct))

    def __repr__(self) -> str:
        return f"FixedLayout({self.name}, size={self.size})"


# --- Chunk headers ---

RECORD_HEADER = FixedLayout(
    "RawRecordHeader", "<4sIIIIHH",
    ("type", "size", "flags", "form_id", "revision", "version", "unknown"),
)

GROUP_HEADER = FixedLayout(
    "RawGroupHeader", "<4sI4sIII",
    ("type", "size", "label", "group_type", "stamp", "unknown"),
)

FIELD_HEADER = FixedLayout("RawFieldHeader", "<4sH", ("type", "size"))


# --- Field payloads ---

# TES4 file header
HEDR = FixedLayout("HEDR", "<fiI", ("version", "num_records", "next_object_id"))

# Object bounds
OBND = FixedLayout("OBND", "<hhhhhh", ("x1", "y1", "z1", "x2", "y2", "z2"))

# Faction relation
XNAM = FixedLayout("XNAM", "<IiI", ("faction", "modifier", "combat_reaction"))

# Spell data
SPIT = FixedLayout("SPIT", "<IIIB3s", ("type", "cost", "level", "flags", "unused"))

# Effect data
EFIT = FixedLayout(
    "EFIT", "<IIIIi",
    ("magnitude", "area", "duration", "type", "actor_value"),
)

# Condition (28 bytes in FO3/FNV)
CTDA = FixedLayout(
    "CTDA", "<B3sfH2sIIII",
    ("type_flags", "unused", "value", "function", "padding",
     "param1", "param2", "run_on", "reference"),
)
