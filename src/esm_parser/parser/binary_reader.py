"""Low-level binary reader with typed read methods and a moving cursor."""

import struct
from pathlib import Path

from esm_parser.parser.errors import TruncatedError


class BinaryReader:
    """Wraps a bytes buffer with typed little-endian reads and a moving cursor.

    Positions are absolute offsets into the buffer. peek_bytes() and
    peek_struct() read without moving; rewind() steps back so the chunk
    dispatcher can look at the next header and leave it for later.
    """

    __slots__ = ("_data", "_pos", "_end")

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0
        self._end = len(data)

    @classmethod
    def from_path(cls, path: Path | str) -> "BinaryReader":
        return cls(Path(path).read_bytes())

    @property
    def position(self) -> int:
        return self._pos

    @property
    def size(self) -> int:
        return self._end

    @property
    def remaining(self) -> int:
        return self._end - self._pos

    def _check(self, what: str, size: int) -> None:
        if size < 0 or self._pos + size > self._end:
            raise TruncatedError(
                f"{what} of {size} bytes at offset {self._pos} "
                f"would exceed boundary at {self._end}"
            )

    def read_exact(self, size: int) -> bytes:
        self._check("Read", size)
        chunk = self._data[self._pos : self._pos + size]
        self._pos += size
        return chunk

    def peek_bytes(self, size: int) -> bytes:
        self._check("Peek", size)
        return self._data[self._pos : self._pos + size]

    def unpack(self, fmt: struct.Struct) -> tuple:
        """Read fmt.size bytes and unpack them with a precompiled Struct."""
        self._check("Read", fmt.size)
        values = fmt.unpack_from(self._data, self._pos)
        self._pos += fmt.size
        return values

    def peek_struct(self, fmt: struct.Struct) -> tuple:
        self._check("Peek", fmt.size)
        return fmt.unpack_from(self._data, self._pos)

    def uint8(self) -> int:
        return self.read_exact(1)[0]

    def uint16(self) -> int:
        return struct.unpack_from("<H", self.read_exact(2))[0]

    def int16(self) -> int:
        return struct.unpack_from("<h", self.read_exact(2))[0]

    def uint32(self) -> int:
        return struct.unpack_from("<I", self.read_exact(4))[0]

    def int32(self) -> int:
        return struct.unpack_from("<i", self.read_exact(4))[0]

    def uint64(self) -> int:
        return struct.unpack_from("<Q", self.read_exact(8))[0]

    def float32(self) -> float:
        return struct.unpack_from("<f", self.read_exact(4))[0]

    def signature(self) -> str:
        """Read a 4-byte type signature (e.g. 'GLOB', 'GRUP').

        Tags are not always printable; bad bytes decode to U+FFFD.
        """
        return self.read_exact(4).decode("ascii", errors="replace")

    def zstring(self, size: int) -> str:
        """Read a fixed-size field holding a null-terminated string.

        Consumes all size bytes; text stops at the first null.
        """
        raw = self.read_exact(size)
        null = raw.find(b"\x00")
        if null != -1:
            raw = raw[:null]
        return raw.decode("utf-8", errors="replace")

    def skip(self, size: int) -> None:
        self._check("Skip", size)
        self._pos += size

    def seek(self, offset: int) -> None:
        """Seek to an absolute position within the bounded region."""
        if offset < 0 or offset > self._end:
            raise TruncatedError(f"Seek to {offset} is outside bounds [0, {self._end}]")
        self._pos = offset

    def rewind(self, size: int) -> None:
        """Step back size bytes. Equivalent to seek(position - size)."""
        if size < 0 or size > self._pos:
            raise TruncatedError(
                f"Rewind of {size} bytes at offset {self._pos} would go before start"
            )
        self._pos -= size
