"""Exceptions raised while walking a plugin file.

Every error carries the stream offset where it was detected. None of them
are recovered inside the parser: a broken size accounting invalidates the
offsets of every following sibling.
"""


class EsmError(Exception):
    """Base class for all plugin parsing errors."""


class TruncatedError(EsmError, ValueError):
    """A read ran past the end of the buffer."""


class ParseError(EsmError):
    """A chunk handler consumed a different number of bytes than declared."""


class UnexpectedChunkShape(EsmError):
    """A record was found where a group was required, or vice versa."""


class DecompressionError(EsmError):
    """A compressed record's zlib stream could not be inflated."""


class UnimplementedError(EsmError, NotImplementedError):
    """The file uses a feature this parser does not decode (e.g. lstrings)."""
