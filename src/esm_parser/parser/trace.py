"""Trace sinks for the chunk walker.

The parser reports every chunk it visits as emit(depth, event). Depth is the
nesting level and only drives indentation. Swap the sink to redirect or
capture the trace; nothing in the parser writes to stdout directly.
"""

import logging
import sys
from dataclasses import dataclass
from typing import TextIO


@dataclass(frozen=True, slots=True)
class TraceEvent:
    kind: str        # "record", "group", "field", "unknown", "skip"
    tag: str         # 4-char chunk signature
    size: int        # declared content size
    detail: str = ""

    def __str__(self) -> str:
        text = f"{self.tag} [{self.kind}] size={self.size}"
        return f"{text} {self.detail}" if self.detail else text


class TraceSink:
    """Sink that drops everything. Subclasses override emit()."""

    def emit(self, depth: int, event: TraceEvent) -> None:
        pass


class PrintTraceSink(TraceSink):
    """Write one indented line per event (two spaces per depth level)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def emit(self, depth: int, event: TraceEvent) -> None:
        stream = self._stream if self._stream is not None else sys.stdout
        print(f"{'  ' * depth}{event}", file=stream)


class RecordingTraceSink(TraceSink):
    """Keep (depth, event) pairs in memory."""

    def __init__(self) -> None:
        self.events: list[tuple[int, TraceEvent]] = []

    def emit(self, depth: int, event: TraceEvent) -> None:
        self.events.append((depth, event))

    def of_kind(self, kind: str) -> list[TraceEvent]:
        return [event for _, event in self.events if event.kind == kind]


class LoggingTraceSink(TraceSink):
    """Forward events to a logger at DEBUG level."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("esm_parser.trace")

    def emit(self, depth: int, event: TraceEvent) -> None:
        self._logger.debug("%s%s", "  " * depth, event)
