"""Structured error family surfaced by the aggregation pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar


@dataclass(frozen=True, slots=True)
class Position:
    """Line/column locator inside a text document (both 1-based)."""

    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(slots=True)
class AggregationError(Exception):
    """Fatal aggregation failure carrying kind, message, source and position."""

    message: str
    source: Path | None = None
    position: Position | None = None

    kind: ClassVar[str] = "aggregation"

    def __str__(self) -> str:
        if self.source is None:
            return self.message
        return f"{self.message} (path={self.source})"

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind,
            "message": self.message,
            "source": str(self.source) if self.source is not None else None,
            "line": self.position.line if self.position is not None else None,
            "column": self.position.column if self.position is not None else None,
        }


class ParseError(AggregationError):
    """A source document could not be parsed into the sink."""

    kind = "parse"

    def __str__(self) -> str:
        if self.source is None:
            return self.message
        location = str(self.source)
        if self.position is not None:
            location = f"{location}:{self.position}"
        return f"Error parsing {location}: {self.message}"


class UnknownParserError(AggregationError):
    """A module references a parser id that nobody registered."""

    kind = "unknown-parser"


@dataclass(slots=True)
class RenderError(AggregationError):
    """The converter failed to turn the artifact into the final output."""

    format_name: str = "output"

    kind: ClassVar[str] = "conversion"

    def __str__(self) -> str:
        label = self.format_name.upper()
        if self.position is not None and self.source is not None:
            return f"Error creating {label} from {self.source}:{self.position}\n{self.message}"
        return f"Error creating {label} from {self.source}: {self.message}"


class ArtifactIOError(AggregationError):
    """Directory creation or artifact write/close failure."""

    kind = "io"


class DescriptorError(AggregationError):
    """A document descriptor file is malformed."""

    kind = "descriptor"


class SinkStateError(RuntimeError):
    """Raised when a sink operation is called outside its lifecycle."""
