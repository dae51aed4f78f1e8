"""Converter contract and the artifact loading shared by implementations."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from lxml import etree

from docmerge.errors import Position


@dataclass(slots=True)
class ConversionError(Exception):
    """Converter failure, positional when the artifact itself is malformed."""

    message: str
    position: Position | None = None

    def __str__(self) -> str:
        if self.position is None:
            return self.message
        return f"{self.message} (line {self.position.line}, column {self.position.column})"


@runtime_checkable
class DocumentConverter(Protocol):
    """Turns a finalized artifact into one output format."""

    format_name: str
    extension: str

    def convert(self, artifact_path: Path, output_path: Path) -> None:
        """Write ``output_path``; raise ``ConversionError`` on failure."""


def load_artifact(artifact_path: Path) -> etree._ElementTree:
    """Parse the artifact strictly, reporting syntax errors with their position."""

    parser = etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False)
    try:
        return etree.parse(str(artifact_path), parser)
    except etree.XMLSyntaxError as exc:
        line, column = exc.position
        raise ConversionError(exc.msg or str(exc), position=Position(line, column)) from exc
    except OSError as exc:
        raise ConversionError(f"Failed to read artifact: {exc}") from exc
