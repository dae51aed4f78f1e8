"""Shared parser contract and the parser-id dispatch table."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from docmerge.errors import UnknownParserError
from docmerge.sink.base import Sink


@runtime_checkable
class DocumentParser(Protocol):
    """Protocol that every source format parser must implement."""

    def parse(self, path: Path, sink: Sink) -> None:
        """Emit the structured content of ``path`` into ``sink``."""


class ParserRegistry:
    """Resolve parser ids to parser instances registered up front."""

    def __init__(self, parsers: dict[str, DocumentParser] | None = None) -> None:
        self._parsers: dict[str, DocumentParser] = {}
        for parser_id, parser in (parsers or {}).items():
            self.register(parser_id, parser)

    @property
    def parser_ids(self) -> list[str]:
        return list(self._parsers)

    def __contains__(self, parser_id: object) -> bool:
        return parser_id in self._parsers

    def register(self, parser_id: str, parser: DocumentParser) -> None:
        if not parser_id:
            raise ValueError("Parser id cannot be empty")
        self._parsers[parser_id] = parser

    def get(self, parser_id: str) -> DocumentParser:
        try:
            return self._parsers[parser_id]
        except KeyError:
            raise UnknownParserError(f"No parser registered for id '{parser_id}'") from None

    def parse(self, source_path: str | Path, parser_id: str, sink: Sink) -> None:
        self.get(parser_id).parse(Path(source_path), sink)
