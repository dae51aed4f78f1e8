"""Contract shared by aggregate sinks and the parsers writing into them."""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable


@runtime_checkable
class Sink(Protocol):
    """Ordered, stateful receiver of structured document content."""

    def begin(self) -> None:
        """Open the aggregated document."""

    def cover_page(self) -> None:
        """Emit the cover page from the document model."""

    def toc(self, entries: Sequence[tuple[str, str]] | None = None) -> None:
        """Emit the table of contents as ``(label, document_name)`` links."""

    def set_document_name(self, name: str) -> None:
        """Start a new source document; anchors are derived from ``name``."""

    def set_document_title(self, title: str) -> None:
        """Emit the display title of the current source document."""

    def heading(self, text: str, level: int = 1) -> None: ...

    def paragraph(self, text: str) -> None: ...

    def verbatim(self, text: str) -> None: ...

    def end(self) -> None:
        """Close the aggregated document."""
