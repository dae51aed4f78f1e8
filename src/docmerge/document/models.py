"""Immutable document descriptor shared by the resolver, sink and aggregator."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

DEFAULT_OUTPUT_NAME = "target"


class OutputName(str):
    """An output base name that has already been normalized."""


def _split_last_segment(name: str) -> tuple[str, str]:
    cut = max(name.rfind("/"), name.rfind("\\"))
    return name[: cut + 1], name[cut + 1 :]


def normalize_output_name(name: str | None) -> OutputName:
    """Assign the default name or strip the trailing extension of ``name``.

    Only the final path segment is inspected, and a leading dot does not count
    as an extension separator. Normalized values are returned untouched, so the
    function is idempotent even for names like ``book.v2.pdf``.
    """

    if isinstance(name, OutputName):
        return name
    if name is None or not name.strip():
        return OutputName(DEFAULT_OUTPUT_NAME)

    directory, segment = _split_last_segment(name.strip())
    dot = segment.rfind(".")
    if dot > 0:
        segment = segment[:dot]
    if not segment:
        return OutputName(DEFAULT_OUTPUT_NAME)
    return OutputName(directory + segment)


def normalize_reference(ref: str) -> str:
    """Canonicalise separators to ``/`` and drop the extension of the last segment."""

    directory, segment = _split_last_segment(ref.strip().replace("\\", "/"))
    dot = segment.rfind(".")
    if dot > 0:
        segment = segment[:dot]
    return directory + segment


@dataclass(frozen=True, slots=True)
class TocItem:
    """One flat table-of-contents entry pointing at a source document."""

    name: str = ""
    ref: str | None = None


@dataclass(frozen=True, slots=True)
class DocumentToc:
    name: str | None = None
    items: tuple[TocItem, ...] = ()


@dataclass(frozen=True, slots=True)
class DocumentCover:
    """Metadata printed on the cover page of the aggregated document."""

    title: str | None = None
    subtitle: str | None = None
    author: str | None = None
    company: str | None = None
    date: str | None = None


@dataclass(frozen=True, slots=True)
class DocumentModel:
    """Caller-supplied description of the aggregated output."""

    output_name: str | None = None
    title: str | None = None
    toc: DocumentToc | None = None
    cover: DocumentCover | None = field(default=None)

    @property
    def has_toc(self) -> bool:
        return self.toc is not None and bool(self.toc.items)

    @property
    def is_normalized(self) -> bool:
        return isinstance(self.output_name, OutputName)

    def normalized(self) -> "DocumentModel":
        """Return a copy whose output name went through ``normalize_output_name``."""

        if self.is_normalized:
            return self
        return replace(self, output_name=normalize_output_name(self.output_name))

    def display_title(self) -> str:
        if self.cover is not None and self.cover.title:
            return self.cover.title
        if self.title:
            return self.title
        return str(normalize_output_name(self.output_name))
