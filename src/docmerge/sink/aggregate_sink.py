"""XHTML aggregate sink writing every source document into one stream."""

from __future__ import annotations

import logging
import re
from typing import Sequence, TextIO

from lxml import etree
from lxml.builder import E

from docmerge.document.models import DocumentModel, normalize_reference
from docmerge.errors import SinkStateError

logger = logging.getLogger(__name__)

XHTML_NAMESPACE = "http://www.w3.org/1999/xhtml"
DEFAULT_TOC_TITLE = "Table of Contents"

_ANCHOR_RE = re.compile(r"[^A-Za-z0-9_-]+")
# Characters that XML 1.0 does not allow in text nodes.
_INVALID_XML_CHARS_RE = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")

_STYLESHEET = """
body { font-family: serif; font-size: 11pt; line-height: 1.4; }
.cover { text-align: center; page-break-after: always; }
.cover-title { font-size: 28pt; margin-top: 120pt; }
nav.toc { page-break-after: always; }
section.document { page-break-before: always; }
pre { font-family: monospace; font-size: 9pt; white-space: pre-wrap; }
"""

_NEW = "new"
_OPEN = "open"
_CLOSED = "closed"


def document_anchor(name: str) -> str:
    """Anchor id for a document name or TOC reference."""

    anchor = _ANCHOR_RE.sub("-", normalize_reference(name)).strip("-")
    return anchor or "document"


def _clean(text: str) -> str:
    return _INVALID_XML_CHARS_RE.sub("", text)


class AggregateSink:
    """Write an ordered XHTML artifact bracketed by ``begin`` and ``end``.

    The sink never owns ``writer``; whoever opened it closes it.
    """

    def __init__(self, writer: TextIO, document_model: DocumentModel) -> None:
        self._writer = writer
        self._model = document_model
        self._state = _NEW
        self._document_name: str | None = None
        self._anchors: set[str] = set()
        self._documents: list[str] = []

    @property
    def documents(self) -> list[str]:
        """Names of the documents written so far, in order."""

        return list(self._documents)

    @property
    def is_closed(self) -> bool:
        return self._state == _CLOSED

    def begin(self) -> None:
        if self._state != _NEW:
            raise SinkStateError("begin() may only be called once per sink")
        self._state = _OPEN

        title = _clean(self._model.display_title())
        self._write('<?xml version="1.0" encoding="UTF-8"?>\n')
        self._write(f'<html xmlns="{XHTML_NAMESPACE}">\n')
        self._write_element(E.head(E.meta(charset="utf-8"), E.title(title), E.style(_STYLESHEET)))
        self._write("<body>\n")

    def cover_page(self) -> None:
        self._require_open("cover_page")
        cover = self._model.cover

        parts = [E.h1(_clean(self._model.display_title()), {"class": "cover-title"})]
        if cover is not None:
            for css_class, value in (
                ("cover-subtitle", cover.subtitle),
                ("cover-author", cover.author),
                ("cover-company", cover.company),
                ("cover-date", cover.date),
            ):
                if value:
                    parts.append(E.p(_clean(value), {"class": css_class}))
        self._write_element(E.div({"class": "cover"}, *parts))

    def toc(self, entries: Sequence[tuple[str, str]] | None = None) -> None:
        """Write the navigation list.

        ``entries`` are ``(label, document_name)`` pairs in the order the
        documents will be written, so every link targets a section that
        exists. Without entries, the TOC items of the document model are
        linked as given.
        """

        self._require_open("toc")
        if not self._model.has_toc:
            return

        assert self._model.toc is not None
        if entries is None:
            entries = [(item.name or item.ref, item.ref) for item in self._model.toc.items if item.ref]
        anchors = self._planned_anchors([name for _label, name in entries])
        links = [
            E.li(E.a(_clean(label), href=f"#{anchor}"))
            for (label, _name), anchor in zip(entries, anchors)
        ]
        if not links:
            return
        toc_title = _clean(self._model.toc.name or DEFAULT_TOC_TITLE)
        self._write_element(E.nav({"class": "toc"}, E.h1(toc_title), E.ol(*links)))

    def set_document_name(self, name: str) -> None:
        self._require_open("set_document_name")
        if not name:
            raise ValueError("Document name cannot be empty")
        self._close_section()

        anchor = self._unique_anchor(document_anchor(name))
        self._write(f'<section class="document" id="{anchor}">\n')
        self._document_name = name
        self._documents.append(name)

    def set_document_title(self, title: str) -> None:
        self._require_document("set_document_title")
        self._write_element(E.h1(_clean(title), {"class": "document-title"}))

    def heading(self, text: str, level: int = 1) -> None:
        self._require_document("heading")
        level = min(max(level, 1), 6)
        self._write_element(E(f"h{level}", _clean(text)))

    def paragraph(self, text: str) -> None:
        self._require_document("paragraph")
        self._write_element(E.p(_clean(text)))

    def verbatim(self, text: str) -> None:
        self._require_document("verbatim")
        self._write_element(E.pre(_clean(text)))

    def end(self) -> None:
        self._require_open("end")
        self._close_section()
        self._write("</body>\n</html>\n")
        self._state = _CLOSED
        logger.debug("Aggregate sink closed after %d documents", len(self._documents))

    def _require_open(self, operation: str) -> None:
        if self._state == _NEW:
            raise SinkStateError(f"{operation}() called before begin()")
        if self._state == _CLOSED:
            raise SinkStateError(f"{operation}() called after end()")

    def _require_document(self, operation: str) -> None:
        self._require_open(operation)
        if self._document_name is None:
            raise SinkStateError(f"{operation}() called before set_document_name()")

    def _close_section(self) -> None:
        if self._document_name is not None:
            self._write("</section>\n")
            self._document_name = None

    def _unique_anchor(self, anchor: str, taken: set[str] | None = None) -> str:
        taken = self._anchors if taken is None else taken
        candidate = anchor
        counter = 2
        while candidate in taken:
            candidate = f"{anchor}-{counter}"
            counter += 1
        taken.add(candidate)
        return candidate

    def _planned_anchors(self, names: list[str]) -> list[str]:
        taken = set(self._anchors)
        return [self._unique_anchor(document_anchor(name), taken) for name in names]

    def _write_element(self, element: etree._Element) -> None:
        self._write(etree.tostring(element, encoding="unicode"))
        self._write("\n")

    def _write(self, text: str) -> None:
        self._writer.write(text)
