"""FictionBook parser with raw and zipped container support."""

from __future__ import annotations

from io import BytesIO
from pathlib import Path
from zipfile import ZipFile

from lxml import etree

from docmerge.errors import ParseError, Position
from docmerge.parsers.normalization import normalize_whitespace
from docmerge.sink.base import Sink

_ZIP_MAGIC = b"PK\x03\x04"
_PARAGRAPH_TAGS = {"p", "v", "subtitle", "text-author"}
_CONTAINER_TAGS = {"poem", "stanza", "cite", "epigraph"}


def _local_name(node: etree._Element) -> str:
    if not isinstance(node.tag, str):
        return ""
    return etree.QName(node).localname


def _text_of(node: etree._Element) -> str:
    return normalize_whitespace(" ".join(node.itertext()))


class Fb2Parser:
    """Emit FB2 body sections as nested headings and paragraphs."""

    def parse(self, path: Path, sink: Sink) -> None:
        payload = self._read_payload(path)
        parser = etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False, huge_tree=False)
        try:
            root = etree.fromstring(payload, parser=parser)
        except etree.XMLSyntaxError as exc:
            line, column = exc.position
            raise ParseError(exc.msg or str(exc), source=path, position=Position(line, column)) from exc

        bodies = [child for child in root if _local_name(child) == "body"]
        if not bodies:
            raise ValueError("FictionBook document has no <body>")

        for body in bodies:
            # Notes bodies carry footnotes, not reading text.
            if body.get("name") == "notes":
                continue
            for child in body:
                self._emit(child, sink, depth=1)

    def _emit(self, node: etree._Element, sink: Sink, depth: int) -> None:
        name = _local_name(node)
        if name == "section":
            for child in node:
                self._emit(child, sink, depth=depth + 1 if _local_name(child) == "section" else depth)
        elif name == "title":
            text = _text_of(node)
            if text:
                sink.heading(text, level=min(depth + 1, 6))
        elif name in _PARAGRAPH_TAGS:
            text = _text_of(node)
            if text:
                sink.paragraph(text)
        elif name in _CONTAINER_TAGS:
            for child in node:
                self._emit(child, sink, depth)

    def _read_payload(self, path: Path) -> bytes:
        raw = path.read_bytes()
        if not raw.startswith(_ZIP_MAGIC):
            return raw

        with ZipFile(BytesIO(raw), "r") as archive:
            candidates = [name for name in archive.namelist() if not name.endswith("/")]
            fb2_name = next((name for name in candidates if name.lower().endswith(".fb2")), None)
            target = fb2_name or (candidates[0] if candidates else None)
            if not target:
                raise ValueError("Zipped FB2 container has no readable files")
            return archive.read(target)
