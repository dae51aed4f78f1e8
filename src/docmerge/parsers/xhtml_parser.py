"""XHTML parser mapping block-level markup onto sink events."""

from __future__ import annotations

from pathlib import Path

from bs4 import BeautifulSoup, Tag

from docmerge.parsers.normalization import normalize_whitespace
from docmerge.sink.base import Sink

_HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
_BLOCK_TAGS = [*_HEADING_TAGS, "p", "li", "blockquote", "pre"]


def _local_name(node: Tag) -> str:
    return node.name.rsplit(":", 1)[-1].lower()


def emit_markup(markup: bytes | str, sink: Sink) -> int:
    """Write headings, paragraphs and preformatted blocks of ``markup``.

    Blocks nested inside another block (a ``p`` inside an ``li``) are emitted
    once, through their outermost ancestor. Returns the number of emitted blocks.
    """

    soup = BeautifulSoup(markup, "xml")
    body = soup.find(lambda tag: _local_name(tag) == "body") or soup

    emitted = 0
    for node in body.find_all(lambda tag: _local_name(tag) in _BLOCK_TAGS):
        if node.find_parent(lambda tag: _local_name(tag) in _BLOCK_TAGS) is not None:
            continue

        name = _local_name(node)
        if name == "pre":
            text = node.get_text()
            if text.strip():
                sink.verbatim(text.strip("\n"))
                emitted += 1
            continue

        text = normalize_whitespace(node.get_text(" ", strip=True))
        if not text:
            continue
        if name in _HEADING_TAGS:
            sink.heading(text, level=int(name[1]))
        else:
            sink.paragraph(text)
        emitted += 1

    if emitted == 0:
        fallback = normalize_whitespace(body.get_text(" ", strip=True))
        if fallback:
            sink.paragraph(fallback)
            emitted = 1
    return emitted


class XhtmlParser:
    """Parse standalone XHTML source documents."""

    def parse(self, path: Path, sink: Sink) -> None:
        emit_markup(path.read_bytes(), sink)
