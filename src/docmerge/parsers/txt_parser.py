"""Plain-text parser with encoding detection."""

from __future__ import annotations

from pathlib import Path
import re

from charset_normalizer import from_bytes

from docmerge.parsers.normalization import normalize_whitespace
from docmerge.sink.base import Sink

_HEADER_FIELDS = {
    "title": "title",
    "author": "author",
    "название": "title",
    "автор": "author",
}
_BLANK_LINE_RE = re.compile(r"\n\s*\n")


class TextParser:
    """Emit blank-line separated paragraphs, with an optional ``Title:`` header."""

    def parse(self, path: Path, sink: Sink) -> None:
        raw = path.read_bytes()
        text = raw.decode(self._detect_encoding(raw)).replace("\r\n", "\n").replace("\r", "\n")

        blocks = [block for block in _BLANK_LINE_RE.split(text) if block.strip()]
        if blocks:
            header = self._parse_header(blocks[0])
            if header is not None:
                blocks = blocks[1:]
                if header.get("title"):
                    sink.heading(header["title"], level=2)
                if header.get("author"):
                    sink.paragraph(header["author"])

        for block in blocks:
            paragraph = normalize_whitespace(block)
            if paragraph:
                sink.paragraph(paragraph)

    def _detect_encoding(self, raw: bytes) -> str:
        if not raw:
            return "utf-8"
        best = from_bytes(raw).best()
        if best and best.encoding:
            name = best.encoding.lower()
            if name in {"windows-1251", "cp1251"}:
                return "cp1251"
            return best.encoding

        for fallback in ("utf-8", "cp1251"):
            try:
                raw.decode(fallback)
                return fallback
            except UnicodeDecodeError:
                continue
        raise ValueError("Could not detect TXT encoding")

    def _parse_header(self, block: str) -> dict[str, str] | None:
        header: dict[str, str] = {}
        for line in block.splitlines():
            normalized = normalize_whitespace(line)
            if not normalized:
                continue
            if ":" not in normalized:
                return None
            key, value = normalized.split(":", 1)
            field = _HEADER_FIELDS.get(key.strip().casefold())
            clean_value = normalize_whitespace(value)
            if not field or not clean_value:
                return None
            header.setdefault(field, clean_value)
        return header or None
