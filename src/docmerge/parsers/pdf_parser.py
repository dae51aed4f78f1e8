"""PDF parser emitting text blocks in reading order."""

from __future__ import annotations

from pathlib import Path

import pymupdf

from docmerge.parsers.normalization import normalize_whitespace
from docmerge.sink.base import Sink

_TEXT_BLOCK = 0


class PdfParser:
    """Emit one paragraph per PyMuPDF text block, page by page."""

    def parse(self, path: Path, sink: Sink) -> None:
        with pymupdf.open(path) as doc:
            for page in doc:
                blocks = page.get_text("blocks")
                ordered = sorted(blocks, key=lambda row: (row[1], row[0], row[5]))
                for block in ordered:
                    if block[6] != _TEXT_BLOCK:
                        continue
                    text = normalize_whitespace(block[4])
                    if text:
                        sink.paragraph(text)
