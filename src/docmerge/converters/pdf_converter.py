"""XHTML artifact to PDF conversion through PyMuPDF's Story layout engine."""

from __future__ import annotations

import logging
from pathlib import Path

import pymupdf
from lxml import etree

from docmerge.converters.base import ConversionError, load_artifact

logger = logging.getLogger(__name__)

DEFAULT_PAPER_SIZE = "a4"
DEFAULT_MARGIN_POINTS = 36.0
# Consecutive pages that place nothing before layout is abandoned.
MAX_EMPTY_PAGES = 3


class PdfConverter:
    """Lay the artifact out page by page until the story is exhausted."""

    format_name = "pdf"
    extension = "pdf"

    def __init__(self, paper_size: str = DEFAULT_PAPER_SIZE, margin: float = DEFAULT_MARGIN_POINTS) -> None:
        self._paper_size = paper_size
        self._margin = margin

    def convert(self, artifact_path: Path, output_path: Path) -> None:
        logger.debug("Generating: %s", output_path)
        tree = load_artifact(artifact_path)
        html = etree.tostring(tree.getroot(), encoding="unicode")

        mediabox = pymupdf.paper_rect(self._paper_size)
        if mediabox.is_empty:
            raise ConversionError(f"Unknown paper size: {self._paper_size}")
        where = mediabox + (self._margin, self._margin, -self._margin, -self._margin)
        if where.is_empty or not where.is_valid:
            raise ConversionError(
                f"Page margin {self._margin:g} leaves no printable area on {self._paper_size} paper"
            )

        try:
            story = pymupdf.Story(html=html)
            writer = pymupdf.DocumentWriter(str(output_path))
            try:
                pages = 0
                empty_pages = 0
                more = True
                while more:
                    device = writer.begin_page(mediabox)
                    more, filled = story.place(where)
                    story.draw(device)
                    writer.end_page()
                    pages += 1

                    empty_pages = empty_pages + 1 if filled.is_empty else 0
                    if more and empty_pages >= MAX_EMPTY_PAGES:
                        raise ConversionError(
                            f"PDF layout stopped making progress after {pages} page(s); "
                            "content does not fit the printable area"
                        )
            finally:
                writer.close()
        except ConversionError:
            output_path.unlink(missing_ok=True)
            raise
        except Exception as exc:  # pragma: no cover - wrapper branch
            output_path.unlink(missing_ok=True)
            raise ConversionError(f"PDF layout failed: {exc}") from exc

        logger.info("Wrote %d page(s) to %s", pages, output_path)
