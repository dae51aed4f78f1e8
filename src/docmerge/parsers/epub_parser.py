"""EPUB parser emitting document items in spine order."""

from __future__ import annotations

import logging
from pathlib import Path

import ebooklib
from ebooklib import epub

from docmerge.parsers.xhtml_parser import emit_markup
from docmerge.sink.base import Sink

logger = logging.getLogger(__name__)


class EpubParser:
    def parse(self, path: Path, sink: Sink) -> None:
        book = epub.read_epub(str(path))

        for spine_entry in book.spine:
            item_id = spine_entry[0] if isinstance(spine_entry, tuple) else spine_entry
            item = book.get_item_with_id(item_id)
            if item is None or item.get_type() != ebooklib.ITEM_DOCUMENT:
                continue
            # The generated navigation page duplicates the aggregate TOC.
            if isinstance(item, epub.EpubNav):
                continue

            emitted = emit_markup(item.get_content(), sink)
            logger.debug("EPUB item %s of %s emitted %d blocks", item.get_id(), path.name, emitted)
