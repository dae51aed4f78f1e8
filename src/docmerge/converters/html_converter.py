"""XHTML artifact to standalone HTML conversion."""

from __future__ import annotations

import logging
from pathlib import Path

from lxml import etree

from docmerge.converters.base import ConversionError, load_artifact

logger = logging.getLogger(__name__)


class HtmlConverter:
    """Re-serialize the validated artifact as an HTML5 document."""

    format_name = "html"
    extension = "html"

    def convert(self, artifact_path: Path, output_path: Path) -> None:
        logger.debug("Generating: %s", output_path)
        tree = load_artifact(artifact_path)

        # Drop the XHTML namespace so the HTML serializer emits plain tag names.
        for element in tree.getroot().iter():
            if isinstance(element.tag, str):
                element.tag = etree.QName(element).localname
        etree.cleanup_namespaces(tree)

        markup = etree.tostring(tree, method="html", encoding="unicode", doctype="<!DOCTYPE html>")
        try:
            output_path.write_text(markup + "\n", encoding="utf-8")
        except OSError as exc:
            raise ConversionError(f"Failed to write HTML output: {exc}") from exc
