"""Artifact converters keyed by output format."""

from .base import ConversionError, DocumentConverter, load_artifact
from .html_converter import HtmlConverter
from .pdf_converter import PdfConverter


def build_default_converters(
    *,
    paper_size: str | None = None,
    margin: float | None = None,
) -> dict[str, DocumentConverter]:
    """Return the converter map for every supported output format."""

    pdf_options: dict[str, object] = {}
    if paper_size is not None:
        pdf_options["paper_size"] = paper_size
    if margin is not None:
        pdf_options["margin"] = margin
    return {
        "pdf": PdfConverter(**pdf_options),
        "html": HtmlConverter(),
    }


__all__ = [
    "ConversionError",
    "DocumentConverter",
    "HtmlConverter",
    "PdfConverter",
    "build_default_converters",
    "load_artifact",
]
