"""Source format parsers and the parser-id registry."""

from .base import DocumentParser, ParserRegistry
from .epub_parser import EpubParser
from .fb2_parser import Fb2Parser
from .pdf_parser import PdfParser
from .txt_parser import TextParser
from .xhtml_parser import XhtmlParser, emit_markup


def build_default_parsers() -> ParserRegistry:
    """Return the registry covering every parser id of the default modules."""

    return ParserRegistry(
        {
            "txt": TextParser(),
            "xhtml": XhtmlParser(),
            "fb2": Fb2Parser(),
            "epub": EpubParser(),
            "pdf": PdfParser(),
        }
    )


__all__ = [
    "DocumentParser",
    "EpubParser",
    "Fb2Parser",
    "ParserRegistry",
    "PdfParser",
    "TextParser",
    "XhtmlParser",
    "build_default_parsers",
    "emit_markup",
]
