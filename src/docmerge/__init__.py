"""Aggregate module sources into one ordered document and convert it."""

from docmerge.aggregator import Aggregator, RenderResult
from docmerge.document import DocumentModel, ModuleRegistry, SourceModule, TocItem
from docmerge.errors import AggregationError, ParseError, RenderError

__all__ = [
    "AggregationError",
    "Aggregator",
    "DocumentModel",
    "ModuleRegistry",
    "ParseError",
    "RenderError",
    "RenderResult",
    "SourceModule",
    "TocItem",
]
