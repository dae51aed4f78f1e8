"""Document descriptors and source module registry."""

from .descriptor import document_model_from_dict, load_document_model
from .models import (
    DEFAULT_OUTPUT_NAME,
    DocumentCover,
    DocumentModel,
    DocumentToc,
    OutputName,
    TocItem,
    normalize_output_name,
    normalize_reference,
)
from .modules import FileSet, ModuleRegistry, SourceModule

__all__ = [
    "DEFAULT_OUTPUT_NAME",
    "DocumentCover",
    "DocumentModel",
    "DocumentToc",
    "FileSet",
    "ModuleRegistry",
    "OutputName",
    "SourceModule",
    "TocItem",
    "document_model_from_dict",
    "load_document_model",
    "normalize_output_name",
    "normalize_reference",
]
