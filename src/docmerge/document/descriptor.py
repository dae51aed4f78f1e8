"""JSON document descriptor loading."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from docmerge.document.models import DocumentCover, DocumentModel, DocumentToc, TocItem
from docmerge.errors import DescriptorError


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise DescriptorError(f"Descriptor field '{key}' must be a string")
    return value


def _parse_toc(raw: Any) -> DocumentToc | None:
    if raw is None:
        return None
    if isinstance(raw, list):
        raw = {"items": raw}
    if not isinstance(raw, dict):
        raise DescriptorError("Descriptor field 'toc' must be an object or a list")

    raw_items = raw.get("items") or []
    if not isinstance(raw_items, list):
        raise DescriptorError("Descriptor field 'toc.items' must be a list")

    items: list[TocItem] = []
    for index, entry in enumerate(raw_items):
        if not isinstance(entry, dict):
            raise DescriptorError(f"TOC item #{index} must be an object")
        items.append(TocItem(name=_optional_str(entry, "name") or "", ref=_optional_str(entry, "ref")))
    return DocumentToc(name=_optional_str(raw, "name"), items=tuple(items))


def _parse_cover(raw: Any) -> DocumentCover | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise DescriptorError("Descriptor field 'cover' must be an object")
    return DocumentCover(
        title=_optional_str(raw, "title"),
        subtitle=_optional_str(raw, "subtitle"),
        author=_optional_str(raw, "author"),
        company=_optional_str(raw, "company"),
        date=_optional_str(raw, "date"),
    )


def document_model_from_dict(data: Mapping[str, Any]) -> DocumentModel:
    """Build a ``DocumentModel`` from a decoded descriptor payload."""

    if not isinstance(data, Mapping):
        raise DescriptorError("Document descriptor must be a JSON object")
    return DocumentModel(
        output_name=_optional_str(data, "outputName"),
        title=_optional_str(data, "title"),
        toc=_parse_toc(data.get("toc")),
        cover=_parse_cover(data.get("cover")),
    )


def load_document_model(path: str | Path) -> DocumentModel:
    source = Path(path)
    try:
        data = json.loads(source.read_text(encoding="utf-8"))
    except OSError as exc:
        raise DescriptorError(f"Failed to read document descriptor: {exc}", source=source) from exc
    except json.JSONDecodeError as exc:
        raise DescriptorError(f"Malformed document descriptor: {exc.msg}", source=source) from exc

    try:
        return document_model_from_dict(data)
    except DescriptorError as exc:
        raise DescriptorError(exc.message, source=source) from exc
