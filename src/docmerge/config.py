"""Runtime configuration for rendering and watching."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Mapping

import pymupdf

DEFAULT_BASE_DIR = "."
DEFAULT_OUTPUT_DIR = "target/docmerge"
DEFAULT_FORMAT = "pdf"
DEFAULT_PAPER_SIZE = "a4"
DEFAULT_PAGE_MARGIN = 36.0
DEFAULT_WATCH_DEBOUNCE_SECONDS = 1.0
SUPPORTED_FORMATS = ("pdf", "html")


def _parse_positive_float(*, name: str, raw_value: str, minimum: float = 0.0) -> float:
    try:
        value = float(raw_value)
    except ValueError:
        raise ValueError(f"{name} must be a number") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _check_printable_area(paper_size: str, page_margin: float) -> None:
    width, height = pymupdf.paper_size(paper_size)
    if width <= 0 or height <= 0:
        raise ValueError(f"DOCMERGE_PAPER_SIZE is not a known paper size: {paper_size}")
    if 2 * page_margin >= min(width, height):
        raise ValueError(f"DOCMERGE_PAGE_MARGIN leaves no printable area on {paper_size} paper")


@dataclass(frozen=True, slots=True)
class RenderSettings:
    """Validated settings shared by the render and watch entrypoints."""

    base_dir: Path
    output_dir: Path
    output_format: str = DEFAULT_FORMAT
    paper_size: str = DEFAULT_PAPER_SIZE
    page_margin: float = DEFAULT_PAGE_MARGIN
    watch_debounce_seconds: float = DEFAULT_WATCH_DEBOUNCE_SECONDS

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "RenderSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        base_dir_raw = source.get("DOCMERGE_BASE_DIR", DEFAULT_BASE_DIR).strip()
        if not base_dir_raw:
            raise ValueError("DOCMERGE_BASE_DIR cannot be empty")

        output_dir_raw = source.get("DOCMERGE_OUTPUT_DIR", DEFAULT_OUTPUT_DIR).strip()
        if not output_dir_raw:
            raise ValueError("DOCMERGE_OUTPUT_DIR cannot be empty")

        output_format = source.get("DOCMERGE_FORMAT", DEFAULT_FORMAT).strip().lower()
        if output_format not in SUPPORTED_FORMATS:
            supported = ", ".join(SUPPORTED_FORMATS)
            raise ValueError(f"DOCMERGE_FORMAT must be one of: {supported}")

        paper_size = source.get("DOCMERGE_PAPER_SIZE", DEFAULT_PAPER_SIZE).strip().lower()
        if not paper_size:
            raise ValueError("DOCMERGE_PAPER_SIZE cannot be empty")

        page_margin = _parse_positive_float(
            name="DOCMERGE_PAGE_MARGIN",
            raw_value=source.get("DOCMERGE_PAGE_MARGIN", str(DEFAULT_PAGE_MARGIN)).strip(),
        )
        _check_printable_area(paper_size, page_margin)

        debounce = _parse_positive_float(
            name="DOCMERGE_WATCH_DEBOUNCE_SECONDS",
            raw_value=source.get("DOCMERGE_WATCH_DEBOUNCE_SECONDS", str(DEFAULT_WATCH_DEBOUNCE_SECONDS)).strip(),
            minimum=0.01,
        )

        return cls(
            base_dir=Path(base_dir_raw),
            output_dir=Path(output_dir_raw),
            output_format=output_format,
            paper_size=paper_size,
            page_margin=page_margin,
            watch_debounce_seconds=debounce,
        )
