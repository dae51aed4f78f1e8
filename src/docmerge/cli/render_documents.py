"""CLI entrypoint aggregating module sources into one rendered document."""

from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from docmerge.aggregator import Aggregator
from docmerge.config import SUPPORTED_FORMATS, RenderSettings
from docmerge.converters import build_default_converters
from docmerge.document.descriptor import load_document_model
from docmerge.document.models import DocumentModel
from docmerge.document.modules import ModuleRegistry
from docmerge.errors import AggregationError
from docmerge.parsers import build_default_parsers

logger = logging.getLogger(__name__)


def build_aggregator(settings: RenderSettings, *, keep_partial_artifact: bool = False) -> Aggregator:
    registry = ModuleRegistry.default(settings.base_dir)
    converters = build_default_converters(paper_size=settings.paper_size, margin=settings.page_margin)
    return Aggregator(
        registry,
        build_default_parsers(),
        converters[settings.output_format],
        keep_partial_artifact=keep_partial_artifact,
    )


def render(settings: RenderSettings, descriptor: Path | None, *, keep_partial_artifact: bool = False) -> dict[str, object]:
    """Run one aggregation and return the JSON-ready result payload."""

    model = load_document_model(descriptor) if descriptor is not None else DocumentModel()
    aggregator = build_aggregator(settings, keep_partial_artifact=keep_partial_artifact)
    file_set = {} if model.has_toc else aggregator.registry.collect_file_set()
    result = aggregator.run(file_set, model, settings.output_dir)
    return result.to_dict()


def build_arg_parser(description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--base-dir", help="Directory holding one source folder per module")
    parser.add_argument("--output-dir", help="Directory receiving the artifact and the output")
    parser.add_argument("--descriptor", help="JSON document descriptor (outputName, cover, toc)")
    parser.add_argument("--format", choices=SUPPORTED_FORMATS, help="Output format")
    parser.add_argument("--paper-size", help="Paper size understood by PyMuPDF, e.g. a4 or letter")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def settings_from_args(args: argparse.Namespace) -> RenderSettings:
    """Environment (and .env) settings, overridden by explicit flags."""

    environ = dict(os.environ)
    for name, value in (
        ("DOCMERGE_BASE_DIR", args.base_dir),
        ("DOCMERGE_OUTPUT_DIR", args.output_dir),
        ("DOCMERGE_FORMAT", args.format),
        ("DOCMERGE_PAPER_SIZE", args.paper_size),
    ):
        if value:
            environ[name] = value
    return RenderSettings.from_env(environ)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if verbose else logging.INFO,
    )


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = build_arg_parser("Aggregate module sources into one PDF or HTML document")
    parser.add_argument(
        "--keep-partial-artifact",
        action="store_true",
        help="Keep the intermediate artifact when a source fails to parse",
    )
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        settings = settings_from_args(args)
    except ValueError as exc:
        logger.error("Configuration error: %s", exc)
        return 2

    descriptor = Path(args.descriptor) if args.descriptor else None
    try:
        payload = render(settings, descriptor, keep_partial_artifact=args.keep_partial_artifact)
    except AggregationError as exc:
        logger.error("%s", exc)
        print(json.dumps({"error": exc.to_dict()}, ensure_ascii=False, indent=2))
        return 1

    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
