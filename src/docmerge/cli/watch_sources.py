"""CLI entrypoint that re-renders the aggregated document on source changes."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

from docmerge.automation.watcher import SourceTreeWatcher
from docmerge.cli.render_documents import build_arg_parser, configure_logging, render, settings_from_args
from docmerge.config import RenderSettings
from docmerge.document.modules import ModuleRegistry
from docmerge.errors import AggregationError

logger = logging.getLogger(__name__)


def render_once(settings: RenderSettings, descriptor: Path | None) -> bool:
    try:
        payload = render(settings, descriptor)
    except AggregationError as exc:
        logger.error("Render failed: %s", exc)
        return False
    print(json.dumps(payload, ensure_ascii=False), flush=True)
    return True


async def watch(settings: RenderSettings, descriptor: Path | None) -> None:
    registry = ModuleRegistry.default(settings.base_dir)

    async def _on_change(paths: list[Path]) -> None:
        logger.info("Detected %d changed source file(s), re-rendering", len(paths))
        await asyncio.to_thread(render_once, settings, descriptor)

    watcher = SourceTreeWatcher(
        [registry.module_root(module) for module in registry],
        {module.extension for module in registry},
        _on_change,
        debounce_seconds=settings.watch_debounce_seconds,
    )
    await watcher.start()
    try:
        await asyncio.Event().wait()
    finally:
        watcher.stop()


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = build_arg_parser("Watch module sources and re-render on every change")
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        settings = settings_from_args(args)
    except ValueError as exc:
        logger.error("Configuration error: %s", exc)
        return 2

    descriptor = Path(args.descriptor) if args.descriptor else None
    render_once(settings, descriptor)
    try:
        asyncio.run(watch(settings, descriptor))
    except ValueError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Watcher interrupted by user.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
