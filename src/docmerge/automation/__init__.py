"""Automation services for re-rendering when sources change."""

from docmerge.automation.watcher import DebouncedSourceHandler, SourceTreeWatcher

__all__ = ["DebouncedSourceHandler", "SourceTreeWatcher"]
