"""Debounced source-tree watcher with asyncio queue bridge."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
import threading
from typing import Awaitable, Callable, Iterable

from watchdog.events import FileSystemEvent, PatternMatchingEventHandler
from watchdog.observers import Observer

LOGGER = logging.getLogger(__name__)

IGNORE_PATTERNS = ["*.tmp", "*.part", ".*", "*~", "*.swp"]


class DebouncedSourceHandler(PatternMatchingEventHandler):
    """Forward changed source paths to an asyncio queue once they settle."""

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        queue: asyncio.Queue[Path],
        extensions: Iterable[str],
        debounce_seconds: float = 1.0,
    ) -> None:
        super().__init__(
            patterns=[f"*.{extension}" for extension in extensions],
            ignore_patterns=IGNORE_PATTERNS,
            ignore_directories=True,
            case_sensitive=False,
        )
        self._loop = loop
        self._queue = queue
        self._debounce_seconds = debounce_seconds
        self._timers: dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def _emit_path(self, raw_path: str) -> None:
        with self._lock:
            self._timers.pop(raw_path, None)
        self._loop.call_soon_threadsafe(self._queue.put_nowait, Path(raw_path))

    def _schedule(self, raw_path: str) -> None:
        with self._lock:
            existing = self._timers.pop(raw_path, None)
            if existing is not None:
                existing.cancel()

            timer = threading.Timer(self._debounce_seconds, self._emit_path, args=(raw_path,))
            timer.daemon = True
            self._timers[raw_path] = timer
            timer.start()

    def on_created(self, event: FileSystemEvent) -> None:
        self._schedule(str(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        self._schedule(str(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._schedule(str(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        self._schedule(str(event.dest_path))

    def close(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()


class SourceTreeWatcher:
    """Watch module directories and invoke ``callback`` with each settled batch."""

    def __init__(
        self,
        watch_dirs: Iterable[str | Path],
        extensions: Iterable[str],
        callback: Callable[[list[Path]], Awaitable[None]],
        debounce_seconds: float = 1.0,
    ) -> None:
        self._watch_dirs = [Path(path) for path in watch_dirs]
        self._extensions = list(extensions)
        self._callback = callback
        self._debounce_seconds = debounce_seconds
        self._queue: asyncio.Queue[Path] | None = None
        self._handler: DebouncedSourceHandler | None = None
        self._observer: Observer | None = None
        self._consumer_task: asyncio.Task[None] | None = None

    @property
    def watched_dirs(self) -> list[Path]:
        return [path for path in self._watch_dirs if path.is_dir()]

    async def _consume(self) -> None:
        assert self._queue is not None
        while True:
            batch = [await self._queue.get()]
            while not self._queue.empty():
                batch.append(self._queue.get_nowait())
            try:
                await self._callback(batch)
            except Exception:  # pragma: no cover
                LOGGER.exception("Watcher callback failed for %d change(s)", len(batch))
            finally:
                for _ in batch:
                    self._queue.task_done()

    async def start(self) -> None:
        if self._observer is not None:
            return
        watched = self.watched_dirs
        if not watched:
            raise ValueError("None of the watched source directories exist")

        loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._handler = DebouncedSourceHandler(
            loop=loop,
            queue=self._queue,
            extensions=self._extensions,
            debounce_seconds=self._debounce_seconds,
        )

        observer = Observer()
        for directory in watched:
            observer.schedule(self._handler, str(directory), recursive=True)
            LOGGER.info("Watching %s", directory)
        observer.start()
        self._observer = observer
        self._consumer_task = asyncio.create_task(self._consume())

    def stop(self) -> None:
        observer = self._observer
        if observer is not None:
            observer.stop()
            observer.join(timeout=5.0)
            self._observer = None

        if self._handler is not None:
            self._handler.close()
            self._handler = None

        if self._consumer_task is not None:
            self._consumer_task.cancel()
            self._consumer_task = None
