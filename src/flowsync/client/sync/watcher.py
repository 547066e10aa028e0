"""File system watcher feeding the admission pipeline.

This module provides:
- ChangeHandler: watchdog handler turning create/modify events into ChangeEvents
- FolderWatcher: Watches a directory tree and spawns one admission task per event

Architecture:
    watchdog observer thread ─call_soon_threadsafe─► event loop ─► admission task

The observer thread only hands events over to the loop, so a slow admission
never delays event delivery. Rename, delete and directory events are ignored.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TYPE_CHECKING

from watchdog.events import (
    FileCreatedEvent,
    FileModifiedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from flowsync.client.errors import WatchError
from flowsync.client.sync.types import ChangeEvent, ChangeKind

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

logger = logging.getLogger(__name__)

AdmitCallback = Callable[[ChangeEvent], Awaitable[None]]


class ChangeHandler(FileSystemEventHandler):
    """Forwards file create/modify events to the event loop."""

    def __init__(self, watcher: FolderWatcher) -> None:
        super().__init__()
        self._watcher = watcher

    def _handle_event(self, event: FileSystemEvent, kind: ChangeKind) -> None:
        if event.is_directory:
            return
        src_path = event.src_path
        if isinstance(src_path, bytes):
            src_path = src_path.decode("utf-8", errors="surrogateescape")
        self._watcher.dispatch(ChangeEvent(path=str(src_path), kind=kind))

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle created event."""
        if isinstance(event, FileCreatedEvent):
            self._handle_event(event, ChangeKind.CREATED)

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle modified event."""
        if isinstance(event, FileModifiedEvent):
            self._handle_event(event, ChangeKind.MODIFIED)


class FolderWatcher:
    """Watches a directory tree recursively.

    Each qualifying event is scheduled as its own task on the event loop, so
    admissions for distinct paths run concurrently.

    Usage:
        watcher = FolderWatcher(path, admit, loop)
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(
        self,
        watch_path: str | Path,
        admit: AdmitCallback,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        """Initialize the watcher.

        Args:
            watch_path: Directory to watch.
            admit: Coroutine function run once per qualifying event.
            loop: Event loop hosting the admission tasks.
        """
        self._watch_path = Path(watch_path).expanduser()
        self._admit = admit
        self._loop = loop
        self._handler = ChangeHandler(self)
        self._observer: BaseObserver | None = None
        self._watching = False
        self._lock = threading.Lock()
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def watch_path(self) -> Path:
        """Get the watched directory path."""
        return self._watch_path

    @property
    def is_watching(self) -> bool:
        """Check if new events are being admitted."""
        with self._lock:
            return self._watching

    @property
    def pending_count(self) -> int:
        """Get number of admission tasks not yet finished."""
        return len(self._pending)

    def start(self) -> None:
        """Start watching for changes.

        Raises:
            WatchError: If the path is not a directory or cannot be watched.
        """
        if self.is_watching:
            return
        if not self._watch_path.is_dir():
            raise WatchError(f"Watch path must be a directory: {self._watch_path}")

        observer = Observer()
        try:
            observer.schedule(self._handler, str(self._watch_path), recursive=True)
            observer.start()
        except OSError as e:
            raise WatchError(f"Failed to watch folder {self._watch_path}: {e}") from e

        with self._lock:
            self._observer = observer
            self._watching = True
        logger.info("Watching folder: %s", self._watch_path)

    def stop(self) -> None:
        """Stop admitting new events.

        Admission tasks already spawned and queued uploads run to completion.
        """
        with self._lock:
            if not self._watching:
                return
            self._watching = False
            observer = self._observer
            self._observer = None

        if observer is not None:
            observer.stop()
            observer.join(timeout=5.0)
        logger.info("Stopped watching: %s", self._watch_path)

    def dispatch(self, event: ChangeEvent) -> None:
        """Hand an event over to the event loop (called from the observer thread)."""
        if not self.is_watching:
            return
        logger.debug("File changed: %s (%s)", event.path, event.kind.value)
        try:
            self._loop.call_soon_threadsafe(self._spawn, event)
        except RuntimeError:
            # Loop already closed during shutdown
            logger.debug("Event loop closed, dropping event for %s", event.path)

    def _spawn(self, event: ChangeEvent) -> None:
        task = self._loop.create_task(self._run_admission(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _run_admission(self, event: ChangeEvent) -> None:
        try:
            await self._admit(event)
        except Exception:
            logger.exception("Admission failed for %s", event.path)

    def __enter__(self) -> FolderWatcher:
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.stop()
