"""Sync orchestration.

This module provides:
- ScheduleResult: Counts reported by the initial bulk sync
- SyncOrchestrator: Binds the token manager, admission pipeline, queue,
  worker and watcher together

Architecture:
    FolderWatcher ─► admit() ─► DebounceFilter ─► InflightTracker ─► UploadQueue
                                                                          │
                          TokenManager ◄── FileUploader ◄── UploadWorker ◄┘

Every piece of shared state has its own lock and every critical section is
pure in-memory work. The watcher and the worker only meet through the
in-flight tracker, the debounce record and the queue.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from flowsync.client.auth import TokenManager
from flowsync.client.errors import FlowSyncError, QueueFullError, WatchError
from flowsync.client.sync.debounce import DebounceFilter
from flowsync.client.sync.inflight import InflightTracker
from flowsync.client.sync.queue import UploadQueue
from flowsync.client.sync.scanner import scan_files
from flowsync.client.sync.types import (
    ChangeEvent,
    TaskState,
    UploadOutcome,
    UploadTask,
    normalize_path,
)
from flowsync.client.sync.upload import FileUploader
from flowsync.client.sync.watcher import FolderWatcher
from flowsync.client.sync.worker import UploadWorker

if TYPE_CHECKING:
    from collections.abc import Callable

    from flowsync.client.api import FlowenClient
    from flowsync.core.config import AgentConfig

logger = logging.getLogger(__name__)


@dataclass
class ScheduleResult:
    """Result of scheduling a bulk sync.

    Attributes:
        found: Number of files discovered by the scan.
        scheduled: Number of files queued for upload.
        failed: Number of files that could not be queued.
    """

    found: int = 0
    scheduled: int = 0
    failed: int = 0

    @property
    def message(self) -> str:
        """Human readable summary."""
        if self.found == 0:
            return "No files to sync"
        return (
            f"Initial sync queued: {self.scheduled} files scheduled, "
            f"{self.failed} failed to schedule"
        )


class SyncOrchestrator:
    """State bag for the sync agent.

    Must be created and used from within a running event loop.

    Usage:
        async with FlowenClient(config) as client:
            sync = SyncOrchestrator(config, client)
            await sync.login(email, password)
            sync.select_destination(team_id)
            sync.start()
            await sync.initial_sync()
            sync.start_watching()
    """

    def __init__(
        self,
        config: AgentConfig,
        client: FlowenClient,
        tokens: TokenManager | None = None,
        on_outcome: Callable[[UploadOutcome], None] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Agent configuration.
            client: HTTP client for the service.
            tokens: Optional token manager (created from the client if omitted).
            on_outcome: Optional callback invoked with every worker outcome.
        """
        self._config = config
        self._client = client
        self._tokens = tokens or TokenManager(client, refresh_window=config.refresh_window)

        self._debounce = DebounceFilter(config.debounce_seconds)
        self._inflight = InflightTracker()
        self._queue = UploadQueue(config.queue_capacity)
        self._uploader = FileUploader(client, self._tokens, config)
        self._worker = UploadWorker(
            self._queue,
            self._inflight,
            self._debounce,
            self._uploader,
            delay=config.upload_delay,
            on_outcome=on_outcome,
        )
        self._watcher: FolderWatcher | None = None

        self._destination_id: str | None = None
        self._destination_lock = threading.Lock()
        self._watcher_lock = threading.Lock()

    # === Components ===

    @property
    def config(self) -> AgentConfig:
        """Get the agent configuration."""
        return self._config

    @property
    def tokens(self) -> TokenManager:
        """Get the token manager."""
        return self._tokens

    @property
    def debounce(self) -> DebounceFilter:
        """Get the debounce filter."""
        return self._debounce

    @property
    def inflight(self) -> InflightTracker:
        """Get the in-flight tracker."""
        return self._inflight

    @property
    def queue(self) -> UploadQueue:
        """Get the upload queue."""
        return self._queue

    @property
    def worker(self) -> UploadWorker:
        """Get the upload worker."""
        return self._worker

    # === Authentication and destination ===

    async def login(self, email: str, password: str) -> None:
        """Log in to the service.

        Raises:
            AuthError: If the service rejects the credentials.
        """
        await self._tokens.login(email, password)

    async def list_teams(self) -> str:
        """Fetch the destinations list as raw JSON text."""
        token = await self._tokens.ensure_valid()
        return await self._client.list_teams(token)

    @property
    def destination_id(self) -> str | None:
        """Get the selected destination."""
        with self._destination_lock:
            return self._destination_id

    def select_destination(self, destination_id: str) -> None:
        """Select the destination that uploads go to."""
        with self._destination_lock:
            self._destination_id = destination_id
        logger.info("Selected team set to: %s", destination_id)

    def _require_destination(self) -> str:
        destination_id = self.destination_id
        if not destination_id:
            raise WatchError("No team selected. Please select a team first.")
        return destination_id

    # === Worker lifecycle ===

    def start(self) -> None:
        """Start the upload worker."""
        self._worker.start()

    async def wait_idle(self) -> None:
        """Wait until every queued task has been processed."""
        await self._queue.join()

    async def shutdown(self) -> None:
        """Stop watching and stop the worker."""
        self.stop_watching()
        await self._worker.stop()

    # === Admission pipeline ===

    def enqueue(self, path: str, destination_id: str) -> bool:
        """Reserve a path and queue it for upload.

        Args:
            path: File to upload.
            destination_id: Destination of the upload.

        Returns:
            True if queued, False if the path was already in flight.

        Raises:
            QueueFullError: If the queue is full; the reservation is rolled back.
        """
        key = normalize_path(path)
        if not self._inflight.try_reserve(key):
            return False

        self._inflight.mark(key, TaskState.QUEUED)
        try:
            self._queue.put_nowait(UploadTask(path=key, destination_id=destination_id))
        except QueueFullError:
            self._inflight.release(key)
            raise
        return True

    def admit(self, event: ChangeEvent) -> bool:
        """Run one admission attempt for a watcher event.

        Failures are logged and the event dropped.

        Returns:
            True if the event resulted in a queued upload.
        """
        destination_id = self.destination_id
        if not destination_id:
            logger.warning("No team selected, dropping event for %s", event.path)
            return False
        if not self._debounce.admit(event.path, event.timestamp):
            return False
        try:
            queued = self.enqueue(event.path, destination_id)
        except QueueFullError as e:
            logger.error("Failed to enqueue: %s", e)
            return False
        if queued:
            logger.info("Queued %s for upload", event.path)
        return queued

    async def handle_change(self, event: ChangeEvent) -> None:
        """Admission task body spawned by the watcher."""
        self.admit(event)

    # === Watching ===

    @property
    def is_watching(self) -> bool:
        """Check if the folder watcher is active."""
        with self._watcher_lock:
            watcher = self._watcher
        return watcher is not None and watcher.is_watching

    def start_watching(self, folder: str | Path | None = None) -> str:
        """Start watching a folder for changes.

        Args:
            folder: Folder to watch, defaults to the sync folder.

        Returns:
            Status message.

        Raises:
            WatchError: If no destination is selected or the folder cannot be
                watched.
        """
        destination_id = self._require_destination()
        folder_path = Path(folder) if folder is not None else self._config.sync_folder

        watcher = FolderWatcher(folder_path, self.handle_change, asyncio.get_running_loop())
        watcher.start()

        with self._watcher_lock:
            previous, self._watcher = self._watcher, watcher
        if previous is not None:
            previous.stop()

        logger.info("Watcher started for team: %s", destination_id)
        return f"Started watching: {folder_path} for team: {destination_id}"

    def stop_watching(self) -> str:
        """Stop admitting new filesystem events.

        Queued and in-progress uploads are not cancelled.
        """
        with self._watcher_lock:
            watcher = self._watcher
        if watcher is not None:
            watcher.stop()
        return "Stopped watching"

    # === Manual entry points ===

    async def upload_file(
        self, path: str | Path, destination_id: str | None = None
    ) -> UploadOutcome:
        """Upload a single file immediately, bypassing the queue.

        Args:
            path: File to upload.
            destination_id: Destination, defaults to the selected one.

        Returns:
            Outcome of the upload.

        Raises:
            FlowSyncError: If the upload failed.
        """
        destination_id = destination_id or self._require_destination()
        key = normalize_path(path)
        outcome = await self._uploader.upload(key, destination_id)
        self._debounce.touch(key)
        return outcome

    async def initial_sync(self, folder: str | Path | None = None) -> ScheduleResult:
        """Queue every file under a folder for upload.

        Files are not debounced; paths already in flight are skipped.

        Args:
            folder: Folder to scan, defaults to the sync folder.

        Returns:
            Scheduling counts (not upload outcomes).

        Raises:
            WatchError: If no destination is selected.
            OSError: If the folder cannot be scanned.
        """
        destination_id = self._require_destination()
        folder_path = Path(folder) if folder is not None else self._config.sync_folder
        logger.info("Starting initial sync of %s", folder_path)

        loop = asyncio.get_running_loop()
        files = await loop.run_in_executor(None, scan_files, folder_path)
        logger.info("Found %d local files", len(files))

        result = ScheduleResult(found=len(files))
        for path in files:
            try:
                if self.enqueue(path, destination_id):
                    result.scheduled += 1
            except FlowSyncError as e:
                logger.warning("Could not schedule %s: %s", path, e)
                result.failed += 1

        logger.info(result.message)
        return result
