"""Sequential upload worker.

This module provides:
- UploadWorker: The single consumer of the upload queue

The worker processes one task at a time. Whatever the outcome, the path is
released from the in-flight tracker once its task is done; failed uploads are
logged and not retried. A new filesystem change re-triggers the pipeline.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from flowsync.client.errors import FlowSyncError, NetworkError
from flowsync.client.sync.types import TaskState, UploadOutcome, UploadTask
from flowsync.core.config import UPLOAD_DELAY_SECONDS

if TYPE_CHECKING:
    from flowsync.client.sync.debounce import DebounceFilter
    from flowsync.client.sync.inflight import InflightTracker
    from flowsync.client.sync.queue import UploadQueue
    from flowsync.client.sync.upload import FileUploader

logger = logging.getLogger(__name__)


class UploadWorker:
    """Consumes the upload queue one task at a time.

    Usage:
        worker = UploadWorker(queue, inflight, debounce, uploader)
        worker.start()
        ...
        await queue.join()
        await worker.stop()
    """

    def __init__(
        self,
        queue: UploadQueue,
        inflight: InflightTracker,
        debounce: DebounceFilter,
        uploader: FileUploader,
        delay: float = UPLOAD_DELAY_SECONDS,
        on_outcome: Callable[[UploadOutcome], None] | None = None,
    ) -> None:
        """Initialize the worker.

        Args:
            queue: Queue to consume.
            inflight: Tracker whose entries are released after each task.
            debounce: Filter refreshed after each successful upload.
            uploader: Performs the actual upload.
            delay: Pause between two tasks, in seconds.
            on_outcome: Optional callback invoked with each outcome.
        """
        self._queue = queue
        self._inflight = inflight
        self._debounce = debounce
        self._uploader = uploader
        self._delay = delay
        self._on_outcome = on_outcome
        self._task: asyncio.Task[None] | None = None

        # Statistics
        self._completed_count = 0
        self._error_count = 0

    @property
    def is_running(self) -> bool:
        """Check if the worker loop is running."""
        return self._task is not None and not self._task.done()

    @property
    def completed_count(self) -> int:
        """Get number of successful uploads."""
        return self._completed_count

    @property
    def error_count(self) -> int:
        """Get number of failed uploads."""
        return self._error_count

    def start(self) -> None:
        """Start the worker loop on the running event loop."""
        if self.is_running:
            logger.warning("Upload worker already running")
            return
        self._task = asyncio.get_running_loop().create_task(
            self.run(), name="flowsync-upload-worker"
        )
        logger.debug("Upload worker started")

    async def stop(self) -> None:
        """Stop the worker loop.

        Used at process shutdown; callers wanting queued work to finish should
        wait on the queue first.
        """
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.debug("Upload worker stopped")

    async def run(self) -> None:
        """Process tasks until cancelled."""
        while True:
            task = await self._queue.get()
            try:
                await self.process(task)
            except Exception:
                # Keep consuming; the path was already released by process()
                self._error_count += 1
                logger.exception("Unexpected error while uploading %s", task.path)
            finally:
                self._queue.task_done()
            await asyncio.sleep(self._delay)

    async def process(self, task: UploadTask) -> UploadOutcome:
        """Upload one task and clean up its pipeline state.

        Never raises for upload failures; they are reported in the outcome.

        Args:
            task: The task to process.

        Returns:
            The outcome of the upload.
        """
        self._inflight.mark(task.path, TaskState.UPLOADING)
        started = time.monotonic()
        try:
            outcome = await self._uploader.upload(task.path, task.destination_id)
        except NetworkError as e:
            outcome = UploadOutcome(
                path=task.path,
                status_code=e.status_code,
                body=e.body or "",
                error=str(e),
            )
        except FlowSyncError as e:
            outcome = UploadOutcome(path=task.path, error=str(e))
        finally:
            self._inflight.release(task.path)

        if outcome.success:
            self._completed_count += 1
            # A server-side metadata touch must not re-trigger the same upload
            self._debounce.touch(task.path)
            logger.info(
                "Upload done: %s (%.2fs)", outcome.relative_path, time.monotonic() - started
            )
        else:
            self._error_count += 1
            logger.error("Upload failed in queue: %s: %s", task.path, outcome.error)

        if self._on_outcome:
            try:
                self._on_outcome(outcome)
            except Exception:
                logger.exception("Outcome callback failed for %s", task.path)
        return outcome
