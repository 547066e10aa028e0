"""Bounded upload queue.

This module provides:
- UploadQueue: FIFO hand-off between admission tasks and the upload worker

Enqueueing never blocks: a full queue raises QueueFullError and the caller is
responsible for releasing its in-flight reservation.

The queue wraps an asyncio.Queue and must only be used from the event loop
thread.
"""

from __future__ import annotations

import asyncio
import logging

from flowsync.client.errors import QueueFullError
from flowsync.client.sync.types import UploadTask
from flowsync.core.config import QUEUE_CAPACITY

logger = logging.getLogger(__name__)


class UploadQueue:
    """FIFO queue of upload tasks with a fixed capacity.

    Attributes:
        capacity: Maximum number of pending tasks.
    """

    def __init__(self, capacity: int = QUEUE_CAPACITY) -> None:
        """Initialize the queue.

        Args:
            capacity: Maximum number of pending tasks (must be positive).
        """
        if capacity <= 0:
            raise ValueError(f"Queue capacity must be positive: {capacity}")
        self.capacity = capacity
        self._queue: asyncio.Queue[UploadTask] = asyncio.Queue(maxsize=capacity)

    def put_nowait(self, task: UploadTask) -> None:
        """Add a task without waiting.

        Args:
            task: The task to add.

        Raises:
            QueueFullError: If the queue is at capacity.
        """
        try:
            self._queue.put_nowait(task)
        except asyncio.QueueFull:
            raise QueueFullError(
                f"Upload queue full ({self.capacity} tasks), rejected {task.path}"
            ) from None
        logger.debug("Queued %s (%d pending)", task.path, self._queue.qsize())

    async def get(self) -> UploadTask:
        """Wait for and remove the next task."""
        return await self._queue.get()

    def task_done(self) -> None:
        """Mark the last task returned by get() as processed."""
        self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued task has been processed."""
        await self._queue.join()

    def qsize(self) -> int:
        """Get the number of pending tasks."""
        return self._queue.qsize()

    def full(self) -> bool:
        """Check if the queue is at capacity."""
        return self._queue.full()

    def empty(self) -> bool:
        """Check if the queue has no pending tasks."""
        return self._queue.empty()
