"""In-flight tracking of queued and uploading paths.

This module provides:
- InflightTracker: At most one queued-or-uploading task per path
"""

from __future__ import annotations

import logging
import threading

from flowsync.client.sync.types import TaskState, normalize_path

logger = logging.getLogger(__name__)


class InflightTracker:
    """Tracks paths between successful admission and worker completion.

    A path is a member from ``try_reserve`` until ``release``. Membership test
    and insertion happen under a single lock acquisition.
    """

    def __init__(self) -> None:
        self._states: dict[str, TaskState] = {}
        self._lock = threading.Lock()

    def try_reserve(self, path: str) -> bool:
        """Reserve a path if it is not already in flight.

        Args:
            path: Filesystem path to reserve.

        Returns:
            True if the path was reserved, False if it was already in flight.
        """
        key = normalize_path(path)
        with self._lock:
            if key in self._states:
                reserved = False
            else:
                self._states[key] = TaskState.RESERVED
                reserved = True

        if not reserved:
            logger.debug("Already in flight, dropping duplicate: %s", key)
        return reserved

    def release(self, path: str) -> None:
        """Remove a path from the in-flight set (no-op if absent)."""
        key = normalize_path(path)
        with self._lock:
            self._states.pop(key, None)

    def mark(self, path: str, state: TaskState) -> None:
        """Advance the state of a reserved path.

        Paths that are not reserved are left alone; a released path never
        re-enters the set through this method.
        """
        key = normalize_path(path)
        with self._lock:
            if key in self._states:
                self._states[key] = state

    def state(self, path: str) -> TaskState:
        """Get the current state of a path (IDLE if not in flight)."""
        with self._lock:
            return self._states.get(normalize_path(path), TaskState.IDLE)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, str):
            return False
        with self._lock:
            return normalize_path(path) in self._states

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)

    def snapshot(self) -> set[str]:
        """Get a copy of the paths currently in flight."""
        with self._lock:
            return set(self._states)
