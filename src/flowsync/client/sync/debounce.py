"""Per-path debouncing of filesystem events.

This module provides:
- DebounceFilter: Suppresses repeated admission of a path within a window

The record of last admission times is never pruned, so it grows with the number
of distinct paths touched during the life of the process.
"""

from __future__ import annotations

import logging
import threading
import time

from flowsync.client.sync.types import normalize_path
from flowsync.core.config import DEBOUNCE_SECONDS

logger = logging.getLogger(__name__)


class DebounceFilter:
    """Admits a path at most once per debounce window.

    Check-and-record happens under one lock holding only dictionary access,
    so two simultaneous events for the same path cannot both be admitted.
    """

    def __init__(self, window: float = DEBOUNCE_SECONDS) -> None:
        """Initialize the filter.

        Args:
            window: Minimum number of seconds between two admissions.
        """
        self._window = window
        self._last_admitted: dict[str, float] = {}
        self._lock = threading.Lock()

    @property
    def window(self) -> float:
        """Get the debounce window in seconds."""
        return self._window

    def admit(self, path: str, now: float | None = None) -> bool:
        """Try to admit an event for a path.

        Args:
            path: Filesystem path of the event.
            now: Current time in seconds, defaults to ``time.time()``.

        Returns:
            True if admitted (and recorded), False if still inside the window.
        """
        key = normalize_path(path)
        if now is None:
            now = time.time()

        elapsed: float | None = None
        with self._lock:
            last = self._last_admitted.get(key)
            if last is not None and now - last < self._window:
                elapsed = now - last
            else:
                self._last_admitted[key] = now

        if elapsed is not None:
            logger.debug("Debounced %s (%.1fs ago)", key, elapsed)
            return False
        return True

    def touch(self, path: str, now: float | None = None) -> None:
        """Record an admission for a path unconditionally."""
        key = normalize_path(path)
        if now is None:
            now = time.time()
        with self._lock:
            self._last_admitted[key] = now

    def last_admitted(self, path: str) -> float | None:
        """Get the last admission time of a path, if any."""
        with self._lock:
            return self._last_admitted.get(normalize_path(path))

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_admitted)
