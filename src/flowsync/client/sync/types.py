"""Types shared by the admission pipeline and the upload worker.

This module provides:
- ChangeKind: Kind of filesystem change that can trigger an upload
- ChangeEvent: A raw change observed by the watcher
- UploadTask: A queued unit of work for the upload worker
- UploadOutcome: Result of processing one task
- TaskState: Per-path lifecycle states
- normalize_path: Canonical key used by the debounce and in-flight maps
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path


def normalize_path(path: str | Path) -> str:
    """Return the canonical absolute form of a path.

    Debounce records and in-flight entries are keyed on this value so that
    ``a/./b`` and ``a/b`` refer to the same entry.
    """
    return os.path.normpath(os.path.abspath(os.fspath(path)))


class ChangeKind(Enum):
    """Kind of filesystem change."""

    CREATED = "create"
    MODIFIED = "modify"


@dataclass(frozen=True)
class ChangeEvent:
    """A filesystem change produced by the watcher.

    Consumed synchronously by the admission pipeline, never stored.
    """

    path: str
    kind: ChangeKind
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class UploadTask:
    """A file waiting to be uploaded to a destination."""

    path: str
    destination_id: str


class TaskState(Enum):
    """Lifecycle of a path through the pipeline."""

    IDLE = auto()
    RESERVED = auto()
    QUEUED = auto()
    UPLOADING = auto()
    UPLOADED = auto()
    FAILED = auto()


@dataclass
class UploadOutcome:
    """Result of one upload attempt.

    Attributes:
        path: Absolute path of the local file.
        relative_path: Path relative to the sync root, forward slashes.
        size: Number of bytes sent.
        success: Whether the service accepted the upload.
        status_code: HTTP status of the response, if one was received.
        body: Response body.
        error: Error message when the upload failed.
    """

    path: str
    relative_path: str = ""
    size: int = 0
    success: bool = False
    status_code: int | None = None
    body: str = ""
    error: str | None = None

    @property
    def state(self) -> TaskState:
        """Terminal state reached by this attempt."""
        return TaskState.UPLOADED if self.success else TaskState.FAILED
