"""Change admission and upload pipeline.

Architecture:
    FolderWatcher → DebounceFilter → InflightTracker → UploadQueue → UploadWorker

Components:
- **FolderWatcher**: Watches the sync folder, one admission task per change
- **DebounceFilter**: Suppresses repeated admissions of a path (3s window)
- **InflightTracker**: At most one queued-or-uploading task per path
- **UploadQueue**: Bounded FIFO between admissions and the worker
- **UploadWorker**: Single sequential consumer performing the uploads
- **SyncOrchestrator**: Wires the above and exposes the manual entry points

All public symbols are re-exported here.
"""

from flowsync.client.sync.debounce import DebounceFilter
from flowsync.client.sync.inflight import InflightTracker
from flowsync.client.sync.orchestrator import ScheduleResult, SyncOrchestrator
from flowsync.client.sync.queue import UploadQueue
from flowsync.client.sync.scanner import scan_files
from flowsync.client.sync.types import (
    ChangeEvent,
    ChangeKind,
    TaskState,
    UploadOutcome,
    UploadTask,
    normalize_path,
)
from flowsync.client.sync.upload import (
    DEFAULT_CONTENT_TYPE,
    MIME_TYPES,
    FileUploader,
    content_type_for,
    relative_to_root,
)
from flowsync.client.sync.watcher import FolderWatcher
from flowsync.client.sync.worker import UploadWorker

__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "MIME_TYPES",
    "ChangeEvent",
    "ChangeKind",
    "DebounceFilter",
    "FileUploader",
    "FolderWatcher",
    "InflightTracker",
    "ScheduleResult",
    "SyncOrchestrator",
    "TaskState",
    "UploadOutcome",
    "UploadQueue",
    "UploadTask",
    "UploadWorker",
    "content_type_for",
    "normalize_path",
    "relative_to_root",
    "scan_files",
]
