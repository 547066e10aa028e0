"""Shared configuration for flowsync.

This module defines the agent configuration and the pipeline constants used by
the watcher, the admission pipeline and the upload worker.
"""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_API_BASE = "https://flowen.eu"

LOGIN_PATH = "/api/auth/login"
REFRESH_PATH = "/api/auth/refresh"
TEAMS_PATH = "/api/teams"
UPLOAD_PATH = "/api/upload"

# Upload queue capacity; a full queue rejects instead of blocking
QUEUE_CAPACITY = 200
# Minimum seconds between two admissions of the same path
DEBOUNCE_SECONDS = 3.0
# Pause after each processed upload
UPLOAD_DELAY_SECONDS = 0.1
# Refresh the access token when it expires within this many seconds
TOKEN_REFRESH_WINDOW_SECONDS = 30

DEFAULT_SENDER_EMAIL = "flowen-sync@flowen.eu"
DEFAULT_SENDER_NAME = "Flowen Desktop Sync"


def default_sync_folder() -> Path:
    """Get the platform default sync folder.

    Returns:
        ``%USERPROFILE%\\Flowen`` on Windows, ``~/Flowen`` elsewhere.
    """
    if platform.system() == "Windows":
        profile = os.environ.get("USERPROFILE")
        if profile:
            return Path(profile) / "Flowen"
    return Path.home() / "Flowen"


@dataclass
class AgentConfig:
    """Configuration for the sync agent.

    Attributes:
        api_base: Base URL of the remote service (e.g., "https://flowen.eu").
        sync_folder: Root of the watched tree; uploads must live under it.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates.
        sender_email: Fixed sender address sent with every upload.
        sender_name: Fixed sender name sent with every upload.
        receiver_email: Receiver address sent with every upload.
        queue_capacity: Maximum number of queued upload tasks.
        debounce_seconds: Debounce window per path.
        upload_delay: Delay between two processed uploads, in seconds.
        refresh_window: Token lifetime below which a refresh is attempted.
    """

    api_base: str = DEFAULT_API_BASE
    sync_folder: Path = field(default_factory=default_sync_folder)
    timeout: float = 30.0
    verify_ssl: bool = True
    sender_email: str = DEFAULT_SENDER_EMAIL
    sender_name: str = DEFAULT_SENDER_NAME
    receiver_email: str = ""
    queue_capacity: int = QUEUE_CAPACITY
    debounce_seconds: float = DEBOUNCE_SECONDS
    upload_delay: float = UPLOAD_DELAY_SECONDS
    refresh_window: int = TOKEN_REFRESH_WINDOW_SECONDS

    def __post_init__(self) -> None:
        """Normalize the base URL and sync folder."""
        self.api_base = self.api_base.rstrip("/")
        self.sync_folder = Path(self.sync_folder).expanduser()
