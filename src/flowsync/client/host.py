"""Host integration helpers.

This module provides:
- create_sync_folder: Create the sync folder if missing
- mount_as_drive: Expose the sync folder as a drive letter (Windows only)
"""

from __future__ import annotations

import logging
import platform
import subprocess
from pathlib import Path

from flowsync.client.errors import FlowSyncError

logger = logging.getLogger(__name__)


class HostError(FlowSyncError):
    """A host integration step failed."""


def create_sync_folder(path: str | Path) -> Path:
    """Create the sync folder and its parents.

    Args:
        path: Folder to create.

    Returns:
        The created (or already existing) folder.

    Raises:
        HostError: If the folder cannot be created.
    """
    folder = Path(path).expanduser()
    try:
        folder.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise HostError(f"Failed to create folder: {e}") from e
    logger.info("Folder created: %s", folder)
    return folder


def mount_as_drive(folder: str | Path, drive_letter: str) -> str:
    """Map a folder to a drive letter with ``subst``.

    Best effort; only supported on Windows.

    Args:
        folder: Folder to expose.
        drive_letter: Single drive letter, e.g. "E".

    Returns:
        Status message.

    Raises:
        HostError: If mounting is unsupported or fails.
    """
    if platform.system() != "Windows":
        raise HostError("Drive mounting only supported on Windows")

    letter = drive_letter.rstrip(":").upper()
    if len(letter) != 1 or not letter.isalpha():
        raise HostError(f"Invalid drive letter: {drive_letter}")

    try:
        result = subprocess.run(
            ["subst", f"{letter}:", str(folder)],
            capture_output=True,
            text=True,
            check=False,
            creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
        )
    except OSError as e:
        raise HostError(f"Command failed: {e}") from e

    if result.returncode != 0:
        raise HostError(f"Failed to mount drive: {result.stderr.strip()}")
    logger.info("Mounted %s as %s:", folder, letter)
    return f"Mounted {folder} as {letter}:"
