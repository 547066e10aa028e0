"""Initial scan of the sync folder.

This module provides:
- scan_files: Depth-first listing of every regular file under a directory
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def scan_files(root: str | Path) -> list[str]:
    """List every file below a directory, depth first.

    Args:
        root: Directory to scan.

    Returns:
        Absolute paths of the files found, directories excluded.

    Raises:
        OSError: If a directory cannot be listed.
    """
    files: list[str] = []
    root_path = Path(root)
    if not root_path.is_dir():
        return files

    def _scan(directory: Path) -> None:
        with os.scandir(directory) as entries:
            for entry in sorted(entries, key=lambda e: e.name):
                if entry.is_dir(follow_symlinks=False):
                    _scan(Path(entry.path))
                elif entry.is_file():
                    files.append(os.path.abspath(entry.path))

    _scan(root_path)
    logger.debug("Scanned %s: %d files", root_path, len(files))
    return files
