"""Single-file upload to the Flowen service.

This module provides:
- content_type_for: Static extension to MIME type lookup
- relative_to_root: Path of a file relative to the sync root
- FileUploader: Reads a file and posts it as a multipart request

Used by both the queue worker and the manual upload command.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from flowsync.client.errors import FileReadError, NetworkError, PathError
from flowsync.client.sync.types import UploadOutcome

if TYPE_CHECKING:
    from flowsync.client.api import FlowenClient
    from flowsync.client.auth import TokenManager
    from flowsync.core.config import AgentConfig

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

MIME_TYPES: dict[str, str] = {
    # Documents
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    # Images
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    # Video
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mov": "video/quicktime",
    # Text
    "txt": "text/plain",
    "html": "text/html",
    "htm": "text/html",
    "css": "text/css",
    "js": "text/javascript",
    "json": "application/json",
}


def content_type_for(path: str | Path) -> str:
    """Get the MIME type for a file from its extension.

    Args:
        path: File path or name.

    Returns:
        The MIME type, or ``application/octet-stream`` if unknown.
    """
    suffix = Path(path).suffix
    if not suffix:
        return DEFAULT_CONTENT_TYPE
    return MIME_TYPES.get(suffix[1:].lower(), DEFAULT_CONTENT_TYPE)


def relative_to_root(path: str | Path, root: str | Path) -> str:
    """Compute the path of a file relative to the sync root.

    Args:
        path: Path of the file.
        root: Sync root directory.

    Returns:
        Relative path with forward slashes.

    Raises:
        PathError: If the file is not under the root or the path is not
            valid text.
    """
    file_path = Path(path).resolve()
    try:
        rel_path = file_path.relative_to(Path(root).resolve())
    except ValueError:
        raise PathError(f"File is not in sync folder: {path}", str(path)) from None

    # Use forward slashes regardless of the host separator
    rel_str = str(rel_path).replace("\\", "/")
    try:
        rel_str.encode("utf-8")
    except UnicodeEncodeError:
        raise PathError(f"Invalid path encoding: {path!r}", str(path)) from None
    if rel_str in ("", "."):
        raise PathError(f"Not a file below the sync folder: {path}", str(path))
    return rel_str


class FileUploader:
    """Uploads one file with the current access token.

    Usage:
        uploader = FileUploader(client, tokens, config)
        outcome = await uploader.upload("/home/me/Flowen/a.pdf", "team-1")
    """

    def __init__(
        self,
        client: FlowenClient,
        tokens: TokenManager,
        config: AgentConfig,
    ) -> None:
        """Initialize the uploader.

        Args:
            client: HTTP client for the service.
            tokens: Token manager providing the bearer token.
            config: Agent configuration (sync root and text fields).
        """
        self._client = client
        self._tokens = tokens
        self._config = config

    @property
    def sync_root(self) -> Path:
        """Get the sync root directory."""
        return self._config.sync_folder

    async def _read_file(self, path: str) -> bytes:
        """Read a file off the event loop thread."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, Path(path).read_bytes)
        except OSError as e:
            raise FileReadError(f"Failed to read file: {e}", path) from e

    def _fields(self, destination_id: str, relative_path: str) -> dict[str, str]:
        """Build the text fields of the multipart request."""
        return {
            "senderEmail": self._config.sender_email,
            "senderName": self._config.sender_name,
            "receiverEmail": self._config.receiver_email,
            "teamId": destination_id,
            "relativePath": relative_path,
        }

    async def upload(self, path: str, destination_id: str) -> UploadOutcome:
        """Upload a file to a destination.

        Args:
            path: Absolute path of the file.
            destination_id: Identifier of the destination team.

        Returns:
            Outcome of a successful upload.

        Raises:
            AuthError: If not logged in.
            FileReadError: If the file cannot be read.
            PathError: If the file is outside the sync root.
            NetworkError: On transport failure or non-success status.
        """
        logger.debug("Uploading %s to team %s", path, destination_id)
        token = await self._tokens.ensure_valid()

        content = await self._read_file(path)
        relative_path = relative_to_root(path, self.sync_root)
        content_type = content_type_for(path)
        logger.debug("Read %d bytes from %s (%s)", len(content), relative_path, content_type)

        response = await self._client.upload(
            token,
            file_name=os.path.basename(path),
            content=content,
            content_type=content_type,
            fields=self._fields(destination_id, relative_path),
        )
        if not response.is_success:
            raise NetworkError(
                f"Upload failed ({response.status_code}): {response.text}",
                response.status_code,
                response.text,
            )

        logger.info("Uploaded %s (%d bytes)", relative_path, len(content))
        return UploadOutcome(
            path=path,
            relative_path=relative_path,
            size=len(content),
            success=True,
            status_code=response.status_code,
            body=response.text,
        )
