"""Exceptions raised by the flowsync client.

All errors derive from FlowSyncError so the command layer can report them
uniformly. Errors raised inside the admission pipeline or the upload worker are
logged there and never escape to the process.
"""

from __future__ import annotations


class FlowSyncError(Exception):
    """Base exception for flowsync errors."""


class AuthError(FlowSyncError):
    """Not authenticated, or the service rejected the credentials."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PathError(FlowSyncError):
    """A path lies outside the sync root or cannot be encoded."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class FileReadError(FlowSyncError):
    """A file could not be read from disk."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class NetworkError(FlowSyncError):
    """Transport failure or non-success response from the service.

    Attributes:
        status_code: HTTP status, None for transport failures.
        body: Response body kept for diagnostics.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class QueueFullError(FlowSyncError):
    """The upload queue is at capacity."""


class ParseError(FlowSyncError):
    """Malformed JSON or an undecodable token."""


class WatchError(FlowSyncError):
    """The folder watcher could not be started."""
