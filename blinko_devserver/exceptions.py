"""Exception hierarchy for the plugin dev server."""
from __future__ import annotations

from pathlib import Path
from typing import Optional


class DevServerError(Exception):
    """Base class for dev server failures."""


class MetadataLoadFailure(DevServerError):
    """Raised when ``plugin.json`` is missing or cannot be parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Could not load plugin metadata from {path}: {reason}")
        self.path = path
        self.reason = reason


class ArtifactNotFound(DevServerError):
    """Raised when the output directory holds no build artifact."""

    def __init__(self, directory: Path, reason: Optional[str] = None) -> None:
        message = f"No build file found in {directory}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.directory = directory


class SendFailure(DevServerError):
    """Raised when delivering a payload to a single client fails."""

    def __init__(self, sid: str, cause: BaseException) -> None:
        super().__init__(f"Failed to send to client {sid}: {cause}")
        self.sid = sid
        self.cause = cause


class WatcherStartFailure(DevServerError):
    """Raised when the output directory cannot be created or watched."""

    def __init__(self, directory: Path, cause: BaseException) -> None:
        super().__init__(f"Cannot watch {directory}: {cause}")
        self.directory = directory
        self.cause = cause


__all__ = [
    "ArtifactNotFound",
    "DevServerError",
    "MetadataLoadFailure",
    "SendFailure",
    "WatcherStartFailure",
]
