"""Build artifact discovery in the plugin output directory."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .exceptions import ArtifactNotFound

LOGGER = logging.getLogger(__name__)

ARTIFACT_PREFIX = "index_"
ARTIFACT_SUFFIX = ".js"


@dataclass(frozen=True)
class BuildArtifact:
    """A build bundle read fresh from disk for a single dispatch."""

    file_name: str
    content: bytes
    size_bytes: int

    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


def is_artifact_name(name: str) -> bool:
    return name.startswith(ARTIFACT_PREFIX) and name.endswith(ARTIFACT_SUFFIX)


class ArtifactStore:
    """Locate and read the current build artifact.

    Two selection strategies are supported when several files match the
    ``index_*.js`` convention:

    ``newest``
        Most recent modification time wins; equal times fall back to the
        lexicographically greatest name.
    ``listing``
        First match in directory-listing order (``os.scandir``), which is
        what older tooling did. Order is filesystem dependent.
    """

    def __init__(self, directory: Path, *, selection: str = "newest") -> None:
        if selection not in {"newest", "listing"}:
            raise ValueError(f"Unknown selection strategy: {selection}")
        self.directory = Path(directory)
        self.selection = selection

    def candidates(self) -> List[Path]:
        """Return matching files in directory-listing order."""

        try:
            entries = list(os.scandir(self.directory))
        except FileNotFoundError as exc:
            raise ArtifactNotFound(self.directory, "directory does not exist") from exc
        except NotADirectoryError as exc:
            raise ArtifactNotFound(self.directory, "not a directory") from exc

        matches: List[Path] = []
        for entry in entries:
            if not is_artifact_name(entry.name):
                continue
            try:
                if not entry.is_file():
                    continue
            except OSError:
                continue
            matches.append(Path(entry.path))
        return matches

    def find_latest(self) -> Optional[Path]:
        try:
            matches = self.candidates()
        except ArtifactNotFound:
            return None
        if not matches:
            return None
        if self.selection == "listing":
            return matches[0]

        stamped: List[tuple[int, str, Path]] = []
        for path in matches:
            try:
                mtime = path.stat().st_mtime_ns
            except OSError:
                # Removed between listing and stat.
                continue
            stamped.append((mtime, path.name, path))
        if not stamped:
            return None
        return max(stamped)[2]

    def load_latest(self) -> BuildArtifact:
        """Read the selected artifact fully into memory."""

        path = self.find_latest()
        if path is None:
            raise ArtifactNotFound(self.directory)
        try:
            content = path.read_bytes()
        except OSError as exc:
            raise ArtifactNotFound(self.directory, f"failed to read {path.name}: {exc}") from exc
        LOGGER.debug("Loaded %s (%d bytes)", path.name, len(content))
        return BuildArtifact(file_name=path.name, content=content, size_bytes=len(content))


__all__ = [
    "ARTIFACT_PREFIX",
    "ARTIFACT_SUFFIX",
    "ArtifactStore",
    "BuildArtifact",
    "is_artifact_name",
]
