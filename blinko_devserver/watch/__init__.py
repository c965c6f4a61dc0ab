"""Filesystem watching and debounce utilities."""
from __future__ import annotations

from .debounce import DebounceScheduler, SingleShotTimer
from .runtime import ChangeEvent, ChangeStream, FileSystemWatcher, ensure_directory

__all__ = [
    "ChangeEvent",
    "ChangeStream",
    "DebounceScheduler",
    "FileSystemWatcher",
    "SingleShotTimer",
    "ensure_directory",
]
