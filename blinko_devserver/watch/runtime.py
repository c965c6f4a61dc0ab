"""Filesystem watcher for the plugin build output directory."""
from __future__ import annotations

import logging
import os
import queue
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..exceptions import WatcherStartFailure

LOGGER = logging.getLogger("blinko_devserver.watch")

BUILD_EXTENSION = ".js"
FORWARDED_EVENT_TYPES = frozenset({"created", "modified", "moved", "deleted", "closed"})


@dataclass(frozen=True)
class ChangeEvent:
    path: str
    event_type: str


class ChangeStream:
    """Iterator over change events produced by one watcher run.

    Iteration blocks until the next event and ends once the stream is
    closed. A closed stream stays closed; restart the watcher for a new one.
    """

    _CLOSED = object()

    def __init__(self) -> None:
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, event: ChangeEvent) -> None:
        if not self._closed:
            self._queue.put(event)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put(self._CLOSED)

    def get(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        """Return the next event, or ``None`` on timeout or once closed."""

        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is self._CLOSED:
            self._queue.put(self._CLOSED)
            return None
        return item  # type: ignore[return-value]

    def __iter__(self) -> Iterator[ChangeEvent]:
        while True:
            item = self._queue.get()
            if item is self._CLOSED:
                self._queue.put(self._CLOSED)
                return
            yield item  # type: ignore[misc]


class BuildEventHandler(FileSystemEventHandler):
    """Forward build-file events and drop everything else."""

    def __init__(self, publish: Callable[[ChangeEvent], None], *, extension: str = BUILD_EXTENSION) -> None:
        super().__init__()
        self._publish = publish
        self._extension = extension

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        if event.event_type not in FORWARDED_EVENT_TYPES:
            return
        raw_path = event.src_path
        if event.event_type == "moved":
            raw_path = getattr(event, "dest_path", "") or raw_path
        path = os.fsdecode(raw_path)
        if not path.endswith(self._extension):
            return
        self._publish(ChangeEvent(path=path, event_type=event.event_type))


def ensure_directory(directory: Path) -> Path:
    """Create ``directory`` if needed; raise ``WatcherStartFailure`` otherwise."""

    target = Path(directory).expanduser()
    if target.is_dir():
        return target
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise WatcherStartFailure(target, exc) from exc
    LOGGER.info("Created %s directory", target)
    return target


class FileSystemWatcher:
    """Watch the output directory and publish qualifying change events.

    Events go to ``sink`` when one is given; otherwise ``start()`` returns a
    fresh :class:`ChangeStream` for the caller to iterate.
    """

    def __init__(
        self,
        directory: Path,
        *,
        recursive: bool = True,
        extension: str = BUILD_EXTENSION,
        sink: Optional[Callable[[ChangeEvent], None]] = None,
    ) -> None:
        self.directory = Path(directory)
        self.recursive = recursive
        self.extension = extension
        self._sink = sink
        self._observer: Optional[Observer] = None
        self._stream: Optional[ChangeStream] = None

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self) -> Optional[ChangeStream]:
        if self._observer is not None:
            return self._stream

        directory = ensure_directory(self.directory)
        stream: Optional[ChangeStream] = None
        publish = self._sink
        if publish is None:
            stream = ChangeStream()
            publish = stream.put

        handler = BuildEventHandler(publish, extension=self.extension)
        observer = Observer()
        try:
            observer.schedule(handler, str(directory), recursive=self.recursive)
            observer.start()
        except OSError as exc:
            raise WatcherStartFailure(directory, exc) from exc

        self._observer = observer
        self._stream = stream
        LOGGER.info("Watching %s for %s changes (recursive=%s)", directory, self.extension, self.recursive)
        return stream

    def stop(self) -> None:
        observer = self._observer
        if observer is None:
            return
        self._observer = None
        observer.stop()
        observer.join(timeout=5.0)
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        LOGGER.debug("Stopped watching %s", self.directory)


__all__ = [
    "BUILD_EXTENSION",
    "BuildEventHandler",
    "ChangeEvent",
    "ChangeStream",
    "FileSystemWatcher",
    "ensure_directory",
]
