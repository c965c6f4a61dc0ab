"""The dev server core: watcher, debounce and broadcaster on one loop."""
from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Any, Dict, Optional

from .artifacts import ArtifactStore
from .broadcast import Broadcaster, ConnectionRegistry, Transport
from .config import DevServerConfig
from .events import ChangeEvent, ClientConnected, ClientDisconnected, Message, Shutdown
from .metadata import PluginMetadata, load_metadata
from .watch import DebounceScheduler, FileSystemWatcher
from .watch.debounce import Clock

LOGGER = logging.getLogger(__name__)


class DevServer:
    """Own the registry, debounce timer and watcher for one output directory.

    Every state change happens on the dispatcher thread. Other threads
    (watchdog observer, WebSocket handlers) only call :meth:`post` or the
    ``notify_*`` helpers, which enqueue a message for the loop.
    """

    def __init__(
        self,
        config: DevServerConfig,
        *,
        transport: Transport,
        metadata: Optional[PluginMetadata] = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.config = config
        self.metadata = metadata if metadata is not None else load_metadata(config.plugin_json)
        self.store = ArtifactStore(config.dist_dir, selection=config.selection)
        self.broadcaster = Broadcaster(
            store=self.store,
            metadata=self.metadata,
            transport=transport,
            registry=ConnectionRegistry(),
        )
        self.debounce = DebounceScheduler(
            self._on_settled,
            delay=config.debounce_seconds,
            clock=clock,
        )
        self.watcher = FileSystemWatcher(config.dist_dir, recursive=True, sink=self.post)
        self.dispatch_count = 0

        self._inbox: "queue.Queue[Message]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._stopped = threading.Event()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start watching and run the dispatcher loop in a background thread.

        Raises ``WatcherStartFailure`` when the output directory cannot be
        created or watched.
        """

        if self.running:
            return
        self._stopped.clear()
        self.watcher.start()
        thread = threading.Thread(target=self._run, name="devserver-dispatch", daemon=True)
        self._thread = thread
        thread.start()
        LOGGER.info("Dev server dispatcher started (dist=%s)", self.config.dist_dir)

    def stop(self, timeout: float = 5.0) -> None:
        thread = self._thread
        if thread is not None and thread.is_alive():
            self.post(Shutdown())
            thread.join(timeout=timeout)
            if thread.is_alive():
                LOGGER.warning("Dispatcher did not stop within %.1fs", timeout)
        else:
            self._shutdown_components()
        self._thread = None

    # ------------------------------------------------------------------
    # Inbox
    # ------------------------------------------------------------------
    def post(self, message: Message) -> None:
        self._inbox.put(message)

    def notify_connected(self, sid: str) -> None:
        self.post(ClientConnected(sid))

    def notify_disconnected(self, sid: str) -> None:
        self.post(ClientDisconnected(sid))

    def pump(self, timeout: Optional[float] = 0.0) -> bool:
        """Process queued messages, then fire the debounce timer if due.

        Blocks up to ``timeout`` (or the pending debounce deadline, whichever
        is sooner) for the first message. Returns ``False`` once a
        ``Shutdown`` message has been handled.
        """

        wait = self.debounce.next_timeout()
        if wait is None or (timeout is not None and timeout < wait):
            wait = timeout
        try:
            message: Optional[Message] = self._inbox.get(timeout=wait)
        except queue.Empty:
            message = None

        while message is not None:
            if isinstance(message, Shutdown):
                LOGGER.debug("Dispatcher shutting down: %s", message.reason)
                self._shutdown_components()
                return False
            self._handle(message)
            try:
                message = self._inbox.get_nowait()
            except queue.Empty:
                message = None

        self.debounce.poll()
        return True

    def snapshot(self) -> Dict[str, Any]:
        last = self.broadcaster.last_dispatch
        return {
            "status": "ok" if self.running else "stopped",
            "clients": len(self.broadcaster.registry),
            "watching": self.watcher.running,
            "dist_dir": str(self.config.dist_dir),
            "dispatches": self.dispatch_count,
            "last_dispatch": None
            if last is None
            else {
                "fileName": last.file_name,
                "sizeBytes": last.size_bytes,
                "delivered": last.delivered,
                "dispatchedAt": last.dispatched_at,
            },
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _run(self) -> None:
        try:
            while self.pump(timeout=None):
                pass
        except Exception:
            LOGGER.exception("Dispatcher loop crashed")
            self._shutdown_components()

    def _handle(self, message: Message) -> None:
        try:
            if isinstance(message, ChangeEvent):
                LOGGER.debug("Change detected: %s %s", message.event_type, message.path)
                self.debounce.on_event(message.path)
            elif isinstance(message, ClientConnected):
                self.broadcaster.on_connect(message.sid)
            elif isinstance(message, ClientDisconnected):
                self.broadcaster.on_disconnect(message.sid)
            else:
                LOGGER.debug("Ignoring unknown message %r", message)
        except Exception:
            LOGGER.exception("Failed to handle %r", message)

    def _on_settled(self) -> None:
        LOGGER.info("Build completed; sending latest bundle")
        delivered = self.broadcaster.dispatch_latest()
        if delivered is not None:
            self.dispatch_count += 1

    def _shutdown_components(self) -> None:
        if self._stopped.is_set():
            return
        self._stopped.set()
        if self.debounce.cancel():
            LOGGER.debug("Cancelled pending debounce window")
        self.watcher.stop()
        closed = self.broadcaster.close_all()
        LOGGER.info("Dev server stopped (closed %d client(s))", closed)


__all__ = ["DevServer"]
