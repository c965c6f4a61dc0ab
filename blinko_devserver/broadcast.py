"""Connection tracking and artifact fan-out to live clients."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from .artifacts import ArtifactStore, BuildArtifact
from .exceptions import ArtifactNotFound, SendFailure
from .metadata import PluginMetadata

LOGGER = logging.getLogger(__name__)

CODE_EVENT = "code"


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


@dataclass
class ClientConnection:
    sid: str
    state: ConnectionState = ConnectionState.CONNECTING
    connected_at: float = field(default_factory=time.time)
    messages_sent: int = 0

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN


@dataclass(frozen=True)
class DispatchRecord:
    file_name: str
    size_bytes: int
    delivered: int
    dispatched_at: float


class Transport(Protocol):
    """Delivery channel for outbound messages to a single connection."""

    def send(self, sid: str, event: str, payload: Dict[str, Any]) -> None:
        ...

    def disconnect(self, sid: str) -> None:
        ...


class ConnectionRegistry:
    """Active connections keyed by session id.

    Only the dispatcher thread mutates the registry, so no locking is done.
    """

    def __init__(self) -> None:
        self._connections: Dict[str, ClientConnection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, sid: object) -> bool:
        return sid in self._connections

    def get(self, sid: str) -> Optional[ClientConnection]:
        return self._connections.get(sid)

    def register(self, sid: str) -> ClientConnection:
        existing = self._connections.get(sid)
        if existing is not None:
            return existing
        connection = ClientConnection(sid=sid)
        self._connections[sid] = connection
        return connection

    def mark_open(self, sid: str) -> ClientConnection:
        connection = self.register(sid)
        if connection.state is ConnectionState.CONNECTING:
            connection.state = ConnectionState.OPEN
        return connection

    def close(self, sid: str) -> Optional[ClientConnection]:
        connection = self._connections.pop(sid, None)
        if connection is not None:
            connection.state = ConnectionState.CLOSED
        return connection

    def open_connections(self) -> List[ClientConnection]:
        return [conn for conn in self._connections.values() if conn.is_open]


class Broadcaster:
    """Send build artifacts to every open client and sync late joiners."""

    def __init__(
        self,
        *,
        store: ArtifactStore,
        metadata: PluginMetadata,
        transport: Transport,
        registry: Optional[ConnectionRegistry] = None,
    ) -> None:
        self.store = store
        self.metadata = metadata
        self.transport = transport
        self.registry = registry or ConnectionRegistry()
        self.last_dispatch: Optional[DispatchRecord] = None

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------
    def on_connect(self, sid: str) -> ClientConnection:
        connection = self.registry.mark_open(sid)
        LOGGER.info("New plugin client connected (sid=%s, clients=%d)", sid, len(self.registry))
        try:
            artifact = self.store.load_latest()
        except ArtifactNotFound as exc:
            LOGGER.debug("No build to sync for %s: %s", sid, exc)
            return connection
        self._deliver(connection, self.build_payload(artifact))
        return connection

    def on_disconnect(self, sid: str) -> None:
        connection = self.registry.close(sid)
        if connection is None:
            return
        LOGGER.info(
            "Plugin client disconnected (sid=%s, sent=%d, clients=%d)",
            sid,
            connection.messages_sent,
            len(self.registry),
        )

    def close_all(self) -> int:
        closed = 0
        for connection in list(self.registry.open_connections()):
            try:
                self.transport.disconnect(connection.sid)
            except Exception as exc:  # transport errors are per-connection
                LOGGER.warning("Failed to close client %s: %s", connection.sid, exc)
            self.registry.close(connection.sid)
            closed += 1
        return closed

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def build_payload(self, artifact: BuildArtifact) -> Dict[str, Any]:
        return {
            "type": CODE_EVENT,
            "fileName": artifact.file_name,
            "metadata": self.metadata.to_dict(),
            "code": artifact.text(),
        }

    def broadcast(self, artifact: BuildArtifact) -> int:
        """Send ``artifact`` to every open connection; return deliveries."""

        payload = self.build_payload(artifact)
        targets = self.registry.open_connections()
        delivered = 0
        for connection in targets:
            if self._deliver(connection, payload):
                delivered += 1
        self.last_dispatch = DispatchRecord(
            file_name=artifact.file_name,
            size_bytes=artifact.size_bytes,
            delivered=delivered,
            dispatched_at=time.time(),
        )
        LOGGER.info(
            "Build code size: %d bytes, Filename: %s (delivered to %d/%d client(s))",
            artifact.size_bytes,
            artifact.file_name,
            delivered,
            len(targets),
        )
        return delivered

    def dispatch_latest(self) -> Optional[int]:
        """Load the current artifact and broadcast it; ``None`` if there is none."""

        try:
            artifact = self.store.load_latest()
        except ArtifactNotFound as exc:
            LOGGER.error("%s; skipping dispatch", exc)
            return None
        return self.broadcast(artifact)

    def _deliver(self, connection: ClientConnection, payload: Dict[str, Any]) -> bool:
        if not connection.is_open:
            return False
        try:
            self.transport.send(connection.sid, CODE_EVENT, payload)
        except Exception as exc:  # any transport error is isolated to this client
            LOGGER.warning("%s", SendFailure(connection.sid, exc))
            return False
        connection.messages_sent += 1
        return True


__all__ = [
    "CODE_EVENT",
    "Broadcaster",
    "ClientConnection",
    "ConnectionRegistry",
    "ConnectionState",
    "DispatchRecord",
    "Transport",
]
