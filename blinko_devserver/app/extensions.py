"""Plain WebSocket wiring for the real-time channel."""
from __future__ import annotations

import json
import logging
import threading
import uuid
from typing import Any, Dict

from flask import Flask, Response, request
from flask_sock import Sock
from simple_websocket import ConnectionClosed

from ..service import DevServer

LOGGER = logging.getLogger(__name__)

REALTIME_ROUTE = "/"


class WebSocketTransport:
    """Deliver JSON text frames to individual WebSocket connections.

    Handler threads register and unregister sockets; the dispatcher thread
    sends and closes them.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sockets: Dict[str, Any] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._sockets)

    def register(self, ws: Any) -> str:
        sid = uuid.uuid4().hex
        with self._lock:
            self._sockets[sid] = ws
        return sid

    def unregister(self, sid: str) -> None:
        with self._lock:
            self._sockets.pop(sid, None)

    def _socket(self, sid: str) -> Any:
        with self._lock:
            ws = self._sockets.get(sid)
        if ws is None:
            raise ConnectionError(f"no open socket for {sid}")
        return ws

    def send(self, sid: str, event: str, payload: Dict[str, Any]) -> None:
        self._socket(sid).send(json.dumps(payload))

    def disconnect(self, sid: str) -> None:
        try:
            ws = self._socket(sid)
        except ConnectionError:
            return
        ws.close()


def register_realtime_route(
    app: Flask,
    server: DevServer,
    transport: WebSocketTransport,
    *,
    route: str = REALTIME_ROUTE,
) -> Sock:
    """Accept WebSocket upgrades on ``route`` and report them to the loop.

    Any origin is accepted. Inbound frames are read and discarded so the
    handler notices when the client goes away.
    """

    sock = Sock(app)

    @sock.route(route)
    def _realtime(ws: Any) -> None:
        sid = transport.register(ws)
        LOGGER.debug("WebSocket connect from %s (sid=%s)", request.remote_addr, sid)
        server.notify_connected(sid)
        try:
            while ws.connected:
                ws.receive()
        except ConnectionClosed:
            pass
        finally:
            transport.unregister(sid)
            LOGGER.debug("WebSocket closed (sid=%s)", sid)
            server.notify_disconnected(sid)

    return sock


def configure_cors(app: Flask) -> None:
    """Allow any origin on plain HTTP responses."""

    @app.after_request
    def add_cors_headers(response: Response) -> Response:
        origin = request.headers.get("Origin")
        response.headers["Access-Control-Allow-Origin"] = origin or "*"
        response.headers.setdefault("Access-Control-Allow-Headers", "Content-Type")
        response.headers.setdefault("Access-Control-Allow-Methods", "GET,OPTIONS")
        if origin:
            response.headers.add("Vary", "Origin")
        return response


__all__ = [
    "REALTIME_ROUTE",
    "WebSocketTransport",
    "configure_cors",
    "register_realtime_route",
]
