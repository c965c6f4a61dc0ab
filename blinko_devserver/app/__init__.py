"""Application factories for the real-time channel and the status page."""
from __future__ import annotations

import logging
import socket
import threading
from dataclasses import dataclass
from typing import Optional

from flask import Flask
from werkzeug.serving import BaseWSGIServer, make_server

from ..config import DevServerConfig, build_default_config
from ..metadata import PluginMetadata
from ..service import DevServer
from .extensions import WebSocketTransport, configure_cors, register_realtime_route
from .status import create_status_blueprint

LOGGER = logging.getLogger(__name__)


def create_realtime_app(server: DevServer, transport: WebSocketTransport) -> Flask:
    """Create the Flask app hosting the WebSocket endpoint."""

    app = Flask(__name__)
    app.config.from_mapping(build_default_config(server.config))
    register_realtime_route(app, server, transport)
    return app


def create_status_app(server: DevServer) -> Flask:
    """Create the Flask app serving connection instructions."""

    app = Flask(__name__)
    app.config.from_mapping(build_default_config(server.config))
    app.extensions["devserver.metadata"] = server.metadata
    app.register_blueprint(create_status_blueprint(server.snapshot))
    configure_cors(app)
    return app


def _bind_listener(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    return socket.create_server((host, port), family=family)


class BackgroundServer:
    """Serve a WSGI app from a background thread.

    The listening socket is bound in the constructor so a busy port raises
    ``OSError`` to the caller instead of exiting the interpreter.
    """

    def __init__(self, app: Flask, *, host: str, port: int, name: str = "devserver-http") -> None:
        listener = _bind_listener(host, port)
        try:
            self._server: BaseWSGIServer = make_server(host, port, app, threaded=True, fd=listener.fileno())
        finally:
            # make_server duplicates the descriptor.
            listener.close()
        self._thread: Optional[threading.Thread] = None
        self.name = name
        self.host = host
        self.port = self._server.server_address[1]

    def start(self) -> None:
        if self._thread is not None:
            return
        thread = threading.Thread(target=self._server.serve_forever, name=self.name, daemon=True)
        self._thread = thread
        thread.start()
        LOGGER.debug("%s listening on %s:%d", self.name, self.host, self.port)

    def stop(self) -> None:
        thread = self._thread
        self._thread = None
        if thread is not None:
            self._server.shutdown()
        self._server.server_close()
        if thread is not None:
            thread.join(timeout=2.0)


@dataclass
class Runtime:
    server: DevServer
    transport: WebSocketTransport
    realtime_app: Flask
    status_app: Flask


def build_runtime(config: DevServerConfig, *, metadata: Optional[PluginMetadata] = None) -> Runtime:
    """Wire the dev server core to its WebSocket channel and status page."""

    transport = WebSocketTransport()
    server = DevServer(config, transport=transport, metadata=metadata)
    realtime_app = create_realtime_app(server, transport)
    status_app = create_status_app(server)
    return Runtime(server=server, transport=transport, realtime_app=realtime_app, status_app=status_app)


__all__ = [
    "BackgroundServer",
    "Runtime",
    "build_runtime",
    "create_realtime_app",
    "create_status_app",
]
