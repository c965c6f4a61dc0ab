#!/usr/bin/env python3
"""Command line entrypoint for the plugin dev server."""
from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from typing import Any, Dict, List, Optional

from .app import BackgroundServer, build_runtime
from .build import BuildProcess
from .config import SELECTION_STRATEGIES, ensure_dotenv_loaded, load_config
from .exceptions import WatcherStartFailure
from .logging_config import configure_logging
from .utils import local_ip

LOGGER = logging.getLogger("blinko_devserver")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="blinko-devserver",
        description="Start a development server for Blinko plugins with hot-reloading.",
    )
    parser.add_argument("--ws-port", type=int, help="Real-time WebSocket server port (default: 8080).")
    parser.add_argument("--http-port", type=int, help="Connection instructions page port (default: 3000).")
    parser.add_argument("--host", help="Interface to bind both servers to (default: 0.0.0.0).")
    parser.add_argument("--dist-dir", help="Directory containing build output (default: ./dist).")
    parser.add_argument("--plugin-json", help="Path to plugin.json (default: ./plugin.json).")
    parser.add_argument("--vite-command", help="Build command started in watch mode (default: vite).")
    parser.add_argument(
        "--no-build",
        action="store_true",
        help="Do not start the watch build; only serve what lands in the output directory.",
    )
    parser.add_argument("--debounce-ms", type=int, help="Quiet period before a build is sent (default: 100).")
    parser.add_argument(
        "--selection",
        choices=SELECTION_STRATEGIES,
        help="How to pick between several index_*.js files (default: newest).",
    )
    return parser.parse_args(argv)


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "ws_port": args.ws_port,
        "http_port": args.http_port,
        "host": args.host,
        "dist_dir": args.dist_dir,
        "plugin_json": args.plugin_json,
        "build_command": args.vite_command,
        "build_enabled": False if args.no_build else None,
        "debounce_ms": args.debounce_ms,
        "selection": args.selection,
    }


def _wait_for_shutdown(stop_event: threading.Event) -> None:
    while not stop_event.is_set():
        stop_event.wait(0.5)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    ensure_dotenv_loaded()
    configure_logging("devserver")
    config = load_config(_overrides(args))

    LOGGER.info("Starting Blinko development server...")
    runtime = build_runtime(config)
    server = runtime.server
    servers: List[BackgroundServer] = []
    build: Optional[BuildProcess] = None

    try:
        try:
            server.start()
        except WatcherStartFailure as exc:
            LOGGER.error("%s", exc)
            return 1

        try:
            servers.append(
                BackgroundServer(runtime.realtime_app, host=config.host, port=config.ws_port, name="devserver-ws")
            )
        except OSError as exc:
            LOGGER.error("Cannot bind real-time channel to port %d: %s", config.ws_port, exc)
            return 1
        try:
            servers.append(
                BackgroundServer(runtime.status_app, host=config.host, port=config.http_port, name="devserver-status")
            )
        except OSError as exc:
            LOGGER.error("Cannot bind status page to port %d: %s", config.http_port, exc)
            return 1
        realtime_server, status_server = servers
        for background in servers:
            background.start()

        if config.build_enabled and config.build_command:
            build = BuildProcess(config.build_command)
            build.start()

        stop_event = threading.Event()

        def _signal_handler(signum: int, _frame: object) -> None:
            LOGGER.info("Signal %s received; shutting down server", signum)
            stop_event.set()

        signal.signal(signal.SIGINT, _signal_handler)
        signal.signal(signal.SIGTERM, _signal_handler)

        lan_ip = local_ip()
        LOGGER.info("Documentation server running at http://%s:%d", lan_ip, status_server.port)
        LOGGER.info("WebSocket server running at ws://%s:%d", lan_ip, realtime_server.port)
        LOGGER.info("Open http://localhost:%d for connection instructions", status_server.port)

        _wait_for_shutdown(stop_event)
        return 0
    finally:
        if build is not None:
            build.stop()
        server.stop()
        for background in reversed(servers):
            background.stop()


if __name__ == "__main__":  # pragma: no cover - manual entrypoint
    sys.exit(main())
