"""Logging helpers for the plugin dev server."""
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

_LOG_FILE: Optional[Path] = None
_CONFIGURED = False


def configure_logging(prefix: str = "devserver", *, log_dir: Optional[Path] = None) -> Optional[Path]:
    """Configure root logging for the dev server.

    Console output is always enabled. A timestamped log file is added when
    ``log_dir`` is given or ``DEVSERVER_LOG_DIR`` is set.
    """

    global _CONFIGURED, _LOG_FILE

    if _CONFIGURED:
        return _LOG_FILE

    log_level = os.getenv("DEVSERVER_LOG_LEVEL", "INFO").upper()
    numeric_level = getattr(logging, log_level, logging.INFO)

    root = logging.getLogger()
    root.setLevel(numeric_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    env_dir = os.getenv("DEVSERVER_LOG_DIR")
    log_directory: Optional[Path] = Path(env_dir).expanduser() if env_dir else None
    if log_dir is not None:
        log_directory = Path(log_dir)

    log_file: Optional[Path] = None
    if log_directory is not None:
        try:
            log_directory.mkdir(parents=True, exist_ok=True)
            log_file = log_directory / f"{prefix}-{datetime.now().strftime('%Y%m%d-%H%M%S')}.log"
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
        except OSError:
            root.warning("Failed to initialise dev server file logger", exc_info=True)
            log_file = None

    _CONFIGURED = True
    _LOG_FILE = log_file
    if log_file:
        root.info("Logging to %s", log_file)
    else:
        root.debug("File logging disabled; streaming only")
    return log_file


def current_log_file() -> Optional[Path]:
    """Return the most recent log file configured via ``configure_logging``."""

    return _LOG_FILE


__all__ = ["configure_logging", "current_log_file"]
