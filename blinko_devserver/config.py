"""Configuration helpers for the plugin dev server."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from .utils import coerce_port, to_bool, to_optional_int, to_optional_str

LOGGER = logging.getLogger(__name__)

DEFAULT_WS_PORT = 8080
DEFAULT_HTTP_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_DIST_DIR = "./dist"
DEFAULT_PLUGIN_JSON = "./plugin.json"
DEFAULT_DEBOUNCE_MS = 100
DEFAULT_BUILD_COMMAND = "vite"
SELECTION_STRATEGIES = ("newest", "listing")
DEFAULT_SELECTION = "newest"


def ensure_dotenv_loaded() -> None:
    dotenv_path = find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path, override=False)


@dataclass
class DevServerConfig:
    """Configuration values that drive the dev server runtime."""

    ws_port: int = DEFAULT_WS_PORT
    http_port: int = DEFAULT_HTTP_PORT
    host: str = DEFAULT_HOST
    dist_dir: Path = Path(DEFAULT_DIST_DIR)
    plugin_json: Path = Path(DEFAULT_PLUGIN_JSON)
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    selection: str = DEFAULT_SELECTION
    build_command: Optional[str] = DEFAULT_BUILD_COMMAND
    build_enabled: bool = True

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0


def _env_int(name: str, default: int) -> int:
    value = to_optional_int(os.getenv(name))
    return default if value is None else value


def _normalise_selection(value: Any) -> str:
    candidate = (to_optional_str(value) or DEFAULT_SELECTION).lower()
    if candidate not in SELECTION_STRATEGIES:
        LOGGER.warning(
            "Unknown artifact selection strategy %r; using %s",
            value,
            DEFAULT_SELECTION,
        )
        return DEFAULT_SELECTION
    return candidate


def load_config_from_env() -> DevServerConfig:
    """Return a ``DevServerConfig`` populated from environment variables."""

    build_command = to_optional_str(os.getenv("DEVSERVER_BUILD_COMMAND", DEFAULT_BUILD_COMMAND))
    raw_build_enabled = os.getenv("DEVSERVER_BUILD_ENABLED")
    build_enabled = True if raw_build_enabled is None else to_bool(raw_build_enabled)

    return DevServerConfig(
        ws_port=coerce_port(os.getenv("DEVSERVER_WS_PORT"), DEFAULT_WS_PORT),
        http_port=coerce_port(os.getenv("DEVSERVER_HTTP_PORT"), DEFAULT_HTTP_PORT),
        host=to_optional_str(os.getenv("DEVSERVER_HOST")) or DEFAULT_HOST,
        dist_dir=Path(os.getenv("DEVSERVER_DIST_DIR") or DEFAULT_DIST_DIR).expanduser(),
        plugin_json=Path(os.getenv("DEVSERVER_PLUGIN_JSON") or DEFAULT_PLUGIN_JSON).expanduser(),
        debounce_ms=max(0, _env_int("DEVSERVER_DEBOUNCE_MS", DEFAULT_DEBOUNCE_MS)),
        selection=_normalise_selection(os.getenv("DEVSERVER_SELECTION")),
        build_command=build_command,
        build_enabled=build_enabled and build_command is not None,
    )


def load_config(overrides: Optional[Mapping[str, Any]] = None) -> DevServerConfig:
    """Merge explicit overrides (typically CLI flags) over the env defaults.

    ``None`` values in ``overrides`` are ignored so unset flags keep the
    environment value.
    """

    ensure_dotenv_loaded()
    config = load_config_from_env()
    if not overrides:
        return config

    changes: Dict[str, Any] = {}
    for key, value in overrides.items():
        if value is None:
            continue
        if key in {"ws_port", "http_port"}:
            changes[key] = coerce_port(value, getattr(config, key))
        elif key in {"dist_dir", "plugin_json"}:
            changes[key] = Path(value).expanduser()
        elif key == "debounce_ms":
            changes[key] = max(0, to_optional_int(value) or 0)
        elif key == "selection":
            changes[key] = _normalise_selection(value)
        elif key == "build_enabled":
            changes[key] = to_bool(value)
        elif key in {"host", "build_command"}:
            changes[key] = str(value)
        else:
            raise ValueError(f"Unknown configuration key: {key}")
    config = replace(config, **changes)
    if not config.build_command:
        config = replace(config, build_enabled=False)
    return config


def build_default_config(config: Optional[DevServerConfig] = None) -> Dict[str, Any]:
    """Return the Flask configuration mapping for the dev server apps."""

    cfg = config or load_config_from_env()
    return {
        "DEVSERVER_WS_PORT": cfg.ws_port,
        "DEVSERVER_HTTP_PORT": cfg.http_port,
        "DEVSERVER_HOST": cfg.host,
        "DEVSERVER_DIST_DIR": str(cfg.dist_dir),
        "DEVSERVER_PLUGIN_JSON": str(cfg.plugin_json),
        "DEVSERVER_DEBOUNCE_MS": cfg.debounce_ms,
        "DEVSERVER_SELECTION": cfg.selection,
    }


__all__ = [
    "DEFAULT_DEBOUNCE_MS",
    "DEFAULT_HTTP_PORT",
    "DEFAULT_WS_PORT",
    "DevServerConfig",
    "SELECTION_STRATEGIES",
    "build_default_config",
    "ensure_dotenv_loaded",
    "load_config",
    "load_config_from_env",
]
