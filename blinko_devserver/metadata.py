"""Plugin metadata loaded from ``plugin.json``."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping

from .exceptions import MetadataLoadFailure

LOGGER = logging.getLogger(__name__)

DEFAULT_NAME = "unknown"
DEFAULT_VERSION = "0.0.0"


@dataclass(frozen=True)
class PluginMetadata:
    """Immutable descriptive metadata sent alongside every build."""

    name: str = DEFAULT_NAME
    version: str = DEFAULT_VERSION
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = dict(self.extra)
        payload["name"] = self.name
        payload["version"] = self.version
        return payload


DEFAULT_METADATA = PluginMetadata()


def parse_metadata(raw: Any, *, path: Path) -> PluginMetadata:
    if not isinstance(raw, dict):
        raise MetadataLoadFailure(path, f"expected a JSON object, got {type(raw).__name__}")

    name = raw.get("name", DEFAULT_NAME)
    version = raw.get("version", DEFAULT_VERSION)
    if not isinstance(name, str) or not isinstance(version, str):
        raise MetadataLoadFailure(path, "name and version must be strings")

    extra = {key: value for key, value in raw.items() if key not in {"name", "version"}}
    return PluginMetadata(
        name=name or DEFAULT_NAME,
        version=version or DEFAULT_VERSION,
        extra=MappingProxyType(extra),
    )


def read_metadata(path: Path) -> PluginMetadata:
    """Strict loader; raises ``MetadataLoadFailure`` on any problem."""

    resolved = Path(path).expanduser()
    if not resolved.is_file():
        raise MetadataLoadFailure(resolved, "file not found")
    try:
        text = resolved.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise MetadataLoadFailure(resolved, str(exc)) from exc
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MetadataLoadFailure(resolved, f"invalid JSON: {exc}") from exc
    return parse_metadata(raw, path=resolved)


def load_metadata(path: Path) -> PluginMetadata:
    """Load plugin metadata, falling back to defaults instead of raising."""

    try:
        metadata = read_metadata(path)
    except MetadataLoadFailure as exc:
        LOGGER.warning("%s; using default metadata", exc)
        return DEFAULT_METADATA
    LOGGER.info("Loaded plugin metadata %s@%s from %s", metadata.name, metadata.version, path)
    return metadata


__all__ = [
    "DEFAULT_METADATA",
    "PluginMetadata",
    "load_metadata",
    "parse_metadata",
    "read_metadata",
]
