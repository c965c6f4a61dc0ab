"""Live-reload dev server for Blinko plugins."""
from __future__ import annotations

from .artifacts import ArtifactStore, BuildArtifact
from .broadcast import Broadcaster, ConnectionRegistry
from .config import DevServerConfig, load_config
from .metadata import PluginMetadata, load_metadata
from .service import DevServer

__all__ = [
    "ArtifactStore",
    "Broadcaster",
    "BuildArtifact",
    "ConnectionRegistry",
    "DevServer",
    "DevServerConfig",
    "PluginMetadata",
    "load_config",
    "load_metadata",
]
