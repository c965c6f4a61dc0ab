from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Set, Tuple

import pytest

from blinko_devserver.config import DevServerConfig
from blinko_devserver.metadata import PluginMetadata


class FakeClock:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingTransport:
    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, Dict[str, Any]]] = []
        self.disconnected: List[str] = []
        self.failing: Set[str] = set()

    def send(self, sid: str, event: str, payload: Dict[str, Any]) -> None:
        if sid in self.failing:
            raise ConnectionError(f"socket for {sid} is gone")
        self.sent.append((sid, event, payload))

    def disconnect(self, sid: str) -> None:
        self.disconnected.append(sid)

    def sent_to(self, sid: str) -> List[Dict[str, Any]]:
        return [payload for target, _event, payload in self.sent if target == sid]


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture()
def dist_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "dist"
    directory.mkdir()
    return directory


@pytest.fixture()
def metadata() -> PluginMetadata:
    return PluginMetadata(name="demo-plugin", version="1.2.3")


@pytest.fixture()
def config(tmp_path: Path, dist_dir: Path) -> DevServerConfig:
    return DevServerConfig(
        ws_port=8080,
        http_port=3000,
        dist_dir=dist_dir,
        plugin_json=tmp_path / "plugin.json",
        debounce_ms=100,
        build_enabled=False,
    )
