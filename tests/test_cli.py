from __future__ import annotations

import logging
import os
import socket
from pathlib import Path
from typing import List

import pytest

from blinko_devserver import cli

ENV_KEYS = (
    "DEVSERVER_WS_PORT",
    "DEVSERVER_HTTP_PORT",
    "DEVSERVER_HOST",
    "DEVSERVER_DIST_DIR",
    "DEVSERVER_PLUGIN_JSON",
    "DEVSERVER_BUILD_COMMAND",
    "DEVSERVER_BUILD_ENABLED",
)


class RecordingBuild:
    def __init__(self, command: str, **_kwargs) -> None:
        self.command = command
        self.started = False
        self.stopped = False

    def start(self) -> bool:
        self.started = True
        return True

    def stop(self, **_kwargs) -> int:
        self.stopped = True
        return 0


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture()
def blocked_port():
    blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    blocker.bind(("127.0.0.1", 0))
    blocker.listen(1)
    try:
        yield blocker.getsockname()[1]
    finally:
        blocker.close()


@pytest.fixture()
def harness(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, caplog: pytest.LogCaptureFixture):
    for key in ENV_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)

    builds: List[RecordingBuild] = []
    runtimes = []

    def fake_build(command: str, **kwargs) -> RecordingBuild:
        build = RecordingBuild(command, **kwargs)
        builds.append(build)
        return build

    real_build_runtime = cli.build_runtime

    def recording_build_runtime(config, **kwargs):
        runtime = real_build_runtime(config, **kwargs)
        runtimes.append(runtime)
        return runtime

    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)
    monkeypatch.setattr(cli, "BuildProcess", fake_build)
    monkeypatch.setattr(cli, "build_runtime", recording_build_runtime)
    monkeypatch.setattr(cli.signal, "signal", lambda *args: None)
    monkeypatch.setattr(cli, "_wait_for_shutdown", lambda event: None)
    monkeypatch.setattr(cli, "local_ip", lambda: "127.0.0.1")
    caplog.set_level(logging.INFO)

    def argv(ws_port: int, http_port: int, dist_dir: Path = tmp_path / "dist") -> List[str]:
        return [
            "--host",
            "127.0.0.1",
            "--ws-port",
            str(ws_port),
            "--http-port",
            str(http_port),
            "--dist-dir",
            str(dist_dir),
            "--plugin-json",
            str(tmp_path / "plugin.json"),
            "--vite-command",
            "vite",
        ]

    return argv, builds, runtimes


def test_main_runs_and_shuts_everything_down(harness) -> None:
    argv, builds, runtimes = harness

    assert cli.main(argv(_free_port(), _free_port())) == 0

    assert len(builds) == 1
    assert builds[0].started and builds[0].stopped
    assert runtimes[0].server.running is False


def test_main_fails_when_output_directory_cannot_be_created(
    harness, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    argv, builds, runtimes = harness
    (tmp_path / "occupied").write_text("not a directory", encoding="utf-8")

    assert cli.main(argv(_free_port(), _free_port(), dist_dir=tmp_path / "occupied" / "dist")) == 1

    assert builds == []
    assert runtimes[0].server.running is False
    assert any(record.levelno == logging.ERROR for record in caplog.records)


def test_main_fails_when_realtime_port_is_taken(harness, blocked_port: int, caplog: pytest.LogCaptureFixture) -> None:
    argv, builds, runtimes = harness

    assert cli.main(argv(blocked_port, _free_port())) == 1

    assert builds == []
    assert runtimes[0].server.running is False
    assert f"Cannot bind real-time channel to port {blocked_port}" in caplog.text


def test_main_fails_when_status_port_is_taken(harness, blocked_port: int, caplog: pytest.LogCaptureFixture) -> None:
    argv, builds, runtimes = harness

    assert cli.main(argv(_free_port(), blocked_port)) == 1

    assert builds == []
    assert runtimes[0].server.running is False
    assert f"Cannot bind status page to port {blocked_port}" in caplog.text


def test_main_loads_dotenv_before_logging(harness, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    argv, _builds, _runtimes = harness
    (tmp_path / ".env").write_text("DEVSERVER_LOG_LEVEL=DEBUG\n", encoding="utf-8")
    monkeypatch.setenv("DEVSERVER_LOG_LEVEL", "")
    monkeypatch.delenv("DEVSERVER_LOG_LEVEL")
    seen = []
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: seen.append(os.getenv("DEVSERVER_LOG_LEVEL")))

    assert cli.main(argv(_free_port(), _free_port())) == 0

    assert seen == ["DEBUG"]
