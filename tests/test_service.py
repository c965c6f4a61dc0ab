from __future__ import annotations

import time
from pathlib import Path

import pytest

from blinko_devserver.config import DevServerConfig
from blinko_devserver.events import ChangeEvent, ClientConnected, ClientDisconnected
from blinko_devserver.exceptions import WatcherStartFailure
from blinko_devserver.service import DevServer


@pytest.fixture()
def server(config: DevServerConfig, transport, metadata, clock) -> DevServer:
    return DevServer(config, transport=transport, metadata=metadata, clock=clock)


def _change(dist_dir: Path, name: str = "index_1.js") -> ChangeEvent:
    return ChangeEvent(path=str(dist_dir / name), event_type="modified")


def test_burst_produces_one_dispatch_with_settle_time_contents(server, transport, clock, dist_dir) -> None:
    bundle = dist_dir / "index_1.js"
    server.post(ClientConnected("client"))
    server.pump()

    for at, contents in ((0.0, "v1"), (0.03, "v2"), (0.06, "v3")):
        clock.now = at
        bundle.write_text(contents, encoding="utf-8")
        server.post(_change(dist_dir))
        server.pump()
    assert transport.sent == []

    clock.now = 0.159
    server.pump()
    assert transport.sent == []

    bundle.write_text("final", encoding="utf-8")
    clock.now = 0.161
    server.pump()

    messages = transport.sent_to("client")
    assert len(messages) == 1
    assert messages[0]["code"] == "final"
    assert server.dispatch_count == 1


def test_late_joiner_gets_latest_build(server, transport, clock, dist_dir) -> None:
    server.post(ClientConnected("first"))
    server.pump()
    assert transport.sent == []

    (dist_dir / "index_1.js").write_text("build-1", encoding="utf-8")
    server.post(_change(dist_dir))
    server.pump()
    clock.advance(0.2)
    server.pump()

    server.post(ClientConnected("second"))
    server.pump()

    assert [payload["code"] for payload in transport.sent_to("first")] == ["build-1"]
    assert [payload["code"] for payload in transport.sent_to("second")] == ["build-1"]


def test_disconnected_clients_receive_nothing(server, transport, clock, dist_dir) -> None:
    server.post(ClientConnected("stays"))
    server.post(ClientConnected("leaves"))
    server.post(ClientDisconnected("leaves"))
    server.pump()

    (dist_dir / "index_1.js").write_text("x", encoding="utf-8")
    server.post(_change(dist_dir))
    server.pump()
    clock.advance(0.2)
    server.pump()

    assert len(transport.sent_to("stays")) == 1
    assert transport.sent_to("leaves") == []


def test_settle_with_empty_directory_skips_broadcast(server, transport, clock, dist_dir) -> None:
    server.post(ClientConnected("client"))
    server.post(_change(dist_dir))
    server.pump()
    clock.advance(0.2)
    server.pump()

    assert transport.sent == []
    assert server.dispatch_count == 0
    assert server.debounce.pending is False


def test_stop_cancels_pending_window_and_closes_clients(server, transport, clock, dist_dir) -> None:
    (dist_dir / "index_1.js").write_text("x", encoding="utf-8")
    server.post(ClientConnected("client"))
    server.pump()
    transport.sent.clear()

    server.post(_change(dist_dir))
    server.pump()
    server.stop()

    clock.advance(1.0)
    assert server.debounce.pending is False
    assert transport.disconnected == ["client"]
    assert transport.sent == []


def test_snapshot_reports_state(server) -> None:
    snapshot = server.snapshot()

    assert snapshot["status"] == "stopped"
    assert snapshot["clients"] == 0
    assert snapshot["last_dispatch"] is None


def test_start_fails_when_output_dir_cannot_be_created(tmp_path: Path, transport, metadata) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file", encoding="utf-8")
    config = DevServerConfig(dist_dir=blocker / "dist", plugin_json=tmp_path / "plugin.json")
    server = DevServer(config, transport=transport, metadata=metadata)

    with pytest.raises(WatcherStartFailure):
        server.start()
    assert server.running is False


def test_threaded_loop_pushes_real_builds(tmp_path: Path, transport, metadata) -> None:
    config = DevServerConfig(dist_dir=tmp_path / "dist", plugin_json=tmp_path / "plugin.json", debounce_ms=50)
    server = DevServer(config, transport=transport, metadata=metadata)
    server.start()
    try:
        assert server.running
        server.notify_connected("client")
        (tmp_path / "dist" / "index_42.js").write_text("hot", encoding="utf-8")

        deadline = time.monotonic() + 5.0
        while not transport.sent and time.monotonic() < deadline:
            time.sleep(0.05)
    finally:
        server.stop()

    assert transport.sent
    assert transport.sent[0][2]["fileName"] == "index_42.js"
    assert server.running is False
    assert transport.disconnected == ["client"]
