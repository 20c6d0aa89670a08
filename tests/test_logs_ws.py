"""End-to-end tests for /ws/logs through the real app lifespan."""

from typing import Any

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from loggery.config import settings
from loggery.main import app
from loggery.publisher import Publisher
from loggery.records import Level

WS = "/ws/logs?refresh_ms=200"


@pytest.fixture
def tc(publisher: Publisher):
    with TestClient(app) as c:
        yield c


def _next_data(ws) -> dict[str, Any]:
    """Skip heartbeats until a frame carrying records (or a termination) arrives."""
    while True:
        frame = ws.receive_json()
        if frame.get("status") in (0, 2):
            return frame


def test_streams_buffered_then_live_records(tc: TestClient, publisher: Publisher):
    publisher.publish(Level.INFO, "before")
    with tc.websocket_connect(WS) as ws:
        frame = _next_data(ws)
        assert [r["message"] for r in frame["records"]] == ["before"]

        live = publisher.publish(Level.WARN, "live")
        frame = _next_data(ws)
        assert frame["records"] == [live.to_wire()]
        assert frame["cursor"] == live.sequence


def test_min_level_query_param(tc: TestClient, publisher: Publisher):
    publisher.publish(Level.DEBUG, "noise")
    signal = publisher.publish(Level.ERROR, "signal")
    with tc.websocket_connect(f"{WS}&min_level=error") as ws:
        frame = _next_data(ws)
        assert [r["message"] for r in frame["records"]] == ["signal"]
        assert frame["cursor"] == signal.sequence


def test_resume_after_cursor(tc: TestClient, publisher: Publisher):
    seen = publisher.publish(Level.INFO, "seen")
    publisher.publish(Level.INFO, "unseen")
    with tc.websocket_connect(f"{WS}&after={seen.sequence}") as ws:
        assert [r["message"] for r in _next_data(ws)["records"]] == ["unseen"]


def test_control_frame_changes_filter(tc: TestClient, publisher: Publisher):
    with tc.websocket_connect(WS) as ws:
        ws.receive_json()  # first heartbeat
        ws.send_json({"min_level": "ERROR"})
        # Control frames are handled in order, so the error reply to this bogus
        # frame proves the filter change above has been applied.
        ws.send_json({"bogus": True})
        while ws.receive_json().get("type") != "error":
            pass

        publisher.publish(Level.INFO, "skip me")
        publisher.publish(Level.ERROR, "keep me")
        frame = _next_data(ws)
        assert [r["message"] for r in frame["records"]] == ["keep me"]


def test_invalid_control_frame_keeps_session(tc: TestClient, publisher: Publisher):
    with tc.websocket_connect(WS) as ws:
        ws.send_text("not json")
        while True:
            frame = ws.receive_json()
            if frame.get("type") == "error":
                break
        publisher.publish(Level.INFO, "still streaming")
        assert [r["message"] for r in _next_data(ws)["records"]] == ["still streaming"]


def test_close_control_frame_terminates(tc: TestClient):
    with tc.websocket_connect(WS) as ws:
        ws.send_json({"type": "close"})
        frame = _next_data(ws)
        assert frame["status"] == 2
        assert frame["reason"] == "closed"


def test_viewer_listed_while_connected(tc: TestClient):
    with tc.websocket_connect(f"{WS}&min_level=warn") as ws:
        ws.receive_json()
        viewers = tc.get("/api/v1/viewers").json()
        assert len(viewers) == 1
        assert viewers[0]["min_level"] == "WARN"
        assert viewers[0]["refresh_ms"] == 200
        assert viewers[0]["state"] == "streaming"

        assert tc.delete(f"/api/v1/viewers/{viewers[0]['id']}").status_code == 204
        frame = _next_data(ws)
        assert frame["status"] == 2
        assert frame["reason"] == "terminated"

    assert tc.get("/api/v1/viewers").json() == []


def test_unknown_level_rejected_on_connect(tc: TestClient):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with tc.websocket_connect("/ws/logs?min_level=loud"):
            pass
    assert exc_info.value.code == 4400


# ── Idle timeout ──────────────────────────────────────────────────────────────


def test_silent_viewer_is_closed_as_idle(tc: TestClient, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "idle_timeout_s", 0.3)
    with tc.websocket_connect(WS) as ws:
        frame = _next_data(ws)
        assert frame["status"] == 2
        assert frame["reason"] == "idle"

    assert tc.get("/api/v1/viewers").json() == []


def test_zero_idle_timeout_never_closes(tc: TestClient, publisher: Publisher, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "idle_timeout_s", 0)
    with tc.websocket_connect(WS) as ws:
        # Five heartbeats at 200 ms is well past any short idle window.
        for _ in range(5):
            assert ws.receive_json()["status"] == 1

        (viewer,) = tc.get("/api/v1/viewers").json()
        assert viewer["state"] == "streaming"

        publisher.publish(Level.INFO, "still here")
        assert [r["message"] for r in _next_data(ws)["records"]] == ["still here"]
