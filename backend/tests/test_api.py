"""HTTP and websocket surface."""
from __future__ import annotations

import json

VALID = {"connect_target": "world.test", "agent_name": "Warden", "home": {"x": 4, "y": 70, "z": -2}}


def _messages(client):
    return [e["message"] for e in client.get("/api/bot/console").json()]


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "connected": False}


def test_default_settings_use_placeholder(client):
    r = client.get("/api/bot/settings")
    assert r.status_code == 200
    data = r.json()
    assert data["connect_target"] == "mc.example.com"
    assert set(data["home"]) == {"x", "y", "z"}


def test_settings_roundtrip_and_persist(client, tmp_path):
    r = client.post("/api/bot/settings", json=VALID)
    assert r.status_code == 200
    assert r.json() == VALID
    assert client.get("/api/bot/settings").json() == VALID
    on_disk = json.loads((tmp_path / "settings.json").read_text())
    assert on_disk["connect_target"] == "world.test"
    assert "Agent settings updated" in _messages(client)


def test_settings_reject_empty_fields(client):
    bad = dict(VALID, connect_target="")
    assert client.post("/api/bot/settings", json=bad).status_code == 422
    assert client.post("/api/bot/settings", json={"agent_name": "x"}).status_code == 422


def test_start_with_placeholder_is_refused(client):
    r = client.post("/api/bot/start")
    assert r.status_code == 200
    assert r.json()["message"] == "Agent not started; see console for details"
    errors = [m for m in _messages(client) if "Invalid server address" in m]
    assert len(errors) == 1
    assert client.get("/api/bot/status").json()["connected"] is False
    assert client.sessions == []


def test_start_status_stop(client):
    client.post("/api/bot/settings", json=VALID)
    r = client.post("/api/bot/start")
    assert r.json()["message"] == "Agent starting"

    status = client.get("/api/bot/status").json()
    assert status["connected"] is True
    assert status["activity"] == "Wandering"
    assert status["position"] == {"x": 0, "y": 64, "z": 0}
    assert status["time_of_day"] == "day"
    assert status["participants"] == []
    assert len(status["area_mask"]) == 9
    assert client.get("/health").json()["connected"] is True

    r = client.post("/api/bot/stop")
    assert r.json() == {"message": "Agent stopped successfully"}
    assert client.get("/api/bot/status").json()["connected"] is False
    assert client.sessions[-1].quit_calls == 1


def test_stop_when_idle_still_succeeds(client):
    r = client.post("/api/bot/stop")
    assert r.status_code == 200
    assert r.json() == {"message": "Agent stopped successfully"}
    assert "Agent is already stopped" in _messages(client)


def test_console_entries_and_clear(client):
    entries = client.get("/api/bot/console").json()
    assert entries
    assert set(entries[0]) == {"timestamp", "message", "severity"}

    r = client.post("/api/bot/console/clear")
    assert r.json() == {"message": "Console cleared successfully"}
    assert _messages(client) == ["Console cleared"]


def test_login(client):
    assert client.post("/api/login", json={"password": "test-password"}).json() == {"success": True}
    r = client.post("/api/login", json={"password": "nope"})
    assert r.status_code == 401
    assert r.json() == {"message": "Invalid password"}


def test_websocket_status_on_connect_and_request(client):
    with client.websocket_connect("/ws") as ws:
        first = ws.receive_json()
        assert first["type"] == "status"
        assert first["data"]["connected"] is False
        ws.send_json({"type": "getStatus"})
        again = ws.receive_json()
        assert again == first


def test_websocket_receives_console_pushes(client):
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        client.post("/api/bot/console/clear")
        kinds = [ws.receive_json()["type"], ws.receive_json()["type"]]
        assert kinds == ["consoleClear", "console"]
