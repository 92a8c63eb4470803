"""Tests for server.py — the local ingest API, end to end through DyeTracker."""

import time
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from main import DyeTracker
from server import create_app


def _response(status=200, body=None):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body or {}
    return resp


@pytest.fixture
def http():
    http = MagicMock()
    http.request.return_value = _response(body={"success": True})
    return http


@pytest.fixture
def tracker(tmp_path, http, timer_factory):
    tracker = DyeTracker(
        data_dir=tmp_path,
        http_session=http,
        session_join=MagicMock(return_value=(True, "joined")),
        inventory_settle_delay=0,
        timer_factory=timer_factory,
    )
    yield tracker
    tracker.shutdown()


@pytest.fixture
def client(tracker):
    return TestClient(create_app(tracker))


SESSION = {"username": "Steve", "uuid": "1234-abcd", "access_token": "secret"}


def _link(client, http):
    http.request.side_effect = [
        _response(body={"serverId": "srv"}),
        _response(body={"success": True, "uuid": "1234abcd", "username": "Steve"}),
    ]
    resp = client.post("/api/link", json={"code": "ABCD1234", "session": SESSION})
    http.request.side_effect = None
    return resp


# ── Observations ─────────────────────────────────────────

def test_chat_flow(client):
    client.post("/api/observe/chat", json={"text": "Slay 1,500 Combat XP worth of Zombies."})
    resp = client.post("/api/observe/chat", json={"text": "§dRNG Meter §7- §d1,234 Stored XP"})
    assert resp.json()["slayer_type"] == "REVENANT"

    data = client.get("/api/data").json()
    assert data["slayerMeters"]["REVENANT"]["storedXp"] == 1234


def test_container_flow(client):
    resp = client.post("/api/observe/container", json={
        "title": "Catacombs - Master Mode Floor VII RNG Meter",
        "slots": [
            {"name": "Necron's Handle", "lore": ["Progress: 804/2,000", "SELECTED"]},
            {"empty": True},
        ],
    })
    assert resp.json()["detected"] == "DungeonMeterScreen"
    meter = client.get("/api/data").json()["dungeonMeters"]["M7"]
    assert meter == {"floor": "M7", "storedXp": 804, "selectedItem": "Necron's Handle",
                     "goalXp": 2000}


def test_container_ignored(client):
    resp = client.post("/api/observe/container", json={"title": "Large Chest", "slots": []})
    assert resp.json()["detected"] is None


def test_roster_and_tick(client):
    resp = client.post("/api/observe/roster",
                       json={"entries": ["Glacite Mineshafts: 1,999/2,000"]})
    assert resp.json()["mineshaft_pity"] == 1999

    polled = [client.post("/api/observe/tick", json={"entries": []}).json()["polled"]
              for _ in range(40)]
    assert polled.count(True) == 1


def test_observation_schedules_save(client, tracker):
    client.post("/api/observe/roster", json={"entries": ["Glacite Mineshafts: 5/2,000"]})
    assert client.get("/api/status").json()["save_pending"]


def test_status_counts_written_saves(client, tracker):
    assert client.get("/api/status").json()["saves_written"] == 0
    tracker.persistence.save_immediate(tracker.store.get_snapshot())
    assert client.get("/api/status").json()["saves_written"] == 1


# ── Account + sync ───────────────────────────────────────

def test_status_unlinked(client):
    status = client.get("/api/status").json()
    assert status["linked"] is False
    assert status["has_session"] is False


def test_link_and_unlink(client, tracker, http):
    resp = _link(client, http)
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert client.get("/api/status").json()["username"] == "Steve"

    assert client.post("/api/unlink").json()["was_linked"] is True
    assert client.get("/api/status").json()["linked"] is False


def test_link_rejects_bad_code(client):
    resp = client.post("/api/link", json={"code": "nope", "session": SESSION})
    assert resp.status_code == 400


def test_link_requires_session(client):
    resp = client.post("/api/link", json={"code": "ABCD1234"})
    assert resp.status_code == 400


def test_link_when_already_linked(client, http):
    _link(client, http)
    resp = client.post("/api/link", json={"code": "ABCD1234", "session": SESSION})
    assert resp.status_code == 409


def test_sync_unlinked(client, http):
    resp = client.post("/api/sync").json()
    assert resp == {"success": False, "message": "Account not linked"}
    http.request.assert_not_called()


def test_sync_linked(client, http):
    _link(client, http)
    http.request.reset_mock()
    http.request.return_value = _response(body={"success": True})
    assert client.post("/api/sync").json()["success"] is True
    assert http.request.call_args.args[1].endswith("/api/v1/rng-data")


def test_linked_change_schedules_sync(client, http, timer_factory):
    _link(client, http)
    client.post("/api/observe/roster", json={"entries": ["Glacite Mineshafts: 5/2,000"]})
    assert client.get("/api/status").json()["sync"]["sync_pending"]
    assert timer_factory.last.interval == 30


# ── Commands ─────────────────────────────────────────────

def test_command_endpoint(client):
    client.post("/api/observe/roster", json={"entries": ["Glacite Mineshafts: 7/2,000"]})
    lines = client.post("/api/command", json={"command": "/dyetracker show"}).json()["lines"]
    assert "Mineshaft Pity: 7/2,000" in lines


def test_command_link_result_in_messages(client, http):
    client.post("/api/session", json=SESSION)
    http.request.side_effect = [
        _response(body={"serverId": "srv"}),
        _response(body={"success": True, "uuid": "1234abcd", "username": "Steve"}),
    ]
    lines = client.post("/api/command", json={"command": "/dyetracker link ABCD1234"}).json()
    assert lines["lines"] == ["Verifying account..."]

    messages = []
    for _ in range(100):
        messages += client.get("/api/messages").json()["messages"]
        if messages:
            break
        time.sleep(0.02)
    assert "✔ Account linked successfully!" in messages
