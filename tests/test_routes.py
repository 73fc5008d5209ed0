"""Tests for the /api endpoints with a mocked LLM."""

import json
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from otherworld import storage
from otherworld.app import create_app
from otherworld.storage import KEY_BONUS_POINTS


def _batch(*events: dict) -> str:
    return json.dumps({"events": list(events)}, ensure_ascii=False)


@pytest.fixture
def llm() -> AsyncMock:
    return AsyncMock(return_value=_batch({"log": "闭关三年。", "ageIncrement": 3, "isDead": False}))


@pytest.fixture
def client(tmp_path, llm):
    app = create_app(tmp_path, llm=llm, autorun=False)
    with TestClient(app) as c:
        yield c


def _spend_all(client: TestClient) -> None:
    for attribute, value in (("essence", 10), ("spirit", 10), ("root_bone", 3)):
        resp = client.post("/api/game/allocate", json={"attribute": attribute, "value": value})
        assert resp.json()["accepted"] is True


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_initial_game_snapshot(client):
    data = client.get("/api/game").json()
    assert data["phase"] == "SETUP"
    assert data["allocation"]["remaining"] == 20
    assert data["state"]["history"] == []


def test_allocate_overspend_not_accepted(client):
    client.post("/api/game/allocate", json={"attribute": "essence", "value": 10})
    client.post("/api/game/allocate", json={"attribute": "spirit", "value": 10})
    resp = client.post("/api/game/allocate", json={"attribute": "qi", "value": 5})
    assert resp.status_code == 200
    assert resp.json()["accepted"] is False
    assert resp.json()["allocation"]["remaining"] == 2


def test_allocate_unknown_attribute_is_422(client):
    resp = client.post("/api/game/allocate", json={"attribute": "charisma", "value": 1})
    assert resp.status_code == 422


def test_step(client):
    resp = client.post("/api/game/step", json={"attribute": "qi", "delta": 1})
    assert resp.json()["accepted"] is True
    assert resp.json()["allocation"]["attributes"]["qi"] == 1


def test_start_with_points_left_is_400(client):
    resp = client.post("/api/game/start")
    assert resp.status_code == 400
    assert "points left" in resp.json()["detail"]


def test_start_and_proceed(client, llm):
    _spend_all(client)
    data = client.post("/api/game/start").json()
    assert data["phase"] == "PLAYING"
    assert len(data["state"]["history"]) == 1

    data = client.post("/api/game/proceed").json()
    assert data["fetched"] is True
    assert data["scheduler"]["queued"] == 1
    assert data["scheduler"]["state"] == "DRAINING"
    assert llm.call_args[0][0] == "turn"


def test_proceed_before_start_is_400(client):
    assert client.post("/api/game/proceed").status_code == 400


def test_choice_without_pending_choice_is_400(client):
    _spend_all(client)
    client.post("/api/game/start")
    resp = client.post("/api/game/choice", json={"option_id": "a"})
    assert resp.status_code == 400


def test_toggle_auto(client):
    _spend_all(client)
    client.post("/api/game/start")
    assert client.post("/api/game/auto").json()["scheduler"]["auto"] is True
    assert client.post("/api/game/auto").json()["scheduler"]["auto"] is False


def test_ending_before_death_is_400(client):
    _spend_all(client)
    client.post("/api/game/start")
    assert client.post("/api/game/ending").status_code == 400


def test_record_edit_outside_awakened_ending_is_400(client):
    assert client.put("/api/game/record", json={"text": "x"}).status_code == 400
    assert client.post("/api/game/record/commit").status_code == 400


def test_restart_reads_persisted_bonus(client):
    storage.default_progress_store().set(KEY_BONUS_POINTS, "7")
    data = client.post("/api/game/restart").json()
    assert data["phase"] == "SETUP"
    assert data["allocation"]["remaining"] == 27


def test_settings_roundtrip(client):
    resp = client.patch("/api/settings", json={"llm_connection": {"provider_url": "http://localhost:5001"}})
    assert resp.json()["llm_connection"]["provider_url"] == "http://localhost:5001"
    assert client.get("/api/settings").json()["llm_connection"]["provider_url"] == "http://localhost:5001"


def test_settings_pacing_applies_to_running_session(client):
    _spend_all(client)
    client.post("/api/game/start")
    client.patch("/api/settings", json={"pacing_ms": 250})
    session = client.app.state.session
    assert session.pacing_ms == 250
    assert session.scheduler.pacing_ms == 250
