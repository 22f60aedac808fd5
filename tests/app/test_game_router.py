"""Unit tests for the game API router (/api/game/*).

Uses FastAPI TestClient against a real GameEngine (driven manually, no
tick thread) or a MagicMock where only the HTTP mapping matters.
"""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from cozy_app.routers.game import PlaceTower, router
from cozy_engine.comms.event_bus import EventBus
from cozy_engine.simulation.difficulty import DifficultyTier
from cozy_engine.simulation.engine import ActionResult, GameEngine
from cozy_engine.simulation.paths import PathCatalog
from cozy_engine.simulation.waves import WaveConfig


def _make_app(engine=None):
    """Create a minimal FastAPI app with the game router and optional engine."""
    app = FastAPI()
    app.include_router(router)
    app.state.game_engine = engine
    return app


def _real_engine(gold: int = 100, paths: PathCatalog | None = None) -> GameEngine:
    tier = DifficultyTier(
        level="test", name="Test", spawn_interval=6.0, speed_mult=1.0, health_mult=1.0,
        starting_gold=gold, starting_health=10, wave_break=2.0,
        waves=[WaveConfig.uniform("w", "basic", 3)],
    )
    return GameEngine(EventBus(), difficulty=tier, paths=paths, seed=1)


@pytest.mark.unit
class TestGetGameState:
    """GET /api/game/state"""

    def test_returns_snapshot(self):
        client = TestClient(_make_app(_real_engine()))
        resp = client.get("/api/game/state")
        assert resp.status_code == 200
        data = resp.json()
        assert data["hud"]["state"] == "setup"
        assert data["hud"]["gold"] == 100
        assert set(data["paths"]) == {"route1", "route2"}

    def test_503_without_engine(self):
        client = TestClient(_make_app(engine=None))
        resp = client.get("/api/game/state")
        assert resp.status_code == 503

    def test_state_available_when_paths_missing(self):
        engine = _real_engine(paths=PathCatalog(include_defaults=False))
        client = TestClient(_make_app(engine))
        assert client.get("/api/game/state").status_code == 200


@pytest.mark.unit
class TestStart:
    """POST /api/game/start"""

    def test_start_from_setup(self):
        engine = _real_engine()
        client = TestClient(_make_app(engine))
        resp = client.post("/api/game/start")
        assert resp.status_code == 200
        assert resp.json()["state"] == "active"
        assert engine.state == "active"

    def test_start_twice_is_400(self):
        client = TestClient(_make_app(_real_engine()))
        client.post("/api/game/start")
        resp = client.post("/api/game/start")
        assert resp.status_code == 400

    def test_start_without_paths_is_400(self):
        engine = _real_engine(paths=PathCatalog(include_defaults=False))
        client = TestClient(_make_app(engine))
        resp = client.post("/api/game/start")
        assert resp.status_code == 400
        assert "path" in resp.json()["detail"]


@pytest.mark.unit
class TestPlaceAndUndo:
    def test_place_tower(self):
        engine = _real_engine()
        client = TestClient(_make_app(engine))
        resp = client.post("/api/game/place", json={"x": 400, "y": 50, "kind": "basic"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "placed"
        assert body["tower"]["kind"] == "basic"
        assert engine.economy.gold == 50

    def test_place_defaults_to_basic(self):
        assert PlaceTower(x=1, y=2).kind == "basic"

    def test_place_on_path_is_400(self):
        engine = _real_engine()
        client = TestClient(_make_app(engine))
        resp = client.post("/api/game/place", json={"x": 0, "y": 130})
        assert resp.status_code == 400
        assert engine.economy.gold == 100

    def test_place_missing_coordinates_is_422(self):
        client = TestClient(_make_app(_real_engine()))
        resp = client.post("/api/game/place", json={"kind": "basic"})
        assert resp.status_code == 422

    def test_gold_scenario_over_http(self):
        engine = _real_engine(gold=100)
        client = TestClient(_make_app(engine))
        client.post("/api/game/place", json={"x": 400, "y": 50})
        assert client.get("/api/game/state").json()["hud"]["gold"] == 50
        assert client.post("/api/game/undo").status_code == 200
        assert client.get("/api/game/state").json()["hud"]["gold"] == 100
        assert client.post("/api/game/redo").status_code == 200
        assert client.get("/api/game/state").json()["hud"]["gold"] == 50

    def test_undo_empty_is_400(self):
        client = TestClient(_make_app(_real_engine()))
        resp = client.post("/api/game/undo")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "nothing to undo"

    def test_upgrade(self):
        engine = _real_engine(gold=200)
        client = TestClient(_make_app(engine))
        tower_id = client.post("/api/game/place", json={"x": 400, "y": 50}).json()["tower"]["tower_id"]
        resp = client.post(f"/api/game/upgrade/{tower_id}")
        assert resp.status_code == 200
        assert resp.json()["tower"]["level"] == 2

    def test_upgrade_unknown_is_400(self):
        client = TestClient(_make_app(_real_engine()))
        assert client.post("/api/game/upgrade/ghost").status_code == 400


@pytest.mark.unit
class TestFlowControl:
    def test_pause_toggle(self):
        engine = _real_engine()
        client = TestClient(_make_app(engine))
        client.post("/api/game/start")
        assert client.post("/api/game/pause").json() == {"paused": True}
        assert client.post("/api/game/pause").json() == {"paused": False}

    def test_pause_in_setup_is_400(self):
        client = TestClient(_make_app(_real_engine()))
        assert client.post("/api/game/pause").status_code == 400

    def test_wave_while_spawning_is_400(self):
        client = TestClient(_make_app(_real_engine()))
        client.post("/api/game/start")
        assert client.post("/api/game/wave").status_code == 400

    def test_reset(self):
        engine = _real_engine()
        client = TestClient(_make_app(engine))
        client.post("/api/game/place", json={"x": 400, "y": 50})
        client.post("/api/game/start")
        resp = client.post("/api/game/reset")
        assert resp.status_code == 200
        assert resp.json() == {"status": "reset", "state": "setup"}
        assert len(engine.towers) == 0


@pytest.mark.unit
class TestWithMockEngine:
    def test_rejection_reason_becomes_detail(self):
        engine = MagicMock()
        engine.start_wave.return_value = ActionResult(ok=False, reason="no more waves")
        client = TestClient(_make_app(engine))
        resp = client.post("/api/game/wave")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "no more waves"

    def test_place_forwards_arguments(self):
        engine = MagicMock()
        engine.place_tower.return_value = ActionResult(ok=True, data={"tower_id": "rapid-abc123"})
        client = TestClient(_make_app(engine))
        resp = client.post("/api/game/place", json={"x": 10.5, "y": 20, "kind": "rapid"})
        assert resp.status_code == 200
        engine.place_tower.assert_called_once_with(10.5, 20.0, "rapid")
