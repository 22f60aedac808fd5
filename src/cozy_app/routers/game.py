"""Game control API — start, place/upgrade towers, undo/redo, pause, reset.

Every POST forwards one intent into the GameEngine input boundary.  A
rejected intent (not enough gold, bad placement, empty undo stack...) is a
400 carrying the engine's reason; nothing in the engine changed.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

router = APIRouter(prefix="/api/game", tags=["game"])


class PlaceTower(BaseModel):
    x: float
    y: float
    kind: str = "basic"     # basic, rapid, powerful


def _get_engine(request: Request):
    """Retrieve the GameEngine from app state."""
    engine = getattr(request.app.state, "game_engine", None)
    if engine is None:
        raise HTTPException(503, "Game engine not available")
    return engine


def _unwrap(result) -> dict:
    if not result.ok:
        raise HTTPException(400, result.reason)
    return result.data


@router.get("/state")
async def get_game_state(request: Request):
    """Full board snapshot: HUD, enemies, towers, path geometry."""
    engine = _get_engine(request)
    return engine.snapshot()


@router.post("/start")
async def start_game(request: Request):
    """Leave setup and launch wave 1."""
    engine = _get_engine(request)
    return {"status": "started", **_unwrap(engine.start())}


@router.post("/place")
async def place_tower(tower: PlaceTower, request: Request):
    """Buy a tower at (x, y).  Gold is debited immediately."""
    engine = _get_engine(request)
    data = _unwrap(engine.place_tower(tower.x, tower.y, tower.kind))
    return {"status": "placed", "tower": data}


@router.post("/upgrade/{tower_id}")
async def upgrade_tower(tower_id: str, request: Request):
    engine = _get_engine(request)
    data = _unwrap(engine.upgrade_tower(tower_id))
    return {"status": "upgraded", "tower": data}


@router.post("/undo")
async def undo(request: Request):
    engine = _get_engine(request)
    return {"status": "undone", "command": _unwrap(engine.undo())}


@router.post("/redo")
async def redo(request: Request):
    engine = _get_engine(request)
    return {"status": "redone", "command": _unwrap(engine.redo())}


@router.post("/pause")
async def toggle_pause(request: Request):
    """Toggle pause.  While paused no spawns, movement or cooldowns advance."""
    engine = _get_engine(request)
    return _unwrap(engine.toggle_pause())


@router.post("/wave")
async def start_wave(request: Request):
    """Call the next wave early.  Refused while enemies remain."""
    engine = _get_engine(request)
    return {"status": "wave_started", **_unwrap(engine.start_wave())}


@router.post("/reset")
async def reset_game(request: Request):
    """Back to setup: board cleared, gold and health restored."""
    engine = _get_engine(request)
    engine.reset()
    return {"status": "reset", "state": "setup"}
