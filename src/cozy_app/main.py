"""Cozy Defense — tower-defense simulation service.

Main FastAPI application.
"""

import asyncio
import threading
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from cozy_app.config import settings
from cozy_app.routers import game_router, ws_router
from cozy_app.routers.ws import start_event_bridge
from cozy_engine.comms.event_bus import EventBus
from cozy_engine.simulation import GameEngine, PathCatalog, PathLoadError, load_paths


class SimulationLoop:
    """Daemon thread that advances the engine by a fixed ``dt`` per tick."""

    def __init__(self, engine: GameEngine, interval: float) -> None:
        self._engine = engine
        self._interval = interval
        self._running = False
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._tick_loop, name="sim-tick", daemon=True)
        self._thread.start()
        logger.info(f"Simulation loop started (dt={self._interval}s)")

    def stop(self) -> None:
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
        logger.info("Simulation loop stopped")

    def _tick_loop(self) -> None:
        while self._running:
            time.sleep(self._interval)
            try:
                self._engine.tick(self._interval)
            except Exception:
                logger.exception("Simulation tick failed")


def _create_game_engine() -> GameEngine:
    """Build the engine from settings.  A bad path file leaves start() refused."""
    event_bus = EventBus()
    catalog = PathCatalog()
    if settings.paths_file:
        catalog.clear()
        try:
            load_paths(settings.paths_file, catalog)
        except PathLoadError as e:
            logger.error(f"Path asset failed to load: {e}")
            event_bus.publish("load_failed", {"resource": "paths", "reason": str(e)})

    engine = GameEngine(
        event_bus,
        difficulty=settings.difficulty_level,
        paths=catalog,
        seed=settings.random_seed,
        auto_advance=settings.auto_advance_waves,
    )
    logger.info(
        f"Game engine created: difficulty {engine.difficulty.level} ({engine.difficulty.name}), "
        f"paths {catalog.path_names()}"
    )
    return engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(f"{settings.app_name} starting...")

    engine = _create_game_engine()
    app.state.game_engine = engine
    loop = SimulationLoop(engine, settings.tick_interval)
    loop.start()
    app.state.simulation_loop = loop
    app.state.event_bridge = start_event_bridge(engine.event_bus, asyncio.get_running_loop())

    if settings.auto_start:
        result = engine.start()
        if not result:
            logger.warning(f"Auto-start refused: {result.reason}")

    yield

    loop.stop()
    app.state.event_bridge.stop()
    logger.info(f"{settings.app_name} shutting down...")


# Create FastAPI app
app = FastAPI(
    title="Cozy Defense",
    description="Tower-defense simulation engine",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(game_router)
app.include_router(ws_router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "operational", "version": "0.1.0"}


@app.get("/api/status")
async def status():
    """Service status endpoint."""
    engine = getattr(app.state, "game_engine", None)
    loop = getattr(app.state, "simulation_loop", None)
    return {
        "name": settings.app_name,
        "version": "0.1.0",
        "difficulty": settings.difficulty_level,
        "engine": engine is not None,
        "loop_running": bool(loop and loop.running),
        "paths": engine.paths.path_names() if engine is not None else [],
    }


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run("cozy_app.main:app", host=settings.host, port=settings.port, reload=settings.debug)
