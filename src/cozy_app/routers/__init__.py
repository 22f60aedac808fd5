"""API routers for Cozy Defense."""

from cozy_app.routers.game import router as game_router
from cozy_app.routers.ws import router as ws_router

__all__ = ["game_router", "ws_router"]
