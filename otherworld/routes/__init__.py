"""FastAPI API endpoints under /api.

Endpoint groups: settings (health, settings, check-connection) and game
(the player's action set). The game session lives on app.state.session.
"""

from fastapi import APIRouter

from .game import router as game_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(game_router)
