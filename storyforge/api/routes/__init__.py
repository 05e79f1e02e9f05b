"""API routes package."""

from storyforge.api.routes.generate import router as generate_router
from storyforge.api.routes.health import router as health_router
from storyforge.api.routes.history import router as history_router

__all__ = [
    "generate_router",
    "health_router",
    "history_router",
]
