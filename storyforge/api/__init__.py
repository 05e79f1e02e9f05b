"""HTTP API package.

A FastAPI application exposing story and image generation, the generation
history, health probes and the generated images themselves.
"""

from storyforge.api.app import create_app
from storyforge.api.dependencies import (
    AppState,
    get_access_gate,
    get_generator,
    get_history_store,
    get_rate_limiter,
)

__all__ = [
    "AppState",
    "create_app",
    "get_access_gate",
    "get_generator",
    "get_history_store",
    "get_rate_limiter",
]
