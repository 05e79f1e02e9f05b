"""Entry point for the HTTP API server.

This module provides the Uvicorn entrypoint for running the FastAPI
application as a standalone server.

Usage:
    # Development (with auto-reload):
    API_RELOAD=true python api_main.py

    # Or directly with uvicorn:
    uvicorn storyforge.api.app:create_app --factory --reload --port 3000
"""

import os

import uvicorn

from storyforge.core.logging import configure_logging

# Configure structured logging before importing app
configure_logging()

if __name__ == "__main__":
    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "3000"))
    reload = os.getenv("API_RELOAD", "false").lower() == "true"

    # One worker: rate-limit windows and the retention task live in process memory
    uvicorn.run(
        "storyforge.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=1,
    )
