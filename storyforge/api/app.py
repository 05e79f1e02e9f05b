"""FastAPI application factory and configuration.

This module builds the FastAPI application with CORS configuration,
lifespan management, route registration and static file serving.

Example:
    from storyforge.api import create_app

    app = create_app()

    # Run with uvicorn:
    # uvicorn storyforge.api.app:create_app --factory --reload
"""

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from storyforge.api.dependencies import IMAGES_URL_PREFIX, AppState
from storyforge.api.routes import generate_router, health_router, history_router
from storyforge.core.config import Settings
from storyforge.core.health import HealthChecker, ServiceCheck, ServiceStatus
from storyforge.core.logging import get_logger

logger = get_logger(__name__)

APP_VERSION = os.getenv("APP_VERSION", "1.0.0")


def _create_health_checker(app_state: AppState) -> HealthChecker:
    """Create health checker with service checks for the API.

    Args:
        app_state: The application state container.

    Returns:
        Configured HealthChecker instance.
    """
    checker = HealthChecker(version=APP_VERSION)

    async def check_database() -> ServiceCheck:
        """Check the history database answers queries."""
        if not app_state.is_initialized:
            return ServiceCheck(
                name="database",
                status=ServiceStatus.UNHEALTHY,
                message="App state not initialized",
            )
        await app_state.history_store.ping()
        return ServiceCheck(
            name="database",
            status=ServiceStatus.HEALTHY,
            message="Connected",
        )

    async def check_story_writer() -> ServiceCheck:
        """Report whether stories come from the model or the fallback."""
        if app_state.story_writer is not None:
            return ServiceCheck(
                name="story_writer",
                status=ServiceStatus.HEALTHY,
                message="API key configured",
            )
        return ServiceCheck(
            name="story_writer",
            status=ServiceStatus.DEGRADED,
            message="API key not configured, using fallback stories",
        )

    async def check_retention() -> ServiceCheck:
        """Report the retention sweep counters."""
        task = app_state.retention_task
        if task is None or not task.is_running:
            return ServiceCheck(
                name="image_retention",
                status=ServiceStatus.UNHEALTHY,
                message="Retention sweep not running",
                details=task.snapshot() if task else {},
            )
        details = task.snapshot()
        if task.failures and task.last_error:
            return ServiceCheck(
                name="image_retention",
                status=ServiceStatus.DEGRADED,
                message=f"Last sweep failure: {task.last_error}",
                details=details,
            )
        return ServiceCheck(
            name="image_retention",
            status=ServiceStatus.HEALTHY,
            message="Running",
            details=details,
        )

    checker.add_check("database", check_database)
    checker.add_check("story_writer", check_story_writer)
    checker.add_check("image_retention", check_retention)

    return checker


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle - startup and shutdown."""
    logger.info("api_starting")

    app_state: AppState = app.state.app_state
    await app_state.initialize()
    app.state.health_checker = _create_health_checker(app_state)

    logger.info("api_started", version=APP_VERSION)

    yield

    logger.info("api_shutting_down")
    await app_state.shutdown()
    logger.info("api_shutdown_complete")


def create_app(
    settings: Settings | None = None,
    app_state: AppState | None = None,
    title: str = "Storyforge API",
    description: str = "Turns prompts into generated images with short stories",
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Runtime configuration. Defaults to Settings.from_env().
        app_state: Pre-built application state (tests inject mocks this way).
            Defaults to a new AppState built from settings.
        title: API title for OpenAPI docs.
        description: API description for OpenAPI docs.

    Returns:
        Configured FastAPI application instance.
    """
    if app_state is not None:
        settings = app_state.settings
    elif settings is None:
        settings = Settings.from_env()
    if app_state is None:
        app_state = AppState(settings)

    app = FastAPI(
        title=title,
        description=description,
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.app_state = app_state

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(generate_router)
    app.include_router(history_router)

    # StaticFiles checks its directory when mounted, before the lifespan runs
    settings.images_dir.mkdir(parents=True, exist_ok=True)
    app.mount(
        IMAGES_URL_PREFIX,
        StaticFiles(directory=settings.images_dir),
        name="images",
    )
    if settings.public_dir.is_dir():
        app.mount(
            "/",
            StaticFiles(directory=settings.public_dir, html=True),
            name="public",
        )

    logger.info(
        "app_configured",
        title=title,
        cors_origins=list(settings.cors_origins),
        images_dir=str(settings.images_dir),
    )

    return app
