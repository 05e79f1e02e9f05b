"""Application state and FastAPI dependency injection.

AppState is the service context: it is built once per application from
Settings, owns every shared component, and lives on `app.state.app_state`
until shutdown. Route handlers receive its components through the
dependencies below, which tests replace via `app.dependency_overrides`.

Example:
    from fastapi import Depends
    from storyforge.api.dependencies import get_generator

    @router.post("/generate")
    async def generate(
        body: GenerateRequest,
        generator: StoryImageGenerator = Depends(get_generator),
    ):
        ...
"""

from datetime import timedelta

from fastapi import Request

from storyforge.adapters import HistoryStore
from storyforge.core.access import AccessGate
from storyforge.core.config import Settings
from storyforge.core.generation import StoryImageGenerator
from storyforge.core.logging import get_logger
from storyforge.core.providers import ImageProvider, StoryWriter
from storyforge.core.rate_limit import FixedWindowRateLimiter, RateLimit
from storyforge.core.retention import ImageRetentionSweeper
from storyforge.core.tasks import PeriodicTask

logger = get_logger(__name__)

IMAGES_URL_PREFIX = "/images"


class AppState:
    """Container for the shared resources of one application instance.

    Providers may be injected (tests do); otherwise they are built from
    settings during initialize().
    """

    def __init__(
        self,
        settings: Settings,
        image_provider: ImageProvider | None = None,
        story_writer: StoryWriter | None = None,
        history_store: HistoryStore | None = None,
    ) -> None:
        self.settings = settings
        self._image_provider = image_provider
        self._story_writer = story_writer
        self._history_store = history_store
        self._generator: StoryImageGenerator | None = None
        self._sweeper: ImageRetentionSweeper | None = None
        self._retention_task: PeriodicTask | None = None
        self._rate_limit_cleanup_task: PeriodicTask | None = None
        self.rate_limiter = FixedWindowRateLimiter(
            RateLimit(
                max_requests=settings.rate_limit_max_requests,
                window_seconds=settings.rate_limit_window_seconds,
            )
        )
        self.access_gate = AccessGate(settings.api_secret)
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Open the history store, build providers and start background tasks."""
        if self._initialized:
            logger.warning("app_state_already_initialized")
            return

        # Import providers here so tests that inject mocks never need the SDKs configured
        from storyforge.providers import AnthropicStoryWriter, HttpImageProvider

        settings = self.settings
        settings.images_dir.mkdir(parents=True, exist_ok=True)

        if self._history_store is None:
            self._history_store = HistoryStore(settings.database_path)
        await self._history_store.connect()
        logger.info("history_store_initialized", db_path=self._history_store.db_path)

        if self._image_provider is None:
            self._image_provider = HttpImageProvider(
                url=settings.image_api_url,
                timeout=settings.image_api_timeout,
            )
        if self._story_writer is None and settings.anthropic_api_key:
            self._story_writer = AnthropicStoryWriter(
                api_key=settings.anthropic_api_key,
                model=settings.story_model,
            )
        if self._story_writer is None:
            logger.warning("story_writer_disabled", reason="ANTHROPIC_API_KEY not set")

        self._generator = StoryImageGenerator(
            image_provider=self._image_provider,
            story_writer=self._story_writer,
            store=self._history_store,
            images_dir=settings.images_dir,
            url_prefix=IMAGES_URL_PREFIX,
            story_failure_mode=settings.story_failure_mode,
        )

        self._sweeper = ImageRetentionSweeper(
            images_dir=settings.images_dir,
            store=self._history_store,
            ttl=timedelta(hours=settings.image_ttl_hours),
        )
        self._retention_task = PeriodicTask(
            "image_retention",
            settings.sweep_interval_seconds,
            self._sweeper.sweep,
        )
        self._retention_task.start()

        self._rate_limit_cleanup_task = PeriodicTask(
            "rate_limit_cleanup",
            settings.sweep_interval_seconds,
            self._cleanup_rate_limits,
            run_immediately=False,
        )
        self._rate_limit_cleanup_task.start()

        self._initialized = True
        logger.info(
            "app_state_initialized",
            access_gate="open" if self.access_gate.is_open else "secret",
            rate_limit=settings.rate_limit_max_requests,
            rate_window_seconds=settings.rate_limit_window_seconds,
            story_failure_mode=settings.story_failure_mode.value,
        )

    async def _cleanup_rate_limits(self) -> None:
        removed = self.rate_limiter.cleanup_stale_windows()
        logger.debug("rate_limit_windows_cleaned", removed=removed, active=len(self.rate_limiter))

    async def shutdown(self) -> None:
        """Stop background tasks and release resources."""
        for task in (self._retention_task, self._rate_limit_cleanup_task):
            if task is not None:
                await task.stop()
        if self._image_provider is not None:
            await self._image_provider.aclose()
        if self._history_store is not None:
            await self._history_store.close()
            logger.info("history_store_closed")
        self._initialized = False
        logger.info("app_state_shutdown")

    @property
    def history_store(self) -> HistoryStore:
        if self._history_store is None:
            raise RuntimeError("App state not initialized")
        return self._history_store

    @property
    def generator(self) -> StoryImageGenerator:
        if self._generator is None:
            raise RuntimeError("App state not initialized")
        return self._generator

    @property
    def sweeper(self) -> ImageRetentionSweeper:
        if self._sweeper is None:
            raise RuntimeError("App state not initialized")
        return self._sweeper

    @property
    def retention_task(self) -> PeriodicTask | None:
        return self._retention_task

    @property
    def story_writer(self) -> StoryWriter | None:
        return self._story_writer


def get_app_state(request: Request) -> AppState:
    """FastAPI dependency for the application state."""
    return request.app.state.app_state


def get_generator(request: Request) -> StoryImageGenerator:
    """FastAPI dependency for the generation orchestrator."""
    return get_app_state(request).generator


def get_history_store(request: Request) -> HistoryStore:
    """FastAPI dependency for the history store."""
    return get_app_state(request).history_store


def get_rate_limiter(request: Request) -> FixedWindowRateLimiter:
    """FastAPI dependency for the rate limiter."""
    return get_app_state(request).rate_limiter


def get_access_gate(request: Request) -> AccessGate:
    """FastAPI dependency for the access gate."""
    return get_app_state(request).access_gate
