"""Environment-driven configuration.

All settings are read once at startup into an immutable Settings object that
the application state hands to each component.
"""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

DEFAULT_IMAGE_API_URL = "https://ai-image-api.xeven.workers.dev/img"
DEFAULT_STORY_MODEL = "claude-haiku-4-5-20251001"


class StoryFailureMode(Enum):
    """What to do when the story service fails after the image was stored."""

    FALLBACK = "fallback"
    STRICT = "strict"


def _optional(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the service.

    Attributes:
        api_secret: Shared secret for the access gate. None means open mode.
        host: Interface to bind the HTTP server to.
        port: Port to bind the HTTP server to.
        anthropic_api_key: Credential for the story service. None means
            every story is the deterministic fallback text.
        story_model: Model used to write stories.
        story_failure_mode: Whether a story failure degrades or fails the request.
        image_api_url: Endpoint of the image generation service.
        image_api_timeout: Seconds before an image request is abandoned.
        database_path: SQLite file holding the history log.
        public_dir: Root of the static assets.
        images_dir: Managed directory of generated images.
        image_ttl_hours: Age after which generated images are purged.
        sweep_interval_seconds: Period of the retention sweep.
        rate_limit_max_requests: Requests allowed per client per window.
        rate_limit_window_seconds: Length of a rate-limit window.
        cors_origins: Allowed CORS origins.
    """

    api_secret: str | None = None
    host: str = "0.0.0.0"
    port: int = 3000
    anthropic_api_key: str | None = None
    story_model: str = DEFAULT_STORY_MODEL
    story_failure_mode: StoryFailureMode = StoryFailureMode.FALLBACK
    image_api_url: str = DEFAULT_IMAGE_API_URL
    image_api_timeout: float = 60.0
    database_path: str = "data/history.db"
    public_dir: Path = Path("public")
    images_dir: Path = Path("public/images")
    image_ttl_hours: float = 24.0
    sweep_interval_seconds: float = 3600.0
    rate_limit_max_requests: int = 5
    rate_limit_window_seconds: int = 60
    cors_origins: tuple[str, ...] = ("*",)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables.

        Raises:
            ValueError: If a numeric variable or STORY_FAILURE_MODE is malformed.
        """
        public_dir = Path(os.getenv("PUBLIC_DIR", "public"))
        images_dir = Path(os.getenv("IMAGES_DIR", str(public_dir / "images")))

        cors_env = os.getenv("CORS_ORIGINS", "*")
        if cors_env == "*":
            cors_origins: tuple[str, ...] = ("*",)
        else:
            cors_origins = tuple(
                origin.strip() for origin in cors_env.split(",") if origin.strip()
            )

        return cls(
            api_secret=_optional("API_SECRET"),
            host=os.getenv("API_HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            anthropic_api_key=_optional("ANTHROPIC_API_KEY"),
            story_model=os.getenv("STORY_MODEL", DEFAULT_STORY_MODEL),
            story_failure_mode=StoryFailureMode(
                os.getenv("STORY_FAILURE_MODE", "fallback").lower()
            ),
            image_api_url=os.getenv("IMAGE_API_URL", DEFAULT_IMAGE_API_URL),
            image_api_timeout=float(os.getenv("IMAGE_API_TIMEOUT", "60")),
            database_path=os.getenv("DATABASE_PATH", "data/history.db"),
            public_dir=public_dir,
            images_dir=images_dir,
            image_ttl_hours=float(os.getenv("IMAGE_TTL_HOURS", "24")),
            sweep_interval_seconds=float(os.getenv("SWEEP_INTERVAL_SECONDS", "3600")),
            rate_limit_max_requests=int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "5")),
            rate_limit_window_seconds=int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60")),
            cors_origins=cors_origins,
        )
