"""Core business logic and protocols.

Platform-agnostic pieces of the service: rate limiting, image retention,
generation orchestration, periodic tasks and the error taxonomy.
"""

from storyforge.core.access import AccessGate
from storyforge.core.config import Settings, StoryFailureMode
from storyforge.core.errors import (
    ErrorCategory,
    GenerationFailure,
    PersistenceFailure,
    StoryforgeError,
    UpstreamServiceFailure,
    classify_error,
    is_retryable,
    retry_with_backoff,
)
from storyforge.core.generation import (
    GenerationResult,
    StoryImageGenerator,
    fallback_story,
)
from storyforge.core.health import (
    HealthChecker,
    HealthReport,
    ServiceCheck,
    ServiceStatus,
)
from storyforge.core.logging import (
    bind_contextvars,
    clear_contextvars,
    configure_logging,
    get_logger,
)
from storyforge.core.providers import ImageProvider, StoryWriter
from storyforge.core.rate_limit import (
    FixedWindowRateLimiter,
    RateLimit,
    RateLimitResult,
    resolve_client_key,
)
from storyforge.core.retention import ImageRetentionSweeper, SweepReport
from storyforge.core.tasks import PeriodicTask

__all__ = [
    # Access
    "AccessGate",
    # Configuration
    "Settings",
    "StoryFailureMode",
    # Errors
    "ErrorCategory",
    "GenerationFailure",
    "PersistenceFailure",
    "StoryforgeError",
    "UpstreamServiceFailure",
    "classify_error",
    "is_retryable",
    "retry_with_backoff",
    # Generation
    "GenerationResult",
    "StoryImageGenerator",
    "fallback_story",
    # Health
    "HealthChecker",
    "HealthReport",
    "ServiceCheck",
    "ServiceStatus",
    # Logging
    "bind_contextvars",
    "clear_contextvars",
    "configure_logging",
    "get_logger",
    # Providers
    "ImageProvider",
    "StoryWriter",
    # Rate limiting
    "FixedWindowRateLimiter",
    "RateLimit",
    "RateLimitResult",
    "resolve_client_key",
    # Retention
    "ImageRetentionSweeper",
    "SweepReport",
    "PeriodicTask",
]
