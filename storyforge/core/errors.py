"""Error taxonomy and retry utilities.

The service distinguishes three failure families:

- UpstreamServiceFailure: the image or text API was unreachable or errored.
- PersistenceFailure: the history database could not be read or written.
- GenerationFailure: the generated image could not be stored on disk.

Transient upstream errors are retried with exponential backoff before they
are surfaced.

Example:
    from storyforge.core.errors import retry_with_backoff

    payload = await retry_with_backoff(fetch_image, prompt, max_retries=2)
"""

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum, auto
from typing import TypeVar

from storyforge.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class ErrorCategory(Enum):
    """Classification of error types for handling decisions."""

    # Transient errors - safe to retry
    RATE_LIMIT = auto()
    TIMEOUT = auto()
    NETWORK = auto()
    SERVICE_UNAVAILABLE = auto()

    # Permanent errors - should not retry
    INVALID_INPUT = auto()
    AUTH_FAILURE = auto()
    NOT_FOUND = auto()
    CONFIGURATION = auto()
    UNKNOWN = auto()


RETRYABLE_CATEGORIES = {
    ErrorCategory.RATE_LIMIT,
    ErrorCategory.TIMEOUT,
    ErrorCategory.NETWORK,
    ErrorCategory.SERVICE_UNAVAILABLE,
}


class StoryforgeError(Exception):
    """Base class for all service-level failures.

    Attributes:
        operation: Short name of the operation that failed.
        original_error: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.original_error = original_error


class UpstreamServiceFailure(StoryforgeError):
    """An external image or text generation service failed."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        original_error: Exception | None = None,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
    ) -> None:
        super().__init__(message, operation, original_error)
        self.category = category


class PersistenceFailure(StoryforgeError):
    """The history store could not complete an operation."""


class GenerationFailure(StoryforgeError):
    """A generated image could not be written to the managed directory."""


def classify_error(error: Exception) -> ErrorCategory:
    """Classify an exception into an error category.

    Args:
        error: The exception to classify.

    Returns:
        The ErrorCategory that best matches the error.
    """
    if isinstance(error, UpstreamServiceFailure) and error.category != ErrorCategory.UNKNOWN:
        return error.category

    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return ErrorCategory.TIMEOUT

    error_str = str(error).lower()

    if "timed out" in error_str or "timeout" in error_str:
        return ErrorCategory.TIMEOUT

    if "connection" in error_str or "network" in error_str:
        return ErrorCategory.NETWORK

    if "rate" in error_str and "limit" in error_str:
        return ErrorCategory.RATE_LIMIT
    if "429" in error_str or "too many requests" in error_str:
        return ErrorCategory.RATE_LIMIT

    if "503" in error_str or "service unavailable" in error_str:
        return ErrorCategory.SERVICE_UNAVAILABLE
    if "502" in error_str or "bad gateway" in error_str:
        return ErrorCategory.SERVICE_UNAVAILABLE

    if "401" in error_str or "unauthorized" in error_str:
        return ErrorCategory.AUTH_FAILURE
    if "403" in error_str or "forbidden" in error_str:
        return ErrorCategory.AUTH_FAILURE
    if "api key" in error_str or "authentication" in error_str:
        return ErrorCategory.AUTH_FAILURE

    if "404" in error_str or "not found" in error_str:
        return ErrorCategory.NOT_FOUND

    if "400" in error_str or "bad request" in error_str:
        return ErrorCategory.INVALID_INPUT
    if "invalid" in error_str or "validation" in error_str:
        return ErrorCategory.INVALID_INPUT

    if "configuration" in error_str or "not configured" in error_str:
        return ErrorCategory.CONFIGURATION

    return ErrorCategory.UNKNOWN


def is_retryable(category: ErrorCategory) -> bool:
    """Check if an error category is safe to retry."""
    return category in RETRYABLE_CATEGORIES


async def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    *args: object,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    **kwargs: object,
) -> T:
    """Retry a coroutine function with exponential backoff for transient errors.

    Non-retryable errors and the final transient error are re-raised as-is so
    callers keep their own exception types.

    Args:
        func: Async function to call.
        *args: Positional arguments to pass to func.
        max_retries: Maximum number of retry attempts.
        base_delay: Initial delay between retries (seconds).
        max_delay: Maximum delay between retries (seconds).
        exponential_base: Base for exponential backoff calculation.
        **kwargs: Keyword arguments to pass to func.

    Returns:
        The result of the function call.
    """
    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except Exception as ex:
            category = classify_error(ex)

            if not is_retryable(category):
                logger.warning(
                    "permanent_error",
                    category=category.name,
                    error=str(ex),
                )
                raise

            if attempt >= max_retries:
                logger.error(
                    "max_retries_exceeded",
                    category=category.name,
                    attempts=attempt + 1,
                    error=str(ex),
                )
                raise

            delay = min(base_delay * (exponential_base**attempt), max_delay)

            logger.warning(
                "retrying_after_error",
                category=category.name,
                attempt=attempt + 1,
                max_retries=max_retries,
                delay_seconds=delay,
                error=str(ex),
            )

            await asyncio.sleep(delay)

    raise RuntimeError("Unexpected state in retry_with_backoff")
