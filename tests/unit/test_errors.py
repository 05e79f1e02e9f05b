"""Tests for error classification and handling."""

import asyncio

import pytest

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


class TestClassifyError:
    """Tests for classify_error function."""

    def test_uses_upstream_category(self) -> None:
        """An UpstreamServiceFailure's own category wins over its message."""
        error = UpstreamServiceFailure("401 Unauthorized", category=ErrorCategory.NETWORK)
        assert classify_error(error) == ErrorCategory.NETWORK

    def test_unknown_upstream_category_falls_back_to_message(self) -> None:
        """Without a category the message is inspected."""
        error = UpstreamServiceFailure("Image service returned 503")
        assert classify_error(error) == ErrorCategory.SERVICE_UNAVAILABLE

    def test_classifies_timeout_error(self) -> None:
        """Should classify TimeoutError as TIMEOUT."""
        error = TimeoutError("Operation timed out")
        assert classify_error(error) == ErrorCategory.TIMEOUT

    def test_classifies_asyncio_timeout(self) -> None:
        """Should classify asyncio.TimeoutError as TIMEOUT."""
        error = asyncio.TimeoutError()
        assert classify_error(error) == ErrorCategory.TIMEOUT

    def test_classifies_rate_limit_from_message(self) -> None:
        """Should classify rate limit from error message."""
        error = Exception("Rate limit exceeded, please retry")
        assert classify_error(error) == ErrorCategory.RATE_LIMIT

    def test_classifies_429_error(self) -> None:
        """Should classify 429 status code as RATE_LIMIT."""
        error = Exception("HTTP 429: Too Many Requests")
        assert classify_error(error) == ErrorCategory.RATE_LIMIT

    def test_classifies_503_as_service_unavailable(self) -> None:
        """Should classify 503 as SERVICE_UNAVAILABLE."""
        error = Exception("503 Service Unavailable")
        assert classify_error(error) == ErrorCategory.SERVICE_UNAVAILABLE

    def test_classifies_502_as_service_unavailable(self) -> None:
        """Should classify 502 as SERVICE_UNAVAILABLE."""
        error = Exception("502 Bad Gateway")
        assert classify_error(error) == ErrorCategory.SERVICE_UNAVAILABLE

    def test_classifies_401_as_auth_failure(self) -> None:
        """Should classify 401 as AUTH_FAILURE."""
        error = Exception("401 Unauthorized")
        assert classify_error(error) == ErrorCategory.AUTH_FAILURE

    def test_classifies_api_key_as_auth(self) -> None:
        """Should classify API key errors as AUTH_FAILURE."""
        error = Exception("Invalid API key")
        assert classify_error(error) == ErrorCategory.AUTH_FAILURE

    def test_classifies_404_as_not_found(self) -> None:
        """Should classify 404 as NOT_FOUND."""
        error = Exception("404 Not Found")
        assert classify_error(error) == ErrorCategory.NOT_FOUND

    def test_classifies_400_as_invalid_input(self) -> None:
        """Should classify 400 as INVALID_INPUT."""
        error = Exception("400 Bad Request")
        assert classify_error(error) == ErrorCategory.INVALID_INPUT

    def test_classifies_connection_as_network(self) -> None:
        """Should classify connection errors as NETWORK."""
        error = Exception("Connection refused")
        assert classify_error(error) == ErrorCategory.NETWORK

    def test_classifies_not_configured_as_configuration(self) -> None:
        """Should classify missing configuration as CONFIGURATION."""
        error = Exception("Story writer not configured")
        assert classify_error(error) == ErrorCategory.CONFIGURATION

    def test_classifies_unknown_error(self) -> None:
        """Should classify unrecognized errors as UNKNOWN."""
        error = Exception("Some random error")
        assert classify_error(error) == ErrorCategory.UNKNOWN


class TestIsRetryable:
    """Tests for is_retryable function."""

    @pytest.mark.parametrize(
        "category",
        [
            ErrorCategory.RATE_LIMIT,
            ErrorCategory.TIMEOUT,
            ErrorCategory.NETWORK,
            ErrorCategory.SERVICE_UNAVAILABLE,
        ],
    )
    def test_transient_categories_are_retryable(self, category: ErrorCategory) -> None:
        """Transient categories should be retried."""
        assert is_retryable(category) is True

    @pytest.mark.parametrize(
        "category",
        [
            ErrorCategory.INVALID_INPUT,
            ErrorCategory.AUTH_FAILURE,
            ErrorCategory.NOT_FOUND,
            ErrorCategory.CONFIGURATION,
            ErrorCategory.UNKNOWN,
        ],
    )
    def test_permanent_categories_are_not_retryable(self, category: ErrorCategory) -> None:
        """Permanent categories should not be retried."""
        assert is_retryable(category) is False


class TestFailureTypes:
    """Tests for the service failure exceptions."""

    def test_stores_attributes(self) -> None:
        """Should store operation and original error."""
        original = ValueError("test")
        error = PersistenceFailure("History append failed", operation="append", original_error=original)
        assert str(error) == "History append failed"
        assert error.operation == "append"
        assert error.original_error is original

    def test_share_a_base_class(self) -> None:
        """Every failure family derives from StoryforgeError."""
        for cls in (UpstreamServiceFailure, PersistenceFailure, GenerationFailure):
            assert issubclass(cls, StoryforgeError)

    def test_upstream_default_category(self) -> None:
        """UpstreamServiceFailure defaults to UNKNOWN."""
        assert UpstreamServiceFailure("boom").category == ErrorCategory.UNKNOWN


class TestRetryWithBackoff:
    """Tests for retry_with_backoff function."""

    async def test_returns_result_on_success(self) -> None:
        """Should return result on first successful call."""

        async def success():
            return "success"

        result = await retry_with_backoff(success)
        assert result == "success"

    async def test_retries_on_transient_error(self) -> None:
        """Should retry on transient errors."""
        call_count = 0

        async def fails_then_succeeds():
            nonlocal call_count
            call_count += 1
            if call_count < 2:
                raise TimeoutError("timed out")
            return "success"

        result = await retry_with_backoff(
            fails_then_succeeds, max_retries=3, base_delay=0.01
        )
        assert result == "success"
        assert call_count == 2

    async def test_reraises_original_after_max_retries(self) -> None:
        """Should re-raise the last error once retries are exhausted."""
        call_count = 0

        async def always_fails():
            nonlocal call_count
            call_count += 1
            raise TimeoutError("always times out")

        with pytest.raises(TimeoutError):
            await retry_with_backoff(always_fails, max_retries=2, base_delay=0.01)

        assert call_count == 3

    async def test_permanent_error_not_retried(self) -> None:
        """Should re-raise permanent errors without retrying."""
        call_count = 0

        async def auth_failure():
            nonlocal call_count
            call_count += 1
            raise UpstreamServiceFailure("401 Unauthorized")

        with pytest.raises(UpstreamServiceFailure):
            await retry_with_backoff(auth_failure, max_retries=3, base_delay=0.01)

        assert call_count == 1

    async def test_passes_args_and_kwargs(self) -> None:
        """Should pass arguments to the function."""

        async def echo(a, b, c=None):
            return (a, b, c)

        result = await retry_with_backoff(echo, 1, 2, c=3)
        assert result == (1, 2, 3)
