"""HTTP image generation provider.

Implements the ImageProvider protocol against a service that answers
`GET <url>?prompt=...` with the raw image bytes.
"""

from __future__ import annotations

import httpx

from storyforge.core.config import DEFAULT_IMAGE_API_URL
from storyforge.core.errors import (
    ErrorCategory,
    UpstreamServiceFailure,
    retry_with_backoff,
)
from storyforge.core.logging import get_logger

logger = get_logger(__name__)


def _category_for_status(status_code: int) -> ErrorCategory:
    if status_code == 429:
        return ErrorCategory.RATE_LIMIT
    if status_code in (500, 502, 503, 504):
        return ErrorCategory.SERVICE_UNAVAILABLE
    if status_code in (401, 403):
        return ErrorCategory.AUTH_FAILURE
    if status_code == 404:
        return ErrorCategory.NOT_FOUND
    return ErrorCategory.INVALID_INPUT


class HttpImageProvider:
    """ImageProvider that fetches generated images over plain HTTP.

    Attributes:
        _url: Endpoint of the image service.
        _max_retries: Retry attempts for transient errors.
        _base_delay: Base delay for exponential backoff (seconds).
    """

    def __init__(
        self,
        url: str = DEFAULT_IMAGE_API_URL,
        timeout: float = 60.0,
        max_retries: int = 2,
        base_delay: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            url: Endpoint of the image service.
            timeout: Seconds before a request is abandoned.
            max_retries: Retries for timeouts, connection errors and 5xx.
            base_delay: Base delay for exponential backoff between retries.
            client: Pre-built client, mainly for tests.
        """
        self._url = url
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=10.0),
            follow_redirects=True,
        )

    async def _fetch(self, prompt: str) -> bytes:
        try:
            response = await self._client.get(self._url, params={"prompt": prompt})
        except httpx.TimeoutException as ex:
            raise UpstreamServiceFailure(
                "Image service timed out",
                operation="generate_image",
                original_error=ex,
                category=ErrorCategory.TIMEOUT,
            ) from ex
        except httpx.HTTPError as ex:
            raise UpstreamServiceFailure(
                f"Image service unreachable: {ex}",
                operation="generate_image",
                original_error=ex,
                category=ErrorCategory.NETWORK,
            ) from ex

        if response.is_error:
            raise UpstreamServiceFailure(
                f"Image service returned {response.status_code}",
                operation="generate_image",
                category=_category_for_status(response.status_code),
            )
        if not response.content:
            raise UpstreamServiceFailure(
                "Image service returned an empty body",
                operation="generate_image",
            )
        return response.content

    async def generate(self, prompt: str) -> bytes:
        """Fetch an image for the prompt.

        Raises:
            UpstreamServiceFailure: If the service fails after retries.
        """
        logger.debug("requesting_image", url=self._url, prompt_length=len(prompt))
        data = await retry_with_backoff(
            self._fetch,
            prompt,
            max_retries=self._max_retries,
            base_delay=self._base_delay,
        )
        logger.debug("image_received", size_bytes=len(data))
        return data

    async def aclose(self) -> None:
        await self._client.aclose()
