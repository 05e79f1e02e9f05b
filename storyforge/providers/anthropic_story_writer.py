"""Anthropic Claude story writer.

Implements the StoryWriter protocol by asking a Claude model for a short
story (about fifty words) on the user's prompt.
"""

from __future__ import annotations

import httpx
from anthropic import APIError, APIStatusError, AsyncAnthropic

from storyforge.core.config import DEFAULT_STORY_MODEL
from storyforge.core.errors import ErrorCategory, UpstreamServiceFailure
from storyforge.core.logging import get_logger

logger = get_logger(__name__)

STORY_SYSTEM_PROMPT = (
    "You are a storyteller. Given a theme, write one short story of about "
    "50 words. Reply with the story text only, without a title."
)

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_TOKENS = 300

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 529}


def story_request(prompt: str) -> str:
    return f'Write a short story about the following theme.\n\nTheme: "{prompt}"'


class AnthropicStoryWriter:
    """StoryWriter backed by the Anthropic Messages API.

    The API key is injected via the constructor; transient failures are
    retried by the SDK client itself.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_STORY_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = 2,
        client: AsyncAnthropic | None = None,
    ) -> None:
        """Initialize the story writer.

        Args:
            api_key: The Anthropic API key for authentication.
            model: Model used to write stories.
            max_tokens: Maximum tokens in a story.
            timeout: Seconds before a request is abandoned.
            max_retries: SDK-level retries for transient errors.
            client: Pre-built client, mainly for tests.
        """
        self._client = client or AsyncAnthropic(
            api_key=api_key,
            timeout=httpx.Timeout(timeout, connect=10.0),
            max_retries=max_retries,
        )
        self._model = model
        self._max_tokens = max_tokens

    @property
    def model(self) -> str:
        return self._model

    async def write_story(self, prompt: str) -> str:
        """Write a short story about the prompt.

        Raises:
            UpstreamServiceFailure: If the API call fails or returns no text.
        """
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                system=STORY_SYSTEM_PROMPT,
                messages=[{"role": "user", "content": story_request(prompt)}],
            )
        except APIStatusError as ex:
            category = (
                ErrorCategory.SERVICE_UNAVAILABLE
                if ex.status_code in _RETRYABLE_STATUS_CODES
                else ErrorCategory.UNKNOWN
            )
            logger.warning(
                "story_api_error",
                status_code=ex.status_code,
                error=str(ex),
            )
            raise UpstreamServiceFailure(
                f"Story service returned {ex.status_code}",
                operation="write_story",
                original_error=ex,
                category=category,
            ) from ex
        except APIError as ex:
            logger.warning("story_api_unreachable", error=str(ex))
            raise UpstreamServiceFailure(
                "Story service unreachable",
                operation="write_story",
                original_error=ex,
                category=ErrorCategory.NETWORK,
            ) from ex

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        ).strip()
        if not text:
            raise UpstreamServiceFailure(
                "Story service returned an empty story",
                operation="write_story",
            )

        logger.debug("story_written", model=self._model, length=len(text))
        return text
