"""Unit tests for AnthropicStoryWriter."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from anthropic import APIConnectionError, APIStatusError

from storyforge.core.errors import ErrorCategory, UpstreamServiceFailure
from storyforge.providers.anthropic_story_writer import (
    STORY_SYSTEM_PROMPT,
    AnthropicStoryWriter,
    story_request,
)

REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def make_client(response=None, error: Exception | None = None) -> MagicMock:
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=response, side_effect=error)
    return client


def text_response(*texts: str) -> SimpleNamespace:
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=t) for t in texts])


def status_error(status_code: int) -> APIStatusError:
    response = httpx.Response(status_code, request=REQUEST)
    return APIStatusError("error", response=response, body=None)


class TestWriteStory:
    """Tests for AnthropicStoryWriter.write_story()."""

    async def test_returns_story_text(self) -> None:
        """The text blocks should be joined and stripped."""
        client = make_client(text_response("  Once upon a time, ", "a cat.  "))
        writer = AnthropicStoryWriter(api_key="test-key", model="test-model", client=client)

        story = await writer.write_story("a cat")

        assert story == "Once upon a time, a cat."

    async def test_request_format(self) -> None:
        """The prompt should be wrapped in the story instruction."""
        client = make_client(text_response("A story."))
        writer = AnthropicStoryWriter(api_key="test-key", model="test-model", client=client)

        await writer.write_story("a cat")

        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["system"] == STORY_SYSTEM_PROMPT
        assert kwargs["messages"] == [{"role": "user", "content": story_request("a cat")}]
        assert "a cat" in story_request("a cat")

    async def test_ignores_non_text_blocks(self) -> None:
        """Only text blocks contribute to the story."""
        response = SimpleNamespace(
            content=[
                SimpleNamespace(type="thinking", thinking="hmm"),
                SimpleNamespace(type="text", text="A story."),
            ]
        )
        writer = AnthropicStoryWriter(api_key="k", client=make_client(response))

        assert await writer.write_story("a cat") == "A story."

    async def test_empty_story_is_failure(self) -> None:
        """A response with no text should raise."""
        writer = AnthropicStoryWriter(api_key="k", client=make_client(text_response("   ")))

        with pytest.raises(UpstreamServiceFailure):
            await writer.write_story("a cat")

    async def test_overloaded_maps_to_service_unavailable(self) -> None:
        """Overload and 5xx statuses are transient service failures."""
        writer = AnthropicStoryWriter(api_key="k", client=make_client(error=status_error(529)))

        with pytest.raises(UpstreamServiceFailure) as exc_info:
            await writer.write_story("a cat")

        assert exc_info.value.category == ErrorCategory.SERVICE_UNAVAILABLE
        assert exc_info.value.operation == "write_story"

    async def test_bad_request_is_unknown(self) -> None:
        """Other statuses keep the UNKNOWN category."""
        writer = AnthropicStoryWriter(api_key="k", client=make_client(error=status_error(400)))

        with pytest.raises(UpstreamServiceFailure) as exc_info:
            await writer.write_story("a cat")

        assert exc_info.value.category == ErrorCategory.UNKNOWN

    async def test_connection_error_maps_to_network(self) -> None:
        """Unreachable API should be a NETWORK failure."""
        writer = AnthropicStoryWriter(
            api_key="k",
            client=make_client(error=APIConnectionError(request=REQUEST)),
        )

        with pytest.raises(UpstreamServiceFailure) as exc_info:
            await writer.write_story("a cat")

        assert exc_info.value.category == ErrorCategory.NETWORK
