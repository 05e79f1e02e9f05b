"""Mock implementations of provider protocols for testing.

These mocks implement the ImageProvider and StoryWriter protocols defined in
storyforge/core/providers.py without making real API calls.

Features:
- Configurable payloads and stories for predictable test behavior
- Configurable failures for error-path tests
- Call tracking for assertions (call_count, last_prompt)
"""

import io

from PIL import Image

from storyforge.core.errors import UpstreamServiceFailure


def make_png_bytes(size: tuple[int, int] = (4, 4), color: str = "orange") -> bytes:
    """Encode a tiny solid-color PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_jpeg_bytes(size: tuple[int, int] = (4, 4), color: str = "blue") -> bytes:
    """Encode a tiny solid-color JPEG."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="JPEG")
    return buffer.getvalue()


class MockImageProvider:
    """Mock implementation of the ImageProvider protocol.

    Attributes:
        payload: Bytes returned from generate().
        error: If set, generate() raises it instead.
        call_count: Number of times generate() has been called.
        last_prompt: The prompt from the most recent call.
        closed: Whether aclose() has been called.

    Example:
        >>> provider = MockImageProvider()
        >>> data = await provider.generate("a cat")
        >>> assert provider.last_prompt == "a cat"
    """

    def __init__(
        self,
        payload: bytes | None = None,
        error: Exception | None = None,
    ) -> None:
        self.payload = payload if payload is not None else make_png_bytes()
        self.error = error
        self.call_count = 0
        self.last_prompt: str | None = None
        self.closed = False

    async def generate(self, prompt: str) -> bytes:
        self.call_count += 1
        self.last_prompt = prompt
        if self.error is not None:
            raise self.error
        return self.payload

    async def aclose(self) -> None:
        self.closed = True


class MockStoryWriter:
    """Mock implementation of the StoryWriter protocol.

    Attributes:
        stories: Stories to return, in order; the last one repeats.
        fail: If True, write_story() raises UpstreamServiceFailure.
        call_count: Number of times write_story() has been called.
        last_prompt: The prompt from the most recent call.
    """

    def __init__(self, stories: list[str] | None = None, fail: bool = False) -> None:
        self.stories = stories or ["A mock story."]
        self.fail = fail
        self.call_count = 0
        self.last_prompt: str | None = None

    async def write_story(self, prompt: str) -> str:
        self.call_count += 1
        self.last_prompt = prompt
        if self.fail:
            raise UpstreamServiceFailure("Story service returned 503", operation="write_story")
        return self.stories[min(self.call_count - 1, len(self.stories) - 1)]
