"""Provider protocols for image and story generation.

Implementations wrap a specific external service; the orchestrator only
depends on these interfaces.
"""

from typing import Protocol


class ImageProvider(Protocol):
    """Protocol for text-to-image services."""

    async def generate(self, prompt: str) -> bytes:
        """Generate an image for the prompt.

        Args:
            prompt: Text description of the image.

        Returns:
            The encoded image bytes as returned by the service.

        Raises:
            UpstreamServiceFailure: If the service is unreachable or errors.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...


class StoryWriter(Protocol):
    """Protocol for text services that write a short story about a prompt."""

    async def write_story(self, prompt: str) -> str:
        """Write a short narrative about the prompt.

        Raises:
            UpstreamServiceFailure: If the service is unreachable or errors.
        """
        ...
