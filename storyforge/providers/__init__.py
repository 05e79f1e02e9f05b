"""Provider implementations.

Concrete implementations of the ImageProvider and StoryWriter protocols
defined in storyforge/core/providers.py.
"""

from storyforge.providers.anthropic_story_writer import AnthropicStoryWriter
from storyforge.providers.http_image_provider import HttpImageProvider

__all__ = [
    "AnthropicStoryWriter",
    "HttpImageProvider",
]
