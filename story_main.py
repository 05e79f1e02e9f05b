"""Command-line story writer.

Writes a short story for a prompt with the configured story model and prints
it to stdout.

Usage:
    python story_main.py a cat sailing a paper boat
"""

import asyncio
import sys

from storyforge.core.config import Settings
from storyforge.core.errors import UpstreamServiceFailure
from storyforge.core.logging import configure_logging, get_logger
from storyforge.providers import AnthropicStoryWriter

logger = get_logger(__name__)


async def write_story(prompt: str, settings: Settings) -> str:
    """Return the story for the prompt, or an empty string on any failure."""
    if not settings.anthropic_api_key:
        logger.error("story_writer_not_configured", missing="ANTHROPIC_API_KEY")
        return ""

    writer = AnthropicStoryWriter(
        api_key=settings.anthropic_api_key,
        model=settings.story_model,
    )
    try:
        return await writer.write_story(prompt)
    except UpstreamServiceFailure as ex:
        logger.error("story_generation_failed", error=str(ex))
        return ""


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    prompt = " ".join(args).strip()
    if not prompt:
        print("Usage: python story_main.py <prompt>", file=sys.stderr)
        return 1

    story = asyncio.run(write_story(prompt, Settings.from_env()))
    if story:
        print(story)
    return 0


if __name__ == "__main__":
    configure_logging()
    sys.exit(main())
