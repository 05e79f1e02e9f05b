"""Generation orchestrator: one prompt in, one stored image plus story out.

Steps run in sequence because the story is attached to the same history row
as the image:

1. Fetch image bytes from the image service.
2. Normalize them to PNG and write them under a fresh random filename.
3. Ask the story service for a short narrative (or use the fallback text).
4. Append the history record.

Nothing is recorded unless the image was stored.
"""

import asyncio
import io
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

from PIL import Image, UnidentifiedImageError

from storyforge.core.config import StoryFailureMode
from storyforge.core.errors import (
    GenerationFailure,
    PersistenceFailure,
    UpstreamServiceFailure,
)
from storyforge.core.logging import get_logger
from storyforge.core.providers import ImageProvider, StoryWriter
from storyforge.ports.repositories import HistoryRepository

logger = get_logger(__name__)

IMAGE_EXTENSION = ".png"


@dataclass
class GenerationResult:
    """A stored image and the story written for it."""

    image_url: str
    story: str
    filename: str


def fallback_story(prompt: str) -> str:
    """Deterministic story used when the story service is unavailable."""
    return f"Once upon a time, there was {prompt}. The rest of the story is yet to be written."


def new_image_filename() -> str:
    return f"{uuid4().hex}{IMAGE_EXTENSION}"


def normalize_to_png(image_data: bytes) -> bytes:
    """Decode image bytes and re-encode them as PNG.

    PNG payloads are returned untouched.

    Raises:
        UpstreamServiceFailure: If the bytes are not a decodable image.
    """
    try:
        with Image.open(io.BytesIO(image_data)) as img:
            if img.format == "PNG":
                img.verify()
                return image_data
            img.load()
            if img.mode not in ("RGB", "RGBA", "L", "LA", "P"):
                img = img.convert("RGBA")
            buffer = io.BytesIO()
            img.save(buffer, format="PNG")
            return buffer.getvalue()
    except (UnidentifiedImageError, OSError, SyntaxError) as ex:
        raise UpstreamServiceFailure(
            "Image service returned data that is not an image",
            operation="decode_image",
            original_error=ex,
        ) from ex


class StoryImageGenerator:
    """Coordinates the image service, the story service and the history log."""

    def __init__(
        self,
        image_provider: ImageProvider,
        story_writer: StoryWriter | None,
        store: HistoryRepository,
        images_dir: str | Path,
        url_prefix: str = "/images",
        story_failure_mode: StoryFailureMode = StoryFailureMode.FALLBACK,
    ) -> None:
        """Initialize the generator.

        Args:
            image_provider: Service that turns a prompt into image bytes.
            story_writer: Service that writes a story, or None when no
                credential is configured (the fallback text is used).
            store: History log.
            images_dir: Managed directory the images are written to.
            url_prefix: URL path under which images_dir is served.
            story_failure_mode: Whether a story failure degrades to the
                fallback text or fails the whole request.
        """
        self._image_provider = image_provider
        self._story_writer = story_writer
        self._store = store
        self._images_dir = Path(images_dir)
        self._url_prefix = url_prefix.rstrip("/")
        self._story_failure_mode = story_failure_mode

    async def generate(self, prompt: str) -> GenerationResult:
        """Generate, store and record an image and story for the prompt.

        Raises:
            UpstreamServiceFailure: If the image service fails, or the story
                service fails in strict mode.
            GenerationFailure: If the image cannot be written to disk.
            PersistenceFailure: If the history record cannot be written.
        """
        image_data = await self._image_provider.generate(prompt)
        png_data = await asyncio.to_thread(normalize_to_png, image_data)

        filename = new_image_filename()
        image_path = self._images_dir / filename
        try:
            await asyncio.to_thread(self._write_image, image_path, png_data)
        except OSError as ex:
            raise GenerationFailure(
                f"Could not store generated image: {ex}",
                operation="write_image",
                original_error=ex,
            ) from ex
        logger.info("image_stored", filename=filename, size_bytes=len(png_data))

        try:
            story = await self._write_story(prompt)
            await self._store.append(prompt, story, filename)
        except (UpstreamServiceFailure, PersistenceFailure):
            await asyncio.to_thread(image_path.unlink, True)
            logger.warning("image_discarded", filename=filename)
            raise

        return GenerationResult(
            image_url=f"{self._url_prefix}/{filename}",
            story=story,
            filename=filename,
        )

    def _write_image(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def _write_story(self, prompt: str) -> str:
        if self._story_writer is None:
            logger.info("story_writer_not_configured")
            return fallback_story(prompt)

        try:
            return await self._story_writer.write_story(prompt)
        except UpstreamServiceFailure as ex:
            if self._story_failure_mode is StoryFailureMode.STRICT:
                logger.error("story_generation_failed", error=str(ex))
                raise
            logger.warning(
                "story_generation_degraded",
                error=str(ex),
                fallback=True,
            )
            return fallback_story(prompt)
