"""Story and image generation route."""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from storyforge.api.access import enforce_rate_limit, require_access
from storyforge.api.dependencies import get_generator
from storyforge.api.schemas import GenerateRequest, GenerateResponse
from storyforge.core.errors import StoryforgeError
from storyforge.core.generation import StoryImageGenerator
from storyforge.core.logging import clear_contextvars, get_logger

logger = get_logger(__name__)

GENERATION_FAILED_MESSAGE = "Failed to generate image"

router = APIRouter(
    tags=["generation"],
    dependencies=[Depends(require_access), Depends(enforce_rate_limit)],
)


@router.post(
    "/generate",
    response_model=GenerateResponse,
    responses={
        200: {"description": "Image stored and story written"},
        401: {"description": "Missing or wrong API key"},
        429: {"description": "Rate limit exceeded"},
        500: {
            "description": "Generation failed",
            "content": {"text/plain": {"example": GENERATION_FAILED_MESSAGE}},
        },
    },
)
async def generate(
    body: GenerateRequest,
    generator: Annotated[StoryImageGenerator, Depends(get_generator)],
) -> GenerateResponse | PlainTextResponse:
    """Generate an image and a short story for a prompt.

    The image is stored in the managed directory and the event is appended
    to the history log.
    """
    try:
        logger.info("generating", prompt_length=len(body.prompt))
        result = await generator.generate(body.prompt)
        logger.info("generation_complete", filename=result.filename)
        return GenerateResponse(image_url=result.image_url, story=result.story)
    except StoryforgeError as ex:
        logger.error(
            "generation_failed",
            prompt=body.prompt,
            operation=ex.operation,
            error_type=type(ex).__name__,
            error=str(ex),
        )
        return PlainTextResponse(GENERATION_FAILED_MESSAGE, status_code=500)
    except Exception as ex:
        logger.exception("generation_crashed", prompt=body.prompt, error=str(ex))
        return PlainTextResponse(GENERATION_FAILED_MESSAGE, status_code=500)
    finally:
        clear_contextvars()
