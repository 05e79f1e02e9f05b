"""Generation history route."""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from storyforge.adapters import HistoryStore
from storyforge.api.access import enforce_rate_limit, require_access
from storyforge.api.dependencies import get_history_store
from storyforge.api.schemas import HistoryEntry
from storyforge.core.errors import PersistenceFailure
from storyforge.core.logging import clear_contextvars, get_logger

logger = get_logger(__name__)

HISTORY_FAILED_MESSAGE = "Failed to load history"

router = APIRouter(
    tags=["history"],
    dependencies=[Depends(require_access), Depends(enforce_rate_limit)],
)


@router.get(
    "/history",
    response_model=list[HistoryEntry],
    responses={
        401: {"description": "Missing or wrong API key"},
        429: {"description": "Rate limit exceeded"},
        500: {
            "description": "History could not be read",
            "content": {"text/plain": {"example": HISTORY_FAILED_MESSAGE}},
        },
    },
)
async def list_history(
    store: Annotated[HistoryStore, Depends(get_history_store)],
) -> list[HistoryEntry] | PlainTextResponse:
    """Return every generation, newest first."""
    try:
        records = await store.list_all()
        return [HistoryEntry(**record.to_dict()) for record in records]
    except PersistenceFailure as ex:
        logger.error("history_load_failed", operation=ex.operation, error=str(ex))
        return PlainTextResponse(HISTORY_FAILED_MESSAGE, status_code=500)
    finally:
        clear_contextvars()
