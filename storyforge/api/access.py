"""Shared-secret access gate and per-client rate limiting for the HTTP API.

Both guards are FastAPI dependencies. Routers list them in order, so a
request is first authorized and only then counted against its rate limit.

Example:
    router = APIRouter(
        dependencies=[Depends(require_access), Depends(enforce_rate_limit)]
    )
"""

import math
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Query, Request, status

from storyforge.api.dependencies import get_access_gate, get_rate_limiter
from storyforge.core.access import AccessGate
from storyforge.core.logging import bind_contextvars, get_logger
from storyforge.core.rate_limit import FixedWindowRateLimiter, resolve_client_key

logger = get_logger(__name__)

UNAUTHORIZED_DETAIL = "Unauthorized"
RATE_LIMITED_DETAIL = "Too many requests, please try again later."


def supplied_api_key(
    x_api_key: Annotated[str | None, Header()] = None,
    api_key: Annotated[str | None, Query()] = None,
) -> str | None:
    """The caller's credential, from the X-API-Key header or api_key query."""
    return x_api_key or api_key


async def require_access(
    supplied_key: Annotated[str | None, Depends(supplied_api_key)],
    gate: Annotated[AccessGate, Depends(get_access_gate)],
) -> None:
    """FastAPI dependency that rejects callers without the shared secret.

    Raises:
        HTTPException: 401 with the same body for a missing or a wrong key.
    """
    if gate.authorize(supplied_key):
        return
    logger.warning("access_denied", key_supplied=supplied_key is not None)
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=UNAUTHORIZED_DETAIL,
    )


async def enforce_rate_limit(
    request: Request,
    supplied_key: Annotated[str | None, Depends(supplied_api_key)],
    limiter: Annotated[FixedWindowRateLimiter, Depends(get_rate_limiter)],
) -> str:
    """FastAPI dependency that counts the request against its client's window.

    Returns:
        The client key the request was counted under.

    Raises:
        HTTPException: 429 with a Retry-After header when over the limit.
    """
    client_host = request.client.host if request.client else None
    client_key = resolve_client_key(supplied_key, client_host)
    bind_contextvars(client_key=client_key)

    result = limiter.check(client_key)
    if result.allowed:
        return client_key

    retry_after = math.ceil(result.wait_seconds or 0)
    logger.warning("rate_limit_exceeded", retry_after=retry_after)
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=RATE_LIMITED_DETAIL,
        headers={"Retry-After": str(retry_after)},
    )
