"""Health check routes.

Health, readiness and liveness endpoints for container orchestration and
monitoring. These are not behind the access gate.
"""

from typing import Any

from fastapi import APIRouter, Request, Response

from storyforge.core.health import ServiceStatus
from storyforge.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request, response: Response) -> dict[str, Any]:
    """Full health check with all service statuses.

    Returns 200 unless a service is unhealthy, 503 otherwise.
    """
    health_checker = request.app.state.health_checker
    report = await health_checker.check_all()

    response.status_code = 503 if report.status == ServiceStatus.UNHEALTHY else 200

    logger.info(
        "health_check",
        status=report.status.value,
        checks={c.name: c.status.value for c in report.checks},
    )

    return report.to_dict()


@router.get("/ready")
async def readiness_check(request: Request, response: Response) -> dict[str, Any]:
    """Readiness probe: 200 when healthy or degraded, 503 otherwise."""
    health_checker = request.app.state.health_checker
    report = await health_checker.check_all()
    is_ready = report.status in (ServiceStatus.HEALTHY, ServiceStatus.DEGRADED)

    response.status_code = 200 if is_ready else 503

    return {"ready": is_ready, "status": report.status.value}


@router.get("/live")
async def liveness_check() -> dict[str, bool]:
    """Liveness probe."""
    return {"alive": True}
