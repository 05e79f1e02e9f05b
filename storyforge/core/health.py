"""Service health checks.

Example:
    checker = HealthChecker(version="1.0.0")
    checker.add_check("database", check_database)
    report = await checker.check_all()
"""

import asyncio
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from storyforge.core.logging import get_logger

logger = get_logger(__name__)

CHECK_TIMEOUT_SECONDS = 10.0


class ServiceStatus(Enum):
    """Status of an individual service."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"
    UNKNOWN = "unknown"


@dataclass
class ServiceCheck:
    """Result of a single service health check."""

    name: str
    status: ServiceStatus
    latency_ms: float | None = None
    message: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class HealthReport:
    """Aggregated health report for all services."""

    status: ServiceStatus
    timestamp: str
    checks: list[ServiceCheck]
    version: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": self.status.value,
            "timestamp": self.timestamp,
            "version": self.version,
            "checks": [
                {
                    "name": check.name,
                    "status": check.status.value,
                    "latency_ms": check.latency_ms,
                    "message": check.message,
                    "details": check.details,
                }
                for check in self.checks
            ],
        }


HealthCheckFunc = Callable[[], Coroutine[Any, Any, ServiceCheck]]


class HealthChecker:
    """Runs registered service checks and aggregates their status."""

    def __init__(self, version: str | None = None) -> None:
        self._checks: dict[str, HealthCheckFunc] = {}
        self._version = version

    def add_check(self, name: str, check_func: HealthCheckFunc) -> None:
        """Register an async function that returns a ServiceCheck."""
        self._checks[name] = check_func

    async def check_one(self, name: str) -> ServiceCheck:
        """Run a single health check.

        Raises:
            KeyError: If no check is registered with that name.
        """
        if name not in self._checks:
            raise KeyError(f"No health check registered for: {name}")

        loop = asyncio.get_running_loop()
        start = loop.time()

        try:
            result = await asyncio.wait_for(
                self._checks[name](), timeout=CHECK_TIMEOUT_SECONDS
            )
            if result.latency_ms is None:
                result.latency_ms = round((loop.time() - start) * 1000, 2)
            return result
        except TimeoutError:
            return ServiceCheck(
                name=name,
                status=ServiceStatus.UNHEALTHY,
                latency_ms=round((loop.time() - start) * 1000, 2),
                message="Health check timed out",
            )
        except Exception as ex:
            return ServiceCheck(
                name=name,
                status=ServiceStatus.UNHEALTHY,
                latency_ms=round((loop.time() - start) * 1000, 2),
                message=str(ex),
            )

    async def check_all(self) -> HealthReport:
        """Run all registered checks concurrently."""
        timestamp = datetime.now(UTC).isoformat()

        if not self._checks:
            return HealthReport(
                status=ServiceStatus.HEALTHY,
                timestamp=timestamp,
                checks=[],
                version=self._version,
            )

        checks = list(await asyncio.gather(*(self.check_one(n) for n in self._checks)))

        if all(c.status == ServiceStatus.HEALTHY for c in checks):
            overall = ServiceStatus.HEALTHY
        elif any(c.status == ServiceStatus.UNHEALTHY for c in checks):
            overall = ServiceStatus.UNHEALTHY
        elif any(c.status == ServiceStatus.DEGRADED for c in checks):
            overall = ServiceStatus.DEGRADED
        else:
            overall = ServiceStatus.UNKNOWN

        return HealthReport(
            status=overall,
            timestamp=timestamp,
            checks=checks,
            version=self._version,
        )
