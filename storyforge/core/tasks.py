"""Supervised periodic background tasks.

A PeriodicTask runs a coroutine function on a fixed interval on the event
loop. Failures are logged and counted without stopping the schedule, and the
task can be cancelled cleanly during application shutdown.

Example:
    task = PeriodicTask("image_retention", 3600, sweeper.sweep)
    task.start()
    ...
    await task.stop()
"""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from storyforge.core.logging import get_logger

logger = get_logger(__name__)


class PeriodicTask:
    """Run a coroutine function every `interval_seconds` until stopped.

    Attributes:
        name: Name used in logs and health reports.
        runs: Number of completed runs, successful or not.
        failures: Number of runs that raised.
        last_error: String form of the most recent failure.
        last_run_at: When the most recent run finished.
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        func: Callable[[], Awaitable[Any]],
        run_immediately: bool = True,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.name = name
        self._interval = interval_seconds
        self._func = func
        self._run_immediately = run_immediately
        self._task: asyncio.Task[None] | None = None
        self.runs = 0
        self.failures = 0
        self.last_error: str | None = None
        self.last_run_at: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the task on the running event loop."""
        if self.is_running:
            logger.warning("periodic_task_already_running", task=self.name)
            return
        self._task = asyncio.create_task(self._loop(), name=f"periodic:{self.name}")
        logger.info(
            "periodic_task_started",
            task=self.name,
            interval_seconds=self._interval,
        )

    async def run_once(self) -> None:
        """Run the function once, recording its outcome."""
        try:
            await self._func()
        except asyncio.CancelledError:
            raise
        except Exception as ex:
            self.failures += 1
            self.last_error = str(ex)
            logger.exception(
                "periodic_task_failed",
                task=self.name,
                failures=self.failures,
                error=str(ex),
            )
        finally:
            self.runs += 1
            self.last_run_at = datetime.now(UTC)

    async def _loop(self) -> None:
        if not self._run_immediately:
            await asyncio.sleep(self._interval)
        while True:
            await self.run_once()
            await asyncio.sleep(self._interval)

    async def stop(self) -> None:
        """Cancel the task and wait for it to unwind."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("periodic_task_stopped", task=self.name, runs=self.runs)

    def snapshot(self) -> dict[str, Any]:
        """Counters for health reports."""
        return {
            "running": self.is_running,
            "runs": self.runs,
            "failures": self.failures,
            "last_error": self.last_error,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
        }
