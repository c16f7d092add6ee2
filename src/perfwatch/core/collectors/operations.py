"""Named start/end timers that report slow operations as performance issues."""

import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from perfwatch.core.collectors.errors import ErrorTracker

logger = logging.getLogger(__name__)

T = TypeVar("T")

SLOW_OPERATION_MS = 1000.0
VERY_SLOW_OPERATION_MS = 5000.0


class OperationTimer:
    """Times named operations and files slow ones with an ErrorTracker."""

    def __init__(self, tracker: ErrorTracker) -> None:
        self._tracker = tracker
        self._started: dict[str, float] = {}

    def start(self, name: str) -> None:
        self._started[name] = time.perf_counter()

    def end(self, name: str) -> float:
        """Stop the named measurement and return its duration in ms.

        Returns 0 when no measurement with that name was started.
        """
        started = self._started.pop(name, None)
        if started is None:
            logger.warning("No start time found for measurement: %s", name)
            return 0.0

        duration_ms = (time.perf_counter() - started) * 1000
        if duration_ms > SLOW_OPERATION_MS:
            logger.warning(
                "Slow operation detected: %s took %.2fms",
                name,
                duration_ms,
                extra={"operation": name, "duration_ms": duration_ms},
            )
            self._tracker.capture_performance_issue(
                type="slow-query",
                severity="high" if duration_ms > VERY_SLOW_OPERATION_MS else "medium",
                description=f"Slow operation: {name}",
                metrics={"duration": duration_ms},
            )
        return duration_ms

    async def measure(self, name: str, thunk: Callable[[], Awaitable[T]]) -> T:
        """Await ``thunk()`` between start and end of a measurement."""
        self.start(name)
        try:
            return await thunk()
        finally:
            self.end(name)
