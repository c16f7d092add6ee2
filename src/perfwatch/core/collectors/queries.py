"""Query timing collector.

Wraps arbitrary operations (database queries, remote calls), records how
long each one took and whether it failed, and flags slow ones.
"""

import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, ParamSpec, TypeVar

from perfwatch.adapters.storage.ring_buffer import BoundedBuffer
from perfwatch.core.aggregation import numeric_summary
from perfwatch.core.clock import Clock, now_ms
from perfwatch.core.logs import contained
from perfwatch.core.models import QuerySample

logger = logging.getLogger(__name__)

T = TypeVar("T")
P = ParamSpec("P")

DEFAULT_SLOW_QUERY_THRESHOLD_MS = 100.0
DEFAULT_QUERY_CAPACITY = 1000


@dataclass(frozen=True)
class QueryStats:
    total_queries: int
    slow_queries: int
    error_queries: int
    avg_duration: float
    max_duration: float
    min_duration: float


def _row_count(result: object) -> int | None:
    if isinstance(result, Sequence) and not isinstance(result, (str, bytes)):
        return len(result)
    return None


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class QueryTimer:
    """Measures operations and keeps their timings in a bounded buffer.

    Args:
        slow_query_threshold_ms: Durations above this are flagged as slow.
        enabled: When False, measured operations run uninstrumented.
        capacity: Number of samples kept before the oldest is evicted.
        clock: Epoch-seconds clock used for sample timestamps.
    """

    def __init__(
        self,
        slow_query_threshold_ms: float = DEFAULT_SLOW_QUERY_THRESHOLD_MS,
        enabled: bool = True,
        capacity: int = DEFAULT_QUERY_CAPACITY,
        clock: Clock = time.time,
    ) -> None:
        self._buffer: BoundedBuffer[QuerySample] = BoundedBuffer(capacity)
        self._clock = clock
        self.slow_query_threshold_ms = slow_query_threshold_ms
        self.enabled = enabled

    def set_slow_query_threshold(self, threshold_ms: float) -> None:
        """Set the duration above which an operation counts as slow."""
        self.slow_query_threshold_ms = threshold_ms

    def set_enabled(self, enabled: bool) -> None:
        """Turn instrumentation on or off."""
        self.enabled = enabled

    async def measure(
        self,
        operation_label: str,
        thunk: Callable[[], Awaitable[T]],
        parameters: Sequence[Any] | None = None,
    ) -> T:
        """Await ``thunk()`` and record how long it took.

        The thunk's result is returned and its exception re-raised exactly
        as produced; recording problems are logged and never replace them.

        Args:
            operation_label: Name under which the sample is stored.
            thunk: Zero-argument callable returning an awaitable.
            parameters: Optional parameters to store with the sample.
        """
        if not self.enabled:
            return await thunk()

        start = time.perf_counter()
        try:
            result = await thunk()
        except Exception as exc:
            self._record(operation_label, start, parameters, error=_error_message(exc))
            raise
        self._record(operation_label, start, parameters, row_count=_row_count(result))
        return result

    def measure_sync(
        self,
        operation_label: str,
        fn: Callable[[], T],
        parameters: Sequence[Any] | None = None,
    ) -> T:
        """Blocking counterpart of :meth:`measure`."""
        if not self.enabled:
            return fn()

        start = time.perf_counter()
        try:
            result = fn()
        except Exception as exc:
            self._record(operation_label, start, parameters, error=_error_message(exc))
            raise
        self._record(operation_label, start, parameters, row_count=_row_count(result))
        return result

    def wrap(
        self, operation_label: str, fn: Callable[P, Awaitable[T]]
    ) -> Callable[P, Awaitable[T]]:
        """Return an async callable that measures every call of ``fn``.

        Positional arguments of each call are stored as the sample
        parameters, followed by keyword arguments as ``(name, value)`` pairs.
        """

        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            parameters = [*args, *kwargs.items()]
            return await self.measure(
                operation_label, lambda: fn(*args, **kwargs), parameters
            )

        wrapper.__name__ = getattr(fn, "__name__", "wrapper")
        wrapper.__doc__ = fn.__doc__
        return wrapper

    def _record(
        self,
        operation_label: str,
        start: float,
        parameters: Sequence[Any] | None,
        error: str | None = None,
        row_count: int | None = None,
    ) -> None:
        duration_ms = (time.perf_counter() - start) * 1000
        with contained("Failed to record query sample", operation=operation_label):
            sample = QuerySample(
                operation_label=operation_label,
                duration_ms=duration_ms,
                timestamp_ms=now_ms(self._clock),
                parameters=tuple(parameters) if parameters is not None else None,
                error=error,
                row_count=row_count,
            )
            self._buffer.append(sample)
            if duration_ms > self.slow_query_threshold_ms:
                logger.warning(
                    "Slow query detected (%.2fms): %s",
                    duration_ms,
                    operation_label,
                    extra={
                        "operation": operation_label,
                        "duration_ms": duration_ms,
                        "query_error": error,
                    },
                )

    def _is_slow(self, sample: QuerySample) -> bool:
        return sample.duration_ms > self.slow_query_threshold_ms

    def get_metrics(
        self,
        limit: int | None = None,
        slow_only: bool = False,
        error_only: bool = False,
    ) -> list[QuerySample]:
        """Return samples newest first, optionally filtered and truncated."""

        def keep(sample: QuerySample) -> bool:
            if slow_only and not self._is_slow(sample):
                return False
            return not (error_only and sample.error is None)

        return self._buffer.snapshot(keep, limit)

    def get_stats(self) -> QueryStats:
        """Summary over every sample currently held."""
        samples = self._buffer.items()
        durations = numeric_summary([s.duration_ms for s in samples])
        return QueryStats(
            total_queries=durations.count,
            slow_queries=sum(1 for s in samples if self._is_slow(s)),
            error_queries=sum(1 for s in samples if s.error is not None),
            avg_duration=durations.avg,
            max_duration=durations.max,
            min_duration=durations.min,
        )

    def clear_metrics(self) -> None:
        """Drop every stored sample; configuration is kept."""
        self._buffer.clear()
