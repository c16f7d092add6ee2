"""Resource and task event collector.

Ingests long tasks, layout shifts, slow resources and custom timers into a
single buffer and splits them by kind when statistics are requested.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from perfwatch.adapters.storage.ring_buffer import BoundedBuffer
from perfwatch.core.aggregation import numeric_summary
from perfwatch.core.logs import contained
from perfwatch.core.models import (
    CustomTimer,
    EventKind,
    LayoutShift,
    LongTask,
    PerformanceEvent,
    SlowResource,
)

logger = logging.getLogger(__name__)

DEFAULT_EVENT_CAPACITY = 1000

# Server-side logging thresholds.
LONG_TASK_LOG_MS = 100.0
LAYOUT_SHIFT_LOG_VALUE = 0.25
SLOW_RESOURCE_LOG_MS = 5000.0

# Browser monitor emission thresholds. Independent of the logging ones.
LONG_TASK_REPORT_MS = 50.0
LAYOUT_SHIFT_REPORT_VALUE = 0.1
SLOW_RESOURCE_REPORT_MS = 2000.0

_REPORT_THRESHOLDS: dict[str, float] = {
    LongTask.kind: LONG_TASK_REPORT_MS,
    LayoutShift.kind: LAYOUT_SHIFT_REPORT_VALUE,
    SlowResource.kind: SLOW_RESOURCE_REPORT_MS,
}


@dataclass(frozen=True)
class DurationStats:
    count: int
    avg_duration: float
    max_duration: float


@dataclass(frozen=True)
class ValueStats:
    count: int
    avg_value: float
    max_value: float


@dataclass(frozen=True)
class EventStats:
    long_tasks: DurationStats
    layout_shifts: ValueStats
    slow_resources: DurationStats
    custom_timers: DurationStats


def should_report(event: PerformanceEvent) -> bool:
    """Whether a browser monitor would emit this event at all.

    Custom timers are always emitted.
    """
    threshold = _REPORT_THRESHOLDS.get(event.kind)
    return threshold is None or event.magnitude > threshold


def _durations(events: list[PerformanceEvent]) -> DurationStats:
    summary = numeric_summary([e.magnitude for e in events])
    return DurationStats(
        count=summary.count, avg_duration=summary.avg, max_duration=summary.max
    )


def _values(events: list[PerformanceEvent]) -> ValueStats:
    summary = numeric_summary([e.magnitude for e in events])
    return ValueStats(count=summary.count, avg_value=summary.avg, max_value=summary.max)


class PerformanceEventCollector:
    """Stores browser performance events in one bounded buffer.

    Args:
        capacity: Number of events kept before the oldest is evicted.
    """

    def __init__(self, capacity: int = DEFAULT_EVENT_CAPACITY) -> None:
        self._buffer: BoundedBuffer[PerformanceEvent] = BoundedBuffer(capacity)

    def record_event(self, event: PerformanceEvent) -> None:
        """Store an event and log it when it crosses its kind's threshold."""
        with contained("Failed to record performance event", kind=event.kind):
            self._buffer.append(event)
            self._log_if_significant(event)

    def _log_if_significant(self, event: PerformanceEvent) -> None:
        fields = {"kind": event.kind, "url": event.url, "magnitude": event.magnitude}
        if isinstance(event, LongTask) and event.duration_ms > LONG_TASK_LOG_MS:
            logger.warning(
                "Long task detected: %sms on %s",
                event.duration_ms,
                event.url,
                extra=fields,
            )
        elif isinstance(event, LayoutShift) and event.value > LAYOUT_SHIFT_LOG_VALUE:
            logger.warning(
                "Significant layout shift: %s on %s",
                event.value,
                event.url,
                extra=fields,
            )
        elif (
            isinstance(event, SlowResource)
            and event.duration_ms > SLOW_RESOURCE_LOG_MS
        ):
            logger.warning(
                "Very slow resource: %s (%sms) on %s",
                event.name,
                event.duration_ms,
                event.url,
                extra=fields,
            )

    def _select(
        self, kind: EventKind | None, url: str | None
    ) -> Callable[[PerformanceEvent], bool] | None:
        if kind is None and url is None:
            return None

        def keep(event: PerformanceEvent) -> bool:
            if kind is not None and event.kind != kind:
                return False
            return url is None or event.url == url

        return keep

    def get_events(
        self,
        limit: int | None = None,
        kind: EventKind | None = None,
        url: str | None = None,
    ) -> list[PerformanceEvent]:
        """Return events newest first, optionally filtered by kind and URL."""
        return self._buffer.snapshot(self._select(kind, url), limit)

    def get_stats(
        self, kind: EventKind | None = None, url: str | None = None
    ) -> EventStats:
        """Per-kind count, mean and max magnitude; empty kinds are zeros."""
        events = self._buffer.snapshot(self._select(kind, url))
        return EventStats(
            long_tasks=_durations([e for e in events if isinstance(e, LongTask)]),
            layout_shifts=_values([e for e in events if isinstance(e, LayoutShift)]),
            slow_resources=_durations(
                [e for e in events if isinstance(e, SlowResource)]
            ),
            custom_timers=_durations(
                [e for e in events if isinstance(e, CustomTimer)]
            ),
        )

    def clear(self) -> None:
        self._buffer.clear()
