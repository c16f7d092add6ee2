"""Core domain models for performance telemetry.

Every entity is a frozen value object created once at ingestion. The only
state transition an entity goes through is eviction from its buffer.
Timestamps are integer epoch milliseconds.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Literal

Rating = Literal["good", "needs-improvement", "poor"]
ErrorLevel = Literal["error", "warning", "info"]
IssueType = Literal["slow-query", "memory-leak", "high-cpu", "large-bundle"]
Severity = Literal["low", "medium", "high", "critical"]
EventKind = Literal["long-task", "layout-shift", "slow-resource", "custom-timer"]


@dataclass(frozen=True)
class QuerySample:
    """Timing of one measured operation.

    Attributes:
        operation_label: Name of the measured operation (e.g. a query name).
        duration_ms: Wall-clock duration in milliseconds.
        timestamp_ms: When the operation finished.
        parameters: Opaque call parameters, if any were recorded.
        error: Failure message when the operation raised.
        row_count: Result length when the result was a sequence.
    """

    operation_label: str
    duration_ms: float
    timestamp_ms: int
    parameters: tuple[Any, ...] | None = None
    error: str | None = None
    row_count: int | None = None


@dataclass(frozen=True)
class WebVitalMetric:
    """A single web-vital measurement as reported by the browser.

    The rating is supplied by the caller and never recomputed on write.
    """

    id: str
    name: str
    value: float
    rating: Rating
    delta: float
    navigation_type: str = "navigate"


@dataclass(frozen=True)
class VitalsReport:
    """All web-vital metrics collected for one page load."""

    url: str
    timestamp_ms: int
    metrics: tuple[WebVitalMetric, ...]
    user_agent: str
    connection_type: str | None = None


@dataclass(frozen=True)
class VitalSample:
    """A single web-vital beacon sent before the full page report."""

    metric: WebVitalMetric
    url: str
    timestamp_ms: int


@dataclass(frozen=True)
class LongTask:
    kind: ClassVar[EventKind] = "long-task"

    duration_ms: float
    url: str
    timestamp_ms: int
    name: str | None = None
    start_time: float | None = None

    @property
    def magnitude(self) -> float:
        return self.duration_ms


@dataclass(frozen=True)
class LayoutShift:
    kind: ClassVar[EventKind] = "layout-shift"

    value: float
    url: str
    timestamp_ms: int
    start_time: float | None = None
    sources: tuple[Any, ...] = ()

    @property
    def magnitude(self) -> float:
        return self.value


@dataclass(frozen=True)
class SlowResource:
    kind: ClassVar[EventKind] = "slow-resource"

    duration_ms: float
    url: str
    timestamp_ms: int
    name: str | None = None
    transfer_size: int | None = None
    initiator_type: str | None = None

    @property
    def magnitude(self) -> float:
        return self.duration_ms


@dataclass(frozen=True)
class CustomTimer:
    kind: ClassVar[EventKind] = "custom-timer"

    duration_ms: float
    url: str
    timestamp_ms: int
    name: str | None = None

    @property
    def magnitude(self) -> float:
        return self.duration_ms


PerformanceEvent = LongTask | LayoutShift | SlowResource | CustomTimer


@dataclass(frozen=True)
class Dimensions:
    width: int
    height: int


@dataclass(frozen=True)
class ImageLoadMetric:
    """Load timing and weight of one rendered image."""

    src: str
    load_time_ms: float
    size_bytes: int
    format: str
    dimensions: Dimensions
    timestamp_ms: int


@dataclass(frozen=True)
class ErrorReport:
    """A structured error report.

    Attributes:
        id: Unique identifier assigned at capture.
        message: Error message.
        url: Page or endpoint where the error happened.
        user_agent: Reporting client, empty for server-side errors.
        timestamp_ms: Capture time.
        level: One of error, warning, info.
        fingerprint: Short key grouping recurring errors.
        stack: Stack trace text, if known.
        user_id: Affected user, if known.
        context: Additional structured fields.
    """

    id: str
    message: str
    url: str
    user_agent: str
    timestamp_ms: int
    level: ErrorLevel
    fingerprint: str
    stack: str | None = None
    user_id: str | None = None
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PerformanceIssue:
    """A detected performance problem such as a slow query or memory leak."""

    type: IssueType
    severity: Severity
    description: str
    metrics: dict[str, float]
    timestamp_ms: int
    url: str | None = None
