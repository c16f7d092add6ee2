"""Ingestion schemas for the monitoring endpoints.

Bodies are validated here before anything reaches a collector: enums are
restricted to their listed variants, numbers must be finite JSON numbers,
extra fields are ignored. Each schema converts itself to the matching core
model.
"""

from typing import Annotated, Any, Literal

from pydantic import (
    AllowInfNan,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    TypeAdapter,
)
from pydantic.alias_generators import to_camel

from perfwatch.core.models import (
    CustomTimer,
    Dimensions,
    ErrorReport,
    LayoutShift,
    LongTask,
    PerformanceEvent,
    SlowResource,
    VitalsReport,
    WebVitalMetric,
)

# Python's JSON parser reads 1e999 as inf and accepts NaN and Infinity literals.
Number = StrictInt | Annotated[StrictFloat, AllowInfNan(False)]


class WireModel(BaseModel):
    """Base for request bodies: camelCase keys, extra keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        allow_inf_nan=False,
    )


# === Web vitals ===


class WebVitalMetricIn(WireModel):
    id: StrictStr
    name: StrictStr
    value: Number
    rating: Literal["good", "needs-improvement", "poor"]
    delta: Number
    navigation_type: StrictStr = "navigate"

    def to_model(self) -> WebVitalMetric:
        return WebVitalMetric(
            id=self.id,
            name=self.name,
            value=float(self.value),
            rating=self.rating,
            delta=float(self.delta),
            navigation_type=self.navigation_type,
        )


class VitalsReportIn(WireModel):
    url: StrictStr
    timestamp: StrictInt
    metrics: list[WebVitalMetricIn]
    user_agent: StrictStr
    connection_type: StrictStr | None = None

    def to_model(self) -> VitalsReport:
        return VitalsReport(
            url=self.url,
            timestamp_ms=self.timestamp,
            metrics=tuple(m.to_model() for m in self.metrics),
            user_agent=self.user_agent,
            connection_type=self.connection_type,
        )


class WebVitalBeacon(WireModel):
    type: Literal["web-vital"]
    metric: WebVitalMetricIn
    url: StrictStr = ""
    timestamp: StrictInt | None = None


class WebVitalsReportMessage(WireModel):
    type: Literal["web-vitals-report"]
    report: VitalsReportIn


VitalsMessage = Annotated[
    WebVitalBeacon | WebVitalsReportMessage, Field(discriminator="type")
]


# === Performance events ===


class LongTaskIn(WireModel):
    type: Literal["long-task"]
    duration: Number
    url: StrictStr
    timestamp: StrictInt
    name: StrictStr | None = None
    start_time: Number | None = None

    def to_model(self) -> LongTask:
        return LongTask(
            duration_ms=float(self.duration),
            url=self.url,
            timestamp_ms=self.timestamp,
            name=self.name,
            start_time=self.start_time,
        )


class LayoutShiftIn(WireModel):
    type: Literal["layout-shift"]
    value: Number
    url: StrictStr
    timestamp: StrictInt
    start_time: Number | None = None
    sources: list[Any] = Field(default_factory=list)

    def to_model(self) -> LayoutShift:
        return LayoutShift(
            value=float(self.value),
            url=self.url,
            timestamp_ms=self.timestamp,
            start_time=self.start_time,
            sources=tuple(self.sources),
        )


class SlowResourceIn(WireModel):
    type: Literal["slow-resource"]
    duration: Number
    url: StrictStr
    timestamp: StrictInt
    name: StrictStr | None = None
    transfer_size: StrictInt | None = None
    initiator_type: StrictStr | None = None

    def to_model(self) -> SlowResource:
        return SlowResource(
            duration_ms=float(self.duration),
            url=self.url,
            timestamp_ms=self.timestamp,
            name=self.name,
            transfer_size=self.transfer_size,
            initiator_type=self.initiator_type,
        )


class CustomTimerIn(WireModel):
    type: Literal["custom-timer"]
    duration: Number
    url: StrictStr
    timestamp: StrictInt
    name: StrictStr | None = None

    def to_model(self) -> CustomTimer:
        return CustomTimer(
            duration_ms=float(self.duration),
            url=self.url,
            timestamp_ms=self.timestamp,
            name=self.name,
        )


PerformanceEventIn = Annotated[
    LongTaskIn | LayoutShiftIn | SlowResourceIn | CustomTimerIn,
    Field(discriminator="type"),
]


def decode_event(payload: Any) -> PerformanceEvent:
    """Validate a performance event body and convert it to a core event."""
    return _EVENT_ADAPTER.validate_python(payload).to_model()


# === Images ===


class DimensionsIn(WireModel):
    width: StrictInt
    height: StrictInt


class ImageLoadIn(WireModel):
    src: StrictStr
    load_time: Number
    size: StrictInt
    format: StrictStr
    dimensions: DimensionsIn

    def to_dimensions(self) -> Dimensions:
        return Dimensions(width=self.dimensions.width, height=self.dimensions.height)


# === Errors and performance issues ===


class ErrorReportIn(WireModel):
    id: StrictStr
    message: StrictStr
    url: StrictStr
    user_agent: StrictStr
    timestamp: StrictInt
    level: Literal["error", "warning", "info"]
    stack: StrictStr | None = None
    user_id: StrictStr | None = None
    context: dict[str, Any] | None = None
    fingerprint: StrictStr | None = None

    def to_model(self) -> ErrorReport:
        return ErrorReport(
            id=self.id,
            message=self.message,
            url=self.url,
            user_agent=self.user_agent,
            timestamp_ms=self.timestamp,
            level=self.level,
            fingerprint=self.fingerprint or "",
            stack=self.stack,
            user_id=self.user_id,
            context=dict(self.context or {}),
        )


class PerformanceIssueIn(WireModel):
    type: Literal["slow-query", "memory-leak", "high-cpu", "large-bundle"]
    severity: Literal["low", "medium", "high", "critical"]
    description: StrictStr
    metrics: dict[str, Number]
    timestamp: StrictInt
    url: StrictStr | None = None


class ErrorMessage(WireModel):
    type: Literal["error"]
    error: ErrorReportIn


class IssueMessage(WireModel):
    type: Literal["performance-issue"]
    issue: PerformanceIssueIn


ErrorsMessage = Annotated[ErrorMessage | IssueMessage, Field(discriminator="type")]


# === Configuration actions ===


class ClearAction(WireModel):
    action: Literal["clear"]


class ConfigureAction(WireModel):
    action: Literal["configure"]
    slow_query_threshold: Number | None = None
    enabled: StrictBool | None = None


DatabaseAction = Annotated[
    ClearAction | ConfigureAction, Field(discriminator="action")
]


_EVENT_ADAPTER: TypeAdapter[
    LongTaskIn | LayoutShiftIn | SlowResourceIn | CustomTimerIn
] = TypeAdapter(PerformanceEventIn)
VITALS_ADAPTER: TypeAdapter[WebVitalBeacon | WebVitalsReportMessage] = TypeAdapter(
    VitalsMessage
)
ERRORS_ADAPTER: TypeAdapter[ErrorMessage | IssueMessage] = TypeAdapter(ErrorsMessage)
DATABASE_ACTION_ADAPTER: TypeAdapter[ClearAction | ConfigureAction] = TypeAdapter(
    DatabaseAction
)
IMAGE_ADAPTER: TypeAdapter[ImageLoadIn] = TypeAdapter(ImageLoadIn)
