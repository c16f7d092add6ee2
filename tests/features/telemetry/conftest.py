"""BDD step definitions for telemetry collector features."""

import logging
from dataclasses import dataclass, field

import pytest
from pytest_bdd import given, parsers, then, when

from perfwatch.core.collectors.errors import ErrorTracker
from perfwatch.core.collectors.images import ImageLoadCollector
from perfwatch.core.models import Dimensions, ErrorReport
from tests.conftest import NOW_MS, FakeClock

MINUTE_MS = 60 * 1000


@dataclass
class TelemetryScenarioContext:
    """Shared state between steps in a telemetry scenario."""

    clock: FakeClock = field(default_factory=FakeClock)
    tracker: ErrorTracker | None = None
    images: ImageLoadCollector | None = None
    reported: int = 0


@pytest.fixture
def ctx() -> TelemetryScenarioContext:
    """Fresh scenario context for each test."""
    return TelemetryScenarioContext()


def _report(
    ctx: TelemetryScenarioContext,
    message: str = "boom",
    stack: str | None = None,
    timestamp_ms: int = NOW_MS,
) -> None:
    assert ctx.tracker is not None
    ctx.reported += 1
    ctx.tracker.record_error(
        ErrorReport(
            id=f"bdd-{ctx.reported}",
            message=message,
            url="/",
            user_agent="pytest-bdd",
            timestamp_ms=timestamp_ms,
            level="error",
            fingerprint="",
            stack=stack,
        )
    )


# === Error grouping ===
@given("an error tracker with a clock at a fixed time")
def step_error_tracker(ctx: TelemetryScenarioContext) -> None:
    ctx.tracker = ErrorTracker(clock=ctx.clock)


@when(
    parsers.re(
        r'(?P<count>\d+) errors? (?:is|are) reported with the stack "(?P<stack>[^"]+)"'
    ),
    converters={"count": int},
)
def step_report_with_stack(
    ctx: TelemetryScenarioContext, count: int, stack: str
) -> None:
    for i in range(count):
        _report(ctx, message=f"error {i}", stack=f"{stack}\n    at frame{i}.js:{i}")


@when(parsers.parse('{count:d} errors are reported with the message "{message}"'))
def step_report_with_message(
    ctx: TelemetryScenarioContext, count: int, message: str
) -> None:
    for _ in range(count):
        _report(ctx, message=message)


@when(parsers.parse("an error is reported {minutes:d} minutes ago"))
def step_report_minutes_ago(ctx: TelemetryScenarioContext, minutes: int) -> None:
    _report(ctx, timestamp_ms=NOW_MS - minutes * MINUTE_MS)


@then(parsers.parse("the error stats list {count:d} fingerprints"))
def step_fingerprint_count(ctx: TelemetryScenarioContext, count: int) -> None:
    assert ctx.tracker is not None
    assert len(ctx.tracker.get_error_stats().errors_by_fingerprint) == count


@then(parsers.parse("the most frequent fingerprint has {count:d} errors"))
def step_top_error(ctx: TelemetryScenarioContext, count: int) -> None:
    assert ctx.tracker is not None
    assert ctx.tracker.get_error_stats().top_errors[0].count == count


@then(parsers.parse("the error stats show {count:d} total errors"))
def step_total_errors(ctx: TelemetryScenarioContext, count: int) -> None:
    assert ctx.tracker is not None
    assert ctx.tracker.get_error_stats().total_errors == count


@then(parsers.parse("the error stats show {count:d} recent errors"))
def step_recent_errors(ctx: TelemetryScenarioContext, count: int) -> None:
    assert ctx.tracker is not None
    assert ctx.tracker.get_error_stats().recent_errors == count


# === Image flags ===
@given("an image load collector")
def step_image_collector(
    ctx: TelemetryScenarioContext, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.WARNING, logger="perfwatch.core.collectors.images")
    ctx.images = ImageLoadCollector(clock=ctx.clock)


@when(parsers.parse("an image loads in {load_time:d} ms with {size:d} bytes"))
def step_image_loads(
    ctx: TelemetryScenarioContext, load_time: int, size: int
) -> None:
    assert ctx.images is not None
    ctx.images.track_load(
        "/img/photo.jpg", float(load_time), size, "jpg", Dimensions(800, 600)
    )


@then(
    parsers.parse("the image stats show {slow:d} slow and {large:d} large images")
)
def step_image_stats(ctx: TelemetryScenarioContext, slow: int, large: int) -> None:
    assert ctx.images is not None
    stats = ctx.images.get_stats()
    assert (stats.slow_images, stats.large_images) == (slow, large)


@then(parsers.parse("{warnings:d} image warnings are logged"))
def step_image_warnings(
    caplog: pytest.LogCaptureFixture, warnings: int
) -> None:
    logged = [
        r for r in caplog.records if r.name == "perfwatch.core.collectors.images"
    ]
    assert len(logged) == warnings
