"""Shared test fixtures for all test modules."""

from collections.abc import AsyncGenerator, Callable

import httpx
import pytest

from perfwatch.adapters.frameworks.fastapi import create_app
from perfwatch.config import TelemetrySettings
from perfwatch.core.models import ErrorReport, VitalsReport, WebVitalMetric
from perfwatch.service import TelemetryService

# Fixed "now" for tests that depend on recency windows: 2024-01-01T00:00:00Z
NOW_S = 1_704_067_200.0
NOW_MS = int(NOW_S * 1000)


class FakeClock:
    """Settable epoch-seconds clock."""

    def __init__(self, now: float = NOW_S) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Provide a clock frozen at NOW_S."""
    return FakeClock()


@pytest.fixture
def settings() -> TelemetrySettings:
    """Default settings, unaffected by PERFWATCH_* environment variables."""
    return TelemetrySettings(_env_file=None)


@pytest.fixture
def service(settings: TelemetrySettings, clock: FakeClock) -> TelemetryService:
    """Fresh telemetry service with empty collectors and a frozen clock."""
    return TelemetryService.create(settings=settings, clock=clock)


# === Model factories ===


@pytest.fixture
def make_metric() -> Callable[..., WebVitalMetric]:
    """Factory fixture for WebVitalMetric with sensible defaults."""

    def _metric(
        name: str = "LCP",
        value: float = 1200.0,
        rating: str = "good",
    ) -> WebVitalMetric:
        return WebVitalMetric(
            id=f"v1-{name}",
            name=name,
            value=value,
            rating=rating,  # type: ignore[arg-type]
            delta=value,
        )

    return _metric


@pytest.fixture
def make_report(
    make_metric: Callable[..., WebVitalMetric],
) -> Callable[..., VitalsReport]:
    """Factory fixture for a single-page VitalsReport."""

    def _report(
        url: str = "/home",
        metrics: tuple[WebVitalMetric, ...] | None = None,
        timestamp_ms: int = NOW_MS,
    ) -> VitalsReport:
        return VitalsReport(
            url=url,
            timestamp_ms=timestamp_ms,
            metrics=metrics if metrics is not None else (make_metric(),),
            user_agent="pytest",
        )

    return _report


@pytest.fixture
def make_error() -> Callable[..., ErrorReport]:
    """Factory fixture for client ErrorReport values."""

    def _error(
        message: str = "boom",
        timestamp_ms: int = NOW_MS,
        level: str = "error",
        stack: str | None = None,
        fingerprint: str = "",
    ) -> ErrorReport:
        return ErrorReport(
            id=f"{timestamp_ms}-test",
            message=message,
            url="/page",
            user_agent="pytest",
            timestamp_ms=timestamp_ms,
            level=level,  # type: ignore[arg-type]
            fingerprint=fingerprint,
            stack=stack,
        )

    return _error


# === ASGI Test Fixtures ===


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client, service):
            app = create_app(service)
            async with asgi_test_client(app) as client:
                response = await client.get("/monitoring/images")
    """

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client


@pytest.fixture
async def client(
    service: TelemetryService, asgi_test_client
) -> AsyncGenerator[httpx.AsyncClient]:
    """Client bound to an app serving the ``service`` fixture."""
    app = create_app(service)
    async with asgi_test_client(app) as client:
        yield client
