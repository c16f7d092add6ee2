"""FastAPI adapter for the monitoring endpoints.

Ingestion endpoints validate their body before storing anything and answer
400 on invalid input. Read endpoints never fail the dashboard: when a
collector cannot be read the endpoint logs the problem and answers an empty
result of the usual shape.
"""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any, Literal

from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Query
from pydantic import TypeAdapter, ValidationError

from perfwatch.adapters.frameworks.schemas import (
    DATABASE_ACTION_ADAPTER,
    ERRORS_ADAPTER,
    IMAGE_ADAPTER,
    VITALS_ADAPTER,
    ClearAction,
    ErrorMessage,
    WebVitalBeacon,
    decode_event,
)
from perfwatch.core.collectors.errors import ErrorStats, IssueStats
from perfwatch.core.collectors.events import (
    DurationStats,
    EventStats,
    ValueStats,
)
from perfwatch.core.collectors.images import ImageStats
from perfwatch.core.collectors.queries import QueryStats
from perfwatch.core.encoding.json import to_jsonable
from perfwatch.core.logs import configure_logging, log_exception
from perfwatch.core.optimization import check_resource_budget, recommendations
from perfwatch.service import TelemetryService

logger = logging.getLogger(__name__)

SUCCESS: dict[str, Any] = {"success": True}

_EMPTY_QUERY_STATS = QueryStats(0, 0, 0, 0.0, 0.0, 0.0)
_EMPTY_IMAGE_STATS = ImageStats(0, 0.0, 0.0, 0, 0)
_EMPTY_EVENT_STATS = EventStats(
    long_tasks=DurationStats(0, 0.0, 0.0),
    layout_shifts=ValueStats(0, 0.0, 0.0),
    slow_resources=DurationStats(0, 0.0, 0.0),
    custom_timers=DurationStats(0, 0.0, 0.0),
)
_EMPTY_ERROR_STATS = ErrorStats(0, {}, {}, 0)
_EMPTY_ISSUE_STATS = IssueStats(0, {}, {}, 0)


def _decode(adapter: TypeAdapter[Any], payload: Any) -> Any:
    """Validate a request body, turning schema errors into a 400."""
    try:
        return adapter.validate_python(payload)
    except ValidationError as exc:
        logger.info(
            "Rejected invalid telemetry payload",
            extra={"validation_errors": exc.error_count()},
        )
        raise HTTPException(status_code=400, detail="Invalid data format") from exc


def _read(
    read: Callable[[], dict[str, Any]],
    degraded: dict[str, Any],
    log_message: str,
) -> dict[str, Any]:
    """Run a read endpoint body, answering ``degraded`` on failure.

    ``degraded`` holds every key of the normal response except ``success``.
    """
    try:
        return read()
    except Exception:
        log_exception(log_message)
        return {"success": False, **to_jsonable(degraded)}


def create_monitoring_router(service: TelemetryService) -> APIRouter:
    """Create a FastAPI router with the /monitoring endpoints.

    Args:
        service: Telemetry service whose collectors back the endpoints.

    Returns:
        APIRouter with ingestion, read and configuration endpoints.
    """

    def require_open() -> None:
        try:
            service.ensure_open()
        except RuntimeError as exc:
            raise HTTPException(
                status_code=503, detail="Telemetry service is shut down"
            ) from exc

    router = APIRouter(
        prefix="/monitoring",
        tags=["monitoring"],
        dependencies=[Depends(require_open)],
    )

    # --- Query timing ---

    @router.get("/database")
    async def get_database_metrics(
        limit: int = Query(default=50),
        slow_only: bool = Query(default=False, alias="slowOnly"),
        error_only: bool = Query(default=False, alias="errorOnly"),
    ) -> dict[str, Any]:
        """Return recent query samples and whole-buffer statistics."""

        def read() -> dict[str, Any]:
            metrics = service.queries.get_metrics(
                limit=limit, slow_only=slow_only, error_only=error_only
            )
            return {
                "success": True,
                "data": to_jsonable(
                    {
                        "metrics": metrics,
                        "stats": service.queries.get_stats(),
                        "total": len(metrics),
                    }
                ),
            }

        degraded = {"data": {"metrics": [], "stats": _EMPTY_QUERY_STATS, "total": 0}}
        return _read(read, degraded, "Error fetching database metrics")

    @router.post("/database")
    async def configure_database_monitor(
        payload: Any = Body(...),
    ) -> dict[str, Any]:
        """Clear samples or change the query timer configuration."""
        if not isinstance(payload, dict) or payload.get("action") not in (
            "clear",
            "configure",
        ):
            raise HTTPException(status_code=400, detail="Invalid action")
        action = _decode(DATABASE_ACTION_ADAPTER, payload)
        if isinstance(action, ClearAction):
            service.queries.clear_metrics()
            return {**SUCCESS, "message": "Metrics cleared"}
        if action.slow_query_threshold is not None:
            service.queries.set_slow_query_threshold(float(action.slow_query_threshold))
        if action.enabled is not None:
            service.queries.set_enabled(action.enabled)
        return {**SUCCESS, "message": "Configuration updated"}

    # --- Web vitals ---

    @router.post("/web-vitals")
    async def ingest_web_vitals(payload: Any = Body(...)) -> dict[str, Any]:
        """Store a single web-vital beacon or a full page report."""
        message = _decode(VITALS_ADAPTER, payload)
        if isinstance(message, WebVitalBeacon):
            service.vitals.record_metric(
                message.metric.to_model(), message.url, message.timestamp
            )
        else:
            service.vitals.record_report(message.report.to_model())
        return SUCCESS

    @router.get("/web-vitals")
    async def get_web_vitals(
        limit: int = Query(default=100),
        url: str | None = Query(default=None),
    ) -> dict[str, Any]:
        """Return recent reports, aggregated percentiles and health ratings."""

        def read() -> dict[str, Any]:
            matching = service.vitals.get_reports(url=url)
            return {
                "success": True,
                "data": to_jsonable(
                    {
                        "recent": matching[: max(limit, 0)],
                        "beacons": service.vitals.get_recent_metrics(
                            limit=limit, url=url
                        ),
                        "aggregated": service.vitals.get_aggregated(url=url),
                        "health": service.vitals.get_health(url=url),
                        "total": len(matching),
                    }
                ),
            }

        degraded = {
            "data": {
                "recent": [],
                "beacons": [],
                "aggregated": {},
                "health": {},
                "total": 0,
            }
        }
        return _read(read, degraded, "Error fetching web vitals data")

    # --- Performance events ---

    @router.post("/performance")
    async def ingest_performance_event(payload: Any = Body(...)) -> dict[str, Any]:
        """Store one long-task, layout-shift, slow-resource or timer event."""
        try:
            event = decode_event(payload)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail="Invalid data format") from exc
        service.events.record_event(event)
        return SUCCESS

    @router.get("/performance")
    async def get_performance_events(
        limit: int = Query(default=100),
        type: Literal["long-task", "layout-shift", "slow-resource", "custom-timer"]
        | None = Query(default=None),
        url: str | None = Query(default=None),
    ) -> dict[str, Any]:
        """Return recent events and per-kind statistics."""

        def read() -> dict[str, Any]:
            matching = service.events.get_events(kind=type, url=url)
            return {
                "success": True,
                "data": to_jsonable(
                    {
                        "events": matching[: max(limit, 0)],
                        "stats": service.events.get_stats(kind=type, url=url),
                        "total": len(matching),
                    }
                ),
            }

        degraded = {"data": {"events": [], "stats": _EMPTY_EVENT_STATS, "total": 0}}
        return _read(read, degraded, "Error fetching performance events")

    # --- Images ---

    @router.post("/images")
    async def ingest_image_load(payload: Any = Body(...)) -> dict[str, Any]:
        """Store an image load sample, or clear samples with an action."""
        if isinstance(payload, dict) and payload.get("action") == "clear":
            service.images.clear()
            return {**SUCCESS, "message": "Image metrics cleared"}
        sample = _decode(IMAGE_ADAPTER, payload)
        service.images.track_load(
            sample.src,
            float(sample.load_time),
            sample.size,
            sample.format,
            sample.to_dimensions(),
        )
        return SUCCESS

    @router.get("/images")
    async def get_image_metrics(limit: int = Query(default=100)) -> dict[str, Any]:
        def read() -> dict[str, Any]:
            metrics = service.images.get_metrics(limit=limit)
            return {
                "success": True,
                "data": to_jsonable(
                    {
                        "metrics": metrics,
                        "stats": service.images.get_stats(),
                        "total": len(metrics),
                    }
                ),
            }

        degraded = {"data": {"metrics": [], "stats": _EMPTY_IMAGE_STATS, "total": 0}}
        return _read(read, degraded, "Error fetching image metrics")

    # --- Errors and performance issues ---

    @router.post("/errors")
    async def ingest_error(payload: Any = Body(...)) -> dict[str, Any]:
        """Store a client error report or a performance issue."""
        message = _decode(ERRORS_ADAPTER, payload)
        if isinstance(message, ErrorMessage):
            service.errors.record_error(message.error.to_model())
        else:
            issue = message.issue
            service.errors.capture_performance_issue(
                type=issue.type,
                severity=issue.severity,
                description=issue.description,
                metrics={k: float(v) for k, v in issue.metrics.items()},
                url=issue.url,
                timestamp_ms=issue.timestamp,
            )
        return SUCCESS

    @router.get("/errors")
    async def get_errors(
        type: Literal["errors", "performance"] | None = Query(default=None),
        limit: int = Query(default=50),
        level: Literal["error", "warning", "info"] | None = Query(default=None),
        severity: Literal["low", "medium", "high", "critical"] | None = Query(
            default=None
        ),
        fingerprint: str | None = Query(default=None),
    ) -> dict[str, Any]:
        """Return errors, performance issues or both, with statistics."""

        def read() -> dict[str, Any]:
            data: dict[str, Any] = {}
            stats: dict[str, Any] = {}
            if type in (None, "errors"):
                data["errors"] = service.errors.get_errors(
                    level=level, fingerprint=fingerprint, limit=limit
                )
                stats["errors"] = service.errors.get_error_stats()
            if type in (None, "performance"):
                data["performance"] = service.errors.get_performance_issues(
                    severity=severity, limit=limit
                )
                stats["performance"] = service.errors.get_issue_stats()
            return {
                "success": True,
                "data": to_jsonable(data),
                "stats": to_jsonable(stats),
            }

        degraded = {
            "data": {"errors": [], "performance": []},
            "stats": {"errors": _EMPTY_ERROR_STATS, "performance": _EMPTY_ISSUE_STATS},
        }
        return _read(read, degraded, "Error fetching error reports")

    # --- Optimization ---

    @router.post("/optimize")
    async def run_optimization() -> dict[str, Any]:
        """Run the database, cache and image optimization routines."""
        report = await service.optimizer.run_full_optimization()
        return {"success": report.overall.success, "data": to_jsonable(report)}

    @router.get("/budget")
    async def get_budget() -> dict[str, Any]:
        """Check resource budgets and list recommendations."""

        def read() -> dict[str, Any]:
            database = service.queries.get_stats()
            images = service.images.get_stats()
            return {
                "success": True,
                "data": to_jsonable(
                    {
                        "metrics": {"database": database, "images": images},
                        "budgetCheck": check_resource_budget(database, images),
                        "recommendations": recommendations(database, images),
                    }
                ),
            }

        degraded = {
            "data": {
                "metrics": {
                    "database": _EMPTY_QUERY_STATS,
                    "images": _EMPTY_IMAGE_STATS,
                },
                "budgetCheck": {"passed": True, "violations": [], "warnings": []},
                "recommendations": [],
            }
        }
        return _read(read, degraded, "Error checking performance budget")

    return router


def create_app(service: TelemetryService | None = None) -> FastAPI:
    """Create a FastAPI app that owns a telemetry service for its lifetime.

    Args:
        service: Service to expose; a new one built from environment
            settings when omitted.

    Returns:
        FastAPI application with the monitoring router mounted. The service
        is available as ``app.state.telemetry`` and shut down on exit.
    """
    telemetry = service or TelemetryService.create()
    configure_logging(telemetry.settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        telemetry.shutdown()

    app = FastAPI(title="perfwatch", lifespan=lifespan)
    app.state.telemetry = telemetry
    app.include_router(create_monitoring_router(telemetry))
    return app
