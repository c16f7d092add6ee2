"""Example FastAPI application with performance monitoring endpoints.

Run with:
    uvicorn examples.fastapi_example:app --reload

Endpoints:
    /monitoring/database     - query timings (GET), clear/configure (POST)
    /monitoring/web-vitals   - web-vital beacons and page reports
    /monitoring/performance  - long tasks, layout shifts, slow resources
    /monitoring/images       - image load timings
    /monitoring/errors       - client errors and performance issues
    /monitoring/optimize     - run the optimization routines (POST)
    /monitoring/budget       - resource budget check and recommendations

Instrumentation:
    Application routes measure their data access with ``QueryTimer.wrap``
    and ``OperationTimer.measure``. Application errors logged through the
    standard logging module land in the error tracker via
    ``ErrorTrackingHandler``.
"""

import asyncio
import logging

from perfwatch import ErrorTrackingHandler, TelemetryService
from perfwatch.adapters.frameworks.fastapi import create_app

logger = logging.getLogger("example")

USERS = [{"id": "1", "name": "Alice"}, {"id": "2", "name": "Bob"}]


class InMemoryDatabase:
    """Stand-in DatabasePort that accepts every maintenance statement."""

    def __init__(self) -> None:
        self.executed: list[str] = []

    async def execute(self, statement: str) -> None:
        await asyncio.sleep(0)
        self.executed.append(statement)


class InMemoryCache:
    """Stand-in CachePort backed by a dict."""

    def __init__(self) -> None:
        self.data: dict[str, object] = {}

    async def get_stats(self) -> dict[str, object]:
        return {"connected": True, "key_count": len(self.data), "memory": None}


cache = InMemoryCache()


async def warm_cache() -> None:
    cache.data["users"] = USERS


telemetry = TelemetryService.create(
    database=InMemoryDatabase(), cache=cache, cache_warmer=warm_cache
)
logging.getLogger().addHandler(ErrorTrackingHandler(telemetry.errors))

app = create_app(telemetry)


async def fetch_users() -> list[dict[str, str]]:
    await asyncio.sleep(0.01)
    return USERS


list_users = telemetry.queries.wrap("users.list", fetch_users)


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "Hello! Check the /monitoring endpoints."}


@app.get("/users")
async def get_users() -> dict[str, list[dict[str, str]]]:
    """Users endpoint whose data access is timed by the query timer."""
    users = await telemetry.operations.measure("GET /users", list_users)
    return {"users": users}


@app.get("/slow")
async def slow() -> dict[str, str]:
    """Endpoint slower than the slow-query threshold."""

    async def report() -> str:
        await asyncio.sleep(0.2)
        return "done"

    return {"status": await telemetry.queries.measure("reports.build", report)}


@app.get("/fail")
async def fail() -> dict[str, str]:
    """Endpoint whose failure is logged and captured by the error tracker."""
    try:
        raise ValueError("inventory service unavailable")
    except ValueError:
        logger.exception("Failed to load inventory")
    return {"status": "degraded"}
