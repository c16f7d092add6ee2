"""Optimization orchestrator.

Runs the database, cache and image routines one after another and folds
their results into a single report. A failing routine is reported in its
own result and never stops the others.
"""

import logging
from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from perfwatch.core.collectors.images import (
    ImageLoadCollector,
    ImageStats,
    is_large,
    is_slow,
)
from perfwatch.core.collectors.queries import QueryStats, QueryTimer
from perfwatch.core.models import QuerySample
from perfwatch.core.ports import CachePort, CacheWarmer, DatabasePort

logger = logging.getLogger(__name__)

SUGGESTED_INDEXES: dict[str, list[str]] = {
    "articles": [
        "CREATE INDEX IF NOT EXISTS idx_articles_status ON articles(status)",
        "CREATE INDEX IF NOT EXISTS idx_articles_published_at "
        "ON articles(published_at DESC)",
        "CREATE INDEX IF NOT EXISTS idx_articles_author_id ON articles(author_id)",
        "CREATE INDEX IF NOT EXISTS idx_articles_slug ON articles(slug)",
        "CREATE INDEX IF NOT EXISTS idx_articles_status_published_at "
        "ON articles(status, published_at DESC)",
    ],
    "users": [
        "CREATE INDEX IF NOT EXISTS idx_users_email ON users(email)",
        "CREATE INDEX IF NOT EXISTS idx_users_role ON users(role)",
    ],
}

SLOW_QUERY_SAMPLE_LIMIT = 10


@dataclass
class OptimizationResult:
    """Outcome of one optimization routine."""

    success: bool = True
    optimizations: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    metrics: dict[str, Any] = field(
        default_factory=lambda: {"before": None, "after": None}
    )


@dataclass(frozen=True)
class OverallResult:
    success: bool
    total_optimizations: int
    total_errors: int


@dataclass(frozen=True)
class OptimizationReport:
    database: OptimizationResult
    cache: OptimizationResult
    images: OptimizationResult
    overall: OverallResult


@dataclass(frozen=True)
class ResourceBudget:
    """Limits for server-side resources, in milliseconds and bytes."""

    max_page_load_time: float = 2500
    max_api_response_time: float = 500
    max_database_query_time: float = 100
    max_bundle_size: int = 250 * 1024
    max_image_size: int = 500 * 1024


DEFAULT_RESOURCE_BUDGET = ResourceBudget()


@dataclass(frozen=True)
class ResourceBudgetResult:
    passed: bool
    violations: list[str]
    warnings: list[str]


@dataclass(frozen=True)
class Recommendation:
    type: str
    priority: str
    message: str


async def apply_suggested_indexes(
    db: DatabasePort, indexes: Mapping[str, Sequence[str]] = SUGGESTED_INDEXES
) -> list[str]:
    """Execute every index statement, skipping the ones that fail.

    Returns:
        The statements that were applied.
    """
    applied: list[str] = []
    for table, statements in indexes.items():
        logger.info("Creating indexes for %s table", table)
        for statement in statements:
            try:
                await db.execute(statement)
            except Exception as exc:
                logger.warning(
                    "Failed to apply index: %s (%s)",
                    statement,
                    exc,
                    extra={"table": table},
                )
                continue
            applied.append(statement)
    return applied


def statement_type(query: str) -> str:
    """Classify a statement by its leading verb."""
    verb = query.strip().split(None, 1)[0].upper() if query.strip() else ""
    return verb if verb in {"SELECT", "INSERT", "UPDATE", "DELETE"} else "OTHER"


def analyze_slow_query_patterns(slow_queries: Sequence[QuerySample]) -> list[str]:
    """Describe recurring kinds of slow statements."""
    patterns: list[str] = []
    counts = Counter(statement_type(q.operation_label) for q in slow_queries)
    for kind, count in counts.items():
        if count > 1:
            patterns.append(f"{count} slow {kind} queries detected")
    if any("select" in q.operation_label.lower() for q in slow_queries):
        patterns.append("Consider adding indexes for SELECT queries")
    return patterns


def check_resource_budget(
    database: QueryStats,
    images: ImageStats,
    budget: ResourceBudget = DEFAULT_RESOURCE_BUDGET,
) -> ResourceBudgetResult:
    """Compare database and image statistics with a resource budget."""
    violations: list[str] = []
    warnings: list[str] = []

    if database.avg_duration > budget.max_database_query_time:
        violations.append(
            f"Average database query time ({database.avg_duration:.2f}ms) "
            f"exceeds budget ({budget.max_database_query_time:g}ms)"
        )
    if database.slow_queries > 0:
        warnings.append(f"{database.slow_queries} slow database queries detected")

    if images.avg_size > budget.max_image_size:
        violations.append(
            f"Average image size ({images.avg_size / 1024:.2f}KB) "
            f"exceeds budget ({budget.max_image_size / 1024:g}KB)"
        )
    if images.large_images > 0:
        warnings.append(f"{images.large_images} large images detected")

    return ResourceBudgetResult(
        passed=not violations, violations=violations, warnings=warnings
    )


def recommendations(database: QueryStats, images: ImageStats) -> list[Recommendation]:
    """Suggest follow-up work from the current statistics."""
    advice: list[Recommendation] = []
    if database.slow_queries > 0:
        advice.append(
            Recommendation(
                type="database",
                priority="high",
                message=f"{database.slow_queries} slow queries detected. "
                "Consider adding indexes or optimizing queries.",
            )
        )
    if database.avg_duration > 50:
        advice.append(
            Recommendation(
                type="database",
                priority="medium",
                message=f"Average query time is {database.avg_duration:.2f}ms. "
                "Consider query optimization.",
            )
        )
    if images.large_images > 0:
        advice.append(
            Recommendation(
                type="images",
                priority="medium",
                message=f"{images.large_images} large images detected. "
                "Consider compression or WebP format.",
            )
        )
    if images.slow_images > 0:
        advice.append(
            Recommendation(
                type="images",
                priority="high",
                message=f"{images.slow_images} slow-loading images detected. "
                "Consider optimization.",
            )
        )
    return advice


def _failure(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


class PerformanceOptimizer:
    """Coordinates database, cache and image optimization routines.

    Args:
        queries: Collector providing query statistics.
        images: Collector providing image statistics.
        database: Optional database port used to apply index suggestions.
        cache: Optional cache port used to read cache statistics.
        cache_warmer: Optional hook that preloads critical data.
        indexes: Index statements applied by the database routine.
    """

    def __init__(
        self,
        queries: QueryTimer,
        images: ImageLoadCollector,
        database: DatabasePort | None = None,
        cache: CachePort | None = None,
        cache_warmer: CacheWarmer | None = None,
        indexes: Mapping[str, Sequence[str]] = SUGGESTED_INDEXES,
    ) -> None:
        self._queries = queries
        self._images = images
        self._database = database
        self._cache = cache
        self._cache_warmer = cache_warmer
        self._indexes = indexes

    async def optimize_database(self) -> OptimizationResult:
        result = OptimizationResult()
        try:
            result.metrics["before"] = self._queries.get_stats()
            if self._database is None:
                result.optimizations.append(
                    "No database configured; skipped index application"
                )
            else:
                applied = await apply_suggested_indexes(self._database, self._indexes)
                result.optimizations.append(
                    f"Applied {len(applied)} suggested database indexes"
                )

            slow = self._queries.get_metrics(
                slow_only=True, limit=SLOW_QUERY_SAMPLE_LIMIT
            )
            if slow:
                result.optimizations.append(
                    f"Identified {len(slow)} slow queries for optimization"
                )
                result.optimizations.extend(
                    f"Slow query pattern: {pattern}"
                    for pattern in analyze_slow_query_patterns(slow)
                )
            result.metrics["after"] = self._queries.get_stats()
        except Exception as exc:
            logger.exception("Database optimization failed")
            result.success = False
            result.errors.append(f"Database optimization failed: {_failure(exc)}")
        return result

    async def optimize_cache(self) -> OptimizationResult:
        result = OptimizationResult()
        try:
            if self._cache is None:
                result.optimizations.append(
                    "No cache configured; skipped cache optimization"
                )
                return result
            stats = await self._cache.get_stats()
            result.metrics["before"] = stats
            state = "connected" if stats.get("connected") else "disconnected"
            result.optimizations.append(
                f"Cache status: {state}, {stats.get('key_count', 0)} keys"
            )
            if self._cache_warmer is not None:
                await self._cache_warmer()
                result.optimizations.append("Preloaded critical data into cache")
            result.metrics["after"] = await self._cache.get_stats()
        except Exception as exc:
            logger.exception("Cache optimization failed")
            result.success = False
            result.errors.append(f"Cache optimization failed: {_failure(exc)}")
        return result

    async def optimize_images(self) -> OptimizationResult:
        result = OptimizationResult()
        try:
            result.metrics["before"] = self._images.get_stats()
            metrics = self._images.get_metrics()

            large = [m for m in metrics if is_large(m)]
            if large:
                result.optimizations.append(
                    f"Identified {len(large)} large images for optimization"
                )
                result.optimizations.extend(
                    f"Large image: {m.src} ({m.size_bytes / 1024 / 1024:.2f}MB)"
                    for m in large
                )
            slow = [m for m in metrics if is_slow(m)]
            if slow:
                result.optimizations.append(
                    f"Identified {len(slow)} slow-loading images"
                )
            result.optimizations.append("Image optimization analysis completed")
            result.metrics["after"] = self._images.get_stats()
        except Exception as exc:
            logger.exception("Image optimization failed")
            result.success = False
            result.errors.append(f"Image optimization failed: {_failure(exc)}")
        return result

    async def run_full_optimization(self) -> OptimizationReport:
        """Run all three routines sequentially and fold their results."""
        database = await self.optimize_database()
        cache = await self.optimize_cache()
        images = await self.optimize_images()
        parts = (database, cache, images)
        overall = OverallResult(
            success=all(p.success for p in parts),
            total_optimizations=sum(len(p.optimizations) for p in parts),
            total_errors=sum(len(p.errors) for p in parts),
        )
        logger.info(
            "Optimization run finished",
            extra={
                "success": overall.success,
                "total_optimizations": overall.total_optimizations,
                "total_errors": overall.total_errors,
            },
        )
        return OptimizationReport(
            database=database, cache=cache, images=images, overall=overall
        )
