"""Tests for the optimization orchestrator and resource budget."""

from unittest.mock import AsyncMock

import pytest

from perfwatch.core.collectors.images import (
    LARGE_IMAGE_BYTES,
    ImageLoadCollector,
    ImageStats,
)
from perfwatch.core.collectors.queries import QueryStats, QueryTimer
from perfwatch.core.models import Dimensions, QuerySample
from perfwatch.core.optimization import (
    PerformanceOptimizer,
    analyze_slow_query_patterns,
    apply_suggested_indexes,
    check_resource_budget,
    recommendations,
    statement_type,
)
from perfwatch.core.ports import CachePort, DatabasePort
from tests.conftest import NOW_MS


class RecordingDatabase:
    """DatabasePort that remembers statements and fails on demand."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.statements: list[str] = []
        self._fail_on = fail_on

    async def execute(self, statement: str) -> None:
        if self._fail_on and self._fail_on in statement:
            raise RuntimeError("permission denied")
        self.statements.append(statement)


class BrokenCache:
    async def get_stats(self):
        raise ConnectionError("cache unreachable")


def stats(avg: float = 0.0, slow: int = 0) -> QueryStats:
    return QueryStats(
        total_queries=1,
        slow_queries=slow,
        error_queries=0,
        avg_duration=avg,
        max_duration=avg,
        min_duration=avg,
    )


def image_stats(avg_size: float = 0.0, large: int = 0, slow: int = 0) -> ImageStats:
    return ImageStats(
        total_images=1,
        avg_load_time=0.0,
        avg_size=avg_size,
        slow_images=slow,
        large_images=large,
    )


class TestIndexes:
    """Tests for apply_suggested_indexes()."""

    @pytest.mark.core
    @pytest.mark.tier(1)
    async def test_failing_statement_is_skipped(self) -> None:
        db = RecordingDatabase(fail_on="idx_users_role")
        indexes = {
            "users": [
                "CREATE INDEX idx_users_email ON users(email)",
                "CREATE INDEX idx_users_role ON users(role)",
            ]
        }

        applied = await apply_suggested_indexes(db, indexes)

        assert applied == ["CREATE INDEX idx_users_email ON users(email)"]

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_recording_database_satisfies_port(self) -> None:
        assert isinstance(RecordingDatabase(), DatabasePort)
        assert isinstance(BrokenCache(), CachePort)


class TestSlowQueryPatterns:
    """Tests for statement_type() and analyze_slow_query_patterns()."""

    @pytest.mark.core
    @pytest.mark.tier(0)
    @pytest.mark.parametrize(
        ("query", "expected"),
        [("select * from t", "SELECT"), ("  DELETE FROM t", "DELETE"),
         ("users.list", "OTHER"), ("", "OTHER")],
    )
    def test_statement_type(self, query: str, expected: str) -> None:
        assert statement_type(query) == expected

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_repeated_selects_are_reported(self) -> None:
        samples = [
            QuerySample("SELECT * FROM articles", 300.0, NOW_MS),
            QuerySample("SELECT * FROM users", 200.0, NOW_MS),
        ]

        patterns = analyze_slow_query_patterns(samples)

        assert patterns == [
            "2 slow SELECT queries detected",
            "Consider adding indexes for SELECT queries",
        ]


class TestResourceBudget:
    """Tests for check_resource_budget() and recommendations()."""

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_healthy_stats_pass(self) -> None:
        result = check_resource_budget(stats(avg=10.0), image_stats())

        assert result.passed
        assert result.violations == []

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_slow_database_is_a_violation(self) -> None:
        result = check_resource_budget(stats(avg=150.0, slow=3), image_stats())

        assert not result.passed
        assert result.violations == [
            "Average database query time (150.00ms) exceeds budget (100ms)"
        ]
        assert result.warnings == ["3 slow database queries detected"]

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_recommendations_follow_stats(self) -> None:
        advice = recommendations(stats(avg=60.0, slow=2), image_stats(large=1, slow=1))

        assert [(a.type, a.priority) for a in advice] == [
            ("database", "high"),
            ("database", "medium"),
            ("images", "medium"),
            ("images", "high"),
        ]

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_no_recommendations_for_healthy_stats(self) -> None:
        assert recommendations(stats(), image_stats()) == []


class TestPerformanceOptimizer:
    """Tests for the optimization routines."""

    @pytest.mark.core
    @pytest.mark.tier(1)
    async def test_missing_collaborators_are_skipped_not_failed(self) -> None:
        optimizer = PerformanceOptimizer(QueryTimer(), ImageLoadCollector())

        report = await optimizer.run_full_optimization()

        assert report.overall.success
        assert report.overall.total_errors == 0
        assert report.database.optimizations == [
            "No database configured; skipped index application"
        ]
        assert report.cache.optimizations == [
            "No cache configured; skipped cache optimization"
        ]

    @pytest.mark.core
    @pytest.mark.tier(1)
    async def test_database_routine_applies_indexes_and_reports_slow_queries(
        self,
    ) -> None:
        queries = QueryTimer(slow_query_threshold_ms=-1)
        queries.measure_sync("SELECT * FROM articles", lambda: None)
        db = RecordingDatabase()
        optimizer = PerformanceOptimizer(
            queries, ImageLoadCollector(), database=db, indexes={"t": ["CREATE X"]}
        )

        result = await optimizer.optimize_database()

        assert result.success
        assert db.statements == ["CREATE X"]
        assert "Applied 1 suggested database indexes" in result.optimizations
        assert "Identified 1 slow queries for optimization" in result.optimizations
        assert result.metrics["before"].total_queries == 1

    @pytest.mark.core
    @pytest.mark.tier(1)
    async def test_failing_cache_does_not_stop_other_routines(self) -> None:
        images = ImageLoadCollector()
        images.track_load("/hero.jpg", 100.0, 2 * LARGE_IMAGE_BYTES, "jpg",
                          Dimensions(10, 10))
        optimizer = PerformanceOptimizer(QueryTimer(), images, cache=BrokenCache())

        report = await optimizer.run_full_optimization()

        assert not report.overall.success
        assert report.overall.total_errors == 1
        assert report.cache.errors == ["Cache optimization failed: cache unreachable"]
        assert report.database.success
        assert report.images.success
        assert "Identified 1 large images for optimization" in (
            report.images.optimizations
        )

    @pytest.mark.core
    @pytest.mark.tier(1)
    async def test_cache_routine_runs_warmer(self) -> None:
        cache = AsyncMock()
        cache.get_stats.return_value = {"connected": True, "key_count": 12}
        warmer = AsyncMock()
        optimizer = PerformanceOptimizer(
            QueryTimer(), ImageLoadCollector(), cache=cache, cache_warmer=warmer
        )

        result = await optimizer.optimize_cache()

        warmer.assert_awaited_once()
        assert result.optimizations == [
            "Cache status: connected, 12 keys",
            "Preloaded critical data into cache",
        ]
