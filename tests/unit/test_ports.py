"""Tests for port interfaces."""

import pytest

from perfwatch.core.ports import CachePort, CacheStats, DatabasePort


class TestDatabasePort:
    """Tests for DatabasePort protocol."""

    @pytest.mark.core
    def test_protocol_has_execute_method(self) -> None:
        """DatabasePort must define execute(statement: str)."""
        assert hasattr(DatabasePort, "execute")

    @pytest.mark.core
    def test_class_implementing_protocol_is_recognized(self) -> None:
        """A class with an execute method should satisfy DatabasePort."""

        class FakeDatabase:
            async def execute(self, statement: str) -> None:
                pass

        db: DatabasePort = FakeDatabase()
        assert isinstance(db, DatabasePort)

    @pytest.mark.core
    def test_class_without_execute_is_rejected(self) -> None:
        class NotADatabase:
            async def query(self, sql: str) -> None:
                pass

        assert not isinstance(NotADatabase(), DatabasePort)


class TestCachePort:
    """Tests for CachePort protocol."""

    @pytest.mark.core
    def test_protocol_has_get_stats_method(self) -> None:
        """CachePort must define get_stats() -> CacheStats."""
        assert hasattr(CachePort, "get_stats")

    @pytest.mark.core
    def test_class_implementing_protocol_is_recognized(self) -> None:
        class FakeCache:
            async def get_stats(self) -> CacheStats:
                return {"connected": True, "key_count": 0}

        assert isinstance(FakeCache(), CachePort)
