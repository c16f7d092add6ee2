"""Port interfaces for external collaborators.

The optimization orchestrator talks to the database and the cache only
through these protocols; concrete adapters live in the host application.
"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypedDict, runtime_checkable


class CacheStats(TypedDict, total=False):
    """Introspection data returned by a cache backend."""

    connected: bool
    key_count: int
    memory: str | None


@runtime_checkable
class DatabasePort(Protocol):
    """Port for executing maintenance statements against the database."""

    async def execute(self, statement: str) -> Any:
        """Execute a single SQL statement."""
        ...


@runtime_checkable
class CachePort(Protocol):
    """Port for reading cache backend statistics."""

    async def get_stats(self) -> CacheStats:
        """Return current cache statistics."""
        ...


# Loads critical data into the cache ahead of traffic.
CacheWarmer = Callable[[], Awaitable[None]]
