"""Composition root for the telemetry collectors.

A ``TelemetryService`` owns one instance of every collector. The host
application creates it once, passes it by reference to whatever ingests or
reads telemetry, and shuts it down on exit. Tests build isolated instances.
"""

import logging
import time
from dataclasses import dataclass, field

from perfwatch.config import TelemetrySettings
from perfwatch.core.clock import Clock
from perfwatch.core.collectors.errors import ErrorTracker
from perfwatch.core.collectors.events import PerformanceEventCollector
from perfwatch.core.collectors.images import ImageLoadCollector
from perfwatch.core.collectors.operations import OperationTimer
from perfwatch.core.collectors.queries import QueryTimer
from perfwatch.core.collectors.vitals import WebVitalsCollector
from perfwatch.core.optimization import PerformanceOptimizer
from perfwatch.core.ports import CachePort, CacheWarmer, DatabasePort

logger = logging.getLogger(__name__)


@dataclass
class TelemetryService:
    """Every collector of one process, plus the optimizer that reads them."""

    settings: TelemetrySettings
    queries: QueryTimer
    vitals: WebVitalsCollector
    events: PerformanceEventCollector
    images: ImageLoadCollector
    errors: ErrorTracker
    operations: OperationTimer
    optimizer: PerformanceOptimizer
    _closed: bool = field(default=False, repr=False)

    @classmethod
    def create(
        cls,
        settings: TelemetrySettings | None = None,
        database: DatabasePort | None = None,
        cache: CachePort | None = None,
        cache_warmer: CacheWarmer | None = None,
        clock: Clock = time.time,
    ) -> "TelemetryService":
        """Build a service with fresh, empty collectors.

        Args:
            settings: Configuration; read from the environment when omitted.
            database: Optional database port for index optimization.
            cache: Optional cache port for cache introspection.
            cache_warmer: Optional hook preloading critical cache data.
            clock: Epoch-seconds clock shared by all collectors.
        """
        settings = settings or TelemetrySettings()
        queries = QueryTimer(
            slow_query_threshold_ms=settings.slow_query_threshold_ms,
            enabled=settings.query_timing_enabled,
            capacity=settings.query_capacity,
            clock=clock,
        )
        images = ImageLoadCollector(capacity=settings.image_capacity, clock=clock)
        errors = ErrorTracker(
            error_capacity=settings.error_capacity,
            issue_capacity=settings.issue_capacity,
            enabled=settings.error_tracking_enabled,
            clock=clock,
        )
        service = cls(
            settings=settings,
            queries=queries,
            vitals=WebVitalsCollector(capacity=settings.vitals_capacity, clock=clock),
            events=PerformanceEventCollector(capacity=settings.event_capacity),
            images=images,
            errors=errors,
            operations=OperationTimer(errors),
            optimizer=PerformanceOptimizer(
                queries,
                images,
                database=database,
                cache=cache,
                cache_warmer=cache_warmer,
            ),
        )
        logger.info("Telemetry service created")
        return service

    @property
    def closed(self) -> bool:
        return self._closed

    def ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("TelemetryService has been shut down")

    def clear(self) -> None:
        """Empty every collector buffer; configuration is kept."""
        self.queries.clear_metrics()
        self.vitals.clear()
        self.events.clear()
        self.images.clear()
        self.errors.clear()

    def shutdown(self) -> None:
        """Release buffered telemetry and refuse further use."""
        if self._closed:
            return
        self.clear()
        self._closed = True
        logger.info("Telemetry service shut down")
