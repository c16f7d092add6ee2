"""perfwatch: in-process performance telemetry for web applications.

Collects query timings, web vitals, browser performance events, image
loads and errors into bounded in-memory buffers and summarises them on
demand.
"""

from perfwatch.adapters.logging import ErrorTrackingHandler
from perfwatch.adapters.storage.ring_buffer import BoundedBuffer
from perfwatch.config import TelemetrySettings
from perfwatch.core.collectors.errors import ErrorTracker, compute_fingerprint
from perfwatch.core.collectors.events import PerformanceEventCollector
from perfwatch.core.collectors.images import ImageLoadCollector
from perfwatch.core.collectors.operations import OperationTimer
from perfwatch.core.collectors.queries import QueryTimer
from perfwatch.core.collectors.vitals import WebVitalsCollector
from perfwatch.core.models import (
    CustomTimer,
    Dimensions,
    ErrorReport,
    ImageLoadMetric,
    LayoutShift,
    LongTask,
    PerformanceEvent,
    PerformanceIssue,
    QuerySample,
    SlowResource,
    VitalSample,
    VitalsReport,
    WebVitalMetric,
)
from perfwatch.core.optimization import PerformanceOptimizer
from perfwatch.core.ports import CachePort, DatabasePort
from perfwatch.service import TelemetryService

__all__ = [
    # Service
    "TelemetryService",
    "TelemetrySettings",
    # Collectors
    "QueryTimer",
    "WebVitalsCollector",
    "PerformanceEventCollector",
    "ImageLoadCollector",
    "ErrorTracker",
    "OperationTimer",
    "PerformanceOptimizer",
    "compute_fingerprint",
    # Storage
    "BoundedBuffer",
    # Ports
    "DatabasePort",
    "CachePort",
    # Models
    "QuerySample",
    "WebVitalMetric",
    "VitalsReport",
    "VitalSample",
    "LongTask",
    "LayoutShift",
    "SlowResource",
    "CustomTimer",
    "PerformanceEvent",
    "Dimensions",
    "ImageLoadMetric",
    "ErrorReport",
    "PerformanceIssue",
    # Logging
    "ErrorTrackingHandler",
]
