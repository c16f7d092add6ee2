"""Web-vitals collector.

Stores whole page-load reports and computes per-metric percentiles when
read. Writes stay O(1); reads sort the exploded metric values.
"""

import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field

from perfwatch.adapters.storage.ring_buffer import BoundedBuffer
from perfwatch.core.aggregation import (
    MetricSummary,
    Thresholds,
    rate,
    summarize,
    thresholds_for,
)
from perfwatch.core.clock import Clock, now_ms
from perfwatch.core.logs import contained
from perfwatch.core.models import Rating, VitalSample, VitalsReport, WebVitalMetric

logger = logging.getLogger(__name__)

DEFAULT_VITALS_CAPACITY = 1000


@dataclass(frozen=True)
class BudgetResult:
    passed: bool
    violations: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _format_value(value: float) -> str:
    return f"{value:g}"


def check_budget(
    metrics: list[WebVitalMetric],
    budget: dict[str, Thresholds] | None = None,
) -> BudgetResult:
    """Check raw metric samples against the vital thresholds.

    A value above the poor threshold is a violation, a value between the
    good and poor thresholds is a warning.

    Args:
        metrics: Raw samples (not aggregates).
        budget: Optional per-metric threshold overrides.

    Returns:
        BudgetResult that passes when there are no violations.
    """
    violations: list[str] = []
    warnings: list[str] = []
    for metric in metrics:
        limits = thresholds_for(metric.name, budget)
        if metric.value > limits.poor:
            violations.append(
                f"{metric.name}: {_format_value(metric.value)} "
                f"exceeds poor threshold {_format_value(limits.poor)}"
            )
        elif metric.value > limits.good:
            warnings.append(
                f"{metric.name}: {_format_value(metric.value)} "
                f"exceeds good threshold {_format_value(limits.good)}"
            )
    return BudgetResult(passed=not violations, violations=violations, warnings=warnings)


class WebVitalsCollector:
    """Keeps recent vitals reports and aggregates them on demand.

    Args:
        capacity: Number of reports (and of single beacons) kept.
        clock: Epoch-seconds clock used when a beacon has no timestamp.
    """

    def __init__(
        self, capacity: int = DEFAULT_VITALS_CAPACITY, clock: Clock = time.time
    ) -> None:
        self._reports: BoundedBuffer[VitalsReport] = BoundedBuffer(capacity)
        self._beacons: BoundedBuffer[VitalSample] = BoundedBuffer(capacity)
        self._clock = clock

    def record_report(self, report: VitalsReport) -> None:
        """Store a full page-load report."""
        with contained("Failed to record vitals report", url=report.url):
            self._reports.append(report)
            poor = [m for m in report.metrics if m.rating == "poor"]
            if poor:
                logger.warning(
                    "Page performance issues detected on %s: %s",
                    report.url,
                    ", ".join(f"{m.name}={_format_value(m.value)}" for m in poor),
                    extra={"url": report.url, "poor_metrics": len(poor)},
                )

    def record_metric(
        self, metric: WebVitalMetric, url: str, timestamp_ms: int | None = None
    ) -> None:
        """Store a single real-time beacon.

        Beacons are kept apart from reports and do not feed the aggregates.
        """
        with contained("Failed to record vitals beacon", url=url):
            stamp = timestamp_ms if timestamp_ms is not None else now_ms(self._clock)
            self._beacons.append(VitalSample(metric=metric, url=url, timestamp_ms=stamp))
            if metric.rating == "poor":
                logger.warning(
                    "Poor %s performance: %s on %s",
                    metric.name,
                    _format_value(metric.value),
                    url,
                    extra={"metric": metric.name, "value": metric.value, "url": url},
                )

    def get_reports(
        self, limit: int | None = None, url: str | None = None
    ) -> list[VitalsReport]:
        """Return reports newest first, optionally for one URL."""
        predicate = (lambda r: r.url == url) if url else None
        return self._reports.snapshot(predicate, limit)

    def get_recent_metrics(
        self, limit: int | None = None, url: str | None = None
    ) -> list[VitalSample]:
        predicate = (lambda s: s.url == url) if url else None
        return self._beacons.snapshot(predicate, limit)

    def get_aggregated(self, url: str | None = None) -> dict[str, MetricSummary]:
        """Percentile summary per metric name over the stored reports."""
        values_by_name: dict[str, list[float]] = defaultdict(list)
        for report in self._reports.items():
            if url and report.url != url:
                continue
            for metric in report.metrics:
                values_by_name[metric.name].append(metric.value)
        return {name: summarize(values) for name, values in values_by_name.items()}

    def get_health(self, url: str | None = None) -> dict[str, Rating]:
        """Classify each metric's aggregated p75 against its thresholds."""
        return {
            name: rate(summary.p75, thresholds_for(name))
            for name, summary in self.get_aggregated(url).items()
        }

    def check_budget(
        self,
        metrics: list[WebVitalMetric],
        budget: dict[str, Thresholds] | None = None,
    ) -> BudgetResult:
        return check_budget(metrics, budget)

    def clear(self) -> None:
        self._reports.clear()
        self._beacons.clear()
