"""Statistical routines shared by the collectors.

All functions are pure and treat an empty input as all-zero output rather
than failing with a division by zero.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass

from perfwatch.core.models import Rating


@dataclass(frozen=True)
class Thresholds:
    """Boundaries of the good and poor ranges for one metric."""

    good: float
    poor: float


# Core Web Vitals recommendations. INP replaces FID in newer browsers.
VITAL_THRESHOLDS: dict[str, Thresholds] = {
    "LCP": Thresholds(good=2500, poor=4000),
    "FID": Thresholds(good=100, poor=300),
    "INP": Thresholds(good=200, poor=500),
    "CLS": Thresholds(good=0.1, poor=0.25),
    "FCP": Thresholds(good=1800, poor=3000),
    "TTFB": Thresholds(good=800, poor=1800),
}

DEFAULT_THRESHOLDS = Thresholds(good=1000, poor=2000)


@dataclass(frozen=True)
class NumericSummary:
    count: int
    avg: float
    min: float
    max: float


@dataclass(frozen=True)
class MetricSummary:
    """Distribution of one metric's values."""

    count: int
    min: float
    max: float
    avg: float
    p50: float
    p75: float
    p90: float
    p95: float


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """Return the p-th percentile by direct index, without interpolation.

    The index is ``floor(len(values) * p)``; for ``0 <= p < 1`` it always
    falls inside the list.

    Args:
        sorted_values: Values sorted ascending.
        p: Fraction in ``[0, 1)``.

    Returns:
        The value at the computed index, or 0 for an empty list.
    """
    if not sorted_values:
        return 0.0
    index = min(math.floor(len(sorted_values) * p), len(sorted_values) - 1)
    return sorted_values[index]


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def numeric_summary(values: Sequence[float]) -> NumericSummary:
    """Count, mean, min and max of a list; zeros when empty."""
    if not values:
        return NumericSummary(count=0, avg=0.0, min=0.0, max=0.0)
    return NumericSummary(
        count=len(values),
        avg=mean(values),
        min=min(values),
        max=max(values),
    )


def summarize(values: Sequence[float]) -> MetricSummary:
    """Full percentile summary of a list of values."""
    ordered = sorted(values)
    basic = numeric_summary(ordered)
    return MetricSummary(
        count=basic.count,
        min=basic.min,
        max=basic.max,
        avg=basic.avg,
        p50=percentile(ordered, 0.5),
        p75=percentile(ordered, 0.75),
        p90=percentile(ordered, 0.9),
        p95=percentile(ordered, 0.95),
    )


def thresholds_for(
    name: str, overrides: dict[str, Thresholds] | None = None
) -> Thresholds:
    """Look up the thresholds of a metric, falling back to the default pair."""
    if overrides and name in overrides:
        return overrides[name]
    return VITAL_THRESHOLDS.get(name, DEFAULT_THRESHOLDS)


def rate(value: float, thresholds: Thresholds) -> Rating:
    """Map a value to good, needs-improvement or poor."""
    if value <= thresholds.good:
        return "good"
    if value <= thresholds.poor:
        return "needs-improvement"
    return "poor"
