"""Tests for the statistical routines."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from perfwatch.core.aggregation import (
    DEFAULT_THRESHOLDS,
    Thresholds,
    mean,
    numeric_summary,
    percentile,
    rate,
    summarize,
    thresholds_for,
)


class TestPercentile:
    """Tests for percentile()."""

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_uses_floor_index_without_interpolation(self) -> None:
        values = [10.0, 20.0, 30.0, 40.0, 50.0]

        assert percentile(values, 0.5) == 30.0
        assert percentile(values, 0.75) == 40.0
        assert percentile(values, 0.95) == 50.0

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_empty_list_is_zero(self) -> None:
        assert percentile([], 0.5) == 0.0

    @pytest.mark.core
    @pytest.mark.tier(0)
    @given(
        values=st.lists(
            st.floats(allow_nan=False, allow_infinity=False), min_size=1
        ),
        p=st.floats(min_value=0, max_value=0.99),
    )
    def test_result_is_a_member_of_the_input(self, values: list[float], p: float) -> None:
        """Without interpolation the percentile is always an observed value."""
        ordered = sorted(values)

        assert percentile(ordered, p) in ordered


class TestSummaries:
    """Tests for mean(), numeric_summary() and summarize()."""

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_summarize_reports_percentiles(self) -> None:
        summary = summarize([50.0, 10.0, 40.0, 20.0, 30.0])

        assert summary.count == 5
        assert summary.min == 10.0
        assert summary.max == 50.0
        assert summary.avg == 30.0
        assert summary.p50 == 30.0
        assert summary.p95 == 50.0

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_empty_inputs_are_zeros(self) -> None:
        """Empty lists never raise a division error."""
        assert mean([]) == 0.0
        assert numeric_summary([]).count == 0
        summary = summarize([])
        assert (summary.count, summary.avg, summary.p75) == (0, 0.0, 0.0)


class TestRatings:
    """Tests for thresholds_for() and rate()."""

    @pytest.mark.core
    @pytest.mark.tier(0)
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(2500, "good"), (2501, "needs-improvement"), (4000, "needs-improvement"),
         (4001, "poor")],
    )
    def test_rate_boundaries_are_inclusive(self, value: float, expected: str) -> None:
        assert rate(value, thresholds_for("LCP")) == expected

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_unknown_metric_uses_default_thresholds(self) -> None:
        assert thresholds_for("CUSTOM") == DEFAULT_THRESHOLDS

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_overrides_take_precedence(self) -> None:
        custom = Thresholds(good=1, poor=2)

        assert thresholds_for("LCP", {"LCP": custom}) == custom

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_inp_has_its_own_thresholds(self) -> None:
        assert thresholds_for("INP") == Thresholds(good=200, poor=500)
