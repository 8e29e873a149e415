"""Tests for forecasts, heatmaps, baselines and the period engines."""

from datetime import date, timedelta

import polars as pl
import pytest

from trendboard.analytics import (
    PaceEngine,
    PeriodEngine,
    TrendDirection,
    breakdown_variance,
    clamp_fraction,
    compare,
    compare_year_over_year,
    elapsed_fraction,
    is_favorable,
    normalize_row,
    normalize_rows,
    previous_period,
    trend_direction,
    variance,
    year_ago_baseline,
)
from trendboard.analytics.comparator import one_year_before
from trendboard.analytics.stats import average_ratio, detect_trend, trailing_mean
from trendboard.exceptions import MetricKeyMismatchError
from trendboard.models import DailyForecast, Period
from trendboard.settings import EngineConfig, YoYFallback


# =============================================================================
# FIXTURES
# =============================================================================


def weekly_periods(count: int, first_start: date = date(2025, 3, 3)) -> list[Period]:
    """`count` consecutive weeks, most recent first, clicks rising over time."""
    periods = []
    for i in range(count):
        start = first_start - timedelta(weeks=i)
        periods.append(
            Period(
                label=f"W-{i}",
                start_date=start,
                end_date=start + timedelta(days=6),
                counts={
                    "spend": 100.0,
                    "impressions": 1000.0,
                    "clicks": float(100 - i * 10),
                    "conversions": 5.0,
                    "conv_value": 500.0,
                },
            )
        )
    return periods


@pytest.fixture
def config() -> EngineConfig:
    """Default engine config independent of the bundled YAML."""
    return EngineConfig(inverse_metrics=["cpa", "avg_cpc"], window_weeks=2)


@pytest.fixture
def engine(config: EngineConfig) -> PeriodEngine:
    """Engine over six weeks of data."""
    return PeriodEngine(weekly_periods(6), config=config)


@pytest.fixture
def pace() -> PaceEngine:
    """Pace engine over two days of hourly running totals."""
    return PaceEngine(
        periods=[
            Period(
                label="Today",
                counts={"8am": 100.0, "9am": 250.0, "10am": None, "end_of_day": None},
            ),
            Period(
                label="1 Week Ago",
                counts={"8am": 80.0, "9am": 200.0, "10am": 300.0, "end_of_day": 1000.0},
            ),
        ],
        hours=["8am", "9am", "10am"],
    )


# =============================================================================
# FORECAST VARIANCE
# =============================================================================


class TestForecastVariance:
    """Tests for variance() and helpers."""

    def test_on_pace(self) -> None:
        """Actual equal to expected should give zero variance."""
        v = variance(1000, 500, 0.5)
        assert v.expected_to_date == 500
        assert v.variance_absolute == 0
        assert v.variance_percent == 0

    def test_ahead_of_pace(self) -> None:
        """600 against an expected 500 should be +20%."""
        v = variance(1000, 600, 0.5)
        assert v.expected_to_date == 500
        assert v.variance_absolute == 100
        assert v.variance_percent == pytest.approx(20.0)

    def test_nothing_expected_yet(self) -> None:
        """A zero elapsed fraction should not divide by zero."""
        v = variance(1000, 50, 0.0)
        assert v.variance_percent == 0.0
        assert v.variance_absolute == 50

    def test_fraction_clamped(self) -> None:
        """Fractions outside [0, 1] should be clamped."""
        assert variance(1000, 1000, 1.7).expected_to_date == 1000
        assert clamp_fraction(-0.2) == 0.0
        assert clamp_fraction(float("nan")) == 0.0

    def test_elapsed_fraction(self) -> None:
        """Elapsed share of a window, 1.0 for an empty window."""
        assert elapsed_fraction(15, 30) == 0.5
        assert elapsed_fraction(3, 0) == 1.0

    def test_breakdown_variance_uses_completed_days(self) -> None:
        """Week-to-date expected should only count days with actuals."""
        days = [
            DailyForecast(day="Mon", predicted=100, actual=120),
            DailyForecast(day="Tue", predicted=100, actual=90),
            DailyForecast(day="Wed", predicted=100),
            DailyForecast(day="Thu", predicted=100),
        ]
        v = breakdown_variance(days)
        assert v.forecast_total == 400
        assert v.expected_to_date == 200
        assert v.actual_to_date == 210
        assert v.variance_percent == pytest.approx(5.0)
        assert v.elapsed_fraction == 0.5

    def test_breakdown_variance_with_week_totals(self) -> None:
        """Reported week sales and total should override the breakdown sums."""
        days = [
            DailyForecast(day="Mon", predicted=1000, actual=1100),
            DailyForecast(day="Tue", predicted=1000, actual=400),
            DailyForecast(day="Wed", predicted=1000),
        ]
        v = breakdown_variance(days, actual_to_date=1600, forecast_total=5000)
        assert v.forecast_total == 5000
        assert v.expected_to_date == 2000
        assert v.actual_to_date == 1600
        assert v.variance_percent == pytest.approx(-20.0)

    def test_breakdown_variance_empty(self) -> None:
        """No days should give an all-zero variance."""
        v = breakdown_variance([])
        assert v.variance_percent == 0.0
        assert v.elapsed_fraction == 0.0


# =============================================================================
# HEATMAP
# =============================================================================


class TestHeatmap:
    """Tests for row-relative normalization."""

    def test_all_null_row(self) -> None:
        """An all-None row should have row_max 1 and zero intensities."""
        row = normalize_row([None, None, None])
        assert row.row_max == 1.0
        assert row.intensities == [0.0, 0.0, 0.0]

    def test_scaled_by_own_max(self) -> None:
        """Each value should be divided by the row maximum."""
        row = normalize_row([50, 100, None, 25], label="Today")
        assert row.row_max == 100
        assert row.intensities == [0.5, 1.0, 0.0, 0.25]
        assert row.values == [50, 100, None, 25]

    def test_small_values_use_floor_of_one(self) -> None:
        """A row whose max is below 1 should divide by 1."""
        row = normalize_row([0.5, 0.25])
        assert row.row_max == 1.0
        assert row.intensities == [0.5, 0.25]

    def test_negative_values_clamped(self) -> None:
        """Intensities should never leave [0, 1]."""
        row = normalize_row([-20, 10])
        assert all(0.0 <= i <= 1.0 for i in row.intensities)
        assert row.intensities[0] == 0.0

    def test_rows_normalized_independently(self) -> None:
        """Rows of different scale should each reach 1.0."""
        rows = normalize_rows({"today": [1, 2], "average": [100, 200]})
        assert [r.label for r in rows] == ["today", "average"]
        assert rows[0].intensities == rows[1].intensities == [0.5, 1.0]


# =============================================================================
# BASELINES
# =============================================================================


class TestBaselines:
    """Tests for previous-period and year-ago baselines."""

    def test_previous_period(self) -> None:
        """The week before periods[i] is periods[i + 1]."""
        periods = weekly_periods(3)
        assert previous_period(periods, 0).label == "W-1"
        assert previous_period(periods, 0, offset=2).label == "W-2"
        assert previous_period(periods, 2) is None

    def test_one_year_before_leap_day(self) -> None:
        """Feb 29 should map to Feb 28."""
        assert one_year_before(date(2024, 2, 29)) == date(2023, 2, 28)

    def test_aligned_baseline(self) -> None:
        """A period exactly one year earlier should be aligned."""
        current = Period(label="Now", start_date=date(2025, 3, 1), counts={"x": 2})
        last_year = Period(label="Then", start_date=date(2024, 3, 1), counts={"x": 1})
        selection = year_ago_baseline(current, [last_year])
        assert selection.kind == "aligned"
        assert selection.period is last_year

    def test_missing_baseline_by_default(self) -> None:
        """Without an aligned period the baseline should be missing."""
        current = Period(label="Now", start_date=date(2025, 3, 3), counts={"x": 2})
        other = Period(label="Old", start_date=date(2025, 1, 6), counts={"x": 1})
        selection = year_ago_baseline(current, [other])
        assert selection.kind == "missing"
        assert selection.period is None
        assert compare_year_over_year(current, [other], "x") is None

    def test_oldest_fallback_is_opt_in(self) -> None:
        """YoYFallback.OLDEST should substitute the oldest period."""
        current = Period(label="Now", start_date=date(2025, 3, 3), counts={"x": 2})
        older = Period(label="Older", start_date=date(2025, 1, 6), counts={"x": 1})
        newer = Period(label="Newer", start_date=date(2025, 2, 3), counts={"x": 1})
        selection = year_ago_baseline(current, [newer, older], fallback=YoYFallback.OLDEST)
        assert selection.kind == "fallback"
        assert selection.period is older

    def test_tolerance_picks_closest(self) -> None:
        """With a tolerance the closest candidate within range should win."""
        current = Period(label="Now", start_date=date(2025, 3, 3), counts={})
        near = Period(label="Near", start_date=date(2024, 3, 4), counts={})
        far = Period(label="Far", start_date=date(2024, 2, 26), counts={})
        selection = year_ago_baseline(current, [far, near], tolerance_days=7)
        assert selection.period is near

    def test_zero_baseline_is_not_missing(self) -> None:
        """A year-ago value of 0 is a real baseline."""
        current = Period(label="Now", start_date=date(2025, 3, 1), counts={"x": 5})
        last_year = Period(label="Then", start_date=date(2024, 3, 1), counts={"x": 0})
        c = compare_year_over_year(current, [last_year], "x")
        assert c is not None
        assert c.percent_delta == 100.0


class TestTrendDirection:
    """Tests for the badge direction helpers."""

    def test_flat_inside_neutral_band(self) -> None:
        """A 0.5% move should be flat with the default band."""
        c = compare(Period(label="a", counts={"x": 100.5}), Period(label="b", counts={"x": 100}), "x")
        assert trend_direction(c) == TrendDirection.FLAT
        assert is_favorable(c) is None

    def test_configurable_band(self) -> None:
        """A narrower band should show the same move as up."""
        c = compare(Period(label="a", counts={"x": 100.5}), Period(label="b", counts={"x": 100}), "x")
        assert trend_direction(c, neutral_band=0.25) == TrendDirection.UP

    def test_inverse_down_is_favorable(self) -> None:
        """A falling inverse metric should be green."""
        c = compare(
            Period(label="a", counts={"cpa": 80}),
            Period(label="b", counts={"cpa": 100}),
            "cpa",
            inverse=True,
        )
        assert trend_direction(c) == TrendDirection.DOWN
        assert is_favorable(c) is True


# =============================================================================
# STATS
# =============================================================================


class TestStats:
    """Tests for series statistics."""

    def test_increasing_trend(self) -> None:
        """A steadily rising series should be increasing."""
        assert detect_trend([1, 2, 3, 4, 5, 6]) == "increasing"

    def test_short_series_is_stable(self) -> None:
        """Fewer than three observed points should be stable."""
        assert detect_trend([1, None, 5]) == "stable"

    def test_constant_series_is_stable(self) -> None:
        """A constant series should be stable."""
        assert detect_trend([4, 4, 4, 4]) == "stable"

    def test_average_ratio_skips_empty_months(self) -> None:
        """Months without subscribers should not count."""
        assert average_ratio([10, 5, 3], [100, 0, 300]) == pytest.approx(5.5)
        assert average_ratio([1], [0]) == 0.0

    def test_trailing_mean(self) -> None:
        """Mean of the last observed values."""
        assert trailing_mean([1, 2, None, 4, 6], 3) == pytest.approx(4.0)
        assert trailing_mean([None], 3) is None


# =============================================================================
# PERIOD ENGINE
# =============================================================================


class TestPeriodEngine:
    """Tests for PeriodEngine."""

    def test_rejects_empty_dataset(self, config: EngineConfig) -> None:
        """An empty dataset should raise ValueError."""
        with pytest.raises(ValueError):
            PeriodEngine([], config=config)

    def test_rejects_inconsistent_keys(self, config: EngineConfig) -> None:
        """Periods with different keys should raise."""
        periods = [
            Period(label="A", counts={"clicks": 1}),
            Period(label="B", counts={"spend": 1}),
        ]
        with pytest.raises(MetricKeyMismatchError):
            PeriodEngine(periods, config=config)

    def test_aggregated_adds_derived_metrics(self, engine: PeriodEngine) -> None:
        """Every period should carry derived metrics."""
        latest = engine.get_aggregated()[0]
        assert latest.counts["ctr"] == pytest.approx(10.0)
        assert latest.counts["cpa"] == pytest.approx(20.0)

    def test_week_over_week(self, engine: PeriodEngine) -> None:
        """WoW should compare each week with the one before it."""
        comparisons = engine.week_over_week("clicks")
        assert len(comparisons) == 5
        # 100 vs 90
        assert comparisons[0].percent_delta == pytest.approx(100 / 9)
        assert comparisons[0].baseline_label == "W-1"

    def test_compare_to_offset(self, engine: PeriodEngine) -> None:
        """Offset 3 should compare against three weeks ago."""
        c = engine.compare_to_offset("clicks", offset=3)
        assert c.baseline_value == 70
        assert engine.compare_to_offset("clicks", offset=6) is None

    def test_inverse_from_config(self, engine: PeriodEngine) -> None:
        """Configured inverse metrics should flip improvement."""
        c = engine.compare_to_offset("avg_cpc", offset=1)
        # CPC fell from 100/90 to 1.0
        assert c.inverse is True
        assert c.is_improvement is True

    def test_compare_windows(self, engine: PeriodEngine) -> None:
        """Trailing 2 weeks vs the 2 before, from summed counters."""
        c = engine.compare_windows("ctr")
        # (100 + 90) / 2000 vs (80 + 70) / 2000
        assert c.current_value == pytest.approx(9.5)
        assert c.baseline_value == pytest.approx(7.5)

    def test_compare_windows_too_short(self, config: EngineConfig) -> None:
        """Fewer than 2 * window periods should give None."""
        engine = PeriodEngine(weekly_periods(3), config=config)
        assert engine.compare_windows("clicks") is None

    def test_explicit_window_overrides_config(self, engine: PeriodEngine) -> None:
        """window=1 should compare single weeks, not the configured 2."""
        c = engine.compare_windows("clicks", window=1)
        assert c.current_value == 100
        assert c.baseline_value == 90

    @pytest.mark.parametrize("window", [0, -1])
    def test_rejects_empty_window(self, engine: PeriodEngine, window: int) -> None:
        """A window below one period should raise ValueError."""
        with pytest.raises(ValueError, match="at least 1"):
            engine.compare_windows("clicks", window=window)
        with pytest.raises(ValueError, match="at least 1"):
            engine.window_year_over_year("clicks", window=window)

    def test_year_over_year_missing(self, engine: PeriodEngine) -> None:
        """Six weeks of data have no year-ago baseline."""
        assert engine.year_over_year("clicks") is None
        assert engine.year_ago_selection().kind == "missing"

    def test_year_over_year_with_tolerance(self, config: EngineConfig) -> None:
        """Weekly data a year apart should match within seven days."""
        current = weekly_periods(2, date(2025, 3, 3))
        last_year = weekly_periods(2, date(2024, 3, 4))
        engine = PeriodEngine(
            current + last_year,
            config=config.model_copy(update={"yoy_tolerance_days": 7}),
        )
        c = engine.year_over_year("clicks")
        assert c is not None
        assert c.baseline_label == "W-0"
        assert c.baseline_value == 100

    def test_window_year_over_year(self, config: EngineConfig) -> None:
        """Trailing window should match a distinct week each, a year back."""
        current = weekly_periods(2, date(2025, 3, 3))
        last_year = weekly_periods(2, date(2024, 3, 4))
        engine = PeriodEngine(
            current + last_year,
            config=config.model_copy(update={"yoy_tolerance_days": 7}),
        )
        c = engine.window_year_over_year("clicks")
        assert c.current_value == 190
        assert c.baseline_value == 190

    def test_window_year_over_year_incomplete(self, engine: PeriodEngine) -> None:
        """No comparison unless every week in the window matched."""
        assert engine.window_year_over_year("clicks") is None

    def test_get_trend(self, engine: PeriodEngine) -> None:
        """Clicks rise every week, oldest to newest."""
        assert engine.get_trend("clicks") == "increasing"

    def test_metric_heatmap_oldest_first(self, engine: PeriodEngine) -> None:
        """Heatmap rows should run oldest to newest."""
        rows = engine.metric_heatmap(["clicks"])
        assert rows[0].label == "clicks"
        assert rows[0].values[0] == 50
        assert rows[0].intensities[-1] == 1.0

    def test_get_frame(self, engine: PeriodEngine) -> None:
        """Frame should carry derived and period-over-period columns."""
        df = engine.get_frame()
        assert isinstance(df, pl.DataFrame)
        assert "ctr" in df.columns
        assert "clicks_pop_1" in df.columns
        assert df["clicks_pop_1"][0] == pytest.approx(100 / 9)
        # The oldest week has nothing to compare against
        assert df["clicks_pop_1"][-1] is None

    def test_input_not_mutated(self, config: EngineConfig) -> None:
        """Engine should not add derived metrics to the caller's periods."""
        periods = weekly_periods(2)
        PeriodEngine(periods, config=config).get_aggregated()
        assert "ctr" not in periods[0].counts


# =============================================================================
# PACE ENGINE
# =============================================================================


class TestPaceEngine:
    """Tests for PaceEngine."""

    def test_requires_hours(self) -> None:
        """An empty hour list should raise ValueError."""
        with pytest.raises(ValueError):
            PaceEngine([], hours=[])

    def test_hour_series(self, pace: PaceEngine) -> None:
        """Running totals should come back in hour order."""
        assert pace.hour_series("Today") == [100, 250, None]
        assert pace.hour_series("Unknown") == [None, None, None]

    def test_cumulative_heatmap(self, pace: PaceEngine) -> None:
        """Cumulative rows should be scaled by their own maximum."""
        today, last_week = pace.cumulative_heatmap()
        assert today.intensities == [0.4, 1.0, 0.0]
        assert last_week.row_max == 300

    def test_incremental_heatmap(self, pace: PaceEngine) -> None:
        """Incremental rows should hold per-hour sales."""
        today, last_week = pace.incremental_heatmap()
        assert today.values == [100, 150, None]
        assert last_week.values == [80, 120, 100]

    def test_remaining_heatmap(self, pace: PaceEngine) -> None:
        """Remaining should be end-of-day minus running total."""
        today, last_week = pace.remaining_heatmap()
        assert today.values == [None, None, None]
        assert last_week.values == [920, 800, 700]

    def test_compare_end_of_day(self, pace: PaceEngine) -> None:
        """Forecast vs last week's total, skipping unknown periods."""
        comparisons = pace.compare_end_of_day(1100, ["1 Week Ago", "2 Weeks Ago"])
        assert len(comparisons) == 1
        assert comparisons[0].percent_delta == pytest.approx(10.0)
        assert comparisons[0].baseline_label == "1 Week Ago"
