"""Period engines - comparison, pacing and heatmap calculations for dashboards."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import polars as pl

from ..models.period import Period, check_consistent_keys
from ..settings import EngineConfig, get_default_config
from .aggregator import AD_METRICS, aggregate, aggregate_frame, sum_periods
from .comparator import (
    TrendDirection,
    compare,
    previous_period,
    trend_direction,
    year_ago_baseline,
)
from .expressions import period_over_period_expr
from .heatmap import normalize_row
from .models import BaselineSelection, Comparison, DerivedMetric, HeatmapRow
from .stats import detect_trend
from .transformer import remaining_to_total, to_incremental

logger = logging.getLogger(__name__)


@dataclass
class PeriodEngine:
    """Comparisons across a dataset of periods (weeks, months).

    All methods are pure functions - they do not mutate the input periods.

    Attributes:
        periods: Periods ordered most recent first, sharing one key set
        metrics: Derived metrics added to every period
        config: Inverse metrics, neutral band and YoY baseline policy
    """

    periods: list[Period]
    metrics: Sequence[DerivedMetric] = AD_METRICS
    config: EngineConfig = field(default_factory=get_default_config)

    def __post_init__(self) -> None:
        """Validate the dataset and derive metrics once."""
        if not self.periods:
            raise ValueError("PeriodEngine needs at least one period")
        check_consistent_keys(self.periods)
        self._aggregated = [aggregate(p, self.metrics) for p in self.periods]

    # =========================================================================
    # AGGREGATION
    # =========================================================================

    def get_aggregated(self) -> list[Period]:
        """Periods with derived metrics added, most recent first."""
        return list(self._aggregated)

    def get_frame(self, offset: int = 1) -> pl.DataFrame:
        """Aggregated periods as a table with period-over-period columns.

        Adds `{metric}_pop_{offset}` for every comparison metric present.
        """
        df = pl.DataFrame(
            [
                {"label": p.label, "start_date": p.start_date, **p.counts}
                for p in self.periods
            ]
        )
        df = aggregate_frame(df, self.metrics)
        metrics = [m for m in self.config.comparison_metrics if m in df.columns]
        if not metrics:
            return df
        return df.with_columns([period_over_period_expr(m, offset) for m in metrics])

    # =========================================================================
    # PERIOD-OVER-PERIOD
    # =========================================================================

    def compare_to_offset(
        self, metric: str, offset: int = 1, index: int = 0
    ) -> Comparison | None:
        """Compare periods[index] with the period `offset` steps earlier.

        Returns:
            Comparison, or None when the dataset is too short.
        """
        baseline = previous_period(self._aggregated, index, offset)
        if baseline is None:
            return None
        return compare(
            self._aggregated[index],
            baseline,
            metric,
            inverse=self.config.is_inverse(metric),
        )

    def week_over_week(self, metric: str) -> list[Comparison]:
        """Each period vs the one before it, most recent first."""
        comparisons = []
        for i in range(len(self._aggregated) - 1):
            comparison = self.compare_to_offset(metric, 1, index=i)
            if comparison is not None:
                comparisons.append(comparison)
        return comparisons

    def _window_size(self, window: int | None) -> int:
        """Explicit window, or the configured one when None."""
        size = window if window is not None else self.config.window_weeks
        if size < 1:
            raise ValueError(f"Window must be at least 1 period, got {size}")
        return size

    def compare_windows(self, metric: str, window: int | None = None) -> Comparison | None:
        """Trailing `window` periods vs the `window` before them.

        Derived metrics are recomputed from the summed counters, so a
        4-week CTR is total clicks / total impressions.

        Returns:
            Comparison, or None when fewer than 2 * window periods exist.
        """
        size = self._window_size(window)
        if len(self.periods) < size * 2:
            logger.debug(
                "Window comparison for %s needs %d periods, have %d",
                metric,
                size * 2,
                len(self.periods),
            )
            return None

        current = sum_periods(self.periods[:size], f"Trailing {size}", self.metrics)
        baseline = sum_periods(
            self.periods[size : size * 2], f"Previous {size}", self.metrics
        )
        return compare(current, baseline, metric, inverse=self.config.is_inverse(metric))

    # =========================================================================
    # YEAR-OVER-YEAR
    # =========================================================================

    def year_ago_selection(self, index: int = 0) -> BaselineSelection:
        """Baseline lookup for periods[index] using the configured policy."""
        current = self._aggregated[index]
        return year_ago_baseline(
            current,
            self._aggregated[index + 1 :],
            fallback=self.config.yoy_fallback,
            tolerance_days=self.config.yoy_tolerance_days,
        )

    def compare_to_period(
        self, metric: str, baseline: Period, index: int = 0
    ) -> Comparison:
        """Compare periods[index] with an explicitly chosen baseline."""
        return compare(
            self._aggregated[index],
            aggregate(baseline, self.metrics),
            metric,
            inverse=self.config.is_inverse(metric),
        )

    def year_over_year(self, metric: str, index: int = 0) -> Comparison | None:
        """Compare periods[index] with the same span one year earlier.

        Returns:
            Comparison, or None when no baseline is available.
        """
        selection = self.year_ago_selection(index)
        if selection.period is None:
            return None
        return self.compare_to_period(metric, selection.period, index)

    def window_year_over_year(
        self, metric: str, window: int | None = None
    ) -> Comparison | None:
        """Trailing `window` periods vs the same periods one year earlier.

        Each current period is matched to a distinct year-ago period. The
        comparison is only made when every period in the window matched;
        no fallback is applied.
        """
        size = self._window_size(window)
        current = self.periods[:size]
        if len(current) < size:
            return None

        matched: list[Period] = []
        used: set[int] = set()
        for period in current:
            pool = [c for c in self.periods[size:] if id(c) not in used]
            selection = year_ago_baseline(
                period, pool, tolerance_days=self.config.yoy_tolerance_days
            )
            if selection.period is None:
                logger.debug(
                    "Window YoY for %s incomplete: no match for %r", metric, period.label
                )
                return None
            used.add(id(selection.period))
            matched.append(selection.period)

        return compare(
            sum_periods(current, f"Trailing {size}", self.metrics),
            sum_periods(matched, f"Trailing {size} last year", self.metrics),
            metric,
            inverse=self.config.is_inverse(metric),
        )

    # =========================================================================
    # TRENDS AND HEATMAPS
    # =========================================================================

    def direction(self, comparison: Comparison) -> TrendDirection:
        """Badge arrow using the configured neutral band."""
        return trend_direction(comparison, self.config.neutral_band_pct)

    def get_trend(self, metric: str) -> str:
        """Regression trend of `metric` over the dataset."""
        chronological = [p.counts.get(metric) for p in reversed(self._aggregated)]
        return detect_trend(chronological)

    def metric_heatmap(self, metrics: Sequence[str]) -> list[HeatmapRow]:
        """One row per metric across periods, oldest to newest."""
        rows = []
        for metric in metrics:
            values = [p.counts.get(metric) for p in reversed(self._aggregated)]
            rows.append(normalize_row(values, label=metric))
        return rows


@dataclass
class PaceEngine:
    """Intraday or intraweek pacing over running totals.

    Each period holds running totals keyed by hour label (such as "8am", or
    weekday names for intraweek pacing) plus a period total under `total_key`.

    Attributes:
        periods: Periods such as "Today", "1 Week Ago", "1 Year Ago"
        hours: Ordered hour keys
        total_key: Count key holding the end-of-period total
    """

    periods: list[Period]
    hours: list[str]
    total_key: str = "end_of_day"

    def __post_init__(self) -> None:
        """Validate the dataset."""
        if not self.hours:
            raise ValueError("PaceEngine needs at least one hour")
        check_consistent_keys(self.periods)

    def find(self, label: str) -> Period | None:
        """Period with the given label, if present."""
        return next((p for p in self.periods if p.label == label), None)

    def hour_series(self, label: str) -> list[float | None]:
        """Running totals of one period, in hour order."""
        period = self.find(label)
        if period is None:
            return [None] * len(self.hours)
        return period.series(self.hours)

    def cumulative_heatmap(self) -> list[HeatmapRow]:
        """Running totals, each row scaled by its own maximum."""
        return [
            normalize_row(p.series(self.hours), label=p.label) for p in self.periods
        ]

    def incremental_heatmap(self) -> list[HeatmapRow]:
        """Sales within each hour (e.g. "actual per hour")."""
        return [
            normalize_row(to_incremental(p.series(self.hours)), label=p.label)
            for p in self.periods
        ]

    def remaining_heatmap(self) -> list[HeatmapRow]:
        """Sales still to come after each hour: total - running total."""
        return [
            normalize_row(
                remaining_to_total(p.series(self.hours), p.counts.get(self.total_key)),
                label=p.label,
            )
            for p in self.periods
        ]

    def compare_end_of_day(
        self, forecast_total: float, labels: Sequence[str]
    ) -> list[Comparison]:
        """Forecast total vs the final totals of earlier periods ("VS LW").

        Periods without a known total are skipped.
        """
        forecast = Period(label="Forecast", counts={self.total_key: forecast_total})
        comparisons = []
        for label in labels:
            period = self.find(label)
            if period is None or period.counts.get(self.total_key) is None:
                logger.debug("No %s for %r; skipping", self.total_key, label)
                continue
            comparisons.append(compare(forecast, period, self.total_key))
        return comparisons
