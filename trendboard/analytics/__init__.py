"""Analytics module for comparative period metrics."""

from .aggregator import (
    AD_METRICS,
    RECAP_METRICS,
    aggregate,
    aggregate_frame,
    derive_metrics,
    safe_divide,
    sum_periods,
)
from .calculator import PaceEngine, PeriodEngine
from .comparator import (
    TrendDirection,
    compare,
    compare_year_over_year,
    is_favorable,
    percent_change,
    previous_period,
    trend_direction,
    year_ago_baseline,
)
from .forecast import breakdown_variance, clamp_fraction, elapsed_fraction, variance
from .heatmap import normalize_row, normalize_rows
from .insights import Insight, InsightEngine, Severity
from .models import (
    BaselineSelection,
    Comparison,
    DerivedMetric,
    ForecastVariance,
    HeatmapRow,
)
from .transformer import remaining_to_total, to_cumulative, to_incremental

__all__ = [
    "AD_METRICS",
    "BaselineSelection",
    "Comparison",
    "DerivedMetric",
    "ForecastVariance",
    "HeatmapRow",
    "Insight",
    "InsightEngine",
    "PaceEngine",
    "PeriodEngine",
    "RECAP_METRICS",
    "Severity",
    "TrendDirection",
    "aggregate",
    "aggregate_frame",
    "breakdown_variance",
    "clamp_fraction",
    "compare",
    "compare_year_over_year",
    "derive_metrics",
    "elapsed_fraction",
    "is_favorable",
    "normalize_row",
    "normalize_rows",
    "percent_change",
    "previous_period",
    "remaining_to_total",
    "safe_divide",
    "sum_periods",
    "to_cumulative",
    "to_incremental",
    "trend_direction",
    "variance",
]
