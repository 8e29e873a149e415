"""Output models for analytics calculations."""

from dataclasses import dataclass
from typing import Any, Literal

from ..models.period import Period


@dataclass(frozen=True)
class DerivedMetric:
    """A ratio computed from two raw counters of the same period."""

    name: str
    numerator: str
    denominator: str
    scale: float = 1.0  # 100 for percentages
    prefer_observed: bool = False  # keep a reported value over the ratio


@dataclass(frozen=True)
class Comparison:
    """Delta between a current and a baseline period on one metric."""

    metric: str
    current_value: float
    baseline_value: float
    absolute_delta: float  # current - baseline
    percent_delta: float  # 100 when baseline is 0 and current > 0
    is_improvement: bool
    inverse: bool = False  # lower is better
    baseline_label: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric,
            "current_value": self.current_value,
            "baseline_value": self.baseline_value,
            "absolute_delta": self.absolute_delta,
            "percent_delta": round(self.percent_delta, 2),
            "is_improvement": self.is_improvement,
            "inverse": self.inverse,
            "baseline_label": self.baseline_label,
        }


@dataclass(frozen=True)
class BaselineSelection:
    """Outcome of looking up a comparison baseline."""

    period: Period | None
    kind: Literal["aligned", "fallback", "missing"]

    @property
    def is_missing(self) -> bool:
        return self.period is None

    @property
    def is_fallback(self) -> bool:
        return self.kind == "fallback"


@dataclass(frozen=True)
class ForecastVariance:
    """Actual-to-date vs the forecast's expected-to-date value."""

    forecast_total: float
    elapsed_fraction: float  # clamped to [0, 1]
    expected_to_date: float
    actual_to_date: float
    variance_absolute: float
    variance_percent: float  # 0 when expected_to_date is 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "forecast_total": self.forecast_total,
            "elapsed_fraction": round(self.elapsed_fraction, 4),
            "expected_to_date": round(self.expected_to_date, 2),
            "actual_to_date": self.actual_to_date,
            "variance_absolute": round(self.variance_absolute, 2),
            "variance_percent": round(self.variance_percent, 2),
        }


@dataclass(frozen=True)
class HeatmapRow:
    """One heatmap row normalized against its own maximum."""

    label: str
    values: list[float | None]
    intensities: list[float]  # each in [0, 1]
    row_max: float  # never below 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "values": self.values,
            "intensities": [round(i, 4) for i in self.intensities],
            "row_max": self.row_max,
        }
