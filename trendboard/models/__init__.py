"""Data models for periods, source payloads and dashboard output."""

from .dashboard_payload import DashboardPayload
from .observation import (
    NOT_YET_OBSERVED,
    NotYetObserved,
    Observation,
    Observed,
    observe,
    unwrap,
    value_or,
)
from .payloads import (
    DailyForecast,
    EODForecast,
    EOMForecast,
    HourlyComparisonPayload,
    HourlyPeriod,
    MonthlyRecapRow,
    RecapPayload,
    WeekForecast,
    WeeklyAdsRow,
    WeeklyTrendRow,
    WeeklyTrendsPayload,
)
from .period import Period, check_consistent_keys

__all__ = [
    "DailyForecast",
    "DashboardPayload",
    "EODForecast",
    "EOMForecast",
    "HourlyComparisonPayload",
    "HourlyPeriod",
    "MonthlyRecapRow",
    "NOT_YET_OBSERVED",
    "NotYetObserved",
    "Observation",
    "Observed",
    "Period",
    "RecapPayload",
    "WeekForecast",
    "WeeklyAdsRow",
    "WeeklyTrendRow",
    "WeeklyTrendsPayload",
    "check_consistent_keys",
    "observe",
    "unwrap",
    "value_or",
]
