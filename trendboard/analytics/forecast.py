"""Forecast-vs-actual variance for a partially elapsed period."""

import math
from collections.abc import Sequence

from ..models.payloads import DailyForecast
from .models import ForecastVariance


def clamp_fraction(fraction: float) -> float:
    """Clamp into [0, 1]; NaN becomes 0."""
    if math.isnan(fraction):
        return 0.0
    return max(0.0, min(1.0, fraction))


def elapsed_fraction(elapsed: float, total: float) -> float:
    """Share of a window that has elapsed (hours of a day, days of a month).

    A window with no length counts as fully elapsed.
    """
    if total <= 0:
        return 1.0
    return clamp_fraction(elapsed / total)


def variance(
    forecast_total: float, actual_to_date: float, elapsed_fraction: float
) -> ForecastVariance:
    """Compare actual-to-date with the forecast pro-rated by elapsed time.

    expected = forecast_total * elapsed_fraction
    variance_percent is 0 when nothing is expected yet.

    Example:
        >>> variance(1000, 600, 0.5).variance_percent
        20.0
    """
    fraction = clamp_fraction(elapsed_fraction)
    expected = forecast_total * fraction
    delta = actual_to_date - expected
    pct = delta / expected * 100 if expected > 0 else 0.0

    return ForecastVariance(
        forecast_total=forecast_total,
        elapsed_fraction=fraction,
        expected_to_date=expected,
        actual_to_date=actual_to_date,
        variance_absolute=delta,
        variance_percent=pct,
    )


def breakdown_variance(
    days: Sequence[DailyForecast],
    actual_to_date: float | None = None,
    forecast_total: float | None = None,
) -> ForecastVariance:
    """Week-to-date variance from a daily predicted/actual breakdown.

    Expected-to-date is the prediction for the days that already have an
    actual, so a slow Monday is not judged against Friday's forecast.

    Args:
        days: Daily breakdown in week order
        actual_to_date: Week sales so far, including today's partial sales.
            Defaults to the sum of completed days.
        forecast_total: Predicted week total. Defaults to the sum of days.
    """
    completed = [d for d in days if d.actual is not None]
    expected = sum(d.predicted for d in completed)
    if actual_to_date is None:
        actual = sum(d.actual for d in completed)
    else:
        actual = actual_to_date
    if forecast_total is None:
        forecast_total = sum(d.predicted for d in days)
    delta = actual - expected

    return ForecastVariance(
        forecast_total=forecast_total,
        elapsed_fraction=elapsed_fraction(len(completed), len(days)) if days else 0.0,
        expected_to_date=expected,
        actual_to_date=actual,
        variance_absolute=delta,
        variance_percent=delta / expected * 100 if expected > 0 else 0.0,
    )
