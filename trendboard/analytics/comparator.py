"""Period-over-period and year-over-year comparisons on a single metric."""

import logging
from collections.abc import Sequence
from datetime import date
from enum import Enum

from ..models.period import Period
from ..settings import YoYFallback
from .models import BaselineSelection, Comparison

logger = logging.getLogger(__name__)


class TrendDirection(str, Enum):
    """Arrow shown next to a comparison badge."""

    UP = "up"
    DOWN = "down"
    FLAT = "flat"


def percent_change(current: float, baseline: float) -> float:
    """Percentage change from baseline to current.

    A zero baseline never produces inf: growth from 0 reads as +100%,
    and 0 -> 0 reads as 0%.
    """
    if baseline == 0:
        return 100.0 if current > 0 else 0.0
    return (current - baseline) / baseline * 100


def compare(
    current: Period,
    baseline: Period,
    metric: str,
    inverse: bool = False,
) -> Comparison:
    """Compare `metric` between two periods.

    A metric missing from either period counts as 0 so partial data
    still renders.

    Args:
        current: The period being reported
        baseline: The period it is measured against
        metric: Count key to compare (raw or derived)
        inverse: True when lower is better (CPA, refund rate)
    """
    current_value = current.value(metric)
    baseline_value = baseline.value(metric)
    delta = current_value - baseline_value

    return Comparison(
        metric=metric,
        current_value=current_value,
        baseline_value=baseline_value,
        absolute_delta=delta,
        percent_delta=percent_change(current_value, baseline_value),
        is_improvement=delta < 0 if inverse else delta > 0,
        inverse=inverse,
        baseline_label=baseline.label,
    )


# =============================================================================
# BASELINE SELECTION
# =============================================================================


def previous_period(
    periods: Sequence[Period], index: int, offset: int = 1
) -> Period | None:
    """Baseline `offset` periods before periods[index].

    Periods are ordered most recent first, so the week before
    periods[i] is periods[i + 1].
    """
    target = index + offset
    if offset < 1 or target >= len(periods):
        return None
    return periods[target]


def one_year_before(day: date) -> date:
    """Same calendar date one year earlier; Feb 29 maps to Feb 28."""
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        return day.replace(year=day.year - 1, day=28)


def year_ago_baseline(
    current: Period,
    candidates: Sequence[Period],
    fallback: YoYFallback = YoYFallback.NONE,
    tolerance_days: int = 0,
) -> BaselineSelection:
    """Find the period covering the same calendar span one year earlier.

    A candidate is aligned when its start_date is exactly one year before
    the current start_date or, with tolerance_days > 0, the closest one
    within that many days. Weekly buckets usually need a tolerance because
    week starts shift by a weekday each year.

    When nothing is aligned the selection is "missing" unless the caller
    opted into YoYFallback.OLDEST.
    """
    pool = [c for c in candidates if c is not current]

    if current.start_date is not None:
        target = one_year_before(current.start_date)
        best: Period | None = None
        best_diff: int | None = None
        for candidate in pool:
            if candidate.start_date is None:
                continue
            diff = abs((candidate.start_date - target).days)
            if diff <= tolerance_days and (best_diff is None or diff < best_diff):
                best, best_diff = candidate, diff
        if best is not None:
            return BaselineSelection(period=best, kind="aligned")

    if fallback == YoYFallback.OLDEST and pool:
        oldest = _oldest(pool)
        logger.warning(
            "No year-ago period aligned with %r; falling back to oldest period %r",
            current.label,
            oldest.label,
        )
        return BaselineSelection(period=oldest, kind="fallback")

    logger.debug("No year-ago baseline for %r", current.label)
    return BaselineSelection(period=None, kind="missing")


def _oldest(periods: Sequence[Period]) -> Period:
    """Earliest dated period, or the last one when none carry dates."""
    dated = [p for p in periods if p.start_date is not None]
    if dated:
        return min(dated, key=lambda p: p.start_date)
    return periods[-1]


def compare_year_over_year(
    current: Period,
    candidates: Sequence[Period],
    metric: str,
    inverse: bool = False,
    fallback: YoYFallback = YoYFallback.NONE,
    tolerance_days: int = 0,
) -> Comparison | None:
    """Compare against the year-ago period.

    Returns:
        Comparison, or None when no baseline exists. None is distinct
        from a baseline that is legitimately zero.
    """
    selection = year_ago_baseline(current, candidates, fallback, tolerance_days)
    if selection.period is None:
        return None
    return compare(current, selection.period, metric, inverse=inverse)


# =============================================================================
# PRESENTATION HELPERS
# =============================================================================


def trend_direction(comparison: Comparison, neutral_band: float = 1.0) -> TrendDirection:
    """Arrow direction; changes smaller than `neutral_band` percent are flat."""
    if abs(comparison.percent_delta) < neutral_band:
        return TrendDirection.FLAT
    return TrendDirection.UP if comparison.percent_delta > 0 else TrendDirection.DOWN


def is_favorable(comparison: Comparison, neutral_band: float = 1.0) -> bool | None:
    """Green/red badge colour. None for a flat change (rendered grey)."""
    if trend_direction(comparison, neutral_band) == TrendDirection.FLAT:
        return None
    return comparison.is_improvement
