"""Series statistics using numpy and scipy."""

from collections.abc import Sequence
from typing import Literal

import numpy as np
from scipy import stats


def detect_trend(
    values: Sequence[float | None],
    p_threshold: float = 0.05,
    r_threshold: float = 0.3,
) -> Literal["increasing", "decreasing", "stable"]:
    """Detect trend direction using linear regression.

    Args:
        values: Metric values in chronological order (oldest first).
            Unobserved buckets (None) are dropped.
        p_threshold: P-value threshold for significance
        r_threshold: Minimum R-value for meaningful trend

    Returns:
        Trend direction based on slope significance.
    """
    points = [(i, v) for i, v in enumerate(values) if v is not None]
    if len(points) < 3:
        return "stable"

    x = np.array([p[0] for p in points], dtype=float)
    y = np.array([p[1] for p in points], dtype=float)

    # linregress is undefined on a constant series
    if np.std(y) == 0:
        return "stable"

    slope, _, r_value, p_value, _ = stats.linregress(x, y)

    if p_value < p_threshold and abs(r_value) > r_threshold:
        return "increasing" if slope > 0 else "decreasing"
    return "stable"


def average_ratio(
    numerators: Sequence[float | None],
    denominators: Sequence[float | None],
    scale: float = 100.0,
) -> float:
    """Mean of per-period ratios, skipping periods without a positive denominator.

    Used for "6 month average churn": each month's cancels / subscribers,
    averaged over the months that had subscribers.

    Returns:
        Average ratio, or 0.0 when no period qualifies.
    """
    ratios = [
        (n or 0.0) / d * scale
        for n, d in zip(numerators, denominators)
        if d is not None and d > 0
    ]
    if not ratios:
        return 0.0
    return float(np.mean(ratios))


def trailing_mean(values: Sequence[float | None], window: int) -> float | None:
    """Mean of the last `window` observed values.

    Returns:
        Mean, or None if nothing has been observed.
    """
    observed = [v for v in values if v is not None]
    if not observed or window < 1:
        return None
    return float(np.mean(observed[-window:]))
