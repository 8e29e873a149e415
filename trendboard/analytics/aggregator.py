"""Derived metrics (CTR, conversion rate, CPA, ROAS) for a single period.

Every derived metric is a pure function of the same period's counters.
A zero or missing denominator yields 0, never NaN, inf or an exception,
so zero-traffic periods still render.
"""

import math
from collections.abc import Iterable, Mapping, Sequence

import polars as pl

from ..models.period import Period
from .expressions import derived_metric_exprs
from .models import DerivedMetric

AD_METRICS: tuple[DerivedMetric, ...] = (
    DerivedMetric("ctr", "clicks", "impressions", 100.0),
    DerivedMetric("conv_rate", "conversions", "clicks", 100.0),
    DerivedMetric("cpa", "spend", "conversions"),
    DerivedMetric("avg_cpc", "spend", "clicks"),
    DerivedMetric("roas", "conv_value", "spend"),
)

RECAP_METRICS: tuple[DerivedMetric, ...] = (
    DerivedMetric("churn_rate", "cancels", "subscribers", 100.0),
    DerivedMetric(
        "refund_rate", "refund_dollars", "gross_revenue", 100.0, prefer_observed=True
    ),
)


def safe_divide(
    numerator: float | None, denominator: float | None, scale: float = 1.0
) -> float:
    """numerator / denominator * scale, or 0.0 unless denominator > 0."""
    if numerator is None or denominator is None or not denominator > 0:
        return 0.0
    result = numerator / denominator * scale
    return result if math.isfinite(result) else 0.0


def derive_metrics(
    counts: Mapping[str, float | None],
    metrics: Iterable[DerivedMetric] = AD_METRICS,
) -> dict[str, float]:
    """Compute each derived metric from raw counters; missing counters are 0.

    A metric flagged `prefer_observed` keeps the value already present in
    `counts` and is only computed when that value is missing.
    """
    derived: dict[str, float] = {}
    for m in metrics:
        observed = counts.get(m.name)
        if m.prefer_observed and observed is not None:
            derived[m.name] = float(observed)
            continue
        derived[m.name] = safe_divide(
            counts.get(m.numerator) or 0.0,
            counts.get(m.denominator) or 0.0,
            m.scale,
        )
    return derived


def aggregate(
    period: Period, metrics: Sequence[DerivedMetric] = AD_METRICS
) -> Period:
    """Return a new period with derived metrics added to its counts."""
    return period.with_counts(derive_metrics(period.counts, metrics))


def sum_periods(
    periods: Sequence[Period],
    label: str,
    metrics: Sequence[DerivedMetric] = AD_METRICS,
) -> Period:
    """Roll several periods into one and re-derive the composite metrics.

    Ratios are recomputed from the summed counters rather than averaged.
    A counter that is None in every period stays None.
    """
    derived_names = {m.name for m in metrics}
    keys: list[str] = []
    for period in periods:
        keys.extend(k for k in period.counts if k not in derived_names and k not in keys)

    totals: dict[str, float | None] = {}
    for key in keys:
        observed = [p.counts[key] for p in periods if p.counts.get(key) is not None]
        totals[key] = sum(observed) if observed else None

    starts = [p.start_date for p in periods if p.start_date is not None]
    ends = [p.end_date for p in periods if p.end_date is not None]

    rolled = Period(
        label=label,
        start_date=min(starts) if starts else None,
        end_date=max(ends) if ends else None,
        counts=totals,
    )
    return aggregate(rolled, metrics)


def aggregate_frame(
    df: pl.DataFrame, metrics: Sequence[DerivedMetric] = AD_METRICS
) -> pl.DataFrame:
    """Add derived metric columns to a frame of periods.

    Counter columns absent from the frame are treated as 0.
    """
    needed = {m.numerator for m in metrics} | {m.denominator for m in metrics}
    missing = [c for c in needed if c not in df.columns]
    if missing:
        df = df.with_columns([pl.lit(0.0).alias(c) for c in missing])
        return df.with_columns(derived_metric_exprs(metrics)).drop(missing)
    return df.with_columns(derived_metric_exprs(metrics))
