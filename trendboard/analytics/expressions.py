"""Reusable Polars expressions for period analytics."""

from collections.abc import Iterable

import polars as pl

from .models import DerivedMetric


# =============================================================================
# DERIVED METRICS
# =============================================================================


def safe_ratio_expr(numerator: str, denominator: str, scale: float = 1.0) -> pl.Expr:
    """numerator / denominator * scale, or 0 when the denominator is not positive.

    Null counters count as 0, so a zero-traffic week yields 0 rather than
    null, NaN or inf.
    """
    num = pl.col(numerator).cast(pl.Float64).fill_null(0.0)
    den = pl.col(denominator).cast(pl.Float64).fill_null(0.0)
    return pl.when(den > 0).then(num / den * scale).otherwise(pl.lit(0.0))


def derived_metric_exprs(metrics: Iterable[DerivedMetric]) -> list[pl.Expr]:
    """One aliased expression per derived metric."""
    return [
        safe_ratio_expr(m.numerator, m.denominator, m.scale).alias(m.name)
        for m in metrics
    ]


# =============================================================================
# PERIOD-OVER-PERIOD
# =============================================================================


def pct_change_expr(current: pl.Expr, baseline: pl.Expr) -> pl.Expr:
    """Percentage change with the dashboard sentinel policy.

    baseline != 0 -> (current - baseline) / baseline * 100
    baseline == 0 and current > 0 -> 100
    otherwise -> 0
    A null baseline (no earlier period) stays null.
    """
    return (
        pl.when(baseline.is_null())
        .then(pl.lit(None, dtype=pl.Float64))
        .when(baseline != 0)
        .then((current - baseline) / baseline * 100)
        .when(current > 0)
        .then(pl.lit(100.0))
        .otherwise(pl.lit(0.0))
    )


def period_over_period_expr(metric: str, offset: int = 1) -> pl.Expr:
    """Change of `metric` vs the row `offset` positions later.

    Rows are ordered most recent first, so the baseline is shift(-offset).
    """
    current = pl.col(metric).cast(pl.Float64).fill_null(0.0)
    baseline = pl.col(metric).cast(pl.Float64).shift(-offset)
    # A null value in an existing row reads as 0; only a missing row is null
    baseline = pl.when(pl.int_range(pl.len()) < pl.len() - offset).then(
        baseline.fill_null(0.0)
    )
    return pct_change_expr(current, baseline).alias(f"{metric}_pop_{offset}")
