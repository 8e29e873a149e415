"""Data enrichment functions - add derived columns."""

from typing import Any

import polars as pl


def roll_up(df: pl.DataFrame, key: str, metrics: list[str]) -> pl.DataFrame:
    """Sum metric columns per period key (e.g. weekly rows split by device).

    A metric that is null in every row of a period stays null.
    """
    present = [m for m in metrics if m in df.columns]
    return (
        df.group_by(key)
        .agg(
            [
                pl.when(pl.col(m).is_null().all())
                .then(None)
                .otherwise(pl.col(m).sum())
                .alias(m)
                for m in present
            ]
        )
        .sort(key)
    )


def add_period_end(
    df: pl.DataFrame, start_col: str, end_col: str, unit: str = "week"
) -> pl.DataFrame:
    """Fill the period end date from the start date.

    Weeks end 6 days after they start; months end on their last day.
    Existing end dates are kept.
    """
    start = pl.col(start_col)
    if unit == "month":
        computed = start.dt.month_end()
    else:
        computed = start.dt.offset_by("6d")

    if end_col in df.columns:
        return df.with_columns(pl.col(end_col).fill_null(computed).alias(end_col))
    return df.with_columns(computed.alias(end_col))


def add_range_label(
    df: pl.DataFrame,
    start_col: str,
    end_col: str,
    unit: str = "week",
    label_col: str = "label",
) -> pl.DataFrame:
    """Add a readable label: "Mar 3 - Mar 9" for weeks, "Mar 2025" for months."""
    if unit == "month":
        label = pl.col(start_col).dt.strftime("%b %Y")
    else:
        label = pl.concat_str(
            [
                pl.col(start_col).dt.strftime("%b %-d"),
                pl.col(end_col).dt.strftime("%b %-d"),
            ],
            separator=" - ",
        )
    return df.with_columns(label.alias(label_col))


def add_conversion_value(
    df: pl.DataFrame, per_conversion: float, col: str = "conv_value"
) -> pl.DataFrame:
    """Estimate conversion value as conversions * a flat value per conversion.

    Reported values are kept; only missing ones are estimated.
    """
    estimate = pl.col("conversions") * per_conversion
    if col in df.columns:
        return df.with_columns(pl.col(col).fill_null(estimate).alias(col))
    return df.with_columns(estimate.alias(col))


def add_column_totals(
    df: pl.DataFrame, totals: dict[str, list[str]]
) -> pl.DataFrame:
    """Add each total as the row-wise sum of its parts.

    Missing parts count as 0; a total is null when every part is null.
    """
    exprs = []
    for name, parts in totals.items():
        present = [p for p in parts if p in df.columns]
        if not present:
            continue
        all_null = pl.all_horizontal([pl.col(p).is_null() for p in present])
        exprs.append(
            pl.when(all_null)
            .then(None)
            .otherwise(pl.sum_horizontal(present))
            .alias(name)
        )
    return df.with_columns(exprs) if exprs else df


def enrich(df: pl.DataFrame, schema: dict[str, Any]) -> pl.DataFrame:
    """Apply all enrichment transformations described by a schema entry."""
    period = schema["period"]
    start_col = period["start"]
    end_col = period.get("end", "period_end")
    unit = period.get("unit", "week")

    # Per source row, before the roll-up
    per_conversion = schema.get("conversion_value")
    if per_conversion is not None:
        df = add_conversion_value(df, per_conversion)

    if schema.get("roll_up"):
        df = roll_up(df, start_col, schema.get("metrics", []))

    totals = schema.get("column_totals")
    if totals:
        df = add_column_totals(df, totals)

    df = add_period_end(df, start_col, end_col, unit)

    if "label" not in df.columns:
        df = add_range_label(df, start_col, end_col, unit)

    return df
