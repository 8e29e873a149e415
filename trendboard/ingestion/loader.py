"""Period ingestion pipeline: raw source rows to validated Periods."""

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from pathlib import Path
from typing import Any

import polars as pl
import yaml

from ..exceptions import ColumnMappingError, SchemaLoadError
from ..models.payloads import (
    HourlyComparisonPayload,
    RecapPayload,
    WeeklyTrendsPayload,
)
from ..models.period import Period
from .cleaner import apply_cleaning
from .enricher import enrich
from .validator import SCHEMA_MODELS, validate_dataframe, validate_payload

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_PATH = Path(__file__).parent.parent / "config" / "schema_registry.yaml"

# Month labels seen in recap payloads
MONTH_FORMATS = ("%b %Y", "%B %Y", "%Y-%m", "%Y-%m-%d", "%b %y")


class PeriodIngestionPipeline:
    """Pipeline for loading, cleaning, enriching and validating period data.

    Usage:
        pipeline = PeriodIngestionPipeline()
        periods = pipeline.ingest_file(Path("weekly.csv"), "google_ads_weekly")
    """

    def __init__(self, schema_path: Path | None = None):
        self.schema = self._load_schema(schema_path or DEFAULT_SCHEMA_PATH)

    def _load_schema(self, path: Path) -> dict[str, Any]:
        """Load schema configuration from YAML."""
        try:
            with open(path) as f:
                schema = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise SchemaLoadError(f"Failed to load schema from {path}: {e}") from e
        if not isinstance(schema, dict):
            raise SchemaLoadError(f"Schema registry {path} is not a mapping")
        return schema

    def get_schema(self, schema_name: str) -> dict[str, Any]:
        """Registry entry for `schema_name`."""
        try:
            return self.schema[schema_name]
        except KeyError:
            raise SchemaLoadError(
                f"Unknown schema {schema_name!r}. Known: {sorted(self.schema)}"
            ) from None

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    def ingest_file(
        self,
        file_path: Path,
        schema_name: str,
        validate: bool = True,
        as_of: date | None = None,
    ) -> list[Period]:
        """Load a CSV, JSON or Excel export and return its periods.

        Args:
            file_path: Path to the export
            schema_name: Key in schema registry
            validate: Whether to run Pydantic validation (default: True)
            as_of: Reference date for dropping incomplete periods

        Returns:
            Periods ordered most recent first
        """
        df = self._load(Path(file_path))
        return self.ingest_frame(df, schema_name, validate=validate, as_of=as_of)

    def ingest_records(
        self,
        records: Iterable[Mapping[str, Any]],
        schema_name: str,
        validate: bool = True,
        as_of: date | None = None,
    ) -> list[Period]:
        """Same pipeline for rows already parsed from an API response."""
        rows = [dict(r) for r in records]
        if not rows:
            logger.warning("No records to ingest for schema %s", schema_name)
            return []
        df = pl.from_dicts(rows, infer_schema_length=None)
        return self.ingest_frame(df, schema_name, validate=validate, as_of=as_of)

    def ingest_frame(
        self,
        df: pl.DataFrame,
        schema_name: str,
        validate: bool = True,
        as_of: date | None = None,
    ) -> list[Period]:
        """Full pipeline: Rename -> Clean -> Enrich -> Validate -> Periods."""
        schema = self.get_schema(schema_name)
        logger.debug("Ingesting %d raw rows as %s", len(df), schema_name)

        # Rename columns to internal names
        df = self._rename_columns(
            df, schema["column_map"], schema.get("optional_columns", {})
        )

        # Apply type-specific cleaning
        df = self._clean(df, schema)

        # Drop rows without a period start
        start_col = schema["period"]["start"]
        dropped = df.filter(pl.col(start_col).is_null()).height
        if dropped:
            logger.warning("Dropping %d rows with no %s", dropped, start_col)
            df = df.filter(pl.col(start_col).is_not_null())

        # Add derived columns
        df = enrich(df, schema)

        if schema.get("complete_only"):
            df = self._complete_only(df, schema, as_of or date.today())

        # Validate against Pydantic model
        if validate:
            self._validate(df, schema_name)

        periods = self._to_periods(df, schema)
        logger.debug("Ingested %d periods for %s", len(periods), schema_name)
        return periods

    # =========================================================================
    # PIPELINE STAGES
    # =========================================================================

    def _load(self, path: Path) -> pl.DataFrame:
        """Load data from Excel, CSV or JSON."""
        suffix = path.suffix.lower()
        if suffix in (".xlsx", ".xls"):
            return pl.read_excel(path)
        elif suffix == ".csv":
            return pl.read_csv(path)
        elif suffix == ".json":
            return pl.read_json(path)
        else:
            raise ValueError(f"Unsupported file type: {suffix}")

    def _rename_columns(
        self,
        df: pl.DataFrame,
        column_map: dict[str, str],
        optional_columns: dict[str, str] | None = None,
    ) -> pl.DataFrame:
        """Rename columns from raw names to internal names.

        column_map: {internal_name: raw_column_name}. A required column is
        satisfied by either name.
        """
        available = set(df.columns)
        missing = [
            raw
            for internal, raw in column_map.items()
            if raw not in available and internal not in available
        ]
        if missing:
            raise ColumnMappingError(missing, list(df.columns))

        rename_dict = {
            raw: internal
            for internal, raw in {**(optional_columns or {}), **column_map}.items()
            if raw in available and internal not in available
        }
        return df.rename(rename_dict)

    def _clean(self, df: pl.DataFrame, schema: dict[str, Any]) -> pl.DataFrame:
        """Apply cleaning transformations based on schema."""
        return apply_cleaning(
            df,
            currency_cols=schema.get("currency_columns", []),
            percentage_cols=schema.get("percentage_columns", []),
            date_cols=schema.get("date_columns", []),
            integer_cols=schema.get("integer_columns", []),
            float_cols=schema.get("float_columns", []),
            string_cols=["label"],
            date_format=schema.get("date_format", "%Y-%m-%d"),
        )

    def _complete_only(
        self, df: pl.DataFrame, schema: dict[str, Any], as_of: date
    ) -> pl.DataFrame:
        """Keep periods that ended before `as_of`."""
        end_col = schema["period"].get("end", "period_end")
        complete = df.filter(pl.col(end_col) < as_of)
        if complete.height < df.height:
            logger.debug(
                "Dropped %d incomplete periods as of %s",
                df.height - complete.height,
                as_of,
            )
        return complete

    def _validate(self, df: pl.DataFrame, schema_name: str) -> None:
        """Validate each row against its Pydantic model."""
        model = SCHEMA_MODELS.get(schema_name)
        if model is None:
            raise ValueError(f"No validation model for schema: {schema_name}")
        validate_dataframe(df, model)

    def _to_periods(self, df: pl.DataFrame, schema: dict[str, Any]) -> list[Period]:
        """One Period per row, most recent first, with every metric key set."""
        period = schema["period"]
        start_col = period["start"]
        end_col = period.get("end", "period_end")
        metrics = schema.get("metrics", [])

        rows = df.sort(start_col, descending=True).to_dicts()
        return [
            Period(
                label=row["label"],
                start_date=row[start_col],
                end_date=row.get(end_col),
                counts={m: row.get(m) for m in metrics},
            )
            for row in rows
        ]


# =============================================================================
# NESTED PAYLOADS
# =============================================================================


def periods_from_hourly_comparison(
    payload: HourlyComparisonPayload | Mapping[str, Any],
) -> list[Period]:
    """One Period per comparison row, keyed by hour plus "end_of_day".

    Raises:
        DataValidationError: If the payload does not match the expected shape
    """
    data = validate_payload(payload, HourlyComparisonPayload)
    return [
        Period(
            label=row.period_label,
            start_date=row.period_date,
            end_date=row.period_date,
            counts={
                **{hour: row.hourly_sales.get(hour) for hour in data.hours},
                "end_of_day": row.end_of_day,
            },
        )
        for row in data.periods
    ]


def periods_from_weekly_trends(
    payload: WeeklyTrendsPayload | Mapping[str, Any],
) -> list[Period]:
    """One Period per week, keyed by weekday plus "week_total"."""
    data = validate_payload(payload, WeeklyTrendsPayload)
    return [
        Period(
            label=row.week_label,
            start_date=row.week_start,
            counts={
                **{day: row.daily_cumulative.get(day) for day in data.days},
                "week_total": row.week_total,
            },
        )
        for row in data.rows
    ]


def parse_month(label: str) -> date | None:
    """First day of the month named by a recap label, if recognizable."""
    for fmt in MONTH_FORMATS:
        try:
            return datetime.strptime(label.strip(), fmt).date().replace(day=1)
        except ValueError:
            continue
    return None


def periods_from_recap(payload: RecapPayload | Mapping[str, Any]) -> list[Period]:
    """Monthly periods from the columnar recap payload, most recent first.

    Metric lists shorter than `months` leave the trailing months unobserved.
    """
    data = validate_payload(payload, RecapPayload)
    columns = data.metric_columns()

    periods = []
    for i, month in enumerate(data.months):
        periods.append(
            Period(
                label=month,
                start_date=parse_month(month),
                counts={
                    name: values[i] if i < len(values) else None
                    for name, values in columns.items()
                },
            )
        )
    return list(reversed(periods))
