"""Validation utilities for the ingestion pipeline."""

from typing import Any

import polars as pl
from pydantic import BaseModel, ValidationError

from ..exceptions import DataValidationError
from ..models.payloads import MonthlyRecapRow, WeeklyAdsRow

# Map schema names to validation models
SCHEMA_MODELS: dict[str, type[BaseModel]] = {
    "google_ads_weekly": WeeklyAdsRow,
    "monthly_recap": MonthlyRecapRow,
}


def validate_dataframe(df: pl.DataFrame, model: type[BaseModel]) -> None:
    """Validate each row against a Pydantic model.

    Collects all errors before raising, for better debugging.

    Raises:
        DataValidationError: If any rows fail validation
    """
    errors: list[dict[str, Any]] = []
    rows = df.to_dicts()

    for i, row in enumerate(rows):
        try:
            model.model_validate(row)
        except ValidationError as e:
            errors.append({"row": i, "errors": e.errors()})

    if errors:
        raise DataValidationError(errors, len(rows))


def validate_payload(payload: Any, model: type[BaseModel]) -> BaseModel:
    """Validate a nested JSON payload, reporting failures like row errors."""
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise DataValidationError([{"row": 0, "errors": e.errors()}], 1) from e
