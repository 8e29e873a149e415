"""Custom exceptions for trendboard input handling."""

from typing import Any


class TrendboardError(Exception):
    """Base exception for trendboard errors."""

    pass


class ConfigLoadError(TrendboardError):
    """Failed to load engine configuration."""

    pass


class SchemaLoadError(TrendboardError):
    """Failed to load schema registry."""

    pass


class DataValidationError(TrendboardError):
    """Source rows failed validation against their Pydantic model."""

    def __init__(self, errors: list[dict[str, Any]], row_count: int):
        self.errors = errors
        self.row_count = row_count
        super().__init__(
            f"Validation failed for {len(errors)} of {row_count} rows. "
            f"First error: {errors[0] if errors else 'N/A'}"
        )


class ColumnMappingError(TrendboardError):
    """Required column not found in source data."""

    def __init__(self, missing_columns: list[str], available_columns: list[str]):
        self.missing_columns = missing_columns
        self.available_columns = available_columns
        super().__init__(
            f"Missing required columns: {missing_columns}. "
            f"Available: {available_columns[:10]}..."
        )


class MetricKeyMismatchError(TrendboardError):
    """A period's metric keys differ from the rest of its dataset."""

    def __init__(self, label: str, missing: list[str], extra: list[str]):
        self.label = label
        self.missing = missing
        self.extra = extra
        super().__init__(
            f"Period {label!r} has inconsistent metric keys. "
            f"Missing: {missing}. Unexpected: {extra}"
        )
