from .cleaner import apply_cleaning
from .enricher import enrich
from .loader import (
    PeriodIngestionPipeline,
    periods_from_hourly_comparison,
    periods_from_recap,
    periods_from_weekly_trends,
)

__all__ = [
    "PeriodIngestionPipeline",
    "apply_cleaning",
    "enrich",
    "periods_from_hourly_comparison",
    "periods_from_recap",
    "periods_from_weekly_trends",
]
