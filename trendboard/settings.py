"""Engine configuration loaded from YAML."""

from enum import Enum
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import ConfigLoadError

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config" / "defaults.yaml"


class YoYFallback(str, Enum):
    """What to use when no period is aligned one year back."""

    NONE = "none"  # Report the baseline as missing
    OLDEST = "oldest"  # Substitute the oldest available period


class InsightThresholds(BaseModel):
    """Configurable thresholds for insight rules.

    All values are percentages on the 0-100 scale.
    """

    # Pacing: actual vs expected-to-date at or below this is behind
    pace_behind_pct: float = -10.0

    # Pacing: actual vs expected-to-date at or above this is ahead
    pace_ahead_pct: float = 10.0

    # Comparison moved the wrong way by at least this much
    regression_pct: float = 20.0

    # Comparison moved the right way by at least this much
    improvement_pct: float = 20.0


class EngineConfig(BaseModel):
    """Tunable policy for comparisons, baselines and insights.

    Attributes:
        inverse_metrics: Metrics where lower is better (CPA, refund rate)
        neutral_band_pct: |percent_delta| below this is rendered flat
        comparison_offsets: Prior periods compared against the current one
        window_weeks: Size of the trailing vs previous window comparison
        yoy_fallback: What to do when no year-ago period is aligned
        yoy_tolerance_days: Max distance for a year-ago match (0 = exact date)
        comparison_metrics: Metrics compared on the ads trend dashboard
        recap_metrics: Metrics compared year-over-year on the monthly recap
        thresholds: Insight rule thresholds
    """

    model_config = ConfigDict(extra="ignore")

    inverse_metrics: list[str] = Field(
        default_factory=lambda: ["cpa", "avg_cpc", "churn_rate", "refund_rate"]
    )
    neutral_band_pct: float = Field(default=1.0, ge=0)
    comparison_offsets: list[int] = Field(default_factory=lambda: [1, 2, 3])
    window_weeks: int = Field(default=4, ge=1)
    yoy_fallback: YoYFallback = YoYFallback.NONE
    yoy_tolerance_days: int = Field(default=0, ge=0)
    comparison_metrics: list[str] = Field(
        default_factory=lambda: ["spend", "impressions", "clicks", "ctr", "cpa"]
    )
    recap_metrics: list[str] = Field(default_factory=list)
    thresholds: InsightThresholds = Field(default_factory=InsightThresholds)

    def is_inverse(self, metric: str) -> bool:
        """Whether a decrease in `metric` counts as an improvement."""
        return metric in self.inverse_metrics


def load_config(path: Path | None = None) -> EngineConfig:
    """Load engine configuration from YAML.

    Args:
        path: YAML file to read. Defaults to the bundled defaults.yaml.

    Raises:
        ConfigLoadError: If the file cannot be read or fails validation.
    """
    config_path = path or DEFAULT_CONFIG_PATH
    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigLoadError(f"Failed to load config from {config_path}: {e}") from e

    try:
        return EngineConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigLoadError(f"Invalid config in {config_path}: {e}") from e


@lru_cache()
def get_default_config() -> EngineConfig:
    """Bundled defaults, loaded once."""
    return load_config()
