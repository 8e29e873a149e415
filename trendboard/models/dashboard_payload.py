"""DashboardPayload - consolidated engine output for the dashboard front end."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class DashboardPayload:
    """Consolidated analytics output for one dashboard render.

    All data is pre-computed and JSON-serializable. Percentages are already
    on the 0-100 scale.
    """

    # Metadata
    generated_at: datetime
    dashboard: str
    period_labels: list[str]

    # Per-period records with derived metrics
    periods: list[dict[str, Any]] = field(default_factory=list)

    # Comparisons keyed by name (e.g. "vs_1w", "yoy", "trailing_window")
    comparisons: dict[str, list[dict[str, Any]]] = field(default_factory=dict)

    # Heatmaps keyed by view name
    heatmaps: dict[str, list[dict[str, Any]]] = field(default_factory=dict)

    # Forecast variances keyed by horizon ("day", "week", "month")
    forecasts: dict[str, dict[str, Any]] = field(default_factory=dict)

    # Series trends keyed by metric
    trends: dict[str, str] = field(default_factory=dict)

    insights: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "meta": {
                "generated_at": self.generated_at.isoformat(),
                "dashboard": self.dashboard,
                "periods": self.period_labels,
            },
            "periods": self.periods,
            "comparisons": self.comparisons,
            "heatmaps": self.heatmaps,
            "forecasts": self.forecasts,
            "trends": self.trends,
            "insights": self.insights,
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def get_headline(self) -> dict[str, Any]:
        """Condensed summary for a TV-style header strip."""
        red = [i for i in self.insights if i.get("severity") == "red"]
        return {
            "dashboard": self.dashboard,
            "latest_period": self.period_labels[0] if self.period_labels else None,
            "forecasts": {
                horizon: v.get("variance_percent")
                for horizon, v in self.forecasts.items()
            },
            "insight_count": len(self.insights),
            "critical_count": len(red),
        }
