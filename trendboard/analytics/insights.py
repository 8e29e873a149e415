"""Rule-based insight generation for dashboard comparisons and pacing."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..settings import InsightThresholds
from .models import BaselineSelection, Comparison, ForecastVariance


class Severity(str, Enum):
    """Insight severity levels."""

    GREEN = "green"  # Good / On track
    AMBER = "amber"  # Warning / Needs attention
    RED = "red"  # Critical / Action required


@dataclass(frozen=True)
class Insight:
    """Single insight with description, severity, and recommendation."""

    rule_id: str
    description: str
    severity: Severity
    recommendation: str
    metrics: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "description": self.description,
            "severity": self.severity.value,
            "recommendation": self.recommendation,
            "metrics": self.metrics,
        }


class InsightEngine:
    """Rule-based insight generator.

    Usage:
        engine = InsightEngine(InsightThresholds())
        insights = engine.generate_all_insights(
            comparisons={"vs_1w": [...]},
            forecasts={"week": variance},
        )
    """

    def __init__(self, thresholds: InsightThresholds | None = None):
        self.thresholds = thresholds or InsightThresholds()

    def generate_all_insights(
        self,
        comparisons: Mapping[str, Sequence[Comparison]] | None = None,
        forecasts: Mapping[str, ForecastVariance] | None = None,
        baselines: Mapping[str, BaselineSelection] | None = None,
    ) -> list[Insight]:
        """Run all insight rules and return detected insights."""
        insights: list[Insight] = []

        for horizon, forecast in (forecasts or {}).items():
            insights.extend(self.check_pacing(horizon, forecast))

        for context, items in (comparisons or {}).items():
            insights.extend(self.check_comparisons(context, items))

        for label, selection in (baselines or {}).items():
            insights.extend(self.check_baseline(label, selection))

        return insights

    def check_pacing(self, horizon: str, forecast: ForecastVariance) -> list[Insight]:
        """Flag a forecast horizon running well ahead of or behind plan."""
        if forecast.expected_to_date <= 0:
            return []

        pct = forecast.variance_percent
        metrics = {
            "horizon": horizon,
            "expected_to_date": round(forecast.expected_to_date, 2),
            "actual_to_date": forecast.actual_to_date,
            "variance_pct": round(pct, 1),
        }

        if pct <= self.thresholds.pace_behind_pct:
            return [
                Insight(
                    rule_id="pace_behind",
                    description=(
                        f"{horizon.capitalize()} sales are {abs(pct):.1f}% behind "
                        f"the expected-to-date forecast"
                    ),
                    severity=Severity.RED,
                    recommendation=(
                        "Check lead flow and campaign delivery for the period. "
                        "A gap this early usually widens without intervention."
                    ),
                    metrics=metrics,
                )
            ]
        if pct >= self.thresholds.pace_ahead_pct:
            return [
                Insight(
                    rule_id="pace_ahead",
                    description=(
                        f"{horizon.capitalize()} sales are {pct:.1f}% ahead "
                        f"of the expected-to-date forecast"
                    ),
                    severity=Severity.GREEN,
                    recommendation="On track to beat forecast. No action needed.",
                    metrics=metrics,
                )
            ]
        return []

    def check_comparisons(
        self, context: str, comparisons: Sequence[Comparison]
    ) -> list[Insight]:
        """Flag large moves in either direction."""
        insights: list[Insight] = []

        for c in comparisons:
            if c.absolute_delta == 0:
                continue

            magnitude = abs(c.percent_delta)
            metrics = {
                "context": context,
                "metric": c.metric,
                "current": c.current_value,
                "baseline": c.baseline_value,
                "pct_change": round(c.percent_delta, 1),
                "baseline_label": c.baseline_label,
            }

            if not c.is_improvement and magnitude >= self.thresholds.regression_pct:
                insights.append(
                    Insight(
                        rule_id="metric_regression",
                        description=(
                            f"{c.metric} moved {c.percent_delta:+.1f}% "
                            f"vs {c.baseline_label or context}"
                        ),
                        severity=Severity.AMBER,
                        recommendation=(
                            "Review what changed between the two periods "
                            "(budget, bids, landing pages, seasonality)."
                        ),
                        metrics=metrics,
                    )
                )
            elif c.is_improvement and magnitude >= self.thresholds.improvement_pct:
                insights.append(
                    Insight(
                        rule_id="metric_improvement",
                        description=(
                            f"{c.metric} improved {c.percent_delta:+.1f}% "
                            f"vs {c.baseline_label or context}"
                        ),
                        severity=Severity.GREEN,
                        recommendation=(
                            "Identify the driver and apply it to other campaigns."
                        ),
                        metrics=metrics,
                    )
                )

        return insights

    def check_baseline(self, label: str, selection: BaselineSelection) -> list[Insight]:
        """Surface year-over-year comparisons that are missing or substituted."""
        if selection.kind == "missing":
            return [
                Insight(
                    rule_id="missing_yoy_baseline",
                    description=f"No period one year before {label}; YoY not shown",
                    severity=Severity.AMBER,
                    recommendation=(
                        "Backfill last year's data for this span, or enable the "
                        "oldest-period fallback if an approximate baseline is acceptable."
                    ),
                    metrics={"period": label},
                )
            ]
        if selection.kind == "fallback" and selection.period is not None:
            return [
                Insight(
                    rule_id="yoy_fallback_used",
                    description=(
                        f"YoY for {label} compares against {selection.period.label}, "
                        f"not the same span last year"
                    ),
                    severity=Severity.AMBER,
                    recommendation="Treat YoY percentages as approximate.",
                    metrics={"period": label, "baseline": selection.period.label},
                )
            ]
        return []
