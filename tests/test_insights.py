"""Tests for rule-based insights."""

import pytest

from trendboard.analytics import (
    BaselineSelection,
    Comparison,
    InsightEngine,
    Severity,
    variance,
)
from trendboard.models import Period
from trendboard.settings import InsightThresholds


@pytest.fixture
def insight_engine() -> InsightEngine:
    """Engine with default thresholds."""
    return InsightEngine(InsightThresholds())


def make_comparison(
    metric: str, current: float, baseline: float, inverse: bool = False
) -> Comparison:
    """Comparison with consistent deltas."""
    delta = current - baseline
    return Comparison(
        metric=metric,
        current_value=current,
        baseline_value=baseline,
        absolute_delta=delta,
        percent_delta=delta / baseline * 100,
        is_improvement=delta < 0 if inverse else delta > 0,
        inverse=inverse,
        baseline_label="1 Week Ago",
    )


class TestPacingRules:
    """Tests for pace_ahead / pace_behind."""

    def test_pace_behind(self, insight_engine: InsightEngine) -> None:
        """20% under expected-to-date should be red."""
        insights = insight_engine.check_pacing("week", variance(1000, 400, 0.5))
        assert len(insights) == 1
        assert insights[0].rule_id == "pace_behind"
        assert insights[0].severity == Severity.RED

    def test_pace_ahead(self, insight_engine: InsightEngine) -> None:
        """20% over expected-to-date should be green."""
        insights = insight_engine.check_pacing("month", variance(1000, 600, 0.5))
        assert insights[0].rule_id == "pace_ahead"
        assert insights[0].severity == Severity.GREEN

    def test_on_pace_is_quiet(self, insight_engine: InsightEngine) -> None:
        """Small variances should not produce insights."""
        assert insight_engine.check_pacing("day", variance(1000, 520, 0.5)) == []

    def test_nothing_expected_is_quiet(self, insight_engine: InsightEngine) -> None:
        """No expected-to-date value means nothing to judge."""
        assert insight_engine.check_pacing("day", variance(1000, 50, 0.0)) == []


class TestComparisonRules:
    """Tests for metric_regression / metric_improvement."""

    def test_regression(self, insight_engine: InsightEngine) -> None:
        """A 30% drop in conversions should be flagged amber."""
        insights = insight_engine.check_comparisons(
            "vs_1w", [make_comparison("conversions", 70, 100)]
        )
        assert insights[0].rule_id == "metric_regression"
        assert insights[0].severity == Severity.AMBER
        assert insights[0].metrics["baseline_label"] == "1 Week Ago"

    def test_inverse_improvement(self, insight_engine: InsightEngine) -> None:
        """A 25% drop in CPA should be an improvement."""
        insights = insight_engine.check_comparisons(
            "vs_1w", [make_comparison("cpa", 75, 100, inverse=True)]
        )
        assert insights[0].rule_id == "metric_improvement"

    def test_small_moves_are_quiet(self, insight_engine: InsightEngine) -> None:
        """Moves under the threshold should not be flagged."""
        insights = insight_engine.check_comparisons(
            "vs_1w", [make_comparison("clicks", 105, 100)]
        )
        assert insights == []

    def test_custom_threshold(self) -> None:
        """A lower threshold should flag smaller moves."""
        engine = InsightEngine(InsightThresholds(improvement_pct=4))
        insights = engine.check_comparisons("vs_1w", [make_comparison("clicks", 105, 100)])
        assert [i.rule_id for i in insights] == ["metric_improvement"]


class TestBaselineRules:
    """Tests for missing / fallback YoY baselines."""

    def test_missing_baseline(self, insight_engine: InsightEngine) -> None:
        """A missing year-ago period should be surfaced."""
        insights = insight_engine.check_baseline(
            "Mar 3 - Mar 9", BaselineSelection(period=None, kind="missing")
        )
        assert insights[0].rule_id == "missing_yoy_baseline"

    def test_fallback_baseline(self, insight_engine: InsightEngine) -> None:
        """A substituted baseline should be named in the insight."""
        oldest = Period(label="Jan 6 - Jan 12", counts={})
        insights = insight_engine.check_baseline(
            "Mar 3 - Mar 9", BaselineSelection(period=oldest, kind="fallback")
        )
        assert insights[0].rule_id == "yoy_fallback_used"
        assert insights[0].metrics["baseline"] == "Jan 6 - Jan 12"

    def test_aligned_baseline_is_quiet(self, insight_engine: InsightEngine) -> None:
        """An aligned baseline needs no insight."""
        period = Period(label="Mar 4 - Mar 10", counts={})
        assert insight_engine.check_baseline(
            "Mar 3 - Mar 9", BaselineSelection(period=period, kind="aligned")
        ) == []


class TestGenerateAll:
    """Tests for generate_all_insights()."""

    def test_combines_rules(self, insight_engine: InsightEngine) -> None:
        """All rule groups should contribute."""
        insights = insight_engine.generate_all_insights(
            comparisons={"vs_1w": [make_comparison("conversions", 70, 100)]},
            forecasts={"week": variance(1000, 400, 0.5)},
            baselines={"Now": BaselineSelection(period=None, kind="missing")},
        )
        assert {i.rule_id for i in insights} == {
            "pace_behind",
            "metric_regression",
            "missing_yoy_baseline",
        }

    def test_to_dict(self, insight_engine: InsightEngine) -> None:
        """Insights should serialize with a plain severity string."""
        insight = insight_engine.check_pacing("week", variance(1000, 400, 0.5))[0]
        assert insight.to_dict()["severity"] == "red"

    def test_no_inputs(self, insight_engine: InsightEngine) -> None:
        """No inputs should give no insights."""
        assert insight_engine.generate_all_insights() == []
