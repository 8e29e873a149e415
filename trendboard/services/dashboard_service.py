"""Dashboard service - orchestrates ingestion and analytics per dashboard."""

import calendar
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Union

from ..analytics import (
    AD_METRICS,
    RECAP_METRICS,
    BaselineSelection,
    Comparison,
    ForecastVariance,
    HeatmapRow,
    Insight,
    InsightEngine,
    PaceEngine,
    PeriodEngine,
    TrendDirection,
    breakdown_variance,
    elapsed_fraction,
    previous_period,
    variance,
)
from ..analytics.stats import average_ratio, trailing_mean
from ..ingestion import (
    PeriodIngestionPipeline,
    periods_from_hourly_comparison,
    periods_from_recap,
)
from ..ingestion.validator import validate_payload
from ..models import (
    DashboardPayload,
    EODForecast,
    EOMForecast,
    HourlyComparisonPayload,
    Period,
    RecapPayload,
    WeekForecast,
)
from ..settings import EngineConfig, get_default_config

logger = logging.getLogger(__name__)

# Rows, a file export, or (recap only) the columnar payload
Source = Union[Path, str, Iterable[Mapping[str, Any]], RecapPayload]

MONTHS_PER_YEAR = 12


@dataclass
class AdsTrendReport:
    """Weekly ad performance with WoW, window and YoY comparisons."""

    weeks: list[Period]  # aggregated, most recent first
    offset_comparisons: dict[str, list[Comparison]]  # "vs_1w", "vs_2w", ...
    window_comparisons: list[Comparison]
    window_yoy: list[Comparison]  # empty unless every week matched last year
    yoy_comparisons: list[Comparison]  # empty when no baseline
    yoy_baseline: BaselineSelection
    directions: dict[str, TrendDirection]
    trends: dict[str, str]
    heatmap: list[HeatmapRow]
    insights: list[Insight] = field(default_factory=list)


@dataclass
class SalesPaceReport:
    """Intraday sales pacing against prior days and forecasts."""

    hours: list[str]
    periods: list[Period]
    cumulative: list[HeatmapRow]
    incremental: list[HeatmapRow]
    remaining: list[HeatmapRow]
    eod_comparisons: list[Comparison]
    forecasts: dict[str, ForecastVariance]  # "day", "week", "month"
    insights: list[Insight] = field(default_factory=list)


@dataclass
class RecapReport:
    """Monthly recap with YoY comparisons and six-month averages."""

    display_month: str | None
    months: list[Period]  # aggregated, most recent first
    yoy_comparisons: list[Comparison]
    yoy_baseline: BaselineSelection
    six_month_avg_churn: float
    six_month_avg_refund_rate: float
    six_month_averages: dict[str, float | None]
    trends: dict[str, str]
    insights: list[Insight] = field(default_factory=list)


DashboardReport = Union[AdsTrendReport, SalesPaceReport, RecapReport]


class DashboardService:
    """Service for building dashboard data from source exports and payloads.

    Orchestrates:
    1. Ingestion of weekly, monthly or hourly source data
    2. Running the period and pace engines
    3. Rule-based insights
    4. Returning consolidated output

    Usage:
        service = DashboardService()
        report = service.build_ads_trend(Path("weekly.csv"), "google_ads_weekly")
        summary = service.generate_summary_dict(report)
    """

    def __init__(
        self, schema_path: Path | None = None, config: EngineConfig | None = None
    ):
        """Initialize service with schema and engine configuration.

        Args:
            schema_path: Path to schema_registry.yaml. Defaults to bundled config.
            config: Engine configuration. Defaults to bundled defaults.yaml.
        """
        self.pipeline = PeriodIngestionPipeline(schema_path)
        self.config = config or get_default_config()
        self.insight_engine = InsightEngine(self.config.thresholds)

    def _load_periods(
        self,
        source: Source,
        schema_name: str,
        validate: bool,
        as_of: date | None,
    ) -> list[Period]:
        """Route a source to the matching ingestion entry point."""
        if isinstance(source, (str, Path)):
            return self.pipeline.ingest_file(
                Path(source), schema_name, validate=validate, as_of=as_of
            )
        if isinstance(source, RecapPayload) or (
            isinstance(source, Mapping) and "months" in source
        ):
            return periods_from_recap(source)
        return self.pipeline.ingest_records(
            source, schema_name, validate=validate, as_of=as_of
        )

    def _schema_config(self, schema_name: str) -> EngineConfig:
        """Engine config with schema-level YoY tolerance applied."""
        tolerance = self.pipeline.get_schema(schema_name).get("yoy_tolerance_days", 0)
        if tolerance > self.config.yoy_tolerance_days:
            return self.config.model_copy(update={"yoy_tolerance_days": tolerance})
        return self.config

    # =========================================================================
    # ADS TREND
    # =========================================================================

    def build_ads_trend(
        self,
        source: Source,
        schema_name: str = "google_ads_weekly",
        validate: bool = True,
        as_of: date | None = None,
    ) -> AdsTrendReport:
        """Build the weekly ad trend dashboard.

        Args:
            source: Export path or rows from the ads API
            schema_name: Key in schema registry (default: google_ads_weekly)
            validate: Whether to run Pydantic validation
            as_of: Reference date for dropping the week in progress

        Raises:
            ValueError: If the source has no complete weeks
        """
        periods = self._load_periods(source, schema_name, validate, as_of)
        if not periods:
            raise ValueError(f"No complete periods in source for {schema_name}")

        engine = PeriodEngine(periods, AD_METRICS, self._schema_config(schema_name))
        metrics = self.config.comparison_metrics

        offset_comparisons = {
            f"vs_{offset}w": [
                c
                for c in (engine.compare_to_offset(m, offset) for m in metrics)
                if c is not None
            ]
            for offset in self.config.comparison_offsets
        }
        window_comparisons = [
            c for c in (engine.compare_windows(m) for m in metrics) if c is not None
        ]
        window_yoy = [
            c
            for c in (engine.window_year_over_year(m) for m in metrics)
            if c is not None
        ]

        selection = engine.year_ago_selection()
        yoy_comparisons = [
            c for c in (engine.year_over_year(m) for m in metrics) if c is not None
        ]

        latest = offset_comparisons.get("vs_1w", [])
        directions = {c.metric: engine.direction(c) for c in latest}
        trends = {m: engine.get_trend(m) for m in metrics}

        insights = self.insight_engine.generate_all_insights(
            comparisons={
                "vs_1w": latest,
                "trailing_window": window_comparisons,
                "yoy": yoy_comparisons,
            },
            baselines={periods[0].label: selection},
        )
        logger.info(
            "Built ads trend for %d weeks (%d insights)", len(periods), len(insights)
        )

        return AdsTrendReport(
            weeks=engine.get_aggregated(),
            offset_comparisons=offset_comparisons,
            window_comparisons=window_comparisons,
            window_yoy=window_yoy,
            yoy_comparisons=yoy_comparisons,
            yoy_baseline=selection,
            directions=directions,
            trends=trends,
            heatmap=engine.metric_heatmap(metrics),
            insights=insights,
        )

    # =========================================================================
    # SALES PACE
    # =========================================================================

    def build_sales_pace(
        self,
        hourly_payload: HourlyComparisonPayload | Mapping[str, Any],
        eod: EODForecast | None = None,
        week: WeekForecast | None = None,
        month: EOMForecast | None = None,
        eod_baselines: Sequence[str] = ("1 Week Ago", "2 Weeks Ago"),
        as_of: date | None = None,
    ) -> SalesPaceReport:
        """Build the intraday sales pacing dashboard.

        Args:
            hourly_payload: Hourly comparison response
            eod: End-of-day forecast, if available
            week: Week forecast with daily breakdown, if available
            month: End-of-month forecast, if available
            eod_baselines: Period labels the EOD forecast is compared against
            as_of: Date used for the month length (default: today)
        """
        payload = validate_payload(hourly_payload, HourlyComparisonPayload)
        periods = periods_from_hourly_comparison(payload)
        pace = PaceEngine(periods, list(payload.hours))

        forecasts: dict[str, ForecastVariance] = {}
        eod_comparisons: list[Comparison] = []

        if eod is not None:
            eod_comparisons = pace.compare_end_of_day(eod.predicted_sales, eod_baselines)
            if periods:
                observed = [v for v in periods[0].series(payload.hours) if v is not None]
                fraction = elapsed_fraction(len(observed), len(payload.hours))
                forecasts["day"] = variance(
                    eod.predicted_sales, eod.current_sales, fraction
                )

        if week is not None:
            if week.daily_breakdown:
                forecasts["week"] = breakdown_variance(
                    week.daily_breakdown,
                    actual_to_date=week.current_week_sales,
                    forecast_total=week.predicted_sales,
                )
            else:
                logger.debug("Week forecast has no daily breakdown; skipping variance")

        if month is not None:
            forecasts["month"] = self._month_variance(month, as_of or date.today())

        insights = self.insight_engine.generate_all_insights(
            comparisons={"eod_vs_prior": eod_comparisons},
            forecasts=forecasts,
        )

        return SalesPaceReport(
            hours=list(payload.hours),
            periods=periods,
            cumulative=pace.cumulative_heatmap(),
            incremental=pace.incremental_heatmap(),
            remaining=pace.remaining_heatmap(),
            eod_comparisons=eod_comparisons,
            forecasts=forecasts,
            insights=insights,
        )

    def _month_variance(self, month: EOMForecast, as_of: date) -> ForecastVariance:
        """Month-to-date variance using days elapsed in the month of `as_of`."""
        days_in_month = calendar.monthrange(as_of.year, as_of.month)[1]
        days_elapsed = days_in_month - month.days_remaining
        return variance(
            month.predicted_sales,
            month.current_month_sales,
            elapsed_fraction(days_elapsed, days_in_month),
        )

    # =========================================================================
    # MONTHLY RECAP
    # =========================================================================

    def build_monthly_recap(
        self,
        source: Source,
        schema_name: str = "monthly_recap",
        validate: bool = True,
    ) -> RecapReport:
        """Build the monthly recap dashboard.

        Args:
            source: Recap payload, export path or monthly rows

        Raises:
            ValueError: If the source has no months
        """
        periods = self._load_periods(source, schema_name, validate, None)
        if not periods:
            raise ValueError("No months in recap source")

        engine = PeriodEngine(periods, RECAP_METRICS, self._schema_config(schema_name))
        available = engine.get_aggregated()[0].counts
        metrics = [m for m in self.config.recap_metrics if m in available]

        selection = self._recap_baseline(engine)
        yoy_comparisons: list[Comparison] = []
        if selection.period is not None:
            yoy_comparisons = [
                engine.compare_to_period(m, selection.period) for m in metrics
            ]

        recent = engine.get_aggregated()[:6]
        six_month_avg_churn = average_ratio(
            [p.counts.get("cancels") for p in recent],
            [p.counts.get("subscribers") for p in recent],
        )
        chronological = list(reversed(engine.get_aggregated()))
        six_month_averages = {
            m: trailing_mean([p.counts.get(m) for p in chronological], 6)
            for m in metrics
        }
        six_month_avg_refund_rate = (
            trailing_mean([p.counts.get("refund_rate") for p in chronological], 6)
            or 0.0
        )

        insights = self.insight_engine.generate_all_insights(
            comparisons={"yoy": yoy_comparisons},
            baselines={periods[0].label: selection},
        )

        display_month = periods[0].label
        if isinstance(source, RecapPayload):
            display_month = source.display_month
        elif isinstance(source, Mapping):
            display_month = source.get("displayMonth", display_month)

        return RecapReport(
            display_month=display_month,
            months=engine.get_aggregated(),
            yoy_comparisons=yoy_comparisons,
            yoy_baseline=selection,
            six_month_avg_churn=six_month_avg_churn,
            six_month_avg_refund_rate=six_month_avg_refund_rate,
            six_month_averages=six_month_averages,
            trends={m: engine.get_trend(m) for m in metrics},
            insights=insights,
        )

    def _recap_baseline(self, engine: PeriodEngine) -> BaselineSelection:
        """Same month last year, by date when months are dated, else by position."""
        latest = engine.get_aggregated()[0]
        if latest.start_date is not None:
            return engine.year_ago_selection()
        baseline = previous_period(engine.get_aggregated(), 0, MONTHS_PER_YEAR)
        return BaselineSelection(
            period=baseline, kind="aligned" if baseline is not None else "missing"
        )

    # =========================================================================
    # OUTPUT
    # =========================================================================

    def to_payload(self, report: DashboardReport) -> DashboardPayload:
        """Convert a report to the front-end payload."""
        generated_at = datetime.now()
        insights = [i.to_dict() for i in report.insights]

        if isinstance(report, AdsTrendReport):
            comparisons = {
                key: [c.to_dict() for c in items]
                for key, items in report.offset_comparisons.items()
            }
            comparisons["trailing_window"] = [c.to_dict() for c in report.window_comparisons]
            comparisons["trailing_window_yoy"] = [c.to_dict() for c in report.window_yoy]
            comparisons["yoy"] = [c.to_dict() for c in report.yoy_comparisons]
            return DashboardPayload(
                generated_at=generated_at,
                dashboard="ads_trend",
                period_labels=[p.label for p in report.weeks],
                periods=[_round_counts(p.to_dict()) for p in report.weeks],
                comparisons=comparisons,
                heatmaps={"metrics": [r.to_dict() for r in report.heatmap]},
                trends={
                    **report.trends,
                    **{f"{m}_direction": d.value for m, d in report.directions.items()},
                },
                insights=insights,
            )

        if isinstance(report, SalesPaceReport):
            return DashboardPayload(
                generated_at=generated_at,
                dashboard="sales_pace",
                period_labels=[p.label for p in report.periods],
                periods=[p.to_dict() for p in report.periods],
                comparisons={"eod_vs_prior": [c.to_dict() for c in report.eod_comparisons]},
                heatmaps={
                    "cumulative": [r.to_dict() for r in report.cumulative],
                    "incremental": [r.to_dict() for r in report.incremental],
                    "remaining": [r.to_dict() for r in report.remaining],
                },
                forecasts={k: v.to_dict() for k, v in report.forecasts.items()},
                insights=insights,
            )

        return DashboardPayload(
            generated_at=generated_at,
            dashboard="monthly_recap",
            period_labels=[p.label for p in report.months],
            periods=[_round_counts(p.to_dict()) for p in report.months],
            comparisons={"yoy": [c.to_dict() for c in report.yoy_comparisons]},
            trends=report.trends,
            insights=insights,
        )

    def generate_summary_dict(self, report: DashboardReport) -> dict[str, Any]:
        """Convert a report to a JSON-serializable dictionary.

        Args:
            report: Output of one of the build_* methods

        Returns:
            Dictionary suitable for JSON serialization
        """
        summary = self.to_payload(report).to_dict()
        if isinstance(report, RecapReport):
            summary["recap"] = {
                "display_month": report.display_month,
                "six_month_avg_churn": round(report.six_month_avg_churn, 2),
                "six_month_avg_refund_rate": round(
                    report.six_month_avg_refund_rate, 2
                ),
                "six_month_averages": {
                    m: round(v, 2) if v is not None else None
                    for m, v in report.six_month_averages.items()
                },
                "yoy_baseline": report.yoy_baseline.kind,
            }
        elif isinstance(report, AdsTrendReport):
            summary["yoy_baseline"] = report.yoy_baseline.kind
        return summary


def _round_counts(record: dict[str, Any], digits: int = 2) -> dict[str, Any]:
    """Round float counters for display."""
    return {
        k: round(v, digits) if isinstance(v, float) else v for k, v in record.items()
    }
