"""Pydantic models for the JSON payloads the dashboard APIs return."""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class WeeklyAdsRow(BaseModel):
    """Single weekly ad-platform row after cleaning.

    Rates are on the 0-100 scale, currency values are plain floats.
    """

    model_config = ConfigDict(extra="ignore")

    week_start: date
    week_end: date
    label: str
    spend: float = Field(ge=0)
    impressions: int = Field(ge=0)
    clicks: int = Field(ge=0)
    conversions: float = Field(ge=0)
    conv_value: Optional[float] = Field(default=None, ge=0)


class MonthlyRecapRow(BaseModel):
    """Single month of the recap sheet after cleaning."""

    model_config = ConfigDict(extra="ignore")

    month_start: date
    label: str
    training_plans: Optional[float] = None
    renewals: Optional[float] = None
    subscribers: Optional[float] = None
    cancels: Optional[float] = None
    new_visitors: Optional[float] = None
    paid_visitors: Optional[float] = None
    cpc: Optional[float] = None
    refund_dollars: Optional[float] = None
    chargeback_dollars: Optional[float] = None
    gross_revenue: Optional[float] = None
    refund_rate: Optional[float] = None
    intuit_sales: Optional[float] = None
    refunds_and_chargebacks: Optional[float] = None


class HourlyPeriod(BaseModel):
    """One row of the hourly comparison: running sales totals by hour."""

    period_label: str
    period_date: Optional[date] = None
    hourly_sales: dict[str, Optional[float]]
    end_of_day: Optional[float] = None


class HourlyComparisonPayload(BaseModel):
    """Response of the hourly-comparison endpoint."""

    periods: list[HourlyPeriod]
    hours: list[str]


class WeeklyTrendRow(BaseModel):
    """One week of day-by-day running totals."""

    week_label: str
    week_start: Optional[date] = None
    daily_cumulative: dict[str, Optional[float]]
    week_total: Optional[float] = None


class WeeklyTrendsPayload(BaseModel):
    """Response of the weekly-trends endpoint for one metric."""

    rows: list[WeeklyTrendRow]
    days: list[str]


class EODForecast(BaseModel):
    """End-of-day sales forecast."""

    predicted_sales: float
    predicted_lower: Optional[float] = None
    predicted_upper: Optional[float] = None
    current_sales: float = 0


class DailyForecast(BaseModel):
    """Predicted vs actual sales for one day of the week."""

    day: str
    predicted: float
    actual: Optional[float] = None


class WeekForecast(BaseModel):
    """Week forecast with a per-day breakdown."""

    predicted_sales: float
    current_week_sales: float
    week_start_date: Optional[str] = None
    week_end_date: Optional[str] = None
    daily_breakdown: list[DailyForecast] = Field(default_factory=list)


class EOMForecast(BaseModel):
    """End-of-month sales forecast."""

    predicted_sales: float
    current_month_sales: float
    days_remaining: int = Field(ge=0)
    month_name: str = ""


class RecapPayload(BaseModel):
    """Columnar monthly recap as posted by the recap workflow.

    Every metric list is aligned with `months`, oldest first.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    display_month: str = Field(validation_alias="displayMonth")
    months: list[str]
    training_plans: list[Optional[float]] = Field(
        default_factory=list, validation_alias="trainingPlans"
    )
    renewals: list[Optional[float]] = Field(default_factory=list)
    subscribers: list[Optional[float]] = Field(default_factory=list)
    cancels: list[Optional[float]] = Field(default_factory=list)
    new_visitors: list[Optional[float]] = Field(
        default_factory=list, validation_alias="newVisitors"
    )
    paid_visitors: list[Optional[float]] = Field(
        default_factory=list, validation_alias="paidVisitors"
    )
    cpc: list[Optional[float]] = Field(default_factory=list)
    refund_dollars: list[Optional[float]] = Field(
        default_factory=list, validation_alias="refundDollars"
    )
    chargeback_dollars: list[Optional[float]] = Field(
        default_factory=list, validation_alias="chargebackDollars"
    )
    refund_pct: list[Optional[float]] = Field(
        default_factory=list, validation_alias="refundPct"
    )  # fraction, 0.02 for 2%
    intuit_sales: list[Optional[float]] = Field(
        default_factory=list, validation_alias="intuitSales"
    )

    def metric_columns(self) -> dict[str, list[Optional[float]]]:
        """Metric lists keyed by count name, skipping ones not sent."""
        columns = {
            "training_plans": self.training_plans,
            "renewals": self.renewals,
            "subscribers": self.subscribers,
            "cancels": self.cancels,
            "new_visitors": self.new_visitors,
            "paid_visitors": self.paid_visitors,
            "cpc": self.cpc,
            "refund_dollars": self.refund_dollars,
            "chargeback_dollars": self.chargeback_dollars,
            "intuit_sales": self.intuit_sales,
            "refund_rate": [
                None if pct is None else pct * 100.0 for pct in self.refund_pct
            ],
            "refunds_and_chargebacks": _sum_aligned(
                self.refund_dollars, self.chargeback_dollars
            ),
        }
        return {name: values for name, values in columns.items() if values}


def _sum_aligned(
    *columns: list[Optional[float]],
) -> list[Optional[float]]:
    """Element-wise sum of aligned lists; None where every entry is None."""
    size = max((len(c) for c in columns), default=0)
    totals: list[Optional[float]] = []
    for i in range(size):
        values = [c[i] for c in columns if i < len(c) and c[i] is not None]
        totals.append(sum(values) if values else None)
    return totals
