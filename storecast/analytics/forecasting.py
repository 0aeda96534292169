"""
Growth Forecasting Module

Projects monthly orders and revenue from recent history.

Pipeline:
1. Bucket trailing orders into calendar months (YYYY-MM)
2. Average the buckets into a monthly baseline
3. Derive month-over-month growth from the two latest buckets, falling
   back to a scenario rate when growth is not positive
4. Compound the baseline forward per horizon, optionally scaled by the
   target month's seasonal factor
5. Attach a confidence band that widens with sqrt(horizon)
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import polars as pl
from pydantic import BaseModel
import structlog

from storecast.analytics.aggregator import round_half_up, to_float
from storecast.config import AnalyticsPolicy, get_settings
from storecast.models.records import GrowthScenario, OrderRecord

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class MonthBucket:
    """Orders and revenue for one calendar month"""
    month: str  # YYYY-MM
    order_count: int
    revenue: float


class ForecastBaseline(BaseModel):
    """Observed history the projections start from"""
    months_observed: int
    avg_monthly_orders: float
    avg_monthly_revenue: float
    observed_growth_rate: float
    applied_growth_rate: float

    @property
    def observed_growth_pct(self) -> float:
        return round(self.observed_growth_rate * 100, 1)

    @property
    def applied_growth_pct(self) -> float:
        return round(self.applied_growth_rate * 100, 1)


class ForecastPoint(BaseModel):
    """Projection for one horizon"""
    months_ahead: int
    target_date: date
    seasonal_factor: float
    projected_orders: int
    projected_revenue: float
    projected_sessions: int
    revenue_low: float
    revenue_high: float
    growth_from_current_pct: float


def bucket_by_month(orders: Sequence[OrderRecord]) -> List[MonthBucket]:
    """
    Group orders into calendar-month buckets, oldest first.

    Months without orders produce no bucket.
    """
    if not orders:
        return []

    df = pl.DataFrame(
        {
            "month": [o.created_at.strftime("%Y-%m") for o in orders],
            "revenue": [to_float(o.total_amount) for o in orders],
        },
        schema={"month": pl.Utf8, "revenue": pl.Float64},
    )

    monthly = (
        df.group_by("month")
        .agg([
            pl.len().alias("order_count"),
            pl.col("revenue").sum().alias("revenue"),
        ])
        .sort("month")
    )

    return [
        MonthBucket(
            month=row["month"],
            order_count=int(row["order_count"]),
            revenue=float(row["revenue"]),
        )
        for row in monthly.iter_rows(named=True)
    ]


def observed_growth(buckets: Sequence[MonthBucket]) -> float:
    """Revenue growth between the two most recent buckets, 0 when undefined"""
    if len(buckets) < 2:
        return 0.0
    previous, last = buckets[-2], buckets[-1]
    if previous.revenue <= 0:
        return 0.0
    return (last.revenue - previous.revenue) / previous.revenue


def resolve_scenario(
    scenario: Union[str, GrowthScenario],
    policy: AnalyticsPolicy,
) -> float:
    """Monthly growth rate for a named scenario"""
    try:
        name = GrowthScenario(scenario).value
    except ValueError:
        raise ValueError(
            f"Unknown growth scenario '{scenario}', expected one of "
            f"{[s.value for s in GrowthScenario]}"
        ) from None
    return policy.scenario_growth_rates[name]


def validate_horizons(horizons: Sequence[int]) -> List[int]:
    """Reject an empty horizon list or non-positive horizons"""
    if not horizons:
        raise ValueError("At least one forecast horizon is required")
    checked = []
    for h in horizons:
        if isinstance(h, bool) or int(h) != h or h < 1:
            raise ValueError(f"Forecast horizons must be positive whole months, got {h!r}")
        checked.append(int(h))
    return checked


class GrowthForecaster:
    """
    Compounding-growth forecaster with seasonal adjustment.

    Example:
        forecaster = GrowthForecaster()
        baseline, points = forecaster.forecast(orders, as_of=date(2024, 6, 1))
    """

    def __init__(self, policy: Optional[AnalyticsPolicy] = None):
        self.policy = policy or get_settings().analytics

    def baseline(
        self,
        buckets: Sequence[MonthBucket],
        scenario: Union[str, GrowthScenario] = GrowthScenario.MODERATE,
    ) -> ForecastBaseline:
        """Monthly averages plus the growth rate to apply"""
        scenario_rate = resolve_scenario(scenario, self.policy)

        if buckets:
            avg_orders = float(np.mean([b.order_count for b in buckets]))
            avg_revenue = float(np.mean([b.revenue for b in buckets]))
        else:
            avg_orders = 0.0
            avg_revenue = 0.0

        growth = observed_growth(buckets)
        applied = growth if growth > 0 else scenario_rate

        return ForecastBaseline(
            months_observed=len(buckets),
            avg_monthly_orders=avg_orders,
            avg_monthly_revenue=avg_revenue,
            observed_growth_rate=growth,
            applied_growth_rate=applied,
        )

    def target_date(self, as_of: date, months_ahead: int) -> date:
        return as_of + timedelta(days=months_ahead * self.policy.days_per_month)

    def project(
        self,
        baseline: ForecastBaseline,
        months_ahead: int,
        as_of: date,
        include_seasonality: bool = True,
    ) -> ForecastPoint:
        """
        Single-horizon projection.

        The seasonal factor of the target month is applied once; the
        intermediate months are not compounded seasonally.
        """
        target = self.target_date(as_of, months_ahead)
        factor = self.policy.seasonal_factors[target.month] if include_seasonality else 1.0
        growth = (1 + baseline.applied_growth_rate) ** months_ahead

        orders = baseline.avg_monthly_orders * growth * factor
        revenue = round(baseline.avg_monthly_revenue * growth * factor, 2)

        spread = self.policy.forecast_volatility * float(np.sqrt(months_ahead))
        low = max(round(revenue * (1 - spread), 2), 0.0)
        high = round(revenue * (1 + spread), 2)

        if baseline.avg_monthly_revenue:
            growth_pct = (revenue / baseline.avg_monthly_revenue - 1) * 100
        else:
            growth_pct = 0.0

        return ForecastPoint(
            months_ahead=months_ahead,
            target_date=target,
            seasonal_factor=factor,
            projected_orders=round_half_up(orders),
            projected_revenue=revenue,
            projected_sessions=round_half_up(orders / self.policy.assumed_conversion_rate),
            revenue_low=low,
            revenue_high=high,
            growth_from_current_pct=round(growth_pct, 1),
        )

    def forecast(
        self,
        orders: Sequence[OrderRecord],
        as_of: date,
        horizons: Optional[Sequence[int]] = None,
        scenario: Union[str, GrowthScenario] = GrowthScenario.MODERATE,
        include_seasonality: bool = True,
    ) -> Tuple[ForecastBaseline, List[ForecastPoint]]:
        """
        Baseline and per-horizon projections.

        Args:
            orders: Orders from the lookback window
            as_of: Date the projections count from
            horizons: Months ahead to project (defaults to the policy's)
            scenario: Fallback growth scenario
            include_seasonality: Apply the target month's seasonal factor

        Returns:
            Tuple of (baseline, forecast points in horizon order)
        """
        months = validate_horizons(
            horizons if horizons is not None else self.policy.default_horizons
        )
        buckets = bucket_by_month(orders)
        baseline = self.baseline(buckets, scenario)

        logger.debug(
            "Forecast baseline computed",
            buckets=len(buckets),
            observed_growth=baseline.observed_growth_rate,
            applied_growth=baseline.applied_growth_rate,
        )

        points = [
            self.project(baseline, h, as_of, include_seasonality)
            for h in months
        ]
        return baseline, points
