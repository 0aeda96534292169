"""
Report Pipelines

Orchestrates the analytics components into the four store reports plus
customer segmentation. Each report fetches its records (concurrently where
the fetches are independent), runs the components and returns a
serializable pydantic result.

Example:
    service = ReportService(source, store_domain="mystore.com")
    result = await service.store_analytics(period_days=30)
    payload = result.model_dump(mode="json")
"""

import asyncio
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel
import structlog

from storecast.analytics.aggregator import aggregate_orders, is_malformed, percentage, round_half_up
from storecast.analytics.attribution import TrafficAttributor
from storecast.analytics.comparison import PeriodComparison, compare_periods
from storecast.analytics.forecasting import ForecastPoint, GrowthForecaster
from storecast.analytics.funnel import FunnelAnalysis, analyze_funnel
from storecast.analytics.products import (
    ProductStat,
    product_stats,
    promotion_candidates,
    rank_by,
    restock_candidates,
)
from storecast.analytics.segmentation import SegmentSummary, segment_customers
from storecast.config import AnalyticsPolicy, get_settings
from storecast.ingestion.sources import RecordSource
from storecast.models.records import CheckoutRecord, OrderRecord, PeriodWindow
from storecast.pipelines.params import (
    ConversionAnalysisParams,
    ForecastParams,
    ProductPerformanceParams,
    SegmentAnalysisParams,
    StoreAnalyticsParams,
)

logger = structlog.get_logger(__name__)


# =============================================================================
# RESULT MODELS
# =============================================================================

class ReportPeriod(BaseModel):
    """Inclusive date range covered by a report"""
    start: date
    end: date
    days: int

    @classmethod
    def from_window(cls, window: PeriodWindow) -> "ReportPeriod":
        return cls(start=window.start, end=window.last_day, days=window.length_days)


class OrderSummary(BaseModel):
    total: int
    daily_average: float
    items_sold: int


class RevenueSummary(BaseModel):
    total: float
    daily_average: float
    average_order_value: float


class CustomerSummary(BaseModel):
    unique_customers: int
    new_customer_orders: int
    returning_customer_orders: int
    new_customers_acquired: int


class TrafficSummary(BaseModel):
    """Traffic estimates derived from order counts, not measured sessions"""
    estimated_sessions: int
    estimated_daily_sessions: int
    assumed_conversion_rate_pct: float
    sources: Dict[str, int]
    source_shares_pct: Dict[str, float]


class StoreAnalyticsResult(BaseModel):
    period: ReportPeriod
    orders: OrderSummary
    revenue: RevenueSummary
    customers: CustomerSummary
    traffic: TrafficSummary
    comparison: Optional[PeriodComparison] = None


class BaselineSummary(BaseModel):
    months_observed: int
    avg_monthly_orders: int
    avg_monthly_revenue: float
    observed_growth_pct: float
    applied_growth_pct: float


class AnnualProjection(BaseModel):
    """Twelve months at the 12-month projected monthly run rate"""
    revenue: float
    orders: int


class ForecastResult(BaseModel):
    history: ReportPeriod
    baseline: BaselineSummary
    scenario: str
    seasonality_applied: bool
    forecasts: List[ForecastPoint]
    annual_projection: Optional[AnnualProjection] = None


class ConversionAnalysisResult(FunnelAnalysis):
    period: ReportPeriod


class ProductSummary(BaseModel):
    total_products_sold: int
    total_units_sold: int
    total_revenue: float


class ProductPerformanceResult(BaseModel):
    period: ReportPeriod
    summary: ProductSummary
    top_by_revenue: List[ProductStat]
    top_by_units: List[ProductStat]
    fastest_moving: List[ProductStat]
    restock_soon: List[ProductStat]
    consider_promotion: List[ProductStat]


class SegmentAnalysisResult(BaseModel):
    segment_type: str
    total_customers: int
    segments: List[SegmentSummary]


# =============================================================================
# HELPERS
# =============================================================================

def count_malformed(
    orders: Iterable[OrderRecord] = (),
    checkouts: Iterable[CheckoutRecord] = (),
) -> int:
    """Number of present-but-unreadable amounts and quantities"""
    count = 0
    for order in orders:
        count += is_malformed(order.total_amount)
        for item in order.line_items:
            count += is_malformed(item.quantity) + is_malformed(item.unit_total)
    for checkout in checkouts:
        count += is_malformed(checkout.total_amount)
    return count


def _now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# SERVICE
# =============================================================================

class ReportService:
    """
    Report pipeline orchestrator.

    Args:
        source: Record source used for all fetches
        store_domain: Store's own domain for self-referral exclusion
            (defaults to the configured shop domain)
        policy: Analytics policy (defaults to the configured one)
    """

    def __init__(
        self,
        source: RecordSource,
        store_domain: Optional[str] = None,
        policy: Optional[AnalyticsPolicy] = None,
    ):
        settings = get_settings()
        self.source = source
        self.policy = policy or settings.analytics
        self.store_domain = store_domain if store_domain is not None else settings.store.shop_domain
        self.attributor = TrafficAttributor(store_domain=self.store_domain)
        self.forecaster = GrowthForecaster(policy=self.policy)

    async def _gather(self, report: str, *fetches) -> List[Any]:
        """
        Run independent fetches concurrently; any failure fails the report.

        On failure the remaining fetches are cancelled and awaited before
        the original exception is re-raised.
        """
        tasks = [asyncio.ensure_future(fetch) for fetch in fetches]
        try:
            return list(await asyncio.gather(*tasks))
        except Exception as e:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.error("Report fetch failed", report=report, error=str(e), error_type=type(e).__name__)
            raise

    def _check_data_quality(
        self,
        report: str,
        orders: Sequence[OrderRecord] = (),
        checkouts: Sequence[CheckoutRecord] = (),
    ) -> None:
        malformed = count_malformed(orders, checkouts)
        if malformed:
            logger.warning(
                "Malformed numeric values treated as zero",
                report=report,
                malformed_values=malformed,
            )

    def _log_completed(self, report: str, started_at: datetime, **fields) -> None:
        logger.info(
            "Report completed",
            report=report,
            duration_seconds=(_now() - started_at).total_seconds(),
            **fields,
        )

    async def store_analytics(
        self,
        period_days: int = 30,
        compare_previous: bool = True,
        as_of: Optional[date] = None,
    ) -> StoreAnalyticsResult:
        """
        Store performance for the trailing period.

        Pipeline:
        1. Fetch current orders, previous orders and new customers
        2. Aggregate totals and attribute traffic sources
        3. Compare with the previous period
        4. Derive daily averages and session estimates
        """
        params = StoreAnalyticsParams(period_days=period_days, compare_previous=compare_previous)
        as_of = as_of or date.today()
        window = PeriodWindow.trailing(params.period_days, as_of)
        previous_window = window.previous()
        started_at = _now()

        logger.info("Report started", report="store_analytics", start=str(window.start), days=params.period_days)

        fetches = [
            self.source.fetch_orders(window),
            self.source.fetch_new_customers(window),
        ]
        if params.compare_previous:
            fetches.append(self.source.fetch_orders(previous_window))
        results = await self._gather("store_analytics", *fetches)
        orders, new_customers = results[0], results[1]
        previous_orders = results[2] if params.compare_previous else None

        self._check_data_quality("store_analytics", list(orders) + list(previous_orders or ()))

        totals = aggregate_orders(orders)
        days = params.period_days
        sessions = round_half_up(totals.order_count / self.policy.assumed_conversion_rate)
        sources = self.attributor.count_sources(orders)

        comparison = None
        if previous_orders is not None:
            comparison = compare_periods(orders, previous_orders, window, previous_window)

        result = StoreAnalyticsResult(
            period=ReportPeriod.from_window(window),
            orders=OrderSummary(
                total=totals.order_count,
                daily_average=round(totals.order_count / days, 1),
                items_sold=totals.units_total,
            ),
            revenue=RevenueSummary(
                total=round(totals.revenue_total, 2),
                daily_average=round(totals.revenue_total / days, 2),
                average_order_value=round(totals.average_order_value, 2),
            ),
            customers=CustomerSummary(
                unique_customers=totals.unique_customers,
                new_customer_orders=totals.new_customer_orders,
                returning_customer_orders=totals.returning_customer_orders,
                new_customers_acquired=len(new_customers),
            ),
            traffic=TrafficSummary(
                estimated_sessions=sessions,
                estimated_daily_sessions=round_half_up(sessions / days),
                assumed_conversion_rate_pct=self.policy.assumed_conversion_pct,
                sources=sources,
                source_shares_pct={
                    source: round(percentage(count, totals.order_count), 1)
                    for source, count in sources.items()
                },
            ),
            comparison=comparison,
        )

        self._log_completed("store_analytics", started_at, orders=totals.order_count)
        return result

    async def forecast(
        self,
        forecast_months: Optional[List[int]] = None,
        growth_scenario: str = "moderate",
        include_seasonality: bool = True,
        as_of: Optional[date] = None,
    ) -> ForecastResult:
        """
        Revenue, order and session projections from the lookback window.
        """
        params = ForecastParams(
            forecast_months=forecast_months,
            growth_scenario=growth_scenario,
            include_seasonality=include_seasonality,
        )
        as_of = as_of or date.today()
        history = PeriodWindow.trailing(self.policy.forecast_lookback_days, as_of)
        started_at = _now()

        logger.info("Report started", report="forecast", scenario=params.growth_scenario.value)

        (orders,) = await self._gather("forecast", self.source.fetch_orders(history))
        self._check_data_quality("forecast", orders)

        baseline, points = self.forecaster.forecast(
            orders,
            as_of=as_of,
            horizons=params.forecast_months,
            scenario=params.growth_scenario,
            include_seasonality=params.include_seasonality,
        )

        annual = None
        year_point = next((p for p in points if p.months_ahead == 12), None)
        if year_point is not None:
            annual = AnnualProjection(
                revenue=round(year_point.projected_revenue * 12, 2),
                orders=year_point.projected_orders * 12,
            )

        result = ForecastResult(
            history=ReportPeriod.from_window(history),
            baseline=BaselineSummary(
                months_observed=baseline.months_observed,
                avg_monthly_orders=round_half_up(baseline.avg_monthly_orders),
                avg_monthly_revenue=round(baseline.avg_monthly_revenue, 2),
                observed_growth_pct=baseline.observed_growth_pct,
                applied_growth_pct=baseline.applied_growth_pct,
            ),
            scenario=params.growth_scenario.value,
            seasonality_applied=params.include_seasonality,
            forecasts=points,
            annual_projection=annual,
        )

        self._log_completed("forecast", started_at, horizons=len(points))
        return result

    async def conversion_analysis(
        self,
        period_days: int = 30,
        as_of: Optional[date] = None,
    ) -> ConversionAnalysisResult:
        """Checkout funnel, abandonment and recommendation flags"""
        params = ConversionAnalysisParams(period_days=period_days)
        as_of = as_of or date.today()
        window = PeriodWindow.trailing(params.period_days, as_of)
        started_at = _now()

        logger.info("Report started", report="conversion_analysis", days=params.period_days)

        orders, checkouts = await self._gather(
            "conversion_analysis",
            self.source.fetch_orders(window),
            self.source.fetch_abandoned_checkouts(window),
        )
        self._check_data_quality("conversion_analysis", orders, checkouts)

        analysis = analyze_funnel(orders, checkouts, self.policy)
        result = ConversionAnalysisResult(
            period=ReportPeriod.from_window(window),
            **dict(analysis),
        )

        self._log_completed(
            "conversion_analysis",
            started_at,
            reached_checkout=analysis.funnel.reached_checkout,
        )
        return result

    async def product_performance(
        self,
        period_days: int = 30,
        top_n: int = 10,
        as_of: Optional[date] = None,
    ) -> ProductPerformanceResult:
        """Best sellers, fastest movers, restock and promotion candidates"""
        params = ProductPerformanceParams(period_days=period_days, top_n=top_n)
        as_of = as_of or date.today()
        window = PeriodWindow.trailing(params.period_days, as_of)
        started_at = _now()

        logger.info("Report started", report="product_performance", days=params.period_days)

        (orders,) = await self._gather("product_performance", self.source.fetch_orders(window))
        self._check_data_quality("product_performance", orders)

        stats = product_stats(orders)
        result = ProductPerformanceResult(
            period=ReportPeriod.from_window(window),
            summary=ProductSummary(
                total_products_sold=len(stats),
                total_units_sold=sum(s.units_sold for s in stats),
                total_revenue=round(sum(s.revenue for s in stats), 2),
            ),
            top_by_revenue=rank_by(stats, "revenue", params.top_n),
            top_by_units=rank_by(stats, "units_sold", params.top_n),
            fastest_moving=rank_by(stats, "velocity", params.top_n),
            restock_soon=restock_candidates(stats),
            consider_promotion=promotion_candidates(stats),
        )

        self._log_completed("product_performance", started_at, products=len(stats))
        return result

    async def segment_analysis(
        self,
        segment_type: str,
        as_of: Optional[date] = None,
    ) -> SegmentAnalysisResult:
        """Customer segments of one scheme with recommended actions"""
        params = SegmentAnalysisParams(segment_type=segment_type)
        as_of = as_of or date.today()
        started_at = _now()

        logger.info("Report started", report="segment_analysis", segment_type=params.segment_type.value)

        (customers,) = await self._gather("segment_analysis", self.source.fetch_customers())
        segments = segment_customers(customers, params.segment_type, as_of)

        result = SegmentAnalysisResult(
            segment_type=params.segment_type.value,
            total_customers=len(customers),
            segments=segments,
        )

        self._log_completed("segment_analysis", started_at, segments=len(segments))
        return result
