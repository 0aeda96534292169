"""
Conversion Funnel Analysis

Combines completed orders and abandoned checkouts into funnel stage counts.
Stages above checkout (visitors, add-to-cart) are industry-benchmark
estimates derived from the checkout count alone.
"""

from enum import Enum
from typing import List, Optional, Sequence

from pydantic import BaseModel
import structlog

from storecast.analytics.aggregator import (
    aggregate_orders,
    percentage,
    round_half_up,
    safe_ratio,
    sum_amounts,
)
from storecast.config import AnalyticsPolicy, get_settings
from storecast.models.records import CheckoutRecord, OrderRecord

logger = structlog.get_logger(__name__)


class FunnelRecommendation(str, Enum):
    """Deterministic recommendation flags"""
    HIGH_ABANDONMENT = "high_abandonment"
    HIGH_VALUE_ABANDONMENT = "high_value_abandonment"
    LOW_RETURNING_RATE = "low_returning_rate"


RECOMMENDATION_MESSAGES = {
    FunnelRecommendation.HIGH_ABANDONMENT: "Consider implementing cart recovery emails",
    FunnelRecommendation.HIGH_VALUE_ABANDONMENT: "Review checkout friction for larger orders",
    FunnelRecommendation.LOW_RETURNING_RATE: "Focus on retention and loyalty programs",
}


class FunnelStages(BaseModel):
    """Funnel stage counts; ``estimated_*`` stages are benchmark estimates"""
    estimated_visitors: int
    estimated_add_to_cart: int
    reached_checkout: int
    completed_purchase: int
    estimates_basis: str = "industry_benchmark"


class ConversionRates(BaseModel):
    """Stage conversion rates in percent"""
    visitor_to_cart_benchmark: float
    cart_to_checkout_benchmark: float
    checkout_completion: float
    overall_estimated: float


class AbandonmentStats(BaseModel):
    abandoned_checkouts: int
    abandonment_rate: float
    abandoned_revenue: float
    avg_abandoned_value: float
    recovery_opportunity: float


class CompletedOrderStats(BaseModel):
    completed_orders: int
    completed_revenue: float
    avg_order_value: float
    new_customer_orders: int
    returning_customer_orders: int
    returning_customer_rate: float


class FunnelAnalysis(BaseModel):
    """Funnel analyzer output"""
    funnel: FunnelStages
    conversion_rates: ConversionRates
    abandonment: AbandonmentStats
    order_analysis: CompletedOrderStats
    recommendations: List[FunnelRecommendation]


def recommend(
    abandonment_rate: float,
    avg_abandoned_value: float,
    avg_completed_value: float,
    returning_customer_rate: float,
    policy: AnalyticsPolicy,
) -> List[FunnelRecommendation]:
    """Threshold-based recommendation flags, in fixed order"""
    flags = []
    if abandonment_rate > policy.abandonment_alert_pct:
        flags.append(FunnelRecommendation.HIGH_ABANDONMENT)
    if avg_abandoned_value > avg_completed_value:
        flags.append(FunnelRecommendation.HIGH_VALUE_ABANDONMENT)
    if returning_customer_rate < policy.returning_rate_alert_pct:
        flags.append(FunnelRecommendation.LOW_RETURNING_RATE)
    return flags


def analyze_funnel(
    orders: Sequence[OrderRecord],
    abandoned_checkouts: Sequence[CheckoutRecord],
    policy: Optional[AnalyticsPolicy] = None,
) -> FunnelAnalysis:
    """
    Build funnel stages, rates and recommendations for one window.

    Args:
        orders: Completed orders in the window
        abandoned_checkouts: Abandoned checkouts in the same window
        policy: Benchmark rates and alert cutoffs

    Returns:
        FunnelAnalysis (rates are 0 for an empty window)
    """
    policy = policy or get_settings().analytics

    totals = aggregate_orders(orders)
    completed = totals.order_count
    abandoned = len(abandoned_checkouts)
    reached_checkout = completed + abandoned

    abandoned_revenue = sum_amounts(c.total_amount for c in abandoned_checkouts)
    avg_completed_value = totals.average_order_value
    avg_abandoned_value = safe_ratio(abandoned_revenue, abandoned)

    completion_rate = percentage(completed, reached_checkout)
    abandonment_rate = percentage(abandoned, reached_checkout)

    estimated_visitors = round_half_up(reached_checkout / policy.checkout_reach_rate)
    estimated_add_to_cart = round_half_up(reached_checkout / policy.cart_to_checkout_rate)

    returning_rate = totals.returning_customer_rate

    analysis = FunnelAnalysis(
        funnel=FunnelStages(
            estimated_visitors=estimated_visitors,
            estimated_add_to_cart=estimated_add_to_cart,
            reached_checkout=reached_checkout,
            completed_purchase=completed,
        ),
        conversion_rates=ConversionRates(
            visitor_to_cart_benchmark=round(policy.visitor_to_cart_rate * 100, 1),
            cart_to_checkout_benchmark=round(policy.cart_to_checkout_rate * 100, 1),
            checkout_completion=round(completion_rate, 1),
            overall_estimated=round(percentage(completed, estimated_visitors), 2),
        ),
        abandonment=AbandonmentStats(
            abandoned_checkouts=abandoned,
            abandonment_rate=round(abandonment_rate, 1),
            abandoned_revenue=round(abandoned_revenue, 2),
            avg_abandoned_value=round(avg_abandoned_value, 2),
            recovery_opportunity=round(abandoned_revenue, 2),
        ),
        order_analysis=CompletedOrderStats(
            completed_orders=completed,
            completed_revenue=round(totals.revenue_total, 2),
            avg_order_value=round(avg_completed_value, 2),
            new_customer_orders=totals.new_customer_orders,
            returning_customer_orders=totals.returning_customer_orders,
            returning_customer_rate=round(returning_rate, 1),
        ),
        recommendations=recommend(
            abandonment_rate,
            avg_abandoned_value,
            avg_completed_value,
            returning_rate,
            policy,
        ),
    )

    logger.debug(
        "Funnel analyzed",
        reached_checkout=reached_checkout,
        completion_rate=analysis.conversion_rates.checkout_completion,
        flags=[f.value for f in analysis.recommendations],
    )
    return analysis
