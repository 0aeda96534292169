"""
Customer Segmentation Module

Classifies customers for marketing campaigns. Supported schemes:
- RFM (recency, frequency, monetary) scoring
- Lifecycle stage
- Value tiers
- Email engagement
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Sequence, Union

from pydantic import BaseModel
import structlog

from storecast.analytics.aggregator import percentage, safe_ratio, to_float, to_int
from storecast.models.records import CustomerRecord, as_date

logger = structlog.get_logger(__name__)


class SegmentType(str, Enum):
    """Segmentation schemes"""
    RFM = "rfm"
    LIFECYCLE = "lifecycle"
    VALUE_TIERS = "value_tiers"
    ENGAGEMENT = "engagement"


SEGMENT_ACTIONS: Dict[str, str] = {
    "champions": "Send exclusive offers, ask for reviews, consider loyalty program",
    "loyal": "Upsell higher-value products, reward with early access",
    "potential": "Nurture with targeted campaigns, build relationship",
    "at_risk": "Send win-back campaigns, special discounts",
    "hibernating": "Strong reactivation offers, remind of brand value",
    "prospect": "Welcome series, first-purchase incentive",
    "new": "Onboarding sequence, product education",
    "active": "Cross-sell, build loyalty",
    "lapsed": "Win-back campaign with compelling offer",
    "high_value": "VIP treatment, exclusive access, personal outreach",
    "medium_value": "Encourage next purchase, loyalty rewards",
    "low_value": "Entry-level products, value propositions",
    "engaged_active": "Your best audience - promote new products",
    "engaged_dormant": "Re-engagement campaign needed",
    "subscribed_inactive": "Update preferences, fresh content",
    "not_subscribed": "Consider re-permission campaign",
}

SUBSCRIBED = "SUBSCRIBED"


@dataclass
class RFMScores:
    """RFM scoring results"""
    recency_score: int  # 1-5, 5 = most recent
    frequency_score: int  # 1-5, 5 = most frequent
    monetary_score: int  # 1-5, 5 = highest spend
    combined_score: int
    segment: str


@dataclass(frozen=True)
class CustomerProfile:
    """Numeric view of a customer at ``as_of``"""
    customer_id: str
    total_spent: float
    order_count: int
    days_since_last_order: Optional[int]
    days_since_created: int
    subscribed: bool


class SegmentSummary(BaseModel):
    """Aggregate for one segment"""
    segment: str
    count: int
    share_pct: float
    avg_spent: float
    recommended_action: str


def profile_customer(customer: CustomerRecord, as_of: date) -> CustomerProfile:
    last_order = customer.last_order_at
    return CustomerProfile(
        customer_id=customer.id,
        total_spent=to_float(customer.total_spent),
        order_count=to_int(customer.lifetime_order_count),
        days_since_last_order=(as_of - as_date(last_order)).days if last_order else None,
        days_since_created=(as_of - as_date(customer.created_at)).days,
        subscribed=(customer.marketing_state or "").upper() == SUBSCRIBED,
    )


def score_rfm(profile: CustomerProfile) -> RFMScores:
    """Fixed-threshold RFM scores and segment"""
    days = profile.days_since_last_order
    if days is None:
        recency = 1
    elif days < 30:
        recency = 5
    elif days < 60:
        recency = 4
    elif days < 90:
        recency = 3
    elif days < 180:
        recency = 2
    else:
        recency = 1

    orders = profile.order_count
    frequency = 5 if orders >= 10 else 4 if orders >= 5 else 3 if orders >= 3 else 2 if orders >= 2 else 1

    spent = profile.total_spent
    monetary = 5 if spent >= 1000 else 4 if spent >= 500 else 3 if spent >= 200 else 2 if spent >= 50 else 1

    combined = recency + frequency + monetary
    if combined >= 12:
        segment = "champions"
    elif combined >= 9:
        segment = "loyal"
    elif combined >= 6:
        segment = "potential"
    elif combined >= 3:
        segment = "at_risk"
    else:
        segment = "hibernating"

    return RFMScores(
        recency_score=recency,
        frequency_score=frequency,
        monetary_score=monetary,
        combined_score=combined,
        segment=segment,
    )


def lifecycle_segment(profile: CustomerProfile) -> str:
    days = profile.days_since_last_order
    if profile.order_count == 0:
        return "prospect"
    if profile.order_count == 1 and profile.days_since_created < 30:
        return "new"
    if days is not None and days < 60:
        return "active"
    if days is not None and days < 180:
        return "at_risk"
    return "lapsed"


def value_tier_segment(profile: CustomerProfile) -> str:
    if profile.total_spent >= 500 and profile.order_count >= 3:
        return "high_value"
    if profile.total_spent >= 100 or profile.order_count >= 2:
        return "medium_value"
    return "low_value"


def engagement_segment(profile: CustomerProfile) -> str:
    if not profile.subscribed:
        return "not_subscribed"
    days = profile.days_since_last_order
    if days is not None and days < 30:
        return "engaged_active"
    if days is not None and days < 90:
        return "engaged_dormant"
    return "subscribed_inactive"


_CLASSIFIERS = {
    SegmentType.RFM: lambda p: score_rfm(p).segment,
    SegmentType.LIFECYCLE: lifecycle_segment,
    SegmentType.VALUE_TIERS: value_tier_segment,
    SegmentType.ENGAGEMENT: engagement_segment,
}


def segment_customers(
    customers: Sequence[CustomerRecord],
    segment_type: Union[str, SegmentType],
    as_of: date,
) -> List[SegmentSummary]:
    """
    Group customers into segments of one scheme.

    Args:
        customers: Customer records
        segment_type: Scheme name
        as_of: Reference date for recency calculations

    Returns:
        Segment summaries ordered by count descending, then name
    """
    try:
        scheme = SegmentType(segment_type)
    except ValueError:
        raise ValueError(
            f"Unknown segment type '{segment_type}', expected one of "
            f"{[s.value for s in SegmentType]}"
        ) from None

    classify = _CLASSIFIERS[scheme]
    groups: Dict[str, List[CustomerProfile]] = {}
    for customer in customers:
        profile = profile_customer(customer, as_of)
        groups.setdefault(classify(profile), []).append(profile)

    summaries = [
        SegmentSummary(
            segment=name,
            count=len(members),
            share_pct=round(percentage(len(members), len(customers)), 1),
            avg_spent=round(safe_ratio(sum(m.total_spent for m in members), len(members)), 2),
            recommended_action=SEGMENT_ACTIONS.get(name, "Analyze further"),
        )
        for name, members in groups.items()
    ]
    summaries.sort(key=lambda s: (-s.count, s.segment))

    logger.debug("Customers segmented", scheme=scheme.value, segments=len(summaries))
    return summaries
