"""
Input Records

Immutable, request-scoped records consumed by the analytics components.
Amount and quantity fields keep whatever the data store returned (strings,
decimals, floats or None); coercion to numbers happens at aggregation time.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Iterable, List, Optional, Tuple, TypeVar, Union

Timestamp = Union[datetime, date]


class TrafficSource(str, Enum):
    """Closed set of traffic sources an order can be attributed to"""
    DIRECT = "direct"
    GOOGLE = "google"
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    TWITTER = "twitter"
    TIKTOK = "tiktok"
    EMAIL = "email"
    PINTEREST = "pinterest"
    REFERRAL = "referral"


class GrowthScenario(str, Enum):
    """Fallback growth scenarios for forecasting"""
    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


@dataclass(frozen=True)
class CustomerRef:
    """Customer reference attached to an order or checkout"""
    id: str
    lifetime_order_count: Any = 0


@dataclass(frozen=True)
class LineItem:
    """Order line item; ``unit_total`` is the line's total amount"""
    quantity: Any = 0
    unit_total: Any = 0
    product_id: Optional[str] = None
    title: Optional[str] = None
    inventory_on_hand: Any = None


@dataclass(frozen=True)
class OrderRecord:
    """Completed order"""
    id: str
    created_at: Timestamp
    total_amount: Any = None
    line_items: Tuple[LineItem, ...] = field(default_factory=tuple)
    customer_ref: Optional[CustomerRef] = None
    referrer_url: Optional[str] = None
    landing_page_url: Optional[str] = None


@dataclass(frozen=True)
class CheckoutRecord:
    """Abandoned checkout"""
    id: str
    created_at: Timestamp
    total_amount: Any = None
    line_item_count: Any = 0
    customer_ref: Optional[CustomerRef] = None


@dataclass(frozen=True)
class CustomerRecord:
    """Customer profile as seen at query time"""
    id: str
    created_at: Timestamp
    lifetime_order_count: Any = 0
    total_spent: Any = None
    last_order_at: Optional[Timestamp] = None
    email: Optional[str] = None
    marketing_state: Optional[str] = None


def as_date(value: Timestamp) -> date:
    """Calendar date of a timestamp (datetimes keep their own timezone)"""
    if isinstance(value, datetime):
        return value.date()
    return value


R = TypeVar("R", OrderRecord, CheckoutRecord, CustomerRecord)


@dataclass(frozen=True)
class PeriodWindow:
    """
    Contiguous date range ``[start, end)``.

    The invariant ``end - start == length_days`` holds by construction;
    zero or negative lengths are rejected.
    """
    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(
                f"Window end {self.end} must be after start {self.start}"
            )

    @classmethod
    def trailing(cls, length_days: int, as_of: date) -> "PeriodWindow":
        """Window of ``length_days`` calendar days ending with ``as_of`` inclusive"""
        if length_days <= 0:
            raise ValueError(f"Period length must be positive, got {length_days}")
        end = as_of + timedelta(days=1)
        return cls(start=end - timedelta(days=length_days), end=end)

    @property
    def length_days(self) -> int:
        return (self.end - self.start).days

    @property
    def last_day(self) -> date:
        return self.end - timedelta(days=1)

    def previous(self) -> "PeriodWindow":
        """Equal-length window immediately preceding this one"""
        return PeriodWindow(
            start=self.start - timedelta(days=self.length_days),
            end=self.start,
        )

    def contains(self, value: Timestamp) -> bool:
        return self.start <= as_date(value) < self.end

    def select(self, records: Iterable[R]) -> List[R]:
        """Records whose ``created_at`` falls inside the window"""
        return [r for r in records if self.contains(r.created_at)]
