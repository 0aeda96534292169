"""
Test Suite Configuration
"""
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Optional, Sequence

import pytest

from storecast.config import AnalyticsPolicy
from storecast.data import OrderGenerator
from storecast.models import CheckoutRecord, CustomerRef, LineItem, OrderRecord


@pytest.fixture
def policy() -> AnalyticsPolicy:
    """Default analytics policy"""
    return AnalyticsPolicy()


@pytest.fixture
def as_of() -> date:
    return date(2024, 6, 15)


@pytest.fixture
def make_order() -> Callable[..., OrderRecord]:
    """Factory for order records with sensible defaults"""
    counter = {"n": 0}

    def factory(
        total: Any = "100.00",
        created_at: Optional[datetime] = None,
        customer: Optional[str] = None,
        lifetime_orders: int = 1,
        items: Sequence[LineItem] = (),
        referrer: Optional[str] = None,
        landing_page: Optional[str] = None,
    ) -> OrderRecord:
        counter["n"] += 1
        return OrderRecord(
            id=f"order-{counter['n']}",
            created_at=created_at or datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc),
            total_amount=total,
            line_items=tuple(items),
            customer_ref=CustomerRef(id=customer, lifetime_order_count=lifetime_orders) if customer else None,
            referrer_url=referrer,
            landing_page_url=landing_page,
        )

    return factory


@pytest.fixture
def make_checkout() -> Callable[..., CheckoutRecord]:
    """Factory for abandoned checkout records"""
    counter = {"n": 0}

    def factory(total: Any = "50.00", created_at: Optional[datetime] = None) -> CheckoutRecord:
        counter["n"] += 1
        return CheckoutRecord(
            id=f"checkout-{counter['n']}",
            created_at=created_at or datetime(2024, 6, 10, 15, 0, tzinfo=timezone.utc),
            total_amount=total,
            line_item_count=1,
        )

    return factory


@pytest.fixture
def sample_orders(make_order) -> list:
    """Mixed orders: returning, new, guest and a malformed amount"""
    return [
        make_order(
            total="100.50",
            customer="cust-1",
            lifetime_orders=3,
            items=[LineItem(quantity=2, unit_total="60.00"), LineItem(quantity="1", unit_total="40.50")],
        ),
        make_order(total="not-a-number", items=[LineItem(quantity=1, unit_total="15.00")]),
        make_order(total=None, customer="cust-2", lifetime_orders=1),
        make_order(total=Decimal("20"), customer="cust-1", lifetime_orders=3, items=[LineItem(quantity=4)]),
    ]


@pytest.fixture
def generator() -> OrderGenerator:
    """Seeded synthetic data generator"""
    return OrderGenerator(seed=7)
