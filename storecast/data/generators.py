"""
Synthetic Data Generator

Generates reproducible store records for testing and development.
Includes:
- Customers with order history and marketing consent
- A product catalog with inventory levels
- Orders with line items, referrers and landing pages
- Abandoned checkouts
"""

import random
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Tuple

from faker import Faker
import numpy as np

from storecast.models.records import (
    CheckoutRecord,
    CustomerRecord,
    CustomerRef,
    LineItem,
    OrderRecord,
)


# =============================================================================
# CONFIGURATION
# =============================================================================

CATEGORIES = ["Shirts", "Shoes", "Mugs", "Candles", "Headphones", "Backpacks"]

REFERRERS = [
    ("", 0.30),
    ("https://www.google.com/search?q=shop", 0.25),
    ("https://m.facebook.com/ads", 0.12),
    ("https://l.instagram.com/", 0.08),
    ("https://t.co/abc123", 0.04),
    ("https://www.tiktok.com/@store", 0.05),
    ("https://manage.kmail-lists.klaviyo.com/c/xyz", 0.06),
    ("https://www.pinterest.com/pin/1", 0.04),
    ("https://randomblog.example.org/review", 0.06),
]

MARKETING_STATES = [("SUBSCRIBED", 0.45), ("NOT_SUBSCRIBED", 0.45), ("UNSUBSCRIBED", 0.10)]


# =============================================================================
# GENERATORS
# =============================================================================

class OrderGenerator:
    """
    Generate store records from a fixed seed.

    The same seed and arguments always produce the same records.

    Example:
        gen = OrderGenerator(seed=7)
        orders = gen.orders(200, start=date(2024, 1, 1), end=date(2024, 3, 31))
    """

    def __init__(self, seed: int = 42, n_products: int = 25, n_customers: int = 80):
        self.rng = np.random.default_rng(seed)
        self.random = random.Random(seed)
        self.fake = Faker()
        self.fake.seed_instance(seed)

        self.products = [
            {
                "product_id": str(1000 + i),
                "title": f"{self.fake.word().title()} {self.random.choice(CATEGORIES)}",
                "price": round(float(self.rng.uniform(8, 180)), 2),
                "inventory": int(self.rng.choice([0, 3, 8, 25, 60, 200])),
            }
            for i in range(n_products)
        ]
        self.customers = [
            CustomerRef(id=f"cust-{i}", lifetime_order_count=int(self.rng.integers(1, 12)))
            for i in range(n_customers)
        ]

    def _timestamp(self, start: date, end: date) -> datetime:
        span = max((end - start).days, 1)
        day = start + timedelta(days=int(self.rng.integers(0, span)))
        seconds = int(self.rng.integers(0, 86400))
        return datetime.combine(day, time(), tzinfo=timezone.utc) + timedelta(seconds=seconds)

    def _referrer(self) -> str:
        urls = [r[0] for r in REFERRERS]
        return self.random.choices(urls, weights=[r[1] for r in REFERRERS])[0]

    def _line_items(self) -> Tuple[LineItem, ...]:
        n_items = int(self.rng.choice([1, 2, 3, 4], p=[0.5, 0.3, 0.15, 0.05]))
        items = []
        for product in self.random.sample(self.products, n_items):
            quantity = int(self.rng.choice([1, 2, 3], p=[0.7, 0.2, 0.1]))
            items.append(LineItem(
                quantity=quantity,
                unit_total=f"{product['price'] * quantity:.2f}",
                product_id=product["product_id"],
                title=product["title"],
                inventory_on_hand=product["inventory"],
            ))
        return tuple(items)

    def orders(self, n: int, start: date, end: date, store_domain: str = "shop.example.com") -> List[OrderRecord]:
        """Generate ``n`` orders created in ``[start, end)``, oldest first"""
        records = []
        for i in range(n):
            items = self._line_items()
            subtotal = sum(float(item.unit_total) for item in items)
            customer = self.random.choice(self.customers) if self.random.random() > 0.1 else None
            records.append(OrderRecord(
                id=f"order-{i}",
                created_at=self._timestamp(start, end),
                total_amount=f"{subtotal * 1.08:.2f}",
                line_items=items,
                customer_ref=customer,
                referrer_url=self._referrer() or None,
                landing_page_url=f"https://{store_domain}/products/{items[0].product_id}",
            ))
        records.sort(key=lambda o: (o.created_at, o.id))
        return records

    def abandoned_checkouts(self, n: int, start: date, end: date) -> List[CheckoutRecord]:
        """Generate ``n`` abandoned checkouts"""
        records = []
        for i in range(n):
            items = self._line_items()
            records.append(CheckoutRecord(
                id=f"checkout-{i}",
                created_at=self._timestamp(start, end),
                total_amount=f"{sum(float(it.unit_total) for it in items):.2f}",
                line_item_count=sum(it.quantity for it in items),
                customer_ref=self.random.choice(self.customers) if self.random.random() > 0.5 else None,
            ))
        return records

    def customers_records(self, as_of: date, n: Optional[int] = None) -> List[CustomerRecord]:
        """Customer profiles matching the generator's customer references"""
        refs = self.customers[:n] if n is not None else self.customers
        records = []
        for ref in refs:
            created = as_of - timedelta(days=int(self.rng.integers(1, 720)))
            has_ordered = ref.lifetime_order_count > 0
            last_order = as_of - timedelta(days=int(self.rng.integers(0, 365))) if has_ordered else None
            states = [m[0] for m in MARKETING_STATES]
            records.append(CustomerRecord(
                id=ref.id,
                created_at=created,
                lifetime_order_count=ref.lifetime_order_count,
                total_spent=f"{float(self.rng.uniform(20, 2500)):.2f}",
                last_order_at=last_order,
                email=self.fake.email(),
                marketing_state=self.random.choices(states, weights=[m[1] for m in MARKETING_STATES])[0],
            ))
        return records
