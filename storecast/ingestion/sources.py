"""
Record Sources

The fetch boundary the report pipelines depend on. Real deployments plug
in an API-backed implementation; ``InMemoryRecordSource`` serves
pre-loaded records and is used for tests and offline analysis.
"""

from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

import structlog

from storecast.ingestion.parsers import parse_checkout, parse_customer, parse_order
from storecast.models.records import (
    CheckoutRecord,
    CustomerRecord,
    OrderRecord,
    PeriodWindow,
)

logger = structlog.get_logger(__name__)


class RecordSource(Protocol):
    """Read-only access to raw store records for a time window"""

    async def fetch_orders(
        self,
        window: PeriodWindow,
        query_filter: Optional[str] = None,
    ) -> List[OrderRecord]:
        ...

    async def fetch_abandoned_checkouts(self, window: PeriodWindow) -> List[CheckoutRecord]:
        ...

    async def fetch_new_customers(self, window: PeriodWindow) -> List[CustomerRecord]:
        ...

    async def fetch_customers(self) -> List[CustomerRecord]:
        ...


class InMemoryRecordSource:
    """
    RecordSource over in-memory collections.

    Records are filtered by ``created_at`` against the requested window.
    ``query_filter`` is accepted for interface compatibility and ignored.

    Example:
        source = InMemoryRecordSource(orders=orders)
        recent = await source.fetch_orders(PeriodWindow.trailing(30, today))
    """

    def __init__(
        self,
        orders: Iterable[OrderRecord] = (),
        abandoned_checkouts: Iterable[CheckoutRecord] = (),
        customers: Iterable[CustomerRecord] = (),
    ):
        self.orders: Sequence[OrderRecord] = tuple(orders)
        self.abandoned_checkouts: Sequence[CheckoutRecord] = tuple(abandoned_checkouts)
        self.customers: Sequence[CustomerRecord] = tuple(customers)

    @classmethod
    def from_nodes(
        cls,
        orders: Iterable[Dict[str, Any]] = (),
        abandoned_checkouts: Iterable[Dict[str, Any]] = (),
        customers: Iterable[Dict[str, Any]] = (),
    ) -> "InMemoryRecordSource":
        """Build a source from raw API nodes"""
        source = cls(
            orders=[parse_order(n) for n in orders],
            abandoned_checkouts=[parse_checkout(n) for n in abandoned_checkouts],
            customers=[parse_customer(n) for n in customers],
        )
        logger.debug(
            "In-memory source loaded",
            orders=len(source.orders),
            checkouts=len(source.abandoned_checkouts),
            customers=len(source.customers),
        )
        return source

    async def fetch_orders(
        self,
        window: PeriodWindow,
        query_filter: Optional[str] = None,
    ) -> List[OrderRecord]:
        return window.select(self.orders)

    async def fetch_abandoned_checkouts(self, window: PeriodWindow) -> List[CheckoutRecord]:
        return window.select(self.abandoned_checkouts)

    async def fetch_new_customers(self, window: PeriodWindow) -> List[CustomerRecord]:
        return window.select(self.customers)

    async def fetch_customers(self) -> List[CustomerRecord]:
        return list(self.customers)
