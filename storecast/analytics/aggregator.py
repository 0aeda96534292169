"""
Record Aggregator

Reduces order records into scalar totals: revenue, order count, units,
unique customers and the new/returning split. Shared by the period
comparator and the funnel analyzer.
"""

import math
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Sequence

from pydantic import BaseModel
import structlog

from storecast.models.records import OrderRecord

logger = structlog.get_logger(__name__)


def to_float(value: Any) -> float:
    """
    Coerce a raw amount to float.

    Missing, unparseable and non-finite values become 0.0; never raises.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        if isinstance(value, str):
            number = float(Decimal(value.strip()))
        else:
            number = float(value)
    except (ValueError, TypeError, ArithmeticError, InvalidOperation):
        return 0.0
    return number if math.isfinite(number) else 0.0


INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


def to_int(value: Any) -> int:
    """
    Coerce a raw quantity/count to int, truncating fractions.

    Values outside the signed 64-bit range become 0 like any other
    unreadable number.
    """
    number = to_float(value)
    if not INT64_MIN <= number <= INT64_MAX:
        return 0
    return int(number)


def is_malformed(value: Any) -> bool:
    """True when a present value cannot be read as a finite number"""
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return to_float(value) == 0.0 and not _is_zero(value)


def _is_zero(value: Any) -> bool:
    try:
        return float(value) == 0.0
    except (ValueError, TypeError):
        return False


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero"""
    return int(math.floor(abs(value) + 0.5)) * (1 if value >= 0 else -1)


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0.0 when the denominator is zero"""
    if not denominator:
        return 0.0
    return numerator / denominator


def percentage(part: float, whole: float) -> float:
    """part as a percentage of whole, 0.0 for an empty whole"""
    if not whole:
        return 0.0
    return part * 100.0 / whole


class OrderTotals(BaseModel):
    """Scalar totals for a collection of orders"""
    order_count: int = 0
    revenue_total: float = 0.0
    units_total: int = 0
    unique_customers: int = 0
    returning_customer_orders: int = 0
    new_customer_orders: int = 0

    @property
    def average_order_value(self) -> float:
        return safe_ratio(self.revenue_total, self.order_count)

    @property
    def returning_customer_rate(self) -> float:
        """Returning-customer orders as a percentage of all orders"""
        return percentage(self.returning_customer_orders, self.order_count)


def sum_amounts(amounts: Iterable[Any]) -> float:
    """Sum of coerced amounts"""
    return sum((to_float(a) for a in amounts), 0.0)


def aggregate_orders(orders: Sequence[OrderRecord]) -> OrderTotals:
    """
    Reduce orders to scalar totals.

    An order counts as returning when its customer had more than one
    lifetime order at query time, otherwise as new. Guest orders (no
    customer reference) count towards order and revenue totals only.

    Args:
        orders: Orders already restricted to the window of interest

    Returns:
        OrderTotals (all zeros for empty input)
    """
    customer_ids = set()
    returning = 0
    new = 0
    units = 0

    for order in orders:
        units += sum(to_int(item.quantity) for item in order.line_items)

        customer = order.customer_ref
        if customer is None:
            continue
        if customer.id:
            customer_ids.add(customer.id)
        if to_int(customer.lifetime_order_count) > 1:
            returning += 1
        else:
            new += 1

    totals = OrderTotals(
        order_count=len(orders),
        revenue_total=sum_amounts(o.total_amount for o in orders),
        units_total=units,
        unique_customers=len(customer_ids),
        returning_customer_orders=returning,
        new_customer_orders=new,
    )

    logger.debug(
        "Orders aggregated",
        orders=totals.order_count,
        customers=totals.unique_customers,
    )
    return totals
