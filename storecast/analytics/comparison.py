"""
Period Comparison

Compares aggregate totals of a window against the equal-length window
immediately preceding it.
"""

from typing import Optional, Sequence

from pydantic import BaseModel
import structlog

from storecast.analytics.aggregator import OrderTotals, aggregate_orders
from storecast.models.records import OrderRecord, PeriodWindow

logger = structlog.get_logger(__name__)

NOT_AVAILABLE = "N/A"


def change_pct(current: float, previous: float) -> str:
    """
    Percentage change formatted with one decimal.

    Returns the literal ``"N/A"`` when there is no previous value to
    compare against.
    """
    if previous <= 0:
        return NOT_AVAILABLE
    return f"{(current - previous) / previous * 100:.1f}"


class PeriodComparison(BaseModel):
    """Current vs previous window deltas"""
    revenue_change_pct: str
    orders_change_pct: str
    previous_revenue: float
    previous_orders: int
    previous_start: Optional[str] = None
    previous_end: Optional[str] = None


def check_adjacent(window: PeriodWindow, previous_window: PeriodWindow) -> None:
    """Raise ValueError unless ``previous_window`` immediately precedes ``window`` with equal length"""
    if previous_window.length_days != window.length_days:
        raise ValueError(
            f"Comparison windows differ in length: {previous_window.length_days} vs {window.length_days} days"
        )
    if previous_window.end != window.start:
        raise ValueError(
            f"Previous window must end at {window.start}, got {previous_window.end}"
        )


def compare_totals(
    current: OrderTotals,
    previous: OrderTotals,
    previous_window: Optional[PeriodWindow] = None,
) -> PeriodComparison:
    """Deltas between two already aggregated periods"""
    return PeriodComparison(
        revenue_change_pct=change_pct(current.revenue_total, previous.revenue_total),
        orders_change_pct=change_pct(current.order_count, previous.order_count),
        previous_revenue=round(previous.revenue_total, 2),
        previous_orders=previous.order_count,
        previous_start=previous_window.start.isoformat() if previous_window else None,
        previous_end=previous_window.last_day.isoformat() if previous_window else None,
    )


def compare_periods(
    current_orders: Sequence[OrderRecord],
    previous_orders: Sequence[OrderRecord],
    window: PeriodWindow,
    previous_window: Optional[PeriodWindow] = None,
) -> PeriodComparison:
    """
    Aggregate both windows and compute percentage deltas.

    Args:
        current_orders: Orders in ``window``
        previous_orders: Orders in ``previous_window``
        window: Current window
        previous_window: Preceding window (defaults to ``window.previous()``)

    Returns:
        PeriodComparison with ``"N/A"`` for deltas against an empty period
    """
    previous_window = previous_window or window.previous()
    check_adjacent(window, previous_window)

    comparison = compare_totals(
        aggregate_orders(current_orders),
        aggregate_orders(previous_orders),
        previous_window,
    )

    logger.debug(
        "Periods compared",
        revenue_change=comparison.revenue_change_pct,
        orders_change=comparison.orders_change_pct,
    )
    return comparison
