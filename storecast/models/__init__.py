"""
Record Models Module
"""
from .records import (
    CheckoutRecord,
    CustomerRecord,
    CustomerRef,
    GrowthScenario,
    LineItem,
    OrderRecord,
    PeriodWindow,
    TrafficSource,
    as_date,
)

__all__ = [
    "CheckoutRecord",
    "CustomerRecord",
    "CustomerRef",
    "GrowthScenario",
    "LineItem",
    "OrderRecord",
    "PeriodWindow",
    "TrafficSource",
    "as_date",
]
