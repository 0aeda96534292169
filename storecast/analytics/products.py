"""
Product Velocity Ranking

Aggregates line items per product and derives an inventory turnover
("velocity") ratio used to flag restock and promotion candidates.
"""

from typing import List, Sequence

import polars as pl
from pydantic import BaseModel
import structlog

from storecast.analytics.aggregator import safe_ratio, to_float, to_int
from storecast.models.records import OrderRecord

logger = structlog.get_logger(__name__)

# Candidate thresholds are fixed; post-filter ranked stats for other cutoffs
RESTOCK_MAX_INVENTORY = 10
RESTOCK_MIN_VELOCITY = 0.5
PROMOTION_MIN_INVENTORY = 50
PROMOTION_MAX_VELOCITY = 0.1
MAX_CANDIDATES = 5

UNKNOWN_PRODUCT = "unknown"

_SCHEMA = {
    "product_id": pl.Utf8,
    "title": pl.Utf8,
    "quantity": pl.Int64,
    "line_total": pl.Float64,
    "inventory": pl.Int64,
}


class ProductStat(BaseModel):
    """Sales statistics for one product"""
    product_id: str
    title: str
    units_sold: int
    revenue: float
    order_count: int
    inventory_on_hand: int
    velocity: float
    avg_order_quantity: float
    revenue_per_unit: float


def _line_rows(orders: Sequence[OrderRecord]) -> List[dict]:
    rows = []
    for order in orders:
        for item in order.line_items:
            product_id = item.product_id or item.title or UNKNOWN_PRODUCT
            rows.append({
                "product_id": product_id,
                "title": item.title or product_id,
                "quantity": to_int(item.quantity),
                "line_total": to_float(item.unit_total),
                "inventory": max(to_int(item.inventory_on_hand), 0),
            })
    return rows


def product_stats(orders: Sequence[OrderRecord]) -> List[ProductStat]:
    """
    Per-product statistics in first-seen order.

    Velocity is ``units_sold / inventory_on_hand``; products with zero or
    untracked inventory use ``units_sold`` as their velocity.
    """
    rows = _line_rows(orders)
    if not rows:
        return []

    df = pl.DataFrame(rows, schema=_SCHEMA)

    stats = (
        df.group_by("product_id", maintain_order=True)
        .agg([
            pl.col("title").first(),
            pl.col("quantity").sum().alias("units_sold"),
            pl.col("line_total").sum().alias("revenue"),
            pl.len().alias("order_count"),
            pl.col("inventory").first().alias("inventory_on_hand"),
        ])
        .with_columns(
            pl.when(pl.col("inventory_on_hand") > 0)
            .then(pl.col("units_sold") / pl.col("inventory_on_hand"))
            .otherwise(pl.col("units_sold").cast(pl.Float64))
            .alias("velocity")
        )
    )

    results = []
    for row in stats.iter_rows(named=True):
        units = int(row["units_sold"])
        revenue = float(row["revenue"])
        order_count = int(row["order_count"])
        results.append(ProductStat(
            product_id=row["product_id"],
            title=row["title"],
            units_sold=units,
            revenue=round(revenue, 2),
            order_count=order_count,
            inventory_on_hand=int(row["inventory_on_hand"]),
            velocity=float(row["velocity"]),
            avg_order_quantity=round(safe_ratio(units, order_count), 2),
            revenue_per_unit=round(safe_ratio(revenue, units), 2),
        ))

    logger.debug("Product stats aggregated", products=len(results), line_items=len(rows))
    return results


def rank_by(stats: Sequence[ProductStat], field: str, limit: int) -> List[ProductStat]:
    """Top ``limit`` products by ``field`` descending, ties by product id"""
    ranked = sorted(stats, key=lambda s: (-getattr(s, field), s.product_id))
    return ranked[:limit]


def restock_candidates(stats: Sequence[ProductStat]) -> List[ProductStat]:
    """Fast-moving products with little stock left"""
    return [
        s for s in stats
        if 0 < s.inventory_on_hand < RESTOCK_MAX_INVENTORY and s.velocity > RESTOCK_MIN_VELOCITY
    ][:MAX_CANDIDATES]


def promotion_candidates(stats: Sequence[ProductStat]) -> List[ProductStat]:
    """Well-stocked products that are barely selling"""
    return [
        s for s in stats
        if s.inventory_on_hand > PROMOTION_MIN_INVENTORY and s.velocity < PROMOTION_MAX_VELOCITY
    ][:MAX_CANDIDATES]
