"""
Raw Node Parsers

Maps GraphQL-shaped order, checkout and customer nodes (as returned by the
store API) onto immutable records. Amounts and quantities are carried over
untouched; numeric coercion happens during aggregation.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

import structlog

from storecast.models.records import (
    CheckoutRecord,
    CustomerRecord,
    CustomerRef,
    LineItem,
    OrderRecord,
    Timestamp,
)

logger = structlog.get_logger(__name__)

GID_PREFIX = "gid://shopify/"


def parse_timestamp(value: Any) -> Optional[Timestamp]:
    """ISO-8601 string (``Z`` suffix allowed) to datetime; None when absent"""
    if value is None or value == "":
        return None
    if isinstance(value, (datetime, date)):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def strip_gid(value: Optional[str]) -> Optional[str]:
    """``gid://shopify/Product/123`` -> ``123``"""
    if value and value.startswith(GID_PREFIX):
        return value.rsplit("/", 1)[-1]
    return value


def money_amount(node: Optional[Dict[str, Any]], key: str = "totalPriceSet") -> Any:
    """``node[key].shopMoney.amount`` or None"""
    money = (node or {}).get(key) or {}
    return (money.get("shopMoney") or {}).get("amount")


def _nodes(connection: Any) -> list:
    if isinstance(connection, dict):
        return connection.get("nodes") or []
    return connection or []


def parse_customer_ref(node: Optional[Dict[str, Any]]) -> Optional[CustomerRef]:
    if not node or not node.get("id"):
        return None
    return CustomerRef(
        id=node["id"],
        lifetime_order_count=node.get("ordersCount", node.get("numberOfOrders", 0)),
    )


def parse_line_item(node: Dict[str, Any]) -> LineItem:
    product = ((node.get("variant") or {}).get("product")) or {}
    title = product.get("title") or node.get("title")
    return LineItem(
        quantity=node.get("quantity", 0),
        unit_total=money_amount(node, "originalTotalSet"),
        product_id=strip_gid(product.get("id")) or node.get("title"),
        title=title,
        inventory_on_hand=product.get("totalInventory"),
    )


def parse_order(node: Dict[str, Any]) -> OrderRecord:
    """Order node to OrderRecord"""
    return OrderRecord(
        id=node["id"],
        created_at=parse_timestamp(node["createdAt"]),
        total_amount=money_amount(node),
        line_items=tuple(parse_line_item(li) for li in _nodes(node.get("lineItems"))),
        customer_ref=parse_customer_ref(node.get("customer")),
        referrer_url=node.get("referrerUrl"),
        landing_page_url=node.get("landingPageUrl"),
    )


def parse_checkout(node: Dict[str, Any]) -> CheckoutRecord:
    """Abandoned checkout node to CheckoutRecord"""
    return CheckoutRecord(
        id=node["id"],
        created_at=parse_timestamp(node["createdAt"]),
        total_amount=money_amount(node),
        line_item_count=node.get("lineItemsQuantity", 0),
        customer_ref=parse_customer_ref(node.get("customer")),
    )


def parse_customer(node: Dict[str, Any]) -> CustomerRecord:
    """Customer node to CustomerRecord"""
    consent = node.get("emailMarketingConsent") or {}
    return CustomerRecord(
        id=node["id"],
        created_at=parse_timestamp(node["createdAt"]),
        lifetime_order_count=node.get("ordersCount", node.get("numberOfOrders", 0)),
        total_spent=(node.get("totalSpent") or {}).get("amount"),
        last_order_at=parse_timestamp((node.get("lastOrder") or {}).get("createdAt")),
        email=node.get("email"),
        marketing_state=consent.get("marketingState"),
    )
