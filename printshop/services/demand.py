from __future__ import annotations

from printshop.models import Order, OrderStatus
from printshop.utils import to_qty


def pending_orders(orders: list[Order]) -> list[Order]:
    return [o for o in orders if o.status == OrderStatus.PENDING]


def aggregate_demand(orders: list[Order]) -> dict[str, int]:
    """
    Total quantity still owed to customers, per product id.

    Only PENDING orders count. Custom lines (bespoke print jobs with no
    catalog product) never appear in the result.
    """
    demand: dict[str, int] = {}
    for order in pending_orders(orders):
        for item in order.items:
            if item.is_custom or not item.product_id:
                continue
            qty = to_qty(item.quantity)
            if qty <= 0:
                continue
            demand[item.product_id] = demand.get(item.product_id, 0) + qty
    return demand


def demand_names(orders: list[Order]) -> dict[str, str]:
    """Product name as snapshotted on the order lines (first seen wins)."""
    names: dict[str, str] = {}
    for order in pending_orders(orders):
        for item in order.stock_items:
            names.setdefault(item.product_id, item.product_name)
    return names
