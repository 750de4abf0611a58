from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Union

from printshop.models import Order, OrderItem, OrderStatus, PaymentDetails, PaymentMethod, PaymentStatus, parse_enum
from printshop.services.depots import primary_depot_policy
from printshop.services.payments import build_payment_details, check_payment_details, settle_status
from printshop.services.stock import DepotPolicy, StockState, apply_completion, apply_reversion
from printshop.utils import iso_now, new_id, parse_iso, to_money

log = logging.getLogger("printshop.orders")


class InvalidTransitionError(ValueError):
    pass


ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.DELIVERED, OrderStatus.COMPLETED},
    OrderStatus.DELIVERED: {OrderStatus.COMPLETED},
    OrderStatus.COMPLETED: {OrderStatus.PENDING, OrderStatus.DELIVERED},
}


def check_transition(old: OrderStatus, new: OrderStatus) -> None:
    if old == new:
        return
    if new not in ALLOWED_TRANSITIONS[old]:
        raise InvalidTransitionError(f"Cannot move an order from {old.value} to {new.value}.")


def list_orders(repos) -> list[Order]:
    return repos.orders.list()


def get_order(repos, order_id: str) -> Order:
    order = repos.orders.get(order_id)
    if order is None:
        raise ValueError("Order not found.")
    return order


def build_order_items(items: Iterable[Union[OrderItem, dict[str, Any]]]) -> list[OrderItem]:
    """
    Normalise cart lines. Lines without a positive quantity and a positive
    selling price are dropped, as the counter does before saving.
    """
    out: list[OrderItem] = []
    for raw in items:
        item = raw if isinstance(raw, OrderItem) else OrderItem.from_dict(raw)
        if item.is_custom and not item.product_id:
            item.product_id = f"custom-{new_id()}"
        if item.quantity > 0 and item.selling_price_snapshot > 0:
            out.append(item)
    return out


def order_total(items: list[OrderItem], discount: float) -> float:
    subtotal = sum(i.line_total for i in items)
    return round(max(0.0, subtotal - to_money(discount)), 2)


def _index(orders: list[Order], order_id: str) -> int:
    idx = next((i for i, o in enumerate(orders) if o.id == str(order_id)), None)
    if idx is None:
        raise ValueError("Order not found.")
    return idx


def create_order(
    repos,
    *,
    customer_name: str,
    items: Iterable[Union[OrderItem, dict[str, Any]]],
    customer_phone: str = "",
    discount: float = 0,
    note: Optional[str] = None,
    status=OrderStatus.PENDING,
    payment_details: Optional[PaymentDetails] = None,
    order_id: Optional[str] = None,
    date: Optional[str] = None,
    policy: DepotPolicy = primary_depot_policy,
) -> Order:
    valid = build_order_items(items)
    if not valid:
        raise ValueError("Please add at least one valid item with a price greater than 0.")

    status = parse_enum(OrderStatus, status, OrderStatus.PENDING)
    total = order_total(valid, discount)
    if payment_details is not None and status == OrderStatus.COMPLETED:
        payment_details = check_payment_details(payment_details, total)
    order = Order(
        id=str(order_id) if order_id else new_id(),
        customer_name=str(customer_name or "").strip(),
        customer_phone=str(customer_phone or "").strip(),
        date=date or iso_now(),
        items=valid,
        discount=to_money(discount),
        total_amount=total,
        status=status,
        payment_details=payment_details or PaymentDetails(),
        note=(note or "").strip() or None,
    )

    with repos.transaction():
        orders = repos.orders.list()
        if any(o.id == order.id for o in orders):
            raise ValueError("An order with this id already exists.")
        if status == OrderStatus.COMPLETED:
            state = StockState.load(repos)
            order.completed_at = iso_now()
            order.stock_moves = apply_completion(state, order, policy)
            state.save(repos)
        orders.append(order)
        repos.orders.save_all(orders)

    log.info("Created order %s for %s (%.2f)", order.id, order.customer_name or "walk-in", order.total_amount)
    return order


def edit_order(
    repos,
    order_id: str,
    *,
    items: Optional[Iterable[Union[OrderItem, dict[str, Any]]]] = None,
    customer_name: Optional[str] = None,
    customer_phone: Optional[str] = None,
    discount: Optional[float] = None,
    note: Optional[str] = None,
    policy: DepotPolicy = primary_depot_policy,
) -> Order:
    """
    Replace an order's lines and/or header fields. Id, creation date, status
    and the amounts paid are kept; the payment status is re-derived against
    the new total. A completed order has its old items put back into stock
    and the new items taken out.
    """
    with repos.transaction():
        orders = repos.orders.list()
        idx = _index(orders, order_id)
        old = orders[idx]

        new_items = old.items if items is None else build_order_items(items)
        if not new_items:
            raise ValueError("Please add at least one valid item with a price greater than 0.")
        new_discount = old.discount if discount is None else to_money(discount)

        updated = Order(
            id=old.id,
            customer_name=old.customer_name if customer_name is None else str(customer_name).strip(),
            customer_phone=old.customer_phone if customer_phone is None else str(customer_phone).strip(),
            date=old.date,
            completed_at=old.completed_at,
            items=new_items,
            discount=new_discount,
            total_amount=order_total(new_items, new_discount),
            status=old.status,
            payment_details=settle_status(old.payment_details, order_total(new_items, new_discount)),
            note=old.note if note is None else (note.strip() or None),
            stock_moves=old.stock_moves,
        )

        if old.status == OrderStatus.COMPLETED and items is not None:
            state = StockState.load(repos)
            apply_reversion(state, old, policy)
            updated.stock_moves = apply_completion(state, updated, policy)
            state.save(repos)

        orders[idx] = updated
        repos.orders.save_all(orders)

    log.info("Edited order %s", updated.id)
    return updated


def update_order_status(
    repos,
    order_id: str,
    status,
    payment_details: Optional[PaymentDetails] = None,
    note: Optional[str] = None,
    *,
    policy: DepotPolicy = primary_depot_policy,
) -> Order:
    """
    Move an order through PENDING / DELIVERED / COMPLETED.

    Entering COMPLETED takes stock out (consuming the carry plan); leaving it
    puts the recorded movement back. ``payment_details`` and ``note`` replace
    the stored ones when given; a completion payment goes through
    ``check_payment_details`` before anything is written.
    """
    new_status = parse_enum(OrderStatus, status, None)
    if new_status is None:
        raise InvalidTransitionError(f"Unknown order status: {status!r}.")

    with repos.transaction():
        orders = repos.orders.list()
        idx = _index(orders, order_id)
        order = orders[idx]
        old_status = order.status
        check_transition(old_status, new_status)
        if payment_details is not None and new_status == OrderStatus.COMPLETED:
            payment_details = check_payment_details(payment_details, order.total_amount)

        if new_status == OrderStatus.COMPLETED and old_status != OrderStatus.COMPLETED:
            state = StockState.load(repos)
            order.stock_moves = apply_completion(state, order, policy)
            order.completed_at = iso_now()
            state.save(repos)
        elif old_status == OrderStatus.COMPLETED and new_status != OrderStatus.COMPLETED:
            state = StockState.load(repos)
            apply_reversion(state, order, policy)
            order.stock_moves = []
            state.save(repos)

        order.status = new_status
        if payment_details is not None:
            order.payment_details = payment_details
        if note is not None:
            order.note = note.strip() or None
        orders[idx] = order
        repos.orders.save_all(orders)

    log.info("Order %s: %s -> %s", order.id, old_status.value, new_status.value)
    return order


def complete_order(
    repos,
    order_id: str,
    *,
    payment_status=PaymentStatus.PAID,
    method=PaymentMethod.CASH,
    amount=None,
    cash_amount=0,
    online_amount=0,
    split: bool = False,
    note: Optional[str] = None,
    policy: DepotPolicy = primary_depot_policy,
) -> Order:
    """Validate the payment first, then mark the order COMPLETED."""
    order = get_order(repos, order_id)
    details = build_payment_details(
        order.total_amount,
        payment_status,
        method=method,
        amount=amount,
        cash_amount=cash_amount,
        online_amount=online_amount,
        split=split,
    )
    return update_order_status(repos, order_id, OrderStatus.COMPLETED, details, note, policy=policy)


def delete_order(repos, order_id: str, *, policy: DepotPolicy = primary_depot_policy) -> bool:
    """Remove an order; a completed one gives its stock back first."""
    with repos.transaction():
        orders = repos.orders.list()
        order = next((o for o in orders if o.id == str(order_id)), None)
        if order is None:
            return False
        if order.status == OrderStatus.COMPLETED:
            state = StockState.load(repos)
            apply_reversion(state, order, policy)
            state.save(repos)
        repos.orders.save_all([o for o in orders if o.id != order.id])
        links = repos.order_categories.list()
        repos.order_categories.save_all([m for m in links if m.order_id != order.id])

    log.info("Deleted order %s", order_id)
    return True


def search_orders(orders: list[Order], term: str = "", status=None) -> list[Order]:
    """Filter by status and a free-text term (customer, order id, note, item name or id); newest first."""
    out = orders
    if status is not None:
        wanted = parse_enum(OrderStatus, status, None)
        out = [o for o in out if o.status == wanted]
    term = (term or "").strip().lower()
    if term:
        out = [
            o for o in out
            if term in o.customer_name.lower()
            or term in o.id.lower()
            or term in (o.note or "").lower()
            or any(term in i.product_name.lower() or term in i.product_id.lower() for i in o.items)
        ]

    def _ts(o: Order) -> float:
        dt = parse_iso(o.date)
        return dt.timestamp() if dt else 0.0

    return sorted(out, key=_ts, reverse=True)
