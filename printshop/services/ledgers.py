from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from printshop.models import (
    Category,
    Expense,
    ManualNeed,
    OrderCategoryLink,
    PartialPayment,
    UnpaidWriting,
)
from printshop.services.payments import PaymentValidationError
from printshop.utils import iso_now, new_id, to_money, to_qty

log = logging.getLogger("printshop.ledgers")

DEFAULT_CATEGORIES = [
    Category(id="cat_unpaid", name="Unpaid", color="red"),
    Category(id="cat_urgent", name="Urgent", color="orange"),
    Category(id="cat_regular", name="Regular", color="blue"),
]


# -------------------------
# Manual needs
# -------------------------

def list_manual_needs(repos) -> list[ManualNeed]:
    return repos.manual_needs.list()


def upsert_manual_need(repos, product_id: str, total_required, note: str = "") -> ManualNeed:
    """At most one need per product: re-adding replaces the amount and note, keeping the id."""
    product_id = str(product_id)
    if not product_id:
        raise ValueError("Product is required.")
    with repos.transaction():
        needs = repos.manual_needs.list()
        idx = next((i for i, n in enumerate(needs) if n.product_id == product_id), None)
        entry = ManualNeed(
            id=needs[idx].id if idx is not None else new_id(),
            product_id=product_id,
            total_required=to_qty(total_required),
            note=str(note or ""),
            created_at=iso_now(),
        )
        if idx is None:
            needs.append(entry)
        else:
            needs[idx] = entry
        repos.manual_needs.save_all(needs)
    return entry


def delete_manual_need(repos, need_id: str) -> bool:
    with repos.transaction():
        needs = repos.manual_needs.list()
        kept = [n for n in needs if n.id != need_id]
        repos.manual_needs.save_all(kept)
    return len(kept) != len(needs)


# -------------------------
# Unpaid writings
# -------------------------

def list_unpaid_writings(repos, status: Optional[str] = None) -> list[UnpaidWriting]:
    items = repos.unpaid_writings.list()
    if status:
        items = [w for w in items if w.status == status.upper()]
    return items


def add_unpaid_writing(
    repos,
    *,
    title: str,
    amount,
    description: str = "",
    category: str = "Unpaid",
    related_order_id: Optional[str] = None,
) -> UnpaidWriting:
    if not str(title or "").strip():
        raise ValueError("Title is required.")
    writing = UnpaidWriting(
        title=str(title).strip(),
        amount=to_money(amount),
        description=str(description or ""),
        category=category,
        related_order_id=related_order_id,
    )
    with repos.transaction():
        repos.unpaid_writings.append(writing)
    return writing


def update_unpaid_writing(repos, writing: UnpaidWriting) -> UnpaidWriting:
    with repos.transaction():
        items = repos.unpaid_writings.list()
        idx = next((i for i, w in enumerate(items) if w.id == writing.id), None)
        if idx is None:
            raise ValueError("Unpaid writing not found.")
        items[idx] = writing
        repos.unpaid_writings.save_all(items)
    return writing


def mark_writing_paid(repos, writing_id: str) -> UnpaidWriting:
    writing = next((w for w in repos.unpaid_writings.list() if w.id == writing_id), None)
    if writing is None:
        raise ValueError("Unpaid writing not found.")
    return update_unpaid_writing(repos, replace(writing, status="PAID"))


def delete_unpaid_writing(repos, writing_id: str) -> bool:
    with repos.transaction():
        items = repos.unpaid_writings.list()
        kept = [w for w in items if w.id != writing_id]
        repos.unpaid_writings.save_all(kept)
    return len(kept) != len(items)


def unpaid_total(writings: list[UnpaidWriting]) -> float:
    return round(sum(w.amount for w in writings if w.status == "UNPAID"), 2)


# -------------------------
# Partial payments
# -------------------------

def add_partial_payment(
    repos,
    order_id: str,
    amount,
    method: str = "CASH",
    reference: Optional[str] = None,
) -> PartialPayment:
    amount = to_money(amount)
    if amount <= 0:
        raise PaymentValidationError("Payment amount must be greater than 0.")
    if repos.orders.get(order_id) is None:
        raise ValueError("Order not found.")
    payment = PartialPayment(
        order_id=str(order_id),
        amount=amount,
        method="ONLINE" if str(method).upper() == "ONLINE" else "CASH",
        reference=reference,
    )
    with repos.transaction():
        repos.partial_payments.append(payment)
    log.info("Partial payment %.2f (%s) on order %s", amount, payment.method, order_id)
    return payment


def add_split_partial_payment(repos, order_id: str, cash_amount, online_amount) -> list[PartialPayment]:
    """One record per non-zero part, sharing a timestamp."""
    cash, online = to_money(cash_amount), to_money(online_amount)
    if cash <= 0 and online <= 0:
        raise PaymentValidationError("Please enter at least one amount.")
    if repos.orders.get(order_id) is None:
        raise ValueError("Order not found.")
    now = iso_now()
    created = [
        PartialPayment(order_id=str(order_id), amount=amt, method=method, created_at=now)
        for amt, method in ((cash, "CASH"), (online, "ONLINE"))
        if amt > 0
    ]
    with repos.transaction():
        payments = repos.partial_payments.list()
        repos.partial_payments.save_all(payments + created)
    return created


def partial_payments_for_order(repos, order_id: str) -> list[PartialPayment]:
    return [p for p in repos.partial_payments.list() if p.order_id == str(order_id)]


# -------------------------
# Categories
# -------------------------

def list_categories(repos) -> list[Category]:
    if not repos.categories.is_initialized():
        return [replace(c) for c in DEFAULT_CATEGORIES]
    return repos.categories.list()


def add_category(repos, name: str, color: Optional[str] = None) -> Category:
    name = str(name or "").strip()
    if not name:
        raise ValueError("Category name is required.")
    category = Category(id=new_id(), name=name, color=color)
    with repos.transaction():
        repos.categories.save_all(list_categories(repos) + [category])
    return category


def delete_category(repos, category_id: str) -> bool:
    with repos.transaction():
        cats = list_categories(repos)
        kept = [c for c in cats if c.id != category_id]
        repos.categories.save_all(kept)
        links = repos.order_categories.list()
        repos.order_categories.save_all([m for m in links if m.category_id != category_id])
    return len(kept) != len(cats)


def get_category_for_order(repos, order_id: str) -> Optional[Category]:
    link = next((m for m in repos.order_categories.list() if m.order_id == str(order_id)), None)
    if link is None:
        return None
    return next((c for c in list_categories(repos) if c.id == link.category_id), None)


def assign_category(repos, order_id: str, category_id: str) -> Optional[UnpaidWriting]:
    """
    Tag an order (one tag per order). Tagging with "Unpaid" creates an unpaid
    writing for the order unless one is already linked; returns it when created.
    The sync is one way: the writing can be edited or removed freely.
    """
    order_id = str(order_id)
    with repos.transaction():
        links = [m for m in repos.order_categories.list() if m.order_id != order_id]
        links.append(OrderCategoryLink(order_id=order_id, category_id=str(category_id)))
        repos.order_categories.save_all(links)

        category = next((c for c in list_categories(repos) if c.id == str(category_id)), None)
        if category is None or not category.is_unpaid:
            return None

        writings = repos.unpaid_writings.list()
        if any(w.related_order_id == order_id for w in writings):
            return None
        order = repos.orders.get(order_id)
        if order is None:
            return None

        writing = UnpaidWriting(
            title=f"Order #{order.id[:5]} - {order.customer_name}",
            description=f"Auto-generated from Unpaid category. Note: {order.note or 'None'}",
            amount=order.total_amount,
            category="Unpaid",
            related_order_id=order.id,
        )
        repos.unpaid_writings.save_all(writings + [writing])

    log.info("Unpaid writing created for order %s", order_id)
    return writing


def remove_category_from_order(repos, order_id: str) -> None:
    with repos.transaction():
        links = repos.order_categories.list()
        repos.order_categories.save_all([m for m in links if m.order_id != str(order_id)])


# -------------------------
# Expenses
# -------------------------

def add_expense(repos, description: str, amount, category: Optional[str] = None, date: Optional[str] = None) -> Expense:
    amount = to_money(amount)
    if amount <= 0:
        raise ValueError("Expense amount must be greater than 0.")
    expense = Expense(description=str(description or "").strip(), amount=amount, category=category)
    if date:
        expense.date = date
    with repos.transaction():
        repos.expenses.append(expense)
    return expense


def delete_expense(repos, expense_id: str) -> bool:
    with repos.transaction():
        items = repos.expenses.list()
        kept = [e for e in items if e.id != expense_id]
        repos.expenses.save_all(kept)
    return len(kept) != len(items)


# -------------------------
# Scratch notes
# -------------------------

def get_notes(repos, which: str = "general") -> str:
    return repos.notes.get(which)


def save_notes(repos, content: str, which: str = "general") -> None:
    repos.notes.save(content, which)
