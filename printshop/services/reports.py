from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timezone
from typing import Optional, Union

import pandas as pd

from printshop.models import Order, OrderStatus, PartialPayment, PaymentMethod
from printshop.services.ledgers import get_category_for_order
from printshop.services.payments import order_balance
from printshop.services.planner import RequirementReport
from printshop.utils import parse_iso

DateLike = Union[date, datetime, str, None]


@dataclass
class PeriodStats:
    total_orders: int = 0
    pending_orders: int = 0
    delivered_orders: int = 0
    completed_orders: int = 0
    backlog: int = 0
    revenue_cash: float = 0.0
    revenue_online: float = 0.0
    total_revenue: float = 0.0
    total_profit: float = 0.0
    expenses: float = 0.0
    net: float = 0.0


def _bound(value: DateLike, end: bool) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.max if end else time.min, tzinfo=timezone.utc)
    dt = parse_iso(value)
    if dt is not None and end and len(str(value)) <= 10:
        dt = datetime.combine(dt.date(), time.max, tzinfo=timezone.utc)
    return dt


def _in_range(ts: Optional[str], start: Optional[datetime], end: Optional[datetime]) -> bool:
    dt = parse_iso(ts)
    if dt is None:
        return False
    return (start is None or dt >= start) and (end is None or dt <= end)


def order_profit(order: Order) -> float:
    sell = sum(i.line_total for i in order.items)
    cost = sum(i.line_cost for i in order.items)
    return round(sell - cost - order.discount, 2)


def period_stats(repos, start: DateLike = None, end: DateLike = None) -> PeriodStats:
    """
    Dashboard numbers for a date range (inclusive, whole days for dates).

    Revenue is cash-flow based: completion payments of orders completed in
    range plus partial payments received in range. Profit only counts orders
    that are fully paid (completion payment plus partial payments).
    """
    lo, hi = _bound(start, False), _bound(end, True)
    orders = repos.orders.list()
    partials = repos.partial_payments.list()
    s = PeriodStats()

    for o in orders:
        if o.status == OrderStatus.PENDING:
            s.backlog += 1
            if _in_range(o.date, lo, hi):
                s.pending_orders += 1
        elif o.status == OrderStatus.DELIVERED:
            if _in_range(o.date, lo, hi):
                s.delivered_orders += 1
        elif _in_range(o.completed_at or o.date, lo, hi):
            s.completed_orders += 1
            pd_ = o.payment_details
            if pd_.cash_amount or pd_.online_amount:
                s.revenue_cash += pd_.cash_amount
                s.revenue_online += pd_.online_amount
            elif pd_.total_paid > 0:
                if pd_.method == PaymentMethod.CASH:
                    s.revenue_cash += pd_.total_paid
                else:
                    s.revenue_online += pd_.total_paid
            if order_balance(o, partials).is_settled:
                s.total_profit += order_profit(o)

    for p in partials:
        if _in_range(p.created_at, lo, hi):
            if p.method == "CASH":
                s.revenue_cash += p.amount
            else:
                s.revenue_online += p.amount

    s.expenses = sum(e.amount for e in repos.expenses.list() if _in_range(e.date, lo, hi))
    s.total_orders = s.pending_orders + s.delivered_orders + s.completed_orders
    s.revenue_cash = round(s.revenue_cash, 2)
    s.revenue_online = round(s.revenue_online, 2)
    s.total_revenue = round(s.revenue_cash + s.revenue_online, 2)
    s.total_profit = round(s.total_profit, 2)
    s.expenses = round(s.expenses, 2)
    s.net = round(s.total_profit - s.expenses, 2)
    return s


def unpaid_orders(repos) -> list[tuple[Order, float]]:
    """
    Orders that still owe money and are either tagged "Unpaid" or already
    delivered/completed. Plain pending orders are not debts yet.
    """
    partials = repos.partial_payments.list()
    out: list[tuple[Order, float]] = []
    for o in repos.orders.list():
        remaining = order_balance(o, partials).remaining
        if remaining <= 0:
            continue
        category = get_category_for_order(repos, o.id)
        tagged = category is not None and category.is_unpaid
        if tagged or o.status in (OrderStatus.DELIVERED, OrderStatus.COMPLETED):
            out.append((o, remaining))
    return out


def requirements_frame(report: RequirementReport) -> pd.DataFrame:
    cols = ["productId", "name", "category", "currentStock", "depotA", "depotB", "orderedQty", "needed", "carryFromA", "carryFromB"]
    return pd.DataFrame([r.to_dict() for r in report.rows], columns=cols)


def orders_frame(orders: list[Order], partials: Optional[list[PartialPayment]] = None) -> pd.DataFrame:
    rows = []
    for o in orders:
        bal = order_balance(o, partials)
        rows.append(
            {
                "id": o.id,
                "date": o.date,
                "customer": o.customer_name,
                "status": o.status.value,
                "items": sum(i.quantity for i in o.items),
                "total": o.total_amount,
                "paid": bal.paid,
                "remaining": bal.remaining,
                "payment_status": o.payment_details.status.value,
            }
        )
    cols = ["id", "date", "customer", "status", "items", "total", "paid", "remaining", "payment_status"]
    return pd.DataFrame(rows, columns=cols)


def revenue_by_day(orders: list[Order], partials: Optional[list[PartialPayment]] = None) -> pd.DataFrame:
    """Cash and online receipts per calendar day (completions plus partial payments)."""
    rows = []
    for o in orders:
        if o.status != OrderStatus.COMPLETED:
            continue
        pd_ = o.payment_details
        cash, online = pd_.cash_amount, pd_.online_amount
        if not cash and not online and pd_.total_paid > 0:
            cash, online = (pd_.total_paid, 0.0) if pd_.method == PaymentMethod.CASH else (0.0, pd_.total_paid)
        rows.append({"ts": o.completed_at or o.date, "cash": cash, "online": online})
    for p in partials or []:
        rows.append({"ts": p.created_at, "cash": p.amount if p.method == "CASH" else 0.0, "online": p.amount if p.method == "ONLINE" else 0.0})

    if not rows:
        return pd.DataFrame(columns=["day", "cash", "online", "total"])

    df = pd.DataFrame(rows)
    df["day"] = pd.to_datetime(df["ts"], errors="coerce", utc=True, format="ISO8601").dt.date
    df = df.dropna(subset=["day"])
    for col in ["cash", "online"]:
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0)
    out = df.groupby("day", as_index=False)[["cash", "online"]].sum()
    out["total"] = (out["cash"] + out["online"]).round(2)
    return out.sort_values("day").reset_index(drop=True)


def stats_frame(stats: PeriodStats) -> pd.DataFrame:
    return pd.DataFrame([asdict(stats)])
