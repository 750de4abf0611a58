from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional

from printshop.models import DepotStock, LogisticsPlanEntry, Order, Product, StockMove
from printshop.services.depots import implicit_split, primary_depot_policy, reconcile_split
from printshop.utils import iso_now

log = logging.getLogger("printshop.stock")

DepotPolicy = Callable[[int], tuple[int, int]]


@dataclass
class StockState:
    """
    Everything a completion or reversion touches, read once and written once.

    Mutations go through this object so that several items of one order (or
    the revert-then-apply of an edit) see each other's effects instead of a
    stale copy.
    """

    products: list[Product]
    stocks: list[DepotStock]
    plan: dict[str, LogisticsPlanEntry]

    @classmethod
    def load(cls, repos) -> "StockState":
        return cls(products=repos.products.list(), stocks=repos.depots.list(), plan=repos.plans.load())

    def save(self, repos) -> None:
        repos.products.save_all(self.products)
        repos.depots.save_all(self.stocks)
        repos.plans.save(self.plan)

    def product(self, product_id: str) -> Optional[Product]:
        return next((p for p in self.products if p.id == product_id), None)

    def entry(self, product_id: str, canonical: int) -> DepotStock:
        """Depot record for a product, created lazily and reconciled to ``canonical``."""
        for i, s in enumerate(self.stocks):
            if s.product_id == product_id:
                fixed = reconcile_split(s, canonical)
                self.stocks[i] = fixed
                return fixed
        created = implicit_split(product_id, canonical)
        self.stocks.append(created)
        return created

    def put(self, entry: DepotStock) -> None:
        for i, s in enumerate(self.stocks):
            if s.product_id == entry.product_id:
                self.stocks[i] = entry
                return
        self.stocks.append(entry)


def _consume_plan(plan: dict[str, LogisticsPlanEntry], product_id: str, quantity: int) -> tuple[int, int, int]:
    """Take ``quantity`` from the planned carry (A first, then B). Returns (from_a, from_b, unplanned)."""
    entry = plan.get(product_id)
    if entry is None:
        return 0, 0, quantity
    take_a = min(quantity, entry.carry_from_a)
    take_b = min(quantity - take_a, entry.carry_from_b)
    plan[product_id] = replace(
        entry,
        carry_from_a=max(0, entry.carry_from_a - take_a),
        carry_from_b=max(0, entry.carry_from_b - take_b),
    )
    return take_a, take_b, quantity - take_a - take_b


def apply_completion(state: StockState, order: Order, policy: DepotPolicy = primary_depot_policy) -> list[StockMove]:
    """
    Take an order's catalog items out of stock.

    Planned carry is consumed first (depot A then depot B); anything beyond
    the plan goes through ``policy``. Returns what actually left each depot,
    one move per product.
    """
    moves: dict[str, StockMove] = {}

    for item in order.stock_items:
        pid = item.product_id
        qty = int(item.quantity)
        if qty <= 0:
            continue
        prod = state.product(pid)
        if prod is None:
            log.warning("Order %s: product %s not in catalog, stock untouched", order.id, pid)
            continue

        entry = state.entry(pid, prod.quantity)
        before_q, before_a, before_b = prod.quantity, entry.depot_a, entry.depot_b

        plan_a, plan_b, unplanned = _consume_plan(state.plan, pid, qty)
        extra_a, extra_b = policy(unplanned)
        deduct_a, deduct_b = plan_a + extra_a, plan_b + extra_b

        prod.quantity = max(0, before_q - qty)
        updated = replace(
            entry,
            depot_a=max(0, before_a - deduct_a),
            depot_b=max(0, before_b - deduct_b),
            last_updated=iso_now(),
        )
        updated = reconcile_split(updated, prod.quantity)
        state.put(updated)

        move = moves.setdefault(pid, StockMove(product_id=pid))
        move.quantity += before_q - prod.quantity
        move.from_a += max(0, before_a - updated.depot_a)
        move.from_b += max(0, before_b - updated.depot_b)

        log.info(
            "Order %s: -%s %s (A -%s, B -%s, plan %s/%s)",
            order.id, qty, pid, before_a - updated.depot_a, before_b - updated.depot_b, plan_a, plan_b,
        )

    return list(moves.values())


def apply_reversion(state: StockState, order: Order, policy: DepotPolicy = primary_depot_policy) -> None:
    """
    Put a completed order's stock back.

    Recorded movements are undone exactly. An order completed without a
    record (older data) returns every unit through ``policy``.
    """
    if order.stock_moves:
        restores = [(m.product_id, m.quantity, m.from_a, m.from_b) for m in order.stock_moves]
    else:
        restores = []
        for item in order.stock_items:
            qty = int(item.quantity)
            if qty > 0:
                a, b = policy(qty)
                restores.append((item.product_id, qty, a, b))

    for pid, qty, add_a, add_b in restores:
        prod = state.product(pid)
        if prod is None:
            log.warning("Order %s: product %s not in catalog, nothing restored", order.id, pid)
            continue
        entry = state.entry(pid, prod.quantity)
        prod.quantity += qty
        updated = replace(
            entry,
            depot_a=entry.depot_a + add_a,
            depot_b=entry.depot_b + add_b,
            last_updated=iso_now(),
        )
        state.put(reconcile_split(updated, prod.quantity))
        log.info("Order %s: +%s %s restored (A +%s, B +%s)", order.id, qty, pid, add_a, add_b)
