from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from printshop.models import DepotStock, LogisticsPlanEntry, Order, OrderStatus, Product
from printshop.services.demand import aggregate_demand, demand_names
from printshop.services.depots import depot_split_map, split_for
from printshop.utils import to_qty

log = logging.getLogger("printshop.planner")

CARRY_FIELDS = {
    "carryFromA": "carry_from_a",
    "carry_from_a": "carry_from_a",
    "a": "carry_from_a",
    "carryFromB": "carry_from_b",
    "carry_from_b": "carry_from_b",
    "b": "carry_from_b",
}


@dataclass
class RequirementRow:
    product_id: str
    name: str
    category: str
    current_stock: int
    depot_a: int
    depot_b: int
    ordered_qty: int
    needed: int
    carry_from_a: int = 0
    carry_from_b: int = 0
    in_catalog: bool = True

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "name": self.name,
            "category": self.category,
            "currentStock": self.current_stock,
            "depotA": self.depot_a,
            "depotB": self.depot_b,
            "orderedQty": self.ordered_qty,
            "needed": self.needed,
            "carryFromA": self.carry_from_a,
            "carryFromB": self.carry_from_b,
        }


@dataclass
class RequirementReport:
    rows: list[RequirementRow] = field(default_factory=list)
    plan: dict[str, LogisticsPlanEntry] = field(default_factory=dict)
    total_order_value: float = 0.0
    pending_order_value: float = 0.0

    @property
    def pickup_from_a(self) -> list[RequirementRow]:
        return [r for r in self.rows if r.carry_from_a > 0]

    @property
    def pickup_from_b(self) -> list[RequirementRow]:
        return [r for r in self.rows if r.carry_from_b > 0]

    @property
    def shortages(self) -> list[RequirementRow]:
        return [r for r in self.rows if r.needed > 0]

    @property
    def total_needed(self) -> int:
        return sum(r.needed for r in self.rows)

    def row(self, product_id: str) -> Optional[RequirementRow]:
        return next((r for r in self.rows if r.product_id == str(product_id)), None)


def default_carry(product_id: str, ordered_qty: int, current_stock: int, depot_a: int, depot_b: int) -> LogisticsPlanEntry:
    """
    Suggested carry for one product.

    With a shortage nothing is suggested (the operator decides). Otherwise
    depot A is drained first, then depot B covers what is left.
    """
    ordered_qty = to_qty(ordered_qty)
    needed = max(0, ordered_qty - to_qty(current_stock))
    if needed > 0:
        return LogisticsPlanEntry(product_id=str(product_id))
    from_a = min(ordered_qty, to_qty(depot_a))
    from_b = min(ordered_qty - from_a, to_qty(depot_b))
    return LogisticsPlanEntry(product_id=str(product_id), carry_from_a=from_a, carry_from_b=from_b)


def merge_plans(
    existing: dict[str, LogisticsPlanEntry],
    computed: dict[str, LogisticsPlanEntry],
) -> dict[str, LogisticsPlanEntry]:
    """Existing entries win; computed entries only fill gaps."""
    merged = {pid: replace(e) for pid, e in computed.items()}
    merged.update({pid: replace(e) for pid, e in existing.items()})
    return merged


def _requirement_rows(
    orders: list[Order],
    products: list[Product],
    depot_stocks: list[DepotStock],
) -> list[RequirementRow]:
    demand = aggregate_demand(orders)
    splits = depot_split_map(products, depot_stocks)
    rows: list[RequirementRow] = []

    for p in products:
        ordered = demand.get(p.id, 0)
        if ordered <= 0:
            continue
        split = splits[p.id]
        rows.append(
            RequirementRow(
                product_id=p.id,
                name=p.name,
                category=p.category,
                current_stock=p.quantity,
                depot_a=split.depot_a,
                depot_b=split.depot_b,
                ordered_qty=ordered,
                needed=max(0, ordered - p.quantity),
            )
        )

    # Demand for products no longer in the catalog: zero stock, all of it short.
    catalog = {p.id for p in products}
    names = demand_names(orders)
    for pid, ordered in demand.items():
        if pid in catalog:
            continue
        split = split_for(pid, None, None)
        rows.append(
            RequirementRow(
                product_id=pid,
                name=names.get(pid, pid),
                category="",
                current_stock=0,
                depot_a=split.depot_a,
                depot_b=split.depot_b,
                ordered_qty=ordered,
                needed=ordered,
                in_catalog=False,
            )
        )
    return rows


def compute_requirements(
    orders: list[Order],
    products: list[Product],
    depot_stocks: Optional[list[DepotStock]] = None,
    plan_overrides: Optional[dict[str, LogisticsPlanEntry]] = None,
) -> RequirementReport:
    """
    Shortage and carry plan for every product with pending demand.

    Pure: nothing is persisted. ``report.plan`` is ``plan_overrides`` with
    defaults filled in for products that had no entry; callers persist it.
    """
    rows = _requirement_rows(orders, products, depot_stocks or [])
    computed = {r.product_id: default_carry(r.product_id, r.ordered_qty, r.current_stock, r.depot_a, r.depot_b) for r in rows}
    plan = merge_plans(plan_overrides or {}, computed)

    # Stored entries keep the operator's numbers; rows only show what the depots hold now.
    for r in rows:
        entry = plan[r.product_id]
        r.carry_from_a = min(entry.carry_from_a, r.depot_a)
        r.carry_from_b = min(entry.carry_from_b, r.depot_b)

    return RequirementReport(
        rows=rows,
        plan=plan,
        total_order_value=round(sum(o.total_amount for o in orders), 2),
        pending_order_value=round(sum(o.total_amount for o in orders if o.status == OrderStatus.PENDING), 2),
    )


def _plans_equal(a: dict[str, LogisticsPlanEntry], b: dict[str, LogisticsPlanEntry]) -> bool:
    return {k: v.to_dict() for k, v in a.items()} == {k: v.to_dict() for k, v in b.items()}


def refresh_requirements(repos) -> RequirementReport:
    """Compute the report from storage and persist any newly defaulted plan entries."""
    with repos.transaction():
        existing = repos.plans.load()
        report = compute_requirements(
            repos.orders.list(),
            repos.products.list(),
            repos.depots.list(),
            existing,
        )
        if not _plans_equal(existing, report.plan):
            added = sorted(set(report.plan) - set(existing))
            log.debug("Defaulted carry plan for %s", ", ".join(added))
            repos.plans.save(report.plan)
    return report


def update_logistics_entry(repos, product_id: str, field_name: str, value) -> LogisticsPlanEntry:
    """
    Operator override of one carry amount. The value is normalised (bad input
    becomes 0) and clamped to what the depot actually holds right now.
    """
    attr = CARRY_FIELDS.get(str(field_name))
    if attr is None:
        raise ValueError("Field must be 'carryFromA' or 'carryFromB'.")
    product_id = str(product_id)

    with repos.transaction():
        split = split_for(product_id, repos.products.get(product_id), repos.depots.get(product_id))
        limit = split.depot_a if attr == "carry_from_a" else split.depot_b
        amount = min(to_qty(value), limit)

        plan = repos.plans.load()
        entry = plan.get(product_id) or LogisticsPlanEntry(product_id=product_id)
        entry = replace(entry, **{attr: amount})
        plan[product_id] = entry
        repos.plans.save(plan)

    log.info("Carry plan %s.%s set to %s", product_id, attr, amount)
    return entry


def reset_logistics_plan(repos, *, confirm: bool = False) -> dict[str, LogisticsPlanEntry]:
    """
    Throw away every plan entry (operator edits included) and rebuild the
    defaults from current demand and stock. Requires ``confirm=True``.
    """
    if not confirm:
        raise ValueError("Resetting the carry plan discards manual edits; pass confirm=True.")
    with repos.transaction():
        report = compute_requirements(repos.orders.list(), repos.products.list(), repos.depots.list(), {})
        repos.plans.save(report.plan)
    log.info("Carry plan reset (%s entries)", len(report.plan))
    return report.plan
