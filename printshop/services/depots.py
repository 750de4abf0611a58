from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from printshop.models import DepotStock, Product
from printshop.utils import iso_now, to_qty

log = logging.getLogger("printshop.depots")


def primary_depot_policy(quantity: int) -> tuple[int, int]:
    """
    Decide which depot absorbs a quantity nobody planned for.

    Used for unplanned excess when an order completes, and for putting stock
    back when a completed order is reverted without a recorded movement.
    Everything goes to depot A (the main depot).
    """
    return int(quantity), 0


def reconcile_split(entry: DepotStock, canonical: int) -> DepotStock:
    """
    Bring a depot split in line with the canonical product quantity.

    Depot B is clamped to the canonical quantity and depot A takes the
    remainder, so depot A absorbs every unexplained difference.
    """
    canonical = max(0, int(canonical))
    a, b = max(0, entry.depot_a), max(0, entry.depot_b)
    if a + b == canonical:
        return entry if (a, b) == (entry.depot_a, entry.depot_b) else replace(entry, depot_a=a, depot_b=b)
    b = min(b, canonical)
    a = canonical - b
    log.debug("Reconciled %s split to A=%s B=%s (canonical %s)", entry.product_id, a, b, canonical)
    return replace(entry, depot_a=a, depot_b=b)


def implicit_split(product_id: str, quantity: int) -> DepotStock:
    """Split for a product that never had a depot record: all units sit in depot A."""
    a, b = primary_depot_policy(max(0, int(quantity)))
    return DepotStock(product_id=str(product_id), depot_a=a, depot_b=b)


def split_for(product_id: str, product: Optional[Product], entry: Optional[DepotStock]) -> DepotStock:
    canonical = product.quantity if product else 0
    if entry is None:
        return implicit_split(product_id, canonical)
    return reconcile_split(entry, canonical)


def depot_split_map(products: list[Product], depot_stocks: list[DepotStock]) -> dict[str, DepotStock]:
    """Reconciled split for every catalog product (pure)."""
    by_pid = {s.product_id: s for s in depot_stocks}
    return {p.id: split_for(p.id, p, by_pid.get(p.id)) for p in products}


def get_depot_split(repos, product_id: str) -> DepotStock:
    product_id = str(product_id)
    return split_for(product_id, repos.products.get(product_id), repos.depots.get(product_id))


def set_depot_split(repos, product_id: str, depot_a, depot_b) -> DepotStock:
    """
    Operator edit of the split. The sum becomes the product's canonical
    quantity (depot counts are authoritative when set explicitly).
    Bad numbers are normalised to 0.
    """
    product_id = str(product_id)
    entry = DepotStock(product_id=product_id, depot_a=to_qty(depot_a), depot_b=to_qty(depot_b), last_updated=iso_now())

    with repos.transaction():
        stocks = repos.depots.list()
        idx = next((i for i, s in enumerate(stocks) if s.product_id == product_id), None)
        if idx is None:
            stocks.append(entry)
        else:
            stocks[idx] = entry
        repos.depots.save_all(stocks)

        products = repos.products.list()
        prod = next((p for p in products if p.id == product_id), None)
        if prod is not None:
            prod.quantity = entry.total
            repos.products.save_all(products)
        else:
            log.warning("Depot split saved for unknown product %s", product_id)

    log.info("Depot split for %s set to A=%s B=%s", product_id, entry.depot_a, entry.depot_b)
    return entry


def sync_entry(stocks: list[DepotStock], product_id: str, canonical: int) -> None:
    """Reconcile an existing depot record in place after the canonical quantity moved."""
    for i, s in enumerate(stocks):
        if s.product_id == product_id:
            fixed = reconcile_split(s, canonical)
            if fixed is not s:
                stocks[i] = replace(fixed, last_updated=iso_now())
            return
