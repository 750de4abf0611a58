from __future__ import annotations

import logging
from typing import Any, Optional, Union

from printshop.models import Product
from printshop.services.depots import sync_entry
from printshop.utils import new_id

log = logging.getLogger("printshop.products")


def list_products(repos) -> list[Product]:
    return repos.products.list()


def get_quantity(repos, product_id: str) -> int:
    p = repos.products.get(product_id)
    return p.quantity if p else 0


def upsert_product(repos, product: Union[Product, dict[str, Any]]) -> Product:
    """
    Insert or replace a product by id. Numbers are normalised (negative or
    non-numeric become 0). A missing id gets a fresh one.
    """
    raw = product.to_dict() if isinstance(product, Product) else dict(product)
    if not raw.get("id"):
        raw["id"] = new_id()
    p = Product.from_dict(raw)
    if not p.name.strip():
        raise ValueError("Product name is required.")

    with repos.transaction():
        products = repos.products.list()
        idx = next((i for i, x in enumerate(products) if x.id == p.id), None)
        if idx is None:
            products.append(p)
        else:
            products[idx] = p
        repos.products.save_all(products)

        # A direct quantity edit moves the difference through depot A.
        stocks = repos.depots.list()
        sync_entry(stocks, p.id, p.quantity)
        repos.depots.save_all(stocks)

    return p


def delete_product(repos, product_id: str) -> bool:
    product_id = str(product_id)
    with repos.transaction():
        products = repos.products.list()
        kept = [p for p in products if p.id != product_id]
        if len(kept) == len(products):
            return False
        repos.products.save_all(kept)
        repos.depots.save_all([s for s in repos.depots.list() if s.product_id != product_id])
        plan = repos.plans.load()
        if plan.pop(product_id, None) is not None:
            repos.plans.save(plan)
    log.info("Deleted product %s", product_id)
    return True


def adjust_quantity(repos, product_id: str, delta: int) -> Optional[int]:
    """
    Add ``delta`` to the canonical quantity, clamped at 0. Returns the new
    quantity, or None for an unknown product.
    """
    product_id = str(product_id)
    with repos.transaction():
        products = repos.products.list()
        prod = next((p for p in products if p.id == product_id), None)
        if prod is None:
            log.warning("adjust_quantity: unknown product %s", product_id)
            return None
        prod.quantity = max(0, prod.quantity + int(delta))
        repos.products.save_all(products)

        stocks = repos.depots.list()
        sync_entry(stocks, product_id, prod.quantity)
        repos.depots.save_all(stocks)
    return prod.quantity


def low_stock_products(repos) -> list[Product]:
    return [p for p in repos.products.list() if p.quantity <= p.min_stock]
