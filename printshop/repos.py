from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from printshop.models import (
    Category,
    DepotStock,
    Expense,
    LogisticsPlanEntry,
    ManualNeed,
    Order,
    OrderCategoryLink,
    PartialPayment,
    Product,
    UnpaidWriting,
)
from printshop.config import get_settings
from printshop.db import ensure_schema, get_conn
from printshop.store import SqliteStore, read_json, read_text, write_json, write_text

log = logging.getLogger("printshop.repos")

KEY_PREFIX = "printshop."

KEYS = {
    "products": KEY_PREFIX + "products",
    "orders": KEY_PREFIX + "orders",
    "depot_stock": KEY_PREFIX + "depot_stock",
    "logistics_plan": KEY_PREFIX + "logistics_plan",
    "manual_needs": KEY_PREFIX + "manual_needs",
    "unpaid_writings": KEY_PREFIX + "unpaid_writings",
    "partial_payments": KEY_PREFIX + "partial_payments",
    "categories": KEY_PREFIX + "categories",
    "order_category_map": KEY_PREFIX + "order_category_map",
    "expenses": KEY_PREFIX + "expenses",
    "notes_general": KEY_PREFIX + "notes.general",
    "notes_needs": KEY_PREFIX + "notes.needs",
}

T = TypeVar("T")


def decode_records(raw: list, parse: Callable[[Any], T], key: str) -> list[T]:
    out: list[T] = []
    for r in raw:
        try:
            out.append(parse(r))
        except ValueError as e:
            log.warning("Skipping malformed record in %s: %s", key, e)
    return out


class ListRepo(Generic[T]):
    """A JSON array of records under one key. Every ``list()`` re-reads storage."""

    def __init__(self, store, key: str, record_cls) -> None:
        self.store = store
        self.key = key
        self.record_cls = record_cls

    def list(self) -> list[T]:
        return decode_records(read_json(self.store, self.key, []), self.record_cls.from_dict, self.key)

    def save_all(self, records: list[T]) -> None:
        write_json(self.store, self.key, [r.to_dict() for r in records])

    def append(self, record: T) -> T:
        records = self.list()
        records.append(record)
        self.save_all(records)
        return record

    def is_initialized(self) -> bool:
        return self.store.get(self.key) is not None


class ProductRepo(ListRepo[Product]):
    def __init__(self, store) -> None:
        super().__init__(store, KEYS["products"], Product)

    def get(self, product_id: str) -> Optional[Product]:
        return next((p for p in self.list() if p.id == str(product_id)), None)


class OrderRepo(ListRepo[Order]):
    def __init__(self, store) -> None:
        super().__init__(store, KEYS["orders"], Order)

    def get(self, order_id: str) -> Optional[Order]:
        return next((o for o in self.list() if o.id == str(order_id)), None)


class DepotRepo(ListRepo[DepotStock]):
    def __init__(self, store) -> None:
        super().__init__(store, KEYS["depot_stock"], DepotStock)

    def get(self, product_id: str) -> Optional[DepotStock]:
        return next((s for s in self.list() if s.product_id == str(product_id)), None)

    def by_product(self) -> dict[str, DepotStock]:
        return {s.product_id: s for s in self.list()}


class PlanRepo:
    """The logistics plan: a JSON object keyed by product id."""

    def __init__(self, store) -> None:
        self.store = store
        self.key = KEYS["logistics_plan"]

    def load(self) -> dict[str, LogisticsPlanEntry]:
        raw = read_json(self.store, self.key, {})
        out: dict[str, LogisticsPlanEntry] = {}
        for pid, entry in raw.items():
            try:
                e = LogisticsPlanEntry.from_dict(entry)
            except ValueError as err:
                log.warning("Skipping malformed plan entry %s: %s", pid, err)
                continue
            e.product_id = str(pid)
            out[str(pid)] = e
        return out

    def save(self, plan: dict[str, LogisticsPlanEntry]) -> None:
        write_json(self.store, self.key, {pid: e.to_dict() for pid, e in plan.items()})

    def clear(self) -> None:
        self.store.delete(self.key)


class NotesRepo:
    def __init__(self, store) -> None:
        self.store = store

    def get(self, which: str = "general") -> str:
        return read_text(self.store, self._key(which))

    def save(self, content: str, which: str = "general") -> None:
        write_text(self.store, self._key(which), content)

    @staticmethod
    def _key(which: str) -> str:
        if which not in ("general", "needs"):
            raise ValueError("Notes must be 'general' or 'needs'.")
        return KEYS["notes_" + which]


@dataclass
class Repos:
    store: Any
    products: ProductRepo
    orders: OrderRepo
    depots: DepotRepo
    plans: PlanRepo
    manual_needs: ListRepo[ManualNeed]
    unpaid_writings: ListRepo[UnpaidWriting]
    partial_payments: ListRepo[PartialPayment]
    categories: ListRepo[Category]
    order_categories: ListRepo[OrderCategoryLink]
    expenses: ListRepo[Expense]
    notes: NotesRepo

    def transaction(self):
        return self.store.transaction()


def open_repos(store) -> Repos:
    return Repos(
        store=store,
        products=ProductRepo(store),
        orders=OrderRepo(store),
        depots=DepotRepo(store),
        plans=PlanRepo(store),
        manual_needs=ListRepo(store, KEYS["manual_needs"], ManualNeed),
        unpaid_writings=ListRepo(store, KEYS["unpaid_writings"], UnpaidWriting),
        partial_payments=ListRepo(store, KEYS["partial_payments"], PartialPayment),
        categories=ListRepo(store, KEYS["categories"], Category),
        order_categories=ListRepo(store, KEYS["order_category_map"], OrderCategoryLink),
        expenses=ListRepo(store, KEYS["expenses"], Expense),
        notes=NotesRepo(store),
    )


def default_repos() -> Repos:
    """Repositories on the configured sqlite database, as the UI pages open them."""
    settings = get_settings()
    conn = get_conn(settings.db_path)
    ensure_schema(conn)
    return open_repos(SqliteStore(conn))
