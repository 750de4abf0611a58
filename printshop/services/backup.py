from __future__ import annotations

import json
import logging
from typing import Any

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
from printshop.repos import KEYS, decode_records
from printshop.store import read_json, read_text, write_json, write_text

log = logging.getLogger("printshop.backup")

SNAPSHOT_VERSION = 1

RECORD_TYPES = {
    "products": Product,
    "orders": Order,
    "depot_stock": DepotStock,
    "manual_needs": ManualNeed,
    "unpaid_writings": UnpaidWriting,
    "partial_payments": PartialPayment,
    "categories": Category,
    "order_category_map": OrderCategoryLink,
    "expenses": Expense,
}
TEXT_KEYS = ("notes_general", "notes_needs")

# Browser storage keys of the web version of the shop, oldest first.
LEGACY_KEYS = {
    "print_bazar_products": "products",
    "print_bazar_products_v2": "products",
    "print_bazar_products_v3": "products",
    "print_bazar_products_v4": "products",
    "print_bazar_orders": "orders",
    "print_bazar_rough_work": "notes_general",
    "print_bazar_expenses": "expenses",
    "print_bazar_unpaid_writings": "unpaid_writings",
    "print_bazar_partial_payments": "partial_payments",
    "print_bazar_categories": "categories",
    "print_bazar_order_category_map": "order_category_map",
    "print_bazar_store_stock": "depot_stock",
    "print_bazar_manual_needs": "manual_needs",
    "print_bazar_needs_note": "notes_needs",
    "print_bazar_logistics_plan": "logistics_plan",
}


def export_snapshot(repos) -> dict[str, Any]:
    """Every collection as JSON-ready data, keyed by logical name."""
    store = repos.store
    out: dict[str, Any] = {"version": SNAPSHOT_VERSION}
    for name in RECORD_TYPES:
        out[name] = read_json(store, KEYS[name], [])
    out["logistics_plan"] = read_json(store, KEYS["logistics_plan"], {})
    for name in TEXT_KEYS:
        out[name] = read_text(store, KEYS[name])
    return out


def _decode(value: Any, default: Any) -> Any:
    # Browser exports hold JSON strings; our snapshots hold decoded values.
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return default
    return value


def _normalise(payload: dict[str, Any]) -> dict[str, Any]:
    """Map legacy keys onto logical names; the newest legacy products key wins."""
    out: dict[str, Any] = {}
    for key, name in LEGACY_KEYS.items():
        if key in payload:
            out[name] = payload[key]
    for key, value in payload.items():
        if key in RECORD_TYPES or key in TEXT_KEYS or key == "logistics_plan":
            out[key] = value
    return out


def import_snapshot(repos, payload: dict[str, Any]) -> list[str]:
    """
    Replace stored collections with those in ``payload`` (our own snapshot or
    a raw browser export). Collections absent from the payload are left alone.
    Records are re-encoded so legacy field names are converted.
    """
    if not isinstance(payload, dict):
        raise ValueError("Snapshot must be a JSON object.")
    data = _normalise(payload)
    store = repos.store
    imported: list[str] = []

    with repos.transaction():
        for name, cls in RECORD_TYPES.items():
            if name not in data:
                continue
            raw = _decode(data[name], [])
            if not isinstance(raw, list):
                log.warning("Snapshot %s is not a list; skipped", name)
                continue
            records = decode_records(raw, cls.from_dict, name)
            write_json(store, KEYS[name], [r.to_dict() for r in records])
            imported.append(name)

        if "logistics_plan" in data:
            raw = _decode(data["logistics_plan"], {})
            if isinstance(raw, dict):
                plan = {}
                for pid, entry in raw.items():
                    if isinstance(entry, dict):
                        e = LogisticsPlanEntry.from_dict(entry)
                        e.product_id = str(pid)
                        plan[str(pid)] = e.to_dict()
                write_json(store, KEYS["logistics_plan"], plan)
                imported.append("logistics_plan")

        for name in TEXT_KEYS:
            if name in data:
                write_text(store, KEYS[name], data[name] if isinstance(data[name], str) else "")
                imported.append(name)

    log.info("Imported %s", ", ".join(imported) or "nothing")
    return imported
