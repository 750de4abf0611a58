import json

import pytest

from printshop.repos import open_repos
from printshop.services.backup import export_snapshot, import_snapshot
from printshop.services.depots import set_depot_split
from printshop.services.ledgers import save_notes
from printshop.services.orders import create_order
from printshop.services.planner import refresh_requirements
from printshop.store import MemoryStore


def test_snapshot_moves_data_between_stores(repos, add_product, line):
    add_product("p1", quantity=4)
    set_depot_split(repos, "p1", 1, 3)
    create_order(repos, customer_name="Aarav", items=[line("p1", 2)])
    refresh_requirements(repos)
    save_notes(repos, "reorder spiral binds")

    snapshot = json.loads(json.dumps(export_snapshot(repos)))
    target = open_repos(MemoryStore())
    imported = import_snapshot(target, snapshot)

    assert "products" in imported and "logistics_plan" in imported
    assert target.products.list() == repos.products.list()
    assert target.orders.list() == repos.orders.list()
    assert target.depots.list() == repos.depots.list()
    assert target.plans.load() == repos.plans.load()
    assert target.notes.get() == "reorder spiral binds"


def test_browser_export_with_legacy_keys(repos):
    payload = {
        "print_bazar_products_v4": json.dumps([{"id": "101", "name": "Beee", "quantity": 6, "sellingPrice": 75}]),
        "print_bazar_products": json.dumps([{"id": "old", "name": "Old list"}]),
        "print_bazar_store_stock": json.dumps([{"productId": "101", "deepakStock": 4, "dimpleStock": 2}]),
        "print_bazar_logistics_plan": json.dumps({"101": {"carryDeepak": 1, "carryDimple": 2}}),
        "print_bazar_rough_work": "collect payment from hostel",
        "unrelated_key": "ignored",
    }

    imported = import_snapshot(repos, payload)

    assert [p.id for p in repos.products.list()] == ["101"]
    stock = repos.depots.get("101")
    assert (stock.depot_a, stock.depot_b) == (4, 2)
    plan = repos.plans.load()["101"]
    assert (plan.carry_from_a, plan.carry_from_b) == (1, 2)
    assert repos.notes.get() == "collect payment from hostel"
    assert "orders" not in imported


def test_import_leaves_missing_collections_alone(repos, add_product):
    add_product("p1", quantity=4)
    import_snapshot(repos, {"expenses": [{"description": "Toner", "amount": 450}]})

    assert [p.id for p in repos.products.list()] == ["p1"]
    assert repos.expenses.list()[0].amount == 450.0


def test_import_rejects_non_object(repos):
    with pytest.raises(ValueError):
        import_snapshot(repos, ["not", "a", "snapshot"])
