import pytest

from printshop.models import DepotStock, LogisticsPlanEntry, Order, OrderItem, OrderStatus, Product
from printshop.services.demand import aggregate_demand
from printshop.services.depots import set_depot_split
from printshop.services.orders import create_order
from printshop.services.planner import (
    compute_requirements,
    default_carry,
    merge_plans,
    refresh_requirements,
    reset_logistics_plan,
    update_logistics_entry,
)


def _order(oid, items, status=OrderStatus.PENDING):
    return Order(id=oid, items=items, status=status)


def _item(pid, qty, custom=False):
    return OrderItem(product_id=pid, product_name=pid, quantity=qty, selling_price_snapshot=10.0, is_custom=custom)


def test_demand_counts_only_pending_catalog_lines():
    orders = [
        _order("o1", [_item("p1", 3), _item("c1", 50, custom=True)]),
        _order("o2", [_item("p1", 2), _item("p2", 1)]),
        _order("o3", [_item("p1", 9)], status=OrderStatus.COMPLETED),
        _order("o4", [_item("p2", 4)], status=OrderStatus.DELIVERED),
    ]
    assert aggregate_demand(orders) == {"p1": 5, "p2": 1}


def test_basic_shortage():
    products = [Product(id="p1", name="Beee", quantity=4)]
    orders = [_order("o1", [_item("p1", 10)])]

    report = compute_requirements(orders, products)

    row = report.row("p1")
    assert (row.ordered_qty, row.needed, row.carry_from_a, row.carry_from_b) == (10, 6, 0, 0)
    assert report.shortages == [row]


def test_carry_plan_from_two_depots():
    products = [Product(id="p1", name="Beee", quantity=5)]
    stocks = [DepotStock(product_id="p1", depot_a=2, depot_b=3)]
    orders = [_order("o1", [_item("p1", 5)])]

    report = compute_requirements(orders, products, stocks)

    row = report.row("p1")
    assert row.needed == 0
    assert (row.carry_from_a, row.carry_from_b) == (2, 3)
    assert report.plan["p1"] == LogisticsPlanEntry(product_id="p1", carry_from_a=2, carry_from_b=3)
    assert [r.product_id for r in report.pickup_from_b] == ["p1"]


def test_default_carry_prefers_depot_a():
    entry = default_carry("p1", 3, 10, 6, 4)
    assert (entry.carry_from_a, entry.carry_from_b) == (3, 0)


def test_products_without_demand_are_not_reported():
    products = [Product(id="p1", name="Beee", quantity=4), Product(id="p2", name="Civil", quantity=1)]
    report = compute_requirements([_order("o1", [_item("p2", 1)])], products)
    assert [r.product_id for r in report.rows] == ["p2"]


def test_demand_for_unknown_product_is_all_shortage():
    report = compute_requirements([_order("o1", [_item("ghost", 4)])], [])
    row = report.row("ghost")
    assert row.in_catalog is False
    assert (row.current_stock, row.needed) == (0, 4)


def test_merge_plans_existing_entries_win():
    existing = {"p1": LogisticsPlanEntry(product_id="p1", carry_from_a=0, carry_from_b=1)}
    computed = {
        "p1": LogisticsPlanEntry(product_id="p1", carry_from_a=5),
        "p2": LogisticsPlanEntry(product_id="p2", carry_from_a=2),
    }
    merged = merge_plans(existing, computed)
    assert merged["p1"].carry_from_b == 1
    assert merged["p1"].carry_from_a == 0
    assert merged["p2"].carry_from_a == 2


def test_refresh_persists_defaults_and_is_idempotent(repos, add_product, line):
    add_product("p1", quantity=5)
    create_order(repos, customer_name="Aarav", items=[line("p1", 3)])

    first = refresh_requirements(repos)
    stored = repos.plans.load()
    second = refresh_requirements(repos)

    assert stored == first.plan
    assert repos.plans.load() == stored
    assert [r.to_dict() for r in second.rows] == [r.to_dict() for r in first.rows]


def test_refresh_keeps_operator_edits(repos, add_product, set_split, line):
    add_product("p1", quantity=5)
    set_split("p1", 2, 3)
    create_order(repos, customer_name="Aarav", items=[line("p1", 5)])
    refresh_requirements(repos)

    update_logistics_entry(repos, "p1", "carryFromB", 1)
    report = refresh_requirements(repos)

    assert (report.row("p1").carry_from_a, report.row("p1").carry_from_b) == (2, 1)


def test_update_entry_clamps_to_depot_stock(repos, add_product, set_split):
    add_product("p1", quantity=5)
    set_split("p1", 2, 3)

    assert update_logistics_entry(repos, "p1", "carryFromA", 10).carry_from_a == 2
    assert update_logistics_entry(repos, "p1", "carryFromB", "abc").carry_from_b == 0
    assert repos.plans.load()["p1"].carry_from_a == 2


def test_update_entry_rejects_unknown_field(repos, add_product):
    add_product("p1", quantity=5)
    with pytest.raises(ValueError):
        update_logistics_entry(repos, "p1", "carryFromC", 1)


def test_reset_requires_confirmation(repos, add_product, line):
    add_product("p1", quantity=5)
    create_order(repos, customer_name="Aarav", items=[line("p1", 3)])
    update_logistics_entry(repos, "p1", "carryFromA", 1)

    with pytest.raises(ValueError):
        reset_logistics_plan(repos)
    assert repos.plans.load()["p1"].carry_from_a == 1

    plan = reset_logistics_plan(repos, confirm=True)
    assert plan["p1"].carry_from_a == 3
    assert repos.plans.load()["p1"].carry_from_a == 3


def test_report_caps_carry_at_current_depot_stock(repos, add_product, line):
    add_product("p1", quantity=0)
    set_depot_split(repos, "p1", 2, 3)
    create_order(repos, customer_name="Aarav", items=[line("p1", 5)])
    refresh_requirements(repos)

    set_depot_split(repos, "p1", 5, 0)
    report = refresh_requirements(repos)

    row = report.row("p1")
    assert (row.depot_a, row.depot_b) == (5, 0)
    assert (row.carry_from_a, row.carry_from_b) == (2, 0)
    assert report.pickup_from_b == []
    assert repos.plans.load()["p1"].carry_from_b == 3
