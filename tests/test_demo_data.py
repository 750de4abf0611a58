from printshop.models import OrderStatus
from printshop.services.demo_data import DEFAULT_PRODUCTS, ensure_reference_data, load_demo_data, wipe_all
from printshop.services.ledgers import list_unpaid_writings
from printshop.services.products import upsert_product


def test_reference_data_never_overwrites(repos):
    ensure_reference_data(repos)
    assert len(repos.products.list()) == len(DEFAULT_PRODUCTS)
    assert repos.categories.is_initialized()

    upsert_product(repos, {"id": "101", "name": "Beee", "quantity": 99})
    ensure_reference_data(repos)
    assert repos.products.get("101").quantity == 99


def test_demo_data_walks_orders_through_lifecycle(repos):
    load_demo_data(repos)

    orders = repos.orders.list()
    statuses = [o.status for o in orders]
    assert len(orders) == 6
    assert statuses.count(OrderStatus.COMPLETED) == 2
    assert statuses.count(OrderStatus.DELIVERED) == 1
    assert len(list_unpaid_writings(repos)) == 1
    assert any(i.is_custom for o in orders for i in o.items)


def test_wipe_all_clears_every_key(repos):
    load_demo_data(repos)
    wipe_all(repos)
    assert repos.store.keys() == []
