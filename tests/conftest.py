"""
Pytest fixtures for the print shop core.

Every test gets a fresh in-memory store; tests that care about the sqlite
backend ask for ``sqlite_repos`` instead.
"""

import pytest

from printshop.db import connect
from printshop.models import DepotStock, Product
from printshop.repos import open_repos
from printshop.store import MemoryStore, SqliteStore


@pytest.fixture(scope='function')
def store():
    return MemoryStore()


@pytest.fixture(scope='function')
def repos(store):
    return open_repos(store)


@pytest.fixture(scope='function')
def sqlite_store(tmp_path):
    conn = connect(tmp_path / "test.db")
    yield SqliteStore(conn)
    conn.close()


@pytest.fixture(scope='function')
def sqlite_repos(sqlite_store):
    return open_repos(sqlite_store)


@pytest.fixture(scope='function')
def add_product(repos):
    """Save a product straight into storage (no validation)."""

    def _add(pid, quantity=0, name=None, cost=10.0, price=20.0, min_stock=0, category="General"):
        product = Product(
            id=pid,
            name=name or f"Product {pid}",
            category=category,
            cost_price=cost,
            selling_price=price,
            quantity=quantity,
            min_stock=min_stock,
        )
        products = [p for p in repos.products.list() if p.id != pid]
        repos.products.save_all(products + [product])
        return product

    return _add


@pytest.fixture(scope='function')
def set_split(repos):
    """Write a depot record directly, leaving the product quantity alone."""

    def _set(pid, depot_a, depot_b):
        stocks = [s for s in repos.depots.list() if s.product_id != pid]
        repos.depots.save_all(stocks + [DepotStock(product_id=pid, depot_a=depot_a, depot_b=depot_b)])

    return _set


@pytest.fixture(scope='function')
def line():
    """Order line dict for a catalog product."""

    def _line(pid, quantity, price=20.0, cost=10.0, name=None):
        return {
            "productId": pid,
            "productName": name or f"Product {pid}",
            "quantity": quantity,
            "costPriceSnapshot": cost,
            "sellingPriceSnapshot": price,
        }

    return _line
