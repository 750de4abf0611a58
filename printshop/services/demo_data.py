from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

from printshop.models import OrderStatus, PaymentMethod, PaymentStatus, Product
from printshop.repos import KEYS
from printshop.services.depots import set_depot_split
from printshop.services.ledgers import DEFAULT_CATEGORIES, assign_category
from printshop.services.orders import complete_order, create_order, update_order_status


DEFAULT_PRODUCTS = [
    ("101", "Beee", "Practical file", 45, 75, 6),
    ("102", "Chemistry (45page)", "Practical file", 34, 65, 5),
    ("103", "Chemistry 39 page", "Practical file", 30, 65, 1),
    ("104", "Chemistry 39page sprial", "Practical file", 45, 80, 1),
    ("105", "Civil", "General", 29, 60, 2),
    ("106", "Manufacturing", "Practical file", 57, 85, 3),
    ("107", "Mechanical file", "Practical file", 32, 65, 3),
    ("108", "Physics file", "Practical file", 46, 75, 1),
    ("109", "Digital system", "Practical file", 33, 60, 1),
    ("110", "OOPM", "Practical file", 32, 55, 2),
    ("111", "CRT file", "General", 9, 20, 0),
    ("112", "English with sprial", "Practical file", 73, 105, 10),
    ("113", "Computer", "Practical file", 21, 35, 2),
    ("114", "Beee with sprial", "Practical file", 60, 90, 0),
    ("115", "Chemistry (49 with sprial )", "Practical file", 50, 80, 1),
    ("116", "English file", "Practical file", 58, 90, 0),
]
DEFAULT_MIN_STOCK = 2

DEMO_CUSTOMERS = ["Aarav", "Priya", "Rohan", "Sneha", "Vikram", "Ananya"]


def default_catalog() -> list[Product]:
    return [
        Product(id=pid, name=name, category=cat, cost_price=float(cost), selling_price=float(price), quantity=qty, min_stock=DEFAULT_MIN_STOCK)
        for pid, name, cat, cost, price, qty in DEFAULT_PRODUCTS
    ]


def ensure_reference_data(repos) -> None:
    """Seed the catalog and order categories on a fresh install (never overwrites)."""
    with repos.transaction():
        if not repos.products.is_initialized():
            repos.products.save_all(default_catalog())
        if not repos.categories.is_initialized():
            repos.categories.save_all(list(DEFAULT_CATEGORIES))


def wipe_all(repos) -> None:
    # Keep nothing: every logical key is removed.
    with repos.transaction():
        for key in KEYS.values():
            repos.store.delete(key)


def load_demo_data(repos, *, seed: int = 7) -> None:
    random.seed(seed)
    ensure_reference_data(repos)

    products = repos.products.list()
    if not products:
        return

    # Spread part of the stock into the second depot
    for p in products[:6]:
        if p.quantity >= 2:
            set_depot_split(repos, p.id, p.quantity - p.quantity // 2, p.quantity // 2)

    base = datetime.now(timezone.utc) - timedelta(days=3)
    created = []
    for i in range(6):
        picks = random.sample(products, k=2)
        items = [
            {
                "productId": p.id,
                "productName": p.name,
                "quantity": random.randint(1, 4),
                "costPriceSnapshot": p.cost_price,
                "sellingPriceSnapshot": p.selling_price,
            }
            for p in picks
        ]
        if i % 3 == 0:
            items.append(
                {
                    "productName": "Custom Print",
                    "quantity": random.randint(10, 40),
                    "costPriceSnapshot": 1,
                    "sellingPriceSnapshot": 2,
                    "isCustom": True,
                }
            )
        order = create_order(
            repos,
            customer_name=random.choice(DEMO_CUSTOMERS),
            customer_phone=f"98{random.randint(10000000, 99999999)}",
            items=items,
            date=(base + timedelta(hours=11 * i)).replace(microsecond=0).isoformat(),
        )
        created.append(order)

    # A few orders move along the lifecycle
    complete_order(repos, created[0].id, payment_status=PaymentStatus.PAID, method=PaymentMethod.CASH)
    complete_order(
        repos,
        created[1].id,
        payment_status=PaymentStatus.PARTIAL,
        method=PaymentMethod.ONLINE,
        amount=round(created[1].total_amount / 2, 2),
    )
    update_order_status(repos, created[2].id, OrderStatus.DELIVERED)
    assign_category(repos, created[2].id, "cat_unpaid")
