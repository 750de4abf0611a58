import pytest

from printshop.services.ledgers import (
    add_category,
    add_expense,
    add_partial_payment,
    add_split_partial_payment,
    add_unpaid_writing,
    assign_category,
    delete_category,
    delete_manual_need,
    get_category_for_order,
    get_notes,
    list_categories,
    list_manual_needs,
    list_unpaid_writings,
    mark_writing_paid,
    partial_payments_for_order,
    remove_category_from_order,
    save_notes,
    unpaid_total,
    upsert_manual_need,
)
from printshop.services.orders import create_order
from printshop.services.payments import PaymentValidationError


@pytest.fixture
def order(repos, add_product, line):
    add_product("p1", quantity=10)
    return create_order(repos, customer_name="Ananya", items=[line("p1", 3, price=40)], note="collect friday")


def test_manual_need_is_one_per_product(repos):
    first = upsert_manual_need(repos, "p1", 5, "exam week")
    second = upsert_manual_need(repos, "p1", "8")

    needs = list_manual_needs(repos)
    assert len(needs) == 1
    assert needs[0].id == first.id == second.id
    assert needs[0].total_required == 8
    assert needs[0].note == ""

    assert delete_manual_need(repos, first.id) is True
    assert list_manual_needs(repos) == []


def test_default_categories_exist_before_first_save(repos):
    assert [c.name for c in list_categories(repos)] == ["Unpaid", "Urgent", "Regular"]


def test_unpaid_tag_creates_writing_once(repos, order):
    writing = assign_category(repos, order.id, "cat_unpaid")

    assert writing is not None
    assert writing.title == f"Order #{order.id[:5]} - Ananya"
    assert writing.amount == 120.0
    assert writing.description == "Auto-generated from Unpaid category. Note: collect friday"
    assert writing.related_order_id == order.id

    assign_category(repos, order.id, "cat_urgent")
    assert assign_category(repos, order.id, "cat_unpaid") is None
    assert len(list_unpaid_writings(repos)) == 1
    assert get_category_for_order(repos, order.id).name == "Unpaid"


def test_other_tags_create_no_writing(repos, order):
    assert assign_category(repos, order.id, "cat_regular") is None
    assert list_unpaid_writings(repos) == []

    remove_category_from_order(repos, order.id)
    assert get_category_for_order(repos, order.id) is None


def test_deleting_category_unlinks_orders(repos, order):
    cat = add_category(repos, "Wholesale", "green")
    assign_category(repos, order.id, cat.id)

    assert delete_category(repos, cat.id) is True
    assert get_category_for_order(repos, order.id) is None
    assert "Wholesale" not in [c.name for c in list_categories(repos)]


def test_unpaid_writings_total_and_mark_paid(repos):
    a = add_unpaid_writing(repos, title="Xerox 200 pages", amount=200)
    add_unpaid_writing(repos, title="Binding", amount="35.5")

    assert unpaid_total(list_unpaid_writings(repos)) == 235.5
    mark_writing_paid(repos, a.id)
    assert unpaid_total(list_unpaid_writings(repos)) == 35.5
    assert [w.title for w in list_unpaid_writings(repos, "paid")] == ["Xerox 200 pages"]

    with pytest.raises(ValueError):
        add_unpaid_writing(repos, title=" ", amount=1)


def test_partial_payments(repos, order):
    with pytest.raises(PaymentValidationError):
        add_partial_payment(repos, order.id, 0)
    with pytest.raises(ValueError):
        add_partial_payment(repos, "missing", 10)

    add_partial_payment(repos, order.id, 20, "online", reference="UPI-1")
    created = add_split_partial_payment(repos, order.id, 10, 0)

    assert len(created) == 1
    payments = partial_payments_for_order(repos, order.id)
    assert [(p.amount, p.method) for p in payments] == [(20.0, "ONLINE"), (10.0, "CASH")]


def test_expense_amount_must_be_positive(repos):
    with pytest.raises(ValueError):
        add_expense(repos, "Toner", 0)
    assert add_expense(repos, "Toner", 450, category="Supplies").amount == 450.0


def test_notes(repos):
    save_notes(repos, "call binder")
    save_notes(repos, "A4 ream x5", which="needs")
    assert get_notes(repos) == "call binder"
    assert get_notes(repos, "needs") == "A4 ream x5"
    with pytest.raises(ValueError):
        get_notes(repos, "other")
