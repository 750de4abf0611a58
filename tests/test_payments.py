import pytest

from printshop.models import OrderStatus, PaymentDetails, PaymentMethod, PaymentStatus
from printshop.services.ledgers import add_partial_payment
from printshop.services.orders import complete_order, create_order, edit_order, get_order, update_order_status
from printshop.services.payments import PaymentValidationError, build_payment_details, order_balance
from printshop.utils import money_eq, money_gte, to_money


@pytest.fixture
def order_500(repos, add_product, line):
    add_product("p1", quantity=10)
    return create_order(repos, customer_name="Vikram", items=[line("p1", 5, price=100)])


def test_partial_covering_total_is_recorded_as_paid(repos, order_500):
    complete_order(repos, order_500.id, payment_status=PaymentStatus.PARTIAL, amount=500)

    stored = get_order(repos, order_500.id)
    assert stored.status == OrderStatus.COMPLETED
    assert stored.payment_details.status == PaymentStatus.PAID
    assert stored.payment_details.total_paid == 500.0


def test_split_must_match_total(repos, order_500):
    with pytest.raises(PaymentValidationError):
        complete_order(repos, order_500.id, split=True, cash_amount=200, online_amount=200)

    assert get_order(repos, order_500.id).status == OrderStatus.PENDING
    assert repos.products.get("p1").quantity == 10


def test_split_payment_recorded(repos, order_500):
    done = complete_order(repos, order_500.id, split=True, cash_amount=200, online_amount=300)
    details = done.payment_details
    assert details.method == PaymentMethod.SPLIT
    assert (details.cash_amount, details.online_amount, details.total_paid) == (200.0, 300.0, 500.0)
    assert details.status == PaymentStatus.PAID


def test_partial_needs_positive_amount():
    with pytest.raises(PaymentValidationError):
        build_payment_details(500, PaymentStatus.PARTIAL, amount=0)


def test_unpaid_records_nothing():
    details = build_payment_details(500, "unpaid", method=PaymentMethod.ONLINE)
    assert details.method == PaymentMethod.NONE
    assert details.total_paid == 0.0
    assert details.status == PaymentStatus.UNPAID


def test_full_payment_defaults_to_order_total():
    details = build_payment_details(120.5, PaymentStatus.PAID, method=PaymentMethod.ONLINE)
    assert details.online_amount == 120.5
    assert details.cash_amount == 0.0


def test_balance_includes_partial_payments(repos, order_500):
    complete_order(repos, order_500.id, payment_status=PaymentStatus.PARTIAL, amount=200, method=PaymentMethod.CASH)
    order = get_order(repos, order_500.id)
    assert order.payment_details.status == PaymentStatus.PARTIAL

    bal = order_balance(order, repos.partial_payments.list())
    assert (bal.paid, bal.remaining, bal.is_settled) == (200.0, 300.0, False)

    add_partial_payment(repos, order.id, 300, "ONLINE")
    bal = order_balance(order, repos.partial_payments.list())
    assert bal.remaining == 0.0
    assert bal.is_settled


def test_money_helpers_compare_in_cents():
    assert money_eq(0.1 + 0.2, 0.3)
    assert money_gte(99.999, 100)
    assert not money_gte(99.98, 99.99)
    assert to_money(float("nan")) == 0.0
    assert to_money(-5) == 0.0


def test_status_change_promotes_partial_covering_total(repos, order_500):
    details = PaymentDetails(method=PaymentMethod.CASH, cash_amount=500, total_paid=500, status=PaymentStatus.PARTIAL)

    update_order_status(repos, order_500.id, OrderStatus.COMPLETED, details)

    stored = get_order(repos, order_500.id).payment_details
    assert stored.status == PaymentStatus.PAID
    assert stored.total_paid == 500.0


def test_status_change_rejects_mismatched_split(repos, order_500):
    details = PaymentDetails(
        method=PaymentMethod.SPLIT, cash_amount=200, online_amount=200, total_paid=400, status=PaymentStatus.PAID
    )

    with pytest.raises(PaymentValidationError):
        update_order_status(repos, order_500.id, OrderStatus.COMPLETED, details)

    assert get_order(repos, order_500.id).status == OrderStatus.PENDING
    assert repos.products.get("p1").quantity == 10


def test_editing_completed_order_rederives_payment_status(repos, add_product, line):
    add_product("p2", quantity=10)
    order = create_order(repos, customer_name="Sneha", items=[line("p2", 2)])
    complete_order(repos, order.id)

    edited = edit_order(repos, order.id, items=[line("p2", 5)])

    assert edited.total_amount == 100.0
    assert edited.payment_details.status == PaymentStatus.PARTIAL
    assert edited.payment_details.total_paid == 40.0
    assert order_balance(edited).remaining == 60.0

    back = edit_order(repos, order.id, items=[line("p2", 2)])
    assert back.payment_details.status == PaymentStatus.PAID
