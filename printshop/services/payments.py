from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional

from printshop.models import Order, PartialPayment, PaymentDetails, PaymentMethod, PaymentStatus, parse_enum
from printshop.utils import money_eq, money_gte, to_money

log = logging.getLogger("printshop.payments")


class PaymentValidationError(ValueError):
    pass


@dataclass
class Balance:
    total: float
    paid: float
    remaining: float

    @property
    def is_settled(self) -> bool:
        return not money_gte(self.remaining, 0.01)


def build_payment_details(
    total_amount: float,
    status,
    *,
    method=PaymentMethod.CASH,
    amount=None,
    cash_amount=0,
    online_amount=0,
    split: bool = False,
) -> PaymentDetails:
    """
    Payment snapshot recorded when an order is completed.

    - PAID with a split: cash + online must equal the order total, otherwise
      PaymentValidationError (nothing is mutated).
    - PARTIAL: an entered amount covering the total is promoted to PAID; a
      zero amount is rejected.
    - UNPAID: nothing recorded, method NONE.

    ``amount`` defaults to the order total for a non-split payment.
    """
    total = to_money(total_amount)
    status = parse_enum(PaymentStatus, status, PaymentStatus.PAID)
    method = parse_enum(PaymentMethod, method, PaymentMethod.CASH)
    cash = to_money(cash_amount)
    online = to_money(online_amount)
    entered = round(cash + online, 2) if split else to_money(total if amount is None else amount)

    if status == PaymentStatus.UNPAID:
        return PaymentDetails(method=PaymentMethod.NONE, status=PaymentStatus.UNPAID)

    if status == PaymentStatus.PAID and split and not money_eq(entered, total):
        raise PaymentValidationError(f"Total split amount must match order total ({total:.2f}).")

    if status == PaymentStatus.PARTIAL:
        if money_gte(entered, total):
            log.info("Partial payment of %.2f covers total %.2f; recording as PAID", entered, total)
            status = PaymentStatus.PAID
        elif entered <= 0:
            raise PaymentValidationError("For partial payment, amount must be greater than 0.")

    if split:
        return PaymentDetails(
            method=PaymentMethod.SPLIT,
            cash_amount=cash,
            online_amount=online,
            total_paid=entered,
            status=status,
        )
    if method in (PaymentMethod.SPLIT, PaymentMethod.NONE):
        method = PaymentMethod.CASH
    return PaymentDetails(
        method=method,
        cash_amount=entered if method == PaymentMethod.CASH else 0.0,
        online_amount=entered if method == PaymentMethod.ONLINE else 0.0,
        total_paid=entered,
        status=status,
    )


def check_payment_details(details: PaymentDetails, total_amount: float) -> PaymentDetails:
    """
    Apply the completion rules to a caller-built payment snapshot: a PAID
    split must add up to the order total, and a PARTIAL payment covering the
    total is recorded as PAID.
    """
    total = to_money(total_amount)
    if details.status == PaymentStatus.PAID and details.method == PaymentMethod.SPLIT:
        if not money_eq(details.cash_amount + details.online_amount, total):
            raise PaymentValidationError(f"Total split amount must match order total ({total:.2f}).")
    if details.status == PaymentStatus.PARTIAL and money_gte(details.total_paid, total):
        log.info("Partial payment of %.2f covers total %.2f; recording as PAID", details.total_paid, total)
        return replace(details, status=PaymentStatus.PAID)
    return details


def settle_status(details: PaymentDetails, total_amount: float) -> PaymentDetails:
    """Re-derive PAID / PARTIAL after the order total changed. UNPAID and zero payments are left alone."""
    if details.status == PaymentStatus.UNPAID or details.total_paid <= 0:
        return details
    status = PaymentStatus.PAID if money_gte(details.total_paid, total_amount) else PaymentStatus.PARTIAL
    return details if status == details.status else replace(details, status=status)

def partials_for(partials: list[PartialPayment], order_id: str) -> list[PartialPayment]:
    return [p for p in partials if p.order_id == order_id]


def order_balance(order: Order, partials: Optional[list[PartialPayment]] = None) -> Balance:
    """Completion payment plus every partial payment recorded against the order."""
    paid = order.payment_details.total_paid + sum(p.amount for p in partials_for(partials or [], order.id))
    paid = round(paid, 2)
    return Balance(total=order.total_amount, paid=paid, remaining=round(max(0.0, order.total_amount - paid), 2))
