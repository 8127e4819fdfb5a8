# Overview: Payment step that turns a non-empty cart into a sale draft and commits it.

"""
Checkout Service

WHY: Collect exactly the payment information needed to close out a cart.
Validation happens here, before any database write, so a blocked checkout
leaves no trace (no sale, no stock or customer change, cart untouched).

SINGLE METHOD: cash needs an amount received >= total and reports change;
credit/debit/pix pay exactly the total.

SPLIT PAYMENT: a list of entries whose applied amounts add up to the total.
Non-cash entries are applied first, in the order given, and none may exceed
what is still owed. At most one cash entry covers the remainder and is the
only tender that may over-tender (the excess is the change).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..wire import money_to_cents
from ..validation import ValidationError
from .cart import Cart
from .sales_service import (
    PAYMENT_CASH,
    PAYMENT_CREDIT,
    PAYMENT_DEBIT,
    PAYMENT_PIX,
    VALID_PAYMENT_METHODS,
    PaymentEntry,
    SaleDraft,
    SaleDraftItem,
    commit_sale,
)


class CheckoutError(Exception):
    """Raised when the payment step blocks confirmation."""


# Methods offered by the single-method flow
PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_CREDIT, PAYMENT_DEBIT, PAYMENT_PIX)

MSG_EMPTY_CART = "The cart is empty."
MSG_CASH_INSUFFICIENT = "Amount received is insufficient or missing."


@dataclass
class CheckoutResult:
    draft: SaleDraft
    change_cents: int


def _draft_items(cart: Cart) -> list[SaleDraftItem]:
    return [
        SaleDraftItem(
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price_cents=line.unit_price_cents,
        )
        for line in cart.lines
    ]


def _received_cents(amount_received) -> int:
    if amount_received is None or amount_received == "":
        raise CheckoutError(MSG_CASH_INSUFFICIENT)
    try:
        return money_to_cents(amount_received, "amountReceived")
    except ValidationError:
        raise CheckoutError(MSG_CASH_INSUFFICIENT)


def _single_payment(total_cents: int, method: str | None, amount_received, transaction_id: str | None):
    if method not in PAYMENT_METHODS:
        raise CheckoutError(f"Select a payment method ({', '.join(PAYMENT_METHODS)}).")

    if method == PAYMENT_CASH:
        received = _received_cents(amount_received)
        if received < total_cents:
            raise CheckoutError(MSG_CASH_INSUFFICIENT)
        change = received - total_cents
        return [PaymentEntry(method=PAYMENT_CASH, amount_cents=total_cents, change_cents=change)], change

    return [PaymentEntry(method=method, amount_cents=total_cents, transaction_id=transaction_id)], 0


def _split_payments(total_cents: int, entries: list[dict]):
    if not entries:
        raise CheckoutError("At least one payment is required.")

    non_cash = []
    cash = None
    for entry in entries:
        method = entry.get("method")
        amount = entry.get("amount_cents")
        if method not in VALID_PAYMENT_METHODS:
            raise CheckoutError(f"Invalid payment method: {method}")
        if amount is None or amount <= 0:
            raise CheckoutError("Each payment amount must be greater than zero.")
        if method == PAYMENT_CASH:
            if cash is not None:
                raise CheckoutError("Only one cash payment is allowed.")
            cash = entry
        else:
            non_cash.append(entry)

    payments = []
    remaining = total_cents
    for entry in non_cash:
        if entry["amount_cents"] > remaining:
            raise CheckoutError("Card and other payments cannot exceed the amount due.")
        remaining -= entry["amount_cents"]
        payments.append(PaymentEntry(
            method=entry["method"],
            amount_cents=entry["amount_cents"],
            transaction_id=entry.get("transaction_id"),
        ))

    change = 0
    if cash is not None:
        if remaining == 0:
            raise CheckoutError("Cash payment is not needed; the total is already covered.")
        if cash["amount_cents"] < remaining:
            raise CheckoutError(MSG_CASH_INSUFFICIENT)
        change = cash["amount_cents"] - remaining
        payments.append(PaymentEntry(method=PAYMENT_CASH, amount_cents=remaining, change_cents=change))
        remaining = 0

    if remaining != 0:
        raise CheckoutError("Payments do not cover the total.")

    return payments, change


def prepare_checkout(
    cart: Cart,
    *,
    user_id: int,
    payment_method: str | None = None,
    amount_received=None,
    payments: list[dict] | None = None,
    customer_id: int | None = None,
    date: datetime | None = None,
    transaction_id: str | None = None,
) -> CheckoutResult:
    """
    Validate the payment step and build the sale draft.

    ``payments`` holds storage-shaped entries (method, amount_cents,
    transaction_id); when given, it replaces the single-method fields.
    Raises CheckoutError without side effects.
    """
    if cart.is_empty():
        raise CheckoutError(MSG_EMPTY_CART)

    total = cart.total_cents
    if payments is not None:
        entries, change = _split_payments(total, payments)
    else:
        entries, change = _single_payment(total, payment_method, amount_received, transaction_id)

    draft = SaleDraft(
        items=_draft_items(cart),
        payments=entries,
        user_id=user_id,
        customer_id=customer_id,
        date=date,
        total_cents=total,
    )
    return CheckoutResult(draft=draft, change_cents=change)


def checkout(cart: Cart, **kwargs) -> tuple[dict, int]:
    """
    Confirm a checkout: validate, commit the sale atomically, then clear the cart.

    The cart is only cleared when the commit succeeded.
    Returns (stored sale row, change_cents).
    """
    result = prepare_checkout(cart, **kwargs)
    sale = commit_sale(result.draft)
    cart.clear()
    return sale, result.change_cents
