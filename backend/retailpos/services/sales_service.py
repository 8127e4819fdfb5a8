"""
Sales Service - sale persistence and atomic commit

WHY: A sale and its downstream effects (stock, customer loyalty) must
appear atomic to every observer. commit_sale writes the header, the items,
the payments, the stock decrements and the customer aggregate increments in
one transaction, then re-reads the stored aggregate so callers always get
the canonical shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Customer, Product, Sale, SaleItem, SalePayment, User
from ..time_utils import day_bounds, utcnow
from ..validation import NotFoundError, ValidationError
from . import reconciliation_service
from .concurrency import lock_for_update, run_with_retry


PAYMENT_CASH = "cash"
PAYMENT_CREDIT = "credit"
PAYMENT_DEBIT = "debit"
PAYMENT_PIX = "pix"
PAYMENT_OTHER = "other"

VALID_PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_CREDIT, PAYMENT_DEBIT, PAYMENT_PIX, PAYMENT_OTHER)

SALE_MUTABLE_FIELDS = {"date", "customer_id"}



@dataclass
class SaleDraftItem:
    product_id: int
    quantity: int
    # None means "use the catalog price at commit time"
    unit_price_cents: int | None = None

    @property
    def subtotal_cents(self) -> int:
        return self.quantity * (self.unit_price_cents or 0)


@dataclass
class PaymentEntry:
    method: str
    amount_cents: int
    transaction_id: str | None = None
    change_cents: int = 0


@dataclass
class SaleDraft:
    items: list[SaleDraftItem]
    payments: list[PaymentEntry]
    user_id: int
    customer_id: int | None = None
    date: datetime | None = None
    points_earned: int | None = None
    total_cents: int | None = field(default=None)

    def computed_total_cents(self) -> int:
        return sum(item.subtotal_cents for item in self.items)


def calculate_points(total_cents: int, currency_unit: int | None = None) -> int | None:
    """One point per ``currency_unit`` of total, rounded down; None for a zero total."""
    if total_cents <= 0:
        return None
    if currency_unit is None:
        currency_unit = current_app.config.get("POINTS_CURRENCY_UNIT", 10)
    return total_cents // (currency_unit * 100)


def draft_from_wire(patch: dict, user_id: int) -> SaleDraft:
    """Build a draft from a ``wire.sale_from_wire`` patch (direct sale creation)."""
    items = []
    for raw in patch.get("items") or []:
        if raw.get("product_id") is None or raw.get("quantity") is None:
            raise ValidationError("Each item needs productId and quantity")
        item = SaleDraftItem(
            product_id=raw["product_id"],
            quantity=raw["quantity"],
            unit_price_cents=raw.get("unit_price_cents"),
        )
        if raw.get("subtotal_cents") is not None and item.unit_price_cents is not None:
            if raw["subtotal_cents"] != item.subtotal_cents:
                raise ValidationError("Item subtotal must equal quantity x price")
        items.append(item)

    payments = []
    for raw in patch.get("payments") or []:
        if not raw.get("method") or raw.get("amount_cents") is None:
            raise ValidationError("Each payment needs method and amount")
        payments.append(PaymentEntry(
            method=raw["method"],
            amount_cents=raw["amount_cents"],
            transaction_id=raw.get("transaction_id"),
            change_cents=raw.get("change_cents") or 0,
        ))

    return SaleDraft(
        items=items,
        payments=payments,
        user_id=user_id,
        customer_id=patch.get("customer_id"),
        date=patch.get("date"),
        points_earned=patch.get("points_earned"),
        total_cents=patch.get("total_cents"),
    )


def _resolve_draft(draft: SaleDraft) -> None:
    """Check references and fill catalog prices; raises before anything is written."""
    if not draft.items:
        raise ValidationError("Cannot create a sale with no items")

    for item in draft.items:
        if isinstance(item.quantity, bool) or not isinstance(item.quantity, int) or item.quantity <= 0:
            raise ValidationError("Item quantity must be a positive integer")
        product = db.session.query(Product).filter_by(id=item.product_id).first()
        if not product:
            raise NotFoundError(f"Product {item.product_id} not found")
        if not product.is_active:
            raise ValidationError(f"{product.name} is no longer available")
        if item.unit_price_cents is None:
            item.unit_price_cents = product.price_cents
        if item.unit_price_cents < 0:
            raise ValidationError("Item price must be >= 0")

    total = draft.computed_total_cents()
    if draft.total_cents is not None and draft.total_cents != total:
        raise ValidationError("Sale total must equal the sum of item subtotals")
    draft.total_cents = total

    for payment in draft.payments:
        if payment.method not in VALID_PAYMENT_METHODS:
            raise ValidationError(f"Invalid payment method: {payment.method}")
        if payment.amount_cents < 0 or payment.change_cents < 0:
            raise ValidationError("Payment amounts must be >= 0")
        if payment.change_cents and payment.method != PAYMENT_CASH:
            raise ValidationError("Only cash payments can give change")
    if draft.payments and sum(p.amount_cents for p in draft.payments) != total:
        raise ValidationError("Payments must add up to the sale total")

    points = calculate_points(total)
    if draft.points_earned is not None and draft.points_earned != points:
        raise ValidationError("pointsEarned is derived from the sale total")
    draft.points_earned = points

    if not db.session.query(User.id).filter_by(id=draft.user_id).first():
        raise ValidationError("Operator not found")

    if draft.customer_id is not None:
        if not db.session.query(Customer.id).filter_by(id=draft.customer_id).first():
            raise NotFoundError("Customer not found")


def commit_sale(draft: SaleDraft) -> dict:
    """
    Persist a sale aggregate and apply its side effects atomically.

    Order inside the transaction: header, items and payments, stock
    decrements, customer aggregates. Any failure rolls everything back.

    Raises:
        ValidationError / NotFoundError: bad draft, nothing written
        StockConflictError: a line is no longer covered by stock
    """
    def _op():
        _resolve_draft(draft)

        sale = Sale(
            date=draft.date or utcnow(),
            total_cents=draft.total_cents,
            points_earned=draft.points_earned,
            customer_id=draft.customer_id,
            user_id=draft.user_id,
        )
        db.session.add(sale)
        db.session.flush()  # ensure sale.id exists before dependents

        for position, item in enumerate(draft.items):
            db.session.add(SaleItem(
                sale_id=sale.id,
                position=position,
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price_cents=item.unit_price_cents,
                subtotal_cents=item.subtotal_cents,
            ))
        for payment in draft.payments:
            db.session.add(SalePayment(
                sale_id=sale.id,
                method=payment.method,
                amount_cents=payment.amount_cents,
                transaction_id=payment.transaction_id,
                change_cents=payment.change_cents,
            ))
        db.session.flush()

        reconciliation_service.decrement_stock(draft.items)
        if draft.customer_id is not None:
            reconciliation_service.apply_customer_contribution(
                draft.customer_id, draft.total_cents, draft.points_earned
            )

        db.session.commit()
        return sale.id

    try:
        sale_id = run_with_retry(_op)
    except reconciliation_service.StockConflictError as exc:
        current_app.logger.warning("Sale rejected: %s %s", exc, exc.details)
        raise

    current_app.logger.info("Sale %s committed (total_cents=%s)", sale_id, draft.total_cents)
    return get_sale(sale_id)


def _load_sale(sale_id: int) -> Sale | None:
    return (
        db.session.query(Sale)
        .options(selectinload(Sale.items), selectinload(Sale.payments))
        .filter(Sale.id == sale_id)
        .first()
    )


def get_sale(sale_id: int) -> dict:
    sale = _load_sale(sale_id)
    if not sale:
        raise NotFoundError("Sale not found")
    return sale.to_dict()


def list_sales(
    start: str | None = None,
    end: str | None = None,
    customer_id: int | None = None,
) -> list[dict]:
    start_dt, end_dt = day_bounds(start, end)
    query = db.session.query(Sale).options(selectinload(Sale.items), selectinload(Sale.payments))
    if start_dt:
        query = query.filter(Sale.date >= start_dt)
    if end_dt:
        query = query.filter(Sale.date <= end_dt)
    if customer_id is not None:
        query = query.filter(Sale.customer_id == customer_id)
    sales = query.order_by(Sale.date.desc(), Sale.id.desc()).all()
    return [sale.to_dict() for sale in sales]


def sales_by_customer(customer_id: int) -> list[dict]:
    return list_sales(customer_id=customer_id)


def sales_by_date_range(start: str, end: str) -> list[dict]:
    return list_sales(start=start, end=end)


def update_sale(sale_id: int, patch: dict) -> dict:
    """
    Correct a sale's date and/or customer.

    Items and payments are immutable. Moving a sale to another customer
    moves its contribution between the two customers' aggregates in the
    same transaction.
    """
    unknown = set(patch) - SALE_MUTABLE_FIELDS
    if unknown:
        raise ValidationError(f"Only date and customer can be changed on a sale (got: {', '.join(sorted(unknown))})")

    def _op():
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            raise NotFoundError("Sale not found")

        if "date" in patch:
            if patch["date"] is None:
                raise ValidationError("date cannot be null")
            sale.date = patch["date"]

        if "customer_id" in patch and patch["customer_id"] != sale.customer_id:
            new_customer_id = patch["customer_id"]
            if new_customer_id is not None:
                if not db.session.query(Customer.id).filter_by(id=new_customer_id).first():
                    raise NotFoundError("Customer not found")
            if sale.customer_id is not None:
                reconciliation_service.reverse_customer_contribution(
                    sale.customer_id, sale.total_cents, sale.points_earned
                )
            if new_customer_id is not None:
                reconciliation_service.apply_customer_contribution(
                    new_customer_id, sale.total_cents, sale.points_earned
                )
            sale.customer_id = new_customer_id

        db.session.commit()
        return sale.id

    return get_sale(run_with_retry(_op))


def delete_sale(sale_id: int) -> None:
    """Delete a sale, restoring stock and reversing the customer's aggregates (floored at 0)."""
    def _op():
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            raise NotFoundError("Sale not found")

        reconciliation_service.restore_stock(sale.items)
        if sale.customer_id is not None:
            reconciliation_service.reverse_customer_contribution(
                sale.customer_id, sale.total_cents, sale.points_earned
            )

        db.session.delete(sale)
        db.session.commit()

    run_with_retry(_op)
    current_app.logger.info("Sale %s deleted and reversed", sale_id)
