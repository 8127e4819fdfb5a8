# Overview: Stock and customer-aggregate side effects of committing, correcting, or deleting a sale.

"""
Post-sale reconciliation.

Every function here runs inside the caller's open transaction and never
commits: the sale header, its items and payments, the stock movements and
the customer aggregate changes are committed together by sales_service.

STOCK: decrements are conditional single-statement UPDATEs
(``stock = stock - q WHERE stock >= q``), so two concurrent checkouts of the
last unit cannot both succeed.

CUSTOMER AGGREGATES: increments and decrements are computed in SQL from the
current row value; reversals are floored at zero.
"""

from __future__ import annotations

from sqlalchemy import case, func, update

from ..extensions import db
from ..models import Customer, Product, Sale
from ..validation import ConflictError, NotFoundError


class StockConflictError(ConflictError):
    """Raised when one or more lines cannot be covered by current stock."""


def _quantities_by_product(items) -> dict[int, int]:
    totals: dict[int, int] = {}
    for item in items:
        totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
    return totals


def decrement_stock(items) -> None:
    """
    Take sold quantities out of stock.

    All lines are attempted so the error lists every product that is short;
    the caller rolls back the transaction on StockConflictError.
    """
    insufficient = []
    for product_id, qty in _quantities_by_product(items).items():
        stmt = (
            update(Product)
            .where(
                Product.id == product_id,
                Product.is_active.is_(True),
                Product.stock >= qty,
            )
            .values(stock=Product.stock - qty)
            .execution_options(synchronize_session=False)
        )
        result = db.session.execute(stmt)
        if result.rowcount != 1:
            on_hand = db.session.query(Product.stock).filter(Product.id == product_id).scalar()
            insufficient.append({
                "product_id": product_id,
                "requested_quantity": qty,
                "stock": on_hand,
            })

    if insufficient:
        raise StockConflictError(
            "Insufficient stock to complete sale",
            details={"items": insufficient},
        )


def restore_stock(items) -> None:
    """Put sold quantities back (sale deletion). Soft-deleted products are restored too."""
    for product_id, qty in _quantities_by_product(items).items():
        db.session.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + qty)
            .execution_options(synchronize_session=False)
        )


def apply_customer_contribution(customer_id: int, total_cents: int, points: int | None) -> None:
    result = db.session.execute(
        update(Customer)
        .where(Customer.id == customer_id)
        .values(
            total_purchases=Customer.total_purchases + 1,
            total_spent_cents=Customer.total_spent_cents + total_cents,
            points=Customer.points + (points or 0),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError(f"Customer {customer_id} not found")


def _floored(column, amount: int):
    return case((column >= amount, column - amount), else_=0)


def reverse_customer_contribution(customer_id: int, total_cents: int, points: int | None) -> None:
    # A customer deleted out from under the sale has nothing to reverse
    db.session.execute(
        update(Customer)
        .where(Customer.id == customer_id)
        .values(
            total_purchases=_floored(Customer.total_purchases, 1),
            total_spent_cents=_floored(Customer.total_spent_cents, total_cents),
            points=_floored(Customer.points, points or 0),
        )
        .execution_options(synchronize_session=False)
    )


def customer_totals_from_sales(customer_id: int) -> dict:
    count, spent, points = (
        db.session.query(
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_cents), 0),
            func.coalesce(func.sum(Sale.points_earned), 0),
        )
        .filter(Sale.customer_id == customer_id)
        .one()
    )
    return {
        "total_purchases": int(count or 0),
        "total_spent_cents": int(spent or 0),
        "points": int(points or 0),
    }


def recalculate_customer_totals(customer_id: int) -> dict:
    """
    Re-derive a customer's aggregates from their full sale history.

    Manual repair for drift; running it twice yields the same values.
    """
    customer = db.session.query(Customer).filter_by(id=customer_id).first()
    if not customer:
        raise NotFoundError("Customer not found")

    totals = customer_totals_from_sales(customer_id)
    customer.total_purchases = totals["total_purchases"]
    customer.total_spent_cents = totals["total_spent_cents"]
    customer.points = totals["points"]
    db.session.commit()
    return customer.to_dict()
