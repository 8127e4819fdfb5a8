# Overview: Service-layer operations for customers; encapsulates business logic and database work.

"""
Customer Store

The loyalty aggregates (points, total_spent_cents, total_purchases) are not
part of the writable policy: only sale commit/update/delete and the manual
recalculation change them.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..models import Customer, Sale
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    enforce_email,
    validate_patch,
)
from . import reconciliation_service, sales_service


CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "email", "address", "tax_id", "custom_category"},
    required_on_create={"name", "phone", "email"},
)


def _require_unique_email(email: str | None, exclude_id: int | None = None) -> None:
    if not email:
        return
    query = db.session.query(Customer.id).filter(func.lower(Customer.email) == email.lower())
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    if query.first():
        raise ConflictError("A customer with this email already exists.")


def _get_or_404(customer_id: int) -> Customer:
    customer = db.session.query(Customer).filter_by(id=customer_id).first()
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def list_customers(search: str | None = None) -> list[dict]:
    query = db.session.query(Customer)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            Customer.name.ilike(like),
            Customer.email.ilike(like),
            Customer.phone.ilike(like),
        ))
    return [c.to_dict() for c in query.order_by(Customer.name.asc(), Customer.id.asc()).all()]


def get_customer(customer_id: int) -> dict:
    return _get_or_404(customer_id).to_dict()


def create_customer(patch: dict) -> dict:
    cleaned = validate_patch(model=Customer, patch=patch, policy=CUSTOMER_POLICY, partial=False)
    enforce_email(cleaned)
    _require_unique_email(cleaned.get("email"))

    customer = Customer(**cleaned, points=0, total_spent_cents=0, total_purchases=0)
    db.session.add(customer)
    db.session.commit()
    return customer.to_dict()


def update_customer(customer_id: int, patch: dict) -> dict:
    cleaned = validate_patch(model=Customer, patch=patch, policy=CUSTOMER_POLICY, partial=True)
    enforce_email(cleaned)
    customer = _get_or_404(customer_id)
    if "email" in cleaned:
        _require_unique_email(cleaned["email"], exclude_id=customer_id)

    for key, value in cleaned.items():
        setattr(customer, key, value)
    db.session.commit()
    return customer.to_dict()


def delete_customer(customer_id: int) -> None:
    """Refused while any sale references the customer."""
    customer = _get_or_404(customer_id)
    sale_count = db.session.query(func.count(Sale.id)).filter(Sale.customer_id == customer_id).scalar()
    if sale_count:
        raise ConflictError(
            "Customer has sales and cannot be deleted.",
            details={"sale_count": int(sale_count)},
        )
    db.session.delete(customer)
    db.session.commit()


def customer_sales(customer_id: int) -> list[dict]:
    _get_or_404(customer_id)
    return sales_service.sales_by_customer(customer_id)


def recalculate_totals(customer_id: int) -> dict:
    before = _get_or_404(customer_id).to_dict()
    after = reconciliation_service.recalculate_customer_totals(customer_id)
    drift = {
        key: after[key] - before[key]
        for key in ("points", "total_spent_cents", "total_purchases")
        if after[key] != before[key]
    }
    current_app.logger.info("Customer %s totals recalculated (drift=%s)", customer_id, drift or "none")
    return after
