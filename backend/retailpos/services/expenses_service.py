# Overview: Service-layer operations for expenses; feeds the finance reports only.

from __future__ import annotations

from ..extensions import db
from ..models import Expense, Supplier
from ..time_utils import day_bounds
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_expense,
    validate_patch,
)


EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"date", "description", "amount_cents", "category", "supplier_id"},
    required_on_create={"date", "description", "amount_cents", "category"},
)


def _require_supplier(supplier_id: int | None) -> None:
    if supplier_id is not None and not db.session.query(Supplier.id).filter_by(id=supplier_id).first():
        raise ValidationError("Supplier not found")


def _get_or_404(expense_id: int) -> Expense:
    expense = db.session.query(Expense).filter_by(id=expense_id).first()
    if not expense:
        raise NotFoundError("Expense not found")
    return expense


def list_expenses(start: str | None = None, end: str | None = None, category: str | None = None) -> list[dict]:
    """Inclusive date range; a bare end date covers that whole day."""
    start_dt, end_dt = day_bounds(start, end)
    query = db.session.query(Expense)
    if start_dt:
        query = query.filter(Expense.date >= start_dt)
    if end_dt:
        query = query.filter(Expense.date <= end_dt)
    if category:
        query = query.filter(Expense.category == category)
    expenses = query.order_by(Expense.date.desc(), Expense.id.desc()).all()
    return [e.to_dict() for e in expenses]


def get_expense(expense_id: int) -> dict:
    return _get_or_404(expense_id).to_dict()


def create_expense(patch: dict) -> dict:
    cleaned = validate_patch(model=Expense, patch=patch, policy=EXPENSE_POLICY, partial=False)
    enforce_rules_expense(cleaned)
    _require_supplier(cleaned.get("supplier_id"))

    expense = Expense(**cleaned)
    db.session.add(expense)
    db.session.commit()
    return expense.to_dict()


def update_expense(expense_id: int, patch: dict) -> dict:
    cleaned = validate_patch(model=Expense, patch=patch, policy=EXPENSE_POLICY, partial=True)
    enforce_rules_expense(cleaned)
    if "supplier_id" in cleaned:
        _require_supplier(cleaned["supplier_id"])

    expense = _get_or_404(expense_id)
    for key, value in cleaned.items():
        setattr(expense, key, value)
    db.session.commit()
    return expense.to_dict()


def delete_expense(expense_id: int) -> None:
    expense = _get_or_404(expense_id)
    db.session.delete(expense)
    db.session.commit()
