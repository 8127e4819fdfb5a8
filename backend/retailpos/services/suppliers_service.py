# Overview: Service-layer operations for suppliers; encapsulates business logic and database work.

"""
Supplier Service

Suppliers are optional references from products and expenses. A supplier
cannot be deleted while anything still points at it.
"""

from ..extensions import db
from ..models import Expense, Product, Supplier
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    enforce_email,
    validate_patch,
)


SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_name", "phone", "email", "address"},
    required_on_create={"name", "phone"},
)


def _get_or_404(supplier_id: int) -> Supplier:
    supplier = db.session.query(Supplier).filter_by(id=supplier_id).first()
    if not supplier:
        raise NotFoundError("Supplier not found")
    return supplier


def list_suppliers() -> list[dict]:
    suppliers = db.session.query(Supplier).order_by(Supplier.name.asc(), Supplier.id.asc()).all()
    return [s.to_dict() for s in suppliers]


def get_supplier(supplier_id: int) -> dict:
    return _get_or_404(supplier_id).to_dict()


def create_supplier(patch: dict) -> dict:
    cleaned = validate_patch(model=Supplier, patch=patch, policy=SUPPLIER_POLICY, partial=False)
    enforce_email(cleaned)
    supplier = Supplier(**cleaned)
    db.session.add(supplier)
    db.session.commit()
    return supplier.to_dict()


def update_supplier(supplier_id: int, patch: dict) -> dict:
    cleaned = validate_patch(model=Supplier, patch=patch, policy=SUPPLIER_POLICY, partial=True)
    enforce_email(cleaned)
    supplier = _get_or_404(supplier_id)
    for key, value in cleaned.items():
        setattr(supplier, key, value)
    db.session.commit()
    return supplier.to_dict()


def delete_supplier(supplier_id: int) -> None:
    supplier = _get_or_404(supplier_id)

    product_count = db.session.query(Product.id).filter(Product.supplier_id == supplier_id).count()
    expense_count = db.session.query(Expense.id).filter(Expense.supplier_id == supplier_id).count()
    if product_count or expense_count:
        raise ConflictError(
            "Supplier is referenced by products or expenses and cannot be deleted.",
            details={"product_count": product_count, "expense_count": expense_count},
        )

    db.session.delete(supplier)
    db.session.commit()
