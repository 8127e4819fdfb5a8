# backend/retailpos/services/products_service.py
"""
Products Service (the catalog store)

DELETION: products are soft-deleted so historical sale items keep a valid
product reference. Inactive products are hidden from the default listing
and cannot be added to a cart or sold.
"""
from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Product, Supplier
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_product,
    validate_patch,
)
from .concurrency import lock_for_update, run_with_retry

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "price_cents", "cost_cents", "stock", "min_stock", "category",
        "custom_category", "image_url", "supplier_id", "barcode",
    },
    required_on_create={"name", "category", "price_cents", "cost_cents", "stock", "min_stock"},
)


def _require_supplier(supplier_id: int | None) -> None:
    if supplier_id is None:
        return
    if not db.session.query(Supplier.id).filter_by(id=supplier_id).first():
        raise ValidationError("Supplier not found")


def _require_unique_barcode(barcode: str | None, exclude_id: int | None = None) -> None:
    if not barcode:
        return
    query = db.session.query(Product.id).filter(Product.barcode == barcode)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError("Barcode already exists.")


def _get_or_404(product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id).first()
    if not product:
        raise NotFoundError("Product not found")
    return product


def list_products(
    include_inactive: bool = False,
    category: str | None = None,
    search: str | None = None,
) -> list[dict]:
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if category:
        query = query.filter(or_(Product.category == category, Product.custom_category == category))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(Product.name.ilike(like), Product.barcode.ilike(like)))
    products = query.order_by(Product.name.asc(), Product.id.asc()).all()
    return [p.to_dict() for p in products]


def get_product(product_id: int) -> dict:
    return _get_or_404(product_id).to_dict()


def get_product_by_barcode(barcode: str) -> dict:
    product = (
        db.session.query(Product)
        .filter(Product.barcode == barcode, Product.is_active.is_(True))
        .first()
    )
    if not product:
        raise NotFoundError("Product not found")
    return product.to_dict()


def create_product(patch: dict) -> dict:
    """
    Create a product from a storage-shaped patch.

    Raises:
        ValidationError: missing/invalid fields or unknown supplier
        ConflictError: barcode already used
    """
    cleaned = validate_patch(model=Product, patch=patch, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(cleaned)
    _require_supplier(cleaned.get("supplier_id"))
    _require_unique_barcode(cleaned.get("barcode"))

    product = Product(**cleaned)
    db.session.add(product)
    db.session.commit()
    return product.to_dict()


def update_product(product_id: int, patch: dict, stock_increment: int | None = None) -> dict:
    """
    Apply a partial update.

    ``stock_increment`` is added after any absolute ``stock`` in the patch
    (restocking without reading the current value first). The resulting
    stock must stay >= 0.
    """
    cleaned = validate_patch(model=Product, patch=patch, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(cleaned)
    if "supplier_id" in cleaned:
        _require_supplier(cleaned["supplier_id"])
    if "barcode" in cleaned:
        _require_unique_barcode(cleaned["barcode"], exclude_id=product_id)
    if stock_increment is not None and (isinstance(stock_increment, bool) or not isinstance(stock_increment, int)):
        raise ValidationError("stockIncrement must be an integer")

    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not product:
            raise NotFoundError("Product not found")

        for key, value in cleaned.items():
            setattr(product, key, value)
        if stock_increment:
            new_stock = product.stock + stock_increment
            if new_stock < 0:
                raise ValidationError("stock must be >= 0")
            product.stock = new_stock

        db.session.commit()
        return product.to_dict()

    return run_with_retry(_op)


def delete_product(product_id: int) -> None:
    product = _get_or_404(product_id)
    product.is_active = False
    db.session.commit()


def low_stock_products() -> list[dict]:
    products = (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.stock <= Product.min_stock)
        .order_by(Product.stock.asc(), Product.name.asc())
        .all()
    )
    return [p.to_dict() for p in products]


def load_active_product(product_id: int) -> Product:
    """Catalog read used by the cart; raises NotFoundError for unknown or deleted products."""
    product = _get_or_404(product_id)
    if not product.is_active:
        raise NotFoundError("Product not found")
    return product
