# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/retailpos/routes/products.py
"""
Catalog routes.

SECURITY: All routes require authentication.
- Reads are open to every operator (the POS screen needs the catalog)
- Writes require the /products page permission
"""
from flask import Blueprint, request

from .. import wire
from ..decorators import require_auth, require_permission
from ..services import products_service
from ..validation import ValidationError
from .common import error_response, json_body

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    Query params:
    - includeInactive: "true" to include soft-deleted products
    - category: matches category or customCategory
    - q: substring of name or barcode
    """
    include_inactive = request.args.get("includeInactive", "").lower() == "true"
    try:
        rows = products_service.list_products(
            include_inactive=include_inactive,
            category=request.args.get("category"),
            search=request.args.get("q"),
        )
        return {"items": [wire.PRODUCT.to_wire(r) for r in rows], "count": len(rows)}
    except Exception as e:
        return error_response(e, "list products")


@products_bp.get("/low-stock")
@require_auth
def low_stock_route():
    try:
        rows = products_service.low_stock_products()
        return {"items": [wire.PRODUCT.to_wire(r) for r in rows], "count": len(rows)}
    except Exception as e:
        return error_response(e, "list low stock products")


@products_bp.get("/barcode/<string:barcode>")
@require_auth
def get_by_barcode_route(barcode: str):
    try:
        return wire.PRODUCT.to_wire(products_service.get_product_by_barcode(barcode))
    except Exception as e:
        return error_response(e, "look up barcode")


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        return wire.PRODUCT.to_wire(products_service.get_product(product_id))
    except Exception as e:
        return error_response(e, "load product")


@products_bp.post("")
@require_auth
@require_permission("/products")
def create_product_route():
    try:
        patch = wire.PRODUCT.from_wire(json_body())
        created = products_service.create_product(patch)
        return wire.PRODUCT.to_wire(created), 201
    except Exception as e:
        return error_response(e, "create product")


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("/products")
def update_product_route(product_id: int):
    """
    Partial update. ``stockIncrement`` (integer, may be negative) is applied
    after any absolute ``stock`` value in the same body.
    """
    try:
        payload = dict(json_body())
        stock_increment = payload.pop("stockIncrement", None)
        if stock_increment is not None and (isinstance(stock_increment, bool) or not isinstance(stock_increment, int)):
            raise ValidationError("stockIncrement must be an integer")
        patch = wire.PRODUCT.from_wire(payload)
        updated = products_service.update_product(product_id, patch, stock_increment=stock_increment)
        return wire.PRODUCT.to_wire(updated)
    except Exception as e:
        return error_response(e, "update product")


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("/products")
def delete_product_route(product_id: int):
    """Soft delete: the product disappears from the catalog but old sales keep it."""
    try:
        products_service.delete_product(product_id)
        return {"ok": True}, 200
    except Exception as e:
        return error_response(e, "delete product")
