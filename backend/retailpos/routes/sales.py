# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/retailpos/routes/sales.py
"""Sale store API routes with permission enforcement"""

from flask import Blueprint, g, request

from .. import wire
from ..decorators import require_auth, require_permission
from ..services import sales_service
from ..validation import ValidationError
from .common import error_response, json_body


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
@require_permission("/sales")
def list_sales_route():
    """
    Query params (all optional):
    - start, end: ISO dates (inclusive; a bare end date covers the whole day)
    - customerId
    """
    try:
        customer_id = request.args.get("customerId")
        if customer_id is not None:
            if not customer_id.isdigit():
                raise ValidationError("customerId must be an integer")
            customer_id = int(customer_id)
        rows = sales_service.list_sales(
            start=request.args.get("start"),
            end=request.args.get("end"),
            customer_id=customer_id,
        )
        return {"items": [wire.sale_to_wire(r) for r in rows], "count": len(rows)}
    except Exception as e:
        return error_response(e, "list sales")


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("/sales")
def get_sale_route(sale_id: int):
    try:
        return wire.sale_to_wire(sales_service.get_sale(sale_id))
    except Exception as e:
        return error_response(e, "load sale")


@sales_bp.post("")
@require_auth
@require_permission("/pos")
def create_sale_route():
    """
    Commit a complete sale draft (items, payments, optional customer).

    The operator is always the authenticated user. Item prices default to
    the current catalog price; payments, when given, must add up to the
    total. Commits atomically; 409 when stock no longer covers a line.
    """
    try:
        patch = wire.sale_from_wire(json_body())
        patch.pop("id", None)
        patch.pop("user_id", None)
        draft = sales_service.draft_from_wire(patch, user_id=g.current_user.id)
        sale = sales_service.commit_sale(draft)
        return wire.sale_to_wire(sale), 201
    except Exception as e:
        return error_response(e, "create sale")


@sales_bp.put("/<int:sale_id>")
@require_auth
@require_permission("/sales")
def update_sale_route(sale_id: int):
    """Only ``date`` and ``customerId`` can change after a sale is committed."""
    try:
        patch = wire.SALE.from_wire(json_body())
        return wire.sale_to_wire(sales_service.update_sale(sale_id, patch))
    except Exception as e:
        return error_response(e, "update sale")


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_permission("/sales")
def delete_sale_route(sale_id: int):
    """Restores stock and reverses the customer's totals in the same transaction."""
    try:
        sales_service.delete_sale(sale_id)
        return {"ok": True}, 200
    except Exception as e:
        return error_response(e, "delete sale")
