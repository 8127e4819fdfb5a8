# Overview: Flask API routes for customers operations; parses input and returns JSON responses.

from flask import Blueprint, request

from .. import wire
from ..decorators import require_auth, require_permission
from ..services import customers_service
from .common import error_response, json_body

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers():
    try:
        rows = customers_service.list_customers(search=request.args.get("q"))
        return {"items": [wire.CUSTOMER.to_wire(r) for r in rows], "count": len(rows)}
    except Exception as e:
        return error_response(e, "list customers")


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer_route(customer_id: int):
    try:
        return wire.CUSTOMER.to_wire(customers_service.get_customer(customer_id))
    except Exception as e:
        return error_response(e, "load customer")


@customers_bp.post("")
@require_auth
@require_permission("/customers")
def create_customer_route():
    """Loyalty aggregates are read-only on the wire and always start at zero."""
    try:
        patch = wire.CUSTOMER.from_wire(json_body())
        return wire.CUSTOMER.to_wire(customers_service.create_customer(patch)), 201
    except Exception as e:
        return error_response(e, "create customer")


@customers_bp.put("/<int:customer_id>")
@require_auth
@require_permission("/customers")
def update_customer_route(customer_id: int):
    try:
        patch = wire.CUSTOMER.from_wire(json_body())
        return wire.CUSTOMER.to_wire(customers_service.update_customer(customer_id, patch))
    except Exception as e:
        return error_response(e, "update customer")


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_permission("/customers")
def delete_customer_route(customer_id: int):
    try:
        customers_service.delete_customer(customer_id)
        return {"ok": True}, 200
    except Exception as e:
        return error_response(e, "delete customer")


@customers_bp.get("/<int:customer_id>/sales")
@require_auth
@require_permission("/customers")
def customer_sales_route(customer_id: int):
    try:
        rows = customers_service.customer_sales(customer_id)
        return {"items": [wire.sale_to_wire(r) for r in rows], "count": len(rows)}
    except Exception as e:
        return error_response(e, "load customer sales")


@customers_bp.post("/<int:customer_id>/recalculate")
@require_auth
@require_permission("/customers")
def recalculate_route(customer_id: int):
    """
    Re-derive points, totalSpent and totalPurchases from the customer's sales.

    WHY: Manual repair for aggregate drift (e.g. data imported or edited
    outside the API). Idempotent.
    """
    try:
        return wire.CUSTOMER.to_wire(customers_service.recalculate_totals(customer_id))
    except Exception as e:
        return error_response(e, "recalculate customer totals")
