# Overview: Flask API routes for suppliers and expenses; parses input and returns JSON responses.

from flask import Blueprint, request

from .. import wire
from ..decorators import require_auth, require_permission
from ..services import expenses_service, suppliers_service
from .common import error_response, json_body

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")
expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@suppliers_bp.get("")
@require_auth
def list_suppliers():
    try:
        rows = suppliers_service.list_suppliers()
        return {"items": [wire.SUPPLIER.to_wire(r) for r in rows], "count": len(rows)}
    except Exception as e:
        return error_response(e, "list suppliers")


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
def get_supplier_route(supplier_id: int):
    try:
        return wire.SUPPLIER.to_wire(suppliers_service.get_supplier(supplier_id))
    except Exception as e:
        return error_response(e, "load supplier")


@suppliers_bp.post("")
@require_auth
@require_permission("/suppliers")
def create_supplier_route():
    try:
        patch = wire.SUPPLIER.from_wire(json_body())
        return wire.SUPPLIER.to_wire(suppliers_service.create_supplier(patch)), 201
    except Exception as e:
        return error_response(e, "create supplier")


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_permission("/suppliers")
def update_supplier_route(supplier_id: int):
    try:
        patch = wire.SUPPLIER.from_wire(json_body())
        return wire.SUPPLIER.to_wire(suppliers_service.update_supplier(supplier_id, patch))
    except Exception as e:
        return error_response(e, "update supplier")


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_permission("/suppliers")
def delete_supplier_route(supplier_id: int):
    try:
        suppliers_service.delete_supplier(supplier_id)
        return {"ok": True}, 200
    except Exception as e:
        return error_response(e, "delete supplier")


@expenses_bp.get("")
@require_auth
@require_permission("/finance")
def list_expenses():
    """
    Query params (all optional):
    - start, end: ISO dates; a bare end date covers the whole day
    - category
    """
    try:
        rows = expenses_service.list_expenses(
            start=request.args.get("start"),
            end=request.args.get("end"),
            category=request.args.get("category"),
        )
        return {"items": [wire.EXPENSE.to_wire(r) for r in rows], "count": len(rows)}
    except Exception as e:
        return error_response(e, "list expenses")


@expenses_bp.get("/<int:expense_id>")
@require_auth
@require_permission("/finance")
def get_expense_route(expense_id: int):
    try:
        return wire.EXPENSE.to_wire(expenses_service.get_expense(expense_id))
    except Exception as e:
        return error_response(e, "load expense")


@expenses_bp.post("")
@require_auth
@require_permission("/finance")
def create_expense_route():
    try:
        patch = wire.EXPENSE.from_wire(json_body())
        return wire.EXPENSE.to_wire(expenses_service.create_expense(patch)), 201
    except Exception as e:
        return error_response(e, "create expense")


@expenses_bp.put("/<int:expense_id>")
@require_auth
@require_permission("/finance")
def update_expense_route(expense_id: int):
    try:
        patch = wire.EXPENSE.from_wire(json_body())
        return wire.EXPENSE.to_wire(expenses_service.update_expense(expense_id, patch))
    except Exception as e:
        return error_response(e, "update expense")


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_permission("/finance")
def delete_expense_route(expense_id: int):
    try:
        expenses_service.delete_expense(expense_id)
        return {"ok": True}, 200
    except Exception as e:
        return error_response(e, "delete expense")
