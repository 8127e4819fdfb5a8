# Overview: Flask API routes for reports operations; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import require_auth, require_permission
from ..services import reporting_service
from ..wire import report_to_wire
from .common import error_response

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
@require_auth
@require_permission("/dashboard")
def dashboard_route():
    try:
        days = request.args.get("days", type=int)
        return report_to_wire(reporting_service.dashboard(days=days))
    except Exception as e:
        return error_response(e, "build dashboard")


@reports_bp.get("/financial")
@require_auth
@require_permission("/reports")
def financial_route():
    """
    Income, expenses and balance.

    Either ``year`` + ``month`` or an inclusive ``start``/``end`` range.
    """
    try:
        year = request.args.get("year", type=int)
        month = request.args.get("month", type=int)
        if year is not None and month is not None:
            summary = reporting_service.monthly_summary(year, month)
        else:
            summary = reporting_service.financial_summary(request.args.get("start"), request.args.get("end"))
        return report_to_wire(summary)
    except Exception as e:
        return error_response(e, "build financial report")


@reports_bp.get("/customers")
@require_auth
@require_permission("/reports")
def customers_report_route():
    try:
        rows = reporting_service.customer_report(request.args.get("start"), request.args.get("end"))
        return {"items": report_to_wire(rows)}
    except Exception as e:
        return error_response(e, "build customer report")


@reports_bp.get("/inventory")
@require_auth
@require_permission("/reports")
def inventory_report_route():
    try:
        return report_to_wire(reporting_service.inventory_report())
    except Exception as e:
        return error_response(e, "build inventory report")


@reports_bp.get("/expenses")
@require_auth
@require_permission("/reports")
def expenses_report_route():
    try:
        rows = reporting_service.expenses_by_category(request.args.get("start"), request.args.get("end"))
        return {"items": report_to_wire(rows)}
    except Exception as e:
        return error_response(e, "build expense report")
