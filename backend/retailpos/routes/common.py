# Overview: Shared helpers for API routes; maps service exceptions to HTTP responses.

from flask import current_app, jsonify, request

from ..extensions import db
from ..services.auth_service import PasswordValidationError
from ..services.cart import CartError, InsufficientStockError
from ..services.checkout_service import CheckoutError
from ..validation import ConflictError, NotFoundError, ValidationError


def json_body() -> dict:
    """Request JSON object; anything else (missing, list, scalar) is a 400."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def error_response(exc: Exception, action: str):
    """
    Translate a service exception into a JSON error response.

    Unknown exceptions roll back the session, are logged with traceback and
    surface as a generic 500.
    """
    if isinstance(exc, (ConflictError, InsufficientStockError)):
        body = {"error": str(exc)}
        if exc.details:
            body["details"] = exc.details
        return jsonify(body), 409
    if isinstance(exc, NotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, (ValidationError, CartError, CheckoutError, PasswordValidationError)):
        return jsonify({"error": str(exc)}), 400

    db.session.rollback()
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500
