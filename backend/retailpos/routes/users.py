# Overview: Flask API routes for user administration; parses input and returns JSON responses.

"""
User administration (admin only).

SECURITY: Password hashes never leave the service layer; ``password`` is
accepted on create/update and never returned.
"""

from flask import Blueprint, g

from .. import wire
from ..decorators import require_admin, require_auth
from ..services import auth_service
from .common import error_response, json_body

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_admin
def list_users_route():
    try:
        rows = auth_service.list_users()
        return {"items": [wire.USER.to_wire(r) for r in rows], "count": len(rows)}
    except Exception as e:
        return error_response(e, "list users")


@users_bp.get("/<int:user_id>")
@require_auth
@require_admin
def get_user_route(user_id: int):
    try:
        return wire.USER.to_wire(auth_service.get_user(user_id))
    except Exception as e:
        return error_response(e, "load user")


@users_bp.post("")
@require_auth
@require_admin
def create_user_route():
    try:
        patch = wire.USER.from_wire(json_body())
        return wire.USER.to_wire(auth_service.create_user(patch)), 201
    except Exception as e:
        return error_response(e, "create user")


@users_bp.put("/<int:user_id>")
@require_auth
@require_admin
def update_user_route(user_id: int):
    try:
        patch = wire.USER.from_wire(json_body())
        return wire.USER.to_wire(auth_service.update_user(user_id, patch))
    except Exception as e:
        return error_response(e, "update user")


@users_bp.delete("/<int:user_id>")
@require_auth
@require_admin
def delete_user_route(user_id: int):
    try:
        auth_service.delete_user(user_id, acting_user_id=g.current_user.id)
        return {"ok": True}, 200
    except Exception as e:
        return error_response(e, "delete user")
