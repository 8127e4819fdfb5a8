# Overview: Flask API routes for site settings; parses input and returns JSON responses.

from flask import Blueprint

from .. import wire
from ..decorators import require_admin, require_auth
from ..services import settings_service
from .common import error_response, json_body

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def get_settings_route():
    try:
        return wire.SITE_SETTINGS.to_wire(settings_service.get_settings())
    except Exception as e:
        return error_response(e, "load settings")


@settings_bp.put("")
@require_auth
@require_admin
def update_settings_route():
    try:
        patch = wire.SITE_SETTINGS.from_wire(json_body())
        return wire.SITE_SETTINGS.to_wire(settings_service.update_settings(patch))
    except Exception as e:
        return error_response(e, "update settings")
