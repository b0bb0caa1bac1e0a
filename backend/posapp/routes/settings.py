# Overview: Flask API routes for system settings; reads open to all roles, writes admin only.

from flask import Blueprint, request, jsonify

from ..services import settings_service
from ..decorators import require_auth, require_role
from ..validation import ValidationError


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def get_settings_route():
    return jsonify({"settings": settings_service.get_all_settings()})


@settings_bp.get("/metadata")
@require_auth
@require_role("admin")
def get_settings_metadata_route():
    return jsonify({"settings": settings_service.get_all_settings_with_metadata()})


@settings_bp.put("")
@require_auth
@require_role("admin")
def update_settings_route():
    """Body: {key: value, ...}; every key is validated before any is written."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        raise ValidationError("Expected an object of settings")
    for key, value in data.items():
        settings_service.validate_setting(key, value)
    for key, value in data.items():
        settings_service.update_setting(key, value)
    return jsonify({"settings": settings_service.get_all_settings()})


@settings_bp.get("/tax-rate")
@require_auth
def get_tax_rate_route():
    return jsonify({"tax_rate": float(settings_service.get_tax_rate())})


@settings_bp.put("/tax-rate")
@require_auth
@require_role("admin")
def set_tax_rate_route():
    data = request.get_json(silent=True) or {}
    rate = settings_service.set_tax_rate(data.get("tax_rate"))
    return jsonify({"tax_rate": float(rate)})


@settings_bp.get("/categories")
@require_auth
def get_categories_route():
    return jsonify({"categories": settings_service.get_product_categories()})


@settings_bp.put("/categories")
@require_auth
@require_role("admin")
def set_categories_route():
    data = request.get_json(silent=True) or {}
    categories = settings_service.set_product_categories(data.get("categories"))
    return jsonify({"categories": categories})


@settings_bp.get("/<key>")
@require_auth
def get_setting_route(key: str):
    return jsonify({"key": key, "value": settings_service.get_setting(key)})


@settings_bp.put("/<key>")
@require_auth
@require_role("admin")
def update_setting_route(key: str):
    data = request.get_json(silent=True) or {}
    value = settings_service.update_setting(key, data.get("value"))
    return jsonify({"key": key, "value": value})


@settings_bp.delete("/<key>")
@require_auth
@require_role("admin")
def delete_setting_route(key: str):
    if not settings_service.delete_setting(key):
        return jsonify({"error": f"Setting {key} not found"}), 404
    return jsonify({"message": "Setting deleted"})
