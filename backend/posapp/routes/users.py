# Overview: Flask API routes for user administration (admin only).

from flask import Blueprint, request, jsonify

from ..services import user_service
from ..decorators import require_auth, require_role


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_role("admin")
def list_users_route():
    return jsonify({"users": user_service.list_users()})


@users_bp.get("/<int:user_id>")
@require_auth
@require_role("admin")
def get_user_route(user_id: int):
    return jsonify({"user": user_service.get_user(user_id)})


@users_bp.post("")
@require_auth
@require_role("admin")
def create_user_route():
    user = user_service.create_user(request.get_json(silent=True) or {})
    return jsonify({"user": user}), 201


@users_bp.put("/<int:user_id>")
@require_auth
@require_role("admin")
def update_user_route(user_id: int):
    user = user_service.update_user(user_id, request.get_json(silent=True) or {})
    return jsonify({"user": user})


@users_bp.delete("/<int:user_id>")
@require_auth
@require_role("admin")
def delete_user_route(user_id: int):
    user_service.delete_user(user_id)
    return jsonify({"message": "User deleted"})


@users_bp.post("/<int:user_id>/reset-password")
@require_auth
@require_role("admin")
def reset_password_route(user_id: int):
    data = request.get_json(silent=True) or {}
    user = user_service.reset_password(user_id, data.get("new_password") or data.get("password"))
    return jsonify({"user": user})


@users_bp.post("/<int:user_id>/activate")
@require_auth
@require_role("admin")
def activate_user_route(user_id: int):
    return jsonify({"user": user_service.activate_user(user_id)})


@users_bp.post("/<int:user_id>/deactivate")
@require_auth
@require_role("admin")
def deactivate_user_route(user_id: int):
    return jsonify({"user": user_service.deactivate_user(user_id)})
