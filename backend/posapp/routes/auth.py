# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import auth_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and return {token, user}.

    The token goes in the Authorization header as "Bearer <token>".
    """
    data = request.get_json(silent=True) or {}
    result = auth_service.login(data.get("username"), data.get("password"))
    return jsonify(result)


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()})


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    data = request.get_json(silent=True) or {}
    auth_service.change_password(
        g.current_user.id,
        data.get("old_password"),
        data.get("new_password"),
    )
    return jsonify({"message": "Password changed successfully"})


@auth_bp.post("/logout")
@require_auth
def logout_route():
    # Tokens are stateless; the client discards its copy
    return jsonify({"message": "Logged out"})
