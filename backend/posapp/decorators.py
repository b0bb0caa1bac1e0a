# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import auth_service
from .validation import AuthError


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.current_user (the active User) and g.token_payload.

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid or expired token
    - User deleted or deactivated since the token was issued
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1].strip()

        try:
            payload = auth_service.verify_token(token)
            user = auth_service.get_user_from_token(token)
        except AuthError as e:
            return jsonify({"error": e.message}), 401

        g.current_user = user
        g.token_payload = payload

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Require the authenticated user to hold one of the given roles.

    Must be stacked after @require_auth. Returns 403 otherwise.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify({"error": "Authentication required"}), 401
            if not auth_service.validate_role(user, roles):
                return jsonify({
                    "error": "Insufficient permissions",
                    "required_roles": list(roles),
                }), 403
            return f(*args, **kwargs)

        return decorated_function

    return decorator
