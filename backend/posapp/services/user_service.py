# Overview: Service-layer operations for user accounts; keeps at least one active admin.

from __future__ import annotations

import logging

from ..models import User, ROLES
from ..repositories import SaleRepository, StockMovementRepository, UserRepository
from ..validation import ConflictError, NotFoundError, ValidationError, to_bool
from .auth_service import hash_password, validate_password_length
from .concurrency import atomic

logger = logging.getLogger(__name__)

users = UserRepository()
sales = SaleRepository()
movements = StockMovementRepository()

USER_UPDATABLE_FIELDS = ("email", "full_name", "role", "is_active")


def _require_user(user_id: int, *, lock: bool = False) -> User:
    user = users.find_by_id(user_id, lock=lock)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


def _validate_role(role) -> str:
    if role not in ROLES:
        raise ValidationError("Invalid role", details={"allowed": list(ROLES)})
    return role


def _guard_last_admin(user: User, *, action: str) -> None:
    """
    Refuse to remove the last active admin.

    Locks the active admin rows so two concurrent demotions cannot both pass.
    """
    if not (user.role == "admin" and user.is_active):
        return
    active_admins = users.active_admins_for_update()
    if len(active_admins) <= 1:
        raise ConflictError(f"Cannot {action} the last admin user")


def list_users() -> list[dict]:
    return [u.to_dict() for u in users.find_all()]


def get_user(user_id: int) -> dict:
    return _require_user(user_id).to_dict()


def get_user_by_username(username: str) -> dict | None:
    user = users.find_by_username(username)
    return user.to_dict() if user else None


def create_user(data: dict) -> dict:
    data = data or {}
    username = (data.get("username") or "").strip()
    password = data.get("password")
    full_name = (data.get("full_name") or "").strip()

    if not username or not password or not full_name:
        raise ValidationError("Username, password, and full name are required")

    validate_password_length(password)
    role = _validate_role(data.get("role") or "cashier")

    def _op():
        if users.username_exists(username):
            raise ConflictError("Username already exists", details={"field": "username"})
        return users.create(
            username=username,
            email=(data.get("email") or None),
            password_hash=hash_password(password),
            full_name=full_name,
            role=role,
            is_active=True,
        )

    user = atomic(_op)
    logger.info("User created: id=%s username=%s role=%s", user.id, user.username, user.role)
    return user.to_dict()


def update_user(user_id: int, data: dict) -> dict:
    data = data or {}
    patch = {k: data[k] for k in USER_UPDATABLE_FIELDS if k in data}

    if "role" in patch:
        _validate_role(patch["role"])
    if "full_name" in patch:
        patch["full_name"] = (patch["full_name"] or "").strip()
        if not patch["full_name"]:
            raise ValidationError("full_name cannot be blank")
    if "email" in patch:
        patch["email"] = (patch["email"] or "").strip() or None
    if "is_active" in patch:
        patch["is_active"] = to_bool(patch["is_active"])

    def _op():
        user = _require_user(user_id, lock=True)
        demoted = "role" in patch and patch["role"] != "admin"
        deactivated = "is_active" in patch and not patch["is_active"]
        if demoted or deactivated:
            _guard_last_admin(user, action="demote or deactivate")
        return users.update(user, **patch)

    return atomic(_op).to_dict()


def delete_user(user_id: int) -> None:
    def _op():
        user = _require_user(user_id, lock=True)
        _guard_last_admin(user, action="delete")
        if sales.exists(user_id=user.id) or movements.exists(created_by=user.id):
            raise ConflictError("User has recorded activity; deactivate the account instead")
        users.delete(user)

    atomic(_op)
    logger.info("User deleted: id=%s", user_id)


def reset_password(user_id: int, new_password: str | None) -> dict:
    validate_password_length(new_password)

    def _op():
        user = _require_user(user_id)
        return users.update_password(user, hash_password(new_password))

    return atomic(_op).to_dict()


def activate_user(user_id: int) -> dict:
    def _op():
        return users.activate(_require_user(user_id))

    return atomic(_op).to_dict()


def deactivate_user(user_id: int) -> dict:
    def _op():
        user = _require_user(user_id, lock=True)
        _guard_last_admin(user, action="deactivate")
        return users.deactivate(user)

    return atomic(_op).to_dict()
