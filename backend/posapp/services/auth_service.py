# Overview: Service-layer operations for auth; credential checks and token issuance.

"""
Authentication Service

Every sale and stock movement is attributed to a user, so every request
past /api/auth/login carries a signed bearer token.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 10)
- Minimum 6 characters on create/change
- "Unknown user" and "wrong password" produce the same error message so the
  login endpoint cannot be used to enumerate usernames
- Tokens are HS256 JWTs carrying {id, username, role, full_name}, 7-day expiry
"""

from __future__ import annotations

import logging
from datetime import timedelta

import bcrypt
from flask import current_app
from jose import JWTError, jwt

from ..models import User, ROLES
from ..repositories import UserRepository
from ..validation import AuthError, NotFoundError, ValidationError
from posapp.time_utils import utcnow
from .concurrency import atomic

logger = logging.getLogger(__name__)

users = UserRepository()

MIN_PASSWORD_LENGTH = 6
BCRYPT_ROUNDS = 10
INVALID_CREDENTIALS = "Invalid username or password"


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Returns True if password matches hash, False otherwise (including malformed hashes)."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def validate_password_length(password: str | None, field: str = "Password") -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"{field} must be at least {MIN_PASSWORD_LENGTH} characters")


def validate_role(user: User | None, required_roles) -> bool:
    if user is None:
        return False
    if isinstance(required_roles, str):
        required_roles = (required_roles,)
    return user.has_role(*required_roles)


def is_valid_role(role: str) -> bool:
    return role in ROLES


def generate_token(user: User) -> str:
    cfg = current_app.config
    now = utcnow()
    payload = {
        "id": user.id,
        "username": user.username,
        "role": user.role,
        "full_name": user.full_name,
        "iat": now,
        "exp": now + timedelta(days=cfg["JWT_EXPIRATION_DAYS"]),
    }
    return jwt.encode(payload, cfg["JWT_SECRET"], algorithm=cfg["JWT_ALGORITHM"])


def verify_token(token: str) -> dict:
    cfg = current_app.config
    try:
        return jwt.decode(token, cfg["JWT_SECRET"], algorithms=[cfg["JWT_ALGORITHM"]])
    except JWTError:
        raise AuthError("Invalid or expired token")


def get_user_from_token(token: str) -> User:
    """Resolve a token to an active user; a deleted or deactivated account invalidates its tokens."""
    payload = verify_token(token)
    user = users.find_by_id(payload.get("id"))
    if user is None or not user.is_active:
        raise AuthError("Invalid or expired token")
    return user


def login(username: str | None, password: str | None) -> dict:
    """
    Authenticate and return {"token", "user"}.

    Raises AuthError with one message for both unknown username and wrong password.
    """
    if not username or not password:
        raise ValidationError("Username and password are required")

    user = users.find_by_username(username.strip())
    if user is None:
        logger.info("Login failed for unknown username")
        raise AuthError(INVALID_CREDENTIALS)

    if not verify_password(password, user.password_hash):
        logger.info("Login failed for user id=%s", user.id)
        raise AuthError(INVALID_CREDENTIALS)

    if not user.is_active:
        logger.info("Login refused for inactive user id=%s", user.id)
        raise AuthError("User account is inactive")

    def _op():
        users.update(user, last_login_at=utcnow())
        return user

    atomic(_op)
    return {"token": generate_token(user), "user": user.to_dict()}


def change_password(user_id: int, old_password: str | None, new_password: str | None) -> User:
    if not old_password or not new_password:
        raise ValidationError("Old password and new password are required")

    user = users.find_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")

    if not verify_password(old_password, user.password_hash):
        raise AuthError("Old password is incorrect")

    validate_password_length(new_password, "New password")

    def _op():
        return users.update_password(user, hash_password(new_password))

    updated = atomic(_op)
    logger.info("Password changed for user id=%s", user_id)
    return updated
