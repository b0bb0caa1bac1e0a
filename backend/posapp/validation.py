from __future__ import annotations

from dataclasses import dataclass, field as dataclass_field
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text

from posapp.time_utils import parse_date, parse_iso_datetime


# Upper bound for a menu price or unit cost (fits Numeric(12, 2) with room to spare)
MAX_PRICE = Decimal("9999999.99")

CENT = Decimal("0.01")

_TRUTHY = {"1", "true", "yes", "on"}


class ServiceError(Exception):
    """Base for errors that services raise and the HTTP boundary maps to a status."""

    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ServiceError, ValueError):
    """400-level input problem."""

    status_code = 400


class NotFoundError(ServiceError, LookupError):
    """404-level missing entity."""

    status_code = 404


class ConflictError(ServiceError, ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""

    status_code = 409


class InsufficientStockError(ConflictError):
    """Requested quantity exceeds what is on hand for a product."""

    def __init__(self, product_name: str, available: int, requested: int, product_id: int | None = None):
        super().__init__(
            f"Insufficient stock for {product_name}. Available: {available}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "available": available,
                "requested": requested,
            },
        )
        self.product_name = product_name
        self.available = available
        self.requested = requested


class AuthError(ServiceError):
    """401-level authentication failure."""

    status_code = 401


def to_money(value: Any, field: str = "amount") -> Decimal:
    """
    Coerce a JSON/form value into a 2dp Decimal.

    Floats go through str() so 3.5 becomes Decimal('3.50'), not its binary expansion.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be an integer, not a decimal")
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped or "e" in stripped.lower() or "." in stripped:
            raise ValidationError(f"{field} must be an integer")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    raise ValidationError(f"{field} must be an integer")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which columns a client may write for one model.

    writable_fields is the allowlist; anything else in a payload is dropped.
    required_on_create must be present and non-empty when partial=False.
    """
    writable_fields: set[str]
    required_on_create: set[str] = dataclass_field(default_factory=set)


def _column_map(model) -> dict[str, Any]:
    return {column.key: column for column in model.__mapper__.columns}


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def _to_datetime(value: Any, name: str) -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a datetime")
    try:
        parsed = parse_iso_datetime(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{name} must be an ISO-8601 datetime")
    return parsed


def _coerce(column, value: Any) -> Any:
    """Convert one raw JSON/form value to the Python type its column stores."""
    kind = column.type
    if isinstance(kind, Numeric):
        return to_money(value, column.key)
    if isinstance(kind, Integer):
        return to_int(value, column.key)
    if isinstance(kind, Boolean):
        return to_bool(value)
    if isinstance(kind, DateTime):
        return _to_datetime(value, column.key)
    if isinstance(kind, (String, Text)):
        return str(value).strip()
    return value


def _is_text(column) -> bool:
    return isinstance(column.type, (String, Text))


def validate_payload(
    *,
    model,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Turn a client payload into a patch of typed column values.

    Unknown or non-writable keys are ignored. With partial=False the policy's
    required fields must be present. Empty text on a nullable column becomes
    NULL; values longer than a String(n) column are rejected.
    """
    payload = {} if payload is None else payload
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(name for name in policy.required_on_create if payload.get(name) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = _column_map(model)
    patch: dict = {}

    for name, raw in payload.items():
        column = columns.get(name)
        if column is None or name not in policy.writable_fields:
            continue

        # An empty form value on a non-text column means "clear it"
        if raw is None or (raw == "" and not _is_text(column)):
            if not column.nullable:
                raise ValidationError(f"{name} cannot be null")
            patch[name] = None
            continue

        value = _coerce(column, raw)

        if _is_text(column):
            if value == "":
                if not column.nullable:
                    raise ValidationError(f"{name} cannot be blank")
                value = None
            elif isinstance(column.type, String) and column.type.length and len(value) > column.type.length:
                raise ValidationError(f"{name} exceeds max length {column.type.length}")

        patch[name] = value

    return patch


def enforce_rules_product(patch: dict) -> None:
    """Product rules the column types cannot express: money ranges and non-negative counts."""
    for name in ("price", "cost"):
        amount = patch.get(name)
        if amount is None:
            continue
        if amount < 0:
            raise ValidationError(f"{name} must be >= 0")
        if amount > MAX_PRICE:
            raise ValidationError(f"{name} cannot exceed {MAX_PRICE:,.2f}")

    for name in ("stock_quantity", "low_stock_threshold"):
        count = patch.get(name)
        if count is not None and count < 0:
            raise ValidationError(f"{name} must be >= 0")


def to_date(value: Any, field: str):
    """Parse a YYYY-MM-DD query/body value; None and "" pass through as None."""
    if value in (None, ""):
        return None
    try:
        return parse_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)")
