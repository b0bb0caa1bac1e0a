from __future__ import annotations

import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from flask import current_app, has_app_context

from ..repositories import SettingRepository
from ..validation import NotFoundError, ValidationError
from .concurrency import atomic

logger = logging.getLogger(__name__)

settings = SettingRepository()

TAX_RATE_KEY = "tax_rate"
CATEGORIES_KEY = "product_categories"

FALLBACK_TAX_RATE = Decimal("10")
FALLBACK_CATEGORIES = ["Beverages", "Food", "Desserts", "Snacks"]

DESCRIPTIONS = {
    TAX_RATE_KEY: "Sales tax rate (percentage)",
    CATEGORIES_KEY: "Available product categories",
}


def _default_tax_rate() -> Decimal:
    if has_app_context():
        return Decimal(str(current_app.config.get("DEFAULT_TAX_RATE", FALLBACK_TAX_RATE)))
    return FALLBACK_TAX_RATE


def _default_categories() -> list[str]:
    if has_app_context():
        return list(current_app.config.get("DEFAULT_PRODUCT_CATEGORIES", FALLBACK_CATEGORIES))
    return list(FALLBACK_CATEGORIES)


def parse_tax_rate(value: Any) -> Decimal:
    """Accept a number or numeric string in [0, 100]."""
    if isinstance(value, bool) or value is None:
        raise ValidationError("Tax rate must be a number between 0 and 100")
    try:
        rate = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError("Tax rate must be a number between 0 and 100")
    if not rate.is_finite() or rate < 0 or rate > 100:
        raise ValidationError("Tax rate must be between 0 and 100")
    return rate


def parse_categories(value: Any) -> list[str]:
    """Accept a list or its JSON text; must be a non-empty list of non-blank strings."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            raise ValidationError("Categories must be a JSON array of strings")
    if not isinstance(value, list) or not value:
        raise ValidationError("Categories must be a non-empty array")
    cleaned = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ValidationError("Every category must be a non-empty string")
        cleaned.append(item.strip())
    return cleaned


def _normalize(key: str, value: Any) -> Any:
    if key == TAX_RATE_KEY:
        return format(parse_tax_rate(value), "f")
    if key == CATEGORIES_KEY:
        return parse_categories(value)
    if isinstance(value, (dict, list)):
        return value
    if value is None:
        raise ValidationError("Setting value is required")
    return str(value)


def validate_setting(key: str, value: Any) -> None:
    """Raise ValidationError if value is not acceptable for key; writes nothing."""
    if not key:
        raise ValidationError("Setting key is required")
    _normalize(key, value)


def get_all_settings() -> dict[str, str]:
    """Raw key -> stored string mapping."""
    return settings.as_mapping()


def get_all_settings_with_metadata() -> list[dict]:
    return [s.to_dict() for s in settings.find_all()]


def get_setting(key: str) -> str:
    setting = settings.find_by_key(key)
    if setting is None:
        raise NotFoundError(f"Setting {key} not found")
    return setting.setting_value


def setting_exists(key: str) -> bool:
    return settings.key_exists(key)


def update_setting(key: str, value: Any) -> str:
    """
    Set a value, creating the row when absent.

    tax_rate and product_categories are validated; other keys are stored as
    opaque strings.
    """
    if not key:
        raise ValidationError("Setting key is required")
    normalized = _normalize(key, value)

    def _op():
        if settings.key_exists(key):
            return settings.upsert(key, normalized)
        return settings.upsert(key, normalized, DESCRIPTIONS.get(key))

    setting = atomic(_op)
    logger.info("Setting updated: %s", key)
    return setting.setting_value


def upsert_setting(key: str, value: Any, description: str | None = None) -> dict:
    if not key:
        raise ValidationError("Setting key is required")
    normalized = _normalize(key, value)

    def _op():
        return settings.upsert(key, normalized, description)

    return atomic(_op).to_dict()


def delete_setting(key: str) -> bool:
    def _op():
        return settings.delete_by_key(key)

    deleted = atomic(_op)
    if deleted:
        logger.info("Setting deleted: %s", key)
    return deleted


def get_tax_rate() -> Decimal:
    """Current tax rate, falling back to the configured default if unset or unreadable."""
    setting = settings.find_by_key(TAX_RATE_KEY)
    if setting is None:
        return _default_tax_rate()
    try:
        return parse_tax_rate(setting.setting_value)
    except ValidationError:
        logger.warning("Stored tax_rate %r is invalid; using default", setting.setting_value)
        return _default_tax_rate()


def set_tax_rate(rate: Any) -> Decimal:
    update_setting(TAX_RATE_KEY, rate)
    return get_tax_rate()


def get_product_categories() -> list[str]:
    setting = settings.find_by_key(CATEGORIES_KEY)
    if setting is None:
        return _default_categories()
    try:
        return parse_categories(setting.setting_value)
    except ValidationError:
        logger.warning("Stored product_categories is invalid; using defaults")
        return _default_categories()


def set_product_categories(categories: Any) -> list[str]:
    update_setting(CATEGORIES_KEY, categories)
    return get_product_categories()


def ensure_defaults() -> list[str]:
    """Create any missing default settings. Returns the keys created."""
    defaults = {
        TAX_RATE_KEY: format(_default_tax_rate(), "f"),
        CATEGORIES_KEY: _default_categories(),
    }

    def _op():
        created = []
        for key, value in defaults.items():
            if not settings.key_exists(key):
                settings.create(
                    setting_key=key,
                    setting_value=json.dumps(value) if isinstance(value, list) else value,
                    description=DESCRIPTIONS[key],
                )
                created.append(key)
        return created

    return atomic(_op)
