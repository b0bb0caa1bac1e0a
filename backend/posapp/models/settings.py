from __future__ import annotations

import json
from typing import Any

from ..extensions import db
from posapp.time_utils import to_utc_z


def encode_setting_value(value: Any) -> str:
    """Structured values are stored as JSON text; scalars as their string form."""
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class Setting(db.Model):
    """Key-value system configuration (tax rate, product categories, ...)."""
    __tablename__ = "settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    setting_key = db.Column(db.String(128), nullable=False, unique=True)
    setting_value = db.Column(db.Text, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def as_number(self) -> float:
        return float(self.setting_value)

    def as_json(self) -> Any:
        try:
            return json.loads(self.setting_value)
        except (TypeError, ValueError):
            return None

    def as_bool(self) -> bool:
        return self.setting_value in ("1", "true")

    def set_value(self, value: Any) -> None:
        self.setting_value = encode_setting_value(value)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "setting_key": self.setting_key,
            "setting_value": self.setting_value,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
