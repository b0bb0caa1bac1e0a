from __future__ import annotations

from typing import Any

from ..models import Setting
from ..models.settings import encode_setting_value
from .base import BaseRepository


class SettingRepository(BaseRepository[Setting]):
    model = Setting
    unique_fields = ("setting_key",)

    def _ordering(self, order_by):
        if order_by is None:
            return (Setting.setting_key.asc(),)
        return super()._ordering(order_by)

    def find_by_key(self, key: str) -> Setting | None:
        return self.find_one(setting_key=key)

    def as_mapping(self) -> dict[str, str]:
        return {s.setting_key: s.setting_value for s in self.find_all()}

    def upsert(self, key: str, value: Any, description: str | None = None) -> Setting:
        setting = self.find_by_key(key)
        if setting is None:
            return self.create(
                setting_key=key,
                setting_value=encode_setting_value(value),
                description=description,
            )
        setting.set_value(value)
        if description is not None:
            setting.description = description
        self._flush()
        return setting

    def delete_by_key(self, key: str) -> bool:
        return self.delete_where(setting_key=key) > 0

    def key_exists(self, key: str) -> bool:
        return self.exists(setting_key=key)
