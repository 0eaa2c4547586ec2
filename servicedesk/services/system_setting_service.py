"""
System Setting Service

Runtime key/value settings editable from the admin UI. Values are stored as
text; get_value() hands them back parsed according to the setting type.
"""
import json
import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.exceptions import BadRequestError, ConflictError, NotFoundError, ServiceDeskError
from servicedesk.models.enums import SettingType
from servicedesk.models.system_setting import SystemSetting
from servicedesk.schemas.settings import (
    SettingValueUpdate,
    SystemSettingCreate,
    SystemSettingUpdate,
)

logger = logging.getLogger(__name__)

BOOLEAN_VALUES = {"true", "false"}

# Seeded by scripts/init_db.py when missing
DEFAULT_SETTINGS = [
    {
        "key": "billing.tax_rate",
        "value": "14",
        "type": SettingType.NUMBER,
        "category": "billing",
        "label": "Tax rate (%)",
        "label_ar": "نسبة الضريبة (%)",
        "validation_rule": r"^\d+(\.\d+)?$",
        "input_type": "number",
        "is_required": True,
        "is_system": True,
    },
    {
        "key": "company.name",
        "value": "Engineering Consultancy Services",
        "type": SettingType.STRING,
        "category": "company",
        "label": "Company name",
        "label_ar": "اسم الشركة",
        "is_required": True,
        "is_system": True,
        "is_public": True,
    },
    {
        "key": "company.phone",
        "value": "",
        "type": SettingType.STRING,
        "category": "company",
        "label": "Contact phone",
        "label_ar": "هاتف التواصل",
        "is_public": True,
    },
]


def parse_value(value: str, setting_type: SettingType) -> Any:
    """
    Parse a stored value.

    Raises:
        ValueError: Value does not fit the type
    """
    if setting_type == SettingType.NUMBER:
        try:
            return Decimal(value)
        except InvalidOperation:
            raise ValueError(f"'{value}' is not a number")
    if setting_type == SettingType.BOOLEAN:
        if value.lower() not in BOOLEAN_VALUES:
            raise ValueError(f"'{value}' is not true or false")
        return value.lower() == "true"
    if setting_type == SettingType.JSON:
        return json.loads(value)
    if setting_type == SettingType.DATE:
        return date.fromisoformat(value)
    return value


class SystemSettingService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_key(self, key: str) -> Optional[SystemSetting]:
        result = await self.db.execute(select(SystemSetting).where(SystemSetting.key == key))
        return result.scalar_one_or_none()

    async def get_or_404(self, key: str) -> SystemSetting:
        setting = await self.get_by_key(key)
        if not setting:
            raise NotFoundError("Setting not found")
        return setting

    async def list_settings(self, category: Optional[str] = None) -> List[SystemSetting]:
        query = select(SystemSetting)
        if category:
            query = query.where(SystemSetting.category == category)
        result = await self.db.execute(query.order_by(SystemSetting.category, SystemSetting.key))
        return list(result.scalars().all())

    async def list_public(self) -> List[SystemSetting]:
        result = await self.db.execute(
            select(SystemSetting).where(SystemSetting.is_public.is_(True)).order_by(SystemSetting.key)
        )
        return list(result.scalars().all())

    async def get_value(self, key: str, default: Any = None) -> Any:
        """Parsed value of a setting, or default when it is missing or unreadable."""
        setting = await self.get_by_key(key)
        if not setting:
            return default
        try:
            return parse_value(setting.value, setting.type)
        except ValueError:
            logger.warning(f"Setting {key} holds an unreadable {setting.type.value} value, using default")
            return default

    @staticmethod
    def _validate(value: str, setting_type: SettingType, validation_rule: Optional[str], is_required: bool) -> None:
        if is_required and not value.strip():
            raise BadRequestError("Value is required")
        try:
            parse_value(value, setting_type)
        except ValueError:
            raise BadRequestError("Value does not match setting type", details={"type": setting_type.value})
        if validation_rule:
            try:
                matched = re.search(validation_rule, value)
            except re.error:
                raise BadRequestError("Invalid validation rule")
            if not matched:
                raise BadRequestError("Value does not match validation rule")

    async def create(self, data: SystemSettingCreate) -> SystemSetting:
        if await self.get_by_key(data.key):
            raise ConflictError("Setting with this key already exists")
        self._validate(data.value, data.type, data.validation_rule, data.is_required)

        setting = SystemSetting(**data.model_dump())
        self.db.add(setting)
        await self.db.flush()
        logger.info(f"System setting created: {setting.key}")
        return setting

    async def update(self, key: str, data: SystemSettingUpdate) -> SystemSetting:
        setting = await self.get_or_404(key)
        changes = data.model_dump(exclude_unset=True)

        self._validate(
            changes.get("value", setting.value),
            setting.type,
            changes.get("validation_rule", setting.validation_rule),
            changes.get("is_required", setting.is_required),
        )
        for field, value in changes.items():
            setattr(setting, field, value)
        await self.db.flush()
        logger.info(f"System setting updated: {key}")
        return setting

    async def set_value(self, key: str, value: str) -> SystemSetting:
        return await self.update(key, SystemSettingUpdate(value=value))

    async def bulk_update(self, updates: List[SettingValueUpdate]) -> List[dict]:
        """
        Apply several value changes. Each key succeeds or fails on its own;
        the result lists one entry per key in input order.
        """
        results = []
        for change in updates:
            try:
                setting = await self.set_value(change.key, change.value)
            except ServiceDeskError as e:
                results.append({
                    "key": change.key,
                    "success": False,
                    "error": e.message,
                    "error_ar": e.message_ar,
                })
                continue
            results.append({"key": change.key, "success": True, "setting": setting})
        return results

    async def seed_defaults(self) -> int:
        """Create any missing DEFAULT_SETTINGS. Existing values are left alone."""
        created = 0
        for default in DEFAULT_SETTINGS:
            if await self.get_by_key(default["key"]):
                continue
            self.db.add(SystemSetting(**default))
            created += 1
        await self.db.flush()
        return created

    async def delete(self, key: str) -> SystemSetting:
        setting = await self.get_or_404(key)
        if setting.is_system:
            raise BadRequestError("Cannot delete system setting")
        await self.db.delete(setting)
        await self.db.flush()
        return setting
