"""
System setting model

Runtime-editable key/value settings. Values are stored as text and parsed
according to `type` by SystemSettingService.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, Boolean, DateTime, JSON, Enum as SQLEnum, Index

from servicedesk.core.database import Base
from servicedesk.core.utils import generate_uuid
from servicedesk.models.enums import SettingType


class SystemSetting(Base):
    __tablename__ = "system_settings"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    key = Column(String(100), unique=True, nullable=False, index=True)  # billing.tax_rate
    value = Column(Text, nullable=False)
    type = Column(SQLEnum(SettingType), default=SettingType.STRING, nullable=False)
    category = Column(String(50), default="general", nullable=False)

    label = Column(String(200), nullable=False)
    label_ar = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    description_ar = Column(Text, nullable=True)

    is_required = Column(Boolean, default=False, nullable=False)
    validation_rule = Column(String(500), nullable=True)  # regex the value must match
    input_type = Column(String(20), default="text", nullable=False)
    options = Column(JSON, nullable=True)

    is_system = Column(Boolean, default=False, nullable=False)  # cannot be deleted
    is_public = Column(Boolean, default=False, nullable=False)  # readable without a token

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_system_settings_category", "category"),
    )

    def __repr__(self):
        return f"<SystemSetting(key='{self.key}')>"
