"""
Permission model for RBAC

A permission is a `module:action` string. The catalog is seeded once at
bootstrap; only the description changes afterwards.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime, Index

from servicedesk.core.database import Base
from servicedesk.core.utils import generate_uuid


class Permission(Base):
    __tablename__ = "permissions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(100), unique=True, nullable=False, index=True)  # module:action
    module = Column(String(50), nullable=False)
    action = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_permissions_module_action", "module", "action"),
    )

    def __repr__(self):
        return f"<Permission(id={self.id}, name='{self.name}')>"

    @staticmethod
    def build_name(module: str, action: str) -> str:
        return f"{module}:{action}"
