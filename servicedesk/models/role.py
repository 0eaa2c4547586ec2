"""
Role and RolePermission models for RBAC

Roles bundle permissions through the role_permissions join table. The Admin
role (is_admin=True) holds no rows there: its effective permissions are the
whole catalog, resolved at check time.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from servicedesk.core.database import Base
from servicedesk.core.utils import generate_uuid

ADMIN_ROLE_NAME = "Admin"


class Role(Base):
    """
    Named bundle of permissions assigned to employees.

    Only the seeded Admin role carries is_admin=True; the API never creates
    another one.
    """
    __tablename__ = "roles"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(100), unique=True, nullable=False, index=True)
    name_ar = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<Role(id={self.id}, name='{self.name}', is_admin={self.is_admin})>"


class RolePermission(Base):
    """Junction table linking roles to permissions."""
    __tablename__ = "role_permissions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    role_id = Column(String(36), ForeignKey("roles.id", ondelete="CASCADE"), nullable=False)
    permission_id = Column(String(36), ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    permission = relationship("Permission", lazy="joined")

    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permission"),
        Index("ix_role_permissions_role_id", "role_id"),
    )

    def __repr__(self):
        return f"<RolePermission(role_id={self.role_id}, permission_id={self.permission_id})>"
