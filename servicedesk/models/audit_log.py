"""
Audit Log model

Append-only record of who did what to which entity. Written through
AuditService, which never lets a failed write break the caller.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime, JSON, Enum as SQLEnum, Index

from servicedesk.core.database import Base
from servicedesk.core.utils import generate_uuid
from servicedesk.models.enums import AuditAction, PrincipalKind


class AuditLog(Base):
    """
    Retention: 90 days by default (AuditService.cleanup_old_logs).
    """
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    # Actor (null for system actions)
    user_id = Column(String(36), nullable=True)
    user_type = Column(SQLEnum(PrincipalKind), nullable=True)
    user_email = Column(String(255), nullable=True)

    # Action details
    action = Column(SQLEnum(AuditAction), nullable=False)
    entity_type = Column(String(50), nullable=False)  # e.g. 'ServiceRequest', 'Role'
    entity_id = Column(String(36), nullable=True)

    # State change tracking
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)

    # Context
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_audit_created_at", "created_at"),
        Index("ix_audit_user", "user_id", "user_type"),
        Index("ix_audit_entity", "entity_type", "entity_id"),
        Index("ix_audit_action", "action"),
    )

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action={self.action}, entity='{self.entity_type}')>"
