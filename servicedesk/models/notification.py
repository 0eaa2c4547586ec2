"""
Notification model

Bilingual notifications addressed to (user_id, user_type).
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime, JSON, Enum as SQLEnum, Index

from servicedesk.core.database import Base
from servicedesk.core.utils import generate_uuid
from servicedesk.models.enums import (
    NotificationType, NotificationChannel, NotificationStatus, PrincipalKind
)


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    user_id = Column(String(36), nullable=False)
    user_type = Column(SQLEnum(PrincipalKind), nullable=False)

    type = Column(SQLEnum(NotificationType), nullable=False)
    channel = Column(SQLEnum(NotificationChannel), default=NotificationChannel.IN_APP, nullable=False)
    status = Column(SQLEnum(NotificationStatus), default=NotificationStatus.PENDING, nullable=False)

    title = Column(String(255), nullable=False)
    title_ar = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    message_ar = Column(Text, nullable=False)
    data = Column(JSON, default=dict)

    # What the notification is about
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(String(36), nullable=True)

    sent_at = Column(DateTime(timezone=True), nullable=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    failure_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_notifications_recipient", "user_id", "user_type"),
        Index("ix_notifications_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<Notification(id={self.id}, type={self.type}, status={self.status})>"

    @property
    def is_read(self) -> bool:
        return self.read_at is not None
