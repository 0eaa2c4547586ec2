"""
Email Verification Token model

Customers only; keyed by email.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Index

from servicedesk.core.database import Base
from servicedesk.core.utils import generate_uuid, as_utc


class EmailVerificationToken(Base):
    __tablename__ = "email_verification_tokens"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), nullable=False)
    token_hash = Column(String(128), unique=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_email_verification_email", "email"),
    )

    def __repr__(self):
        return f"<EmailVerificationToken(id={self.id}, email='{self.email}')>"

    @property
    def is_expired(self) -> bool:
        return datetime.now(timezone.utc) >= as_utc(self.expires_at)

    @property
    def is_valid(self) -> bool:
        return self.used_at is None and not self.is_expired

    def mark_used(self) -> None:
        self.used_at = datetime.now(timezone.utc)
