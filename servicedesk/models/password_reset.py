"""
Password Reset Token model

Keyed by (email, user_type) rather than a foreign key.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, Index

from servicedesk.core.database import Base
from servicedesk.core.utils import generate_uuid, as_utc
from servicedesk.models.enums import PrincipalKind


class PasswordResetToken(Base):
    """
    Stores password reset tokens.

    Tokens are:
    - One-time use (used_at tracks usage)
    - Time-limited (expires_at)
    - Hashed (token_hash, not plaintext)
    """
    __tablename__ = "password_reset_tokens"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), nullable=False)
    user_type = Column(SQLEnum(PrincipalKind), nullable=False)

    token_hash = Column(String(128), unique=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_reset_token_owner", "email", "user_type"),
        Index("ix_reset_token_expires", "expires_at"),
    )

    def __repr__(self):
        return f"<PasswordResetToken(id={self.id}, email='{self.email}')>"

    @property
    def is_expired(self) -> bool:
        return datetime.now(timezone.utc) >= as_utc(self.expires_at)

    @property
    def is_valid(self) -> bool:
        """Check if token is valid (not used, not expired)."""
        return self.used_at is None and not self.is_expired

    def mark_used(self) -> None:
        """Mark token as used."""
        self.used_at = datetime.now(timezone.utc)
