"""
Refresh Token model

Opaque, rotating refresh tokens. The owner is a weak reference
(user_id, user_type): no foreign key, since customers and employees live in
separate tables and a deleted principal must not break token cleanup.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, Index

from servicedesk.core.database import Base
from servicedesk.core.utils import generate_uuid, as_utc
from servicedesk.models.enums import PrincipalKind


class RefreshToken(Base):
    """
    Tokens are:
    - Hashed (token_hash, not plaintext)
    - Time-limited (expires_at)
    - Revocable (revoked_at), rotated on every refresh
    """
    __tablename__ = "refresh_tokens"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    token_hash = Column(String(128), unique=True, nullable=False, index=True)

    user_id = Column(String(36), nullable=False)
    user_type = Column(SQLEnum(PrincipalKind), nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    # Context
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)

    __table_args__ = (
        Index("ix_refresh_token_owner", "user_id", "user_type"),
        Index("ix_refresh_token_expires", "expires_at"),
    )

    def __repr__(self):
        return f"<RefreshToken(id={self.id}, user_id={self.user_id}, user_type={self.user_type})>"

    @property
    def is_expired(self) -> bool:
        return datetime.now(timezone.utc) >= as_utc(self.expires_at)

    @property
    def is_valid(self) -> bool:
        """Check if token is valid (not revoked, not expired)."""
        return self.revoked_at is None and not self.is_expired

    def revoke(self) -> None:
        self.revoked_at = datetime.now(timezone.utc)
