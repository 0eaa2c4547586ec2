"""
Customer model

External principal. Customers self-register and never hold a role; their
access is the fixed capability set in servicedesk.core.permissions.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, Boolean, Text, DateTime, Enum as SQLEnum, Index

from servicedesk.core.database import Base
from servicedesk.core.utils import generate_uuid
from servicedesk.models.enums import AccountStatus, CustomerType


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    name = Column(String(200), nullable=False)
    name_ar = Column(String(200), nullable=True)
    phone = Column(String(30), nullable=True)
    customer_type = Column(SQLEnum(CustomerType), default=CustomerType.INDIVIDUAL, nullable=False)

    # Type specific (CORPORATE / CONSULTANT)
    company_name = Column(String(200), nullable=True)
    company_name_ar = Column(String(200), nullable=True)
    license_number = Column(String(100), nullable=True)
    tax_number = Column(String(100), nullable=True)

    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)

    status = Column(SQLEnum(AccountStatus), default=AccountStatus.ACTIVE, nullable=False)

    # Email verification
    is_verified = Column(Boolean, default=False, nullable=False)
    verified_at = Column(DateTime(timezone=True), nullable=True)

    # Login tracking
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    login_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_customers_status", "status"),
        Index("ix_customers_type", "customer_type"),
    )

    def __repr__(self):
        return f"<Customer(id={self.id}, email='{self.email}')>"

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE
