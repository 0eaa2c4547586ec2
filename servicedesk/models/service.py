"""
Service catalog model

Items customers can request. Bilingual name and description.
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, Integer, Boolean, Text, DateTime, Numeric, JSON, Enum as SQLEnum, Index
)

from servicedesk.core.database import Base
from servicedesk.core.utils import generate_uuid
from servicedesk.models.enums import ServiceCategory, ServiceStatus, PricingType


class Service(Base):
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    code = Column(String(50), unique=True, nullable=True)
    name = Column(String(200), nullable=False)
    name_ar = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    description_ar = Column(Text, nullable=True)

    category = Column(SQLEnum(ServiceCategory), default=ServiceCategory.OTHER, nullable=False)

    # Pricing
    pricing_type = Column(SQLEnum(PricingType), default=PricingType.FIXED, nullable=False)
    base_price = Column(Numeric(12, 2), nullable=True)
    currency = Column(String(3), default="EGP", nullable=False)

    duration_days = Column(Integer, nullable=True)  # Estimated turnaround
    requirements = Column(JSON, default=list)  # Bilingual checklist items
    requirements_ar = Column(JSON, default=list)

    status = Column(SQLEnum(ServiceStatus), default=ServiceStatus.ACTIVE, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_services_category", "category"),
        Index("ix_services_status", "status"),
    )

    def __repr__(self):
        return f"<Service(id={self.id}, name='{self.name}')>"

    @property
    def is_available(self) -> bool:
        """Requests can only be opened against active catalog items."""
        return bool(self.is_active) and self.status == ServiceStatus.ACTIVE
