"""
ServiceRequest model

The workflow entity. `status` is only ever written by
RequestService.update_status, which validates the move against
servicedesk.services.workflow. The version column turns concurrent writes
into a StaleDataError instead of a silent last-write-wins.
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, Integer, Text, DateTime, Date, Numeric, ForeignKey, Enum as SQLEnum, Index
)
from sqlalchemy.orm import relationship

from servicedesk.core.database import Base
from servicedesk.core.utils import generate_uuid
from servicedesk.models.enums import RequestStatus, RequestPriority


class ServiceRequest(Base):
    __tablename__ = "service_requests"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    request_number = Column(String(30), unique=True, nullable=False, index=True)  # REQ-2025-0001

    # Ownership (customer_id is immutable after creation)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)

    # Bilingual content
    title = Column(String(255), nullable=False)
    title_ar = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    description_ar = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    notes_ar = Column(Text, nullable=True)

    # Workflow
    status = Column(SQLEnum(RequestStatus), default=RequestStatus.DRAFT, nullable=False)
    priority = Column(SQLEnum(RequestPriority), default=RequestPriority.MEDIUM, nullable=False)

    # Assignment (no history; reassignment overwrites)
    assigned_to_id = Column(String(36), ForeignKey("employees.id"), nullable=True)
    assigned_at = Column(DateTime(timezone=True), nullable=True)

    # Reasons captured on REJECTED / CANCELLED
    rejection_reason = Column(Text, nullable=True)
    rejection_reason_ar = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    cancellation_reason_ar = Column(Text, nullable=True)

    # Pricing
    estimated_price = Column(Numeric(12, 2), nullable=True)
    final_price = Column(Numeric(12, 2), nullable=True)
    currency = Column(String(3), default="EGP", nullable=False)

    # Dates
    requested_date = Column(Date, nullable=True)
    expected_date = Column(Date, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)

    # Views
    view_count = Column(Integer, default=0, nullable=False)
    last_viewed_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships (many-to-one, always loaded with the request)
    customer = relationship("Customer", lazy="joined")
    service = relationship("Service", lazy="joined")
    assigned_to = relationship("Employee", lazy="joined")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_service_requests_customer_id", "customer_id"),
        Index("ix_service_requests_assigned_to_id", "assigned_to_id"),
        Index("ix_service_requests_status", "status"),
        Index("ix_service_requests_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<ServiceRequest(id={self.id}, number='{self.request_number}', status={self.status})>"
