"""
Invoice model

One invoice per service request. Amounts are recalculated by InvoiceService
whenever subtotal, tax rate or discount change.
"""
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import (
    Column, String, Text, Date, DateTime, Numeric, JSON, ForeignKey, Enum as SQLEnum, Index
)
from sqlalchemy.orm import relationship

from servicedesk.core.database import Base
from servicedesk.core.utils import generate_uuid
from servicedesk.models.enums import InvoiceStatus


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    invoice_number = Column(String(30), unique=True, nullable=False, index=True)  # INV-2025-0001

    request_id = Column(String(36), ForeignKey("service_requests.id"), unique=True, nullable=False)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False)

    # Amounts
    items = Column(JSON, default=list)  # [{description, description_ar, quantity, unit_price}]
    subtotal = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    tax_rate = Column(Numeric(5, 2), nullable=False, default=Decimal("14"))
    tax_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    discount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    total = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    currency = Column(String(3), default="EGP", nullable=False)

    status = Column(SQLEnum(InvoiceStatus), default=InvoiceStatus.DRAFT, nullable=False)
    due_date = Column(Date, nullable=True)
    issued_at = Column(DateTime(timezone=True), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    notes = Column(Text, nullable=True)
    notes_ar = Column(Text, nullable=True)

    created_by_id = Column(String(36), nullable=True)  # Employee id

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    request = relationship("ServiceRequest", lazy="joined")
    customer = relationship("Customer", lazy="joined")

    __table_args__ = (
        Index("ix_invoices_customer_id", "customer_id"),
        Index("ix_invoices_status", "status"),
    )

    def __repr__(self):
        return f"<Invoice(id={self.id}, number='{self.invoice_number}', status={self.status})>"
