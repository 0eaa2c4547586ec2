"""
Payment model

Payments are recorded by staff against an invoice (cash, transfer, Fawry...).
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime, Numeric, ForeignKey, Enum as SQLEnum, Index
from sqlalchemy.orm import relationship

from servicedesk.core.database import Base
from servicedesk.core.utils import generate_uuid
from servicedesk.models.enums import PaymentStatus, PaymentMethod


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    payment_number = Column(String(30), unique=True, nullable=False, index=True)  # PAY-2025-0001

    invoice_id = Column(String(36), ForeignKey("invoices.id"), nullable=False)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False)

    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), default="EGP", nullable=False)
    method = Column(SQLEnum(PaymentMethod), nullable=False)
    status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PAID, nullable=False)

    transaction_reference = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    paid_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)

    recorded_by_id = Column(String(36), nullable=True)  # Employee id

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    invoice = relationship("Invoice", lazy="joined")

    __table_args__ = (
        Index("ix_payments_invoice_id", "invoice_id"),
        Index("ix_payments_customer_id", "customer_id"),
        Index("ix_payments_status", "status"),
    )

    def __repr__(self):
        return f"<Payment(id={self.id}, number='{self.payment_number}', amount={self.amount})>"
