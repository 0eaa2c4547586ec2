from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from servicedesk.models.enums import InvoiceStatus, PaymentStatus, PaymentMethod


# ============================================================================
# INVOICE SCHEMAS
# ============================================================================
class InvoiceItem(BaseModel):
    description: str
    description_ar: Optional[str] = None
    quantity: Decimal = Field(Decimal("1"), gt=0)
    unit_price: Decimal = Field(ge=0)


class InvoiceCreate(BaseModel):
    request_id: str
    items: List[InvoiceItem] = []
    # Used when no items are given
    subtotal: Optional[Decimal] = Field(None, ge=0)
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    discount: Decimal = Field(Decimal("0"), ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    due_date: Optional[date] = None
    notes: Optional[str] = None
    notes_ar: Optional[str] = None


class InvoiceUpdate(BaseModel):
    items: Optional[List[InvoiceItem]] = None
    subtotal: Optional[Decimal] = Field(None, ge=0)
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    discount: Optional[Decimal] = Field(None, ge=0)
    status: Optional[InvoiceStatus] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None
    notes_ar: Optional[str] = None


class InvoiceResponse(BaseModel):
    id: str
    invoice_number: str
    request_id: str
    customer_id: str
    items: List[InvoiceItem] = []
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    discount: Decimal
    total: Decimal
    currency: str
    status: InvoiceStatus
    due_date: Optional[date] = None
    issued_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None
    notes_ar: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvoiceDetailResponse(InvoiceResponse):
    amount_paid: Decimal
    balance_due: Decimal


class InvoiceStats(BaseModel):
    total: int
    by_status: Dict[str, int]
    total_amount: Decimal
    paid_amount: Decimal
    overdue_count: int


# ============================================================================
# PAYMENT SCHEMAS
# ============================================================================
class PaymentCreate(BaseModel):
    invoice_id: str
    amount: Decimal = Field(gt=0)
    method: PaymentMethod
    transaction_reference: Optional[str] = None
    notes: Optional[str] = None


class PaymentUpdate(BaseModel):
    status: Optional[PaymentStatus] = None
    transaction_reference: Optional[str] = None
    notes: Optional[str] = None


class PaymentResponse(BaseModel):
    id: str
    payment_number: str
    invoice_id: str
    customer_id: str
    amount: Decimal
    currency: str
    method: PaymentMethod
    status: PaymentStatus
    transaction_reference: Optional[str] = None
    notes: Optional[str] = None
    paid_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentStats(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_method: Dict[str, Decimal]
    total_received: Decimal
