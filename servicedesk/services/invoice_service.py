"""
Invoice Service

One invoice per service request. tax = subtotal * tax_rate / 100 and
total = subtotal + tax - discount, recalculated whenever an input changes.
"""
import logging
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, List, Dict, Any, Tuple

from sqlalchemy import select, and_, or_, func
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.config import settings
from servicedesk.core.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from servicedesk.core.principal import Principal
from servicedesk.models.enums import InvoiceStatus, PaymentStatus
from servicedesk.models.invoice import Invoice
from servicedesk.models.payment import Payment
from servicedesk.models.service_request import ServiceRequest
from servicedesk.schemas.billing import InvoiceCreate, InvoiceUpdate, InvoiceItem
from servicedesk.services.notification_service import NotificationService
from servicedesk.services.numbering import next_number
from servicedesk.services.system_setting_service import SystemSettingService

logger = logging.getLogger(__name__)

INVOICE_NUMBER_PREFIX = "INV"
TAX_RATE_SETTING = "billing.tax_rate"
CENT = Decimal("0.01")

# Timestamp stamped when an invoice enters the status
STATUS_TIMESTAMPS = {
    InvoiceStatus.ISSUED: "issued_at",
    InvoiceStatus.SENT: "sent_at",
    InvoiceStatus.PAID: "paid_at",
}


def money(value) -> Decimal:
    # str() first: SQLite hands SUM() back as a float
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


def items_subtotal(items: List[InvoiceItem]) -> Decimal:
    return money(sum((item.quantity * item.unit_price for item in items), Decimal("0")))


def calculate_amounts(subtotal: Decimal, tax_rate: Decimal, discount: Decimal) -> Dict[str, Decimal]:
    """
    Compute tax and total for an invoice.

    Raises:
        BadRequestError: discount larger than subtotal
    """
    subtotal = money(subtotal)
    discount = money(discount)
    if discount > subtotal:
        raise BadRequestError("Discount cannot exceed subtotal")
    tax_amount = money(subtotal * Decimal(tax_rate) / Decimal("100"))
    return {
        "subtotal": subtotal,
        "tax_amount": tax_amount,
        "discount": discount,
        "total": subtotal + tax_amount - discount,
    }


class InvoiceService:

    def __init__(self, db: AsyncSession, notifications: Optional[NotificationService] = None):
        self.db = db
        self.notifications = notifications or NotificationService(db)

    async def get_by_id(self, invoice_id: str) -> Optional[Invoice]:
        result = await self.db.execute(select(Invoice).where(Invoice.id == invoice_id))
        return result.scalar_one_or_none()

    async def get_or_404(self, invoice_id: str, principal: Optional[Principal] = None) -> Invoice:
        invoice = await self.get_by_id(invoice_id)
        if not invoice:
            raise NotFoundError("Invoice not found")
        if principal and principal.is_customer and invoice.customer_id != principal.id:
            raise ForbiddenError("You do not have access to this resource")
        return invoice

    async def amount_paid(self, invoice_id: str) -> Decimal:
        result = await self.db.execute(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(
                Payment.invoice_id == invoice_id,
                Payment.status == PaymentStatus.PAID,
            )
        )
        return money(result.scalar())

    async def get_with_balance(self, invoice_id: str, principal: Optional[Principal] = None) -> Dict[str, Any]:
        """Invoice plus amount_paid / balance_due, shaped for InvoiceDetailResponse."""
        invoice = await self.get_or_404(invoice_id, principal)
        paid = await self.amount_paid(invoice.id)
        return {
            **{column.name: getattr(invoice, column.name) for column in Invoice.__table__.columns},
            "amount_paid": paid,
            "balance_due": max(money(invoice.total) - paid, Decimal("0.00")),
        }

    async def list_invoices(
        self,
        customer_id: Optional[str] = None,
        status: Optional[InvoiceStatus] = None,
        request_id: Optional[str] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[Invoice], int]:
        conditions = []
        if customer_id:
            conditions.append(Invoice.customer_id == customer_id)
        if status:
            conditions.append(Invoice.status == status)
        if request_id:
            conditions.append(Invoice.request_id == request_id)

        count_query = select(func.count(Invoice.id))
        query = select(Invoice)
        if conditions:
            count_query = count_query.where(and_(*conditions))
            query = query.where(and_(*conditions))

        total = (await self.db.execute(count_query)).scalar() or 0
        result = await self.db.execute(
            query.order_by(Invoice.created_at.desc()).offset((page - 1) * per_page).limit(per_page)
        )
        return list(result.scalars().all()), total

    async def create(self, data: InvoiceCreate, created_by_id: Optional[str] = None) -> Invoice:
        """
        Issue the invoice for a request.

        Without an explicit tax_rate the billing.tax_rate system setting
        applies, then DEFAULT_TAX_RATE.

        Raises:
            NotFoundError: Unknown request
            ConflictError: The request already has an invoice
        """
        request = await self.db.get(ServiceRequest, data.request_id)
        if not request:
            raise NotFoundError("Request not found")

        existing = await self.db.execute(select(Invoice.id).where(Invoice.request_id == request.id))
        if existing.scalar_one_or_none():
            raise ConflictError("Invoice already exists for this request")

        if data.items:
            subtotal = items_subtotal(data.items)
        elif data.subtotal is not None:
            subtotal = data.subtotal
        else:
            subtotal = request.final_price or request.estimated_price or Decimal("0")

        tax_rate = data.tax_rate
        if tax_rate is None:
            tax_rate = await SystemSettingService(self.db).get_value(TAX_RATE_SETTING, settings.DEFAULT_TAX_RATE)
        amounts = calculate_amounts(subtotal, tax_rate, data.discount)

        invoice = Invoice(
            invoice_number=await next_number(self.db, Invoice.invoice_number, INVOICE_NUMBER_PREFIX),
            request=request,
            customer_id=request.customer_id,
            items=[item.model_dump(mode="json") for item in data.items],
            tax_rate=Decimal(tax_rate),
            currency=data.currency or request.currency or settings.DEFAULT_CURRENCY,
            status=InvoiceStatus.DRAFT,
            due_date=data.due_date,
            notes=data.notes,
            notes_ar=data.notes_ar,
            created_by_id=created_by_id,
            **amounts,
        )
        self.db.add(invoice)
        await self.db.flush()

        await self.notifications.notify_invoice_created(invoice)
        logger.info(f"Invoice {invoice.invoice_number} created for request {request.request_number}")
        return invoice

    async def update(self, invoice_id: str, data: InvoiceUpdate) -> Invoice:
        invoice = await self.get_or_404(invoice_id)
        changes = data.model_dump(exclude_unset=True)

        items = changes.pop("items", None)
        if items is not None:
            invoice.items = [item.model_dump(mode="json") for item in data.items]
            changes["subtotal"] = items_subtotal(data.items)

        if {"subtotal", "tax_rate", "discount"} & changes.keys():
            subtotal = changes.pop("subtotal", None)
            tax_rate = changes.pop("tax_rate", None)
            discount = changes.pop("discount", None)
            if tax_rate is not None:
                invoice.tax_rate = tax_rate
            amounts = calculate_amounts(
                invoice.subtotal if subtotal is None else subtotal,
                invoice.tax_rate,
                invoice.discount if discount is None else discount,
            )
            for field, value in amounts.items():
                setattr(invoice, field, value)

        status = changes.pop("status", None)
        if status is not None:
            self.set_status(invoice, status)

        for field, value in changes.items():
            setattr(invoice, field, value)

        await self.db.flush()
        return invoice

    @staticmethod
    def set_status(invoice: Invoice, status: InvoiceStatus) -> None:
        status = InvoiceStatus(status)
        if invoice.status == status:
            return
        invoice.status = status
        stamp = STATUS_TIMESTAMPS.get(status)
        if stamp:
            setattr(invoice, stamp, datetime.now(timezone.utc))

    async def delete(self, invoice_id: str) -> Invoice:
        invoice = await self.get_or_404(invoice_id)

        payment_count = (await self.db.execute(
            select(func.count(Payment.id)).where(Payment.invoice_id == invoice.id)
        )).scalar() or 0
        if payment_count:
            raise BadRequestError("Cannot delete invoice with payments")

        await self.db.delete(invoice)
        await self.db.flush()
        logger.info(f"Invoice {invoice.invoice_number} deleted")
        return invoice

    async def get_stats(self, customer_id: Optional[str] = None) -> Dict[str, Any]:
        scope = [Invoice.customer_id == customer_id] if customer_id else []

        by_status = {status.value: 0 for status in InvoiceStatus}
        rows = await self.db.execute(
            select(Invoice.status, func.count(Invoice.id)).where(*scope).group_by(Invoice.status)
        )
        for status, count in rows.all():
            by_status[InvoiceStatus(status).value] = count

        total_amount = (await self.db.execute(
            select(func.coalesce(func.sum(Invoice.total), 0))
            .where(Invoice.status != InvoiceStatus.CANCELLED, *scope)
        )).scalar()
        paid_amount = (await self.db.execute(
            select(func.coalesce(func.sum(Invoice.total), 0))
            .where(Invoice.status == InvoiceStatus.PAID, *scope)
        )).scalar()
        overdue_count = (await self.db.execute(
            select(func.count(Invoice.id)).where(
                or_(
                    Invoice.status == InvoiceStatus.OVERDUE,
                    and_(
                        Invoice.status.in_([InvoiceStatus.ISSUED, InvoiceStatus.SENT]),
                        Invoice.due_date < date.today(),
                    ),
                ),
                *scope,
            )
        )).scalar() or 0

        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "total_amount": money(total_amount),
            "paid_amount": money(paid_amount),
            "overdue_count": overdue_count,
        }
