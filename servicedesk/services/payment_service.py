"""
Payment Service

Staff-recorded payments against invoices. Every change re-evaluates the
invoice: fully covered invoices become PAID, a partial payment moves a DRAFT
invoice to ISSUED.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, List, Dict, Any, Tuple

from sqlalchemy import select, and_, func
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from servicedesk.core.principal import Principal
from servicedesk.models.enums import InvoiceStatus, PaymentMethod, PaymentStatus
from servicedesk.models.invoice import Invoice
from servicedesk.models.payment import Payment
from servicedesk.schemas.billing import PaymentCreate, PaymentUpdate
from servicedesk.services.invoice_service import InvoiceService, money
from servicedesk.services.notification_service import NotificationService
from servicedesk.services.numbering import next_number

logger = logging.getLogger(__name__)

PAYMENT_NUMBER_PREFIX = "PAY"

STATUS_TIMESTAMPS = {
    PaymentStatus.PAID: "paid_at",
    PaymentStatus.FAILED: "failed_at",
    PaymentStatus.REFUNDED: "refunded_at",
}


class PaymentService:

    def __init__(self, db: AsyncSession, notifications: Optional[NotificationService] = None):
        self.db = db
        self.notifications = notifications or NotificationService(db)
        self.invoices = InvoiceService(db, self.notifications)

    async def get_by_id(self, payment_id: str) -> Optional[Payment]:
        result = await self.db.execute(select(Payment).where(Payment.id == payment_id))
        return result.scalar_one_or_none()

    async def get_or_404(self, payment_id: str, principal: Optional[Principal] = None) -> Payment:
        payment = await self.get_by_id(payment_id)
        if not payment:
            raise NotFoundError("Payment not found")
        if principal and principal.is_customer and payment.customer_id != principal.id:
            raise ForbiddenError("You do not have access to this resource")
        return payment

    async def list_payments(
        self,
        customer_id: Optional[str] = None,
        invoice_id: Optional[str] = None,
        status: Optional[PaymentStatus] = None,
        method: Optional[PaymentMethod] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[Payment], int]:
        conditions = []
        if customer_id:
            conditions.append(Payment.customer_id == customer_id)
        if invoice_id:
            conditions.append(Payment.invoice_id == invoice_id)
        if status:
            conditions.append(Payment.status == status)
        if method:
            conditions.append(Payment.method == method)

        count_query = select(func.count(Payment.id))
        query = select(Payment)
        if conditions:
            count_query = count_query.where(and_(*conditions))
            query = query.where(and_(*conditions))

        total = (await self.db.execute(count_query)).scalar() or 0
        result = await self.db.execute(
            query.order_by(Payment.created_at.desc()).offset((page - 1) * per_page).limit(per_page)
        )
        return list(result.scalars().all()), total

    async def create(self, data: PaymentCreate, recorded_by_id: Optional[str] = None) -> Payment:
        """
        Record a payment against an invoice.

        Raises:
            NotFoundError: Unknown invoice
            BadRequestError: Invoice cancelled or already paid, amount not
                positive, or amount above the remaining balance
        """
        invoice = await self.invoices.get_or_404(data.invoice_id)
        if invoice.status == InvoiceStatus.CANCELLED:
            raise BadRequestError("Cannot pay a cancelled invoice")
        if invoice.status == InvoiceStatus.PAID:
            raise BadRequestError("Invoice is already paid")

        amount = money(data.amount)
        if amount <= 0:
            raise BadRequestError("Payment amount must be greater than zero")

        balance = money(invoice.total) - await self.invoices.amount_paid(invoice.id)
        if amount > balance:
            raise BadRequestError(
                "Payment amount exceeds remaining balance",
                details={"balance_due": str(balance)},
            )

        payment = Payment(
            payment_number=await next_number(self.db, Payment.payment_number, PAYMENT_NUMBER_PREFIX),
            invoice=invoice,
            customer_id=invoice.customer_id,
            amount=amount,
            currency=invoice.currency,
            method=data.method,
            status=PaymentStatus.PAID,
            paid_at=datetime.now(timezone.utc),
            transaction_reference=data.transaction_reference,
            notes=data.notes,
            recorded_by_id=recorded_by_id,
        )
        self.db.add(payment)
        await self.db.flush()

        await self.reconcile_invoice(invoice)
        await self.notifications.notify_payment_received(payment)
        logger.info(f"Payment {payment.payment_number} of {amount} recorded on {invoice.invoice_number}")
        return payment

    async def update(self, payment_id: str, data: PaymentUpdate) -> Payment:
        """
        Edit a payment or move it between statuses.

        Raises:
            NotFoundError: Unknown payment
            BadRequestError: Re-marking as PAID on a cancelled invoice, or for
                more than the remaining balance
        """
        payment = await self.get_or_404(payment_id)
        changes = data.model_dump(exclude_unset=True)

        status = changes.pop("status", None)
        if status == PaymentStatus.PAID and payment.status != PaymentStatus.PAID:
            await self._check_can_settle(payment)
        if status is not None and status != payment.status:
            payment.status = status
            stamp = STATUS_TIMESTAMPS.get(PaymentStatus(status))
            if stamp:
                setattr(payment, stamp, datetime.now(timezone.utc))

        for field, value in changes.items():
            setattr(payment, field, value)

        await self.db.flush()
        if status is not None:
            await self.reconcile_invoice(payment.invoice)
        return payment

    async def _check_can_settle(self, payment: Payment) -> None:
        """A payment coming back to PAID must still fit in the invoice balance."""
        invoice = payment.invoice
        if invoice.status == InvoiceStatus.CANCELLED:
            raise BadRequestError("Cannot pay a cancelled invoice")

        balance = money(invoice.total) - await self.invoices.amount_paid(invoice.id)
        if money(payment.amount) > balance:
            raise BadRequestError(
                "Payment amount exceeds remaining balance",
                details={"balance_due": str(balance)},
            )

    async def delete(self, payment_id: str) -> Payment:
        payment = await self.get_or_404(payment_id)
        if payment.status == PaymentStatus.PAID:
            raise BadRequestError("Cannot delete a completed payment")

        invoice = payment.invoice
        await self.db.delete(payment)
        await self.db.flush()
        await self.reconcile_invoice(invoice)
        return payment

    async def reconcile_invoice(self, invoice: Invoice) -> Invoice:
        """Bring the invoice status in line with what has been paid."""
        paid = await self.invoices.amount_paid(invoice.id)
        total = money(invoice.total)

        if paid >= total and total > 0:
            InvoiceService.set_status(invoice, InvoiceStatus.PAID)
        elif invoice.status == InvoiceStatus.PAID:
            # A refund or failure reopened the balance
            invoice.status = InvoiceStatus.ISSUED
            invoice.paid_at = None
        elif paid > 0 and invoice.status == InvoiceStatus.DRAFT:
            InvoiceService.set_status(invoice, InvoiceStatus.ISSUED)

        await self.db.flush()
        return invoice

    async def get_stats(self, customer_id: Optional[str] = None) -> Dict[str, Any]:
        scope = [Payment.customer_id == customer_id] if customer_id else []

        by_status = {status.value: 0 for status in PaymentStatus}
        rows = await self.db.execute(
            select(Payment.status, func.count(Payment.id)).where(*scope).group_by(Payment.status)
        )
        for status, count in rows.all():
            by_status[PaymentStatus(status).value] = count

        by_method: Dict[str, Decimal] = {}
        rows = await self.db.execute(
            select(Payment.method, func.coalesce(func.sum(Payment.amount), 0))
            .where(Payment.status == PaymentStatus.PAID, *scope)
            .group_by(Payment.method)
        )
        for method, amount in rows.all():
            by_method[PaymentMethod(method).value] = money(amount)

        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "by_method": by_method,
            "total_received": money(sum(by_method.values(), Decimal("0"))),
        }
