"""
Tests for invoices and payments.
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest
import pytest_asyncio

from servicedesk.core.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from servicedesk.models.enums import InvoiceStatus, PaymentMethod, PaymentStatus
from servicedesk.schemas.billing import InvoiceCreate, InvoiceItem, InvoiceUpdate, PaymentCreate, PaymentUpdate
from servicedesk.schemas.request import RequestCreate
from servicedesk.services.invoice_service import InvoiceService, calculate_amounts, items_subtotal, money
from servicedesk.services.payment_service import PaymentService
from servicedesk.services.request_service import RequestService


@pytest_asyncio.fixture
async def service_request(db_session, customer, service):
    return await RequestService(db_session).create(
        customer.id, RequestCreate(service_id=service.id, title="Concrete core sampling")
    )


@pytest_asyncio.fixture
async def invoice(db_session, service_request):
    return await InvoiceService(db_session).create(InvoiceCreate(request_id=service_request.id))


def cash(invoice, amount):
    return PaymentCreate(invoice_id=invoice.id, amount=Decimal(amount), method=PaymentMethod.CASH)


class TestAmounts:

    def test_money_rounds_half_up(self):
        assert money("10.005") == Decimal("10.01")
        assert money(None) == Decimal("0.00")
        assert money(12.1) == Decimal("12.10")

    def test_calculate_amounts(self):
        amounts = calculate_amounts(Decimal("1000"), Decimal("14"), Decimal("50"))

        assert amounts == {
            "subtotal": Decimal("1000.00"),
            "tax_amount": Decimal("140.00"),
            "discount": Decimal("50.00"),
            "total": Decimal("1090.00"),
        }

    def test_discount_cannot_exceed_subtotal(self):
        with pytest.raises(BadRequestError):
            calculate_amounts(Decimal("100"), Decimal("14"), Decimal("100.01"))

    def test_items_subtotal(self):
        items = [
            InvoiceItem(description="Core sample", quantity=Decimal("2"), unit_price=Decimal("250.50")),
            InvoiceItem(description="Site visit", unit_price=Decimal("99.99")),
        ]
        assert items_subtotal(items) == Decimal("600.99")


class TestInvoiceService:

    @pytest.mark.asyncio
    async def test_defaults_from_request_price(self, invoice, service_request):
        year = datetime.now(timezone.utc).year

        assert invoice.invoice_number == f"INV-{year}-0001"
        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.customer_id == service_request.customer_id
        assert invoice.subtotal == Decimal("1500.00")
        assert invoice.tax_amount == Decimal("210.00")
        assert invoice.total == Decimal("1710.00")
        assert invoice.currency == "EGP"

    @pytest.mark.asyncio
    async def test_items_drive_subtotal(self, db_session, service_request):
        invoice = await InvoiceService(db_session).create(InvoiceCreate(
            request_id=service_request.id,
            items=[InvoiceItem(description="Compression test", quantity=Decimal("4"), unit_price=Decimal("125"))],
            tax_rate=Decimal("0"),
            discount=Decimal("20"),
        ))

        assert invoice.subtotal == Decimal("500.00")
        assert invoice.total == Decimal("480.00")
        assert invoice.items[0]["description"] == "Compression test"

    @pytest.mark.asyncio
    async def test_one_invoice_per_request(self, db_session, invoice, service_request):
        with pytest.raises(ConflictError):
            await InvoiceService(db_session).create(InvoiceCreate(request_id=service_request.id))

    @pytest.mark.asyncio
    async def test_unknown_request(self, db_session):
        with pytest.raises(NotFoundError):
            await InvoiceService(db_session).create(InvoiceCreate(request_id="missing"))

    @pytest.mark.asyncio
    async def test_update_recalculates(self, db_session, invoice):
        updated = await InvoiceService(db_session).update(invoice.id, InvoiceUpdate(discount=Decimal("110")))

        assert updated.discount == Decimal("110.00")
        assert updated.total == Decimal("1600.00")

    @pytest.mark.asyncio
    async def test_status_change_stamps_time(self, db_session, invoice):
        updated = await InvoiceService(db_session).update(invoice.id, InvoiceUpdate(status=InvoiceStatus.SENT))

        assert updated.status == InvoiceStatus.SENT
        assert updated.sent_at is not None
        assert updated.issued_at is None

    @pytest.mark.asyncio
    async def test_other_customer_cannot_read(self, db_session, invoice, make_customer, principal_of):
        stranger = await make_customer(email="stranger@example.com")

        with pytest.raises(ForbiddenError):
            await InvoiceService(db_session).get_with_balance(invoice.id, principal_of(stranger))

    @pytest.mark.asyncio
    async def test_delete_blocked_by_payments(self, db_session, invoice):
        await PaymentService(db_session).create(cash(invoice, "100"))

        with pytest.raises(BadRequestError):
            await InvoiceService(db_session).delete(invoice.id)

    @pytest.mark.asyncio
    async def test_stats(self, db_session, invoice):
        stats = await InvoiceService(db_session).get_stats()

        assert stats["total"] == 1
        assert stats["by_status"]["DRAFT"] == 1
        assert stats["total_amount"] == Decimal("1710.00")
        assert stats["paid_amount"] == Decimal("0.00")


class TestPaymentService:

    @pytest.mark.asyncio
    async def test_partial_then_full_payment(self, db_session, invoice):
        payments = PaymentService(db_session)

        first = await payments.create(cash(invoice, "1000"))
        assert first.status == PaymentStatus.PAID
        assert first.payment_number.endswith("-0001")
        assert invoice.status == InvoiceStatus.ISSUED

        detail = await InvoiceService(db_session).get_with_balance(invoice.id)
        assert detail["amount_paid"] == Decimal("1000.00")
        assert detail["balance_due"] == Decimal("710.00")

        await payments.create(cash(invoice, "710"))
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.paid_at is not None

    @pytest.mark.asyncio
    async def test_overpayment_rejected(self, db_session, invoice):
        with pytest.raises(BadRequestError) as exc_info:
            await PaymentService(db_session).create(cash(invoice, "1710.01"))

        assert exc_info.value.details["balance_due"] == "1710.00"

    @pytest.mark.asyncio
    async def test_paid_invoice_takes_no_more(self, db_session, invoice):
        payments = PaymentService(db_session)
        await payments.create(cash(invoice, "1710"))

        with pytest.raises(BadRequestError):
            await payments.create(cash(invoice, "1"))

    @pytest.mark.asyncio
    async def test_cancelled_invoice_takes_nothing(self, db_session, invoice):
        await InvoiceService(db_session).update(invoice.id, InvoiceUpdate(status=InvoiceStatus.CANCELLED))

        with pytest.raises(BadRequestError):
            await PaymentService(db_session).create(cash(invoice, "10"))

    @pytest.mark.asyncio
    async def test_refund_reopens_invoice(self, db_session, invoice):
        payments = PaymentService(db_session)
        payment = await payments.create(cash(invoice, "1710"))

        payment = await payments.update(payment.id, PaymentUpdate(status=PaymentStatus.REFUNDED))

        assert payment.refunded_at is not None
        assert invoice.status == InvoiceStatus.ISSUED
        assert invoice.paid_at is None

    @pytest.mark.asyncio
    async def test_failed_payment_cannot_be_repaid_past_total(self, db_session, invoice):
        payments = PaymentService(db_session)
        first = await payments.create(cash(invoice, "1000"))
        await payments.update(first.id, PaymentUpdate(status=PaymentStatus.FAILED))
        await payments.create(cash(invoice, "1710"))
        assert invoice.status == InvoiceStatus.PAID

        with pytest.raises(BadRequestError) as exc_info:
            await payments.update(first.id, PaymentUpdate(status=PaymentStatus.PAID))

        assert exc_info.value.details["balance_due"] == "0.00"
        assert first.status == PaymentStatus.FAILED
        assert await InvoiceService(db_session).amount_paid(invoice.id) == Decimal("1710.00")

    @pytest.mark.asyncio
    async def test_failed_payment_can_be_repaid_within_balance(self, db_session, invoice):
        payments = PaymentService(db_session)
        payment = await payments.create(cash(invoice, "1710"))
        await payments.update(payment.id, PaymentUpdate(status=PaymentStatus.FAILED))

        payment = await payments.update(payment.id, PaymentUpdate(status=PaymentStatus.PAID))

        assert payment.status == PaymentStatus.PAID
        assert invoice.status == InvoiceStatus.PAID

    @pytest.mark.asyncio
    async def test_payment_on_cancelled_invoice_cannot_be_repaid(self, db_session, invoice):
        payments = PaymentService(db_session)
        payment = await payments.create(cash(invoice, "100"))
        await payments.update(payment.id, PaymentUpdate(status=PaymentStatus.FAILED))
        await InvoiceService(db_session).update(invoice.id, InvoiceUpdate(status=InvoiceStatus.CANCELLED))

        with pytest.raises(BadRequestError):
            await payments.update(payment.id, PaymentUpdate(status=PaymentStatus.PAID))

    @pytest.mark.asyncio
    async def test_completed_payment_cannot_be_deleted(self, db_session, invoice):
        payments = PaymentService(db_session)
        payment = await payments.create(cash(invoice, "100"))

        with pytest.raises(BadRequestError):
            await payments.delete(payment.id)

        await payments.update(payment.id, PaymentUpdate(status=PaymentStatus.FAILED))
        await payments.delete(payment.id)
        assert await payments.get_by_id(payment.id) is None

    @pytest.mark.asyncio
    async def test_stats(self, db_session, invoice):
        payments = PaymentService(db_session)
        await payments.create(cash(invoice, "200"))
        await payments.create(PaymentCreate(
            invoice_id=invoice.id, amount=Decimal("300"), method=PaymentMethod.BANK_TRANSFER
        ))

        stats = await payments.get_stats()

        assert stats["total"] == 2
        assert stats["by_status"]["PAID"] == 2
        assert stats["by_method"] == {"CASH": Decimal("200.00"), "BANK_TRANSFER": Decimal("300.00")}
        assert stats["total_received"] == Decimal("500.00")
