"""
Dashboard Service

Aggregate counters for the staff dashboard. Queries stay portable between
PostgreSQL and SQLite.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Dict, Any

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.models.customer import Customer
from servicedesk.models.enums import AccountStatus, InvoiceStatus, PaymentStatus, RequestStatus, ServiceStatus
from servicedesk.models.invoice import Invoice
from servicedesk.models.payment import Payment
from servicedesk.models.service import Service
from servicedesk.models.service_request import ServiceRequest
from servicedesk.services.invoice_service import money

logger = logging.getLogger(__name__)

PENDING_STATUSES = (RequestStatus.SUBMITTED, RequestStatus.UNDER_REVIEW)
COMPLETED_STATUSES = (RequestStatus.COMPLETED, RequestStatus.DELIVERED)
OPEN_INVOICE_STATUSES = (InvoiceStatus.DRAFT, InvoiceStatus.ISSUED, InvoiceStatus.SENT, InvoiceStatus.OVERDUE)
TOP_SERVICES_LIMIT = 5


def month_start(now: datetime = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class DashboardService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _count(self, column, *conditions) -> int:
        result = await self.db.execute(select(func.count(column)).where(*conditions))
        return result.scalar() or 0

    async def _sum(self, column, *conditions) -> Decimal:
        result = await self.db.execute(select(func.coalesce(func.sum(column), 0)).where(*conditions))
        return money(result.scalar())

    async def get_summary(self) -> Dict[str, Any]:
        """Requests, customers, revenue and services at a glance."""
        since = month_start()

        requests = {
            "total": await self._count(ServiceRequest.id),
            "pending": await self._count(ServiceRequest.id, ServiceRequest.status.in_(PENDING_STATUSES)),
            "in_progress": await self._count(ServiceRequest.id, ServiceRequest.status == RequestStatus.IN_PROGRESS),
            "completed": await self._count(ServiceRequest.id, ServiceRequest.status.in_(COMPLETED_STATUSES)),
        }

        customers = {
            "total": await self._count(Customer.id),
            "active": await self._count(Customer.id, Customer.status == AccountStatus.ACTIVE),
            "new_this_month": await self._count(Customer.id, Customer.created_at >= since),
        }

        open_invoices = select(Invoice.id).where(Invoice.status.in_(OPEN_INVOICE_STATUSES))
        open_total = await self._sum(Invoice.total, Invoice.status.in_(OPEN_INVOICE_STATUSES))
        open_paid = await self._sum(
            Payment.amount, Payment.status == PaymentStatus.PAID, Payment.invoice_id.in_(open_invoices)
        )
        revenue = {
            "total": await self._sum(Payment.amount, Payment.status == PaymentStatus.PAID),
            "this_month": await self._sum(
                Payment.amount, Payment.status == PaymentStatus.PAID, Payment.paid_at >= since
            ),
            "pending": max(open_total - open_paid, Decimal("0.00")),
        }

        request_count = func.count(ServiceRequest.id).label("request_count")
        top = await self.db.execute(
            select(Service.id, Service.name, Service.name_ar, request_count)
            .join(ServiceRequest, ServiceRequest.service_id == Service.id)
            .group_by(Service.id, Service.name, Service.name_ar)
            .order_by(request_count.desc(), Service.name)
            .limit(TOP_SERVICES_LIMIT)
        )
        services = {
            "total": await self._count(Service.id),
            "active": await self._count(
                Service.id, Service.is_active.is_(True), Service.status == ServiceStatus.ACTIVE
            ),
            "top": [
                {"id": row.id, "name": row.name, "name_ar": row.name_ar, "request_count": row.request_count}
                for row in top.all()
            ],
        }

        return {"requests": requests, "customers": customers, "revenue": revenue, "services": services}

    async def recent_requests(self, limit: int = 10) -> List[ServiceRequest]:
        result = await self.db.execute(
            select(ServiceRequest).order_by(ServiceRequest.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())
