"""
Notification Service

Bilingual notifications for customers and employees. IN_APP notifications
are delivered by being stored; EMAIL goes through MailService; SMS, WhatsApp
and push have no provider configured and are recorded as sent after logging.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, List, Dict, Any, Tuple

from sqlalchemy import select, update, delete, and_, func
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.exceptions import NotFoundError
from servicedesk.core.principal import Principal
from servicedesk.models.customer import Customer
from servicedesk.models.employee import Employee
from servicedesk.models.enums import (
    NotificationType, NotificationChannel, NotificationStatus, PrincipalKind, RequestStatus
)
from servicedesk.models.notification import Notification
from servicedesk.services.mail_service import MailService, mail_service

logger = logging.getLogger(__name__)

STATUS_LABELS_AR = {
    RequestStatus.DRAFT: "مسودة",
    RequestStatus.SUBMITTED: "مقدم",
    RequestStatus.UNDER_REVIEW: "قيد المراجعة",
    RequestStatus.APPROVED: "معتمد",
    RequestStatus.REJECTED: "مرفوض",
    RequestStatus.IN_PROGRESS: "قيد التنفيذ",
    RequestStatus.COMPLETED: "مكتمل",
    RequestStatus.DELIVERED: "تم التسليم",
    RequestStatus.CANCELLED: "ملغي",
    RequestStatus.ON_HOLD: "معلق",
}


class NotificationService:

    def __init__(self, db: AsyncSession, mailer: Optional[MailService] = None):
        self.db = db
        self.mailer = mailer or mail_service

    async def create(
        self,
        user_id: str,
        user_type: PrincipalKind,
        type: NotificationType,
        title: str,
        title_ar: str,
        message: str,
        message_ar: str,
        channel: NotificationChannel = NotificationChannel.IN_APP,
        data: Optional[Dict[str, Any]] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> Notification:
        """Store a notification and dispatch it on its channel."""
        notification = Notification(
            user_id=user_id,
            user_type=user_type,
            type=type,
            channel=channel,
            status=NotificationStatus.PENDING,
            title=title,
            title_ar=title_ar,
            message=message,
            message_ar=message_ar,
            data=data or {},
            entity_type=entity_type,
            entity_id=entity_id,
        )
        self.db.add(notification)
        await self.db.flush()

        await self._dispatch(notification)
        await self.db.flush()
        return notification

    async def _dispatch(self, notification: Notification) -> None:
        if notification.channel == NotificationChannel.EMAIL:
            email = await self._recipient_email(notification.user_id, notification.user_type)
            if not email:
                notification.status = NotificationStatus.FAILED
                notification.failure_reason = "Recipient not found"
                return
            result = await self.mailer.send_notification_email(
                email, notification.title, notification.title_ar,
                notification.message, notification.message_ar,
            )
            if not result.success:
                notification.status = NotificationStatus.FAILED
                notification.failure_reason = result.error
                return
        elif notification.channel != NotificationChannel.IN_APP:
            logger.info(
                f"No provider for {notification.channel.value}; "
                f"notification {notification.id} recorded only"
            )

        notification.status = NotificationStatus.SENT
        notification.sent_at = datetime.now(timezone.utc)

    async def _recipient_email(self, user_id: str, user_type: PrincipalKind) -> Optional[str]:
        model = Employee if user_type == PrincipalKind.EMPLOYEE else Customer
        result = await self.db.execute(select(model.email).where(model.id == user_id))
        return result.scalar_one_or_none()

    # =========================================================================
    # DOMAIN EVENTS
    # =========================================================================

    async def notify_request_created(self, request) -> Notification:
        return await self.create(
            request.customer_id, PrincipalKind.CUSTOMER, NotificationType.REQUEST_CREATED,
            title="Request created",
            title_ar="تم إنشاء الطلب",
            message=f"Your request {request.request_number} has been created.",
            message_ar=f"تم إنشاء طلبك رقم {request.request_number}.",
            data={"request_number": request.request_number},
            entity_type="ServiceRequest", entity_id=request.id,
        )

    async def notify_request_status_changed(self, request, old_status: RequestStatus) -> Notification:
        new_status = RequestStatus(request.status)
        return await self.create(
            request.customer_id, PrincipalKind.CUSTOMER, NotificationType.REQUEST_STATUS_CHANGED,
            title="Request status updated",
            title_ar="تم تحديث حالة الطلب",
            message=f"Request {request.request_number} moved from {old_status.value} to {new_status.value}.",
            message_ar=(
                f"تم تغيير حالة الطلب {request.request_number} من "
                f"{STATUS_LABELS_AR[RequestStatus(old_status)]} إلى {STATUS_LABELS_AR[new_status]}."
            ),
            data={"old_status": old_status.value, "new_status": new_status.value},
            entity_type="ServiceRequest", entity_id=request.id,
        )

    async def notify_request_assigned(self, request, employee_id: str) -> Notification:
        return await self.create(
            employee_id, PrincipalKind.EMPLOYEE, NotificationType.REQUEST_ASSIGNED,
            title="Request assigned to you",
            title_ar="تم إسناد طلب إليك",
            message=f"Request {request.request_number} has been assigned to you.",
            message_ar=f"تم إسناد الطلب {request.request_number} إليك.",
            data={"request_number": request.request_number},
            entity_type="ServiceRequest", entity_id=request.id,
        )

    async def notify_invoice_created(self, invoice) -> Notification:
        return await self.create(
            invoice.customer_id, PrincipalKind.CUSTOMER, NotificationType.INVOICE_CREATED,
            title="New invoice",
            title_ar="فاتورة جديدة",
            message=f"Invoice {invoice.invoice_number} for {invoice.total} {invoice.currency} was issued.",
            message_ar=f"تم إصدار الفاتورة {invoice.invoice_number} بمبلغ {invoice.total} {invoice.currency}.",
            data={"invoice_number": invoice.invoice_number, "total": str(invoice.total)},
            entity_type="Invoice", entity_id=invoice.id,
        )

    async def notify_payment_received(self, payment) -> Notification:
        return await self.create(
            payment.customer_id, PrincipalKind.CUSTOMER, NotificationType.PAYMENT_RECEIVED,
            title="Payment received",
            title_ar="تم استلام الدفعة",
            message=f"We received your payment of {payment.amount} {payment.currency}.",
            message_ar=f"تم استلام دفعتك بمبلغ {payment.amount} {payment.currency}.",
            data={"payment_number": payment.payment_number, "amount": str(payment.amount)},
            entity_type="Payment", entity_id=payment.id,
        )

    # =========================================================================
    # RECIPIENT OPERATIONS
    # =========================================================================

    async def find_for_user(
        self,
        principal: Principal,
        unread_only: bool = False,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[Notification], int]:
        conditions = [
            Notification.user_id == principal.id,
            Notification.user_type == principal.kind,
        ]
        if unread_only:
            conditions.append(Notification.read_at.is_(None))

        total = (await self.db.execute(
            select(func.count(Notification.id)).where(and_(*conditions))
        )).scalar() or 0

        result = await self.db.execute(
            select(Notification)
            .where(and_(*conditions))
            .order_by(Notification.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        return list(result.scalars().all()), total

    async def unread_count(self, principal: Principal) -> int:
        result = await self.db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == principal.id,
                Notification.user_type == principal.kind,
                Notification.read_at.is_(None),
            )
        )
        return result.scalar() or 0

    async def _get_own(self, notification_id: str, principal: Principal) -> Notification:
        result = await self.db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == principal.id,
                Notification.user_type == principal.kind,
            )
        )
        notification = result.scalar_one_or_none()
        if not notification:
            raise NotFoundError("Notification not found")
        return notification

    async def mark_as_read(self, notification_id: str, principal: Principal) -> Notification:
        notification = await self._get_own(notification_id, principal)
        if notification.read_at is None:
            notification.read_at = datetime.now(timezone.utc)
            notification.status = NotificationStatus.READ
            await self.db.flush()
        return notification

    async def mark_all_as_read(self, principal: Principal) -> int:
        result = await self.db.execute(
            update(Notification)
            .where(
                Notification.user_id == principal.id,
                Notification.user_type == principal.kind,
                Notification.read_at.is_(None),
            )
            .values(read_at=datetime.now(timezone.utc), status=NotificationStatus.READ)
        )
        return result.rowcount

    async def remove(self, notification_id: str, principal: Principal) -> None:
        notification = await self._get_own(notification_id, principal)
        await self.db.delete(notification)
        await self.db.flush()

    # =========================================================================
    # MAINTENANCE / REPORTING
    # =========================================================================

    async def remove_old_notifications(self, days: int = 30) -> int:
        """Purge read notifications older than `days`."""
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        result = await self.db.execute(
            delete(Notification).where(
                Notification.created_at < cutoff,
                Notification.read_at.is_not(None),
            )
        )
        logger.info(f"Removed {result.rowcount} read notifications older than {days} days")
        return result.rowcount

    async def get_stats(self) -> Dict[str, Any]:
        total = (await self.db.execute(select(func.count(Notification.id)))).scalar() or 0
        unread = (await self.db.execute(
            select(func.count(Notification.id)).where(Notification.read_at.is_(None))
        )).scalar() or 0
        by_status = await self.db.execute(
            select(Notification.status, func.count(Notification.id)).group_by(Notification.status)
        )
        by_channel = await self.db.execute(
            select(Notification.channel, func.count(Notification.id)).group_by(Notification.channel)
        )
        return {
            "total": total,
            "unread": unread,
            "by_status": {status.value: count for status, count in by_status.all()},
            "by_channel": {channel.value: count for channel, count in by_channel.all()},
        }
