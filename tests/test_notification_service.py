"""
Tests for notifications and the audit trail.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from servicedesk.core.exceptions import NotFoundError
from servicedesk.core.principal import Principal
from servicedesk.models.audit_log import AuditLog
from servicedesk.models.enums import (
    AuditAction, NotificationChannel, NotificationStatus, NotificationType, PrincipalKind
)
from servicedesk.services.audit_service import AuditService, log_audit
from servicedesk.services.mail_service import SendResult
from servicedesk.services.notification_service import NotificationService


def reminder(service, account, kind=PrincipalKind.CUSTOMER, **kwargs):
    return service.create(
        account.id, kind, NotificationType.REMINDER,
        title="Reminder", title_ar="تذكير", message="Please upload drawings", message_ar="يرجى رفع المخططات",
        **kwargs,
    )


class TestNotificationService:

    @pytest.mark.asyncio
    async def test_in_app_is_sent_immediately(self, db_session, mock_mailer, customer):
        notification = await reminder(NotificationService(db_session, mock_mailer), customer)

        assert notification.status == NotificationStatus.SENT
        assert notification.sent_at is not None
        mock_mailer.send_notification_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_email_channel_uses_mailer(self, db_session, mock_mailer, customer):
        mock_mailer.send_notification_email = AsyncMock(return_value=SendResult(success=True))

        notification = await reminder(
            NotificationService(db_session, mock_mailer), customer, channel=NotificationChannel.EMAIL
        )

        assert notification.status == NotificationStatus.SENT
        assert mock_mailer.send_notification_email.await_args.args[0] == customer.email

    @pytest.mark.asyncio
    async def test_email_failure_is_recorded(self, db_session, mock_mailer, customer):
        mock_mailer.send_notification_email = AsyncMock(return_value=SendResult(success=False, error="HTTP 500"))

        notification = await reminder(
            NotificationService(db_session, mock_mailer), customer, channel=NotificationChannel.EMAIL
        )

        assert notification.status == NotificationStatus.FAILED
        assert notification.failure_reason == "HTTP 500"

    @pytest.mark.asyncio
    async def test_recipients_are_isolated(self, db_session, mock_mailer, customer, make_customer, principal_of):
        service = NotificationService(db_session, mock_mailer)
        other = await make_customer(email="other@example.com")
        mine = await reminder(service, customer)
        await reminder(service, other)

        items, total = await service.find_for_user(principal_of(customer))
        assert total == 1
        assert items[0].id == mine.id

        with pytest.raises(NotFoundError):
            await service.mark_as_read(mine.id, principal_of(other))

    @pytest.mark.asyncio
    async def test_same_id_different_kind_is_someone_else(self, db_session, mock_mailer, customer):
        service = NotificationService(db_session, mock_mailer)
        await reminder(service, customer)

        employee_twin = Principal(id=customer.id, kind=PrincipalKind.EMPLOYEE, email="twin@example.com")

        assert await service.unread_count(employee_twin) == 0

    @pytest.mark.asyncio
    async def test_read_flow(self, db_session, mock_mailer, customer, principal_of):
        service = NotificationService(db_session, mock_mailer)
        principal = principal_of(customer)
        first = await reminder(service, customer)
        await reminder(service, customer)
        await reminder(service, customer)

        read = await service.mark_as_read(first.id, principal)
        assert read.status == NotificationStatus.READ
        assert await service.unread_count(principal) == 2

        assert await service.mark_all_as_read(principal) == 2
        assert await service.unread_count(principal) == 0

        await service.remove(first.id, principal)
        _, total = await service.find_for_user(principal)
        assert total == 2

    @pytest.mark.asyncio
    async def test_cleanup_only_removes_old_read(self, db_session, mock_mailer, customer, principal_of):
        service = NotificationService(db_session, mock_mailer)
        old_read = await reminder(service, customer)
        old_unread = await reminder(service, customer)
        await service.mark_as_read(old_read.id, principal_of(customer))
        for notification in (old_read, old_unread):
            notification.created_at = datetime.now(timezone.utc) - timedelta(days=45)
        await db_session.flush()

        assert await service.remove_old_notifications(days=30) == 1


class TestAuditService:

    @pytest.mark.asyncio
    async def test_log_records_actor(self, db_session, customer, principal_of):
        entry = await AuditService(db_session).log_create(
            "ServiceRequest", "req-1", new_values={"status": "DRAFT"},
            principal=principal_of(customer), ip_address="10.0.0.1", user_agent="pytest",
        )

        assert entry.user_id == customer.id
        assert entry.user_type == PrincipalKind.CUSTOMER
        assert entry.user_email == customer.email
        assert entry.action == AuditAction.CREATE
        assert entry.new_values == {"status": "DRAFT"}

    @pytest.mark.asyncio
    async def test_values_are_made_json_safe(self, db_session):
        entry = await log_audit(
            db_session, AuditAction.UPDATE, "Invoice", entity_id="inv-1",
            new_values={"status": NotificationStatus.SENT, "when": datetime(2025, 1, 2, tzinfo=timezone.utc)},
        )

        assert entry.user_id is None
        assert entry.new_values == {"status": "SENT", "when": "2025-01-02 00:00:00+00:00"}

    @pytest.mark.asyncio
    async def test_failed_write_does_not_raise(self, db_session):
        # entity_type is NOT NULL
        assert await AuditService(db_session).log(AuditAction.READ, None) is None

    @pytest.mark.asyncio
    async def test_queries(self, db_session, customer, principal_of):
        audit = AuditService(db_session)
        principal = principal_of(customer)
        await audit.log(AuditAction.LOGIN, "Customer", customer.id, principal=principal)
        await audit.log_status_change("ServiceRequest", "req-1", "DRAFT", "SUBMITTED", principal=principal)
        await audit.log_status_change("ServiceRequest", "req-2", "DRAFT", "CANCELLED")

        entries, total = await audit.find_all(action=AuditAction.STATUS_CHANGE)
        assert total == 2

        history = await audit.find_by_entity("ServiceRequest", "req-1")
        assert [entry.new_values for entry in history] == [{"status": "SUBMITTED"}]

        assert len(await audit.find_by_user(customer.id)) == 2

        stats = await audit.get_stats(days=7)
        assert stats["total"] == 3
        assert stats["by_action"] == {"LOGIN": 1, "STATUS_CHANGE": 2}
        assert stats["by_entity_type"] == {"Customer": 1, "ServiceRequest": 2}

    @pytest.mark.asyncio
    async def test_cleanup(self, db_session):
        db_session.add(AuditLog(
            action=AuditAction.LOGIN, entity_type="Customer",
            created_at=datetime.now(timezone.utc) - timedelta(days=120),
        ))
        await db_session.flush()
        await AuditService(db_session).log(AuditAction.LOGIN, "Customer")

        assert await AuditService(db_session).cleanup_old_logs(days_to_keep=90) == 1
        _, remaining = await AuditService(db_session).find_all()
        assert remaining == 1
