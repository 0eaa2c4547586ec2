"""
Tests for the service request lifecycle.
"""
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.orm.exc import StaleDataError

from servicedesk.core.exceptions import (
    BadRequestError, ConflictError, ForbiddenError, InvalidStatusTransitionError, NotFoundError
)
from servicedesk.core.utils import as_utc
from servicedesk.models.enums import AccountStatus, PrincipalKind, RequestStatus, ServiceStatus
from servicedesk.models.notification import Notification
from servicedesk.models.service_request import ServiceRequest
from servicedesk.schemas.request import RequestCreate, RequestFilters, RequestUpdate
from servicedesk.services.request_service import RequestService


@pytest.fixture
def request_service(db_session):
    return RequestService(db_session)


@pytest.fixture
def open_request(request_service, customer, service):
    async def _open(title="Soil bearing test", **fields):
        return await request_service.create(
            customer.id, RequestCreate(service_id=service.id, title=title, **fields)
        )
    return _open


async def walk(request_service, request, *statuses):
    for status in statuses:
        request, _ = await request_service.update_status(request.id, status)
    return request


async def bump_version_elsewhere(db_session, request):
    """Simulate another transaction committing a change to the row."""
    table = ServiceRequest.__table__
    await db_session.execute(
        update(table).where(table.c.id == request.id).values(version=table.c.version + 1)
    )


async def stored_version(db_session, request):
    table = ServiceRequest.__table__
    return (await db_session.execute(select(table.c.version).where(table.c.id == request.id))).scalar()


class TestCreate:

    @pytest.mark.asyncio
    async def test_starts_in_draft_with_number(self, open_request, service):
        request = await open_request()

        year = datetime.now(timezone.utc).year
        assert request.status == RequestStatus.DRAFT
        assert request.request_number == f"REQ-{year}-0001"
        assert request.estimated_price == Decimal("1500.00")
        assert request.currency == "EGP"
        assert request.assigned_to_id is None
        assert request.version == 1

    @pytest.mark.asyncio
    async def test_numbers_increase(self, open_request):
        first = await open_request()
        second = await open_request(title="Second request")

        assert first.request_number.endswith("-0001")
        assert second.request_number.endswith("-0002")

    @pytest.mark.asyncio
    async def test_unknown_customer(self, request_service, service):
        with pytest.raises(NotFoundError):
            await request_service.create("missing", RequestCreate(service_id=service.id, title="Nope"))

    @pytest.mark.asyncio
    async def test_inactive_service(self, db_session, request_service, customer, service):
        service.status = ServiceStatus.ARCHIVED
        await db_session.flush()

        with pytest.raises(BadRequestError):
            await request_service.create(customer.id, RequestCreate(service_id=service.id, title="Too late"))

    @pytest.mark.asyncio
    async def test_notifies_customer(self, db_session, open_request, customer):
        request = await open_request()

        result = await db_session.execute(
            select(Notification).where(Notification.entity_id == request.id)
        )
        notification = result.scalar_one()
        assert notification.user_id == customer.id
        assert notification.user_type == PrincipalKind.CUSTOMER
        assert request.request_number in notification.message


class TestStatusWorkflow:

    @pytest.mark.asyncio
    async def test_full_happy_path(self, request_service, open_request):
        request = await open_request()

        request = await walk(
            request_service, request,
            RequestStatus.SUBMITTED, RequestStatus.UNDER_REVIEW, RequestStatus.APPROVED,
            RequestStatus.IN_PROGRESS, RequestStatus.COMPLETED,
        )
        assert request.completed_at is not None
        assert request.delivered_at is None
        completed_at = as_utc(request.completed_at)

        request = await walk(request_service, request, RequestStatus.DELIVERED)
        assert request.status == RequestStatus.DELIVERED
        assert request.delivered_at is not None
        assert as_utc(request.completed_at) == completed_at

    @pytest.mark.asyncio
    async def test_returns_previous_status(self, request_service, open_request):
        request = await open_request()

        request, old_status = await request_service.update_status(request.id, RequestStatus.SUBMITTED)

        assert old_status == RequestStatus.DRAFT
        assert request.status == RequestStatus.SUBMITTED

    @pytest.mark.asyncio
    async def test_skipping_ahead_is_rejected(self, request_service, open_request):
        request = await walk(request_service, await open_request(), RequestStatus.SUBMITTED)

        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            await request_service.update_status(request.id, RequestStatus.DELIVERED)

        assert exc_info.value.allowed_transitions == ["UNDER_REVIEW", "REJECTED", "CANCELLED"]
        reloaded = await request_service.get_by_id(request.id)
        assert reloaded.status == RequestStatus.SUBMITTED

    @pytest.mark.asyncio
    async def test_rejection_keeps_reason(self, request_service, open_request):
        request = await walk(request_service, await open_request(), RequestStatus.SUBMITTED)

        request, _ = await request_service.update_status(
            request.id, RequestStatus.REJECTED, reason="Incomplete drawings", reason_ar="المخططات غير مكتملة"
        )

        assert request.rejection_reason == "Incomplete drawings"
        assert request.rejection_reason_ar == "المخططات غير مكتملة"
        assert request.cancellation_reason is None

    @pytest.mark.asyncio
    async def test_cancelled_is_final(self, request_service, open_request):
        request = await open_request()
        request, _ = await request_service.update_status(request.id, RequestStatus.CANCELLED, reason="Changed plans")

        assert request.cancellation_reason == "Changed plans"
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            await request_service.update_status(request.id, RequestStatus.SUBMITTED)
        assert exc_info.value.allowed_transitions == []

    @pytest.mark.asyncio
    async def test_on_hold_round_trip(self, request_service, open_request):
        request = await walk(
            request_service, await open_request(),
            RequestStatus.SUBMITTED, RequestStatus.UNDER_REVIEW, RequestStatus.ON_HOLD, RequestStatus.UNDER_REVIEW,
        )

        assert request.status == RequestStatus.UNDER_REVIEW

    @pytest.mark.asyncio
    async def test_each_move_bumps_version(self, request_service, open_request):
        request = await open_request()

        request = await walk(request_service, request, RequestStatus.SUBMITTED, RequestStatus.UNDER_REVIEW)

        assert request.version == 3

    @pytest.mark.asyncio
    async def test_unknown_request(self, request_service):
        with pytest.raises(NotFoundError):
            await request_service.update_status("missing", RequestStatus.SUBMITTED)

    @pytest.mark.asyncio
    async def test_each_move_notifies_customer(self, db_session, request_service, open_request):
        request = await walk(request_service, await open_request(), RequestStatus.SUBMITTED, RequestStatus.UNDER_REVIEW)

        count = (await db_session.execute(
            select(func.count(Notification.id)).where(Notification.entity_id == request.id)
        )).scalar()
        # created + two status changes
        assert count == 3


class TestCustomerActions:

    @pytest.mark.asyncio
    async def test_customer_can_submit_and_cancel(self, request_service, open_request, customer, principal_of):
        principal = principal_of(customer)
        request = await open_request()

        request, _ = await request_service.update_status(request.id, RequestStatus.SUBMITTED, principal=principal)
        request, _ = await request_service.update_status(request.id, RequestStatus.CANCELLED, principal=principal)

        assert request.status == RequestStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_customer_cannot_review(self, request_service, open_request, customer, principal_of):
        request = await walk(request_service, await open_request(), RequestStatus.SUBMITTED)

        with pytest.raises(ForbiddenError):
            await request_service.update_status(
                request.id, RequestStatus.UNDER_REVIEW, principal=principal_of(customer)
            )

    @pytest.mark.asyncio
    async def test_other_customer_is_refused(self, request_service, open_request, make_customer, principal_of):
        request = await open_request()
        stranger = await make_customer(email="stranger@example.com")

        with pytest.raises(ForbiddenError):
            await request_service.update_status(request.id, RequestStatus.SUBMITTED, principal=principal_of(stranger))
        with pytest.raises(ForbiddenError):
            await request_service.find_one(request.id, principal=principal_of(stranger))

    @pytest.mark.asyncio
    async def test_find_one_counts_views(self, request_service, open_request, customer, principal_of):
        request = await open_request()

        await request_service.find_one(request.id, principal=principal_of(customer))
        viewed = await request_service.find_one(request.id, principal=principal_of(customer))

        assert viewed.view_count == 2
        assert viewed.last_viewed_at is not None


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_views_leave_version_alone(self, db_session, request_service, open_request):
        request = await open_request()

        await request_service.find_one(request.id)
        await request_service.find_one(request.id)

        assert await stored_version(db_session, request) == 1

    @pytest.mark.asyncio
    async def test_view_after_concurrent_change(self, db_session, request_service, open_request):
        request = await open_request()
        await bump_version_elsewhere(db_session, request)

        viewed = await request_service.find_one(request.id)

        assert viewed.view_count == 1
        assert await stored_version(db_session, request) == 2

    @pytest.mark.asyncio
    async def test_stale_edit_is_conflict(self, db_session, request_service, open_request):
        request = await open_request()
        await bump_version_elsewhere(db_session, request)

        with pytest.raises(ConflictError) as exc_info:
            await request_service.update(request.id, RequestUpdate(title="Edited on a stale copy"))

        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_stale_assignment_is_conflict(self, db_session, request_service, open_request, make_employee):
        request = await open_request()
        employee = await make_employee()
        await bump_version_elsewhere(db_session, request)

        with pytest.raises(ConflictError):
            await request_service.assign_employee(request.id, employee.id)

    @pytest.mark.asyncio
    async def test_lost_status_race_is_conflict(self, db_session, request_service, open_request, monkeypatch):
        request = await open_request()
        monkeypatch.setattr(db_session, "flush", AsyncMock(side_effect=StaleDataError("version mismatch")))

        with pytest.raises(ConflictError) as exc_info:
            await request_service.update_status(request.id, RequestStatus.SUBMITTED)

        assert exc_info.value.to_dict()["error"] == "conflict"


class TestAssignment:

    @pytest.mark.asyncio
    async def test_reassignment_keeps_only_latest(self, request_service, open_request, make_employee):
        first = await make_employee(email="first@example.com")
        second = await make_employee(email="second@example.com")
        request = await open_request()

        request = await request_service.assign_employee(request.id, first.id)
        first_assigned_at = request.assigned_at
        request = await request_service.assign_employee(request.id, second.id, notes="Needs a senior engineer")

        assert request.assigned_to_id == second.id
        assert request.assigned_at >= first_assigned_at
        assert request.notes == "Needs a senior engineer"

    @pytest.mark.asyncio
    async def test_closed_request_cannot_be_assigned(self, request_service, open_request, make_employee):
        employee = await make_employee()
        request = await open_request()
        await request_service.update_status(request.id, RequestStatus.CANCELLED)

        with pytest.raises(BadRequestError):
            await request_service.assign_employee(request.id, employee.id)

    @pytest.mark.asyncio
    async def test_inactive_employee(self, request_service, open_request, make_employee):
        employee = await make_employee(status=AccountStatus.INACTIVE)
        request = await open_request()

        with pytest.raises(BadRequestError):
            await request_service.assign_employee(request.id, employee.id)

    @pytest.mark.asyncio
    async def test_unknown_employee(self, request_service, open_request):
        request = await open_request()

        with pytest.raises(NotFoundError):
            await request_service.assign_employee(request.id, "missing")


class TestQueries:

    @pytest.mark.asyncio
    async def test_find_all_filters_and_counts(self, request_service, open_request):
        first = await open_request(title="Concrete cube test")
        await open_request(title="Fire safety review")
        await request_service.update_status(first.id, RequestStatus.SUBMITTED)

        submitted, total = await request_service.find_all(RequestFilters(status=RequestStatus.SUBMITTED))
        assert total == 1
        assert submitted[0].id == first.id

        found, total = await request_service.find_all(RequestFilters(search="fire"))
        assert total == 1
        assert found[0].title == "Fire safety review"

    @pytest.mark.asyncio
    async def test_find_by_number(self, request_service, open_request):
        request = await open_request()

        found = await request_service.find_by_request_number(request.request_number)

        assert found.id == request.id

    @pytest.mark.asyncio
    async def test_update_edits_fields(self, request_service, open_request):
        request = await open_request()

        request = await request_service.update(request.id, RequestUpdate(final_price=Decimal("1750.50")))

        assert request.final_price == Decimal("1750.50")
        assert request.status == RequestStatus.DRAFT

    @pytest.mark.asyncio
    async def test_stats(self, request_service, open_request, make_employee):
        employee = await make_employee()
        first = await open_request()
        await open_request(title="Another request")
        await request_service.assign_employee(first.id, employee.id)

        stats = await request_service.get_stats()

        assert stats["total"] == 2
        assert stats["assigned"] == 1
        assert stats["unassigned"] == 1
        assert stats["by_status"]["DRAFT"] == 2
        assert stats["by_status"]["DELIVERED"] == 0

    @pytest.mark.asyncio
    async def test_remove(self, request_service, open_request):
        request = await open_request()

        await request_service.remove(request.id)

        assert await request_service.get_by_id(request.id) is None
