"""
Service Request Service

Request lifecycle: creation, lookups, edits, assignment and the status
workflow. update_status is the only code path that writes
ServiceRequest.status.
"""
import logging
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Tuple

from sqlalchemy import select, update, and_, or_, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from servicedesk.core.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from servicedesk.core.principal import Principal
from servicedesk.models.customer import Customer
from servicedesk.models.document import Document
from servicedesk.models.employee import Employee
from servicedesk.models.enums import RequestStatus, RequestPriority
from servicedesk.models.invoice import Invoice
from servicedesk.models.service import Service
from servicedesk.models.service_request import ServiceRequest
from servicedesk.schemas.request import RequestCreate, RequestUpdate, RequestFilters
from servicedesk.services import workflow
from servicedesk.services.notification_service import NotificationService
from servicedesk.services.numbering import next_number

logger = logging.getLogger(__name__)

REQUEST_NUMBER_PREFIX = "REQ"


class RequestService:
    """
    Service for service request management.

    Handles:
    - Creation in DRAFT with a per-year request number
    - Filtered listing and lookups
    - Status transitions validated against the workflow table
    - (Re)assignment to employees
    """

    def __init__(self, db: AsyncSession, notifications: Optional[NotificationService] = None):
        self.db = db
        self.notifications = notifications or NotificationService(db)

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    async def get_by_id(self, request_id: str) -> Optional[ServiceRequest]:
        result = await self.db.execute(select(ServiceRequest).where(ServiceRequest.id == request_id))
        return result.scalar_one_or_none()

    async def get_or_404(self, request_id: str) -> ServiceRequest:
        request = await self.get_by_id(request_id)
        if not request:
            raise NotFoundError("Request not found")
        return request

    @staticmethod
    def ensure_access(request: ServiceRequest, principal: Optional[Principal]) -> None:
        """Customers may only touch their own requests."""
        if principal and principal.is_customer and request.customer_id != principal.id:
            raise ForbiddenError("You do not have access to this resource")

    async def find_one(
        self,
        request_id: str,
        principal: Optional[Principal] = None,
        increment_view: bool = True,
    ) -> ServiceRequest:
        request = await self.get_or_404(request_id)
        self.ensure_access(request, principal)

        if increment_view:
            # Table-level UPDATE: views must not bump the version column
            table = ServiceRequest.__table__
            await self.db.execute(
                update(table)
                .where(table.c.id == request.id)
                .values(
                    view_count=func.coalesce(table.c.view_count, 0) + 1,
                    last_viewed_at=datetime.now(timezone.utc),
                )
            )
            await self.db.refresh(request, ["view_count", "last_viewed_at"])
        return request

    async def find_by_request_number(
        self, request_number: str, principal: Optional[Principal] = None
    ) -> ServiceRequest:
        result = await self.db.execute(
            select(ServiceRequest).where(ServiceRequest.request_number == request_number)
        )
        request = result.scalar_one_or_none()
        if not request:
            raise NotFoundError("Request not found")
        self.ensure_access(request, principal)
        return request

    async def find_all(
        self,
        filters: Optional[RequestFilters] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[ServiceRequest], int]:
        """
        List requests, newest first.

        Returns:
            Tuple of (requests, total_count)
        """
        filters = filters or RequestFilters()
        conditions = []
        if filters.customer_id:
            conditions.append(ServiceRequest.customer_id == filters.customer_id)
        if filters.service_id:
            conditions.append(ServiceRequest.service_id == filters.service_id)
        if filters.assigned_to_id:
            conditions.append(ServiceRequest.assigned_to_id == filters.assigned_to_id)
        if filters.status:
            conditions.append(ServiceRequest.status == filters.status)
        if filters.priority:
            conditions.append(ServiceRequest.priority == filters.priority)
        if filters.search:
            pattern = f"%{filters.search.lower()}%"
            conditions.append(or_(
                func.lower(ServiceRequest.title).like(pattern),
                func.lower(ServiceRequest.request_number).like(pattern),
                ServiceRequest.title_ar.like(f"%{filters.search}%"),
            ))

        count_query = select(func.count(ServiceRequest.id))
        query = select(ServiceRequest)
        if conditions:
            count_query = count_query.where(and_(*conditions))
            query = query.where(and_(*conditions))

        total = (await self.db.execute(count_query)).scalar() or 0
        result = await self.db.execute(
            query.order_by(ServiceRequest.created_at.desc(), ServiceRequest.request_number.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        return list(result.unique().scalars().all()), total

    # =========================================================================
    # WRITES
    # =========================================================================

    async def create(self, customer_id: str, data: RequestCreate) -> ServiceRequest:
        """
        Open a request against a catalog service. Always starts in DRAFT.

        Raises:
            NotFoundError: Unknown customer or service
            BadRequestError: Service is inactive or archived
        """
        customer = await self.db.get(Customer, customer_id)
        if not customer:
            raise NotFoundError("Customer not found")

        service = await self.db.get(Service, data.service_id)
        if not service:
            raise NotFoundError("Service not found")
        if not service.is_available:
            raise BadRequestError("Service is not available")

        request = ServiceRequest(
            request_number=await next_number(self.db, ServiceRequest.request_number, REQUEST_NUMBER_PREFIX),
            customer=customer,
            service=service,
            assigned_to=None,
            status=workflow.INITIAL_STATUS,
            estimated_price=service.base_price,
            currency=service.currency,
            **data.model_dump(exclude={"service_id"}),
        )
        self.db.add(request)
        await self.db.flush()

        await self.notifications.notify_request_created(request)
        logger.info(f"Request {request.request_number} created for customer {customer_id}")
        return request

    async def update(
        self, request_id: str, data: RequestUpdate, principal: Optional[Principal] = None
    ) -> ServiceRequest:
        request = await self.get_or_404(request_id)
        self.ensure_access(request, principal)

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(request, field, value)

        try:
            await self.db.flush()
        except StaleDataError:
            raise ConflictError("Request was modified concurrently. Reload and try again.")
        return request

    async def update_status(
        self,
        request_id: str,
        new_status: RequestStatus,
        reason: Optional[str] = None,
        reason_ar: Optional[str] = None,
        principal: Optional[Principal] = None,
    ) -> Tuple[ServiceRequest, RequestStatus]:
        """
        Move a request along the workflow.

        The row is locked for the rest of the transaction and the version
        column rejects a write based on a stale read.

        Returns:
            Tuple of (request, previous_status)

        Raises:
            NotFoundError: Unknown request
            ForbiddenError: Customer acting on someone else's request, or
                moving to a status other than SUBMITTED / CANCELLED
            InvalidStatusTransitionError: Not an edge from the current status
            ConflictError: Concurrent modification
        """
        result = await self.db.execute(
            select(ServiceRequest)
            .where(ServiceRequest.id == request_id)
            .with_for_update(of=ServiceRequest)
            .execution_options(populate_existing=True)
        )
        request = result.unique().scalar_one_or_none()
        if not request:
            raise NotFoundError("Request not found")

        new_status = RequestStatus(new_status)
        if principal and principal.is_customer:
            self.ensure_access(request, principal)
            if new_status not in workflow.CUSTOMER_ALLOWED_TARGETS:
                raise ForbiddenError("Customers can only submit or cancel their requests")

        old_status = RequestStatus(request.status)
        workflow.validate_transition(old_status, new_status)

        now = datetime.now(timezone.utc)
        request.status = new_status
        for field, value in workflow.transition_side_effects(new_status, reason, reason_ar, now).items():
            setattr(request, field, value)

        try:
            await self.db.flush()
        except StaleDataError:
            logger.warning(f"Concurrent status change on request {request_id}")
            raise ConflictError("Request was modified concurrently. Reload and try again.")

        await self.notifications.notify_request_status_changed(request, old_status)
        logger.info(f"Request {request.request_number}: {old_status.value} -> {new_status.value}")
        return request, old_status

    async def assign_employee(
        self, request_id: str, employee_id: str, notes: Optional[str] = None
    ) -> ServiceRequest:
        """
        (Re)assign a request. The previous assignee is simply overwritten.

        Raises:
            NotFoundError: Unknown request or employee
            BadRequestError: Request is in a final status, or employee inactive
        """
        request = await self.get_or_404(request_id)
        if workflow.is_terminal(request.status):
            raise BadRequestError("Cannot assign a closed request")

        employee = await self.db.get(Employee, employee_id)
        if not employee:
            raise NotFoundError("Employee not found")
        if not employee.is_active:
            raise BadRequestError("Employee is not active")

        request.assigned_to = employee
        request.assigned_at = datetime.now(timezone.utc)
        if notes:
            request.notes = notes

        try:
            await self.db.flush()
        except StaleDataError:
            raise ConflictError("Request was modified concurrently. Reload and try again.")

        await self.notifications.notify_request_assigned(request, employee.id)
        logger.info(f"Request {request.request_number} assigned to employee {employee.id}")
        return request

    async def remove(self, request_id: str) -> ServiceRequest:
        request = await self.get_or_404(request_id)

        invoice_count = (await self.db.execute(
            select(func.count(Invoice.id)).where(Invoice.request_id == request.id)
        )).scalar() or 0
        if invoice_count:
            raise BadRequestError("Cannot delete request with an invoice")

        # Documents outlive the request they were attached to
        await self.db.execute(
            update(Document).where(Document.request_id == request.id).values(request_id=None)
        )
        await self.db.delete(request)
        await self.db.flush()
        logger.info(f"Request {request.request_number} deleted")
        return request

    # =========================================================================
    # REPORTING
    # =========================================================================

    async def get_stats(self, customer_id: Optional[str] = None) -> Dict[str, Any]:
        scope = [ServiceRequest.customer_id == customer_id] if customer_id else []

        total = (await self.db.execute(
            select(func.count(ServiceRequest.id)).where(*scope)
        )).scalar() or 0
        assigned = (await self.db.execute(
            select(func.count(ServiceRequest.id)).where(ServiceRequest.assigned_to_id.is_not(None), *scope)
        )).scalar() or 0

        by_status = {status.value: 0 for status in RequestStatus}
        rows = await self.db.execute(
            select(ServiceRequest.status, func.count(ServiceRequest.id))
            .where(*scope)
            .group_by(ServiceRequest.status)
        )
        for status, count in rows.all():
            by_status[RequestStatus(status).value] = count

        by_priority = {priority.value: 0 for priority in RequestPriority}
        rows = await self.db.execute(
            select(ServiceRequest.priority, func.count(ServiceRequest.id))
            .where(*scope)
            .group_by(ServiceRequest.priority)
        )
        for priority, count in rows.all():
            by_priority[RequestPriority(priority).value] = count

        return {
            "total": total,
            "by_status": by_status,
            "by_priority": by_priority,
            "assigned": assigned,
            "unassigned": total - assigned,
        }
