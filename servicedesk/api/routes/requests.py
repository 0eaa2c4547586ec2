"""
Service request routes

Customers reach the create / read / status endpoints with their fixed
capability set and only ever see their own requests. Everything else is
employee-only.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.api.deps import get_request_ip, get_user_agent
from servicedesk.core.database import get_db
from servicedesk.core.exceptions import BadRequestError
from servicedesk.core.permissions import Permission, require_permission
from servicedesk.core.principal import Principal
from servicedesk.models.enums import AuditAction, RequestPriority, RequestStatus
from servicedesk.schemas.common import MessageResponse, Page, bilingual
from servicedesk.schemas.request import (
    AssignRequest,
    RequestCreate,
    RequestFilters,
    RequestResponse,
    RequestStats,
    RequestStatusResponse,
    RequestUpdate,
    StatusUpdate,
)
from servicedesk.services import workflow
from servicedesk.services.audit_service import AuditService
from servicedesk.services.request_service import RequestService

router = APIRouter()


@router.post("", response_model=RequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    request: Request,
    data: RequestCreate,
    customer_id: Optional[str] = Query(None, description="Required when staff open a request for a customer"),
    principal: Principal = Depends(require_permission(Permission.REQUESTS_CREATE, allow_customer=True)),
    db: AsyncSession = Depends(get_db),
):
    """
    Open a request in DRAFT.

    Customers always open requests for themselves.
    """
    if principal.is_customer:
        customer_id = principal.id
    elif not customer_id:
        raise BadRequestError("customer_id is required")

    service_request = await RequestService(db).create(customer_id, data)
    await AuditService(db).log_create(
        "ServiceRequest", service_request.id,
        new_values={"request_number": service_request.request_number, "service_id": service_request.service_id},
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return RequestResponse.model_validate(service_request)


@router.get("", response_model=Page[RequestResponse])
async def list_requests(
    customer_id: Optional[str] = None,
    service_id: Optional[str] = None,
    assigned_to_id: Optional[str] = None,
    status_filter: Optional[RequestStatus] = Query(None, alias="status"),
    priority: Optional[RequestPriority] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(require_permission(Permission.REQUESTS_READ, allow_customer=True)),
    db: AsyncSession = Depends(get_db),
):
    filters = RequestFilters(
        customer_id=principal.id if principal.is_customer else customer_id,
        service_id=service_id,
        assigned_to_id=assigned_to_id,
        status=status_filter,
        priority=priority,
        search=search,
    )
    items, total = await RequestService(db).find_all(filters, page=page, per_page=per_page)
    return Page[RequestResponse].build(
        [RequestResponse.model_validate(item) for item in items], total, page, per_page
    )


@router.get("/stats", response_model=RequestStats)
async def request_stats(
    principal: Principal = Depends(require_permission(Permission.REQUESTS_READ, allow_customer=True)),
    db: AsyncSession = Depends(get_db),
):
    customer_id = principal.id if principal.is_customer else None
    return RequestStats(**await RequestService(db).get_stats(customer_id=customer_id))


@router.get("/number/{request_number}", response_model=RequestResponse)
async def get_request_by_number(
    request_number: str,
    principal: Principal = Depends(require_permission(Permission.REQUESTS_READ, allow_customer=True)),
    db: AsyncSession = Depends(get_db),
):
    service_request = await RequestService(db).find_by_request_number(request_number, principal)
    return RequestResponse.model_validate(service_request)


@router.get("/{request_id}", response_model=RequestStatusResponse)
async def get_request(
    request_id: str,
    principal: Principal = Depends(require_permission(Permission.REQUESTS_READ, allow_customer=True)),
    db: AsyncSession = Depends(get_db),
):
    """Request details plus the statuses it may move to next."""
    service_request = await RequestService(db).find_one(request_id, principal)
    response = RequestStatusResponse.model_validate(service_request)
    response.allowed_transitions = workflow.allowed_transitions(service_request.status)
    return response


@router.patch("/{request_id}", response_model=RequestResponse)
async def update_request(
    request: Request,
    request_id: str,
    data: RequestUpdate,
    principal: Principal = Depends(require_permission(Permission.REQUESTS_UPDATE)),
    db: AsyncSession = Depends(get_db),
):
    """Edit request details. Status is changed through PATCH /{id}/status only."""
    changes = data.model_dump(exclude_unset=True, mode="json")
    service_request = await RequestService(db).update(request_id, data, principal)
    await AuditService(db).log_update(
        "ServiceRequest", service_request.id, new_values=changes,
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return RequestResponse.model_validate(service_request)


@router.patch("/{request_id}/status", response_model=RequestStatusResponse)
async def update_request_status(
    request: Request,
    request_id: str,
    data: StatusUpdate,
    principal: Principal = Depends(require_permission(Permission.REQUESTS_UPDATE_STATUS, allow_customer=True)),
    db: AsyncSession = Depends(get_db),
):
    """
    Move a request along the workflow.

    400 with `allowed_transitions` when the move is not legal from the
    current status; 409 when someone else changed the request first.
    """
    service_request, old_status = await RequestService(db).update_status(
        request_id, data.status, reason=data.reason, reason_ar=data.reason_ar, principal=principal
    )
    await AuditService(db).log_status_change(
        "ServiceRequest", service_request.id, old_status.value, data.status.value,
        principal=principal, description=data.reason,
        ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    response = RequestStatusResponse.model_validate(service_request)
    response.allowed_transitions = workflow.allowed_transitions(service_request.status)
    return response


@router.post("/{request_id}/assign", response_model=RequestResponse)
async def assign_request(
    request: Request,
    request_id: str,
    data: AssignRequest,
    principal: Principal = Depends(require_permission(Permission.REQUESTS_ASSIGN)),
    db: AsyncSession = Depends(get_db),
):
    service_request = await RequestService(db).assign_employee(request_id, data.employee_id, data.notes)
    await AuditService(db).log(
        AuditAction.ASSIGN, "ServiceRequest", service_request.id,
        principal=principal, new_values={"assigned_to_id": data.employee_id},
        ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return RequestResponse.model_validate(service_request)


@router.delete("/{request_id}", response_model=MessageResponse)
async def delete_request(
    request: Request,
    request_id: str,
    principal: Principal = Depends(require_permission(Permission.REQUESTS_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    service_request = await RequestService(db).remove(request_id)
    await AuditService(db).log_delete(
        "ServiceRequest", request_id, old_values={"request_number": service_request.request_number},
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return bilingual("Request deleted")
