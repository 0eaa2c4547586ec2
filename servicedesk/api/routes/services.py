"""
Service catalog routes

Listing and reading active services is public; the full catalog and all
writes need services:* permissions.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.api.deps import get_request_ip, get_user_agent
from servicedesk.core.database import get_db
from servicedesk.core.exceptions import NotFoundError
from servicedesk.core.permissions import Permission, require_permission
from servicedesk.core.principal import Principal
from servicedesk.models.enums import ServiceCategory, ServiceStatus
from servicedesk.schemas.catalog import ServiceCreate, ServiceResponse, ServiceUpdate
from servicedesk.schemas.common import MessageResponse, Page, bilingual
from servicedesk.services.audit_service import AuditService
from servicedesk.services.catalog_service import CatalogService

router = APIRouter()


@router.get("", response_model=Page[ServiceResponse])
async def list_active_services(
    category: Optional[ServiceCategory] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    """Public catalog: active services only."""
    items, total = await CatalogService(db).list_services(
        category=category, active_only=True, search=search, page=page, per_page=per_page
    )
    return Page[ServiceResponse].build(
        [ServiceResponse.model_validate(item) for item in items], total, page, per_page
    )


@router.get("/all", response_model=Page[ServiceResponse])
async def list_all_services(
    category: Optional[ServiceCategory] = None,
    status_filter: Optional[ServiceStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    principal: Principal = Depends(require_permission(Permission.SERVICES_READ)),
    db: AsyncSession = Depends(get_db),
):
    items, total = await CatalogService(db).list_services(
        category=category, status=status_filter, search=search, page=page, per_page=per_page
    )
    return Page[ServiceResponse].build(
        [ServiceResponse.model_validate(item) for item in items], total, page, per_page
    )


@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(service_id: str, db: AsyncSession = Depends(get_db)):
    service = await CatalogService(db).get_or_404(service_id)
    if not service.is_available:
        raise NotFoundError("Service not found")
    return ServiceResponse.model_validate(service)


@router.post("", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
async def create_service(
    request: Request,
    data: ServiceCreate,
    principal: Principal = Depends(require_permission(Permission.SERVICES_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    service = await CatalogService(db).create(data)
    await AuditService(db).log_create(
        "Service", service.id, new_values={"name": service.name, "code": service.code},
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return ServiceResponse.model_validate(service)


@router.patch("/{service_id}", response_model=ServiceResponse)
async def update_service(
    request: Request,
    service_id: str,
    data: ServiceUpdate,
    principal: Principal = Depends(require_permission(Permission.SERVICES_UPDATE)),
    db: AsyncSession = Depends(get_db),
):
    service = await CatalogService(db).update(service_id, data)
    await AuditService(db).log_update(
        "Service", service.id, new_values=data.model_dump(exclude_unset=True, mode="json"),
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return ServiceResponse.model_validate(service)


@router.delete("/{service_id}", response_model=MessageResponse)
async def delete_service(
    request: Request,
    service_id: str,
    principal: Principal = Depends(require_permission(Permission.SERVICES_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    service = await CatalogService(db).delete(service_id)
    await AuditService(db).log_delete(
        "Service", service_id, old_values={"name": service.name},
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return bilingual("Service deleted")
