"""
Permission registry routes
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.api.deps import get_request_ip, get_user_agent
from servicedesk.core.database import get_db
from servicedesk.core.permissions import Permission, require_permission
from servicedesk.core.principal import Principal
from servicedesk.schemas.common import MessageResponse, bilingual
from servicedesk.schemas.role import (
    PermissionBulkEntry,
    PermissionCreate,
    PermissionDetailResponse,
    PermissionListResponse,
    PermissionResponse,
    PermissionUpdate,
    RoleSummary,
)
from servicedesk.services.audit_service import AuditService
from servicedesk.services.permission_service import PermissionService

router = APIRouter()


@router.get("", response_model=PermissionListResponse)
async def list_permissions(
    module: Optional[str] = None,
    principal: Principal = Depends(require_permission(Permission.PERMISSIONS_READ)),
    db: AsyncSession = Depends(get_db),
):
    """All permissions, ordered by module then action, plus the same list grouped by module."""
    permissions = await PermissionService(db).list_all(module)
    grouped = PermissionService.group_by_module(permissions)
    return PermissionListResponse(
        permissions=[PermissionResponse.model_validate(p) for p in permissions],
        grouped={
            name: [PermissionResponse.model_validate(p) for p in members]
            for name, members in grouped.items()
        },
        total=len(permissions),
    )


@router.get("/modules", response_model=List[str])
async def list_permission_modules(
    principal: Principal = Depends(require_permission(Permission.PERMISSIONS_READ)),
    db: AsyncSession = Depends(get_db),
):
    return await PermissionService(db).list_modules()


@router.get("/{permission_id}", response_model=PermissionDetailResponse)
async def get_permission(
    permission_id: str,
    principal: Principal = Depends(require_permission(Permission.PERMISSIONS_READ)),
    db: AsyncSession = Depends(get_db),
):
    """Permission with the roles that grant it."""
    permission_service = PermissionService(db)
    permission = await permission_service.get_or_404(permission_id)
    roles = await permission_service.get_roles_with_permission(permission.id)
    return PermissionDetailResponse(
        **PermissionResponse.model_validate(permission).model_dump(),
        roles=[RoleSummary.model_validate(role) for role in roles],
    )


@router.post("", response_model=PermissionResponse, status_code=status.HTTP_201_CREATED)
async def create_permission(
    request: Request,
    data: PermissionCreate,
    principal: Principal = Depends(require_permission(Permission.PERMISSIONS_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    permission = await PermissionService(db).create(data.module, data.action, data.description)
    await AuditService(db).log_create(
        "Permission", permission.id, new_values={"name": permission.name},
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return PermissionResponse.model_validate(permission)


@router.post("/bulk", response_model=dict)
async def bulk_upsert_permissions(
    entries: List[PermissionBulkEntry],
    principal: Principal = Depends(require_permission(Permission.PERMISSIONS_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    """Create missing permissions and refresh descriptions. Used for seeding."""
    return await PermissionService(db).bulk_upsert(
        (entry.module, entry.action, entry.description) for entry in entries
    )


@router.patch("/{permission_id}", response_model=PermissionResponse)
async def update_permission(
    permission_id: str,
    data: PermissionUpdate,
    principal: Principal = Depends(require_permission(Permission.PERMISSIONS_UPDATE)),
    db: AsyncSession = Depends(get_db),
):
    """Only the description can change; the name is fixed once registered."""
    permission = await PermissionService(db).update_description(permission_id, data.description)
    return PermissionResponse.model_validate(permission)


@router.delete("/{permission_id}", response_model=MessageResponse)
async def delete_permission(
    request: Request,
    permission_id: str,
    principal: Principal = Depends(require_permission(Permission.PERMISSIONS_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    permission = await PermissionService(db).delete(permission_id)
    await AuditService(db).log_delete(
        "Permission", permission_id, old_values={"name": permission.name},
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return bilingual("Permission deleted")
