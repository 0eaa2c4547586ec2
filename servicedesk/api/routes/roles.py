"""
Role management routes

Roles bundle permissions for employees. The Admin role cannot be renamed,
re-permissioned or deleted; its permission list is always the full registry.
"""
from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.api.deps import get_request_ip, get_user_agent
from servicedesk.core.database import get_db
from servicedesk.core.permissions import Permission, require_permission
from servicedesk.core.principal import Principal
from servicedesk.schemas.common import MessageResponse, bilingual
from servicedesk.schemas.role import PermissionResponse, RoleCreate, RoleResponse, RoleUpdate
from servicedesk.services.audit_service import AuditService
from servicedesk.services.role_service import RoleService

router = APIRouter()


def role_response(described: dict) -> RoleResponse:
    return RoleResponse(**{
        **described,
        "permissions": [PermissionResponse.model_validate(p) for p in described["permissions"]],
    })


@router.get("", response_model=List[RoleResponse])
async def list_roles(
    principal: Principal = Depends(require_permission(Permission.ROLES_READ)),
    db: AsyncSession = Depends(get_db),
):
    """
    List all roles with their permissions and employee counts.

    Requires: roles:read permission
    """
    return [role_response(role) for role in await RoleService(db).list_roles()]


@router.get("/{role_id}", response_model=RoleResponse)
async def get_role(
    role_id: str,
    principal: Principal = Depends(require_permission(Permission.ROLES_READ)),
    db: AsyncSession = Depends(get_db),
):
    """
    Get role details.

    Requires: roles:read permission
    """
    role_service = RoleService(db)
    role = await role_service.get_role_or_404(role_id)
    return role_response(await role_service.describe_role(role))


@router.post("", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    request: Request,
    data: RoleCreate,
    principal: Principal = Depends(require_permission(Permission.ROLES_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a role, optionally with an initial permission set.

    Requires: roles:create permission
    """
    role_service = RoleService(db)
    role = await role_service.create_role(
        name=data.name,
        description=data.description,
        permission_ids=data.permission_ids,
        name_ar=data.name_ar,
    )
    await AuditService(db).log_create(
        "Role", role.id,
        new_values={"name": role.name, "permission_ids": sorted(data.permission_ids)},
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return role_response(await role_service.describe_role(role))


@router.put("/{role_id}", response_model=RoleResponse)
async def update_role(
    request: Request,
    role_id: str,
    data: RoleUpdate,
    principal: Principal = Depends(require_permission(Permission.ROLES_UPDATE)),
    db: AsyncSession = Depends(get_db),
):
    """
    Update a role. `permission_ids`, when given, replaces the whole set.

    Requires: roles:update permission
    """
    role_service = RoleService(db)
    role = await role_service.get_role_or_404(role_id)
    old_values = {
        "name": role.name,
        "permissions": [p.name for p in await role_service.get_role_permissions(role)],
    }

    role = await role_service.update_role(
        role_id,
        name=data.name,
        description=data.description,
        permission_ids=data.permission_ids,
        name_ar=data.name_ar,
    )
    described = await role_service.describe_role(role)

    await AuditService(db).log_update(
        "Role", role.id,
        old_values=old_values,
        new_values={"name": role.name, "permissions": [p.name for p in described["permissions"]]},
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return role_response(described)


@router.delete("/{role_id}", response_model=MessageResponse)
async def delete_role(
    request: Request,
    role_id: str,
    principal: Principal = Depends(require_permission(Permission.ROLES_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    """
    Delete a role. Refused while any employee still holds it.

    Requires: roles:delete permission
    """
    role = await RoleService(db).delete_role(role_id)
    await AuditService(db).log_delete(
        "Role", role_id, old_values={"name": role.name},
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return bilingual("Role deleted")
