"""
Audit log routes

Read-only views over the audit trail plus retention cleanup.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.database import get_db
from servicedesk.core.permissions import Permission, require_permission
from servicedesk.core.principal import Principal
from servicedesk.models.enums import AuditAction, PrincipalKind
from servicedesk.schemas.common import Page
from servicedesk.schemas.misc import AuditLogResponse
from servicedesk.services.audit_service import AuditService

router = APIRouter()


@router.get("", response_model=Page[AuditLogResponse])
async def list_audit_logs(
    user_id: Optional[str] = None,
    user_type: Optional[PrincipalKind] = None,
    action: Optional[AuditAction] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    principal: Principal = Depends(require_permission(Permission.AUDIT_READ)),
    db: AsyncSession = Depends(get_db),
):
    """
    Filtered audit trail, newest first.

    Requires: audit:read permission
    """
    items, total = await AuditService(db).find_all(
        user_id=user_id,
        user_type=user_type,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        per_page=per_page,
    )
    return Page[AuditLogResponse].build(
        [AuditLogResponse.model_validate(item) for item in items], total, page, per_page
    )


@router.get("/stats")
async def get_audit_stats(
    days: int = Query(30, ge=1, le=365),
    principal: Principal = Depends(require_permission(Permission.AUDIT_READ)),
    db: AsyncSession = Depends(get_db),
):
    return await AuditService(db).get_stats(days)


@router.get("/entity/{entity_type}/{entity_id}", response_model=List[AuditLogResponse])
async def get_entity_history(
    entity_type: str,
    entity_id: str,
    principal: Principal = Depends(require_permission(Permission.AUDIT_READ)),
    db: AsyncSession = Depends(get_db),
):
    logs = await AuditService(db).find_by_entity(entity_type, entity_id)
    return [AuditLogResponse.model_validate(entry) for entry in logs]


@router.get("/user/{user_id}", response_model=List[AuditLogResponse])
async def get_user_activity(
    user_id: str,
    limit: int = Query(100, ge=1, le=500),
    principal: Principal = Depends(require_permission(Permission.AUDIT_READ)),
    db: AsyncSession = Depends(get_db),
):
    logs = await AuditService(db).find_by_user(user_id, limit)
    return [AuditLogResponse.model_validate(entry) for entry in logs]


@router.delete("/cleanup")
async def cleanup_audit_logs(
    days_to_keep: int = Query(90, ge=1),
    principal: Principal = Depends(require_permission(Permission.AUDIT_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    """
    Delete entries older than the retention window.

    Requires: audit:delete permission
    """
    return {"deleted": await AuditService(db).cleanup_old_logs(days_to_keep)}
