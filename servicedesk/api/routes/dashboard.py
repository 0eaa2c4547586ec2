"""
Dashboard routes
"""
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.database import get_db
from servicedesk.core.permissions import Permission, require_permission
from servicedesk.core.principal import Principal
from servicedesk.schemas.misc import DashboardSummary
from servicedesk.schemas.request import RequestResponse
from servicedesk.services.dashboard_service import DashboardService

router = APIRouter()


@router.get("/summary", response_model=DashboardSummary)
async def get_dashboard_summary(
    principal: Principal = Depends(require_permission(Permission.DASHBOARD_READ)),
    db: AsyncSession = Depends(get_db),
):
    """
    Headline figures for requests, customers, revenue and services.

    Requires: dashboard:read permission
    """
    return DashboardSummary(**await DashboardService(db).get_summary())


@router.get("/recent-requests", response_model=List[RequestResponse])
async def get_recent_requests(
    limit: int = Query(10, ge=1, le=50),
    principal: Principal = Depends(require_permission(Permission.DASHBOARD_READ)),
    db: AsyncSession = Depends(get_db),
):
    requests = await DashboardService(db).recent_requests(limit)
    return [RequestResponse.model_validate(item) for item in requests]
