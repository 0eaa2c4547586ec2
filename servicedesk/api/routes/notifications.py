"""
Notification routes

Every authenticated principal reads and manages their own notifications.
Sending ad-hoc notifications and housekeeping are staff operations.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.api.deps import get_current_principal
from servicedesk.core.database import get_db
from servicedesk.core.permissions import Permission, require_permission
from servicedesk.core.principal import Principal
from servicedesk.schemas.common import MessageResponse, Page, bilingual
from servicedesk.schemas.misc import NotificationCreate, NotificationResponse, NotificationStats
from servicedesk.services.notification_service import NotificationService

router = APIRouter()


@router.get("", response_model=Page[NotificationResponse])
async def list_my_notifications(
    unread_only: bool = False,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    items, total = await NotificationService(db).find_for_user(
        principal, unread_only=unread_only, page=page, per_page=per_page
    )
    return Page[NotificationResponse].build(
        [NotificationResponse.model_validate(item) for item in items], total, page, per_page
    )


@router.get("/unread-count")
async def get_unread_count(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return {"count": await NotificationService(db).unread_count(principal)}


@router.post("/read-all", response_model=MessageResponse)
async def mark_all_as_read(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await NotificationService(db).mark_all_as_read(principal)
    return bilingual("All notifications marked as read")


@router.get("/stats", response_model=NotificationStats)
async def get_notification_stats(
    principal: Principal = Depends(require_permission(Permission.NOTIFICATIONS_READ)),
    db: AsyncSession = Depends(get_db),
):
    return NotificationStats(**await NotificationService(db).get_stats())


@router.post("", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def send_notification(
    data: NotificationCreate,
    principal: Principal = Depends(require_permission(Permission.NOTIFICATIONS_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    """
    Send a notification to a single recipient.

    Requires: notifications:create permission
    """
    notification = await NotificationService(db).create(
        user_id=data.user_id,
        user_type=data.user_type,
        type=data.type,
        channel=data.channel,
        title=data.title,
        title_ar=data.title_ar,
        message=data.message,
        message_ar=data.message_ar,
        data=data.data,
    )
    return NotificationResponse.model_validate(notification)


@router.delete("/cleanup")
async def purge_old_notifications(
    days: int = Query(30, ge=1),
    principal: Principal = Depends(require_permission(Permission.NOTIFICATIONS_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    """
    Delete read notifications older than `days`.

    Requires: notifications:delete permission
    """
    return {"deleted": await NotificationService(db).remove_old_notifications(days)}


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_as_read(
    notification_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    notification = await NotificationService(db).mark_as_read(notification_id, principal)
    return NotificationResponse.model_validate(notification)


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await NotificationService(db).remove(notification_id, principal)
    return bilingual("Notification deleted")
