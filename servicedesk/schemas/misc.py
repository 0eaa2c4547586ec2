"""Documents, notifications, audit log and dashboard schemas."""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from servicedesk.models.enums import (
    AuditAction, DocumentType, NotificationChannel, NotificationStatus, NotificationType, PrincipalKind
)


# ============================================================================
# DOCUMENTS
# ============================================================================
class DocumentResponse(BaseModel):
    id: str
    request_id: Optional[str] = None
    customer_id: Optional[str] = None
    document_type: DocumentType
    title: str
    title_ar: Optional[str] = None
    description: Optional[str] = None
    file_name: str
    mime_type: Optional[str] = None
    file_size: int
    is_internal: bool
    uploaded_by_id: str
    uploaded_by_type: PrincipalKind
    download_count: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DocumentStats(BaseModel):
    total: int
    total_size: int
    by_type: Dict[str, int]


# ============================================================================
# NOTIFICATIONS
# ============================================================================
class NotificationCreate(BaseModel):
    user_id: str
    user_type: PrincipalKind
    type: NotificationType = NotificationType.SYSTEM
    channel: NotificationChannel = NotificationChannel.IN_APP
    title: str
    title_ar: str
    message: str
    message_ar: str
    data: Dict[str, Any] = {}


class NotificationResponse(BaseModel):
    id: str
    type: NotificationType
    channel: NotificationChannel
    status: NotificationStatus
    title: str
    title_ar: str
    message: str
    message_ar: str
    data: Optional[Dict[str, Any]] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    sent_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationStats(BaseModel):
    total: int
    unread: int
    by_status: Dict[str, int]
    by_channel: Dict[str, int]


# ============================================================================
# AUDIT
# ============================================================================
class AuditLogResponse(BaseModel):
    id: str
    created_at: datetime
    user_id: Optional[str] = None
    user_type: Optional[PrincipalKind] = None
    user_email: Optional[str] = None
    action: AuditAction
    entity_type: str
    entity_id: Optional[str] = None
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    description: Optional[str] = None

    class Config:
        from_attributes = True


# ============================================================================
# DASHBOARD
# ============================================================================
class RequestSummary(BaseModel):
    total: int
    pending: int
    in_progress: int
    completed: int


class CustomerSummaryStats(BaseModel):
    total: int
    active: int
    new_this_month: int


class RevenueSummary(BaseModel):
    total: Decimal
    this_month: Decimal
    pending: Decimal


class TopService(BaseModel):
    id: str
    name: str
    name_ar: str
    request_count: int


class ServiceSummaryStats(BaseModel):
    total: int
    active: int
    top: List[TopService]


class DashboardSummary(BaseModel):
    requests: RequestSummary
    customers: CustomerSummaryStats
    revenue: RevenueSummary
    services: ServiceSummaryStats
