from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from servicedesk.models.enums import RequestStatus, RequestPriority
from servicedesk.schemas.catalog import ServiceSummary
from servicedesk.schemas.common import PersonSummary


class RequestCreate(BaseModel):
    """New requests always start in DRAFT; there is no status field."""
    service_id: str
    title: str = Field(min_length=3, max_length=255)
    title_ar: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    description_ar: Optional[str] = None
    notes: Optional[str] = None
    notes_ar: Optional[str] = None
    priority: RequestPriority = RequestPriority.MEDIUM
    requested_date: Optional[date] = None


class RequestUpdate(BaseModel):
    """
    Editable request fields.

    Status is deliberately absent: it only changes through the status
    endpoint, which enforces the workflow.
    """
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    title_ar: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    description_ar: Optional[str] = None
    notes: Optional[str] = None
    notes_ar: Optional[str] = None
    priority: Optional[RequestPriority] = None
    estimated_price: Optional[Decimal] = Field(None, ge=0)
    final_price: Optional[Decimal] = Field(None, ge=0)
    requested_date: Optional[date] = None
    expected_date: Optional[date] = None


class StatusUpdate(BaseModel):
    status: RequestStatus
    reason: Optional[str] = None
    reason_ar: Optional[str] = None


class AssignRequest(BaseModel):
    employee_id: str
    notes: Optional[str] = None


class RequestFilters(BaseModel):
    customer_id: Optional[str] = None
    service_id: Optional[str] = None
    assigned_to_id: Optional[str] = None
    status: Optional[RequestStatus] = None
    priority: Optional[RequestPriority] = None
    search: Optional[str] = None


class RequestResponse(BaseModel):
    id: str
    request_number: str
    customer_id: str
    service_id: str
    title: str
    title_ar: Optional[str] = None
    description: Optional[str] = None
    description_ar: Optional[str] = None
    notes: Optional[str] = None
    notes_ar: Optional[str] = None
    status: RequestStatus
    priority: RequestPriority
    assigned_to_id: Optional[str] = None
    assigned_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    rejection_reason_ar: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancellation_reason_ar: Optional[str] = None
    estimated_price: Optional[Decimal] = None
    final_price: Optional[Decimal] = None
    currency: str
    requested_date: Optional[date] = None
    expected_date: Optional[date] = None
    completed_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    view_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    customer: Optional[PersonSummary] = None
    service: Optional[ServiceSummary] = None
    assigned_to: Optional[PersonSummary] = None

    class Config:
        from_attributes = True


class RequestStatusResponse(RequestResponse):
    allowed_transitions: List[RequestStatus] = []


class RequestStats(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_priority: Dict[str, int]
    assigned: int
    unassigned: int
