"""
Invoice routes

Staff issue and manage invoices; customers can read their own.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.api.deps import get_request_ip, get_user_agent
from servicedesk.core.database import get_db
from servicedesk.core.permissions import Permission, require_permission
from servicedesk.core.principal import Principal
from servicedesk.models.enums import InvoiceStatus
from servicedesk.schemas.billing import (
    InvoiceCreate,
    InvoiceDetailResponse,
    InvoiceResponse,
    InvoiceStats,
    InvoiceUpdate,
)
from servicedesk.schemas.common import MessageResponse, Page, bilingual
from servicedesk.services.audit_service import AuditService
from servicedesk.services.invoice_service import InvoiceService
from servicedesk.services.notification_service import NotificationService

router = APIRouter()


@router.get("", response_model=Page[InvoiceResponse])
async def list_invoices(
    customer_id: Optional[str] = None,
    request_id: Optional[str] = None,
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(require_permission(Permission.INVOICES_READ, allow_customer=True)),
    db: AsyncSession = Depends(get_db),
):
    items, total = await InvoiceService(db).list_invoices(
        customer_id=principal.id if principal.is_customer else customer_id,
        status=status_filter,
        request_id=request_id,
        page=page,
        per_page=per_page,
    )
    return Page[InvoiceResponse].build(
        [InvoiceResponse.model_validate(item) for item in items], total, page, per_page
    )


@router.get("/stats", response_model=InvoiceStats)
async def get_invoice_stats(
    principal: Principal = Depends(require_permission(Permission.INVOICES_READ, allow_customer=True)),
    db: AsyncSession = Depends(get_db),
):
    customer_id = principal.id if principal.is_customer else None
    return InvoiceStats(**await InvoiceService(db).get_stats(customer_id))


@router.get("/{invoice_id}", response_model=InvoiceDetailResponse)
async def get_invoice(
    invoice_id: str,
    principal: Principal = Depends(require_permission(Permission.INVOICES_READ, allow_customer=True)),
    db: AsyncSession = Depends(get_db),
):
    """Invoice with amount paid so far and remaining balance."""
    return InvoiceDetailResponse(**await InvoiceService(db).get_with_balance(invoice_id, principal))


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    request: Request,
    data: InvoiceCreate,
    principal: Principal = Depends(require_permission(Permission.INVOICES_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    """
    Invoice a request. Only one invoice may exist per request.

    Requires: invoices:create permission
    """
    invoice = await InvoiceService(db, NotificationService(db)).create(data, created_by_id=principal.id)
    await AuditService(db).log_create(
        "Invoice", invoice.id,
        new_values={"invoice_number": invoice.invoice_number, "total": invoice.total},
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return InvoiceResponse.model_validate(invoice)


@router.patch("/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(
    request: Request,
    invoice_id: str,
    data: InvoiceUpdate,
    principal: Principal = Depends(require_permission(Permission.INVOICES_UPDATE)),
    db: AsyncSession = Depends(get_db),
):
    """
    Update an invoice. Amounts are recalculated from the stored or given values.

    Requires: invoices:update permission
    """
    invoice_service = InvoiceService(db)
    old_status = (await invoice_service.get_or_404(invoice_id)).status
    invoice = await invoice_service.update(invoice_id, data)

    audit = AuditService(db)
    audit_kwargs = dict(
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    if invoice.status != old_status:
        await audit.log_status_change("Invoice", invoice.id, old_status, invoice.status, **audit_kwargs)
    await audit.log_update(
        "Invoice", invoice.id, new_values=data.model_dump(exclude_unset=True, mode="json"), **audit_kwargs
    )
    return InvoiceResponse.model_validate(invoice)


@router.delete("/{invoice_id}", response_model=MessageResponse)
async def delete_invoice(
    request: Request,
    invoice_id: str,
    principal: Principal = Depends(require_permission(Permission.INVOICES_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    invoice = await InvoiceService(db).delete(invoice_id)
    await AuditService(db).log_delete(
        "Invoice", invoice_id, old_values={"invoice_number": invoice.invoice_number},
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return bilingual("Invoice deleted")
