"""
Payment routes
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.api.deps import get_request_ip, get_user_agent
from servicedesk.core.database import get_db
from servicedesk.core.permissions import Permission, require_permission
from servicedesk.core.principal import Principal
from servicedesk.models.enums import PaymentMethod, PaymentStatus
from servicedesk.schemas.billing import PaymentCreate, PaymentResponse, PaymentStats, PaymentUpdate
from servicedesk.schemas.common import MessageResponse, Page, bilingual
from servicedesk.services.audit_service import AuditService
from servicedesk.services.notification_service import NotificationService
from servicedesk.services.payment_service import PaymentService

router = APIRouter()


@router.get("", response_model=Page[PaymentResponse])
async def list_payments(
    customer_id: Optional[str] = None,
    invoice_id: Optional[str] = None,
    status_filter: Optional[PaymentStatus] = Query(None, alias="status"),
    method: Optional[PaymentMethod] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(require_permission(Permission.PAYMENTS_READ, allow_customer=True)),
    db: AsyncSession = Depends(get_db),
):
    items, total = await PaymentService(db).list_payments(
        customer_id=principal.id if principal.is_customer else customer_id,
        invoice_id=invoice_id,
        status=status_filter,
        method=method,
        page=page,
        per_page=per_page,
    )
    return Page[PaymentResponse].build(
        [PaymentResponse.model_validate(item) for item in items], total, page, per_page
    )


@router.get("/stats", response_model=PaymentStats)
async def get_payment_stats(
    principal: Principal = Depends(require_permission(Permission.PAYMENTS_READ, allow_customer=True)),
    db: AsyncSession = Depends(get_db),
):
    customer_id = principal.id if principal.is_customer else None
    return PaymentStats(**await PaymentService(db).get_stats(customer_id))


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: str,
    principal: Principal = Depends(require_permission(Permission.PAYMENTS_READ, allow_customer=True)),
    db: AsyncSession = Depends(get_db),
):
    return PaymentResponse.model_validate(await PaymentService(db).get_or_404(payment_id, principal))


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def record_payment(
    request: Request,
    data: PaymentCreate,
    principal: Principal = Depends(require_permission(Permission.PAYMENTS_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    """
    Record a payment. The invoice is marked PAID once fully covered.

    Requires: payments:create permission
    """
    payment = await PaymentService(db, NotificationService(db)).create(data, recorded_by_id=principal.id)
    await AuditService(db).log_create(
        "Payment", payment.id,
        new_values={
            "payment_number": payment.payment_number,
            "invoice_id": payment.invoice_id,
            "amount": payment.amount,
            "method": payment.method,
        },
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return PaymentResponse.model_validate(payment)


@router.patch("/{payment_id}", response_model=PaymentResponse)
async def update_payment(
    request: Request,
    payment_id: str,
    data: PaymentUpdate,
    principal: Principal = Depends(require_permission(Permission.PAYMENTS_UPDATE)),
    db: AsyncSession = Depends(get_db),
):
    payment = await PaymentService(db).update(payment_id, data)
    await AuditService(db).log_update(
        "Payment", payment.id, new_values=data.model_dump(exclude_unset=True, mode="json"),
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return PaymentResponse.model_validate(payment)


@router.delete("/{payment_id}", response_model=MessageResponse)
async def delete_payment(
    request: Request,
    payment_id: str,
    principal: Principal = Depends(require_permission(Permission.PAYMENTS_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    payment = await PaymentService(db).delete(payment_id)
    await AuditService(db).log_delete(
        "Payment", payment_id, old_values={"payment_number": payment.payment_number},
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return bilingual("Payment deleted")
