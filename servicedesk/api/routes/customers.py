"""
Customer routes

Staff manage customers under customers:* permissions. A customer edits
their own profile through /me.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.api.deps import get_current_customer, get_request_ip, get_user_agent
from servicedesk.core.database import get_db
from servicedesk.core.permissions import Permission, require_permission
from servicedesk.core.principal import Principal
from servicedesk.models.enums import AccountStatus, CustomerType
from servicedesk.schemas.account import CustomerCreate, CustomerProfileUpdate, CustomerResponse, CustomerUpdate
from servicedesk.schemas.common import MessageResponse, Page, bilingual
from servicedesk.services.audit_service import AuditService
from servicedesk.services.customer_service import CustomerService

router = APIRouter()


@router.get("/me", response_model=CustomerResponse)
async def get_my_profile(
    principal: Principal = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db),
):
    return CustomerResponse.model_validate(await CustomerService(db).get_or_404(principal.id))


@router.patch("/me", response_model=CustomerResponse)
async def update_my_profile(
    request: Request,
    data: CustomerProfileUpdate,
    principal: Principal = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db),
):
    customer = await CustomerService(db).update_profile(principal.id, data)
    await AuditService(db).log_update(
        "Customer", customer.id, new_values=data.model_dump(exclude_unset=True),
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return CustomerResponse.model_validate(customer)


@router.get("", response_model=Page[CustomerResponse])
async def list_customers(
    search: Optional[str] = None,
    customer_type: Optional[CustomerType] = None,
    status_filter: Optional[AccountStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    principal: Principal = Depends(require_permission(Permission.CUSTOMERS_READ)),
    db: AsyncSession = Depends(get_db),
):
    items, total = await CustomerService(db).list_customers(
        search=search, customer_type=customer_type, status=status_filter, page=page, per_page=per_page
    )
    return Page[CustomerResponse].build(
        [CustomerResponse.model_validate(item) for item in items], total, page, per_page
    )


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: str,
    principal: Principal = Depends(require_permission(Permission.CUSTOMERS_READ)),
    db: AsyncSession = Depends(get_db),
):
    return CustomerResponse.model_validate(await CustomerService(db).get_or_404(customer_id))


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    request: Request,
    data: CustomerCreate,
    principal: Principal = Depends(require_permission(Permission.CUSTOMERS_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    customer = await CustomerService(db).create(data)
    await AuditService(db).log_create(
        "Customer", customer.id, new_values={"email": customer.email, "customer_type": customer.customer_type},
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return CustomerResponse.model_validate(customer)


@router.patch("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    request: Request,
    customer_id: str,
    data: CustomerUpdate,
    principal: Principal = Depends(require_permission(Permission.CUSTOMERS_UPDATE)),
    db: AsyncSession = Depends(get_db),
):
    customer = await CustomerService(db).update(customer_id, data)
    await AuditService(db).log_update(
        "Customer", customer.id, new_values=data.model_dump(exclude_unset=True),
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return CustomerResponse.model_validate(customer)


@router.delete("/{customer_id}", response_model=MessageResponse)
async def delete_customer(
    request: Request,
    customer_id: str,
    principal: Principal = Depends(require_permission(Permission.CUSTOMERS_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    customer = await CustomerService(db).delete(customer_id)
    await AuditService(db).log_delete(
        "Customer", customer_id, old_values={"email": customer.email},
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return bilingual("Customer deleted")
