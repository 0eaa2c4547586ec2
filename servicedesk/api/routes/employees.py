"""
Employee routes

Employee accounts are created by staff holding employees:create; there is
no self-registration.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.api.deps import get_request_ip, get_user_agent
from servicedesk.core.database import get_db
from servicedesk.core.permissions import Permission, require_permission
from servicedesk.core.principal import Principal
from servicedesk.models.enums import AccountStatus
from servicedesk.schemas.account import EmployeeCreate, EmployeeResponse, EmployeeUpdate
from servicedesk.schemas.common import MessageResponse, Page, bilingual
from servicedesk.services.audit_service import AuditService
from servicedesk.services.employee_service import EmployeeService

router = APIRouter()


@router.get("", response_model=Page[EmployeeResponse])
async def list_employees(
    search: Optional[str] = None,
    role_id: Optional[str] = None,
    department: Optional[str] = None,
    status_filter: Optional[AccountStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    principal: Principal = Depends(require_permission(Permission.EMPLOYEES_READ)),
    db: AsyncSession = Depends(get_db),
):
    items, total = await EmployeeService(db).list_employees(
        search=search, role_id=role_id, status=status_filter, department=department,
        page=page, per_page=per_page,
    )
    return Page[EmployeeResponse].build(
        [EmployeeResponse.model_validate(item) for item in items], total, page, per_page
    )


@router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(
    employee_id: str,
    principal: Principal = Depends(require_permission(Permission.EMPLOYEES_READ)),
    db: AsyncSession = Depends(get_db),
):
    return EmployeeResponse.model_validate(await EmployeeService(db).get_or_404(employee_id))


@router.post("", response_model=EmployeeResponse, status_code=status.HTTP_201_CREATED)
async def create_employee(
    request: Request,
    data: EmployeeCreate,
    principal: Principal = Depends(require_permission(Permission.EMPLOYEES_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    """Create an employee with exactly one role."""
    employee = await EmployeeService(db).create(data)
    await AuditService(db).log_create(
        "Employee", employee.id, new_values={"email": employee.email, "role_id": employee.role_id},
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return EmployeeResponse.model_validate(employee)


@router.patch("/{employee_id}", response_model=EmployeeResponse)
async def update_employee(
    request: Request,
    employee_id: str,
    data: EmployeeUpdate,
    principal: Principal = Depends(require_permission(Permission.EMPLOYEES_UPDATE)),
    db: AsyncSession = Depends(get_db),
):
    """Edit an employee. A role change applies to the very next request they make."""
    employee = await EmployeeService(db).update(employee_id, data)
    await AuditService(db).log_update(
        "Employee", employee.id, new_values=data.model_dump(exclude_unset=True, exclude={"password"}),
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return EmployeeResponse.model_validate(employee)


@router.delete("/{employee_id}", response_model=MessageResponse)
async def delete_employee(
    request: Request,
    employee_id: str,
    principal: Principal = Depends(require_permission(Permission.EMPLOYEES_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    employee = await EmployeeService(db).delete(employee_id, acting_employee_id=principal.id)
    await AuditService(db).log_delete(
        "Employee", employee_id, old_values={"email": employee.email},
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return bilingual("Employee deleted")
