"""
Employee Service

Admin-issued employee accounts. Every employee carries exactly one role.
"""
import logging
from typing import Optional, List, Tuple

from sqlalchemy import select, and_, or_, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.exceptions import BadRequestError, ConflictError, NotFoundError
from servicedesk.core.security import get_password_hash
from servicedesk.models.employee import Employee
from servicedesk.models.enums import AccountStatus
from servicedesk.models.role import Role
from servicedesk.models.service_request import ServiceRequest
from servicedesk.schemas.account import EmployeeCreate, EmployeeUpdate

logger = logging.getLogger(__name__)


class EmployeeService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, employee_id: str) -> Optional[Employee]:
        result = await self.db.execute(select(Employee).where(Employee.id == employee_id))
        return result.scalar_one_or_none()

    async def get_or_404(self, employee_id: str) -> Employee:
        employee = await self.get_by_id(employee_id)
        if not employee:
            raise NotFoundError("Employee not found")
        return employee

    async def list_employees(
        self,
        search: Optional[str] = None,
        role_id: Optional[str] = None,
        status: Optional[AccountStatus] = None,
        department: Optional[str] = None,
        page: int = 1,
        per_page: int = 50,
    ) -> Tuple[List[Employee], int]:
        conditions = []
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(or_(
                func.lower(Employee.email).like(pattern),
                func.lower(Employee.name).like(pattern),
            ))
        if role_id:
            conditions.append(Employee.role_id == role_id)
        if status:
            conditions.append(Employee.status == status)
        if department:
            conditions.append(Employee.department == department)

        count_query = select(func.count(Employee.id))
        query = select(Employee)
        if conditions:
            count_query = count_query.where(and_(*conditions))
            query = query.where(and_(*conditions))

        total = (await self.db.execute(count_query)).scalar() or 0
        result = await self.db.execute(
            query.order_by(Employee.name).offset((page - 1) * per_page).limit(per_page)
        )
        return list(result.scalars().all()), total

    async def _require_role(self, role_id: str) -> Role:
        role = await self.db.get(Role, role_id)
        if not role:
            raise NotFoundError("Role not found")
        return role

    async def create(self, data: EmployeeCreate) -> Employee:
        """
        Create an employee account.

        Raises:
            ConflictError: Email already in use
            NotFoundError: Role does not exist
        """
        existing = await self.db.execute(
            select(Employee.id).where(func.lower(Employee.email) == data.email.lower())
        )
        if existing.scalar_one_or_none():
            raise ConflictError("Email already registered")

        role = await self._require_role(data.role_id)

        employee = Employee(
            email=data.email.lower(),
            password_hash=get_password_hash(data.password),
            role=role,
            **data.model_dump(exclude={"email", "password", "role_id"}),
        )
        self.db.add(employee)
        await self.db.flush()
        logger.info(f"Employee created: {employee.id} with role {role.name}")
        return employee

    async def update(self, employee_id: str, data: EmployeeUpdate) -> Employee:
        employee = await self.get_or_404(employee_id)
        changes = data.model_dump(exclude_unset=True)

        if "role_id" in changes:
            role_id = changes.pop("role_id")
            employee.role = await self._require_role(role_id) if role_id else None
        if "password" in changes:
            password = changes.pop("password")
            if password:
                employee.password_hash = get_password_hash(password)

        for field, value in changes.items():
            setattr(employee, field, value)

        await self.db.flush()
        return employee

    async def assign_role(self, employee_id: str, role_id: str) -> Employee:
        employee = await self.get_or_404(employee_id)
        employee.role = await self._require_role(role_id)
        await self.db.flush()
        return employee

    async def delete(self, employee_id: str, acting_employee_id: Optional[str] = None) -> Employee:
        employee = await self.get_or_404(employee_id)
        if acting_employee_id and acting_employee_id == employee.id:
            raise BadRequestError("You cannot delete your own account", "لا يمكنك حذف حسابك")

        # Open assignments go back to the unassigned pool
        await self.db.execute(
            update(ServiceRequest)
            .where(ServiceRequest.assigned_to_id == employee.id)
            .values(assigned_to_id=None, version=ServiceRequest.version + 1)
        )
        await self.db.delete(employee)
        await self.db.flush()
        logger.info(f"Employee deleted: {employee.id}")
        return employee
