"""
Customer Service

Staff-side customer management plus customers' own profile edits.
"""
import logging
from typing import Optional, List, Tuple

from sqlalchemy import select, and_, or_, func
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.exceptions import BadRequestError, ConflictError, NotFoundError
from servicedesk.core.security import get_password_hash
from servicedesk.models.customer import Customer
from servicedesk.models.enums import AccountStatus, CustomerType
from servicedesk.models.service_request import ServiceRequest
from servicedesk.schemas.account import CustomerCreate, CustomerUpdate, CustomerProfileUpdate
from servicedesk.services.auth_service import validate_customer_type_fields

logger = logging.getLogger(__name__)


class CustomerService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, customer_id: str) -> Optional[Customer]:
        result = await self.db.execute(select(Customer).where(Customer.id == customer_id))
        return result.scalar_one_or_none()

    async def get_or_404(self, customer_id: str) -> Customer:
        customer = await self.get_by_id(customer_id)
        if not customer:
            raise NotFoundError("Customer not found")
        return customer

    async def list_customers(
        self,
        search: Optional[str] = None,
        customer_type: Optional[CustomerType] = None,
        status: Optional[AccountStatus] = None,
        page: int = 1,
        per_page: int = 50,
    ) -> Tuple[List[Customer], int]:
        """
        List customers with filtering and pagination.

        Returns:
            Tuple of (customers, total_count)
        """
        conditions = []
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(or_(
                func.lower(Customer.email).like(pattern),
                func.lower(Customer.name).like(pattern),
                func.lower(Customer.company_name).like(pattern),
            ))
        if customer_type:
            conditions.append(Customer.customer_type == customer_type)
        if status:
            conditions.append(Customer.status == status)

        count_query = select(func.count(Customer.id))
        query = select(Customer)
        if conditions:
            count_query = count_query.where(and_(*conditions))
            query = query.where(and_(*conditions))

        total = (await self.db.execute(count_query)).scalar() or 0
        result = await self.db.execute(
            query.order_by(Customer.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        return list(result.scalars().all()), total

    async def create(self, data: CustomerCreate) -> Customer:
        existing = await self.db.execute(
            select(Customer.id).where(func.lower(Customer.email) == data.email.lower())
        )
        if existing.scalar_one_or_none():
            raise ConflictError("Email already registered")

        validate_customer_type_fields(data.customer_type, data.company_name, data.license_number)

        customer = Customer(
            email=data.email.lower(),
            password_hash=get_password_hash(data.password),
            **data.model_dump(exclude={"email", "password"}),
        )
        self.db.add(customer)
        await self.db.flush()
        logger.info(f"Customer created by staff: {customer.id}")
        return customer

    async def update(self, customer_id: str, data: CustomerUpdate) -> Customer:
        customer = await self.get_or_404(customer_id)
        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            setattr(customer, field, value)

        validate_customer_type_fields(customer.customer_type, customer.company_name, customer.license_number)
        await self.db.flush()
        return customer

    async def update_profile(self, customer_id: str, data: CustomerProfileUpdate) -> Customer:
        customer = await self.get_or_404(customer_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(customer, field, value)
        await self.db.flush()
        return customer

    async def delete(self, customer_id: str) -> Customer:
        customer = await self.get_or_404(customer_id)

        request_count = (await self.db.execute(
            select(func.count(ServiceRequest.id)).where(ServiceRequest.customer_id == customer.id)
        )).scalar() or 0
        if request_count:
            raise BadRequestError("Cannot delete customer with existing requests")

        # Tokens reference customers by id/email only and are left to expire
        await self.db.delete(customer)
        await self.db.flush()
        logger.info(f"Customer deleted: {customer.id}")
        return customer
