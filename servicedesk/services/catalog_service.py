"""
Catalog Service

Services customers can request.
"""
import logging
from typing import Optional, List, Tuple

from sqlalchemy import select, and_, or_, func
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.exceptions import BadRequestError, ConflictError, NotFoundError
from servicedesk.models.enums import ServiceCategory, ServiceStatus
from servicedesk.models.service import Service
from servicedesk.models.service_request import ServiceRequest
from servicedesk.schemas.catalog import ServiceCreate, ServiceUpdate

logger = logging.getLogger(__name__)


class CatalogService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, service_id: str) -> Optional[Service]:
        result = await self.db.execute(select(Service).where(Service.id == service_id))
        return result.scalar_one_or_none()

    async def get_or_404(self, service_id: str) -> Service:
        service = await self.get_by_id(service_id)
        if not service:
            raise NotFoundError("Service not found")
        return service

    async def list_services(
        self,
        category: Optional[ServiceCategory] = None,
        status: Optional[ServiceStatus] = None,
        active_only: bool = False,
        search: Optional[str] = None,
        page: int = 1,
        per_page: int = 50,
    ) -> Tuple[List[Service], int]:
        conditions = []
        if category:
            conditions.append(Service.category == category)
        if status:
            conditions.append(Service.status == status)
        if active_only:
            conditions.append(Service.is_active.is_(True))
            conditions.append(Service.status == ServiceStatus.ACTIVE)
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(or_(
                func.lower(Service.name).like(pattern),
                Service.name_ar.like(f"%{search}%"),
            ))

        count_query = select(func.count(Service.id))
        query = select(Service)
        if conditions:
            count_query = count_query.where(and_(*conditions))
            query = query.where(and_(*conditions))

        total = (await self.db.execute(count_query)).scalar() or 0
        result = await self.db.execute(
            query.order_by(Service.display_order, Service.name)
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        return list(result.scalars().all()), total

    async def create(self, data: ServiceCreate) -> Service:
        if data.code:
            existing = await self.db.execute(select(Service.id).where(Service.code == data.code))
            if existing.scalar_one_or_none():
                raise ConflictError("Service code already exists", "رمز الخدمة موجود بالفعل")

        service = Service(**data.model_dump())
        self.db.add(service)
        await self.db.flush()
        logger.info(f"Service created: {service.name}")
        return service

    async def update(self, service_id: str, data: ServiceUpdate) -> Service:
        service = await self.get_or_404(service_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(service, field, value)
        await self.db.flush()
        return service

    async def delete(self, service_id: str) -> Service:
        service = await self.get_or_404(service_id)

        in_use = (await self.db.execute(
            select(func.count(ServiceRequest.id)).where(ServiceRequest.service_id == service.id)
        )).scalar() or 0
        if in_use:
            raise BadRequestError("Cannot delete service with existing requests")

        await self.db.delete(service)
        await self.db.flush()
        return service
