"""
Permission Service

Maintains the permission registry. Names are derived from module and action
and never change once created; only descriptions are editable.
"""
import logging
from collections import OrderedDict
from typing import Optional, List, Dict, Any, Iterable, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.exceptions import BadRequestError, ConflictError, NotFoundError
from servicedesk.models.permission import Permission
from servicedesk.models.role import Role, RolePermission

logger = logging.getLogger(__name__)


class PermissionService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, permission_id: str) -> Optional[Permission]:
        result = await self.db.execute(select(Permission).where(Permission.id == permission_id))
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str) -> Optional[Permission]:
        result = await self.db.execute(select(Permission).where(Permission.name == name))
        return result.scalar_one_or_none()

    async def get_or_404(self, permission_id: str) -> Permission:
        permission = await self.get_by_id(permission_id)
        if not permission:
            raise NotFoundError("Permission not found")
        return permission

    async def create(self, module: str, action: str, description: Optional[str] = None) -> Permission:
        """
        Register a permission.

        Raises:
            ConflictError: module:action already exists
        """
        name = Permission.build_name(module, action)
        if await self.get_by_name(name):
            raise ConflictError("Permission already exists")

        permission = Permission(name=name, module=module, action=action, description=description)
        self.db.add(permission)
        await self.db.flush()
        logger.info(f"Permission registered: {name}")
        return permission

    async def list_all(self, module: Optional[str] = None) -> List[Permission]:
        """All permissions ordered by module, then action."""
        query = select(Permission).order_by(Permission.module, Permission.action)
        if module:
            query = query.where(Permission.module == module)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    def group_by_module(permissions: Iterable[Permission]) -> Dict[str, List[Permission]]:
        grouped: Dict[str, List[Permission]] = OrderedDict()
        for permission in permissions:
            grouped.setdefault(permission.module, []).append(permission)
        return grouped

    async def list_modules(self) -> List[str]:
        result = await self.db.execute(
            select(Permission.module).distinct().order_by(Permission.module)
        )
        return list(result.scalars().all())

    async def get_roles_with_permission(self, permission_id: str) -> List[Role]:
        result = await self.db.execute(
            select(Role)
            .join(RolePermission, RolePermission.role_id == Role.id)
            .where(RolePermission.permission_id == permission_id)
            .order_by(Role.name)
        )
        return list(result.scalars().all())

    async def update_description(self, permission_id: str, description: Optional[str]) -> Permission:
        permission = await self.get_or_404(permission_id)
        permission.description = description
        await self.db.flush()
        return permission

    async def delete(self, permission_id: str) -> Permission:
        """
        Remove a permission from the registry.

        Raises:
            NotFoundError: Unknown permission
            BadRequestError: Still granted to one or more roles
        """
        permission = await self.get_or_404(permission_id)

        in_use = (await self.db.execute(
            select(func.count(RolePermission.id)).where(RolePermission.permission_id == permission.id)
        )).scalar() or 0
        if in_use:
            raise BadRequestError("Cannot delete permission assigned to roles")

        await self.db.delete(permission)
        await self.db.flush()
        logger.info(f"Permission removed: {permission.name}")
        return permission

    async def bulk_upsert(self, entries: Iterable[Tuple[str, str, Optional[str]]]) -> Dict[str, Any]:
        """
        Create missing permissions and refresh descriptions of existing ones.

        Args:
            entries: (module, action, description) tuples

        Returns:
            {"created": n, "updated": n}
        """
        created = updated = 0
        for module, action, description in entries:
            name = Permission.build_name(module, action)
            existing = await self.get_by_name(name)
            if existing:
                if description and existing.description != description:
                    existing.description = description
                    updated += 1
                continue
            self.db.add(Permission(name=name, module=module, action=action, description=description))
            created += 1

        await self.db.flush()
        if created:
            logger.info(f"Registered {created} new permissions")
        return {"created": created, "updated": updated}
