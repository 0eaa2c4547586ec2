"""
Role Service

Role administration for employee RBAC. Permission sets are replaced as a
whole: the caller supplies the complete list and every previous association
is removed before the new rows are inserted.
"""
import logging
from typing import Optional, List, Dict, Any, Iterable

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.exceptions import BadRequestError, ConflictError, NotFoundError
from servicedesk.models.employee import Employee
from servicedesk.models.permission import Permission
from servicedesk.models.role import Role, RolePermission, ADMIN_ROLE_NAME

logger = logging.getLogger(__name__)

ADMIN_ROLE_NOTE = "Admin role automatically has all permissions"


class RoleService:
    """
    Service for managing roles and their permission sets.

    Invariants:
    - Role names are unique
    - The Admin role cannot be renamed, re-permissioned or deleted
    - A role still referenced by an employee cannot be deleted
    - No role created here is ever an admin role
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_all_roles(self) -> List[Role]:
        result = await self.db.execute(select(Role).order_by(Role.name))
        return list(result.scalars().all())

    async def get_role_by_id(self, role_id: str) -> Optional[Role]:
        """Get a role by ID."""
        result = await self.db.execute(select(Role).where(Role.id == role_id))
        return result.scalar_one_or_none()

    async def get_role_by_name(self, name: str) -> Optional[Role]:
        """Get a role by name."""
        result = await self.db.execute(select(Role).where(Role.name == name))
        return result.scalar_one_or_none()

    async def get_role_or_404(self, role_id: str) -> Role:
        role = await self.get_role_by_id(role_id)
        if not role:
            raise NotFoundError("Role not found")
        return role

    async def get_role_permissions(self, role: Role) -> List[Permission]:
        """
        Permissions a role grants.

        For the Admin role this is synthesized from the whole registry rather
        than read from role_permissions.
        """
        query = select(Permission).order_by(Permission.module, Permission.action)
        if not role.is_admin:
            query = query.join(
                RolePermission, RolePermission.permission_id == Permission.id
            ).where(RolePermission.role_id == role.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_employees(self, role_id: str) -> int:
        result = await self.db.execute(
            select(func.count(Employee.id)).where(Employee.role_id == role_id)
        )
        return result.scalar() or 0

    async def describe_role(self, role: Role) -> Dict[str, Any]:
        """Role with its permission list and employee count."""
        permissions = await self.get_role_permissions(role)
        return {
            "id": role.id,
            "name": role.name,
            "name_ar": role.name_ar,
            "description": role.description,
            "is_admin": role.is_admin,
            "permissions": permissions,
            "employees_count": await self.count_employees(role.id),
            "note": ADMIN_ROLE_NOTE if role.is_admin else None,
            "created_at": role.created_at,
            "updated_at": role.updated_at,
        }

    async def list_roles(self) -> List[Dict[str, Any]]:
        return [await self.describe_role(role) for role in await self.get_all_roles()]

    async def create_role(
        self,
        name: str,
        description: Optional[str] = None,
        permission_ids: Optional[List[str]] = None,
        name_ar: Optional[str] = None,
    ) -> Role:
        """
        Create a new role.

        Args:
            name: Role name (unique)
            description: Role description
            permission_ids: Initial permission set
            name_ar: Arabic display name

        Returns:
            Created role

        Raises:
            ConflictError: Role name already exists
            NotFoundError: A permission id does not exist
        """
        if await self.get_role_by_name(name):
            raise ConflictError("Role with this name already exists")

        permissions = await self._load_permissions(permission_ids or [])

        role = Role(name=name, name_ar=name_ar, description=description, is_admin=False)
        self.db.add(role)
        await self.db.flush()

        self._link_permissions(role.id, permissions)
        await self.db.flush()

        logger.info(f"Role created: {role.name} with {len(permissions)} permissions")
        return role

    async def update_role(
        self,
        role_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        permission_ids: Optional[List[str]] = None,
        name_ar: Optional[str] = None,
    ) -> Role:
        """
        Update a role.

        Args:
            role_id: Role ID
            name: New name
            description: New description
            permission_ids: Complete new permission set (replaces the old one)
            name_ar: New Arabic display name

        Returns:
            Updated role

        Raises:
            NotFoundError: Role or a permission id does not exist
            BadRequestError: Attempt to rename or re-permission the Admin role
            ConflictError: New name already taken
        """
        role = await self.get_role_or_404(role_id)

        if name is not None and name != role.name:
            if role.is_admin:
                raise BadRequestError("Cannot rename the Admin role")
            existing = await self.get_role_by_name(name)
            if existing and existing.id != role.id:
                raise ConflictError("Role with this name already exists")
            role.name = name

        if description is not None:
            role.description = description
        if name_ar is not None:
            role.name_ar = name_ar

        if permission_ids is not None:
            if role.is_admin:
                raise BadRequestError("Cannot modify Admin role permissions")
            await self.set_permissions(role, permission_ids)

        await self.db.flush()
        return role

    async def set_permissions(self, role: Role, permission_ids: Iterable[str]) -> List[Permission]:
        """Make the role's permission set exactly `permission_ids`."""
        permissions = await self._load_permissions(permission_ids)

        await self.db.execute(
            delete(RolePermission).where(RolePermission.role_id == role.id)
        )
        self._link_permissions(role.id, permissions)
        await self.db.flush()

        logger.info(f"Role {role.name} permissions replaced ({len(permissions)} total)")
        return permissions

    async def delete_role(self, role_id: str) -> Role:
        """
        Delete a role.

        Raises:
            NotFoundError: Role does not exist
            BadRequestError: Admin role, or employees still hold the role
        """
        role = await self.get_role_or_404(role_id)

        if role.is_admin:
            raise BadRequestError("Cannot delete the Admin role")

        if await self.count_employees(role.id) > 0:
            raise BadRequestError("Cannot delete role with assigned employees. Reassign them first.")

        await self.db.execute(
            delete(RolePermission).where(RolePermission.role_id == role.id)
        )
        await self.db.delete(role)
        await self.db.flush()

        logger.info(f"Role deleted: {role.name}")
        return role

    async def seed_admin_role(self) -> Role:
        """Create the Admin role if it doesn't exist. Safe to call repeatedly."""
        role = await self.get_role_by_name(ADMIN_ROLE_NAME)
        if role:
            return role

        role = Role(
            name=ADMIN_ROLE_NAME,
            name_ar="مدير النظام",
            description="Full administrative access",
            is_admin=True,
        )
        self.db.add(role)
        await self.db.flush()
        logger.info("Seeded Admin role")
        return role

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _load_permissions(self, permission_ids: Iterable[str]) -> List[Permission]:
        ids = set(permission_ids)
        if not ids:
            return []
        result = await self.db.execute(select(Permission).where(Permission.id.in_(ids)))
        permissions = list(result.scalars().all())
        if len(permissions) != len(ids):
            raise NotFoundError("One or more permissions not found")
        return permissions

    def _link_permissions(self, role_id: str, permissions: List[Permission]) -> None:
        for permission in permissions:
            self.db.add(RolePermission(role_id=role_id, permission_id=permission.id))
