"""
Permission system for RBAC

Employees are authorized through their role:
- Admin role (is_admin=True): every permission currently in the registry,
  queried on each check so new permissions apply without a new token
- Any other role: exactly the permissions joined through role_permissions
- No role, or a role id that no longer resolves: nothing

Customers never touch the registry. Customer-scoped endpoints check them
against the fixed CUSTOMER_PERMISSIONS set; employee-only endpoints refuse
them outright.
"""
import logging
from typing import Iterable, List, Set

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from servicedesk.core.database import get_db
from servicedesk.core.exceptions import ForbiddenError, PermissionDeniedError
from servicedesk.core.principal import Principal
from servicedesk.models.permission import Permission as PermissionModel
from servicedesk.models.role import Role, RolePermission

logger = logging.getLogger(__name__)


class Permission:
    """
    Permission string format: "module:action".

    Exact match only; there are no wildcards. Admin coverage comes from the
    role flag, not from a magic permission string.
    """

    # Service requests
    REQUESTS_CREATE = "requests:create"
    REQUESTS_READ = "requests:read"
    REQUESTS_UPDATE = "requests:update"
    REQUESTS_UPDATE_STATUS = "requests:update-status"
    REQUESTS_ASSIGN = "requests:assign"
    REQUESTS_DELETE = "requests:delete"

    # Roles
    ROLES_CREATE = "roles:create"
    ROLES_READ = "roles:read"
    ROLES_UPDATE = "roles:update"
    ROLES_DELETE = "roles:delete"

    # Permission registry
    PERMISSIONS_CREATE = "permissions:create"
    PERMISSIONS_READ = "permissions:read"
    PERMISSIONS_UPDATE = "permissions:update"
    PERMISSIONS_DELETE = "permissions:delete"

    # Employees
    EMPLOYEES_CREATE = "employees:create"
    EMPLOYEES_READ = "employees:read"
    EMPLOYEES_UPDATE = "employees:update"
    EMPLOYEES_DELETE = "employees:delete"

    # Customers
    CUSTOMERS_CREATE = "customers:create"
    CUSTOMERS_READ = "customers:read"
    CUSTOMERS_UPDATE = "customers:update"
    CUSTOMERS_DELETE = "customers:delete"

    # Service catalog
    SERVICES_CREATE = "services:create"
    SERVICES_READ = "services:read"
    SERVICES_UPDATE = "services:update"
    SERVICES_DELETE = "services:delete"

    # Billing
    INVOICES_CREATE = "invoices:create"
    INVOICES_READ = "invoices:read"
    INVOICES_UPDATE = "invoices:update"
    INVOICES_DELETE = "invoices:delete"
    PAYMENTS_CREATE = "payments:create"
    PAYMENTS_READ = "payments:read"
    PAYMENTS_UPDATE = "payments:update"
    PAYMENTS_DELETE = "payments:delete"

    # Documents
    DOCUMENTS_CREATE = "documents:create"
    DOCUMENTS_READ = "documents:read"
    DOCUMENTS_DELETE = "documents:delete"

    # Notifications
    NOTIFICATIONS_CREATE = "notifications:create"
    NOTIFICATIONS_READ = "notifications:read"
    NOTIFICATIONS_DELETE = "notifications:delete"

    # Reporting
    DASHBOARD_READ = "dashboard:read"
    AUDIT_READ = "audit:read"
    AUDIT_DELETE = "audit:delete"

    # Reference data and system settings
    SETTINGS_CREATE = "settings:create"
    SETTINGS_READ = "settings:read"
    SETTINGS_UPDATE = "settings:update"
    SETTINGS_DELETE = "settings:delete"


# Seeded by scripts/init_db.py: (module, action, description)
DEFAULT_PERMISSIONS = [
    ("requests", "create", "Create service requests"),
    ("requests", "read", "View service requests"),
    ("requests", "update", "Edit service request details"),
    ("requests", "update-status", "Move service requests through the workflow"),
    ("requests", "assign", "Assign service requests to employees"),
    ("requests", "delete", "Delete service requests"),
    ("roles", "create", "Create roles"),
    ("roles", "read", "View roles"),
    ("roles", "update", "Edit roles and their permissions"),
    ("roles", "delete", "Delete roles"),
    ("permissions", "create", "Register permissions"),
    ("permissions", "read", "View permissions"),
    ("permissions", "update", "Edit permission descriptions"),
    ("permissions", "delete", "Delete permissions"),
    ("employees", "create", "Create employees"),
    ("employees", "read", "View employees"),
    ("employees", "update", "Edit employees"),
    ("employees", "delete", "Delete employees"),
    ("customers", "create", "Create customers"),
    ("customers", "read", "View customers"),
    ("customers", "update", "Edit customers"),
    ("customers", "delete", "Delete customers"),
    ("services", "create", "Create catalog services"),
    ("services", "read", "View catalog services"),
    ("services", "update", "Edit catalog services"),
    ("services", "delete", "Delete catalog services"),
    ("invoices", "create", "Create invoices"),
    ("invoices", "read", "View invoices"),
    ("invoices", "update", "Edit invoices"),
    ("invoices", "delete", "Delete invoices"),
    ("payments", "create", "Record payments"),
    ("payments", "read", "View payments"),
    ("payments", "update", "Edit payments"),
    ("payments", "delete", "Delete payments"),
    ("documents", "create", "Upload documents"),
    ("documents", "read", "View and download documents"),
    ("documents", "delete", "Delete documents"),
    ("notifications", "create", "Send notifications"),
    ("notifications", "read", "View notification statistics"),
    ("notifications", "delete", "Purge notifications"),
    ("dashboard", "read", "View dashboard statistics"),
    ("audit", "read", "View audit logs"),
    ("audit", "delete", "Purge old audit logs"),
    ("settings", "create", "Create reference data and system settings"),
    ("settings", "read", "View reference data and system settings"),
    ("settings", "update", "Edit reference data and system settings"),
    ("settings", "delete", "Delete reference data and system settings"),
]

# Fixed capability set for customers on customer-scoped endpoints
CUSTOMER_PERMISSIONS = frozenset({
    Permission.REQUESTS_CREATE,
    Permission.REQUESTS_READ,
    Permission.REQUESTS_UPDATE_STATUS,
    Permission.SERVICES_READ,
    Permission.INVOICES_READ,
    Permission.PAYMENTS_READ,
    Permission.DOCUMENTS_CREATE,
    Permission.DOCUMENTS_READ,
    Permission.DOCUMENTS_DELETE,
    Permission.NOTIFICATIONS_READ,
})


def has_permission(effective: Set[str], required: str) -> bool:
    """Exact-match membership test."""
    return required in effective


def has_all(required: Iterable[str], effective: Set[str]) -> bool:
    """
    AND semantics across every required permission.

    An empty requirement list is always satisfied.
    """
    return all(has_permission(effective, perm) for perm in required)


def missing_permissions(required: Iterable[str], effective: Set[str]) -> List[str]:
    return [perm for perm in required if not has_permission(effective, perm)]


async def all_permission_names(db: AsyncSession) -> Set[str]:
    """Every permission name currently in the registry. Never cached."""
    result = await db.execute(select(PermissionModel.name))
    return set(result.scalars().all())


async def get_role_permission_names(db: AsyncSession, role_id: str) -> Set[str]:
    """Permission names joined to a role through role_permissions."""
    result = await db.execute(
        select(PermissionModel.name)
        .join(RolePermission, RolePermission.permission_id == PermissionModel.id)
        .where(RolePermission.role_id == role_id)
    )
    return set(result.scalars().all())


async def resolve_effective_permissions(db: AsyncSession, principal: Principal) -> Set[str]:
    """
    Resolve the permission set a principal holds right now.

    Args:
        db: Database session
        principal: Authenticated customer or employee

    Returns:
        Set of permission strings
    """
    if principal.is_customer:
        return set(CUSTOMER_PERMISSIONS)

    if not principal.role_id:
        return set()

    role = await db.get(Role, principal.role_id)
    if role is None:
        logger.warning(
            f"Employee {principal.id} references missing role {principal.role_id}; "
            f"treating as no permissions"
        )
        return set()

    if role.is_admin:
        return await all_permission_names(db)

    return await get_role_permission_names(db, role.id)


def require_permission(*permissions: str, allow_customer: bool = False):
    """
    Dependency that requires specific permissions.

    Usage:
        @router.get("/roles")
        async def list_roles(
            principal: Principal = Depends(require_permission(Permission.ROLES_READ))
        ):
            ...

    Args:
        permissions: Required permission strings (all of them)
        allow_customer: Let customers through when the fixed customer set
            covers the requirement. Otherwise the endpoint is employee-only.

    Returns:
        Dependency function returning the authorized principal
    """
    from servicedesk.api.deps import get_current_principal

    async def permission_checker(
        principal: Principal = Depends(get_current_principal),
        db: AsyncSession = Depends(get_db),
    ) -> Principal:
        if principal.is_customer and not allow_customer:
            logger.warning(f"Customer {principal.id} denied employee-only endpoint {permissions}")
            raise ForbiddenError("Employee access required")

        effective = await resolve_effective_permissions(db, principal)
        missing = missing_permissions(permissions, effective)
        if missing:
            logger.warning(
                f"Permission denied for {principal.kind.value} {principal.id}: missing {missing}"
            )
            raise PermissionDeniedError(required=permissions, missing=missing)

        return principal

    return permission_checker


def require_employee():
    """Dependency for employee-only endpoints without a specific permission."""
    return require_permission()


class PermissionChecker:
    """
    Per-request permission helper for checks that depend on the resource
    (e.g. "own document, or documents:delete").

    Usage:
        checker = PermissionChecker(db, principal)
        if await checker.can(Permission.DOCUMENTS_DELETE):
            ...
    """

    def __init__(self, db: AsyncSession, principal: Principal):
        self.db = db
        self.principal = principal
        self._permissions = None

    async def get_permissions(self) -> Set[str]:
        if self._permissions is None:
            self._permissions = await resolve_effective_permissions(self.db, self.principal)
        return self._permissions

    async def can(self, permission: str) -> bool:
        return has_permission(await self.get_permissions(), permission)

    async def can_all(self, permissions: Iterable[str]) -> bool:
        return has_all(permissions, await self.get_permissions())
