"""
Tests for the authorization gate: effective permission resolution and the
require_permission dependency.
"""
import pytest

from servicedesk.core.exceptions import ForbiddenError, PermissionDeniedError
from servicedesk.core.permissions import (
    CUSTOMER_PERMISSIONS,
    DEFAULT_PERMISSIONS,
    Permission,
    PermissionChecker,
    has_all,
    missing_permissions,
    require_permission,
    resolve_effective_permissions,
)
from servicedesk.core.principal import Principal
from servicedesk.models.enums import PrincipalKind
from servicedesk.models.permission import Permission as PermissionModel


class TestPermissionMatching:

    def test_empty_requirement_is_satisfied(self):
        assert has_all([], set())

    def test_all_required(self):
        effective = {"requests:read", "requests:create"}
        assert has_all(["requests:read", "requests:create"], effective)
        assert not has_all(["requests:read", "requests:delete"], effective)

    def test_exact_match_only(self):
        assert not has_all(["requests:read"], {"requests:*", "requests"})

    def test_missing_permissions_keeps_order(self):
        assert missing_permissions(
            ["roles:read", "roles:create", "roles:delete"], {"roles:read"}
        ) == ["roles:create", "roles:delete"]

    def test_default_registry_covers_every_constant(self):
        names = {f"{module}:{action}" for module, action, _ in DEFAULT_PERMISSIONS}
        constants = {
            value for key, value in vars(Permission).items()
            if key.isupper() and isinstance(value, str)
        }
        assert constants <= names


class TestEffectivePermissions:

    @pytest.mark.asyncio
    async def test_admin_holds_whole_registry(self, db_session, permissions, admin_role, make_employee, principal_of):
        admin = await make_employee(role=admin_role, email="admin@example.com")

        effective = await resolve_effective_permissions(db_session, principal_of(admin))

        assert effective == set(permissions)

    @pytest.mark.asyncio
    async def test_admin_sees_permissions_registered_later(
        self, db_session, permissions, admin_role, make_employee, principal_of
    ):
        admin = await make_employee(role=admin_role, email="admin@example.com")
        db_session.add(PermissionModel(name="reports:export", module="reports", action="export"))
        await db_session.flush()

        effective = await resolve_effective_permissions(db_session, principal_of(admin))

        assert "reports:export" in effective

    @pytest.mark.asyncio
    async def test_role_permissions(self, db_session, permissions, make_role, make_employee, principal_of):
        role = await make_role(permission_names=["requests:read", "requests:update-status"], registry=permissions)
        employee = await make_employee(role=role)

        effective = await resolve_effective_permissions(db_session, principal_of(employee))

        assert effective == {"requests:read", "requests:update-status"}

    @pytest.mark.asyncio
    async def test_employee_without_role_has_nothing(self, db_session, make_employee, principal_of):
        employee = await make_employee(role=None)

        assert await resolve_effective_permissions(db_session, principal_of(employee)) == set()

    @pytest.mark.asyncio
    async def test_missing_role_has_nothing(self, db_session):
        principal = Principal(
            id="e-1", kind=PrincipalKind.EMPLOYEE, email="ghost@example.com", role_id="no-such-role"
        )

        assert await resolve_effective_permissions(db_session, principal) == set()

    @pytest.mark.asyncio
    async def test_customer_gets_fixed_set(self, db_session, customer, principal_of):
        effective = await resolve_effective_permissions(db_session, principal_of(customer))

        assert effective == set(CUSTOMER_PERMISSIONS)
        assert Permission.ROLES_READ not in effective


class TestRequirePermission:

    @pytest.mark.asyncio
    async def test_employee_with_permission_passes(self, db_session, permissions, make_role, make_employee, principal_of):
        role = await make_role(permission_names=["roles:read"], registry=permissions)
        principal = principal_of(await make_employee(role=role))

        checker = require_permission(Permission.ROLES_READ)
        assert await checker(principal=principal, db=db_session) == principal

    @pytest.mark.asyncio
    async def test_missing_permission_is_403_with_details(
        self, db_session, permissions, make_role, make_employee, principal_of
    ):
        role = await make_role(permission_names=["roles:read"], registry=permissions)
        principal = principal_of(await make_employee(role=role))

        checker = require_permission(Permission.ROLES_READ, Permission.ROLES_CREATE)
        with pytest.raises(PermissionDeniedError) as exc_info:
            await checker(principal=principal, db=db_session)

        body = exc_info.value.to_dict()
        assert body["status_code"] == 403
        assert body["required_permissions"] == ["roles:read", "roles:create"]
        assert body["missing_permissions"] == ["roles:create"]

    @pytest.mark.asyncio
    async def test_admin_passes_any_registered_requirement(
        self, db_session, permissions, admin_role, make_employee, principal_of
    ):
        principal = principal_of(await make_employee(role=admin_role, email="admin@example.com"))

        checker = require_permission(Permission.AUDIT_DELETE, Permission.ROLES_DELETE)
        assert await checker(principal=principal, db=db_session) == principal

    @pytest.mark.asyncio
    async def test_customer_refused_on_employee_endpoint(self, db_session, customer, principal_of):
        checker = require_permission(Permission.REQUESTS_READ)

        with pytest.raises(ForbiddenError) as exc_info:
            await checker(principal=principal_of(customer), db=db_session)
        assert exc_info.value.message == "Employee access required"

    @pytest.mark.asyncio
    async def test_customer_allowed_within_fixed_set(self, db_session, customer, principal_of):
        checker = require_permission(Permission.REQUESTS_READ, allow_customer=True)

        assert await checker(principal=principal_of(customer), db=db_session) == principal_of(customer)

    @pytest.mark.asyncio
    async def test_customer_outside_fixed_set_denied(self, db_session, customer, principal_of):
        checker = require_permission(Permission.REQUESTS_ASSIGN, allow_customer=True)

        with pytest.raises(PermissionDeniedError):
            await checker(principal=principal_of(customer), db=db_session)

    @pytest.mark.asyncio
    async def test_role_change_applies_immediately(
        self, db_session, permissions, make_role, make_employee, principal_of
    ):
        readers = await make_role(name="Readers", permission_names=["requests:read"], registry=permissions)
        writers = await make_role(name="Writers", permission_names=["requests:create"], registry=permissions)
        employee = await make_employee(role=readers)
        checker = require_permission(Permission.REQUESTS_CREATE)

        with pytest.raises(PermissionDeniedError):
            await checker(principal=principal_of(employee), db=db_session)

        employee.role = writers
        await db_session.flush()
        assert await checker(principal=principal_of(employee), db=db_session)


class TestPermissionChecker:

    @pytest.mark.asyncio
    async def test_caches_resolution(self, mock_db):
        principal = Principal(id="c-1", kind=PrincipalKind.CUSTOMER, email="c@example.com")
        checker = PermissionChecker(mock_db, principal)

        assert await checker.can(Permission.DOCUMENTS_DELETE)
        assert not await checker.can(Permission.ROLES_DELETE)
        assert await checker.can_all([Permission.REQUESTS_READ, Permission.REQUESTS_CREATE])
        mock_db.execute.assert_not_called()
