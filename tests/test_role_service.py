"""
Tests for role and permission administration.
"""
import pytest

from servicedesk.core.exceptions import BadRequestError, ConflictError, NotFoundError
from servicedesk.services.permission_service import PermissionService
from servicedesk.services.role_service import ADMIN_ROLE_NOTE, RoleService


def ids_of(permissions, *names):
    return [permissions[name].id for name in names]


class TestRoleService:

    @pytest.mark.asyncio
    async def test_create_role_round_trips_permissions(self, db_session, permissions):
        role_service = RoleService(db_session)
        role = await role_service.create_role(
            name="Lab Technician",
            name_ar="فني معمل",
            permission_ids=ids_of(permissions, "requests:read", "requests:update-status"),
        )

        granted = await role_service.get_role_permissions(role)

        assert {p.name for p in granted} == {"requests:read", "requests:update-status"}
        assert role.is_admin is False

    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts(self, db_session, permissions):
        role_service = RoleService(db_session)
        await role_service.create_role(name="Reviewer")

        with pytest.raises(ConflictError):
            await role_service.create_role(name="Reviewer")

    @pytest.mark.asyncio
    async def test_unknown_permission_id(self, db_session, permissions):
        with pytest.raises(NotFoundError):
            await RoleService(db_session).create_role(name="Broken", permission_ids=["does-not-exist"])

    @pytest.mark.asyncio
    async def test_update_replaces_whole_set(self, db_session, permissions):
        role_service = RoleService(db_session)
        role = await role_service.create_role(
            name="Coordinator", permission_ids=ids_of(permissions, "requests:read", "requests:assign")
        )

        await role_service.update_role(
            role.id, permission_ids=ids_of(permissions, "requests:assign", "customers:read")
        )

        granted = {p.name for p in await role_service.get_role_permissions(role)}
        assert granted == {"requests:assign", "customers:read"}

    @pytest.mark.asyncio
    async def test_update_with_empty_list_clears(self, db_session, permissions):
        role_service = RoleService(db_session)
        role = await role_service.create_role(name="Temp", permission_ids=ids_of(permissions, "roles:read"))

        await role_service.update_role(role.id, permission_ids=[])

        assert await role_service.get_role_permissions(role) == []

    @pytest.mark.asyncio
    async def test_update_without_permission_ids_keeps_set(self, db_session, permissions):
        role_service = RoleService(db_session)
        role = await role_service.create_role(name="Keeper", permission_ids=ids_of(permissions, "roles:read"))

        await role_service.update_role(role.id, description="Still reads roles")

        assert [p.name for p in await role_service.get_role_permissions(role)] == ["roles:read"]

    @pytest.mark.asyncio
    async def test_admin_role_is_protected(self, db_session, permissions, admin_role):
        role_service = RoleService(db_session)

        with pytest.raises(BadRequestError):
            await role_service.update_role(admin_role.id, name="Superuser")
        with pytest.raises(BadRequestError):
            await role_service.update_role(admin_role.id, permission_ids=ids_of(permissions, "roles:read"))
        with pytest.raises(BadRequestError):
            await role_service.delete_role(admin_role.id)

    @pytest.mark.asyncio
    async def test_admin_role_describes_full_registry(self, db_session, permissions, admin_role):
        described = await RoleService(db_session).describe_role(admin_role)

        assert len(described["permissions"]) == len(permissions)
        assert described["note"] == ADMIN_ROLE_NOTE

    @pytest.mark.asyncio
    async def test_delete_blocked_until_employee_moves(self, db_session, permissions, make_employee):
        role_service = RoleService(db_session)
        old_role = await role_service.create_role(name="Old")
        new_role = await role_service.create_role(name="New")
        employee = await make_employee(role=old_role)

        with pytest.raises(BadRequestError):
            await role_service.delete_role(old_role.id)

        employee.role = new_role
        await db_session.flush()
        await role_service.delete_role(old_role.id)

        assert await role_service.get_role_by_id(old_role.id) is None

    @pytest.mark.asyncio
    async def test_seed_admin_role_is_idempotent(self, db_session):
        role_service = RoleService(db_session)

        first = await role_service.seed_admin_role()
        second = await role_service.seed_admin_role()

        assert first.id == second.id
        assert first.is_admin is True


class TestPermissionService:

    @pytest.mark.asyncio
    async def test_create_builds_name(self, db_session):
        permission = await PermissionService(db_session).create("reports", "export", "Export reports")

        assert permission.name == "reports:export"

    @pytest.mark.asyncio
    async def test_duplicate_conflicts(self, db_session, permissions):
        with pytest.raises(ConflictError):
            await PermissionService(db_session).create("requests", "read")

    @pytest.mark.asyncio
    async def test_bulk_upsert(self, db_session, permissions):
        result = await PermissionService(db_session).bulk_upsert([
            ("requests", "read", "Read every request"),
            ("reports", "export", "Export reports"),
        ])

        assert result == {"created": 1, "updated": 1}

    @pytest.mark.asyncio
    async def test_list_is_ordered_and_grouped(self, db_session, permissions):
        permission_service = PermissionService(db_session)

        listed = await permission_service.list_all()
        grouped = permission_service.group_by_module(listed)

        assert [(p.module, p.action) for p in listed] == sorted((p.module, p.action) for p in listed)
        assert [p.action for p in grouped["roles"]] == ["create", "delete", "read", "update"]

    @pytest.mark.asyncio
    async def test_cannot_delete_granted_permission(self, db_session, permissions):
        await RoleService(db_session).create_role(name="Holder", permission_ids=ids_of(permissions, "roles:read"))

        with pytest.raises(BadRequestError):
            await PermissionService(db_session).delete(permissions["roles:read"].id)
