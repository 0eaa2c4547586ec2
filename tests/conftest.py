"""
Shared fixtures.

The environment is configured before any servicedesk import so Settings
validates against the test values. Service-level tests run on a fresh
in-memory SQLite database per test; unit tests use AsyncMock sessions.
"""
import os

os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-for-unit-tests-only"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SENDGRID_API_KEY"] = ""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from servicedesk import models  # noqa: F401  registers tables on Base.metadata
from servicedesk.core.database import Base
from servicedesk.core.permissions import DEFAULT_PERMISSIONS
from servicedesk.core.principal import Principal
from servicedesk.core.security import create_access_token, get_password_hash
from servicedesk.models.customer import Customer
from servicedesk.models.employee import Employee
from servicedesk.models.enums import PrincipalKind, ServiceCategory
from servicedesk.models.permission import Permission
from servicedesk.models.role import Role, RolePermission, ADMIN_ROLE_NAME
from servicedesk.models.service import Service

TEST_PASSWORD = "Passw0rd!"


# ============================================================================
# DATABASE
# ============================================================================

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)

    # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def mock_db():
    """AsyncSession double for unit tests."""
    db = AsyncMock()
    db.add = MagicMock()
    db.execute = AsyncMock()
    db.flush = AsyncMock()
    db.get = AsyncMock()
    db.delete = AsyncMock()
    return db


@pytest.fixture
def mock_mailer():
    mailer = MagicMock()
    mailer.send_verification_email = AsyncMock()
    mailer.send_password_reset_email = AsyncMock()
    mailer.send_welcome_email = AsyncMock()
    mailer.send_notification_email = AsyncMock()
    return mailer


# ============================================================================
# FACTORIES
# ============================================================================

@pytest_asyncio.fixture
async def permissions(db_session):
    """The default permission registry, keyed by name."""
    created = {}
    for module, action, description in DEFAULT_PERMISSIONS:
        permission = Permission(
            name=Permission.build_name(module, action), module=module, action=action, description=description
        )
        db_session.add(permission)
        created[permission.name] = permission
    await db_session.flush()
    return created


@pytest_asyncio.fixture
async def admin_role(db_session):
    role = Role(name=ADMIN_ROLE_NAME, name_ar="مدير النظام", is_admin=True)
    db_session.add(role)
    await db_session.flush()
    return role


@pytest.fixture
def make_role(db_session):
    async def _make_role(name="Engineer", permission_names=(), registry=None):
        role = Role(name=name, is_admin=False)
        db_session.add(role)
        await db_session.flush()
        for permission_name in permission_names:
            db_session.add(RolePermission(role_id=role.id, permission_id=registry[permission_name].id))
        await db_session.flush()
        return role
    return _make_role


@pytest.fixture
def make_employee(db_session):
    async def _make_employee(role=None, email="engineer@example.com", name="Test Engineer", **fields):
        employee = Employee(
            email=email,
            password_hash=get_password_hash(TEST_PASSWORD),
            name=name,
            role=role,
            **fields,
        )
        db_session.add(employee)
        await db_session.flush()
        return employee
    return _make_employee


@pytest.fixture
def make_customer(db_session):
    async def _make_customer(email="customer@example.com", name="Test Customer", **fields):
        customer = Customer(
            email=email,
            password_hash=get_password_hash(TEST_PASSWORD),
            name=name,
            **fields,
        )
        db_session.add(customer)
        await db_session.flush()
        return customer
    return _make_customer


@pytest_asyncio.fixture
async def service(db_session):
    service = Service(
        code="SOIL-01",
        name="Soil testing",
        name_ar="اختبار التربة",
        category=ServiceCategory.SOIL_TESTING,
        base_price=Decimal("1500.00"),
        currency="EGP",
        requirements=[],
        requirements_ar=[],
    )
    db_session.add(service)
    await db_session.flush()
    return service


@pytest_asyncio.fixture
async def customer(make_customer):
    return await make_customer()


# ============================================================================
# PRINCIPALS / TOKENS
# ============================================================================

def principal_of(account) -> Principal:
    if isinstance(account, Employee):
        return Principal(id=account.id, kind=PrincipalKind.EMPLOYEE, email=account.email, role_id=account.role_id)
    return Principal(id=account.id, kind=PrincipalKind.CUSTOMER, email=account.email)


def bearer(account) -> dict:
    principal = principal_of(account)
    claims = {"sub": principal.id, "email": principal.email, "kind": principal.kind.value}
    if principal.role_id:
        claims["role_id"] = principal.role_id
    return {"Authorization": f"Bearer {create_access_token(claims)}"}


@pytest.fixture(name="principal_of")
def principal_of_fixture():
    return principal_of


@pytest.fixture(name="bearer")
def bearer_fixture():
    return bearer
