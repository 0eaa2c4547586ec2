"""
Database bootstrap

Creates all tables, registers the default permissions, seeds the Admin role
and the default system settings and, when ADMIN_EMAIL / ADMIN_PASSWORD are
set, the first admin employee.
Safe to run repeatedly.

Run: python scripts/init_db.py
"""
import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import func, select

from servicedesk import models  # noqa: F401  registers tables on Base.metadata
from servicedesk.core.config import settings
from servicedesk.core.database import Base, engine, get_db_session
from servicedesk.core.permissions import DEFAULT_PERMISSIONS
from servicedesk.core.security import get_password_hash
from servicedesk.models.employee import Employee
from servicedesk.services.permission_service import PermissionService
from servicedesk.services.role_service import RoleService
from servicedesk.services.system_setting_service import SystemSettingService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def create_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("  ✓ tables")


async def seed():
    async with get_db_session() as db:
        result = await PermissionService(db).bulk_upsert(DEFAULT_PERMISSIONS)
        logger.info(f"  ✓ permissions ({result['created']} created, {result['updated']} updated)")

        admin_role = await RoleService(db).seed_admin_role()
        logger.info(f"  ✓ role {admin_role.name}")

        created = await SystemSettingService(db).seed_defaults()
        logger.info(f"  ✓ system settings ({created} created)")

        if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
            logger.info("  - ADMIN_EMAIL / ADMIN_PASSWORD not set, skipping admin employee")
            return

        existing = await db.execute(
            select(Employee.id).where(func.lower(Employee.email) == settings.ADMIN_EMAIL.lower())
        )
        if existing.scalar_one_or_none():
            logger.info(f"  - admin employee {settings.ADMIN_EMAIL} (already exists)")
            return

        db.add(Employee(
            email=settings.ADMIN_EMAIL.lower(),
            password_hash=get_password_hash(settings.ADMIN_PASSWORD),
            name="Administrator",
            name_ar="مدير النظام",
            role=admin_role,
        ))
        await db.flush()
        logger.info(f"  ✓ admin employee {settings.ADMIN_EMAIL}")


async def main():
    logger.info("Initializing database...")
    await create_tables()
    await seed()
    await engine.dispose()
    logger.info("Done")


if __name__ == "__main__":
    asyncio.run(main())
