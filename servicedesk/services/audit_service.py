"""
Audit Service

Append-only audit trail. Writes happen inside a SAVEPOINT and failures are
logged and swallowed: a broken audit write never rolls back the business
operation that triggered it.
"""
import enum
import logging
from datetime import datetime, timezone, timedelta
from typing import Optional, Dict, Any, List, Tuple

from sqlalchemy import select, delete, and_, func
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.principal import Principal
from servicedesk.models.audit_log import AuditLog
from servicedesk.models.enums import AuditAction, PrincipalKind

logger = logging.getLogger(__name__)


class AuditService:
    """Service for audit logging and audit queries."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: Optional[str] = None,
        principal: Optional[Principal] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        description: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[AuditLog]:
        """
        Create an audit log entry.

        Args:
            action: AuditAction value
            entity_type: Kind of entity touched ('ServiceRequest', 'Role', ...)
            entity_id: ID of the entity
            principal: Actor, or None for system actions
            old_values: State before change
            new_values: State after change
            description: Free-text summary
            ip_address: Client IP
            user_agent: Client user agent

        Returns:
            Created entry, or None if the write failed
        """
        entry = AuditLog(
            user_id=principal.id if principal else None,
            user_type=principal.kind if principal else None,
            user_email=principal.email if principal else None,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            old_values=_jsonable(old_values),
            new_values=_jsonable(new_values),
            description=description,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(entry)
                await self.db.flush()
        except Exception:
            logger.exception(f"Failed to write audit log {action} {entity_type}:{entity_id}")
            return None
        return entry

    async def log_create(self, entity_type: str, entity_id: str, new_values=None, **kwargs):
        return await self.log(AuditAction.CREATE, entity_type, entity_id, new_values=new_values, **kwargs)

    async def log_update(self, entity_type: str, entity_id: str, old_values=None, new_values=None, **kwargs):
        return await self.log(
            AuditAction.UPDATE, entity_type, entity_id,
            old_values=old_values, new_values=new_values, **kwargs
        )

    async def log_delete(self, entity_type: str, entity_id: str, old_values=None, **kwargs):
        return await self.log(AuditAction.DELETE, entity_type, entity_id, old_values=old_values, **kwargs)

    async def log_status_change(self, entity_type: str, entity_id: str, old_status: str, new_status: str, **kwargs):
        return await self.log(
            AuditAction.STATUS_CHANGE, entity_type, entity_id,
            old_values={"status": old_status}, new_values={"status": new_status}, **kwargs
        )

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def find_all(
        self,
        user_id: Optional[str] = None,
        user_type: Optional[PrincipalKind] = None,
        action: Optional[AuditAction] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        per_page: int = 50,
    ) -> Tuple[List[AuditLog], int]:
        """Filtered, paginated audit entries, newest first."""
        conditions = []
        if user_id:
            conditions.append(AuditLog.user_id == user_id)
        if user_type:
            conditions.append(AuditLog.user_type == user_type)
        if action:
            conditions.append(AuditLog.action == action)
        if entity_type:
            conditions.append(AuditLog.entity_type == entity_type)
        if entity_id:
            conditions.append(AuditLog.entity_id == entity_id)
        if start_date:
            conditions.append(AuditLog.created_at >= start_date)
        if end_date:
            conditions.append(AuditLog.created_at <= end_date)

        count_query = select(func.count(AuditLog.id))
        query = select(AuditLog)
        if conditions:
            count_query = count_query.where(and_(*conditions))
            query = query.where(and_(*conditions))

        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(AuditLog.created_at.desc())
        query = query.offset((page - 1) * per_page).limit(per_page)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def find_by_entity(self, entity_type: str, entity_id: str) -> List[AuditLog]:
        result = await self.db.execute(
            select(AuditLog)
            .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
            .order_by(AuditLog.created_at.desc())
        )
        return list(result.scalars().all())

    async def find_by_user(self, user_id: str, limit: int = 100) -> List[AuditLog]:
        result = await self.db.execute(
            select(AuditLog)
            .where(AuditLog.user_id == user_id)
            .order_by(AuditLog.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_stats(self, days: int = 30) -> Dict[str, Any]:
        """Counts by action and entity type over the last `days` days."""
        since = datetime.now(timezone.utc) - timedelta(days=days)

        total = (await self.db.execute(
            select(func.count(AuditLog.id)).where(AuditLog.created_at >= since)
        )).scalar() or 0

        by_action = await self.db.execute(
            select(AuditLog.action, func.count(AuditLog.id))
            .where(AuditLog.created_at >= since)
            .group_by(AuditLog.action)
        )
        by_entity = await self.db.execute(
            select(AuditLog.entity_type, func.count(AuditLog.id))
            .where(AuditLog.created_at >= since)
            .group_by(AuditLog.entity_type)
        )

        return {
            "period_days": days,
            "total": total,
            "by_action": {action.value: count for action, count in by_action.all()},
            "by_entity_type": {entity: count for entity, count in by_entity.all()},
        }

    async def cleanup_old_logs(self, days_to_keep: int = 90) -> int:
        """Delete entries older than the retention window. Returns rows removed."""
        cutoff = datetime.now(timezone.utc) - timedelta(days=days_to_keep)
        result = await self.db.execute(
            delete(AuditLog).where(AuditLog.created_at < cutoff)
        )
        logger.info(f"Audit cleanup removed {result.rowcount} entries older than {days_to_keep} days")
        return result.rowcount


def _jsonable(values: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Stringify values JSON columns cannot hold (datetimes, decimals, enums)."""
    if values is None:
        return None
    cleaned = {}
    for key, value in values.items():
        if isinstance(value, enum.Enum):
            cleaned[key] = value.value
        elif value is None or isinstance(value, (str, int, float, bool)):
            cleaned[key] = value
        else:
            cleaned[key] = str(value)
    return cleaned


async def log_audit(db: AsyncSession, action: AuditAction, entity_type: str, **kwargs) -> Optional[AuditLog]:
    """
    Convenience function for logging audit events.

    Usage:
        await log_audit(db, AuditAction.LOGIN, "Customer", entity_id=customer.id)
    """
    service = AuditService(db)
    return await service.log(action, entity_type, **kwargs)
