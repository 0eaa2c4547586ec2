"""
Core Utilities

Shared helpers used across the application.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """
    Return timezone-aware UTC datetime.

    Use this instead of datetime.utcnow() which returns naive datetime.
    """
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive datetimes read back from the database.

    SQLite drops tzinfo on DateTime(timezone=True) columns, PostgreSQL keeps it.
    """
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def generate_uuid() -> str:
    """Primary key factory for string UUID columns."""
    return str(uuid.uuid4())
