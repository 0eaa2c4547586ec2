"""
Human-readable document numbers: REQ-2025-0001, INV-2025-0001, PAY-2025-0001.

The sequence restarts every year. The next value is derived from the highest
number already issued for the year, so deleting an older row never causes a
collision the way a plain row count would.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

SEQUENCE_WIDTH = 4


async def next_number(db: AsyncSession, column, prefix: str, year: Optional[int] = None) -> str:
    """
    Next number for `prefix` in `year` (defaults to the current UTC year).

    Args:
        db: Database session
        column: Mapped column holding the numbers (e.g. ServiceRequest.request_number)
        prefix: Number prefix without separators ("REQ")
        year: Calendar year

    Returns:
        Formatted number, zero-padded to at least four digits
    """
    year = year or datetime.now(timezone.utc).year
    year_prefix = f"{prefix}-{year}-"

    # Longest first: "…-10000" must sort above "…-9999"
    result = await db.execute(
        select(column)
        .where(column.like(f"{year_prefix}%"))
        .order_by(func.length(column).desc(), column.desc())
        .limit(1)
    )
    last = result.scalar_one_or_none()

    sequence = 1
    if last:
        suffix = last[len(year_prefix):]
        if suffix.isdigit():
            sequence = int(suffix) + 1

    return f"{year_prefix}{sequence:0{SEQUENCE_WIDTH}d}"
