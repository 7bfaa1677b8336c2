# backend/vetperto/services/slots/invalidator.py
"""
Cache invalidation for Level 1 cells.

Triggers:
✓ Availability window created/updated/deleted → invalidate all dates
✓ Blocked date created/deleted → invalidate that date
✓ Professional deactivated → invalidate all dates

Does NOT trigger:
✗ Appointment created/cancelled (Level 2 calculates on-the-fly)
✗ Service changes (Level 2)
"""

import logging
from datetime import date, timedelta
from redis import Redis

from .redis_store import SlotsRedisStore

logger = logging.getLogger(__name__)


def invalidate_professional_cache(
    redis: Redis,
    professional_id: int,
    dates: list[date] | None = None,
) -> int:
    """
    Invalidate cached cells for a professional.

    Returns:
        Number of deleted cache keys
    """
    try:
        deleted = SlotsRedisStore(redis).delete_day_cells(professional_id, dates)
    except Exception as e:
        # a stale cache is fixed by the next invalidation or key expiry
        logger.error(f"Slot cache invalidation failed for professional={professional_id}: {e}")
        return 0

    logger.info(
        f"Slot cache invalidated: professional={professional_id} "
        f"dates={'all' if not dates else len(dates)} deleted={deleted}"
    )
    return deleted


def get_affected_dates(date_start: date, date_end: date) -> list[date]:
    """List of dates in range [date_start, date_end]."""
    if date_start > date_end:
        date_start, date_end = date_end, date_start

    dates = []
    current = date_start
    while current <= date_end:
        dates.append(current)
        current += timedelta(days=1)

    return dates
