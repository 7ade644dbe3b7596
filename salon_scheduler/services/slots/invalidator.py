# salon_scheduler/services/slots/invalidator.py
"""
Cache invalidation for a (merchant, date) scope.

Triggers (called by the allocator and generator):
✓ Slot generated / created / deleted
✓ Slot booked / released / extended
✓ Slot reallocated to another worker
✓ Worker marked unavailable

Does NOT trigger:
✗ Reads of any kind (entries expire by TTL)
"""

import logging
from datetime import date, timedelta

from .timeutils import validate_date

logger = logging.getLogger(__name__)


async def clear_availability_cache(cache, merchant_id: str, day: str) -> int:
    """
    Remove every cached entry for merchant_id on day.

    Args:
        cache: AvailabilityCache or RedisAvailabilityCache
        merchant_id: Merchant ID
        day: "YYYY-MM-DD"

    Returns:
        Number of removed cache entries
    """
    removed = await cache.invalidate_scope(merchant_id, day)
    logger.debug(f"Cleared {removed} cache entries for {merchant_id} on {day}")
    return removed


def get_affected_dates(date_start: str, date_end: str) -> list[str]:
    """
    Get list of "YYYY-MM-DD" dates in range [date_start, date_end].

    Used when an operator change spans several days.
    """
    start = date.fromisoformat(validate_date(date_start))
    end = date.fromisoformat(validate_date(date_end))
    if start > end:
        start, end = end, start

    dates = []
    current = start
    while current <= end:
        dates.append(current.isoformat())
        current += timedelta(days=1)

    return dates


async def clear_availability_cache_range(
    cache,
    merchant_id: str,
    date_start: str,
    date_end: str,
) -> int:
    """Clear the scope for every date in [date_start, date_end]."""
    removed = 0
    for day in get_affected_dates(date_start, date_end):
        removed += await clear_availability_cache(cache, merchant_id, day)
    return removed
