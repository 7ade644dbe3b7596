# salon_scheduler/services/slots/queries.py
"""
Store lookups shared by the generator, resolver and allocator.
"""

from .config import SchedulingConfig
from .store import Row, SlotStore


async def get_active_workers(store: SlotStore, merchant_id: str) -> list[Row]:
    """Active workers of a merchant in creation order."""
    return await store.select(
        "workers",
        {"merchant_id": merchant_id, "is_active": True},
        order_by=["created_at", "id"],
    )


async def get_worker(store: SlotStore, worker_id: str) -> Row | None:
    rows = await store.select("workers", {"id": worker_id})
    return rows[0] if rows else None


async def get_slot(store: SlotStore, slot_id: str) -> Row | None:
    rows = await store.select("slots", {"id": slot_id})
    return rows[0] if rows else None


async def get_working_hours(
    store: SlotStore,
    merchant_id: str,
    config: SchedulingConfig,
) -> tuple[str, str]:
    """Merchant business hours, falling back to the configured defaults."""
    rows = await store.select("merchant_settings", {"merchant_id": merchant_id})
    if not rows:
        return config.working_hours_start, config.working_hours_end

    settings = rows[0]
    return (
        settings.get("working_hours_start") or config.working_hours_start,
        settings.get("working_hours_end") or config.working_hours_end,
    )


async def get_service_durations(
    store: SlotStore,
    merchant_id: str,
    config: SchedulingConfig,
) -> list[int]:
    """Unique service durations of a merchant, in store order."""
    rows = await store.select(
        "services",
        {"merchant_id": merchant_id},
        order_by=["created_at", "id"],
    )
    durations = list(dict.fromkeys(r["duration"] for r in rows if r.get("duration")))
    return durations or list(config.default_durations)


async def get_booking(store: SlotStore, booking_id: str) -> Row | None:
    rows = await store.select("bookings", {"id": booking_id})
    return rows[0] if rows else None
