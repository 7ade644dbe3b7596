# salon_scheduler/services/slots/resolver.py
"""
Worker availability resolution.

A worker is free for [start, end) on a date iff the window overlaps
none of their booked slots and none of their unavailability periods.

Every check is batched: two bulk queries (booked slots, unavailability)
build per-worker busy-interval maps, and any number of workers and
candidate times are then tested in memory. No per-worker or per-time
round trips.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable

from ...schemas.slots import AvailableSlot, WorkerAvailability
from .cache import NS_AVAILABILITY, NS_SLOTS, make_key
from .config import SchedulingConfig, get_scheduling_config
from .errors import ValidationError
from .queries import get_active_workers, get_working_hours
from .store import Row, SlotStore
from .timeutils import (
    MINUTES_PER_DAY,
    add_minutes,
    is_past,
    minutes_to_time,
    ranges_overlap,
    to_minutes,
    validate_date,
)

logger = logging.getLogger(__name__)

Interval = tuple[int, int]
BusyMap = dict[str, list[Interval]]


class WorkerAvailabilityResolver:
    """Per-worker free/busy decisions for one or many time windows."""

    def __init__(
        self,
        store: SlotStore,
        cache,
        config: SchedulingConfig | None = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.cache = cache
        self.config = config or get_scheduling_config()
        self.now = now

    # ── Busy maps ────────────────────────────────────────────────────────

    async def _load_busy_maps(
        self,
        worker_ids: list[str],
        day: str,
    ) -> tuple[BusyMap, BusyMap]:
        """Two queries, issued together: booked slots and unavailability."""
        bookings, unavailability = await asyncio.gather(
            self.store.select(
                "slots",
                {"date": day, "is_booked": True, "worker_id": worker_ids},
            ),
            self.store.select(
                "worker_unavailability",
                {"date": day, "worker_id": worker_ids},
            ),
        )
        return _busy_map(bookings), _busy_map(unavailability)

    # ── Batch check ──────────────────────────────────────────────────────

    async def batch_check_availability(
        self,
        worker_ids: list[str],
        day: str,
        start_time: str,
        end_time: str,
        merchant_id: str | None = None,
        use_cache: bool = True,
    ) -> dict[str, bool]:
        """
        Check many workers against one window.

        Returns:
            {worker_id: available}
        """
        if not worker_ids:
            return {}

        validate_date(day)
        start_min = to_minutes(start_time)
        end_min = to_minutes(end_time)

        key = make_key(
            NS_AVAILABILITY, merchant_id, day,
            "batch", start_time, end_time, ",".join(worker_ids),
        )
        if use_cache:
            cached = await self.cache.get(key)
            if cached is not None:
                return dict(cached)

        booking_map, unavailability_map = await self._load_busy_maps(worker_ids, day)

        result = {
            worker_id: _is_free(
                start_min, end_min,
                booking_map.get(worker_id, []),
                unavailability_map.get(worker_id, []),
            )
            for worker_id in worker_ids
        }

        await self.cache.set(key, result, self.config.availability_ttl_seconds)
        return result

    async def is_worker_available_for_slot(
        self,
        worker_id: str,
        day: str,
        start_time: str,
        end_time: str,
    ) -> bool:
        """Single-worker check, routed through the batch check."""
        key = make_key(NS_AVAILABILITY, None, day, "worker", worker_id, start_time, end_time)
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        availability = await self.batch_check_availability(
            [worker_id], day, start_time, end_time
        )
        result = availability.get(worker_id, False)

        await self.cache.set(key, result, self.config.availability_ttl_seconds)
        return result

    # ── Worker lookups ───────────────────────────────────────────────────

    async def get_available_workers(
        self,
        merchant_id: str,
        day: str,
        start_time: str,
        duration: int,
    ) -> list[WorkerAvailability]:
        """Every active worker free for start_time + duration, in store order."""
        end_time = add_minutes(start_time, duration)

        workers = await get_active_workers(self.store, merchant_id)
        if not workers:
            logger.info(f"No active workers found for merchant {merchant_id}")
            return []

        availability = await self.batch_check_availability(
            [w["id"] for w in workers], day, start_time, end_time,
            merchant_id=merchant_id,
        )

        return [
            _worker_availability(worker, end_time)
            for worker in workers
            if availability.get(worker["id"])
        ]

    async def find_available_worker(
        self,
        merchant_id: str,
        day: str,
        start_time: str,
        duration: int,
    ) -> WorkerAvailability | None:
        """First free worker in store order, or None."""
        available = await self.get_available_workers(merchant_id, day, start_time, duration)
        return available[0] if available else None

    # ── Day listing ──────────────────────────────────────────────────────

    async def get_available_slots_with_workers(
        self,
        merchant_id: str,
        day: str,
        duration: int,
        interval: int = 10,
    ) -> list[AvailableSlot]:
        """
        All start times of a day with at least one free worker.

        Returns:
            [AvailableSlot(time, available_workers)] in time order. Each
            worker entry carries next_available_time = slot end.
        """
        validate_date(day)
        if duration <= 0 or interval <= 0:
            raise ValidationError("duration and interval must be positive minutes")

        key = make_key(NS_SLOTS, merchant_id, day, "with_workers", duration, interval)
        cached = await self.cache.get(key)
        if cached is not None:
            return [AvailableSlot.model_validate(s) for s in cached]

        start_str, end_str = await get_working_hours(self.store, merchant_id, self.config)
        slots = await self._slots_in_range(
            merchant_id, day, to_minutes(start_str), to_minutes(end_str), duration, interval
        )

        await self.cache.set(
            key,
            [s.model_dump(mode="json") for s in slots],
            self.config.slot_listing_ttl_seconds,
        )
        return slots

    async def _slots_in_range(
        self,
        merchant_id: str,
        day: str,
        start_min: int,
        end_min: int,
        duration: int,
        interval: int,
    ) -> list[AvailableSlot]:
        workers = await get_active_workers(self.store, merchant_id)
        if not workers:
            return []

        now = self.now()
        is_today = day == now.date().isoformat()

        candidates: list[tuple[int, int]] = []
        t = start_min
        while t < end_min:
            # Starts already gone today, or ending past midnight, are skipped
            gone = is_today and is_past(day, minutes_to_time(t), now)
            if not gone and t + duration < MINUTES_PER_DAY:
                candidates.append((t, t + duration))
            t += interval

        if not candidates:
            return []

        booking_map, unavailability_map = await self._load_busy_maps(
            [w["id"] for w in workers], day
        )

        result: list[AvailableSlot] = []
        for slot_start, slot_end in candidates:
            end_str = minutes_to_time(slot_end)
            free = [
                _worker_availability(worker, end_str)
                for worker in workers
                if _is_free(
                    slot_start, slot_end,
                    booking_map.get(worker["id"], []),
                    unavailability_map.get(worker["id"], []),
                )
            ]
            if free:
                result.append(AvailableSlot(
                    time=minutes_to_time(slot_start),
                    available_workers=free,
                ))

        return result


# ── Helpers ──────────────────────────────────────────────────────────────


def _busy_map(rows: list[Row]) -> BusyMap:
    """Group [start, end) intervals in minutes by worker_id."""
    busy: BusyMap = {}
    for row in rows:
        worker_id = row.get("worker_id")
        if not worker_id:
            continue
        busy.setdefault(worker_id, []).append(
            (to_minutes(row["start_time"]), to_minutes(row["end_time"]))
        )
    return busy


def _is_free(
    start: int,
    end: int,
    bookings: list[Interval],
    unavailability: list[Interval],
) -> bool:
    if any(ranges_overlap(start, end, b0, b1) for b0, b1 in bookings):
        return False
    return not any(ranges_overlap(start, end, u0, u1) for u0, u1 in unavailability)


def _worker_availability(worker: Row, next_available_time: str) -> WorkerAvailability:
    return WorkerAvailability(
        worker_id=worker["id"],
        name=worker["name"],
        next_available_time=next_available_time,
        specialty=worker.get("specialty"),
    )
