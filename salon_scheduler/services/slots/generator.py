# salon_scheduler/services/slots/generator.py
"""
Canonical slot generation for a merchant/date.

Generation is create-if-absent: the first call for (merchant, date)
inserts one unbooked slot per 10-minute step of business hours, later
calls return what is already stored.

Contains:
✓ merchant business hours (fallback 09:00-17:00)
✓ first configured service duration (fallback 30)
✓ worker assignment via a WorkerSelector
✓ past start times pre-marked as booked

Does NOT contain:
✗ Booking conflicts (checked by the resolver)
"""

import itertools
import logging
import random
from datetime import datetime
from typing import Callable, Protocol

from ...schemas.slots import Slot
from .cache import NS_SLOTS, make_key
from .config import SchedulingConfig, get_scheduling_config
from .invalidator import clear_availability_cache
from .queries import get_active_workers, get_service_durations, get_working_hours
from .store import Row, SlotStore
from .timeutils import is_past, minutes_to_time, to_minutes, validate_date

logger = logging.getLogger(__name__)


# ── Worker selection strategies ──────────────────────────────────────────


class WorkerSelector(Protocol):
    def pick(self, workers: list[Row]) -> Row | None: ...


class RandomWorkerSelector:
    """Uniform random pick among active workers."""

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def pick(self, workers: list[Row]) -> Row | None:
        if not workers:
            return None
        return self.rng.choice(workers)


class RoundRobinWorkerSelector:
    """Cycles through workers in store order."""

    def __init__(self):
        self._counter = itertools.count()

    def pick(self, workers: list[Row]) -> Row | None:
        if not workers:
            return None
        return workers[next(self._counter) % len(workers)]


# ── Generator ────────────────────────────────────────────────────────────


class SlotGenerator:
    """Guarantees canonical slots exist before availability queries."""

    def __init__(
        self,
        store: SlotStore,
        cache,
        config: SchedulingConfig | None = None,
        selector: WorkerSelector | None = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.cache = cache
        self.config = config or get_scheduling_config()
        self.selector = selector or RandomWorkerSelector()
        self.now = now

    async def generate_slots(self, merchant_id: str, day: str) -> list[Slot]:
        """
        Ensure slots exist for merchant_id on day.

        Returns:
            Existing slots unchanged if any, else the newly created ones,
            ordered by start time.
        """
        validate_date(day)

        existing = await self.store.select(
            "slots",
            {"merchant_id": merchant_id, "date": day},
            order_by=["start_time"],
        )
        if existing:
            logger.debug(f"Found {len(existing)} existing slots for {merchant_id} on {day}")
            return [Slot.model_validate(row) for row in existing]

        rows = await self._build_rows(merchant_id, day)
        if not rows:
            return []

        inserted = await self.store.insert("slots", rows)
        await clear_availability_cache(self.cache, merchant_id, day)

        logger.info(f"Created {len(inserted)} new slots for {merchant_id} on {day}")
        return sorted(
            (Slot.model_validate(row) for row in inserted),
            key=lambda s: s.start_time,
        )

    async def _build_rows(self, merchant_id: str, day: str) -> list[Row]:
        durations = await get_service_durations(self.store, merchant_id, self.config)
        duration = durations[0]

        start_str, end_str = await get_working_hours(self.store, merchant_id, self.config)
        start_min = to_minutes(start_str)
        end_min = to_minutes(end_str)

        workers = await get_active_workers(self.store, merchant_id)
        now = self.now()

        rows: list[Row] = []
        seen: set[str] = set()
        t = start_min
        while t < end_min:
            time_str = minutes_to_time(t)
            slot_end = t + duration

            if time_str not in seen and slot_end <= end_min:
                seen.add(time_str)
                worker = self.selector.pick(workers)
                rows.append({
                    "merchant_id": merchant_id,
                    "date": day,
                    "start_time": time_str,
                    "end_time": minutes_to_time(slot_end),
                    # Past slots are never offered
                    "is_booked": is_past(day, time_str, now),
                    "service_duration": duration,
                    "worker_id": worker["id"] if worker else None,
                })

            t += self.config.slot_step_minutes

        return rows

    async def available_slots(self, merchant_id: str, day: str) -> list[Slot]:
        """Unbooked slots for a day, generating the day first if needed."""
        key = make_key(NS_SLOTS, merchant_id, day, "free")
        cached = await self.cache.get(key)
        if cached is not None:
            return [Slot.model_validate(s) for s in cached]

        slots = await self.generate_slots(merchant_id, day)
        free = [s for s in slots if not s.is_booked]

        await self.cache.set(
            key,
            [s.model_dump(mode="json") for s in free],
            self.config.slot_listing_ttl_seconds,
        )
        return free
