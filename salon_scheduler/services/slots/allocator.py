# salon_scheduler/services/slots/allocator.py
"""
Slot allocation: reserve, commit, release, extend, reallocate.

Booking is two-phase:
  1. check_slot_availability → provisional slot handle (unbooked row)
  2. book_slot               → conditional update is_booked false → true

Nothing locks between the two steps. book_slot is the only commit:
  ✓ its update is filtered on is_booked = false, so two callers on the
    same row see one row count of 1 and one AlreadyBooked
  ✓ commits for one worker are serialized and re-check the worker's
    other booked slots, so two provisional rows (or a longer service
    duration) cannot overlap an existing booking
  ✓ an overlap found after the update (another process won) rolls the
    row back to unbooked

Every mutation clears the (merchant, date) cache scope.
"""

import asyncio
import logging
import re
from collections import defaultdict
from datetime import datetime
from typing import Callable

from ...schemas.bookings import BookingStatus
from ...schemas.slots import BookingResult, Slot, SlotCheckResult
from ...schemas.workers import WorkerUnavailability
from .cache import NS_SLOT_CHECK, make_key
from .config import SchedulingConfig, get_scheduling_config
from .errors import (
    AlreadyBooked,
    BookingNotFound,
    ExtensionConflict,
    InvalidExtension,
    InvalidSlotId,
    SlotBooked,
    SlotExists,
    SlotNotFound,
    ValidationError,
    WorkerNotFound,
    WorkerUnavailable,
)
from .generator import RandomWorkerSelector, WorkerSelector
from .invalidator import clear_availability_cache
from .queries import get_active_workers, get_booking, get_slot, get_worker
from .resolver import WorkerAvailabilityResolver
from .store import Row, SlotStore
from .timeutils import (
    add_minutes,
    duration_between,
    extension_options,
    minutes_to_time,
    ranges_overlap,
    to_minutes,
    validate_date,
)

logger = logging.getLogger(__name__)

UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

ACTIVE_STATUSES = (BookingStatus.pending.value, BookingStatus.confirmed.value)

WORKER_TAKEN = "This worker is already booked at that time. Please select another time."


def validate_slot_id(slot_id) -> str:
    """Reject empty or non-UUID slot ids before touching the store."""
    if not slot_id or not isinstance(slot_id, str) or slot_id == "new":
        raise InvalidSlotId("No valid slot ID provided. Please select a valid time slot.")
    if not UUID_RE.match(slot_id):
        raise InvalidSlotId("Invalid slot ID format. Please select a valid time slot.")
    return slot_id


class SlotAllocator:
    """Turns (merchant, date, time, duration) requests into committed bookings."""

    def __init__(
        self,
        store: SlotStore,
        cache,
        resolver: WorkerAvailabilityResolver,
        config: SchedulingConfig | None = None,
        selector: WorkerSelector | None = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.cache = cache
        self.resolver = resolver
        self.config = config or get_scheduling_config()
        self.selector = selector or RandomWorkerSelector()
        self.now = now
        # One commit lock per worker (per slot when unassigned)
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # ── Reserve ──────────────────────────────────────────────────────────

    async def check_slot_availability(
        self,
        merchant_id: str,
        day: str,
        time: str,
        duration: int = 30,
    ) -> SlotCheckResult:
        """
        Find or create a provisional slot for time on day.

        Order:
          1. an existing unbooked slot at exactly that start time
          2. a new unbooked slot for the first free worker
          3. available=False (slot_id of an existing booked slot, or "")
        """
        validate_date(day)
        to_minutes(time)
        if duration <= 0:
            raise ValidationError("Service duration must be positive minutes")

        key = make_key(NS_SLOT_CHECK, merchant_id, day, time, duration)
        cached = await self.cache.get(key)
        if cached is not None:
            return SlotCheckResult.model_validate(cached)

        existing = await self.store.select(
            "slots",
            {"merchant_id": merchant_id, "date": day, "start_time": time},
            order_by=["created_at", "id"],
        )

        free = next((s for s in existing if not s["is_booked"]), None)
        if free:
            logger.debug(f"Found available slot {free['id']}")
            result = SlotCheckResult(
                available=True,
                slot_id=free["id"],
                worker_id=free.get("worker_id"),
                worker_name=await self._worker_name(free.get("worker_id")),
            )
        else:
            result = await self._reserve_with_worker(merchant_id, day, time, duration, existing)

        await self.cache.set(key, result.model_dump(), self.config.slot_check_ttl_seconds)
        return result

    async def _reserve_with_worker(
        self,
        merchant_id: str,
        day: str,
        time: str,
        duration: int,
        existing: list[Row],
    ) -> SlotCheckResult:
        worker = await self.resolver.find_available_worker(merchant_id, day, time, duration)
        if worker is None:
            logger.info(f"No available worker for {merchant_id} on {day} at {time}")
            return SlotCheckResult(
                available=False,
                slot_id=existing[0]["id"] if existing else "",
            )

        inserted = await self.store.insert("slots", [{
            "merchant_id": merchant_id,
            "date": day,
            "start_time": time,
            "end_time": add_minutes(time, duration),
            "is_booked": False,
            "service_duration": duration,
            "worker_id": worker.worker_id,
        }])
        await clear_availability_cache(self.cache, merchant_id, day)

        slot_id = inserted[0]["id"]
        logger.info(f"Created provisional slot {slot_id} for worker {worker.worker_id}")
        return SlotCheckResult(
            available=True,
            slot_id=slot_id,
            worker_id=worker.worker_id,
            worker_name=worker.name,
        )

    # ── Commit ───────────────────────────────────────────────────────────

    async def book_slot(
        self,
        slot_id: str,
        service_name: str | None = None,
        service_duration: int | None = None,
        service_price: float | None = None,
    ) -> BookingResult:
        """
        Mark a slot booked with service metadata.

        Raises:
            InvalidSlotId, SlotNotFound, AlreadyBooked
        """
        validate_slot_id(slot_id)
        if service_duration is not None and service_duration <= 0:
            raise ValidationError("Service duration must be positive minutes")

        slot = await self._require_slot(slot_id)
        if slot["is_booked"]:
            raise AlreadyBooked("This time slot has already been booked. Please select another time.")

        duration = service_duration or slot["service_duration"]
        end_time = add_minutes(slot["start_time"], duration)
        patch = {
            "is_booked": True,
            "service_name": service_name,
            "service_price": service_price,
            "service_duration": duration,
            "end_time": end_time,
        }

        async with self._locks[slot.get("worker_id") or slot_id]:
            if await self._worker_overlaps(slot, end_time):
                logger.info(f"Worker {slot['worker_id']} already booked over slot {slot_id}")
                raise AlreadyBooked(WORKER_TAKEN)

            updated = await self.store.update("slots", {"id": slot_id, "is_booked": False}, patch)
            if not updated:
                # Lost the race to a concurrent booking
                raise AlreadyBooked("This time slot has already been booked. Please select another time.")

            if await self._worker_overlaps(slot, end_time):
                await self._undo_booking(slot)
                raise AlreadyBooked(WORKER_TAKEN)

        await clear_availability_cache(self.cache, slot["merchant_id"], slot["date"])
        logger.info(f"Booked slot {slot_id} ({slot['date']} {slot['start_time']})")

        return BookingResult(
            worker_id=slot.get("worker_id"),
            worker_name=await self._worker_name(slot.get("worker_id")),
        )

    async def release_slot(self, slot_id: str) -> None:
        """Return a slot to the available pool."""
        validate_slot_id(slot_id)
        slot = await self._require_slot(slot_id)

        await self.store.update(
            "slots",
            {"id": slot_id},
            {"is_booked": False, "service_name": None, "service_price": None},
        )
        await clear_availability_cache(self.cache, slot["merchant_id"], slot["date"])
        logger.info(f"Released slot {slot_id}")

    async def cancel_booking_and_refund(self, booking_id: str) -> bool:
        """
        Cancel a booking, free its slot and refund spent coins.

        Idempotent: an already-cancelled booking is left untouched.

        Returns:
            True if this call performed the cancellation.
        """
        booking = await get_booking(self.store, booking_id)
        if booking is None:
            raise BookingNotFound("Booking not found")

        if booking["status"] == BookingStatus.cancelled.value:
            logger.info(f"Booking {booking_id} already cancelled")
            return False

        flipped = await self.store.update(
            "bookings",
            {"id": booking_id, "status__ne": BookingStatus.cancelled.value},
            {"status": BookingStatus.cancelled.value},
        )
        if not flipped:
            logger.info(f"Booking {booking_id} cancelled concurrently")
            return False

        if booking.get("slot_id"):
            await self.release_slot(booking["slot_id"])

        coins = booking.get("coins_used") or 0
        user_id = booking.get("user_id")
        if coins > 0 and user_id:
            await self.store.increment("profiles", {"id": user_id}, "coins", coins)
            logger.info(f"Refunded {coins} coins to user {user_id}")

        return True

    async def mark_missed_appointments(self) -> int:
        """
        Mark past pending/confirmed bookings as missed.

        Returns:
            Number of bookings updated.
        """
        today = self.now().date().isoformat()

        rows = await self.store.select(
            "bookings",
            {"booking_date__lt": today, "status": list(ACTIVE_STATUSES)},
        )
        if not rows:
            return 0

        count = await self.store.update(
            "bookings",
            {"id": [r["id"] for r in rows], "status": list(ACTIVE_STATUSES)},
            {"status": BookingStatus.missed.value},
        )
        logger.info(f"Marked {count} past appointments as missed")
        return count

    # ── Extension ────────────────────────────────────────────────────────

    async def can_extend_slot(self, slot_id: str, new_end_time: str) -> bool:
        """True if no other slot of the same worker overlaps the extended window."""
        validate_slot_id(slot_id)
        new_end = to_minutes(new_end_time)
        slot = await self._require_slot(slot_id)
        return await self._can_extend(slot, new_end)

    async def _can_extend(self, slot: Row, new_end: int) -> bool:
        filters = {
            "merchant_id": slot["merchant_id"],
            "date": slot["date"],
            "id__ne": slot["id"],
        }
        # Worker-scoped when assigned, merchant-wide otherwise
        if slot.get("worker_id"):
            filters["worker_id"] = slot["worker_id"]

        others = await self.store.select("slots", filters)
        start = to_minutes(slot["start_time"])

        return not any(
            ranges_overlap(start, new_end, to_minutes(o["start_time"]), to_minutes(o["end_time"]))
            for o in others
        )

    async def get_extension_options(self, slot_id: str) -> list[str]:
        """End times in 15-minute steps the slot can be extended to right now."""
        validate_slot_id(slot_id)
        slot = await self._require_slot(slot_id)
        return [
            option
            for option in extension_options(slot["end_time"])
            if await self._can_extend(slot, to_minutes(option))
        ]

    async def extend_slot(
        self,
        slot_id: str,
        new_end_time: str,
        extra_service_name: str | None = None,
        extra_service_price: float | None = None,
    ) -> Slot:
        """
        Move a slot's end time and mirror the new duration onto its booking.

        An optional add-on service is appended to the name ("A + B") and
        its price added to the slot price.

        Raises:
            InvalidExtension, ExtensionConflict, SlotNotFound
        """
        validate_slot_id(slot_id)
        new_end = to_minutes(new_end_time)
        slot = await self._require_slot(slot_id)

        start = to_minutes(slot["start_time"])
        if new_end <= start:
            raise InvalidExtension("New end time must be after the start time")

        if not await self._can_extend(slot, new_end):
            raise ExtensionConflict(
                f"Cannot extend to {minutes_to_time(new_end)}: the worker has another slot in that window"
            )

        duration = new_end - start
        patch = {"end_time": minutes_to_time(new_end), "service_duration": duration}
        booking_patch = {"service_duration": duration}

        if extra_service_name:
            name = f"{slot['service_name']} + {extra_service_name}" if slot.get("service_name") else extra_service_name
            price = (slot.get("service_price") or 0) + (extra_service_price or 0)
            patch.update(service_name=name, service_price=price)
            booking_patch.update(service_name=name, service_price=price)

        await self.store.update("slots", {"id": slot_id}, patch)

        if slot["is_booked"]:
            await self.store.update(
                "bookings",
                {"slot_id": slot_id, "status__ne": BookingStatus.cancelled.value},
                booking_patch,
            )

        await clear_availability_cache(self.cache, slot["merchant_id"], slot["date"])
        logger.info(f"Extended slot {slot_id} to {minutes_to_time(new_end)} ({duration} min)")

        return Slot.model_validate(await self._require_slot(slot_id))

    # ── Operator actions ─────────────────────────────────────────────────

    async def create_slot(
        self,
        merchant_id: str,
        day: str,
        start_time: str,
        end_time: str,
    ) -> Slot:
        """Add a single unbooked slot, assigned by the worker selector."""
        validate_date(day)
        duration = duration_between(start_time, end_time)
        if duration <= 0:
            raise ValidationError("End time must be after start time")

        existing = await self.store.select(
            "slots",
            {"merchant_id": merchant_id, "date": day, "start_time": start_time},
        )
        if existing:
            raise SlotExists("A slot for this time already exists")

        worker = self.selector.pick(await get_active_workers(self.store, merchant_id))

        inserted = await self.store.insert("slots", [{
            "merchant_id": merchant_id,
            "date": day,
            "start_time": start_time,
            "end_time": end_time,
            "is_booked": False,
            "service_duration": duration,
            "worker_id": worker["id"] if worker else None,
        }])
        await clear_availability_cache(self.cache, merchant_id, day)

        return Slot.model_validate(inserted[0])

    async def delete_slot(self, slot_id: str) -> None:
        """Remove an unbooked slot."""
        validate_slot_id(slot_id)
        slot = await self._require_slot(slot_id)
        if slot["is_booked"]:
            raise SlotBooked("Cannot delete a booked slot")

        deleted = await self.store.delete("slots", {"id": slot_id, "is_booked": False})
        if not deleted:
            raise SlotBooked("Cannot delete a booked slot")

        await clear_availability_cache(self.cache, slot["merchant_id"], slot["date"])
        logger.info(f"Deleted slot {slot_id}")

    async def reallocate_slot(self, slot_id: str, new_worker_id: str) -> Slot:
        """
        Move a slot to another worker of the same merchant.

        The target worker must be free for the slot window; the check
        bypasses the cache.
        """
        validate_slot_id(slot_id)
        slot = await self._require_slot(slot_id)

        worker = await get_worker(self.store, new_worker_id)
        if not worker or not worker["is_active"] or worker["merchant_id"] != slot["merchant_id"]:
            raise WorkerNotFound(f"Worker {new_worker_id} not found for this merchant")

        if slot.get("worker_id") == new_worker_id:
            return Slot.model_validate(slot)

        availability = await self.resolver.batch_check_availability(
            [new_worker_id], slot["date"], slot["start_time"], slot["end_time"],
            merchant_id=slot["merchant_id"],
            use_cache=False,
        )
        if not availability.get(new_worker_id):
            raise WorkerUnavailable(
                f"{worker['name']} is not available {slot['start_time']}-{slot['end_time']}"
            )

        await self.store.update("slots", {"id": slot_id}, {"worker_id": new_worker_id})
        if slot["is_booked"]:
            await self.store.update(
                "bookings",
                {"slot_id": slot_id, "status__ne": BookingStatus.cancelled.value},
                {"worker_id": new_worker_id},
            )

        await clear_availability_cache(self.cache, slot["merchant_id"], slot["date"])
        logger.info(f"Reallocated slot {slot_id} to worker {new_worker_id}")

        return Slot.model_validate({**slot, "worker_id": new_worker_id})

    async def mark_worker_unavailable(
        self,
        worker_id: str,
        day: str,
        start_time: str,
        end_time: str,
        reason: str | None = None,
    ) -> WorkerUnavailability:
        """Record a blackout window for a worker."""
        validate_date(day)
        if to_minutes(end_time) <= to_minutes(start_time):
            raise ValidationError("End time must be after start time")

        worker = await get_worker(self.store, worker_id)
        if not worker:
            raise WorkerNotFound(f"Worker {worker_id} not found")

        inserted = await self.store.insert("worker_unavailability", [{
            "worker_id": worker_id,
            "date": day,
            "start_time": start_time,
            "end_time": end_time,
            "reason": reason,
        }])
        await clear_availability_cache(self.cache, worker["merchant_id"], day)

        return WorkerUnavailability.model_validate(inserted[0])

    # ── Helpers ──────────────────────────────────────────────────────────

    async def _require_slot(self, slot_id: str) -> Row:
        slot = await get_slot(self.store, slot_id)
        if slot is None:
            raise SlotNotFound("Selected time slot was not found. Please select another time.")
        return slot

    async def _worker_overlaps(self, slot: Row, end_time: str) -> bool:
        """True if another booked slot of the slot's worker overlaps [start, end_time)."""
        if not slot.get("worker_id"):
            return False

        others = await self.store.select(
            "slots",
            {
                "worker_id": slot["worker_id"],
                "date": slot["date"],
                "is_booked": True,
                "id__ne": slot["id"],
            },
        )
        start = to_minutes(slot["start_time"])
        end = to_minutes(end_time)

        return any(
            ranges_overlap(start, end, to_minutes(o["start_time"]), to_minutes(o["end_time"]))
            for o in others
        )

    async def _undo_booking(self, slot: Row) -> None:
        """Restore a just-committed slot to its pre-booking state."""
        await self.store.update(
            "slots",
            {"id": slot["id"], "is_booked": True},
            {
                "is_booked": False,
                "service_name": slot.get("service_name"),
                "service_price": slot.get("service_price"),
                "service_duration": slot["service_duration"],
                "end_time": slot["end_time"],
            },
        )
        logger.warning(f"Rolled back slot {slot['id']}: worker {slot['worker_id']} booked concurrently")

    async def _worker_name(self, worker_id: str | None) -> str | None:
        if not worker_id:
            return None
        worker = await get_worker(self.store, worker_id)
        return worker["name"] if worker else None
