# salon_scheduler/services/slots/summary.py
"""
Read-only schedule views: per-day slot counts and a worker's day.
"""

import logging

from ...schemas.bookings import BookingStatus
from ...schemas.slots import Appointment, DayAvailability, DayCounts
from .cache import NS_SCHEDULE, make_key
from .config import SchedulingConfig, get_scheduling_config
from .store import Row, SlotStore
from .timeutils import validate_date

logger = logging.getLogger(__name__)


class ScheduleViews:

    def __init__(self, store: SlotStore, cache, config: SchedulingConfig | None = None):
        self.store = store
        self.cache = cache
        self.config = config or get_scheduling_config()

    async def get_slot_availability_summary(
        self,
        merchant_id: str,
        start_date: str,
        end_date: str,
    ) -> list[DayAvailability]:
        """
        Available/booked slot counts per date in [start_date, end_date].

        Dates without any slot are omitted.
        """
        validate_date(start_date)
        validate_date(end_date)

        rows = await self.store.select(
            "slots",
            {"merchant_id": merchant_id, "date__gte": start_date, "date__lte": end_date},
            order_by=["date"],
        )

        counts: dict[str, DayCounts] = {}
        for row in rows:
            day = counts.setdefault(row["date"], DayCounts())
            if row["is_booked"]:
                day.booked += 1
            else:
                day.available += 1

        return [DayAvailability(date=d, slots=c) for d, c in counts.items()]

    async def get_worker_schedule(self, worker_id: str, day: str) -> list[Appointment]:
        """Booked slots of a worker on day, joined with their bookings."""
        validate_date(day)

        key = make_key(NS_SCHEDULE, None, day, worker_id)
        cached = await self.cache.get(key)
        if cached is not None:
            return [Appointment.model_validate(a) for a in cached]

        slots = await self.store.select(
            "slots",
            {"worker_id": worker_id, "date": day, "is_booked": True},
            order_by=["start_time"],
        )

        bookings: dict[str, Row] = {}
        if slots:
            rows = await self.store.select(
                "bookings",
                {"slot_id": [s["id"] for s in slots]},
                order_by=["created_at", "id"],
            )
            for booking in rows:
                current = bookings.get(booking["slot_id"])
                # A live booking wins over a cancelled one for the same slot
                if current is None or current["status"] == BookingStatus.cancelled.value:
                    bookings[booking["slot_id"]] = booking

        appointments = [_appointment(slot, bookings.get(slot["id"])) for slot in slots]
        logger.debug(f"Worker {worker_id} has {len(appointments)} appointments on {day}")

        await self.cache.set(
            key,
            [a.model_dump(mode="json") for a in appointments],
            self.config.schedule_ttl_seconds,
        )
        return appointments


def _customer_name(booking: Row | None) -> str:
    email = booking.get("customer_email") if booking else None
    if email:
        return email.split("@")[0]
    return "Customer"


def _appointment(slot: Row, booking: Row | None) -> Appointment:
    return Appointment(
        slot_id=slot["id"],
        booking_id=booking["id"] if booking else None,
        booking_date=slot["date"],
        time_slot=slot["start_time"],
        end_time=slot["end_time"],
        service_name=slot.get("service_name") or "Appointment",
        service_duration=slot["service_duration"],
        customer_name=_customer_name(booking),
        status=booking["status"] if booking else BookingStatus.confirmed.value,
    )
