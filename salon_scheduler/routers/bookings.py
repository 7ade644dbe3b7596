# salon_scheduler/routers/bookings.py

from fastapi import APIRouter, Depends

from ..dependencies import get_scheduler
from ..schemas.bookings import Booking, BookingCancelResponse, MissedAppointmentsResponse
from ..services.slots import Scheduler
from ..services.slots.errors import BookingNotFound
from ..services.slots.queries import get_booking

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("/mark-missed", response_model=MissedAppointmentsResponse)
async def mark_missed_appointments(scheduler: Scheduler = Depends(get_scheduler)):
    """Sweep past pending/confirmed bookings to missed."""
    count = await scheduler.allocator.mark_missed_appointments()
    return MissedAppointmentsResponse(marked_missed=count)


@router.post("/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking(
    booking_id: str,
    scheduler: Scheduler = Depends(get_scheduler),
):
    """Cancel, free the slot and refund coins. Repeated calls are no-ops."""
    cancelled = await scheduler.allocator.cancel_booking_and_refund(booking_id)
    return BookingCancelResponse(booking_id=booking_id, cancelled=cancelled)


@router.get("/{booking_id}", response_model=Booking)
async def read_booking(
    booking_id: str,
    scheduler: Scheduler = Depends(get_scheduler),
):
    booking = await get_booking(scheduler.store, booking_id)
    if booking is None:
        raise BookingNotFound("Booking not found")
    return booking
