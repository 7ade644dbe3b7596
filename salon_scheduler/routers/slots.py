# salon_scheduler/routers/slots.py
"""
Slots API endpoints.

Customer flow: GET /slots/available → GET /slots/check → POST /slots/{id}/book
Operator flow: POST /slots, DELETE /slots/{id}, POST /slots/{id}/reallocate
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_scheduler
from ..schemas.slots import (
    AvailableSlot,
    BookingResult,
    DayAvailability,
    Slot,
    SlotBookRequest,
    SlotCheckResult,
    SlotCreate,
    SlotExtendRequest,
    SlotReallocateRequest,
    WorkerAvailability,
)
from ..services.slots import Scheduler

router = APIRouter(prefix="/slots", tags=["slots"])


# ── Listings ─────────────────────────────────────────────────────────────


@router.get("/", response_model=list[Slot])
async def list_free_slots(
    merchant_id: str,
    day: str = Query(..., alias="date"),
    scheduler: Scheduler = Depends(get_scheduler),
):
    """Unbooked canonical slots, generating the day on first access."""
    return await scheduler.generator.available_slots(merchant_id, day)


@router.post("/generate", response_model=list[Slot])
async def generate_slots(
    merchant_id: str,
    day: str = Query(..., alias="date"),
    scheduler: Scheduler = Depends(get_scheduler),
):
    return await scheduler.generator.generate_slots(merchant_id, day)


@router.get("/available", response_model=list[AvailableSlot])
async def get_available_slots(
    merchant_id: str,
    day: str = Query(..., alias="date"),
    duration: int = Query(30, gt=0),
    interval: int = Query(10, gt=0),
    scheduler: Scheduler = Depends(get_scheduler),
):
    """Start times with the workers free for the whole duration."""
    return await scheduler.resolver.get_available_slots_with_workers(
        merchant_id, day, duration, interval
    )


@router.get("/workers", response_model=list[WorkerAvailability])
async def get_available_workers(
    merchant_id: str,
    start_time: str,
    day: str = Query(..., alias="date"),
    duration: int = Query(30, gt=0),
    scheduler: Scheduler = Depends(get_scheduler),
):
    return await scheduler.resolver.get_available_workers(merchant_id, day, start_time, duration)


@router.get("/check", response_model=SlotCheckResult)
async def check_slot(
    merchant_id: str,
    time: str,
    day: str = Query(..., alias="date"),
    duration: int = Query(30, gt=0),
    scheduler: Scheduler = Depends(get_scheduler),
):
    """Reserve step: returns a provisional slot handle."""
    return await scheduler.allocator.check_slot_availability(merchant_id, day, time, duration)


@router.get("/summary", response_model=list[DayAvailability])
async def get_summary(
    merchant_id: str,
    start_date: str,
    end_date: str,
    scheduler: Scheduler = Depends(get_scheduler),
):
    return await scheduler.views.get_slot_availability_summary(merchant_id, start_date, end_date)


@router.post("/cache/invalidate")
async def invalidate_cache(
    merchant_id: str,
    date_start: str,
    date_end: Optional[str] = None,
    scheduler: Scheduler = Depends(get_scheduler),
):
    removed = await scheduler.clear_availability_cache_range(
        merchant_id, date_start, date_end or date_start
    )
    return {"removed": removed}


# ── Single slot ──────────────────────────────────────────────────────────


@router.post("/", response_model=Slot, status_code=status.HTTP_201_CREATED)
async def create_slot(
    data: SlotCreate,
    scheduler: Scheduler = Depends(get_scheduler),
):
    return await scheduler.allocator.create_slot(
        data.merchant_id, data.date, data.start_time, data.end_time
    )


@router.post("/{slot_id}/book", response_model=BookingResult)
async def book_slot(
    slot_id: str,
    data: SlotBookRequest,
    scheduler: Scheduler = Depends(get_scheduler),
):
    """Commit step: 409 if someone else booked the slot first."""
    return await scheduler.allocator.book_slot(
        slot_id,
        service_name=data.service_name,
        service_duration=data.service_duration,
        service_price=data.service_price,
    )


@router.post("/{slot_id}/release", status_code=status.HTTP_204_NO_CONTENT)
async def release_slot(
    slot_id: str,
    scheduler: Scheduler = Depends(get_scheduler),
):
    await scheduler.allocator.release_slot(slot_id)


@router.get("/{slot_id}/can-extend")
async def can_extend_slot(
    slot_id: str,
    new_end_time: str,
    scheduler: Scheduler = Depends(get_scheduler),
):
    return {"can_extend": await scheduler.allocator.can_extend_slot(slot_id, new_end_time)}


@router.get("/{slot_id}/extension-options", response_model=list[str])
async def get_extension_options(
    slot_id: str,
    scheduler: Scheduler = Depends(get_scheduler),
):
    return await scheduler.allocator.get_extension_options(slot_id)


@router.post("/{slot_id}/extend", response_model=Slot)
async def extend_slot(
    slot_id: str,
    data: SlotExtendRequest,
    scheduler: Scheduler = Depends(get_scheduler),
):
    return await scheduler.allocator.extend_slot(
        slot_id,
        data.new_end_time,
        extra_service_name=data.extra_service_name,
        extra_service_price=data.extra_service_price,
    )


@router.post("/{slot_id}/reallocate", response_model=Slot)
async def reallocate_slot(
    slot_id: str,
    data: SlotReallocateRequest,
    scheduler: Scheduler = Depends(get_scheduler),
):
    return await scheduler.allocator.reallocate_slot(slot_id, data.worker_id)


@router.delete("/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_slot(
    slot_id: str,
    scheduler: Scheduler = Depends(get_scheduler),
):
    await scheduler.allocator.delete_slot(slot_id)
