# salon_scheduler/schemas/slots.py
"""
Pydantic schemas for slots and scheduling results.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class Slot(BaseModel):
    """A bookable time window for one worker at one merchant on one date."""
    id: str
    merchant_id: str
    date: str
    start_time: str  # "HH:MM"
    end_time: str    # "HH:MM"
    is_booked: bool = False
    service_duration: int
    service_name: Optional[str] = None
    service_price: Optional[float] = None
    worker_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SlotCreate(BaseModel):
    """Operator request to add a single slot."""
    merchant_id: str
    date: str
    start_time: str
    end_time: str


class SlotBookRequest(BaseModel):
    service_name: Optional[str] = None
    service_duration: Optional[int] = Field(default=None, gt=0)
    service_price: Optional[float] = None


class SlotExtendRequest(BaseModel):
    new_end_time: str
    extra_service_name: Optional[str] = None
    extra_service_price: Optional[float] = None


class SlotReallocateRequest(BaseModel):
    worker_id: str


class WorkerAvailability(BaseModel):
    """A worker free for a candidate time (computed, never stored)."""
    worker_id: str
    name: str
    next_available_time: str
    specialty: Optional[str] = None


class AvailableSlot(BaseModel):
    """Start time with every worker free for the whole service duration."""
    time: str
    available_workers: list[WorkerAvailability]


class SlotCheckResult(BaseModel):
    """Provisional slot handle returned by check_slot_availability."""
    available: bool
    slot_id: str = ""
    worker_id: Optional[str] = None
    worker_name: Optional[str] = None


class BookingResult(BaseModel):
    worker_id: Optional[str] = None
    worker_name: Optional[str] = None


class DayCounts(BaseModel):
    available: int = 0
    booked: int = 0


class DayAvailability(BaseModel):
    """Per-day slot counts for the merchant calendar."""
    date: str
    slots: DayCounts


class Appointment(BaseModel):
    """Booked slot as shown on a worker's schedule."""
    slot_id: str
    booking_id: Optional[str] = None
    booking_date: str
    time_slot: str
    end_time: str
    service_name: str
    service_duration: int
    customer_name: str
    status: str
