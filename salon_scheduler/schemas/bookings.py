# salon_scheduler/schemas/bookings.py

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class BookingStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"
    missed = "missed"


class Booking(BaseModel):
    id: str
    slot_id: Optional[str] = None
    user_id: Optional[str] = None
    merchant_id: str
    worker_id: Optional[str] = None

    booking_date: str
    time_slot: str
    status: BookingStatus = BookingStatus.pending

    service_name: Optional[str] = None
    service_price: Optional[float] = None
    service_duration: Optional[int] = None
    coins_used: int = 0
    customer_email: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingCancelResponse(BaseModel):
    booking_id: str
    cancelled: bool


class MissedAppointmentsResponse(BaseModel):
    marked_missed: int
