# salon_scheduler/schemas/workers.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class Worker(BaseModel):
    id: str
    merchant_id: str
    name: str
    specialty: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class WorkerUnavailabilityCreate(BaseModel):
    date: str
    start_time: str
    end_time: str
    reason: Optional[str] = None


class WorkerUnavailability(BaseModel):
    id: str
    worker_id: str
    date: str
    start_time: str
    end_time: str
    reason: Optional[str] = None

    model_config = {"from_attributes": True}

