# salon_scheduler/routers/workers.py

from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_scheduler
from ..schemas.slots import Appointment
from ..schemas.workers import Worker, WorkerUnavailability, WorkerUnavailabilityCreate
from ..services.slots import Scheduler
from ..services.slots.queries import get_active_workers

router = APIRouter(prefix="/workers", tags=["workers"])


@router.get("/", response_model=list[Worker])
async def list_active_workers(
    merchant_id: str,
    scheduler: Scheduler = Depends(get_scheduler),
):
    return await get_active_workers(scheduler.store, merchant_id)


@router.get("/{worker_id}/schedule", response_model=list[Appointment])
async def get_worker_schedule(
    worker_id: str,
    day: str = Query(..., alias="date"),
    scheduler: Scheduler = Depends(get_scheduler),
):
    return await scheduler.views.get_worker_schedule(worker_id, day)


@router.post(
    "/{worker_id}/unavailability",
    response_model=WorkerUnavailability,
    status_code=status.HTTP_201_CREATED,
)
async def mark_unavailable(
    worker_id: str,
    data: WorkerUnavailabilityCreate,
    scheduler: Scheduler = Depends(get_scheduler),
):
    return await scheduler.allocator.mark_worker_unavailable(
        worker_id, data.date, data.start_time, data.end_time, reason=data.reason
    )
