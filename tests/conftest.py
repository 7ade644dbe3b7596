# tests/conftest.py

import itertools
from datetime import datetime, timedelta

import pytest

from salon_scheduler.database import create_db_engine, create_session_factory, init_db
from salon_scheduler.services.slots import (
    AvailabilityCache,
    RoundRobinWorkerSelector,
    Scheduler,
    SchedulingConfig,
    SqlStore,
)
from salon_scheduler.services.slots.timeutils import duration_between

MERCHANT = "M1"
DAY = "2024-06-10"
NOW = datetime(2024, 6, 1, 8, 0)


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self):
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'scheduler.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    return SqlStore(create_session_factory(engine))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return AvailabilityCache(clock=clock)


@pytest.fixture
def now():
    return lambda: NOW


@pytest.fixture
def scheduler(store, cache, now):
    return Scheduler(
        store,
        cache,
        config=SchedulingConfig(),
        selector=RoundRobinWorkerSelector(),
        now=now,
    )


# ── Seed helpers ─────────────────────────────────────────────────────────


@pytest.fixture
def add_worker(store):
    order = itertools.count()

    async def _add(name, merchant_id=MERCHANT, **fields):
        row = {
            "merchant_id": merchant_id,
            "name": name,
            # Creation order decides worker order
            "created_at": datetime(2024, 1, 1) + timedelta(minutes=next(order)),
            **fields,
        }
        return (await store.insert("workers", [row]))[0]

    return _add


@pytest.fixture
def add_slot(store):
    async def _add(worker, start, end, day=DAY, is_booked=False, merchant_id=MERCHANT, **fields):
        row = {
            "merchant_id": merchant_id,
            "date": day,
            "start_time": start,
            "end_time": end,
            "is_booked": is_booked,
            "service_duration": duration_between(start, end),
            "worker_id": worker["id"] if worker else None,
            **fields,
        }
        return (await store.insert("slots", [row]))[0]

    return _add


@pytest.fixture
def add_unavailability(store):
    async def _add(worker, start, end, day=DAY, reason=None):
        row = {
            "worker_id": worker["id"],
            "date": day,
            "start_time": start,
            "end_time": end,
            "reason": reason,
        }
        return (await store.insert("worker_unavailability", [row]))[0]

    return _add


@pytest.fixture
def add_booking(store):
    async def _add(slot=None, status="confirmed", booking_date=DAY, **fields):
        row = {
            "slot_id": slot["id"] if slot else None,
            "merchant_id": MERCHANT,
            "worker_id": slot.get("worker_id") if slot else None,
            "booking_date": booking_date,
            "time_slot": slot["start_time"] if slot else "10:00",
            "status": status,
            **fields,
        }
        return (await store.insert("bookings", [row]))[0]

    return _add


@pytest.fixture
async def w1_and_slots(add_worker, add_slot):
    """W1 with two booked and one free slot on DAY, one free slot the day after."""
    w1 = await add_worker("W1")
    await add_slot(w1, "09:00", "09:30", is_booked=True)
    await add_slot(w1, "10:00", "10:30", is_booked=True)
    await add_slot(w1, "11:00", "11:30")
    await add_slot(w1, "09:00", "09:30", day="2024-06-11")
    return w1
