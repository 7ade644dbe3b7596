# tests/test_generator.py

from datetime import datetime

import pytest

from salon_scheduler.services.slots import RoundRobinWorkerSelector, Scheduler
from salon_scheduler.services.slots.errors import InvalidDate
from salon_scheduler.services.slots.generator import RandomWorkerSelector

from conftest import DAY, MERCHANT


async def test_default_hours_and_duration(scheduler):
    slots = await scheduler.generator.generate_slots(MERCHANT, DAY)

    # 09:00 .. 16:30 every 10 minutes, 30 minutes each
    assert len(slots) == 46
    assert slots[0].start_time == "09:00"
    assert slots[0].end_time == "09:30"
    assert slots[-1].start_time == "16:30"
    assert slots[-1].end_time == "17:00"
    assert all(not s.is_booked for s in slots)
    assert all(s.worker_id is None for s in slots)


async def test_generation_is_idempotent(scheduler, store):
    first = await scheduler.generator.generate_slots(MERCHANT, DAY)
    second = await scheduler.generator.generate_slots(MERCHANT, DAY)

    assert [s.id for s in first] == [s.id for s in second]
    assert len(await store.select("slots", {"merchant_id": MERCHANT})) == len(first)


async def test_merchant_hours_and_first_service_duration(scheduler, store):
    await store.insert("merchant_settings", [{
        "merchant_id": MERCHANT,
        "working_hours_start": "10:00",
        "working_hours_end": "12:00",
    }])
    await store.insert("services", [
        {"merchant_id": MERCHANT, "name": "Colour", "duration": 60,
         "created_at": datetime(2024, 1, 1)},
        {"merchant_id": MERCHANT, "name": "Cut", "duration": 30,
         "created_at": datetime(2024, 1, 2)},
    ])

    slots = await scheduler.generator.generate_slots(MERCHANT, DAY)

    assert [s.start_time for s in slots] == ["10:00", "10:10", "10:20", "10:30", "10:40", "10:50", "11:00"]
    assert all(s.service_duration == 60 for s in slots)
    assert slots[-1].end_time == "12:00"


async def test_workers_assigned_by_selector(scheduler, add_worker):
    anna = await add_worker("Anna")
    ben = await add_worker("Ben")

    slots = await scheduler.generator.generate_slots(MERCHANT, DAY)

    assert [s.worker_id for s in slots[:4]] == [anna["id"], ben["id"], anna["id"], ben["id"]]


async def test_inactive_workers_are_not_assigned(scheduler, add_worker):
    await add_worker("Gone", is_active=False)
    active = await add_worker("Anna")

    slots = await scheduler.generator.generate_slots(MERCHANT, DAY)

    assert {s.worker_id for s in slots} == {active["id"]}


async def test_past_start_times_are_pre_booked(store, cache):
    scheduler = Scheduler(
        store, cache,
        selector=RoundRobinWorkerSelector(),
        now=lambda: datetime(2024, 6, 10, 12, 0),
    )

    slots = await scheduler.generator.generate_slots(MERCHANT, DAY)
    by_start = {s.start_time: s for s in slots}

    assert by_start["11:50"].is_booked
    assert not by_start["12:00"].is_booked

    free = await scheduler.generator.available_slots(MERCHANT, DAY)
    assert free[0].start_time == "12:00"


async def test_whole_past_day_is_pre_booked(store, cache):
    scheduler = Scheduler(store, cache, now=lambda: datetime(2024, 6, 11, 8, 0))

    assert await scheduler.generator.available_slots(MERCHANT, DAY) == []


async def test_available_slots_are_cached_until_invalidated(scheduler, store):
    free = await scheduler.generator.available_slots(MERCHANT, DAY)
    await store.delete("slots", {"id": free[0].id})

    assert len(await scheduler.generator.available_slots(MERCHANT, DAY)) == len(free)

    await scheduler.clear_availability_cache(MERCHANT, DAY)
    assert len(await scheduler.generator.available_slots(MERCHANT, DAY)) == len(free) - 1


async def test_invalid_date(scheduler):
    with pytest.raises(InvalidDate):
        await scheduler.generator.generate_slots(MERCHANT, "2024-13-01")


def test_random_selector_handles_empty_pool():
    assert RandomWorkerSelector().pick([]) is None
    assert RoundRobinWorkerSelector().pick([]) is None
