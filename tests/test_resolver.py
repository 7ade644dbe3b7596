# tests/test_resolver.py

from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from salon_scheduler.services.slots import Scheduler
from salon_scheduler.services.slots.errors import InvalidDate, ValidationError

from conftest import DAY, MERCHANT


@pytest.fixture
async def w1(add_worker):
    return await add_worker("W1", specialty="Colour")


async def test_booking_blocks_overlapping_window_only(scheduler, w1, add_slot):
    await add_slot(w1, "10:00", "10:30", is_booked=True)
    resolver = scheduler.resolver

    assert not await resolver.is_worker_available_for_slot(w1["id"], DAY, "10:15", "10:45")
    assert await resolver.is_worker_available_for_slot(w1["id"], DAY, "10:30", "11:00")


async def test_unbooked_slots_do_not_block(scheduler, w1, add_slot):
    await add_slot(w1, "10:00", "10:30", is_booked=False)

    assert await scheduler.resolver.is_worker_available_for_slot(w1["id"], DAY, "10:00", "10:30")


async def test_unavailability_blocks(scheduler, w1, add_unavailability):
    await add_unavailability(w1, "12:00", "13:00", reason="Lunch")

    availability = await scheduler.resolver.batch_check_availability(
        [w1["id"]], DAY, "12:30", "13:30"
    )
    assert availability == {w1["id"]: False}


async def test_batch_check_many_workers_two_queries(scheduler, store, add_worker, add_slot, add_unavailability):
    a = await add_worker("A")
    b = await add_worker("B")
    c = await add_worker("C")
    await add_slot(a, "10:00", "11:00", is_booked=True)
    await add_unavailability(b, "09:00", "10:15")

    spy = AsyncMock(wraps=store.select)
    scheduler.resolver.store.select = spy

    result = await scheduler.resolver.batch_check_availability(
        [a["id"], b["id"], c["id"]], DAY, "10:00", "10:30"
    )

    assert result == {a["id"]: False, b["id"]: False, c["id"]: True}
    assert spy.await_count == 2


async def test_batch_check_empty_input(scheduler):
    assert await scheduler.resolver.batch_check_availability([], DAY, "10:00", "10:30") == {}


async def test_batch_check_rejects_bad_input(scheduler, w1):
    with pytest.raises(InvalidDate):
        await scheduler.resolver.batch_check_availability([w1["id"]], "06/10/2024", "10:00", "10:30")


async def test_get_available_workers_in_creation_order(scheduler, add_worker, add_slot):
    a = await add_worker("A")
    b = await add_worker("B")
    c = await add_worker("C")
    await add_slot(b, "14:00", "14:30", is_booked=True)

    workers = await scheduler.resolver.get_available_workers(MERCHANT, DAY, "14:00", 30)

    assert [w.worker_id for w in workers] == [a["id"], c["id"]]
    assert workers[0].next_available_time == "14:30"

    first = await scheduler.resolver.find_available_worker(MERCHANT, DAY, "14:00", 30)
    assert first.worker_id == a["id"]


async def test_workers_created_together_are_ordered_by_id(scheduler, add_worker):
    same_time = datetime(2024, 1, 1, 12, 0)
    await add_worker("B", id="w-b", created_at=same_time)
    await add_worker("A", id="w-a", created_at=same_time)

    workers = await scheduler.resolver.get_available_workers(MERCHANT, DAY, "14:00", 30)

    assert [w.worker_id for w in workers] == ["w-a", "w-b"]


async def test_find_available_worker_none(scheduler, w1, add_slot):
    await add_slot(w1, "14:00", "15:00", is_booked=True)

    assert await scheduler.resolver.find_available_worker(MERCHANT, DAY, "14:30", 30) is None


async def test_slots_with_workers_scenario(scheduler, w1, add_slot):
    await add_slot(w1, "16:30", "17:00", is_booked=True)

    slots = await scheduler.resolver.get_available_slots_with_workers(MERCHANT, DAY, 30, 10)
    times = [s.time for s in slots]

    assert slots[0].time == "09:00"
    assert slots[0].available_workers[0].worker_id == w1["id"]
    assert slots[0].available_workers[0].next_available_time == "09:30"
    assert slots[0].available_workers[0].specialty == "Colour"

    # 16:10 would run into the 16:30 booking
    assert "16:00" in times
    assert not any(t >= "16:10" for t in times)


async def test_slots_with_workers_skips_past_starts(store, cache, w1):
    scheduler = Scheduler(store, cache, now=lambda: datetime(2024, 6, 10, 15, 5))

    slots = await scheduler.resolver.get_available_slots_with_workers(MERCHANT, DAY, 30, 30)

    assert [s.time for s in slots] == ["15:30", "16:00", "16:30"]


async def test_slots_with_workers_only_skips_past_starts_today(store, cache, w1):
    # Day before now: listed by time of day, not by the current clock
    scheduler = Scheduler(store, cache, now=lambda: datetime(2024, 6, 11, 8, 0))

    slots = await scheduler.resolver.get_available_slots_with_workers(MERCHANT, DAY, 30, 30)

    assert slots[0].time == "09:00"
    assert slots[-1].time == "16:30"


async def test_slots_with_workers_skips_cross_midnight(scheduler, w1, store):
    await store.insert("merchant_settings", [{
        "merchant_id": MERCHANT,
        "working_hours_start": "23:00",
        "working_hours_end": "23:59",
    }])

    slots = await scheduler.resolver.get_available_slots_with_workers(MERCHANT, DAY, 30, 15)

    assert [s.time for s in slots] == ["23:00", "23:15"]


async def test_slots_with_workers_no_workers(scheduler):
    assert await scheduler.resolver.get_available_slots_with_workers(MERCHANT, DAY, 30) == []


async def test_slots_with_workers_rejects_non_positive_duration(scheduler):
    with pytest.raises(ValidationError):
        await scheduler.resolver.get_available_slots_with_workers(MERCHANT, DAY, 0)


async def test_listing_is_cached_and_invalidated(scheduler, w1, add_slot):
    before = await scheduler.resolver.get_available_slots_with_workers(MERCHANT, DAY, 30)
    await add_slot(w1, "09:00", "12:00", is_booked=True)

    cached = await scheduler.resolver.get_available_slots_with_workers(MERCHANT, DAY, 30)
    assert [s.time for s in cached] == [s.time for s in before]

    await scheduler.clear_availability_cache(MERCHANT, DAY)
    fresh = await scheduler.resolver.get_available_slots_with_workers(MERCHANT, DAY, 30)
    assert fresh[0].time == "12:00"


async def test_availability_entry_expires(scheduler, clock, w1, add_slot):
    assert await scheduler.resolver.is_worker_available_for_slot(w1["id"], DAY, "10:00", "10:30")
    await add_slot(w1, "10:00", "10:30", is_booked=True)

    assert await scheduler.resolver.is_worker_available_for_slot(w1["id"], DAY, "10:00", "10:30")

    clock.advance(5)
    assert not await scheduler.resolver.is_worker_available_for_slot(w1["id"], DAY, "10:00", "10:30")
