# tests/test_cache.py

import json
import threading
from unittest.mock import MagicMock

from salon_scheduler.services.slots.cache import (
    NS_AVAILABILITY,
    NS_SCHEDULE,
    NS_SLOT_CHECK,
    NS_SLOTS,
    AvailabilityCache,
    RedisAvailabilityCache,
    make_key,
)
from salon_scheduler.services.slots.invalidator import (
    clear_availability_cache,
    clear_availability_cache_range,
    get_affected_dates,
)


def test_make_key():
    assert make_key(NS_SLOTS, "M1", "2024-06-10", "free") == "slots:M1:2024-06-10:free"
    assert make_key(NS_AVAILABILITY, None, "2024-06-10", "w1", "10:00") == "avail:_:2024-06-10:w1:10:00"


async def test_entry_expires_after_ttl(cache, clock):
    await cache.set("k", {"a": 1}, ttl=5)
    assert await cache.get("k") == {"a": 1}

    clock.advance(4.9)
    assert await cache.get("k") == {"a": 1}

    clock.advance(0.1)
    assert await cache.get("k") is None
    assert len(cache) == 0


async def test_falsy_payloads_are_hits(cache):
    await cache.set("k", False, ttl=5)
    assert await cache.get("k") is False


async def test_invalidate_scope_covers_every_namespace(cache):
    day = "2024-06-10"
    for ns in (NS_AVAILABILITY, NS_SLOT_CHECK, NS_SLOTS, NS_SCHEDULE):
        await cache.set(make_key(ns, "M1", day, "x"), 1, ttl=30)
    await cache.set(make_key(NS_AVAILABILITY, None, day, "w1"), True, ttl=30)

    # Untouched: other merchant, other day
    await cache.set(make_key(NS_SLOTS, "M2", day, "x"), 1, ttl=30)
    await cache.set(make_key(NS_SLOTS, "M1", "2024-06-11", "x"), 1, ttl=30)

    assert await clear_availability_cache(cache, "M1", day) == 5
    assert len(cache) == 2
    assert await cache.get(make_key(NS_SLOTS, "M2", day, "x")) == 1


async def test_merchant_prefix_does_not_match_longer_id(cache):
    await cache.set(make_key(NS_SLOTS, "M10", "2024-06-10", "x"), 1, ttl=30)
    assert await cache.invalidate_scope("M1", "2024-06-10") == 0


def test_get_affected_dates():
    assert get_affected_dates("2024-06-30", "2024-07-02") == ["2024-06-30", "2024-07-01", "2024-07-02"]
    assert get_affected_dates("2024-07-02", "2024-07-01") == ["2024-07-01", "2024-07-02"]


async def test_clear_range(cache):
    for day in ("2024-06-10", "2024-06-11", "2024-06-12"):
        await cache.set(make_key(NS_SLOTS, "M1", day, "free"), [], ttl=30)

    assert await clear_availability_cache_range(cache, "M1", "2024-06-10", "2024-06-11") == 2
    assert len(cache) == 1


# ── Redis backend ────────────────────────────────────────────────────────


async def test_redis_set_uses_setex_with_json():
    redis = MagicMock()
    await RedisAvailabilityCache(redis).set("slots:M1:2024-06-10:free", [{"a": 1}], ttl=30)

    redis.setex.assert_called_once_with(
        "sched:slots:M1:2024-06-10:free", 30, json.dumps([{"a": 1}])
    )


async def test_redis_ttl_is_at_least_one_second():
    redis = MagicMock()
    await RedisAvailabilityCache(redis).set("k", 1, ttl=0.2)
    assert redis.setex.call_args.args[1] == 1


async def test_redis_get_decodes_bytes():
    redis = MagicMock()
    redis.get.return_value = b'{"w1": true}'
    assert await RedisAvailabilityCache(redis).get("k") == {"w1": True}

    redis.get.return_value = None
    assert await RedisAvailabilityCache(redis).get("k") is None


async def test_redis_invalidate_scope_scans_and_deletes():
    redis = MagicMock()
    redis.scan_iter.side_effect = lambda match: (
        [b"sched:slots:M1:2024-06-10:free"] if match == "sched:slots:M1:2024-06-10:*" else []
    )
    redis.delete.return_value = 1

    assert await RedisAvailabilityCache(redis).invalidate_scope("M1", "2024-06-10") == 1
    redis.delete.assert_called_once_with(b"sched:slots:M1:2024-06-10:free")


async def test_redis_invalidate_scope_without_keys():
    redis = MagicMock()
    redis.scan_iter.return_value = iter([])

    assert await RedisAvailabilityCache(redis).invalidate_scope("M1", "2024-06-10") == 0
    redis.delete.assert_not_called()


async def test_memory_cache_default_clock():
    cache = AvailabilityCache()
    await cache.set("k", 1, ttl=60)
    assert await cache.get("k") == 1


async def test_redis_calls_run_off_the_event_loop_thread():
    loop_thread = threading.get_ident()
    seen = []
    redis = MagicMock()
    redis.get.side_effect = lambda key: seen.append(threading.get_ident()) or None
    redis.setex.side_effect = lambda *args: seen.append(threading.get_ident())
    redis.scan_iter.side_effect = lambda match: seen.append(threading.get_ident()) or []
    cache = RedisAvailabilityCache(redis)

    await cache.set("k", 1, ttl=30)
    await cache.get("k")
    await cache.invalidate_scope("M1", "2024-06-10")

    assert seen
    assert loop_thread not in seen


async def test_redis_invalidate_scope_escapes_glob_characters():
    redis = MagicMock()
    redis.scan_iter.return_value = []

    await RedisAvailabilityCache(redis).invalidate_scope("M*1", "2024-06-10")

    patterns = [c.kwargs["match"] for c in redis.scan_iter.call_args_list]
    assert "sched:slots:M\\*1:2024-06-10:*" in patterns
    assert "sched:slots:_:2024-06-10:*" in patterns
    assert not any("M*1" in p for p in patterns)
