# salon_scheduler/services/slots/cache.py
"""
Short-TTL cache for availability and slot listing results.

Key format: {namespace}:{merchant_id}:{date}:{detail}
  merchant_id is "_" for entries that are scoped only by date
  (single-worker availability checks).

Invalidation is a key-prefix match on (merchant_id, date) across every
namespace, so one call purges everything a mutation could have staled.
The cache is a pure optimisation: nothing may depend on a hit.
"""

import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable

from redis import Redis

logger = logging.getLogger(__name__)

# Namespaces
NS_AVAILABILITY = "avail"
NS_SLOT_CHECK = "check"
NS_SLOTS = "slots"
NS_SCHEDULE = "schedule"

NAMESPACES = (NS_AVAILABILITY, NS_SLOT_CHECK, NS_SLOTS, NS_SCHEDULE)

ANY_MERCHANT = "_"

_GLOB_META = re.compile(r"([*?\[\]\\])")


def make_key(namespace: str, merchant_id: str | None, day: str, *parts) -> str:
    """Build a cache key for the (merchant_id, day) scope."""
    detail = ":".join(str(p) for p in parts)
    return f"{namespace}:{merchant_id or ANY_MERCHANT}:{day}:{detail}"


def _scope_prefixes(merchant_id: str, day: str) -> list[str]:
    prefixes = []
    for ns in NAMESPACES:
        prefixes.append(f"{ns}:{merchant_id}:{day}:")
        prefixes.append(f"{ns}:{ANY_MERCHANT}:{day}:")
    return prefixes


@dataclass
class CacheEntry:
    key: str
    timestamp: float
    ttl: float
    payload: Any


class AvailabilityCache:
    """In-process TTL cache with an injectable clock."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._entries: dict[str, CacheEntry] = {}

    async def get(self, key: str) -> Any | None:
        """Return the payload if fresh, else None."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self.clock() - entry.timestamp >= entry.ttl:
            del self._entries[key]
            return None
        return entry.payload

    async def set(self, key: str, payload: Any, ttl: float) -> None:
        self._entries[key] = CacheEntry(
            key=key,
            timestamp=self.clock(),
            ttl=ttl,
            payload=payload,
        )

    async def invalidate_scope(self, merchant_id: str, day: str) -> int:
        """Drop every entry for (merchant_id, day). Returns number removed."""
        prefixes = tuple(_scope_prefixes(merchant_id, day))
        keys = [k for k in self._entries if k.startswith(prefixes)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    async def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def _glob_escape(value: str) -> str:
    """Escape SCAN MATCH metacharacters so ids match literally."""
    return _GLOB_META.sub(r"\\\1", value)


class RedisAvailabilityCache:
    """
    Same interface as AvailabilityCache, stored in Redis.

    Payloads are JSON; TTL is enforced by Redis (SETEX). Used when
    several processes must share invalidations.

    The client is synchronous, so every call runs in a worker thread
    (asyncio.to_thread) and never blocks the event loop.
    """

    KEY_PREFIX = "sched"

    def __init__(self, redis: Redis):
        self.redis = redis

    def _key(self, key: str) -> str:
        return f"{self.KEY_PREFIX}:{key}"

    async def get(self, key: str) -> Any | None:
        raw = await asyncio.to_thread(self.redis.get, self._key(key))
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode()
        return json.loads(raw)

    async def set(self, key: str, payload: Any, ttl: float) -> None:
        seconds = max(1, int(ttl))
        await asyncio.to_thread(self.redis.setex, self._key(key), seconds, json.dumps(payload))

    async def invalidate_scope(self, merchant_id: str, day: str) -> int:
        return await asyncio.to_thread(self._invalidate_scope, merchant_id, day)

    def _invalidate_scope(self, merchant_id: str, day: str) -> int:
        keys = []
        for prefix in _scope_prefixes(merchant_id, day):
            pattern = f"{_glob_escape(self._key(prefix))}*"
            keys.extend(self.redis.scan_iter(match=pattern))

        if not keys:
            return 0

        return self.redis.delete(*keys)

    async def clear(self) -> None:
        await asyncio.to_thread(self._clear)

    def _clear(self) -> None:
        keys = list(self.redis.scan_iter(match=f"{self.KEY_PREFIX}:*"))
        if keys:
            self.redis.delete(*keys)
