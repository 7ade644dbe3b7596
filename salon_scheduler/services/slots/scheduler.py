# salon_scheduler/services/slots/scheduler.py
"""
One scheduling engine per process.

Wires the store, cache, config, worker selector and clock into the
generator, resolver, allocator and schedule views so they share a
single cache instance.
"""

from datetime import datetime
from typing import Callable

from .allocator import SlotAllocator
from .cache import AvailabilityCache
from .config import SchedulingConfig, get_scheduling_config
from .generator import RandomWorkerSelector, SlotGenerator, WorkerSelector
from .invalidator import clear_availability_cache, clear_availability_cache_range
from .resolver import WorkerAvailabilityResolver
from .store import SlotStore
from .summary import ScheduleViews


class Scheduler:

    def __init__(
        self,
        store: SlotStore,
        cache=None,
        config: SchedulingConfig | None = None,
        selector: WorkerSelector | None = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        # An empty cache is falsy, so compare with None
        self.cache = cache if cache is not None else AvailabilityCache()
        self.config = config or get_scheduling_config()
        self.selector = selector or RandomWorkerSelector()
        self.now = now

        self.generator = SlotGenerator(store, self.cache, self.config, self.selector, now)
        self.resolver = WorkerAvailabilityResolver(store, self.cache, self.config, now)
        self.allocator = SlotAllocator(
            store, self.cache, self.resolver, self.config, self.selector, now
        )
        self.views = ScheduleViews(store, self.cache, self.config)

    async def clear_availability_cache(self, merchant_id: str, day: str) -> int:
        return await clear_availability_cache(self.cache, merchant_id, day)

    async def clear_availability_cache_range(self, merchant_id: str, date_start: str, date_end: str) -> int:
        return await clear_availability_cache_range(self.cache, merchant_id, date_start, date_end)
