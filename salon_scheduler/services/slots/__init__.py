# salon_scheduler/services/slots/__init__.py
"""
Slot scheduling engine.

Generator: canonical slots per (merchant, date)
Resolver:  batched worker free/busy checks
Allocator: reserve → book, release, extend, reallocate
"""

from .allocator import SlotAllocator
from .cache import AvailabilityCache, RedisAvailabilityCache
from .config import SchedulingConfig, get_scheduling_config
from .generator import (
    RandomWorkerSelector,
    RoundRobinWorkerSelector,
    SlotGenerator,
)
from .invalidator import clear_availability_cache, clear_availability_cache_range
from .resolver import WorkerAvailabilityResolver
from .scheduler import Scheduler
from .store import SlotStore, SqlStore
from .summary import ScheduleViews

__all__ = [
    "SlotAllocator",
    "AvailabilityCache",
    "RedisAvailabilityCache",
    "SchedulingConfig",
    "get_scheduling_config",
    "RandomWorkerSelector",
    "RoundRobinWorkerSelector",
    "SlotGenerator",
    "clear_availability_cache",
    "clear_availability_cache_range",
    "WorkerAvailabilityResolver",
    "Scheduler",
    "SlotStore",
    "SqlStore",
    "ScheduleViews",
]
