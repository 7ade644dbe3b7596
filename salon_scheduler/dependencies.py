# salon_scheduler/dependencies.py
"""
FastAPI dependency for the process-wide Scheduler.

Tests override get_scheduler via app.dependency_overrides.
"""

import logging
from functools import lru_cache

from .config import settings
from .database import SessionLocal, engine, init_db
from .redis_client import get_redis
from .services.slots import AvailabilityCache, RedisAvailabilityCache, Scheduler, SqlStore

logger = logging.getLogger(__name__)


@lru_cache
def get_scheduler() -> Scheduler:
    init_db(engine)

    if settings.redis_url:
        logger.info("Using Redis availability cache")
        cache = RedisAvailabilityCache(get_redis())
    else:
        cache = AvailabilityCache()

    return Scheduler(SqlStore(SessionLocal), cache)
