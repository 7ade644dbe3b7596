# salon_scheduler/redis_client.py

from redis import Redis

from .config import settings


def get_redis(url: str | None = None) -> Redis:
    """Client for url, or for SCHEDULER_REDIS_URL."""
    return Redis.from_url(url or settings.redis_url)
