"""Shared rate limiter.

Counters live in Redis when it is reachable so limits hold across API
instances; otherwise they are kept in memory (development and tests).
Only explicitly decorated endpoints are limited.
"""

import logging

import redis as sync_redis
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import settings

logger = logging.getLogger(__name__)


def _redis_reachable(url: str) -> bool:
    try:
        client = sync_redis.from_url(url, socket_connect_timeout=1)
        client.ping()
        client.close()
    except sync_redis.RedisError:
        return False
    return True


def _create_limiter() -> Limiter:
    if _redis_reachable(settings.REDIS_URL):
        logger.info("Rate limiter: Redis storage (%s)", settings.REDIS_URL)
        return Limiter(key_func=get_remote_address, storage_uri=settings.REDIS_URL)

    logger.warning("Rate limiter: Redis unavailable, using in-memory storage")
    return Limiter(key_func=get_remote_address)


limiter = _create_limiter()
