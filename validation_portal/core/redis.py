from __future__ import annotations

import logging
import time
from typing import Optional

import redis
from redis import Redis
from redis.exceptions import RedisError

from validation_portal.core.config import settings

logger = logging.getLogger("validation_portal.redis")

_client: Optional[Redis] = None
_failed_at: Optional[float] = None


def get_redis() -> Optional[Redis]:
    """Shared client for the response cache, or None when REDIS_URL is unset or unreachable.

    After a failed connect the cache stays off for REDIS_RETRY_SECONDS, then
    the next call tries again.
    """
    global _client, _failed_at
    if _client is not None:
        return _client
    if not settings.REDIS_URL:
        return None
    if _failed_at is not None and time.monotonic() - _failed_at < settings.REDIS_RETRY_SECONDS:
        return None
    try:
        client = redis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
        )
        client.ping()
    except (RedisError, ValueError) as exc:
        _failed_at = time.monotonic()
        logger.warning(
            "Redis unavailable at %s, response cache disabled for %ss: %s",
            settings.REDIS_URL, settings.REDIS_RETRY_SECONDS, exc,
        )
        return None
    _client = client
    _failed_at = None
    return _client


def close_redis() -> None:
    global _client, _failed_at
    if _client is not None:
        _client.close()
        _client = None
    _failed_at = None
