from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from redis import Redis
from redis.exceptions import RedisError

from validation_portal.core.errors import CacheInvalidationError

logger = logging.getLogger("validation_portal.cache")

SUBMISSIONS_NAMESPACE = "submissions"
STATS_NAMESPACE = "enumerator_stats"
NAMESPACES = (SUBMISSIONS_NAMESPACE, STATS_NAMESPACE)

DEFAULT_TTL_SECONDS = 300


@dataclass
class CacheResult:
    payload: dict
    hit: bool


class ResponseCache:
    """TTL cache for paginated listing payloads, keyed per principal.

    Keys: "<namespace>:g<generation>:<identity>:<page>:<limit>". Bumping a
    namespace's generation is the global invalidation: every older key stops
    being addressable and ages out through its TTL.

    With no Redis client the cache is a pass-through.
    Check-then-populate is not atomic; two cold readers may both compute.
    """

    def __init__(self, client: Optional[Redis], ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.client = client
        self.ttl_seconds = int(ttl_seconds)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    @staticmethod
    def _generation_key(namespace: str) -> str:
        return f"{namespace}:generation"

    def _generation(self, namespace: str) -> int:
        v = self.client.get(self._generation_key(namespace))
        return int(v) if v is not None else 0

    def key(self, namespace: str, identity: str, page: int, limit: int, generation: int = 0) -> str:
        return f"{namespace}:g{generation}:{identity}:{int(page)}:{int(limit)}"

    def get_or_compute(
        self,
        namespace: str,
        identity: str,
        page: int,
        limit: int,
        compute: Callable[[], dict],
        should_store: Callable[[dict], bool] | None = None,
    ) -> CacheResult:
        """Return the cached payload or compute it.

        `should_store` can veto caching a freshly computed payload (e.g. a
        partial result).
        """
        if self.client is None:
            return CacheResult(payload=compute(), hit=False)

        try:
            key = self.key(namespace, identity, page, limit, self._generation(namespace))
            raw = self.client.get(key)
        except RedisError as exc:
            logger.warning("Cache read failed, computing directly: %s", exc)
            return CacheResult(payload=compute(), hit=False)

        if raw is not None:
            return CacheResult(payload=json.loads(raw), hit=True)

        payload = compute()
        encoded = json.dumps(payload, default=str)
        if should_store is None or should_store(payload):
            try:
                self.client.setex(key, self.ttl_seconds, encoded)
            except RedisError as exc:
                logger.warning("Cache write failed for %s: %s", key, exc)
        # Same decoded form a later hit returns.
        return CacheResult(payload=json.loads(encoded), hit=False)

    def invalidate_namespace(self, namespace: str) -> int | None:
        """Drop every cached entry of a namespace, for all principals.

        Returns the new generation (None when caching is disabled).
        Raises CacheInvalidationError if the bump could not be recorded.
        """
        if self.client is None:
            return None
        try:
            generation = int(self.client.incr(self._generation_key(namespace)))
        except RedisError as exc:
            raise CacheInvalidationError(f"could not invalidate cache namespace {namespace}: {exc}") from exc
        logger.info("Invalidated cache namespace %s (generation %s)", namespace, generation)
        return generation
