from __future__ import annotations

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from validation_portal.auth.deps import get_current_principal
from validation_portal.core.config import settings
from validation_portal.core.redis import get_redis
from validation_portal.db.session import engine, get_db
from validation_portal.partitions.store import PartitionedStore
from validation_portal.services.access import AccessScope, Principal, resolve
from validation_portal.services.aggregation import AggregationEngine
from validation_portal.services.cache import ResponseCache
from validation_portal.services.catalog import load_active_surveys

# Providers for the services routers depend on. Tests swap them through
# app.dependency_overrides.


@lru_cache(maxsize=1)
def get_partition_store() -> PartitionedStore:
    return PartitionedStore(engine)


@lru_cache(maxsize=1)
def get_aggregation_engine() -> AggregationEngine:
    return AggregationEngine(
        get_partition_store(),
        max_workers=settings.FANOUT_MAX_WORKERS,
        timeout=settings.PARTITION_READ_TIMEOUT_SECONDS,
    )


def get_response_cache() -> ResponseCache:
    return ResponseCache(get_redis(), ttl_seconds=settings.CACHE_TTL_SECONDS)


def get_access_scope(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> AccessScope:
    return resolve(
        principal,
        load_active_surveys(db),
        admin_wildcard=settings.ADMIN_EMPTY_SCOPE_IS_UNRESTRICTED,
    )
