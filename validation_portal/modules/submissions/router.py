from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from starlette.responses import JSONResponse

from validation_portal.auth.deps import get_current_principal
from validation_portal.core.config import settings
from validation_portal.deps import (
    get_access_scope,
    get_aggregation_engine,
    get_partition_store,
    get_response_cache,
)
from validation_portal.partitions.naming import PartitionFamily
from validation_portal.partitions.store import PartitionedStore
from validation_portal.services.access import AccessScope, Principal
from validation_portal.services.aggregation import AggregationEngine
from validation_portal.services.cache import SUBMISSIONS_NAMESPACE, ResponseCache
from validation_portal.services.validation import update_validation_status
from validation_portal.utils.listing import cached_response, empty_listing, listing_payload

router = APIRouter(prefix="/api/submissions", tags=["submissions"])

BASE_PATH = "/api/submissions"


class ValidationStatusUpdate(BaseModel):
    # Both optional here so a missing field is answered with 400, not 422.
    validation_status: str | None = None
    asset_id: str | None = None


@router.get("")
def list_submissions(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.SUBMISSIONS_DEFAULT_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    principal: Principal = Depends(get_current_principal),
    scope: AccessScope = Depends(get_access_scope),
    engine: AggregationEngine = Depends(get_aggregation_engine),
    cache: ResponseCache = Depends(get_response_cache),
):
    """Submissions of every survey the caller may see, newest first.

    Merged across survey partitions, paginated after the merge and cached per
    (user, page, limit) until TTL expiry or the next status update.
    """
    if scope.is_empty:
        return JSONResponse(content=empty_listing(page, limit))

    degraded: list[str] = []

    def compute() -> dict:
        result = engine.aggregate(scope, PartitionFamily.SUBMISSIONS, page, limit)
        degraded.extend(result.degraded)
        return listing_payload(result, BASE_PATH)

    result = cache.get_or_compute(
        SUBMISSIONS_NAMESPACE,
        principal.identity,
        page,
        limit,
        compute,
        should_store=lambda _payload: not degraded,
    )
    return cached_response(result, cache.ttl_seconds)


@router.patch("/{submission_id}/validation_status")
def patch_validation_status(
    submission_id: str,
    body: ValidationStatusUpdate,
    principal: Principal = Depends(get_current_principal),
    scope: AccessScope = Depends(get_access_scope),
    store: PartitionedStore = Depends(get_partition_store),
    cache: ResponseCache = Depends(get_response_cache),
):
    return update_validation_status(
        store,
        cache,
        principal=principal,
        scope=scope,
        submission_id=submission_id,
        new_status=body.validation_status,
        asset_id=body.asset_id,
    )
