from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from starlette.responses import JSONResponse

from validation_portal.auth.deps import get_current_principal
from validation_portal.core.config import settings
from validation_portal.deps import get_access_scope, get_aggregation_engine, get_response_cache
from validation_portal.partitions.naming import PartitionFamily
from validation_portal.services.access import AccessScope, Principal
from validation_portal.services.aggregation import AggregationEngine
from validation_portal.services.analytics import (
    TimeWindow,
    alert_distribution,
    apply_window,
    best_performer,
    dashboard_summary,
    get_strategy,
    summarize,
)
from validation_portal.services.cache import STATS_NAMESPACE, ResponseCache
from validation_portal.utils.listing import cached_response, empty_listing, listing_payload

router = APIRouter(prefix="/api", tags=["enumerators"])

STATS_PATH = "/api/enumerators-stats"


@router.get("/enumerators-stats")
def enumerators_stats(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.STATS_DEFAULT_LIMIT, ge=1, le=settings.MAX_PAGE_LIMIT),
    principal: Principal = Depends(get_current_principal),
    scope: AccessScope = Depends(get_access_scope),
    engine: AggregationEngine = Depends(get_aggregation_engine),
    cache: ResponseCache = Depends(get_response_cache),
):
    """Pipeline-computed per-submission stats, merged across surveys."""
    if scope.is_empty:
        return JSONResponse(content=empty_listing(page, limit, with_metadata=False))

    degraded: list[str] = []

    def compute() -> dict:
        result = engine.aggregate(scope, PartitionFamily.ENUMERATOR_STATS, page, limit)
        degraded.extend(result.degraded)
        return listing_payload(result, STATS_PATH, with_metadata=False)

    result = cache.get_or_compute(
        STATS_NAMESPACE,
        principal.identity,
        page,
        limit,
        compute,
        should_store=lambda _payload: not degraded,
    )
    return cached_response(result, cache.ttl_seconds)


@router.get("/enumerators/performance")
def enumerator_performance(
    timeframe: str | None = Query(None, description="all | 7days | 30days | 90days"),
    date_from: str | None = Query(None, description="YYYY-MM-DD, inclusive"),
    date_to: str | None = Query(None, description="YYYY-MM-DD, inclusive"),
    strategy: str | None = Query(None, description="threshold | log_weighted"),
    scope: AccessScope = Depends(get_access_scope),
    engine: AggregationEngine = Depends(get_aggregation_engine),
):
    """Enumerator quality dashboard data for the caller's scope."""
    window = TimeWindow.parse(timeframe, date_from, date_to)
    ranking = get_strategy(
        strategy or settings.BEST_PERFORMER_STRATEGY,
        settings.BEST_PERFORMER_MIN_SUBMISSIONS,
    )

    records, degraded = engine.collect(scope, PartitionFamily.SUBMISSIONS)
    summaries = apply_window(summarize(records), window)
    best = best_performer(summaries, ranking)

    return {
        "timeframe": window.timeframe,
        "date_from": window.date_from.isoformat() if window.date_from else None,
        "date_to": window.date_to.isoformat() if window.date_to else None,
        "strategy": ranking.name,
        "summary": dashboard_summary(summaries, best),
        "enumerators": [s.to_dict() for s in summaries],
        "alertDistribution": [{"name": flag, "y": count} for flag, count in alert_distribution(summaries)],
        "unavailable_surveys": degraded,
    }
