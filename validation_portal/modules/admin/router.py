from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from validation_portal.auth.deps import get_current_principal
from validation_portal.core.rbac import can_manage_cache, require
from validation_portal.deps import get_response_cache
from validation_portal.services.access import Principal
from validation_portal.services.cache import NAMESPACES, ResponseCache

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/cache/invalidate")
def invalidate_cache(
    namespace: str = Query("all", description="submissions | enumerator_stats | all"),
    principal: Principal = Depends(get_current_principal),
    cache: ResponseCache = Depends(get_response_cache),
):
    """Manual flush, e.g. after the pipeline rewrote enumerator stats."""
    require(can_manage_cache(principal), "Admin access required", 403)
    ns = (namespace or "").strip().lower()
    require(ns == "all" or ns in NAMESPACES, f"unknown namespace {namespace!r}", 400)

    targets = NAMESPACES if ns == "all" else (ns,)
    generations = {t: cache.invalidate_namespace(t) for t in targets}
    return {"success": True, "invalidated": list(targets), "generations": generations, "cache_enabled": cache.enabled}
