from __future__ import annotations

from starlette.responses import JSONResponse

from validation_portal.services.aggregation import PagedResult
from validation_portal.services.cache import CacheResult


def _link(base_path: str, page: int, limit: int) -> str:
    return f"{base_path}?page={page}&limit={limit}"


def listing_payload(result: PagedResult, base_path: str, *, with_metadata: bool = True) -> dict:
    """Wire shape of a paginated listing (what the table UI consumes)."""
    payload = {
        "count": result.count,
        "page": result.page,
        "limit": result.limit,
        "totalPages": result.total_pages,
        "next": _link(base_path, result.page + 1, result.limit) if result.has_next else None,
        "previous": _link(base_path, result.page - 1, result.limit) if result.has_previous else None,
        "results": result.results,
    }
    if with_metadata:
        payload["metadata"] = {
            "accessible_surveys": result.accessible_surveys,
            "unavailable_surveys": result.degraded,
        }
    return payload


def empty_listing(page: int, limit: int, *, with_metadata: bool = True) -> dict:
    return listing_payload(
        PagedResult(count=0, page=page, limit=limit, results=[], accessible_surveys=[]),
        "",
        with_metadata=with_metadata,
    )


def cached_response(result: CacheResult, ttl_seconds: int) -> JSONResponse:
    resp = JSONResponse(content=result.payload)
    resp.headers["X-Cache"] = "HIT" if result.hit else "MISS"
    resp.headers["Cache-Control"] = f"private, max-age={int(ttl_seconds)}"
    return resp
