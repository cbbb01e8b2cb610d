from __future__ import annotations

from fastapi import HTTPException

from validation_portal.db.models.user import Role
from validation_portal.services.access import Principal


def require(condition: bool, msg: str = "Access denied", status_code: int = 403) -> None:
    """Small helper used across routers.

    Defaults to 403 (permission denied). For validation errors or not-found cases,
    pass `status_code=400/404`.
    """
    if not condition:
        raise HTTPException(status_code=status_code, detail=msg)


def is_admin(principal: Principal) -> bool:
    return principal.role == Role.ADMIN


def can_manage_cache(principal: Principal) -> bool:
    return is_admin(principal)
