from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from validation_portal.core.errors import (
    AccessDeniedError,
    CacheInvalidationError,
    PartitionKeyError,
    StoreUnavailableError,
    ValidationError,
)
from validation_portal.db.models.validation_status import ValidationStatus
from validation_portal.partitions.naming import submissions_partition
from validation_portal.partitions.store import PartitionedStore
from validation_portal.services.access import AccessScope, Principal
from validation_portal.services.cache import SUBMISSIONS_NAMESPACE, ResponseCache
from validation_portal.utils.dates import utc_now_iso

logger = logging.getLogger("validation_portal.validation")


def update_validation_status(
    store: PartitionedStore,
    cache: ResponseCache,
    *,
    principal: Principal,
    scope: AccessScope,
    submission_id,
    new_status,
    asset_id,
    validated_at: str | None = None,
) -> dict:
    """Set a submission's validation status and drop every cached listing.

    The upsert and the first invalidation share one transaction: if the cache
    cannot be invalidated the row is not changed. A second invalidation after
    commit evicts listings recomputed while the transaction was open.
    """
    sid = str(submission_id).strip() if submission_id is not None else ""
    if not sid:
        raise ValidationError("submission id is required")
    if asset_id is None or not str(asset_id).strip():
        raise ValidationError("asset_id is required")
    status = ValidationStatus.parse(new_status)
    if status is None:
        allowed = ", ".join(s.value for s in ValidationStatus)
        raise ValidationError(f"invalid validation_status {new_status!r}; expected one of: {allowed}")
    try:
        key = submissions_partition(str(asset_id).strip())
    except PartitionKeyError as exc:
        raise ValidationError(exc.message) from exc

    if not scope.allows(key.asset_id):
        raise AccessDeniedError(f"no access to survey {key.asset_id}")

    stamped_at = validated_at or utc_now_iso()
    try:
        with store.engine.begin() as conn:
            store.upsert_validation_status(
                key,
                sid,
                status=status.value,
                validated_by=principal.identity,
                validated_at=stamped_at,
                conn=conn,
            )
            cache.invalidate_namespace(SUBMISSIONS_NAMESPACE)
    except SQLAlchemyError as exc:
        logger.error("Validation status update failed for %s in %s: %s", sid, key, exc)
        raise StoreUnavailableError("Failed to update validation status") from exc

    try:
        cache.invalidate_namespace(SUBMISSIONS_NAMESPACE)
    except CacheInvalidationError as exc:
        logger.error("Post-commit invalidation failed after updating %s: %s", sid, exc)

    logger.info("%s set %s on %s/%s", principal.identity, status.value, key.asset_id, sid)
    return {"success": True, "message": f"Validation status correctly updated for submission {sid}"}
