from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from validation_portal.core.errors import AccessDeniedError
from validation_portal.db.session import get_db
from validation_portal.deps import get_access_scope
from validation_portal.services.access import AccessScope
from validation_portal.services.catalog import get_survey
from validation_portal.utils.alerts import DEFAULT_ALERT_CODES

router = APIRouter(prefix="/api/surveys", tags=["surveys"])


@router.get("")
def accessible_surveys(scope: AccessScope = Depends(get_access_scope)):
    return {
        "surveys": scope.metadata(),
        "countries": scope.country_ids,
        "enumerator_filter": sorted(scope.enumerator_filter) if scope.enumerator_filter else None,
    }


@router.get("/{asset_id}/alert-codes")
def alert_codes(
    asset_id: str,
    db: Session = Depends(get_db),
    scope: AccessScope = Depends(get_access_scope),
):
    """Alert code descriptions for one survey, falling back to the default set."""
    survey = get_survey(db, asset_id)
    if not scope.allows(survey.asset_id):
        raise AccessDeniedError(f"no access to survey {asset_id}")
    return {"asset_id": survey.asset_id, "alert_codes": survey.alert_codes or dict(DEFAULT_ALERT_CODES)}
