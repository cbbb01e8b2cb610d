from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from validation_portal.core.errors import NotFoundError, StoreUnavailableError
from validation_portal.db.models.survey import Survey
from validation_portal.services.access import SurveyRef


def load_active_surveys(db: Session) -> list[SurveyRef]:
    """Active surveys ordered by country then name."""
    try:
        rows = (
            db.query(Survey)
            .filter(Survey.active.is_(True))
            .order_by(Survey.country_id.asc(), Survey.name.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        raise StoreUnavailableError(f"survey catalog unavailable: {exc}") from exc
    return [SurveyRef(asset_id=s.asset_id, name=s.name, country_id=s.country_id, active=bool(s.active)) for s in rows]


def get_survey(db: Session, asset_id: str) -> Survey:
    try:
        survey = db.query(Survey).filter(Survey.asset_id == asset_id).first()
    except SQLAlchemyError as exc:
        raise StoreUnavailableError(f"survey catalog unavailable: {exc}") from exc
    if survey is None:
        raise NotFoundError("Survey not found")
    return survey
