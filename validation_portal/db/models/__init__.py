# Import all models so SQLAlchemy metadata is fully populated on startup.
from validation_portal.db.models.survey import Survey
from validation_portal.db.models.user import User, Role
from validation_portal.db.models.validation_status import ValidationStatus


__all__ = [
    "Survey",
    "User",
    "Role",
    "ValidationStatus",
]
