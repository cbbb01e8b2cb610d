import enum
import json

from sqlalchemy import String, Integer, Enum, Boolean, Text
from sqlalchemy.orm import Mapped, mapped_column
from validation_portal.db.base import Base

class Role(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"

ROLE_LABELS = {
    Role.ADMIN: "Administrator",
    Role.USER: "Validator",
}


def _load_list(raw: str | None) -> list[str]:
    try:
        v = json.loads(raw or "[]")
    except Exception:
        return []
    if not isinstance(v, list):
        return []
    return [str(x) for x in v if x not in (None, "")]


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    full_name: Mapped[str] = mapped_column(String(120), default="")
    username: Mapped[str] = mapped_column(String(80), unique=True, index=True)

    role: Mapped[Role] = mapped_column(Enum(Role), index=True, default=Role.USER)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    # Permission lists, maintained by the user sync job (JSON arrays).
    surveys_json: Mapped[str] = mapped_column(Text, default="[]")
    enumerators_json: Mapped[str] = mapped_column(Text, default="[]")

    @property
    def role_label(self) -> str:
        return ROLE_LABELS.get(self.role, self.role.value)

    @property
    def permitted_surveys(self) -> list[str]:
        return _load_list(self.surveys_json)

    @permitted_surveys.setter
    def permitted_surveys(self, value: list[str]) -> None:
        self.surveys_json = json.dumps(list(value or []))

    @property
    def permitted_enumerators(self) -> list[str]:
        return _load_list(self.enumerators_json)

    @permitted_enumerators.setter
    def permitted_enumerators(self, value: list[str]) -> None:
        self.enumerators_json = json.dumps(list(value or []))
