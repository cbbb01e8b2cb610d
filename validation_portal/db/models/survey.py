import json

from sqlalchemy import String, Integer, Boolean, Text
from sqlalchemy.orm import Mapped, mapped_column
from validation_portal.db.base import Base


def _load_codes(raw: str | None) -> dict[str, str] | None:
    if not raw:
        return None
    try:
        v = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(v, dict):
        return None
    return {str(k): str(d) for k, d in v.items()}


class Survey(Base):
    __tablename__ = "surveys"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # KoboToolbox asset id; also the partition key material.
    asset_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(200))
    country_id: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    # Survey-specific alert code descriptions (JSON object, code -> text).
    alert_codes_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def alert_codes(self) -> dict[str, str] | None:
        return _load_codes(self.alert_codes_json)

    @alert_codes.setter
    def alert_codes(self, value: dict[str, str] | None) -> None:
        self.alert_codes_json = json.dumps(dict(value)) if value else None
