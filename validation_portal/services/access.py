from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from validation_portal.db.models.user import Role, User


@dataclass(frozen=True)
class SurveyRef:
    """Catalog entry for one survey (one partition per family)."""

    asset_id: str
    name: str
    country_id: str | None = None
    active: bool = True

    def as_metadata(self) -> dict:
        return {"asset_id": self.asset_id, "name": self.name, "country_id": self.country_id}


@dataclass(frozen=True)
class Principal:
    """Authenticated actor as supplied by the auth collaborator."""

    identity: str
    role: Role
    survey_allow_list: frozenset[str] = field(default_factory=frozenset)
    enumerator_allow_list: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(
            identity=user.username,
            role=user.role,
            survey_allow_list=frozenset(user.permitted_surveys),
            enumerator_allow_list=frozenset(user.permitted_enumerators),
        )


@dataclass(frozen=True)
class AccessScope:
    surveys: tuple[SurveyRef, ...]
    enumerator_filter: frozenset[str] | None = None

    @property
    def is_empty(self) -> bool:
        return not self.surveys

    @property
    def asset_ids(self) -> list[str]:
        return [s.asset_id for s in self.surveys]

    @property
    def country_ids(self) -> list[str]:
        seen: list[str] = []
        for s in self.surveys:
            if s.country_id and s.country_id not in seen:
                seen.append(s.country_id)
        return seen

    def allows(self, asset_id: str) -> bool:
        return any(s.asset_id == asset_id for s in self.surveys)

    def metadata(self) -> list[dict]:
        return [s.as_metadata() for s in self.surveys]


def resolve(principal: Principal, catalog: Iterable[SurveyRef], *, admin_wildcard: bool = True) -> AccessScope:
    """Compute the partitions a principal may read, plus the enumerator filter.

    - admin with no survey assignments: every active survey (when admin_wildcard)
    - everyone else: active surveys in the allow-list (possibly none)

    An empty result is a valid scope, not an error.
    """
    active = [s for s in catalog if s.active]

    if principal.is_admin and not principal.survey_allow_list and admin_wildcard:
        surveys = active
    else:
        allowed = principal.survey_allow_list or frozenset()
        surveys = [s for s in active if s.asset_id in allowed]

    enumerators = frozenset(principal.enumerator_allow_list or ())
    return AccessScope(surveys=tuple(surveys), enumerator_filter=enumerators or None)
