from __future__ import annotations

import random
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from validation_portal.db.models.survey import Survey
from validation_portal.db.models.user import User, Role
from validation_portal.db.models.validation_status import ValidationStatus
from validation_portal.partitions.naming import stats_partition, submissions_partition
from validation_portal.partitions.store import PartitionedStore
from validation_portal.utils.alerts import DEFAULT_ALERT_CODES

SAMPLE_SURVEYS = [
    ("aZnzLandings2024", "Zanzibar landings", "TZ"),
    ("aMozCatch2024", "Mozambique catch", "MZ"),
    ("aKenLegacy2022", "Kenya legacy form", "KE"),
]
SAMPLE_ENUMERATORS = ["amina", "juma", "fatma", "said"]
ALERT_CHOICES = ["", "", "", "NA", "1", "3", "5, 7"]


def _get_or_create_survey(db: Session, asset_id: str, name: str, country_id: str, active: bool) -> Survey:
    s = db.query(Survey).filter(Survey.asset_id == asset_id).first()
    if not s:
        s = Survey(asset_id=asset_id, name=name, country_id=country_id, active=active)
        db.add(s)
        db.flush()
    return s


def _upsert_user(db: Session, username: str, role: Role, surveys: list[str], enumerators: list[str]) -> User:
    u = db.query(User).filter(User.username == username).first()
    if not u:
        u = User(username=username, full_name=username.title(), role=role)
        db.add(u)
    u.role = role
    u.permitted_surveys = surveys
    u.permitted_enumerators = enumerators
    db.flush()
    return u


def _sample_rows(asset_id: str, count: int, rnd: random.Random) -> list[dict]:
    now = datetime.now()
    rows = [{"submission_id": f"{asset_id}-meta", "record_type": "metadata"}]
    for i in range(count):
        when = now - timedelta(days=rnd.randint(0, 120), minutes=rnd.randint(0, 1440))
        sep = "T" if i % 2 else " "
        rows.append(
            {
                "submission_id": f"{asset_id}-{i:05d}",
                "submission_date": when.strftime(f"%Y-%m-%d{sep}%H:%M:%S"),
                "submitted_by": rnd.choice(SAMPLE_ENUMERATORS),
                "vessel_number": f"V{rnd.randint(100, 999)}",
                "catch_number": str(rnd.randint(1, 5)),
                "validation_status": rnd.choice([None, ValidationStatus.APPROVED.value]),
                "alert_flag": rnd.choice(ALERT_CHOICES),
                "record_type": "submission",
            }
        )
    return rows


def seed_sample(db: Session, store: PartitionedStore, per_survey: int = 200) -> list[User]:
    """Idempotent-ish dev dataset: catalog, users and filled partitions.

    Partitions are only filled when empty. Caller commits `db`.
    Returns the sample users.

    The store writes on its own connection, so partitions are filled before
    the session flushes anything; on SQLite a flushed session holds the
    write lock until the caller commits.
    """
    rnd = random.Random(42)
    for asset_id, _, _ in SAMPLE_SURVEYS:
        key = submissions_partition(asset_id)
        store.ensure_partition(key)
        if not store.read_records(key):
            rows = _sample_rows(asset_id, per_survey, rnd)
            store.insert_records(key, rows)
            store.insert_records(
                stats_partition(asset_id),
                [
                    {**r, "catch_kg": round(rnd.uniform(1, 80), 1)}
                    for r in rows
                    if r.get("record_type") != "metadata"
                ],
            )

    for n, (asset_id, name, country) in enumerate(SAMPLE_SURVEYS):
        survey = _get_or_create_survey(db, asset_id, name, country, active=n < 2)
        if asset_id == "aZnzLandings2024" and survey.alert_codes is None:
            survey.alert_codes = {**DEFAULT_ALERT_CODES, "11": "Landing site missing"}

    return [
        _upsert_user(db, "admin", Role.ADMIN, [], []),
        _upsert_user(db, "validator_tz", Role.USER, ["aZnzLandings2024"], []),
        _upsert_user(db, "supervisor_amina", Role.USER, ["aZnzLandings2024", "aMozCatch2024"], ["amina"]),
    ]
