from validation_portal.db.models.survey import Survey
from validation_portal.db.models.user import Role, User
from validation_portal.partitions.naming import stats_partition, submissions_partition
from validation_portal.scripts.seed_sample import seed_sample


def test_seed_fills_catalog_users_and_partitions(db, store):
    seed_sample(db, store, per_survey=20)
    db.commit()

    assert db.query(Survey).filter(Survey.active.is_(True)).count() == 2
    admin = db.query(User).filter(User.username == "admin").one()
    assert admin.role == Role.ADMIN
    assert admin.permitted_surveys == []

    rows = store.read_records(submissions_partition("aZnzLandings2024"))
    assert len(rows) == 20
    stats = store.read_records(stats_partition("aZnzLandings2024"))
    assert len(stats) == 20
    assert "catch_kg" in stats[0]


def test_seed_twice_does_not_duplicate(db, store):
    seed_sample(db, store, per_survey=5)
    db.commit()
    seed_sample(db, store, per_survey=5)
    db.commit()

    assert db.query(Survey).count() == 3
    assert len(store.read_records(submissions_partition("aMozCatch2024"))) == 5


def test_missing_partitions_reports_surveys_without_tables(store, load_submissions):
    from validation_portal.db.session import engine
    from validation_portal.scripts.migrate import missing_partitions

    load_submissions("s1", [{"submission_id": "1", "submission_date": "2025-02-19", "submitted_by": "Asha"}])

    assert missing_partitions(engine, ["s1", "s2", "bad-id"]) == ["s2", "bad-id"]


def test_seed_gives_one_survey_its_own_alert_codes(db, store):
    seed_sample(db, store, per_survey=2)
    db.commit()

    codes = db.query(Survey).filter(Survey.asset_id == "aZnzLandings2024").one().alert_codes
    assert codes["11"] == "Landing site missing"
    assert db.query(Survey).filter(Survey.asset_id == "aMozCatch2024").one().alert_codes is None


def test_survey_alert_codes_ignore_malformed_json(make_survey):
    survey = make_survey("s9")
    survey.alert_codes_json = "[1, 2]"
    assert survey.alert_codes is None
    survey.alert_codes_json = "{not json"
    assert survey.alert_codes is None
    survey.alert_codes = {}
    assert survey.alert_codes_json is None
