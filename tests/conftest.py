"""
Shared fixtures.

Points the app at a throwaway SQLite file before any portal module is
imported (settings are read at import time) and swaps Redis for fakeredis.
"""

import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="validation_portal_tests_")
os.environ["DATABASE_DSN"] = f"sqlite:///{os.path.join(_TMP_DIR, 'portal.db')}"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["REDIS_URL"] = "redis://127.0.0.1:1/0"

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import MetaData

from validation_portal.core.security import issue_token
from validation_portal.db.base import Base
from validation_portal.db.models.survey import Survey
from validation_portal.db.models.user import Role, User
from validation_portal.db.session import SessionLocal, engine
from validation_portal.partitions.naming import stats_partition, submissions_partition
from validation_portal.partitions.store import PartitionedStore
from validation_portal.services.aggregation import AggregationEngine
from validation_portal.services.cache import ResponseCache


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(engine)
    yield
    # drops catalog tables and every partition created by the test
    meta = MetaData()
    meta.reflect(bind=engine)
    meta.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store():
    return PartitionedStore(engine)


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def cache(fake_redis):
    return ResponseCache(fake_redis, ttl_seconds=300)


@pytest.fixture
def aggregation(store):
    return AggregationEngine(store, max_workers=4, timeout=5.0)


@pytest.fixture
def make_survey(db):
    def _make(asset_id: str, name: str | None = None, country_id: str | None = "TZ", active: bool = True) -> Survey:
        s = Survey(asset_id=asset_id, name=name or f"Survey {asset_id}", country_id=country_id, active=active)
        db.add(s)
        db.commit()
        return s
    return _make


@pytest.fixture
def make_user(db):
    def _make(username: str, role: Role = Role.USER, surveys=(), enumerators=()) -> User:
        u = User(username=username, full_name=username.title(), role=role)
        u.permitted_surveys = list(surveys)
        u.permitted_enumerators = list(enumerators)
        db.add(u)
        db.commit()
        db.refresh(u)
        return u
    return _make


@pytest.fixture
def load_submissions(store):
    def _load(asset_id: str, rows: list[dict]) -> None:
        store.insert_records(submissions_partition(asset_id), rows)
    return _load


@pytest.fixture
def load_stats(store):
    def _load(asset_id: str, rows: list[dict]) -> None:
        store.insert_records(stats_partition(asset_id), rows)
    return _load


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {issue_token(user.id)}"}
    return _headers


@pytest.fixture
def client(store, cache, aggregation):
    from validation_portal.deps import get_aggregation_engine, get_partition_store, get_response_cache
    from validation_portal.main import app

    app.dependency_overrides[get_partition_store] = lambda: store
    app.dependency_overrides[get_aggregation_engine] = lambda: aggregation
    app.dependency_overrides[get_response_cache] = lambda: cache
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
