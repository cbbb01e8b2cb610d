"""Container entrypoint step: wait for the database, migrate, optionally seed.

Environment:
  DB_WAIT_TIMEOUT    seconds to wait for the database (default 90)
  AUTO_SEED_SAMPLE   "1"/"true" loads the sample catalog, users and partitions
"""
from __future__ import annotations

import logging
import os
import time

from alembic import command
from alembic.config import Config
from sqlalchemy import Engine, inspect, text
from sqlalchemy.exc import OperationalError

logger = logging.getLogger("validation_portal.migrate")


def wait_for_db(engine: Engine, timeout_s: int = 60) -> None:
    deadline = time.monotonic() + timeout_s
    delay = 1.0
    while True:
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return
        except OperationalError as exc:
            if time.monotonic() > deadline:
                raise
            logger.info("Database not reachable yet (%s); retrying in %.1fs", exc.orig, delay)
            time.sleep(delay)
            delay = min(delay * 1.5, 5.0)


def upgrade(ini_path: str = "alembic.ini") -> None:
    command.upgrade(Config(ini_path), "head")


def missing_partitions(engine: Engine, asset_ids: list[str]) -> list[str]:
    """Active surveys whose submissions partition has not been created by the pipeline."""
    from validation_portal.core.errors import PartitionKeyError
    from validation_portal.partitions.naming import submissions_partition

    existing = set(inspect(engine).get_table_names())
    missing = []
    for asset_id in asset_ids:
        try:
            if submissions_partition(asset_id).table_name not in existing:
                missing.append(asset_id)
        except PartitionKeyError:
            missing.append(asset_id)
    return missing


def seed(engine: Engine) -> None:
    from validation_portal.core.security import issue_token
    from validation_portal.db.session import SessionLocal
    from validation_portal.partitions.store import PartitionedStore
    from validation_portal.scripts.seed_sample import seed_sample

    db = SessionLocal()
    try:
        users = seed_sample(db, PartitionedStore(engine))
        db.commit()
        for u in users:
            logger.info("Sample token for %s: %s", u.username, issue_token(u.id))
    finally:
        db.close()


def main() -> int:
    logging.basicConfig(level=logging.INFO)

    from validation_portal.db.session import SessionLocal, engine
    from validation_portal.services.catalog import load_active_surveys

    wait_for_db(engine, timeout_s=int(os.getenv("DB_WAIT_TIMEOUT", "90")))
    upgrade()

    if os.getenv("AUTO_SEED_SAMPLE", "").lower() in ("1", "true", "yes"):
        seed(engine)

    db = SessionLocal()
    try:
        active = [s.asset_id for s in load_active_surveys(db)]
    finally:
        db.close()
    missing = missing_partitions(engine, active)
    if missing:
        # Not fatal: reads degrade to empty for these surveys.
        logger.warning("No submissions partition yet for %s active survey(s): %s", len(missing), ", ".join(missing))
    logger.info("Database ready (%s active surveys)", len(active))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
