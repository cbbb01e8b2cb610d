from __future__ import annotations

import json
import logging
import threading
from typing import Iterable

from sqlalchemy import (
    Column,
    Connection,
    Engine,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    insert,
    or_,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from validation_portal.core.errors import PartitionFetchError, StoreUnavailableError
from validation_portal.partitions.naming import PartitionFamily, PartitionKey

logger = logging.getLogger("validation_portal.partitions")

METADATA_RECORD_TYPE = "metadata"

# Fields handed downstream per partition family (everything else stays in the store).
SUBMISSION_FIELDS = (
    "submission_id",
    "submission_date",
    "vessel_number",
    "catch_number",
    "submitted_by",
    "validation_status",
    "validated_at",
    "validated_by",
    "alert_flag",
)
STATS_FIELDS = (
    "submission_id",
    "submission_date",
    "submitted_by",
    "alert_flag",
    "payload_json",
)


def _submission_columns() -> list[Column]:
    return [
        Column("id", Integer, primary_key=True),
        Column("submission_id", String(64), nullable=False, unique=True),
        Column("submission_date", String(40), nullable=True, index=True),
        Column("submitted_by", String(120), nullable=True, index=True),
        Column("vessel_number", String(64), nullable=True),
        Column("catch_number", String(64), nullable=True),
        Column("validation_status", String(64), nullable=True),
        Column("validated_at", String(40), nullable=True),
        Column("validated_by", String(80), nullable=True),
        Column("alert_flag", String(255), nullable=True),
        Column("record_type", String(32), nullable=True),
    ]


def _stats_columns() -> list[Column]:
    return [
        Column("id", Integer, primary_key=True),
        Column("record_type", String(32), nullable=True),
        Column("submission_id", String(64), nullable=True, index=True),
        Column("submission_date", String(40), nullable=True, index=True),
        Column("submitted_by", String(120), nullable=True, index=True),
        Column("alert_flag", String(255), nullable=True),
        Column("payload_json", Text, nullable=True),
    ]


_COLUMNS = {
    PartitionFamily.SUBMISSIONS: _submission_columns,
    PartitionFamily.ENUMERATOR_STATS: _stats_columns,
}
_PROJECTIONS = {
    PartitionFamily.SUBMISSIONS: SUBMISSION_FIELDS,
    PartitionFamily.ENUMERATOR_STATS: STATS_FIELDS,
}


def _expand_payload(row: dict) -> dict:
    """Merge the pipeline's free-form payload into a stats record."""
    raw = row.pop("payload_json", None)
    try:
        extra = json.loads(raw) if raw else {}
    except Exception:
        extra = {}
    if isinstance(extra, dict):
        for k, v in extra.items():
            row.setdefault(k, v)
    return row


class PartitionedStore:
    """Access to per-survey partitions (one table per survey and family).

    Partition tables are created by the ingestion pipeline; this class only
    knows their layout. Table objects are built lazily and reused.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.metadata = MetaData()
        self._tables: dict[str, Table] = {}
        self._lock = threading.Lock()

    def table(self, key: PartitionKey) -> Table:
        with self._lock:
            t = self._tables.get(key.table_name)
            if t is None:
                t = Table(key.table_name, self.metadata, *_COLUMNS[key.family]())
                self._tables[key.table_name] = t
            return t

    # ---- reads

    def read_records(self, key: PartitionKey, enumerators: Iterable[str] | None = None) -> list[dict]:
        """Filtered, projected read of one partition (most recent first).

        Raises PartitionFetchError on any driver failure, including a missing table.
        """
        t = self.table(key)
        q = select(*[t.c[name] for name in _PROJECTIONS[key.family]]).where(
            or_(t.c.record_type.is_(None), t.c.record_type != METADATA_RECORD_TYPE)
        )
        if enumerators:
            q = q.where(t.c.submitted_by.in_(sorted(set(enumerators))))
        q = q.order_by(t.c.submission_date.desc())

        try:
            with self.engine.connect() as conn:
                rows = [dict(r) for r in conn.execute(q).mappings().all()]
        except SQLAlchemyError as exc:
            raise PartitionFetchError(key.table_name, exc) from exc

        if key.family == PartitionFamily.ENUMERATOR_STATS:
            rows = [_expand_payload(r) for r in rows]
        return rows

    # ---- writes

    def upsert_validation_status(
        self,
        key: PartitionKey,
        submission_id: str,
        *,
        status: str,
        validated_by: str,
        validated_at: str,
        conn: Connection | None = None,
    ) -> None:
        """Update by natural key (submission_id), inserting when missing.

        No version check: concurrent writers race and the last one wins.
        Pass `conn` to join a caller-managed transaction.
        """
        if key.family != PartitionFamily.SUBMISSIONS:
            raise ValueError("validation status lives in submission partitions only")

        values = {
            "validation_status": status,
            "validated_at": validated_at,
            "validated_by": validated_by,
        }
        if conn is not None:
            self._upsert(conn, self.table(key), submission_id, values)
            return
        try:
            with self.engine.begin() as c:
                self._upsert(c, self.table(key), submission_id, values)
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"failed to update {key.table_name}: {exc}") from exc

    @staticmethod
    def _upsert(conn: Connection, t: Table, submission_id: str, values: dict) -> None:
        stmt = update(t).where(t.c.submission_id == submission_id).values(**values)
        if conn.execute(stmt).rowcount:
            return
        try:
            with conn.begin_nested():
                conn.execute(
                    insert(t).values(submission_id=submission_id, record_type="submission", **values)
                )
        except IntegrityError:
            # Another writer inserted the row in between; overwrite it.
            conn.execute(stmt)

    # ---- provisioning (ingestion tooling / tests)

    def ensure_partition(self, key: PartitionKey) -> Table:
        t = self.table(key)
        t.create(self.engine, checkfirst=True)
        return t

    def insert_records(self, key: PartitionKey, rows: Iterable[dict]) -> int:
        t = self.ensure_partition(key)
        columns = [c for c in t.c.keys() if c != "id"]
        prepared = []
        for row in rows:
            extra = {k: v for k, v in row.items() if k not in columns and k != "id"}
            rec = {c: row.get(c) for c in columns}
            if key.family == PartitionFamily.ENUMERATOR_STATS and extra:
                rec["payload_json"] = json.dumps(extra)
            prepared.append(rec)
        if not prepared:
            return 0
        with self.engine.begin() as conn:
            conn.execute(insert(t), prepared)
        logger.info("Loaded %s records into %s", len(prepared), key.table_name)
        return len(prepared)
