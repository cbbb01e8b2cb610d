from __future__ import annotations

import logging
import math
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Protocol, Iterable

from validation_portal.core.errors import PartitionFetchError, PartitionKeyError
from validation_portal.db.models.validation_status import ValidationStatus
from validation_portal.partitions.naming import PartitionFamily, PartitionKey
from validation_portal.services.access import AccessScope, SurveyRef
from validation_portal.utils.alerts import split_alert_codes
from validation_portal.utils.dates import parse_timestamp

logger = logging.getLogger("validation_portal.aggregation")

UNKNOWN_SURVEY = "Unknown Survey"


class PartitionReader(Protocol):
    def read_records(self, key: PartitionKey, enumerators: Iterable[str] | None = None) -> list[dict]: ...


@dataclass
class PagedResult:
    count: int
    page: int
    limit: int
    results: list[dict]
    accessible_surveys: list[dict]
    # Asset ids whose partition could not be read for this call.
    degraded: list[str] = field(default_factory=list)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.count / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return (self.page - 1) * self.limit + self.limit < self.count

    @property
    def has_previous(self) -> bool:
        return self.page > 1


def _shape_submission(doc: dict, survey: SurveyRef) -> dict:
    submitted_at = doc.get("submission_date")
    flag = doc.get("alert_flag") or ""
    return {
        "submission_id": doc.get("submission_id"),
        "submission_date": submitted_at,
        "vessel_number": doc.get("vessel_number") or "",
        "catch_number": doc.get("catch_number") or "",
        "submitted_by": doc.get("submitted_by") or "",
        "validation_status": doc.get("validation_status") or ValidationStatus.ON_HOLD.value,
        "validated_at": doc.get("validated_at") or submitted_at,
        "validated_by": doc.get("validated_by") or "",
        "alert_flag": flag,
        "alert_flags": split_alert_codes(flag),
        "asset_id": survey.asset_id,
        "survey_name": survey.name or UNKNOWN_SURVEY,
        "survey_country": survey.country_id or "",
    }


def _shape_stat(doc: dict, survey: SurveyRef) -> dict:
    out = dict(doc)
    out["asset_id"] = survey.asset_id
    out["survey_name"] = survey.name or UNKNOWN_SURVEY
    out["survey_country"] = survey.country_id
    return out


_SHAPERS = {
    PartitionFamily.SUBMISSIONS: _shape_submission,
    PartitionFamily.ENUMERATOR_STATS: _shape_stat,
}


def merge_records(slots: Iterable[list[dict]]) -> list[dict]:
    """Concatenate partition slots and order them newest first.

    Records without a parseable submission_date go last. Equal dates are
    ordered by (asset_id, submission_id) so the result is the same whichever
    partition answered first.
    """
    merged = [r for slot in slots for r in slot]
    merged.sort(key=lambda r: (str(r.get("asset_id") or ""), str(r.get("submission_id") or "")))

    dated, undated = [], []
    for r in merged:
        ts = parse_timestamp(r.get("submission_date"))
        if ts is None:
            undated.append(r)
        else:
            dated.append((ts, r))
    # reverse=True keeps the tie-break order (sort is stable)
    dated.sort(key=lambda pair: pair[0], reverse=True)
    return [r for _, r in dated] + undated


def paginate(records: list[dict], page: int, limit: int) -> list[dict]:
    skip = (page - 1) * limit
    return records[skip : skip + limit]


class AggregationEngine:
    """Fan out one read per accessible partition, join, merge, paginate.

    Every call gets its own thread pool of up to `max_workers` threads, so a
    read that hangs past its deadline never holds a worker another call needs.
    `timeout` applies to each read and starts when that read starts. A
    partition that fails or misses its deadline contributes nothing; the call
    itself still succeeds.
    """

    def __init__(self, store: PartitionReader, *, max_workers: int = 16, timeout: float = 10.0):
        self.store = store
        self.max_workers = max(1, int(max_workers))
        self.timeout = timeout

    def fetch(self, scope: AccessScope, family: PartitionFamily) -> tuple[list[list[dict]], list[str]]:
        """Read every partition in scope. Returns (slots in scope order, degraded asset ids)."""
        slots: list[list[dict]] = [[] for _ in scope.surveys]
        degraded: list[str] = []
        keys: dict[int, PartitionKey] = {}

        for i, survey in enumerate(scope.surveys):
            try:
                keys[i] = PartitionKey(family, survey.asset_id)
            except PartitionKeyError as exc:
                logger.warning("Skipping survey with unusable partition key: %s", exc)
                degraded.append(survey.asset_id)
        if not keys:
            return slots, sorted(degraded)

        started: dict[int, float] = {}

        def read(i: int, key: PartitionKey) -> list[dict]:
            started[i] = time.monotonic()
            return self.store.read_records(key, scope.enumerator_filter)

        workers = min(len(keys), self.max_workers)
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="partition-read")
        try:
            futures = {executor.submit(read, i, key): (i, key) for i, key in keys.items()}
            done = self._join(futures, started, workers)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        shape = _SHAPERS[family]
        for fut, (i, key) in futures.items():
            if fut not in done:
                degraded.append(key.asset_id)
                continue
            try:
                records = fut.result()
            except PartitionFetchError as exc:
                logger.warning("%s; skipped", exc)
                degraded.append(key.asset_id)
                continue
            except Exception:
                logger.exception("Unexpected error reading partition %s; skipped", key)
                degraded.append(key.asset_id)
                continue
            survey = scope.surveys[i]
            slots[i] = [shape(r, survey) for r in records]

        return slots, sorted(degraded)

    def _join(self, futures: dict[Future, tuple[int, PartitionKey]], started: dict[int, float], workers: int) -> set[Future]:
        """Wait for every read to finish or pass its own deadline. Returns the finished ones."""
        pending = set(futures)
        done: set[Future] = set()
        stuck: set[Future] = set()

        while pending:
            now = time.monotonic()
            for fut in list(pending):
                i, key = futures[fut]
                begun = started.get(i)
                if begun is not None and now - begun >= self.timeout and not fut.done():
                    logger.warning("Partition %s did not answer within %.1fs; skipped", key, self.timeout)
                    pending.discard(fut)
                    stuck.add(fut)

            # Reads that never started while every worker is held by an
            # overdue read cannot run in this call.
            if sum(1 for f in stuck if not f.done()) >= workers:
                for fut in pending:
                    i, key = futures[fut]
                    if i not in started:
                        logger.warning("Partition %s never got a worker; skipped", key)
                pending = {f for f in pending if futures[f][0] in started}
            if not pending:
                break

            deadlines = [started[futures[f][0]] + self.timeout for f in pending if futures[f][0] in started]
            wait_for = min(deadlines) - now if deadlines else self.timeout
            finished, pending = wait(pending, timeout=max(wait_for, 0.0), return_when=FIRST_COMPLETED)
            done |= finished

        return done

    def collect(self, scope: AccessScope, family: PartitionFamily) -> tuple[list[dict], list[str]]:
        """Full merged result (no pagination)."""
        if scope.is_empty:
            return [], []
        slots, degraded = self.fetch(scope, family)
        return merge_records(slots), degraded

    def aggregate(self, scope: AccessScope, family: PartitionFamily, page: int = 1, limit: int = 1000) -> PagedResult:
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be positive")

        merged, degraded = self.collect(scope, family)
        return PagedResult(
            count=len(merged),
            page=page,
            limit=limit,
            results=paginate(merged, page, limit),
            accessible_surveys=scope.metadata(),
            degraded=degraded,
        )
