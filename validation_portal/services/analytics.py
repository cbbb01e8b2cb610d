from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Iterable

from validation_portal.core.errors import ValidationError
from validation_portal.db.models.validation_status import STATUS_LABELS, ValidationStatus
from validation_portal.utils.alerts import has_alert, split_alert_codes
from validation_portal.utils.dates import normalize_date, parse_day

UNKNOWN_SUBMITTER = "Unknown"

# Relative windows, in days. None = no lower bound.
TIMEFRAMES: dict[str, int | None] = {
    "all": None,
    "7days": 7,
    "30days": 30,
    "90days": 90,
}
RANGE = "range"


def error_rate(with_alerts: int, total: int) -> float:
    """Share of submissions carrying an alert, in percent (0 for no submissions)."""
    if total <= 0:
        return 0.0
    return with_alerts / total * 100


@dataclass
class SubmitterSummary:
    name: str
    submissions: list[dict] = field(default_factory=list, repr=False)
    total_submissions: int = 0
    submissions_with_alerts: int = 0
    daily_trend: list[tuple[str, int]] = field(default_factory=list)
    alert_frequency: list[tuple[str, int]] = field(default_factory=list)
    validation_status: dict[str, int] = field(default_factory=dict)

    # Set by apply_window()
    filtered_submissions: list[dict] | None = field(default=None, repr=False)
    filtered_total: int | None = None
    filtered_alerts_count: int | None = None
    filtered_error_rate: float | None = None

    @property
    def error_rate(self) -> float:
        return error_rate(self.submissions_with_alerts, self.total_submissions)

    @property
    def effective_total(self) -> int:
        return self.filtered_total if self.filtered_total is not None else self.total_submissions

    @property
    def effective_error_rate(self) -> float:
        return self.filtered_error_rate if self.filtered_error_rate is not None else self.error_rate

    @property
    def effective_submissions(self) -> list[dict]:
        return self.filtered_submissions if self.filtered_submissions is not None else self.submissions

    @property
    def quality_score(self) -> float:
        return 100 - self.effective_error_rate

    def to_dict(self) -> dict:
        out = {
            "name": self.name,
            "totalSubmissions": self.total_submissions,
            "submissionsWithAlerts": self.submissions_with_alerts,
            "errorRate": self.error_rate,
            "submissionTrend": [{"date": d, "count": c} for d, c in self.daily_trend],
            "alertFrequency": [{"code": code, "count": c} for code, c in self.alert_frequency],
            "validationStatus": dict(self.validation_status),
        }
        if self.filtered_total is not None:
            out["filteredTotal"] = self.filtered_total
            out["filteredAlertsCount"] = self.filtered_alerts_count
            out["filteredErrorRate"] = self.filtered_error_rate
        return out


def _trend(records: Iterable[dict]) -> list[tuple[str, int]]:
    counts: Counter[str] = Counter()
    for r in records:
        day = normalize_date(r.get("submission_date"))
        if day:
            counts[day] += 1
    return sorted(counts.items(), key=lambda kv: (parse_day(kv[0]) or date.max, kv[0]))


def _alert_frequency(records: Iterable[dict]) -> list[tuple[str, int]]:
    counts: Counter[str] = Counter()
    for r in records:
        counts.update(split_alert_codes(r.get("alert_flag")))
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))


def _status_counts(records: Iterable[dict]) -> dict[str, int]:
    counts = {label: 0 for label in STATUS_LABELS.values()}
    for r in records:
        status = ValidationStatus.parse(r.get("validation_status") or "") or ValidationStatus.ON_HOLD
        counts[STATUS_LABELS[status]] += 1
    return counts


def summarize(records: Iterable[dict]) -> list[SubmitterSummary]:
    """Per-submitter aggregates, most active submitter first.

    Records without a submitter (or with the "Unknown" placeholder) are dropped.
    """
    groups: dict[str, list[dict]] = {}
    for r in records:
        name = r.get("submitted_by")
        if not name or name == UNKNOWN_SUBMITTER:
            continue
        groups.setdefault(name, []).append(r)

    out = []
    for name, subs in groups.items():
        out.append(
            SubmitterSummary(
                name=name,
                submissions=subs,
                total_submissions=len(subs),
                submissions_with_alerts=sum(1 for s in subs if has_alert(s.get("alert_flag"))),
                daily_trend=_trend(subs),
                alert_frequency=_alert_frequency(subs),
                validation_status=_status_counts(subs),
            )
        )
    out.sort(key=lambda s: s.total_submissions, reverse=True)
    return out


@dataclass(frozen=True)
class TimeWindow:
    """Named relative window ("all", "7days", ...) or an inclusive date range."""

    timeframe: str = "all"
    date_from: date | None = None
    date_to: date | None = None

    @classmethod
    def parse(cls, timeframe: str | None = None, date_from: str | None = None, date_to: str | None = None) -> "TimeWindow":
        if date_from or date_to:
            start = cls._parse_bound(date_from, "date_from")
            end = cls._parse_bound(date_to, "date_to")
            if start and end and start > end:
                raise ValidationError("date_from must not be after date_to")
            return cls(timeframe=RANGE, date_from=start, date_to=end)

        tf = (timeframe or "all").strip().lower()
        if tf not in TIMEFRAMES:
            raise ValidationError(f"unknown timeframe {timeframe!r}; expected one of: {', '.join(TIMEFRAMES)}")
        return cls(timeframe=tf)

    @staticmethod
    def _parse_bound(value: str | None, name: str) -> date | None:
        if not value:
            return None
        try:
            return date.fromisoformat(str(value).strip()[:10])
        except ValueError as exc:
            raise ValidationError(f"{name} must be a YYYY-MM-DD date") from exc

    def contains(self, submission_date, today: date | None = None) -> bool:
        if not submission_date:
            return False

        if self.timeframe == RANGE:
            day = parse_day(submission_date)
            if day is None:
                return False
            if self.date_from and day < self.date_from:
                return False
            if self.date_to and day > self.date_to:
                return False
            return True

        days = TIMEFRAMES[self.timeframe]
        if days is None:
            return True
        day = parse_day(submission_date)
        if day is None:
            return False
        # Whole days between local midnights; a record exactly N days old is outside.
        today = today or date.today()
        return (today - day).days < days


def apply_window(summaries: Iterable[SubmitterSummary], window: TimeWindow, today: date | None = None) -> list[SubmitterSummary]:
    today = today or date.today()
    out = []
    for s in summaries:
        kept = [r for r in s.submissions if window.contains(r.get("submission_date"), today)]
        alerts = sum(1 for r in kept if has_alert(r.get("alert_flag")))
        out.append(
            replace(
                s,
                filtered_submissions=kept,
                filtered_total=len(kept),
                filtered_alerts_count=alerts,
                filtered_error_rate=error_rate(alerts, len(kept)),
            )
        )
    return out


# ---- best performer


class RankingStrategy(ABC):
    name: str

    @abstractmethod
    def pick(self, summaries: list[SubmitterSummary]) -> SubmitterSummary | None: ...


def _most_submissions(summaries: list[SubmitterSummary]) -> SubmitterSummary:
    best = summaries[0]
    for cur in summaries[1:]:
        if cur.effective_total > best.effective_total:
            best = cur
    return best


class ThresholdRanking(RankingStrategy):
    """Lowest error rate among submitters with enough volume.

    Candidates need `min_submissions`; if nobody qualifies the bar is halved
    (never below 1), and if still nobody qualifies the busiest submitter wins.
    Equal error rates go to the higher volume.
    """

    name = "threshold"

    def __init__(self, min_submissions: int = 10):
        self.min_submissions = int(min_submissions)

    def pick(self, summaries: list[SubmitterSummary]) -> SubmitterSummary | None:
        if not summaries:
            return None
        qualified = [s for s in summaries if s.effective_total >= self.min_submissions]
        if not qualified:
            lower = max(1, self.min_submissions // 2)
            qualified = [s for s in summaries if s.effective_total >= lower]
            if not qualified:
                return _most_submissions(summaries)

        best = qualified[0]
        for cur in qualified[1:]:
            if cur.effective_error_rate < best.effective_error_rate:
                best = cur
            elif cur.effective_error_rate == best.effective_error_rate and cur.effective_total > best.effective_total:
                best = cur
        return best


class LogWeightedRanking(RankingStrategy):
    """Highest quality score weighted by log10(volume + 1)."""

    name = "log_weighted"

    def __init__(self, min_submissions: int = 0):
        # accepted for a uniform constructor; the score already weighs volume
        self.min_submissions = int(min_submissions)

    @staticmethod
    def score(summary: SubmitterSummary) -> float:
        return summary.quality_score * math.log10(summary.effective_total + 1)

    def pick(self, summaries: list[SubmitterSummary]) -> SubmitterSummary | None:
        if not summaries:
            return None
        best = summaries[0]
        for cur in summaries[1:]:
            if self.score(cur) > self.score(best):
                best = cur
        return best


STRATEGIES: dict[str, type[RankingStrategy]] = {
    ThresholdRanking.name: ThresholdRanking,
    LogWeightedRanking.name: LogWeightedRanking,
}


def get_strategy(name: str | None = None, min_submissions: int = 10) -> RankingStrategy:
    key = (name or ThresholdRanking.name).strip().lower()
    if key not in STRATEGIES:
        raise ValidationError(f"unknown ranking strategy {name!r}; expected one of: {', '.join(STRATEGIES)}")
    return STRATEGIES[key](min_submissions=min_submissions)


def best_performer(
    summaries: list[SubmitterSummary],
    strategy: RankingStrategy | str | None = None,
    min_submissions: int = 10,
) -> SubmitterSummary | None:
    if not isinstance(strategy, RankingStrategy):
        strategy = get_strategy(strategy, min_submissions)
    return strategy.pick(list(summaries))


# ---- dashboard roll-ups


def alert_distribution(summaries: Iterable[SubmitterSummary]) -> list[tuple[str, int]]:
    """Count of each alert flag value across submitters (window-aware)."""
    counts: Counter[str] = Counter()
    for s in summaries:
        for r in s.effective_submissions:
            flag = r.get("alert_flag")
            if has_alert(flag):
                counts[str(flag)] += 1
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))


def dashboard_summary(summaries: list[SubmitterSummary], best: SubmitterSummary | None) -> dict:
    total = sum(s.effective_total for s in summaries)
    alerts = sum(
        s.filtered_alerts_count if s.filtered_alerts_count is not None else s.submissions_with_alerts
        for s in summaries
    )
    return {
        "totalEnumerators": len(summaries),
        "totalSubmissions": total,
        "totalAlerts": alerts,
        "overallErrorRate": error_rate(alerts, total),
        "bestPerformer": (
            {"name": best.name, "errorRate": best.effective_error_rate, "submissions": best.effective_total}
            if best is not None
            else None
        ),
    }
