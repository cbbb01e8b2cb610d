from __future__ import annotations

from datetime import date, datetime, timezone


def normalize_date(value) -> str | None:
    """Calendar-day part of a submission timestamp.

    Two shapes come out of the pipeline: "2025-02-19T08:15:00" and
    "2025-02-19 08:15:00". Both are cut before the separator.
    """
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    part = s.split("T")[0] if "T" in s else s.split(" ")[0]
    return part or None


def parse_day(value) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    part = normalize_date(value)
    if not part:
        return None
    try:
        return date.fromisoformat(part)
    except ValueError:
        return None


def parse_timestamp(value) -> datetime | None:
    """Naive UTC datetime for ordering, or None when missing/unparseable."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")
