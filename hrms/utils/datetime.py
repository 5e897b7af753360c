from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_STRICT_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def iso_utc_now() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_tz(tz_name: str):
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def _as_utc(dt: datetime) -> datetime:
    # Mongo hands back naive UTC unless the client is tz_aware.
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso_utc(dt: datetime) -> str:
    return _as_utc(dt).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def to_display_tz(dt: datetime, tz_name: str) -> str:
    return _as_utc(dt).astimezone(get_tz(tz_name)).replace(microsecond=0).isoformat()


def start_of_day(day: date, tz_name: str) -> datetime:
    """Local midnight of ``day`` in ``tz_name``, expressed as a UTC instant.

    This is the storage key for every day-granular field (attendance date,
    leave window, joining date, task due date).
    """
    local = datetime.combine(day, time.min, tzinfo=get_tz(tz_name))
    return local.astimezone(timezone.utc)


def today_start(tz_name: str, *, now: datetime | None = None) -> datetime:
    now = now or utc_now()
    return start_of_day(_as_utc(now).astimezone(get_tz(tz_name)).date(), tz_name)


def add_days(day_start: datetime, days: int, tz_name: str) -> datetime:
    local_day = _as_utc(day_start).astimezone(get_tz(tz_name)).date()
    return start_of_day(local_day + timedelta(days=days), tz_name)


def to_local_date_str(dt: datetime, tz_name: str) -> str:
    return _as_utc(dt).astimezone(get_tz(tz_name)).date().isoformat()


def parse_strict_date(value: str) -> date | None:
    """Parse exactly ``YYYY-MM-DD``; anything else yields None."""
    s = str(value or "").strip()
    if not _STRICT_DATE_RE.match(s):
        return None
    try:
        return datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError:
        return None


def parse_calendar_date(value, tz_name: str) -> date | None:
    """Lenient day parser for attendance/joining/due dates.

    Accepts ``YYYY-MM-DD`` or any ISO-8601 datetime. Offset-aware datetimes are
    moved into the reference timezone before the calendar day is taken.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return value
    else:
        s = str(value or "").strip()
        if not s:
            return None
        strict = parse_strict_date(s)
        if strict is not None:
            return strict
        try:
            dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
        except ValueError:
            return None

    if dt.tzinfo is not None:
        dt = dt.astimezone(get_tz(tz_name))
    return dt.date()
