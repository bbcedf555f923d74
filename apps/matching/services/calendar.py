from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone as dt_timezone
from typing import Any, Callable

from django.conf import settings
from django.utils import timezone

Clock = Callable[[], datetime]

MAX_TZ_OFFSET_MINUTES = 14 * 60
_LOCAL_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def system_clock() -> datetime:
    return timezone.now()


def default_tz_offset_minutes() -> int:
    return int(getattr(settings, "MATCH_DEFAULT_TZ_OFFSET_MINUTES", 0))


def parse_tz_offset(raw: Any) -> int | None:
    """
    Parse a client supplied UTC offset in minutes (east of UTC is positive).

    Returns None when the value is missing or unusable so callers can fall back
    to the server default. Valid offsets are clamped to +/-14h.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
    try:
        value = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return None
    return max(-MAX_TZ_OFFSET_MINUTES, min(MAX_TZ_OFFSET_MINUTES, value))


def _local_wall_time(tz_offset_minutes: int, now: datetime) -> datetime:
    return now.astimezone(dt_timezone.utc) + timedelta(minutes=tz_offset_minutes)


def start_of_local_day(tz_offset_minutes: int | None, now: datetime) -> datetime:
    """UTC instant of the most recent local midnight for the given offset."""
    offset = default_tz_offset_minutes() if tz_offset_minutes is None else tz_offset_minutes
    local = _local_wall_time(offset, now)
    local_midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return local_midnight - timedelta(minutes=offset)


def local_date_for(tz_offset_minutes: int | None, now: datetime) -> str:
    offset = default_tz_offset_minutes() if tz_offset_minutes is None else tz_offset_minutes
    return _local_wall_time(offset, now).date().isoformat()


def resolve_local_date(local_date: str | None, tz_offset_minutes: int | None, now: datetime) -> str:
    """Prefer a well-formed client ``YYYY-MM-DD``; otherwise derive it from the offset."""
    candidate = (local_date or "").strip()
    if _LOCAL_DATE_RE.match(candidate):
        try:
            return date.fromisoformat(candidate).isoformat()
        except ValueError:
            pass
    return local_date_for(tz_offset_minutes, now)
