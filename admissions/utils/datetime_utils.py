"""Timezone helpers shared by presence tracking and dashboards."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from admissions.core.config import settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """
    Return an aware UTC datetime.

    SQLite hands back naive datetimes even for timezone-aware columns;
    those are stored in UTC, so the tzinfo is simply attached.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def attendance_timezone() -> ZoneInfo:
    return ZoneInfo(settings.ATTENDANCE_TIMEZONE)


def attendance_day(now: datetime) -> date:
    """Calendar day (in the attendance timezone) that `now` falls on."""
    return ensure_utc(now).astimezone(attendance_timezone()).date()


def start_of_day(day: date) -> datetime:
    """Midnight of `day` in the attendance timezone, as UTC."""
    local_midnight = datetime.combine(day, time.min, tzinfo=attendance_timezone())
    return local_midnight.astimezone(timezone.utc)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end (floored, may be negative)."""
    return int((ensure_utc(end) - ensure_utc(start)).total_seconds() // 60)
