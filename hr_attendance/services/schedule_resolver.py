"""Clock and schedule arithmetic.

Schedule times are wall-clock ``HH:mm`` strings in the employee's timezone
(the schedule's IANA label, or the configured default). Every function takes
the reference instant explicitly; nothing here reads the host clock.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from hr_attendance.errors import ValidationFailedError
from hr_attendance.models import AttendanceStatus, WorkSchedule
from hr_attendance.settings import get_default_timezone, get_settings

HHMM_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


@dataclass(frozen=True)
class CheckInClassification:
    status: AttendanceStatus
    late_by_minutes: int | None


def parse_hhmm(value: str) -> time:
    if not isinstance(value, str) or not HHMM_PATTERN.match(value.strip()):
        raise ValidationFailedError("INVALID_TIME_FORMAT", "Invalid time format. Use HH:mm format")
    hour_str, minute_str = value.strip().split(":")
    return time(hour=int(hour_str), minute=int(minute_str))


def parse_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationFailedError("INVALID_TIMEZONE", f"Unknown timezone: {name}") from None


def resolve_timezone(schedule: WorkSchedule | None) -> ZoneInfo:
    if schedule is not None and schedule.timezone:
        try:
            return ZoneInfo(schedule.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            return get_default_timezone()
    return get_default_timezone()


def normalize_instant(value: datetime | None, tz: ZoneInfo, *, now: datetime | None = None) -> datetime:
    """Return ``value`` as an aware UTC instant; naive input is local to ``tz``."""
    if value is None:
        value = now or datetime.now(timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz)
    return value.astimezone(timezone.utc)


def local_day(instant: datetime, tz: ZoneInfo) -> date:
    return normalize_instant(instant, tz).astimezone(tz).date()


def local_day_bounds_utc(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    local_start = datetime.combine(day, time.min, tzinfo=tz)
    local_end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return local_start.astimezone(timezone.utc), local_end.astimezone(timezone.utc)


def _combine_on_reference_day(hhmm: str, reference_instant: datetime, tz: ZoneInfo) -> datetime:
    day = local_day(reference_instant, tz)
    local_dt = datetime.combine(day, parse_hhmm(hhmm), tzinfo=tz)
    return local_dt.astimezone(timezone.utc)


def resolve_expected_check_in(schedule: WorkSchedule | None, reference_instant: datetime) -> datetime | None:
    if schedule is None or not schedule.start_time:
        return None
    return _combine_on_reference_day(schedule.start_time, reference_instant, resolve_timezone(schedule))


def resolve_expected_check_out(schedule: WorkSchedule | None, reference_instant: datetime) -> datetime | None:
    if schedule is None or not schedule.end_time:
        return None
    return _combine_on_reference_day(schedule.end_time, reference_instant, resolve_timezone(schedule))


def expected_daily_work_hours(schedule: WorkSchedule | None) -> float:
    if schedule is None or not schedule.start_time or not schedule.end_time:
        return get_settings().default_daily_work_hours
    start = parse_hhmm(schedule.start_time)
    end = parse_hhmm(schedule.end_time)
    span_minutes = (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)
    return span_minutes / 60 - (schedule.break_duration_minutes or 0) / 60


def whole_minutes_between(later: datetime, earlier: datetime) -> int:
    return math.floor((later - earlier).total_seconds() / 60)


def elapsed_hours(later: datetime, earlier: datetime) -> float:
    return (later - earlier).total_seconds() / 3600


def classify_check_in(
    expected_check_in: datetime | None,
    actual: datetime,
    grace_period_minutes: int,
) -> CheckInClassification:
    if expected_check_in is None:
        return CheckInClassification(status=AttendanceStatus.PRESENT, late_by_minutes=None)
    diff_minutes = whole_minutes_between(actual, expected_check_in)
    if diff_minutes > grace_period_minutes:
        return CheckInClassification(status=AttendanceStatus.LATE, late_by_minutes=diff_minutes)
    return CheckInClassification(status=AttendanceStatus.PRESENT, late_by_minutes=None)


def early_departure_minutes(
    expected_check_out: datetime | None,
    actual: datetime,
    grace_period_minutes: int,
) -> int | None:
    if expected_check_out is None:
        return None
    diff_minutes = whole_minutes_between(expected_check_out, actual)
    if diff_minutes > grace_period_minutes:
        return diff_minutes
    return None


def compute_overtime(work_hours: float, schedule: WorkSchedule | None) -> float:
    return max(0.0, work_hours - expected_daily_work_hours(schedule))
