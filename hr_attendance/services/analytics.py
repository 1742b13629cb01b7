"""Attendance aggregates over a date range.

Ranges are inclusive on both ends and apply to ``AttendanceRecord.work_date``.
Averages divide by the number of records carrying a value, not by the record
count.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Literal

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from hr_attendance.errors import ValidationFailedError
from hr_attendance.models import AttendanceRecord, AttendanceStatus, Employee
from hr_attendance.services.holidays import count_holidays_in_range


@dataclass(frozen=True, slots=True)
class AttendanceSummary:
    total: int
    present: int
    absent: int
    late: int
    on_leave: int


@dataclass(frozen=True, slots=True)
class AdvancedAttendanceSummary:
    total: int
    present: int
    absent: int
    late: int
    on_leave: int
    early_departure: int
    half_day: int
    avg_work_hours: float
    avg_overtime: float
    total_overtime: float
    holidays: int | None = None


@dataclass(slots=True)
class TrendBucket:
    bucket: str
    present: int = 0
    absent: int = 0
    late: int = 0
    on_leave: int = 0
    early_departure: int = 0
    half_day: int = 0
    total: int = 0


@dataclass(frozen=True, slots=True)
class AbsenceAnalyticsItem:
    employee_id: int
    count: int


def _ensure_range(date_from: date | None, date_to: date | None) -> None:
    if date_from is not None and date_to is not None and date_from > date_to:
        raise ValidationFailedError("INVALID_DATE_RANGE", "date_from must be before or equal to date_to")


def _records_stmt(
    *,
    date_from: date | None,
    date_to: date | None,
    department_id: int | None = None,
    employee_id: int | None = None,
) -> Select[tuple[AttendanceRecord]]:
    _ensure_range(date_from, date_to)
    stmt = select(AttendanceRecord)
    if date_from is not None:
        stmt = stmt.where(AttendanceRecord.work_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(AttendanceRecord.work_date <= date_to)
    if employee_id is not None:
        stmt = stmt.where(AttendanceRecord.employee_id == employee_id)
    if department_id is not None:
        stmt = stmt.join(Employee, Employee.id == AttendanceRecord.employee_id).where(
            Employee.department_id == department_id
        )
    return stmt


def _average(values: list[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def get_attendance_summary(
    db: Session,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
    department_id: int | None = None,
) -> AttendanceSummary:
    records = db.scalars(
        _records_stmt(date_from=date_from, date_to=date_to, department_id=department_id)
    ).all()
    counts = Counter(record.status for record in records)
    return AttendanceSummary(
        total=len(records),
        present=counts[AttendanceStatus.PRESENT],
        absent=counts[AttendanceStatus.ABSENT],
        late=counts[AttendanceStatus.LATE],
        on_leave=counts[AttendanceStatus.ON_LEAVE],
    )


def get_advanced_attendance_summary(
    db: Session,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
    department_id: int | None = None,
    employee_id: int | None = None,
) -> AdvancedAttendanceSummary:
    records = db.scalars(
        _records_stmt(
            date_from=date_from,
            date_to=date_to,
            department_id=department_id,
            employee_id=employee_id,
        )
    ).all()
    counts = Counter(record.status for record in records)
    # A record counts as an early departure by status or by a recorded early_by_minutes.
    early_departure = sum(
        1
        for record in records
        if record.status == AttendanceStatus.EARLY_DEPARTURE or (record.early_by_minutes or 0) > 0
    )
    # Zero and missing values are left out of both averages.
    work_hours = [record.work_hours for record in records if record.work_hours]
    overtime = [record.overtime for record in records if record.overtime]

    holidays = None
    if date_from is not None and date_to is not None:
        holidays = count_holidays_in_range(db, date_from, date_to)

    return AdvancedAttendanceSummary(
        total=len(records),
        present=counts[AttendanceStatus.PRESENT],
        absent=counts[AttendanceStatus.ABSENT],
        late=counts[AttendanceStatus.LATE],
        on_leave=counts[AttendanceStatus.ON_LEAVE],
        early_departure=early_departure,
        half_day=counts[AttendanceStatus.HALF_DAY],
        avg_work_hours=round(_average(work_hours), 2),
        avg_overtime=round(_average(overtime), 2),
        total_overtime=round(sum(overtime), 2),
        holidays=holidays,
    )


def bucket_key(day: date, group_by: Literal["day", "week", "month"]) -> str:
    if group_by == "day":
        return day.isoformat()
    if group_by == "week":
        # Weeks start on Sunday.
        days_since_sunday = (day.weekday() + 1) % 7
        return (day - timedelta(days=days_since_sunday)).isoformat()
    if group_by == "month":
        return f"{day.year:04d}-{day.month:02d}"
    raise ValidationFailedError("INVALID_GROUP_BY", f"Unsupported group_by: {group_by}")


_TREND_FIELD_BY_STATUS: dict[AttendanceStatus, str] = {
    AttendanceStatus.PRESENT: "present",
    AttendanceStatus.ABSENT: "absent",
    AttendanceStatus.LATE: "late",
    AttendanceStatus.ON_LEAVE: "on_leave",
    AttendanceStatus.EARLY_DEPARTURE: "early_departure",
    AttendanceStatus.HALF_DAY: "half_day",
}


def get_attendance_trends(
    db: Session,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
    employee_id: int | None = None,
    group_by: Literal["day", "week", "month"] = "day",
) -> list[TrendBucket]:
    records = db.scalars(
        _records_stmt(date_from=date_from, date_to=date_to, employee_id=employee_id).order_by(
            AttendanceRecord.work_date.asc()
        )
    ).all()

    buckets: dict[str, TrendBucket] = {}
    for record in records:
        key = bucket_key(record.work_date, group_by)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = TrendBucket(bucket=key)
            buckets[key] = bucket
        field_name = _TREND_FIELD_BY_STATUS[record.status]
        setattr(bucket, field_name, getattr(bucket, field_name) + 1)
        bucket.total += 1

    return [buckets[key] for key in sorted(buckets)]


def get_absence_analytics(
    db: Session,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[AbsenceAnalyticsItem]:
    _ensure_range(date_from, date_to)
    stmt = select(AttendanceRecord.employee_id, func.count(AttendanceRecord.id)).group_by(
        AttendanceRecord.employee_id
    )
    if date_from is not None:
        stmt = stmt.where(AttendanceRecord.work_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(AttendanceRecord.work_date <= date_to)
    stmt = stmt.order_by(AttendanceRecord.employee_id.asc())
    return [AbsenceAnalyticsItem(employee_id=int(row[0]), count=int(row[1])) for row in db.execute(stmt).all()]
