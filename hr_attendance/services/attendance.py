from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from hr_attendance.errors import ConflictError, NotFoundError, ValidationFailedError
from hr_attendance.models import AttendanceBreak, AttendanceRecord, AttendanceStatus
from hr_attendance.schemas import (
    AttendanceRecordCreate,
    AttendanceRecordUpdate,
    CheckInRequest,
    CheckOutRequest,
)
from hr_attendance.services.directory import ensure_employee_eligible, ensure_employee_exists
from hr_attendance.services.schedule_resolver import (
    classify_check_in,
    compute_overtime,
    early_departure_minutes,
    elapsed_hours,
    local_day,
    normalize_instant,
    resolve_expected_check_in,
    resolve_expected_check_out,
    resolve_timezone,
)
from hr_attendance.services.schedules import find_work_schedule
from hr_attendance.settings import clamp_take

logger = logging.getLogger("hr_attendance.attendance")


def find_attendance_for_day(db: Session, *, employee_id: int, work_date: date) -> AttendanceRecord | None:
    return db.scalar(
        select(AttendanceRecord)
        .options(selectinload(AttendanceRecord.breaks))
        .where(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.work_date == work_date,
        )
    )


def get_attendance(db: Session, attendance_id: int) -> AttendanceRecord:
    record = db.get(AttendanceRecord, attendance_id)
    if record is None:
        raise NotFoundError("ATTENDANCE_NOT_FOUND", f"Attendance record with ID {attendance_id} not found")
    return record


def list_attendance(
    db: Session,
    *,
    employee_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    status: AttendanceStatus | None = None,
    take: int | None = None,
    skip: int = 0,
) -> list[AttendanceRecord]:
    stmt = (
        select(AttendanceRecord)
        .options(selectinload(AttendanceRecord.breaks))
        .order_by(AttendanceRecord.work_date.desc(), AttendanceRecord.id.desc())
    )
    if employee_id is not None:
        stmt = stmt.where(AttendanceRecord.employee_id == employee_id)
    if status is not None:
        stmt = stmt.where(AttendanceRecord.status == status)
    if date_from is not None:
        stmt = stmt.where(AttendanceRecord.work_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(AttendanceRecord.work_date <= date_to)
    stmt = stmt.offset(max(0, skip)).limit(clamp_take(take))
    return list(db.scalars(stmt).all())


def _apply_check_in_fields(
    record: AttendanceRecord,
    *,
    instant: datetime,
    status: AttendanceStatus,
    expected_check_in: datetime | None,
    late_by_minutes: int | None,
    payload: CheckInRequest,
) -> None:
    record.check_in = instant
    record.status = status
    record.expected_check_in = expected_check_in
    record.late_by_minutes = late_by_minutes
    # Omitted location fields keep what the record already has.
    if payload.location:
        record.location = payload.location
    if payload.latitude is not None:
        record.latitude = payload.latitude
    if payload.longitude is not None:
        record.longitude = payload.longitude
    if payload.location_type is not None:
        record.location_type = payload.location_type


def check_in(
    db: Session,
    employee_id: int,
    payload: CheckInRequest,
    *,
    now: datetime | None = None,
) -> AttendanceRecord:
    ensure_employee_eligible(db, employee_id, action="check in")
    schedule = find_work_schedule(db, employee_id)
    tz = resolve_timezone(schedule)
    instant = normalize_instant(payload.timestamp, tz, now=now)
    work_date = local_day(instant, tz)

    expected_check_in = resolve_expected_check_in(schedule, instant)
    grace_period = schedule.grace_period_minutes if schedule is not None else 0
    classification = classify_check_in(expected_check_in, instant, grace_period)

    fields = {
        "instant": instant,
        "status": classification.status,
        "expected_check_in": expected_check_in,
        "late_by_minutes": classification.late_by_minutes,
        "payload": payload,
    }

    try:
        record = find_attendance_for_day(db, employee_id=employee_id, work_date=work_date)
        created = record is None
        if record is None:
            record = AttendanceRecord(employee_id=employee_id, work_date=work_date)
            _apply_check_in_fields(record, **fields)
            try:
                with db.begin_nested():
                    db.add(record)
                    db.flush()
            except IntegrityError:
                # A concurrent check-in created the day first; update that row instead.
                created = False
                record = find_attendance_for_day(db, employee_id=employee_id, work_date=work_date)
                if record is None:
                    raise
                _apply_check_in_fields(record, **fields)
        else:
            _apply_check_in_fields(record, **fields)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(record)
    logger.info(
        "attendance_check_in",
        extra={
            "employee_id": employee_id,
            "attendance_id": record.id,
            "work_date": work_date.isoformat(),
            "status": record.status.value,
            "late_by_minutes": record.late_by_minutes,
            "created": created,
        },
    )
    return record


def closed_break_minutes(db: Session, attendance_id: int) -> float:
    closed_breaks = db.scalars(
        select(AttendanceBreak).where(
            AttendanceBreak.attendance_id == attendance_id,
            AttendanceBreak.end_time.is_not(None),
        )
    ).all()
    return sum((item.end_time - item.start_time).total_seconds() / 60 for item in closed_breaks)


def check_out(
    db: Session,
    employee_id: int,
    payload: CheckOutRequest,
    *,
    now: datetime | None = None,
) -> AttendanceRecord:
    ensure_employee_exists(db, employee_id)
    schedule = find_work_schedule(db, employee_id)
    tz = resolve_timezone(schedule)
    instant = normalize_instant(payload.timestamp, tz, now=now)
    work_date = local_day(instant, tz)

    record = find_attendance_for_day(db, employee_id=employee_id, work_date=work_date)
    if record is None:
        raise NotFoundError("ATTENDANCE_NOT_FOUND", "No attendance record found for today")

    expected_check_out = resolve_expected_check_out(schedule, instant)
    total_hours: float | None = None
    work_hours: float | None = None
    overtime: float | None = None
    early_by_minutes: int | None = None

    if record.check_in is not None:
        total_hours = elapsed_hours(instant, record.check_in)
        work_hours = total_hours - closed_break_minutes(db, record.id) / 60
        if schedule is not None:
            early_by_minutes = early_departure_minutes(
                expected_check_out,
                instant,
                schedule.grace_period_minutes,
            )
        overtime = compute_overtime(work_hours, schedule)

    # Status is owned by the check-in path; an early departure only sets early_by_minutes.
    record.check_out = instant
    record.total_hours = total_hours
    record.work_hours = work_hours
    record.overtime = overtime
    record.early_by_minutes = early_by_minutes
    if expected_check_out is not None:
        record.expected_check_out = expected_check_out
    if payload.location:
        record.location = payload.location
    if payload.latitude is not None:
        record.latitude = payload.latitude
    if payload.longitude is not None:
        record.longitude = payload.longitude

    db.commit()
    db.refresh(record)
    logger.info(
        "attendance_check_out",
        extra={
            "employee_id": employee_id,
            "attendance_id": record.id,
            "work_date": work_date.isoformat(),
            "work_hours": work_hours,
            "overtime": overtime,
            "early_by_minutes": early_by_minutes,
        },
    )
    return record


def _ensure_timestamp_order(check_in: datetime | None, check_out: datetime | None) -> None:
    if check_in is None or check_out is None:
        return
    if check_out.astimezone(timezone.utc) < check_in.astimezone(timezone.utc):
        raise ValidationFailedError(
            "INVALID_TIMESTAMP_RANGE",
            "check_out must be greater than or equal to check_in",
        )


def _ensure_day_free(db: Session, *, employee_id: int, work_date: date, exclude_id: int | None = None) -> None:
    existing = find_attendance_for_day(db, employee_id=employee_id, work_date=work_date)
    if existing is not None and existing.id != exclude_id:
        raise ConflictError(
            "DUPLICATE_ATTENDANCE",
            f"Attendance for employee {employee_id} on {work_date.isoformat()} already exists",
        )


def record_attendance(db: Session, payload: AttendanceRecordCreate) -> AttendanceRecord:
    ensure_employee_eligible(db, payload.employee_id, action="record attendance")
    _ensure_timestamp_order(payload.check_in, payload.check_out)
    _ensure_day_free(db, employee_id=payload.employee_id, work_date=payload.work_date)

    record = AttendanceRecord(
        employee_id=payload.employee_id,
        work_date=payload.work_date,
        status=payload.status,
        check_in=payload.check_in,
        check_out=payload.check_out,
        notes=payload.notes,
        location=payload.location,
        location_type=payload.location_type,
        overtime=payload.overtime,
        work_hours=payload.work_hours,
    )
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(
            "DUPLICATE_ATTENDANCE",
            f"Attendance for employee {payload.employee_id} on {payload.work_date.isoformat()} already exists",
        ) from None
    db.refresh(record)
    logger.info(
        "attendance_recorded",
        extra={"employee_id": record.employee_id, "attendance_id": record.id, "status": record.status.value},
    )
    return record


def update_attendance(db: Session, attendance_id: int, payload: AttendanceRecordUpdate) -> AttendanceRecord:
    record = get_attendance(db, attendance_id)
    changes = payload.model_dump(exclude_unset=True)

    if "employee_id" in changes and changes["employee_id"] is not None:
        ensure_employee_eligible(db, changes["employee_id"], action="update attendance")

    target_employee_id = changes.get("employee_id") or record.employee_id
    target_work_date = changes.get("work_date") or record.work_date
    if target_employee_id != record.employee_id or target_work_date != record.work_date:
        _ensure_day_free(
            db,
            employee_id=target_employee_id,
            work_date=target_work_date,
            exclude_id=record.id,
        )

    _ensure_timestamp_order(
        changes.get("check_in", record.check_in),
        changes.get("check_out", record.check_out),
    )

    for field_name, value in changes.items():
        if field_name in {"employee_id", "work_date", "status"} and value is None:
            continue
        setattr(record, field_name, value)

    db.commit()
    db.refresh(record)
    logger.info(
        "attendance_updated",
        extra={"attendance_id": record.id, "fields": sorted(changes)},
    )
    return record

