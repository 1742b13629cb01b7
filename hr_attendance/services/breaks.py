from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from hr_attendance.errors import NotFoundError, ValidationFailedError
from hr_attendance.models import AttendanceBreak
from hr_attendance.schemas import BreakCreate, BreakUpdate
from hr_attendance.services.attendance import get_attendance
from hr_attendance.services.schedule_resolver import (
    local_day,
    normalize_instant,
    resolve_timezone,
    whole_minutes_between,
)
from hr_attendance.services.schedules import find_work_schedule

logger = logging.getLogger("hr_attendance.breaks")


def break_duration_minutes(start_time: datetime, end_time: datetime | None) -> int | None:
    if end_time is None:
        return None
    if end_time < start_time:
        raise ValidationFailedError("INVALID_BREAK_RANGE", "Break end_time must not be before start_time")
    return whole_minutes_between(end_time, start_time)


def get_break(db: Session, break_id: int) -> AttendanceBreak:
    item = db.get(AttendanceBreak, break_id)
    if item is None:
        raise NotFoundError("BREAK_NOT_FOUND", f"Break with ID {break_id} not found")
    return item


def list_breaks(db: Session, attendance_id: int) -> list[AttendanceBreak]:
    get_attendance(db, attendance_id)
    return list(
        db.scalars(
            select(AttendanceBreak)
            .where(AttendanceBreak.attendance_id == attendance_id)
            .order_by(AttendanceBreak.start_time.asc(), AttendanceBreak.id.asc())
        ).all()
    )


def create_break(db: Session, payload: BreakCreate) -> AttendanceBreak:
    record = get_attendance(db, payload.attendance_id)
    tz = resolve_timezone(find_work_schedule(db, record.employee_id))
    start_time = normalize_instant(payload.start_time, tz)
    end_time = normalize_instant(payload.end_time, tz) if payload.end_time is not None else None

    if local_day(start_time, tz) != record.work_date:
        raise ValidationFailedError("INVALID_BREAK_DATE", "Break time must be on the same date as attendance")

    item = AttendanceBreak(
        attendance=record,
        type=payload.type,
        start_time=start_time,
        end_time=end_time,
        duration_minutes=break_duration_minutes(start_time, end_time),
        notes=payload.notes,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info(
        "break_created",
        extra={
            "attendance_id": record.id,
            "break_id": item.id,
            "break_type": item.type.value,
            "duration_minutes": item.duration_minutes,
        },
    )
    return item


def update_break(db: Session, break_id: int, payload: BreakUpdate) -> AttendanceBreak:
    item = get_break(db, break_id)
    record = item.attendance
    tz = resolve_timezone(find_work_schedule(db, record.employee_id))
    changes = payload.model_dump(exclude_unset=True)

    start_time = item.start_time
    end_time = item.end_time
    if changes.get("start_time") is not None:
        start_time = normalize_instant(changes["start_time"], tz)
        if local_day(start_time, tz) != record.work_date:
            raise ValidationFailedError("INVALID_BREAK_DATE", "Break time must be on the same date as attendance")
    if "end_time" in changes:
        end_time = normalize_instant(changes["end_time"], tz) if changes["end_time"] is not None else None
    duration_minutes = break_duration_minutes(start_time, end_time)

    item.start_time = start_time
    item.end_time = end_time
    item.duration_minutes = duration_minutes
    if changes.get("type") is not None:
        item.type = changes["type"]
    if "notes" in changes:
        item.notes = changes["notes"]

    db.commit()
    db.refresh(item)
    logger.info(
        "break_updated",
        extra={"attendance_id": record.id, "break_id": item.id, "duration_minutes": item.duration_minutes},
    )
    return item


def delete_break(db: Session, break_id: int) -> AttendanceBreak:
    item = get_break(db, break_id)
    record = item.attendance
    record.breaks.remove(item)
    db.commit()
    logger.info("break_deleted", extra={"attendance_id": record.id, "break_id": break_id})
    return item
