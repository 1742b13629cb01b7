from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from hr_attendance.errors import NotFoundError, ValidationFailedError
from hr_attendance.models import WorkSchedule
from hr_attendance.schemas import WorkScheduleUpdate, WorkScheduleUpsert
from hr_attendance.services.directory import ensure_employee_exists
from hr_attendance.services.schedule_resolver import parse_hhmm, parse_timezone

logger = logging.getLogger("hr_attendance.schedules")

WEEKDAY_INDEX_BY_NAME: dict[str, int] = {
    "SUNDAY": 0,
    "MONDAY": 1,
    "TUESDAY": 2,
    "WEDNESDAY": 3,
    "THURSDAY": 4,
    "FRIDAY": 5,
    "SATURDAY": 6,
}


def normalize_working_days(values: Iterable[int | str]) -> list[int]:
    days: set[int] = set()
    for value in values:
        if isinstance(value, str) and not value.strip().isdigit():
            index = WEEKDAY_INDEX_BY_NAME.get(value.strip().upper())
            if index is None:
                raise ValidationFailedError("INVALID_WORKING_DAYS", f"Unknown weekday: {value}")
        else:
            index = int(value)
            if index < 0 or index > 6:
                raise ValidationFailedError("INVALID_WORKING_DAYS", f"Weekday index out of range: {value}")
        days.add(index)
    return sorted(days)


def _ensure_time_range(start_time: str, end_time: str) -> None:
    start = parse_hhmm(start_time)
    end = parse_hhmm(end_time)
    if end <= start:
        raise ValidationFailedError("INVALID_TIME_RANGE", "end_time must be after start_time")


def find_work_schedule(db: Session, employee_id: int) -> WorkSchedule | None:
    return db.scalar(select(WorkSchedule).where(WorkSchedule.employee_id == employee_id))


def get_work_schedule(db: Session, employee_id: int) -> WorkSchedule:
    schedule = find_work_schedule(db, employee_id)
    if schedule is None:
        raise NotFoundError("SCHEDULE_NOT_FOUND", f"Work schedule for employee {employee_id} not found")
    return schedule


def upsert_work_schedule(db: Session, payload: WorkScheduleUpsert) -> WorkSchedule:
    ensure_employee_exists(db, payload.employee_id)
    _ensure_time_range(payload.start_time, payload.end_time)
    if payload.timezone:
        parse_timezone(payload.timezone)

    values = payload.model_dump(exclude={"employee_id", "working_days"})
    values["start_time"] = payload.start_time.strip()
    values["end_time"] = payload.end_time.strip()
    if payload.working_days is not None:
        values["working_days"] = normalize_working_days(payload.working_days)

    schedule = find_work_schedule(db, payload.employee_id)
    created = schedule is None
    if schedule is None:
        schedule = WorkSchedule(employee_id=payload.employee_id)
        db.add(schedule)
    for field_name, value in values.items():
        setattr(schedule, field_name, value)

    db.commit()
    db.refresh(schedule)
    logger.info(
        "work_schedule_saved",
        extra={"employee_id": payload.employee_id, "schedule_id": schedule.id, "created": created},
    )
    return schedule


def update_work_schedule(db: Session, employee_id: int, payload: WorkScheduleUpdate) -> WorkSchedule:
    ensure_employee_exists(db, employee_id)
    schedule = get_work_schedule(db, employee_id)
    changes = payload.model_dump(exclude_unset=True)

    # Required columns ignore an explicit null.
    for field_name in ("start_time", "end_time", "break_duration_minutes", "is_flexible", "grace_period_minutes"):
        if field_name in changes and changes[field_name] is None:
            changes.pop(field_name)

    if "start_time" in changes or "end_time" in changes:
        start_time = changes.get("start_time", schedule.start_time).strip()
        end_time = changes.get("end_time", schedule.end_time).strip()
        _ensure_time_range(start_time, end_time)
        if "start_time" in changes:
            changes["start_time"] = start_time
        if "end_time" in changes:
            changes["end_time"] = end_time
    if changes.get("timezone"):
        parse_timezone(changes["timezone"])
    if "working_days" in changes:
        if changes["working_days"] is None:
            changes.pop("working_days")
        else:
            changes["working_days"] = normalize_working_days(changes["working_days"])

    for field_name, value in changes.items():
        setattr(schedule, field_name, value)

    db.commit()
    db.refresh(schedule)
    logger.info(
        "work_schedule_updated",
        extra={"employee_id": employee_id, "schedule_id": schedule.id, "fields": sorted(changes)},
    )
    return schedule


def delete_work_schedule(db: Session, employee_id: int) -> WorkSchedule:
    schedule = get_work_schedule(db, employee_id)
    db.delete(schedule)
    db.commit()
    logger.info("work_schedule_deleted", extra={"employee_id": employee_id, "schedule_id": schedule.id})
    return schedule
