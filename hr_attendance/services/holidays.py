from __future__ import annotations

import logging
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from hr_attendance.errors import ConflictError, NotFoundError, ValidationFailedError
from hr_attendance.models import Holiday, HolidayType
from hr_attendance.schemas import HolidayCreate, HolidayUpdate
from hr_attendance.settings import clamp_take, get_settings

logger = logging.getLogger("hr_attendance.holidays")


def get_holiday(db: Session, holiday_id: int) -> Holiday:
    holiday = db.get(Holiday, holiday_id)
    if holiday is None:
        raise NotFoundError("HOLIDAY_NOT_FOUND", f"Holiday with ID {holiday_id} not found")
    return holiday


def _find_same_name_and_date(db: Session, *, name: str, day_date: date) -> Holiday | None:
    return db.scalar(select(Holiday).where(Holiday.name == name, Holiday.day_date == day_date))


def create_holiday(db: Session, payload: HolidayCreate) -> Holiday:
    name = payload.name.strip()
    if _find_same_name_and_date(db, name=name, day_date=payload.day_date) is not None:
        raise ConflictError("DUPLICATE_HOLIDAY", "Holiday with this name and date already exists")

    holiday = Holiday(
        name=name,
        day_date=payload.day_date,
        type=payload.type,
        is_recurring=payload.is_recurring,
        description=payload.description,
    )
    db.add(holiday)
    db.commit()
    db.refresh(holiday)
    logger.info(
        "holiday_created",
        extra={"holiday_id": holiday.id, "day_date": holiday.day_date.isoformat(), "holiday_type": holiday.type.value},
    )
    return holiday


def update_holiday(db: Session, holiday_id: int, payload: HolidayUpdate) -> Holiday:
    holiday = get_holiday(db, holiday_id)
    changes = {key: value for key, value in payload.model_dump(exclude_unset=True).items() if value is not None}
    if "description" in payload.model_fields_set:
        changes["description"] = payload.description
    if "name" in changes:
        changes["name"] = changes["name"].strip()

    target_name = changes.get("name", holiday.name)
    target_date = changes.get("day_date", holiday.day_date)
    existing = _find_same_name_and_date(db, name=target_name, day_date=target_date)
    if existing is not None and existing.id != holiday.id:
        raise ConflictError("DUPLICATE_HOLIDAY", "Holiday with this name and date already exists")

    for field_name, value in changes.items():
        setattr(holiday, field_name, value)
    db.commit()
    db.refresh(holiday)
    logger.info("holiday_updated", extra={"holiday_id": holiday.id, "fields": sorted(changes)})
    return holiday


def delete_holiday(db: Session, holiday_id: int) -> Holiday:
    holiday = get_holiday(db, holiday_id)
    db.delete(holiday)
    db.commit()
    logger.info("holiday_deleted", extra={"holiday_id": holiday_id})
    return holiday


def list_holidays(
    db: Session,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
    holiday_type: HolidayType | None = None,
    take: int | None = None,
    skip: int = 0,
) -> list[Holiday]:
    stmt = select(Holiday).order_by(Holiday.day_date.asc(), Holiday.id.asc())
    if date_from is not None:
        stmt = stmt.where(Holiday.day_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(Holiday.day_date <= date_to)
    if holiday_type is not None:
        stmt = stmt.where(Holiday.type == holiday_type)
    stmt = stmt.offset(max(0, skip)).limit(clamp_take(take, default=get_settings().holiday_default_take))
    return list(db.scalars(stmt).all())


def _recurring_holidays(db: Session) -> list[Holiday]:
    return list(db.scalars(select(Holiday).where(Holiday.is_recurring.is_(True))).all())


def _matches_recurring(holiday: Holiday, day: date) -> bool:
    return holiday.day_date <= day and (holiday.day_date.month, holiday.day_date.day) == (day.month, day.day)


def is_holiday(db: Session, day: date) -> Holiday | None:
    exact = db.scalar(select(Holiday).where(Holiday.day_date == day).order_by(Holiday.id.asc()))
    if exact is not None:
        return exact
    for holiday in _recurring_holidays(db):
        if _matches_recurring(holiday, day):
            return holiday
    return None


def count_holidays_in_range(db: Session, date_from: date, date_to: date) -> int:
    """Number of distinct calendar days in ``[date_from, date_to]`` that are holidays."""
    if date_from > date_to:
        raise ValidationFailedError("INVALID_DATE_RANGE", "date_from must be before or equal to date_to")

    days = set(
        db.scalars(
            select(Holiday.day_date).where(Holiday.day_date >= date_from, Holiday.day_date <= date_to)
        ).all()
    )
    recurring = _recurring_holidays(db)
    if recurring:
        cursor = date_from
        while cursor <= date_to:
            if cursor not in days and any(_matches_recurring(item, cursor) for item in recurring):
                days.add(cursor)
            cursor += timedelta(days=1)
    return len(days)
