"""Attendance regularization workflow.

A regularization is a retroactive correction for one employee day. It starts
PENDING and moves once to APPROVED or REJECTED. Approval patches (or creates)
the day's attendance record in the same transaction as the status change.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hr_attendance.errors import ConflictError, InvalidStateError, NotFoundError, ValidationFailedError
from hr_attendance.models import (
    AttendanceRecord,
    AttendanceRegularization,
    AttendanceStatus,
    RegularizationStatus,
)
from hr_attendance.schemas import RegularizationCreate, RegularizationStatusUpdate
from hr_attendance.services.attendance import find_attendance_for_day
from hr_attendance.services.directory import ensure_employee_eligible, ensure_employee_exists
from hr_attendance.services.schedule_resolver import local_day, normalize_instant, resolve_timezone
from hr_attendance.services.schedules import find_work_schedule
from hr_attendance.settings import clamp_take

logger = logging.getLogger("hr_attendance.regularizations")

MIN_REASON_LENGTH = 10


def get_regularization(db: Session, regularization_id: int) -> AttendanceRegularization:
    regularization = db.get(AttendanceRegularization, regularization_id)
    if regularization is None:
        raise NotFoundError(
            "REGULARIZATION_NOT_FOUND",
            f"Regularization with ID {regularization_id} not found",
        )
    return regularization


def find_pending_regularization(
    db: Session,
    *,
    employee_id: int,
    day_date: date,
) -> AttendanceRegularization | None:
    return db.scalar(
        select(AttendanceRegularization).where(
            AttendanceRegularization.employee_id == employee_id,
            AttendanceRegularization.day_date == day_date,
            AttendanceRegularization.status == RegularizationStatus.PENDING,
        )
    )


def list_regularizations(
    db: Session,
    *,
    employee_id: int | None = None,
    status: RegularizationStatus | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    take: int | None = None,
    skip: int = 0,
) -> list[AttendanceRegularization]:
    stmt = select(AttendanceRegularization).order_by(
        AttendanceRegularization.created_at.desc(),
        AttendanceRegularization.id.desc(),
    )
    if employee_id is not None:
        stmt = stmt.where(AttendanceRegularization.employee_id == employee_id)
    if status is not None:
        stmt = stmt.where(AttendanceRegularization.status == status)
    if date_from is not None:
        stmt = stmt.where(AttendanceRegularization.day_date >= date_from)
    if date_to is not None:
        stmt = stmt.where(AttendanceRegularization.day_date <= date_to)
    stmt = stmt.offset(max(0, skip)).limit(clamp_take(take))
    return list(db.scalars(stmt).all())


def _duplicate_error() -> ConflictError:
    return ConflictError("DUPLICATE_REGULARIZATION", "A pending regularization already exists for this date")


def create_regularization(
    db: Session,
    payload: RegularizationCreate,
    *,
    now: datetime | None = None,
) -> AttendanceRegularization:
    ensure_employee_eligible(db, payload.employee_id, action="create regularization")
    if len(payload.reason.strip()) < MIN_REASON_LENGTH:
        raise ValidationFailedError(
            "REASON_TOO_SHORT",
            f"Reason must be at least {MIN_REASON_LENGTH} characters",
        )

    tz = resolve_timezone(find_work_schedule(db, payload.employee_id))
    today = local_day(normalize_instant(None, tz, now=now), tz)
    if payload.day_date > today:
        raise ValidationFailedError("FUTURE_DATE_NOT_ALLOWED", "Cannot regularize future dates")

    if find_pending_regularization(db, employee_id=payload.employee_id, day_date=payload.day_date) is not None:
        raise _duplicate_error()

    requested_check_in = (
        normalize_instant(payload.requested_check_in, tz) if payload.requested_check_in is not None else None
    )
    requested_check_out = (
        normalize_instant(payload.requested_check_out, tz) if payload.requested_check_out is not None else None
    )
    if requested_check_in and requested_check_out and requested_check_out < requested_check_in:
        raise ValidationFailedError(
            "INVALID_TIMESTAMP_RANGE",
            "requested_check_out must be greater than or equal to requested_check_in",
        )

    regularization = AttendanceRegularization(
        employee_id=payload.employee_id,
        day_date=payload.day_date,
        requested_check_in=requested_check_in,
        requested_check_out=requested_check_out,
        reason=payload.reason.strip(),
        status=RegularizationStatus.PENDING,
    )
    db.add(regularization)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise _duplicate_error() from None
    db.refresh(regularization)
    logger.info(
        "regularization_created",
        extra={
            "regularization_id": regularization.id,
            "employee_id": regularization.employee_id,
            "day_date": regularization.day_date.isoformat(),
        },
    )
    return regularization


def _apply_to_attendance(db: Session, regularization: AttendanceRegularization) -> AttendanceRecord:
    record = find_attendance_for_day(
        db,
        employee_id=regularization.employee_id,
        work_date=regularization.day_date,
    )
    if record is None:
        record = AttendanceRecord(
            employee_id=regularization.employee_id,
            work_date=regularization.day_date,
        )
        db.add(record)

    record.check_in = regularization.requested_check_in
    record.check_out = regularization.requested_check_out
    record.status = AttendanceStatus.PRESENT
    record.is_regularized = True
    record.regularization_id = regularization.id
    record.notes = f"Regularized: {regularization.reason}"
    return record


def update_regularization_status(
    db: Session,
    regularization_id: int,
    payload: RegularizationStatusUpdate,
    *,
    now: datetime | None = None,
) -> AttendanceRegularization:
    regularization = get_regularization(db, regularization_id)
    if regularization.status != RegularizationStatus.PENDING:
        raise InvalidStateError(
            "REGULARIZATION_ALREADY_PROCESSED",
            f"Regularization is already {regularization.status.value}",
        )
    if payload.status == RegularizationStatus.PENDING:
        raise ValidationFailedError(
            "INVALID_STATUS_TRANSITION",
            "Regularization status can only move to APPROVED or REJECTED",
        )
    if payload.status == RegularizationStatus.APPROVED and payload.approved_by_id is None:
        raise ValidationFailedError("APPROVER_REQUIRED", "approved_by_id is required to approve regularization")
    rejected_reason = (payload.rejected_reason or "").strip()
    if payload.status == RegularizationStatus.REJECTED and not rejected_reason:
        raise ValidationFailedError(
            "REJECTION_REASON_REQUIRED",
            "rejected_reason is required to reject regularization",
        )
    if payload.approved_by_id is not None:
        ensure_employee_exists(db, payload.approved_by_id, code="APPROVER_NOT_FOUND", label="Approver")

    record: AttendanceRecord | None = None
    try:
        if payload.status == RegularizationStatus.APPROVED:
            record = _apply_to_attendance(db, regularization)
            regularization.approved_by_id = payload.approved_by_id
            regularization.approved_at = now or datetime.now(timezone.utc)
        else:
            regularization.approved_by_id = payload.approved_by_id
            regularization.rejected_reason = rejected_reason
        regularization.status = payload.status
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(regularization)
    logger.info(
        "regularization_approved" if payload.status == RegularizationStatus.APPROVED else "regularization_rejected",
        extra={
            "regularization_id": regularization.id,
            "employee_id": regularization.employee_id,
            "day_date": regularization.day_date.isoformat(),
            "attendance_id": record.id if record is not None else None,
            "approved_by_id": regularization.approved_by_id,
        },
    )
    return regularization
