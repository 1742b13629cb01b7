from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from hr_attendance.errors import InvalidStateError, NotFoundError, ValidationFailedError
from hr_attendance.models import LeaveRequest, LeaveStatus
from hr_attendance.schemas import LeaveRequestCreate, LeaveStatusUpdate
from hr_attendance.services.directory import ensure_employee_exists
from hr_attendance.settings import clamp_take

logger = logging.getLogger("hr_attendance.leaves")


def create_leave_request(db: Session, payload: LeaveRequestCreate) -> LeaveRequest:
    ensure_employee_exists(db, payload.employee_id)

    if payload.end_date < payload.start_date:
        raise ValidationFailedError(
            "INVALID_DATE_RANGE",
            "end_date must be greater than or equal to start_date",
        )

    leave = LeaveRequest(
        employee_id=payload.employee_id,
        type=payload.type,
        start_date=payload.start_date,
        end_date=payload.end_date,
        status=LeaveStatus.PENDING,
        note=payload.note,
    )
    db.add(leave)
    db.commit()
    db.refresh(leave)
    logger.info(
        "leave_request_created",
        extra={
            "leave_request_id": leave.id,
            "employee_id": leave.employee_id,
            "leave_type": leave.type.value,
            "start_date": leave.start_date.isoformat(),
            "end_date": leave.end_date.isoformat(),
        },
    )
    return leave


def get_leave_request(db: Session, leave_id: int) -> LeaveRequest:
    leave = db.get(LeaveRequest, leave_id)
    if leave is None:
        raise NotFoundError("LEAVE_REQUEST_NOT_FOUND", f"Leave request with ID {leave_id} not found")
    return leave


def list_leave_requests(
    db: Session,
    *,
    employee_id: int | None = None,
    status: LeaveStatus | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    take: int | None = None,
    skip: int = 0,
) -> list[LeaveRequest]:
    if date_from is not None and date_to is not None and date_from > date_to:
        raise ValidationFailedError("INVALID_DATE_RANGE", "date_from must be before or equal to date_to")

    stmt = select(LeaveRequest).order_by(LeaveRequest.applied_at.desc(), LeaveRequest.id.desc())
    if employee_id is not None:
        stmt = stmt.where(LeaveRequest.employee_id == employee_id)
    if status is not None:
        stmt = stmt.where(LeaveRequest.status == status)
    if date_from is not None:
        stmt = stmt.where(LeaveRequest.applied_at >= datetime.combine(date_from, time.min, tzinfo=timezone.utc))
    if date_to is not None:
        upper = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=timezone.utc)
        stmt = stmt.where(LeaveRequest.applied_at < upper)
    stmt = stmt.offset(max(0, skip)).limit(clamp_take(take))
    return list(db.scalars(stmt).all())


def update_leave_status(db: Session, leave_id: int, payload: LeaveStatusUpdate) -> LeaveRequest:
    leave = get_leave_request(db, leave_id)
    if leave.status != LeaveStatus.PENDING:
        raise InvalidStateError(
            "LEAVE_REQUEST_ALREADY_PROCESSED",
            f"Leave request is already {leave.status.value}",
        )
    if payload.status == LeaveStatus.PENDING:
        raise ValidationFailedError(
            "INVALID_STATUS_TRANSITION",
            "Leave request status can only move to APPROVED or REJECTED",
        )
    if payload.status == LeaveStatus.APPROVED and payload.approved_by_id is None:
        raise ValidationFailedError("APPROVER_REQUIRED", "approved_by_id is required to approve")
    if payload.approved_by_id is not None:
        ensure_employee_exists(db, payload.approved_by_id, code="APPROVER_NOT_FOUND", label="Approver")

    # Approval does not write ON_LEAVE attendance rows.
    leave.status = payload.status
    leave.approved_by_id = payload.approved_by_id
    db.commit()
    db.refresh(leave)
    logger.info(
        "leave_request_status_updated",
        extra={
            "leave_request_id": leave.id,
            "employee_id": leave.employee_id,
            "status": leave.status.value,
            "approved_by_id": leave.approved_by_id,
        },
    )
    return leave
