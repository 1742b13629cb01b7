from __future__ import annotations

from sqlalchemy.orm import Session

from hr_attendance.errors import InvalidStateError, NotFoundError
from hr_attendance.models import ELIGIBLE_EMPLOYEE_STATUSES, Employee


def find_employee_by_id(db: Session, employee_id: int) -> Employee | None:
    return db.get(Employee, employee_id)


def ensure_employee_exists(
    db: Session,
    employee_id: int,
    *,
    code: str = "EMPLOYEE_NOT_FOUND",
    label: str = "Employee",
) -> Employee:
    employee = find_employee_by_id(db, employee_id)
    if employee is None:
        raise NotFoundError(code, f"{label} with ID {employee_id} not found")
    return employee


def ensure_employee_eligible(db: Session, employee_id: int, *, action: str) -> Employee:
    employee = ensure_employee_exists(db, employee_id)
    if employee.status not in ELIGIBLE_EMPLOYEE_STATUSES:
        raise InvalidStateError(
            "EMPLOYEE_INACTIVE",
            f"Cannot {action} for {employee.status.value} employee",
        )
    return employee
