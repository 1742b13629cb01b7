from __future__ import annotations

import unittest
from datetime import date

from sqlalchemy import func, select

from hr_attendance.errors import InvalidStateError, NotFoundError, ValidationFailedError
from hr_attendance.models import AttendanceRecord, LeaveStatus, LeaveType
from hr_attendance.schemas import LeaveRequestCreate, LeaveStatusUpdate
from hr_attendance.services import leaves
from tests.support import add_employee, make_engine, make_session


class LeaveWorkflowTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = make_engine()
        self.db = make_session(self.engine)
        self.employee = add_employee(self.db)
        self.manager = add_employee(self.db, full_name="Manager")

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def _create(self, start: date, end: date, leave_type: LeaveType = LeaveType.VACATION):  # type: ignore[no-untyped-def]
        return leaves.create_leave_request(
            self.db,
            LeaveRequestCreate(employee_id=self.employee.id, type=leave_type, start_date=start, end_date=end),
        )

    def test_create_starts_pending(self) -> None:
        leave = self._create(date(2026, 4, 1), date(2026, 4, 3))
        self.assertEqual(leave.status, LeaveStatus.PENDING)

    def test_single_day_leave_is_valid(self) -> None:
        leave = self._create(date(2026, 4, 1), date(2026, 4, 1), LeaveType.SICK)
        self.assertEqual(leave.start_date, leave.end_date)

    def test_inverted_range_is_rejected(self) -> None:
        with self.assertRaises(ValidationFailedError) as ctx:
            self._create(date(2026, 4, 3), date(2026, 4, 1))
        self.assertEqual(ctx.exception.code, "INVALID_DATE_RANGE")

    def test_unknown_employee_is_rejected(self) -> None:
        with self.assertRaises(NotFoundError) as ctx:
            leaves.create_leave_request(
                self.db,
                LeaveRequestCreate(
                    employee_id=999,
                    type=LeaveType.UNPAID,
                    start_date=date(2026, 4, 1),
                    end_date=date(2026, 4, 2),
                ),
            )
        self.assertEqual(ctx.exception.code, "EMPLOYEE_NOT_FOUND")

    def test_approval_requires_existing_approver(self) -> None:
        leave = self._create(date(2026, 4, 1), date(2026, 4, 3))

        with self.assertRaises(ValidationFailedError) as ctx:
            leaves.update_leave_status(self.db, leave.id, LeaveStatusUpdate(status=LeaveStatus.APPROVED))
        self.assertEqual(ctx.exception.code, "APPROVER_REQUIRED")

        with self.assertRaises(NotFoundError) as ctx:
            leaves.update_leave_status(
                self.db,
                leave.id,
                LeaveStatusUpdate(status=LeaveStatus.APPROVED, approved_by_id=4242),
            )
        self.assertEqual(ctx.exception.code, "APPROVER_NOT_FOUND")

    def test_approval_does_not_touch_attendance(self) -> None:
        leave = self._create(date(2026, 4, 1), date(2026, 4, 3))

        approved = leaves.update_leave_status(
            self.db,
            leave.id,
            LeaveStatusUpdate(status=LeaveStatus.APPROVED, approved_by_id=self.manager.id),
        )

        self.assertEqual(approved.status, LeaveStatus.APPROVED)
        self.assertEqual(approved.approved_by_id, self.manager.id)
        self.assertEqual(self.db.scalar(select(func.count(AttendanceRecord.id))), 0)

    def test_processed_leave_rejects_further_updates(self) -> None:
        leave = self._create(date(2026, 4, 1), date(2026, 4, 3))
        leaves.update_leave_status(self.db, leave.id, LeaveStatusUpdate(status=LeaveStatus.REJECTED))

        with self.assertRaises(InvalidStateError) as ctx:
            leaves.update_leave_status(
                self.db,
                leave.id,
                LeaveStatusUpdate(status=LeaveStatus.APPROVED, approved_by_id=self.manager.id),
            )
        self.assertEqual(ctx.exception.code, "LEAVE_REQUEST_ALREADY_PROCESSED")

    def test_unknown_leave_request(self) -> None:
        with self.assertRaises(NotFoundError) as ctx:
            leaves.update_leave_status(self.db, 999, LeaveStatusUpdate(status=LeaveStatus.REJECTED))
        self.assertEqual(ctx.exception.code, "LEAVE_REQUEST_NOT_FOUND")

    def test_list_filters_by_employee_and_status(self) -> None:
        first = self._create(date(2026, 4, 1), date(2026, 4, 3))
        self._create(date(2026, 5, 1), date(2026, 5, 2))
        leaves.create_leave_request(
            self.db,
            LeaveRequestCreate(
                employee_id=self.manager.id,
                type=LeaveType.OTHER,
                start_date=date(2026, 4, 1),
                end_date=date(2026, 4, 1),
            ),
        )
        leaves.update_leave_status(self.db, first.id, LeaveStatusUpdate(status=LeaveStatus.REJECTED))

        pending = leaves.list_leave_requests(self.db, employee_id=self.employee.id, status=LeaveStatus.PENDING)

        self.assertEqual(len(pending), 1)
        self.assertEqual(pending[0].start_date, date(2026, 5, 1))


if __name__ == "__main__":
    unittest.main()
