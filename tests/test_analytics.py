from __future__ import annotations

import unittest
from datetime import date

from hr_attendance.errors import ValidationFailedError
from hr_attendance.models import AttendanceRecord, AttendanceStatus, Department
from hr_attendance.schemas import HolidayCreate
from hr_attendance.services import analytics, holidays
from tests.support import add_employee, make_engine, make_session


class AnalyticsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = make_engine()
        self.db = make_session(self.engine)
        self.engineering = Department(name="Engineering")
        self.sales = Department(name="Sales")
        self.db.add_all([self.engineering, self.sales])
        self.db.commit()
        self.alice = add_employee(self.db, full_name="Alice", department=self.engineering)
        self.bob = add_employee(self.db, full_name="Bob", department=self.sales)

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def _record(self, employee, day: date, status: AttendanceStatus, **values) -> None:  # type: ignore[no-untyped-def]
        self.db.add(AttendanceRecord(employee_id=employee.id, work_date=day, status=status, **values))
        self.db.commit()

    def _seed(self) -> None:
        self._record(self.alice, date(2026, 3, 1), AttendanceStatus.PRESENT, work_hours=8.0, overtime=0.0)
        self._record(self.alice, date(2026, 3, 2), AttendanceStatus.LATE, work_hours=9.0, overtime=1.0)
        self._record(self.alice, date(2026, 3, 3), AttendanceStatus.PRESENT, early_by_minutes=30)
        self._record(self.alice, date(2026, 3, 9), AttendanceStatus.ON_LEAVE)
        self._record(self.bob, date(2026, 3, 2), AttendanceStatus.ABSENT)
        self._record(self.bob, date(2026, 3, 3), AttendanceStatus.HALF_DAY, work_hours=4.5, overtime=0.25)
        self._record(self.bob, date(2026, 4, 1), AttendanceStatus.PRESENT, work_hours=8.0)

    def test_summary_counts_inclusive_range(self) -> None:
        self._seed()

        summary = analytics.get_attendance_summary(self.db, date_from=date(2026, 3, 1), date_to=date(2026, 3, 9))

        self.assertEqual(summary.total, 6)
        self.assertEqual(summary.present, 2)
        self.assertEqual(summary.late, 1)
        self.assertEqual(summary.absent, 1)
        self.assertEqual(summary.on_leave, 1)

    def test_summary_filters_by_department(self) -> None:
        self._seed()

        summary = analytics.get_attendance_summary(self.db, department_id=self.sales.id)

        self.assertEqual(summary.total, 3)
        self.assertEqual(summary.absent, 1)
        self.assertEqual(summary.present, 1)

    def test_advanced_summary_averages_populated_values_only(self) -> None:
        self._seed()
        holidays.create_holiday(self.db, HolidayCreate(name="Spring Holiday", day_date=date(2026, 3, 5)))

        summary = analytics.get_advanced_attendance_summary(
            self.db,
            date_from=date(2026, 3, 1),
            date_to=date(2026, 3, 31),
        )

        self.assertEqual(summary.total, 6)
        self.assertEqual(summary.half_day, 1)
        self.assertEqual(summary.early_departure, 1)
        # (8.0 + 9.0 + 4.5) / 3, not / 6
        self.assertEqual(summary.avg_work_hours, 7.17)
        # (1.0 + 0.25) / 2; the zero-overtime day is left out
        self.assertEqual(summary.avg_overtime, 0.62)
        self.assertEqual(summary.total_overtime, 1.25)
        self.assertEqual(summary.holidays, 1)

    def test_advanced_summary_on_empty_range(self) -> None:
        summary = analytics.get_advanced_attendance_summary(self.db, employee_id=self.alice.id)

        self.assertEqual(summary.total, 0)
        self.assertEqual(summary.avg_work_hours, 0.0)
        self.assertIsNone(summary.holidays)

    def test_advanced_summary_skips_zero_values_in_averages(self) -> None:
        self._record(self.alice, date(2026, 5, 4), AttendanceStatus.PRESENT, work_hours=8.0, overtime=0.0)
        self._record(self.alice, date(2026, 5, 5), AttendanceStatus.PRESENT, work_hours=9.0, overtime=1.0)
        self._record(self.alice, date(2026, 5, 6), AttendanceStatus.ABSENT, work_hours=0.0, overtime=0.0)

        summary = analytics.get_advanced_attendance_summary(self.db, employee_id=self.alice.id)

        self.assertEqual(summary.total, 3)
        self.assertEqual(summary.avg_work_hours, 8.5)
        self.assertEqual(summary.avg_overtime, 1.0)
        self.assertEqual(summary.total_overtime, 1.0)

    def test_daily_trends_are_sorted_by_bucket(self) -> None:
        self._seed()

        buckets = analytics.get_attendance_trends(self.db, date_from=date(2026, 3, 1), date_to=date(2026, 3, 3))

        self.assertEqual([item.bucket for item in buckets], ["2026-03-01", "2026-03-02", "2026-03-03"])
        self.assertEqual(buckets[1].late, 1)
        self.assertEqual(buckets[1].absent, 1)
        self.assertEqual(buckets[1].total, 2)
        self.assertEqual(buckets[2].half_day, 1)

    def test_weekly_trends_start_on_sunday(self) -> None:
        self._seed()

        buckets = analytics.get_attendance_trends(self.db, employee_id=self.alice.id, group_by="week")

        # 2026-03-01 is a Sunday; 2026-03-09 falls in the week of 2026-03-08.
        self.assertEqual([item.bucket for item in buckets], ["2026-03-01", "2026-03-08"])
        self.assertEqual(buckets[0].total, 3)
        self.assertEqual(buckets[1].on_leave, 1)

    def test_monthly_trends(self) -> None:
        self._seed()

        buckets = analytics.get_attendance_trends(self.db, group_by="month")

        self.assertEqual([(item.bucket, item.total) for item in buckets], [("2026-03", 6), ("2026-04", 1)])

    def test_bucket_key_week_for_saturday(self) -> None:
        self.assertEqual(analytics.bucket_key(date(2026, 3, 7), "week"), "2026-03-01")

    def test_absence_analytics_counts_per_employee(self) -> None:
        self._seed()

        items = analytics.get_absence_analytics(self.db, date_from=date(2026, 3, 1), date_to=date(2026, 3, 31))

        self.assertEqual(
            [(item.employee_id, item.count) for item in items],
            [(self.alice.id, 4), (self.bob.id, 2)],
        )

    def test_inverted_range_is_rejected(self) -> None:
        with self.assertRaises(ValidationFailedError) as ctx:
            analytics.get_attendance_summary(self.db, date_from=date(2026, 3, 9), date_to=date(2026, 3, 1))
        self.assertEqual(ctx.exception.code, "INVALID_DATE_RANGE")


if __name__ == "__main__":
    unittest.main()
