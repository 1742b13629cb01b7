from __future__ import annotations

import unittest

from fastapi.testclient import TestClient
from sqlalchemy import select

from hr_attendance.db import get_db
from hr_attendance.main import app
from hr_attendance.models import AuditActorType, AuditLog, EmployeeStatus
from tests.support import add_employee, add_schedule, make_engine, make_session, override_get_db


class AttendanceApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = make_engine()
        self.db = make_session(self.engine)
        self.employee = add_employee(self.db)
        self.manager = add_employee(self.db, full_name="Manager")
        app.dependency_overrides[get_db] = override_get_db(self.db)
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        self.db.close()
        self.engine.dispose()

    def test_check_in_returns_created_record(self) -> None:
        add_schedule(self.db, self.employee)

        response = self.client.post(
            f"/api/attendance/employee/{self.employee.id}/check-in",
            json={"timestamp": "2026-03-02T09:12:00Z", "location": "HQ"},
            headers={"X-Actor-Id": "employee-portal"},
        )

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["date"], "2026-03-02")
        self.assertEqual(body["status"], "LATE")
        self.assertEqual(body["late_by_minutes"], 12)
        self.assertEqual(body["location"], "HQ")
        self.assertEqual(body["breaks"], [])

        audit = self.db.scalar(select(AuditLog).where(AuditLog.action == "ATTENDANCE_CHECK_IN"))
        self.assertIsNotNone(audit)
        self.assertEqual(audit.actor_type, AuditActorType.EMPLOYEE)
        self.assertEqual(audit.actor_id, "employee-portal")
        self.assertEqual(audit.entity_id, str(body["id"]))

    def test_check_in_rejects_terminated_employee(self) -> None:
        former = add_employee(self.db, full_name="Former", status=EmployeeStatus.TERMINATED)

        response = self.client.post(f"/api/attendance/employee/{former.id}/check-in", json={})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"]["code"], "EMPLOYEE_INACTIVE")

    def test_check_out_without_check_in(self) -> None:
        response = self.client.post(
            f"/api/attendance/employee/{self.employee.id}/check-out",
            json={"timestamp": "2026-03-02T18:00:00Z"},
        )

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["code"], "ATTENDANCE_NOT_FOUND")

    def test_error_envelope_carries_request_id(self) -> None:
        response = self.client.get("/api/attendance/999", headers={"X-Request-Id": "req-123"})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.headers["X-Request-Id"], "req-123")
        self.assertEqual(
            response.json(),
            {
                "error": {
                    "code": "ATTENDANCE_NOT_FOUND",
                    "message": "Attendance record with ID 999 not found",
                    "request_id": "req-123",
                }
            },
        )

    def test_request_validation_lists_fields(self) -> None:
        response = self.client.post(
            "/api/attendance/regularization",
            json={"employee_id": 0, "date": "2026-03-09"},
        )

        self.assertEqual(response.status_code, 422)
        error = response.json()["error"]
        self.assertEqual(error["code"], "VALIDATION_ERROR")
        self.assertIn("body.employee_id", error["fields"])
        self.assertIn("body.reason", error["fields"])
        self.assertTrue(error["request_id"])

    def test_regularization_approval_flow(self) -> None:
        created = self.client.post(
            "/api/attendance/regularization",
            json={
                "employee_id": self.employee.id,
                "date": "2026-03-09",
                "requested_check_in": "2026-03-09T09:00:00Z",
                "requested_check_out": "2026-03-09T17:30:00Z",
                "reason": "Badge reader was offline all morning",
            },
        )
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()["status"], "PENDING")
        self.assertEqual(created.json()["date"], "2026-03-09")

        approved = self.client.put(
            f"/api/attendance/regularization/{created.json()['id']}/status",
            json={"status": "APPROVED", "approved_by_id": self.manager.id},
        )
        self.assertEqual(approved.status_code, 200)
        self.assertEqual(approved.json()["status"], "APPROVED")

        again = self.client.put(
            f"/api/attendance/regularization/{created.json()['id']}/status",
            json={"status": "REJECTED", "rejected_reason": "Changed my mind"},
        )
        self.assertEqual(again.status_code, 409)
        self.assertEqual(again.json()["error"]["code"], "REGULARIZATION_ALREADY_PROCESSED")

        records = self.client.get(
            f"/api/attendance/employee/{self.employee.id}",
            params={"date_from": "2026-03-09", "date_to": "2026-03-09"},
        ).json()
        self.assertEqual(len(records), 1)
        self.assertTrue(records[0]["is_regularized"])
        self.assertEqual(records[0]["status"], "PRESENT")
        self.assertEqual(records[0]["regularization_id"], created.json()["id"])

    def test_holiday_check_honours_recurring_holidays(self) -> None:
        created = self.client.post(
            "/api/attendance/holiday",
            json={"name": "Republic Day", "date": "2024-10-29", "is_recurring": True},
        )
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()["date"], "2024-10-29")

        hit = self.client.get("/api/attendance/holiday/check", params={"date": "2026-10-29"}).json()
        miss = self.client.get("/api/attendance/holiday/check", params={"date": "2026-10-30"}).json()

        self.assertEqual(hit["date"], "2026-10-29")
        self.assertTrue(hit["is_holiday"])
        self.assertEqual(hit["holiday"]["name"], "Republic Day")
        self.assertFalse(miss["is_holiday"])
        self.assertIsNone(miss["holiday"])

    def test_trends_use_date_key_per_bucket(self) -> None:
        for day, status_value in (("2026-03-02", "PRESENT"), ("2026-03-03", "ABSENT"), ("2026-04-01", "LATE")):
            response = self.client.post(
                "/api/attendance",
                json={"employee_id": self.employee.id, "date": day, "status": status_value},
            )
            self.assertEqual(response.status_code, 201)

        response = self.client.get("/api/attendance/analytics/trends", params={"group_by": "month"})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual([item["date"] for item in body], ["2026-03", "2026-04"])
        self.assertEqual(body[0]["present"], 1)
        self.assertEqual(body[0]["absent"], 1)
        self.assertEqual(body[0]["total"], 2)
        self.assertEqual(body[1]["late"], 1)

    def test_duplicate_manual_record_conflicts(self) -> None:
        payload = {"employee_id": self.employee.id, "date": "2026-03-02", "status": "PRESENT"}
        self.assertEqual(self.client.post("/api/attendance", json=payload).status_code, 201)

        response = self.client.post("/api/attendance", json=payload)

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"]["code"], "DUPLICATE_ATTENDANCE")

    def test_unknown_route_uses_error_envelope(self) -> None:
        response = self.client.get("/api/unknown")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["code"], "NOT_FOUND")


if __name__ == "__main__":
    unittest.main()
