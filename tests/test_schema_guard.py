from __future__ import annotations

import unittest
from types import SimpleNamespace
from unittest.mock import patch

from hr_attendance.services.schema_guard import REQUIRED_TABLE_COLUMNS, verify_runtime_schema
from tests.support import make_engine


class _FakeResult:
    def __init__(self, value):
        self._value = value

    def scalar(self):  # type: ignore[no-untyped-def]
        return self._value


class _FakeConnection:
    def __init__(self, version_value):
        self._version_value = version_value

    def __enter__(self):  # type: ignore[no-untyped-def]
        return self

    def __exit__(self, exc_type, exc, tb):  # type: ignore[no-untyped-def]
        return False

    def execute(self, _statement):  # type: ignore[no-untyped-def]
        return _FakeResult(self._version_value)


class _FakeEngine:
    dialect = SimpleNamespace(name="postgresql")

    def __init__(self, version_value):
        self._version_value = version_value

    def connect(self):  # type: ignore[no-untyped-def]
        return _FakeConnection(self._version_value)


class _FakeInspector:
    def __init__(self, *, columns_by_table: dict[str, set[str]], enums: list[dict[str, object]]):
        self._columns_by_table = columns_by_table
        self._enums = enums

    def get_columns(self, table_name: str):  # type: ignore[no-untyped-def]
        columns = self._columns_by_table[table_name]
        return [{"name": item} for item in columns]

    def get_enums(self):  # type: ignore[no-untyped-def]
        return self._enums


_COMPLETE_ENUMS: list[dict[str, object]] = [
    {
        "name": "attendance_status",
        "labels": ["PRESENT", "ABSENT", "LATE", "ON_LEAVE", "EARLY_DEPARTURE", "HALF_DAY"],
    },
    {"name": "regularization_status", "labels": ["PENDING", "APPROVED", "REJECTED"]},
    {"name": "leave_status", "labels": ["PENDING", "APPROVED", "REJECTED"]},
]


class SchemaGuardTests(unittest.TestCase):
    def test_verify_runtime_schema_ok_when_required_columns_exist(self) -> None:
        fake_inspector = _FakeInspector(
            columns_by_table={name: set(columns) for name, columns in REQUIRED_TABLE_COLUMNS.items()},
            enums=_COMPLETE_ENUMS,
        )
        fake_engine = _FakeEngine("0001_initial")

        with patch("hr_attendance.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(fake_engine)  # type: ignore[arg-type]

        self.assertTrue(result.ok)
        self.assertEqual(result.issues, [])
        self.assertEqual(result.warnings, [])

    def test_verify_runtime_schema_reports_missing_columns(self) -> None:
        columns_by_table = {name: set(columns) for name, columns in REQUIRED_TABLE_COLUMNS.items()}
        columns_by_table["attendance_records"] = {"id", "employee_id", "work_date", "status"}
        columns_by_table["holidays"] = {"id", "name", "day_date"}
        fake_inspector = _FakeInspector(
            columns_by_table=columns_by_table,
            enums=[
                {"name": "attendance_status", "labels": ["PRESENT", "ABSENT", "LATE", "ON_LEAVE"]},
                {"name": "leave_status", "labels": ["PENDING", "APPROVED", "REJECTED"]},
            ],
        )
        fake_engine = _FakeEngine("")

        with patch("hr_attendance.services.schema_guard.inspect", return_value=fake_inspector):
            result = verify_runtime_schema(fake_engine)  # type: ignore[arg-type]

        self.assertFalse(result.ok)
        self.assertIn("MISSING_COLUMNS:attendance_records:is_regularized,regularization_id", result.issues)
        self.assertIn("MISSING_COLUMNS:holidays:is_recurring", result.issues)
        self.assertIn("MISSING_ENUM_VALUES:attendance_status:EARLY_DEPARTURE,HALF_DAY", result.issues)
        self.assertIn("ENUM_NOT_FOUND:regularization_status", result.warnings)
        self.assertIn("ALEMBIC_VERSION_EMPTY", result.issues)

    def test_sqlite_schema_without_migration_stamp(self) -> None:
        engine = make_engine()
        try:
            result = verify_runtime_schema(engine)
        finally:
            engine.dispose()

        self.assertFalse(result.ok)
        self.assertTrue(any(item.startswith("TABLE_UNREADABLE:alembic_version") for item in result.issues))
        self.assertFalse(any(item.startswith("MISSING_COLUMNS") for item in result.issues))
        self.assertIn("ENUM_CHECK_SKIPPED:sqlite", result.warnings)

    def test_sqlite_schema_with_migration_stamp(self) -> None:
        engine = make_engine()
        try:
            with engine.begin() as connection:
                connection.exec_driver_sql("CREATE TABLE alembic_version (version_num VARCHAR(32) NOT NULL)")
                connection.exec_driver_sql("INSERT INTO alembic_version (version_num) VALUES ('0001_initial')")

            result = verify_runtime_schema(engine)
        finally:
            engine.dispose()

        self.assertTrue(result.ok)
        self.assertEqual(result.issues, [])
        self.assertEqual(result.to_dict()["warning_count"], 1)


if __name__ == "__main__":
    unittest.main()
