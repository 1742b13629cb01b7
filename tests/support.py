from __future__ import annotations

from collections.abc import Generator
from datetime import datetime, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from hr_attendance.db import Base
from hr_attendance.models import Department, Employee, EmployeeStatus, WorkSchedule


def make_engine() -> Engine:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN; emit it ourselves so SAVEPOINT behaves.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, _record):  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(connection):  # type: ignore[no-untyped-def]
        connection.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    return engine


def make_session(engine: Engine) -> Session:
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    return factory()


def override_get_db(db: Session):  # type: ignore[no-untyped-def]
    def _override() -> Generator[Session, None, None]:
        yield db

    return _override


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def add_employee(
    db: Session,
    *,
    full_name: str = "Test User",
    status: EmployeeStatus = EmployeeStatus.ACTIVE,
    department: Department | None = None,
) -> Employee:
    employee = Employee(full_name=full_name, status=status, department=department)
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


def add_schedule(
    db: Session,
    employee: Employee,
    *,
    start_time: str = "09:00",
    end_time: str = "18:00",
    break_duration_minutes: int = 60,
    grace_period_minutes: int = 15,
    timezone_name: str | None = None,
) -> WorkSchedule:
    schedule = WorkSchedule(
        employee_id=employee.id,
        start_time=start_time,
        end_time=end_time,
        break_duration_minutes=break_duration_minutes,
        grace_period_minutes=grace_period_minutes,
        timezone=timezone_name,
    )
    db.add(schedule)
    db.commit()
    db.refresh(schedule)
    return schedule
