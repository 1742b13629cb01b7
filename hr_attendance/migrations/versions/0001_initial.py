"""Initial attendance schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

employee_status = postgresql.ENUM(
    "ACTIVE",
    "INACTIVE",
    "PROBATION",
    "TERMINATED",
    "RESIGNED",
    name="employee_status",
    create_type=False,
)
attendance_status = postgresql.ENUM(
    "PRESENT",
    "ABSENT",
    "LATE",
    "ON_LEAVE",
    "EARLY_DEPARTURE",
    "HALF_DAY",
    name="attendance_status",
    create_type=False,
)
attendance_location_type = postgresql.ENUM(
    "OFFICE",
    "REMOTE",
    "HYBRID",
    "FIELD",
    name="attendance_location_type",
    create_type=False,
)
attendance_break_type = postgresql.ENUM(
    "LUNCH",
    "COFFEE",
    "PERSONAL",
    "OTHER",
    name="attendance_break_type",
    create_type=False,
)
leave_type = postgresql.ENUM(
    "SICK",
    "VACATION",
    "UNPAID",
    "MATERNITY",
    "PATERNITY",
    "OTHER",
    name="leave_type",
    create_type=False,
)
leave_status = postgresql.ENUM(
    "PENDING",
    "APPROVED",
    "REJECTED",
    name="leave_status",
    create_type=False,
)
regularization_status = postgresql.ENUM(
    "PENDING",
    "APPROVED",
    "REJECTED",
    name="regularization_status",
    create_type=False,
)
holiday_type = postgresql.ENUM(
    "PUBLIC",
    "COMPANY",
    "REGIONAL",
    name="holiday_type",
    create_type=False,
)
audit_actor_type = postgresql.ENUM(
    "ADMIN",
    "EMPLOYEE",
    "SYSTEM",
    name="audit_actor_type",
    create_type=False,
)

ALL_ENUMS = (
    employee_status,
    attendance_status,
    attendance_location_type,
    attendance_break_type,
    leave_type,
    leave_status,
    regularization_status,
    holiday_type,
    audit_actor_type,
)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ALL_ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "departments",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.UniqueConstraint("name", name="uq_departments_name"),
    )

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("department_id", sa.Integer(), nullable=True),
        sa.Column("status", employee_status, nullable=False, server_default=sa.text("'ACTIVE'")),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_employees_department_id", "employees", ["department_id"], unique=False)

    op.create_table(
        "work_schedules",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("break_duration_minutes", sa.Integer(), nullable=False, server_default=sa.text("60")),
        sa.Column("working_days", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("is_flexible", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("grace_period_minutes", sa.Integer(), nullable=False, server_default=sa.text("15")),
        sa.Column("timezone", sa.String(length=64), nullable=True),
        sa.Column("effective_from", sa.Date(), nullable=True),
        sa.Column("effective_to", sa.Date(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("employee_id", name="uq_work_schedules_employee_id"),
    )

    op.create_table(
        "attendance_regularizations",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("day_date", sa.Date(), nullable=False),
        sa.Column("requested_check_in", sa.DateTime(timezone=True), nullable=True),
        sa.Column("requested_check_out", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reason", sa.String(length=500), nullable=False),
        sa.Column("status", regularization_status, nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column("approved_by_id", sa.Integer(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_reason", sa.String(length=500), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["approved_by_id"], ["employees.id"], ondelete="SET NULL"),
    )
    op.create_index(
        "ix_attendance_regularizations_employee_id",
        "attendance_regularizations",
        ["employee_id"],
        unique=False,
    )
    op.create_index(
        "ix_attendance_regularizations_day_date",
        "attendance_regularizations",
        ["day_date"],
        unique=False,
    )
    op.create_index(
        "uq_attendance_regularizations_pending_day",
        "attendance_regularizations",
        ["employee_id", "day_date"],
        unique=True,
        postgresql_where=sa.text("status = 'PENDING'"),
    )

    op.create_table(
        "attendance_records",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("work_date", sa.Date(), nullable=False),
        sa.Column("check_in", sa.DateTime(timezone=True), nullable=True),
        sa.Column("check_out", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", attendance_status, nullable=False, server_default=sa.text("'PRESENT'")),
        sa.Column("expected_check_in", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expected_check_out", sa.DateTime(timezone=True), nullable=True),
        sa.Column("late_by_minutes", sa.Integer(), nullable=True),
        sa.Column("early_by_minutes", sa.Integer(), nullable=True),
        sa.Column("work_hours", sa.Float(), nullable=True),
        sa.Column("total_hours", sa.Float(), nullable=True),
        sa.Column("overtime", sa.Float(), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("location_type", attendance_location_type, nullable=True),
        sa.Column("is_regularized", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("regularization_id", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["regularization_id"],
            ["attendance_regularizations.id"],
            ondelete="SET NULL",
        ),
        sa.UniqueConstraint("employee_id", "work_date", name="uq_attendance_records_employee_day"),
    )
    op.create_index("ix_attendance_records_employee_id", "attendance_records", ["employee_id"], unique=False)
    op.create_index("ix_attendance_records_work_date", "attendance_records", ["work_date"], unique=False)

    op.create_table(
        "attendance_breaks",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("attendance_id", sa.Integer(), nullable=False),
        sa.Column("type", attendance_break_type, nullable=False, server_default=sa.text("'OTHER'")),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["attendance_id"], ["attendance_records.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_attendance_breaks_attendance_id", "attendance_breaks", ["attendance_id"], unique=False)

    op.create_table(
        "leave_requests",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("type", leave_type, nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", leave_status, nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column("approved_by_id", sa.Integer(), nullable=True),
        sa.Column("note", sa.String(length=1000), nullable=True),
        sa.Column(
            "applied_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        _updated_at(),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["approved_by_id"], ["employees.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_leave_requests_employee_id", "leave_requests", ["employee_id"], unique=False)
    op.create_index("ix_leave_requests_applied_at", "leave_requests", ["applied_at"], unique=False)

    op.create_table(
        "holidays",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("day_date", sa.Date(), nullable=False),
        sa.Column("type", holiday_type, nullable=False, server_default=sa.text("'PUBLIC'")),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("description", sa.String(length=1000), nullable=True),
        _created_at(),
    )
    op.create_index("ix_holidays_day_date", "holidays", ["day_date"], unique=False)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("ts_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("actor_type", audit_actor_type, nullable=False),
        sa.Column("actor_id", sa.String(length=255), nullable=False),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("entity_type", sa.String(length=255), nullable=True),
        sa.Column("entity_id", sa.String(length=255), nullable=True),
        sa.Column("ip", sa.String(length=255), nullable=True),
        sa.Column("user_agent", sa.String(length=1024), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column(
            "details",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
    )
    op.create_index("ix_audit_logs_ts_utc", "audit_logs", ["ts_utc"], unique=False)
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_index("ix_audit_logs_ts_utc", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_holidays_day_date", table_name="holidays")
    op.drop_table("holidays")
    op.drop_index("ix_leave_requests_applied_at", table_name="leave_requests")
    op.drop_index("ix_leave_requests_employee_id", table_name="leave_requests")
    op.drop_table("leave_requests")
    op.drop_index("ix_attendance_breaks_attendance_id", table_name="attendance_breaks")
    op.drop_table("attendance_breaks")
    op.drop_index("ix_attendance_records_work_date", table_name="attendance_records")
    op.drop_index("ix_attendance_records_employee_id", table_name="attendance_records")
    op.drop_table("attendance_records")
    op.drop_index("uq_attendance_regularizations_pending_day", table_name="attendance_regularizations")
    op.drop_index("ix_attendance_regularizations_day_date", table_name="attendance_regularizations")
    op.drop_index("ix_attendance_regularizations_employee_id", table_name="attendance_regularizations")
    op.drop_table("attendance_regularizations")
    op.drop_table("work_schedules")
    op.drop_index("ix_employees_department_id", table_name="employees")
    op.drop_table("employees")
    op.drop_table("departments")

    bind = op.get_bind()
    for enum_type in reversed(ALL_ENUMS):
        enum_type.drop(bind, checkfirst=True)
