from datetime import date, datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from hr_attendance.models import (
    AttendanceStatus,
    BreakType,
    HolidayType,
    LeaveStatus,
    LeaveType,
    LocationType,
    RegularizationStatus,
)

TrendGroupBy = Literal["day", "week", "month"]


class _PatchModel(BaseModel):
    @model_validator(mode="after")
    def _require_any_field(self):  # type: ignore[no-untyped-def]
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class CheckInRequest(BaseModel):
    timestamp: datetime | None = None
    location: str | None = Field(default=None, max_length=255)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    location_type: LocationType | None = None


class CheckOutRequest(BaseModel):
    timestamp: datetime | None = None
    location: str | None = Field(default=None, max_length=255)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)


class AttendanceRecordCreate(BaseModel):
    employee_id: int = Field(ge=1)
    work_date: date = Field(validation_alias=AliasChoices("date", "work_date"))
    status: AttendanceStatus
    check_in: datetime | None = None
    check_out: datetime | None = None
    notes: str | None = None
    location: str | None = Field(default=None, max_length=255)
    location_type: LocationType | None = None
    overtime: float | None = Field(default=None, ge=0)
    work_hours: float | None = Field(default=None, ge=0)


class AttendanceRecordUpdate(_PatchModel):
    employee_id: int | None = Field(default=None, ge=1)
    work_date: date | None = Field(default=None, validation_alias=AliasChoices("date", "work_date"))
    status: AttendanceStatus | None = None
    check_in: datetime | None = None
    check_out: datetime | None = None
    notes: str | None = None
    location: str | None = Field(default=None, max_length=255)
    location_type: LocationType | None = None
    overtime: float | None = Field(default=None, ge=0)
    work_hours: float | None = Field(default=None, ge=0)


class BreakRead(BaseModel):
    id: int
    attendance_id: int
    type: BreakType
    start_time: datetime
    end_time: datetime | None
    duration_minutes: int | None
    notes: str | None

    model_config = ConfigDict(from_attributes=True)


class AttendanceRecordRead(BaseModel):
    id: int
    employee_id: int
    work_date: date = Field(
        validation_alias=AliasChoices("work_date", "date"),
        serialization_alias="date",
    )
    check_in: datetime | None
    check_out: datetime | None
    status: AttendanceStatus
    expected_check_in: datetime | None
    expected_check_out: datetime | None
    late_by_minutes: int | None
    early_by_minutes: int | None
    work_hours: float | None
    total_hours: float | None
    overtime: float | None
    location: str | None
    latitude: float | None
    longitude: float | None
    location_type: LocationType | None
    is_regularized: bool
    regularization_id: int | None
    notes: str | None
    breaks: list[BreakRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class WorkScheduleUpsert(BaseModel):
    employee_id: int = Field(ge=1)
    start_time: str = Field(max_length=5)
    end_time: str = Field(max_length=5)
    break_duration_minutes: int = Field(default=60, ge=0, le=480)
    working_days: list[int | str] | None = None
    is_flexible: bool = False
    grace_period_minutes: int = Field(default=15, ge=0, le=120)
    timezone: str | None = Field(default=None, max_length=64)
    effective_from: date | None = None
    effective_to: date | None = None


class WorkScheduleUpdate(_PatchModel):
    start_time: str | None = Field(default=None, max_length=5)
    end_time: str | None = Field(default=None, max_length=5)
    break_duration_minutes: int | None = Field(default=None, ge=0, le=480)
    working_days: list[int | str] | None = None
    is_flexible: bool | None = None
    grace_period_minutes: int | None = Field(default=None, ge=0, le=120)
    timezone: str | None = Field(default=None, max_length=64)
    effective_from: date | None = None
    effective_to: date | None = None


class WorkScheduleRead(BaseModel):
    id: int
    employee_id: int
    start_time: str
    end_time: str
    break_duration_minutes: int
    working_days: list[int]
    is_flexible: bool
    grace_period_minutes: int
    timezone: str | None
    effective_from: date | None
    effective_to: date | None
    expected_daily_work_hours: float | None = None

    model_config = ConfigDict(from_attributes=True)


class BreakCreate(BaseModel):
    attendance_id: int = Field(ge=1)
    type: BreakType = BreakType.OTHER
    start_time: datetime
    end_time: datetime | None = None
    notes: str | None = None


class BreakUpdate(_PatchModel):
    type: BreakType | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    notes: str | None = None


class RegularizationCreate(BaseModel):
    employee_id: int = Field(ge=1)
    day_date: date = Field(validation_alias=AliasChoices("date", "day_date"))
    requested_check_in: datetime | None = None
    requested_check_out: datetime | None = None
    reason: str = Field(max_length=500)


class RegularizationStatusUpdate(BaseModel):
    status: RegularizationStatus
    approved_by_id: int | None = Field(default=None, ge=1)
    rejected_reason: str | None = Field(default=None, max_length=500)


class RegularizationRead(BaseModel):
    id: int
    employee_id: int
    day_date: date = Field(
        validation_alias=AliasChoices("day_date", "date"),
        serialization_alias="date",
    )
    requested_check_in: datetime | None
    requested_check_out: datetime | None
    reason: str
    status: RegularizationStatus
    approved_by_id: int | None
    approved_at: datetime | None
    rejected_reason: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LeaveRequestCreate(BaseModel):
    employee_id: int = Field(ge=1)
    type: LeaveType
    start_date: date
    end_date: date
    note: str | None = Field(default=None, max_length=1000)


class LeaveStatusUpdate(BaseModel):
    status: LeaveStatus
    approved_by_id: int | None = Field(default=None, ge=1)


class LeaveRequestRead(BaseModel):
    id: int
    employee_id: int
    type: LeaveType
    start_date: date
    end_date: date
    status: LeaveStatus
    approved_by_id: int | None
    note: str | None
    applied_at: datetime

    model_config = ConfigDict(from_attributes=True)


class HolidayCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    day_date: date = Field(validation_alias=AliasChoices("date", "day_date"))
    type: HolidayType = HolidayType.PUBLIC
    is_recurring: bool = False
    description: str | None = Field(default=None, max_length=1000)


class HolidayUpdate(_PatchModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    day_date: date | None = Field(default=None, validation_alias=AliasChoices("date", "day_date"))
    type: HolidayType | None = None
    is_recurring: bool | None = None
    description: str | None = Field(default=None, max_length=1000)


class HolidayRead(BaseModel):
    id: int
    name: str
    day_date: date = Field(
        validation_alias=AliasChoices("day_date", "date"),
        serialization_alias="date",
    )
    type: HolidayType
    is_recurring: bool
    description: str | None

    model_config = ConfigDict(from_attributes=True)


class HolidayCheckResponse(BaseModel):
    day_date: date = Field(
        validation_alias=AliasChoices("day_date", "date"),
        serialization_alias="date",
    )
    is_holiday: bool
    holiday: HolidayRead | None = None


class AttendanceSummaryRead(BaseModel):
    total: int
    present: int
    absent: int
    late: int
    on_leave: int

    model_config = ConfigDict(from_attributes=True)


class AdvancedAttendanceSummaryRead(AttendanceSummaryRead):
    early_departure: int
    half_day: int
    avg_work_hours: float
    avg_overtime: float
    total_overtime: float
    holidays: int | None = None


class AttendanceTrendBucketRead(BaseModel):
    bucket: str = Field(
        validation_alias=AliasChoices("bucket", "date"),
        serialization_alias="date",
    )
    present: int = 0
    absent: int = 0
    late: int = 0
    on_leave: int = 0
    early_departure: int = 0
    half_day: int = 0
    total: int = 0

    model_config = ConfigDict(from_attributes=True)


class AbsenceAnalyticsItemRead(BaseModel):
    employee_id: int
    count: int

    model_config = ConfigDict(from_attributes=True)


class SoftDeleteResponse(BaseModel):
    ok: bool
    id: int
