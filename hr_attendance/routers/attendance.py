from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from hr_attendance.audit import log_audit
from hr_attendance.db import get_db
from hr_attendance.models import (
    AttendanceStatus,
    AuditActorType,
    HolidayType,
    LeaveStatus,
    RegularizationStatus,
)
from hr_attendance.schemas import (
    AbsenceAnalyticsItemRead,
    AdvancedAttendanceSummaryRead,
    AttendanceRecordCreate,
    AttendanceRecordRead,
    AttendanceRecordUpdate,
    AttendanceSummaryRead,
    AttendanceTrendBucketRead,
    BreakCreate,
    BreakRead,
    BreakUpdate,
    CheckInRequest,
    CheckOutRequest,
    HolidayCheckResponse,
    HolidayCreate,
    HolidayRead,
    HolidayUpdate,
    LeaveRequestCreate,
    LeaveRequestRead,
    LeaveStatusUpdate,
    RegularizationCreate,
    RegularizationRead,
    RegularizationStatusUpdate,
    SoftDeleteResponse,
    TrendGroupBy,
    WorkScheduleRead,
    WorkScheduleUpdate,
    WorkScheduleUpsert,
)
from hr_attendance.services import analytics, attendance, breaks, holidays, leaves, regularizations, schedules
from hr_attendance.services.schedule_resolver import expected_daily_work_hours

router = APIRouter(prefix="/api/attendance", tags=["attendance"])


def _client_ip(request: Request) -> str | None:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


def _user_agent(request: Request) -> str | None:
    return request.headers.get("user-agent")


def _audit(
    db: Session,
    request: Request,
    *,
    action: str,
    entity_type: str,
    entity_id: int | None,
    actor_type: AuditActorType = AuditActorType.ADMIN,
    details: dict[str, Any] | None = None,
) -> None:
    log_audit(
        db,
        actor_type=actor_type,
        actor_id=getattr(request.state, "actor_id", "system"),
        action=action,
        success=True,
        entity_type=entity_type,
        entity_id=entity_id,
        ip=_client_ip(request),
        user_agent=_user_agent(request),
        details=details,
        request_id=getattr(request.state, "request_id", None),
    )


def _schedule_read(schedule) -> WorkScheduleRead:  # type: ignore[no-untyped-def]
    read = WorkScheduleRead.model_validate(schedule)
    read.expected_daily_work_hours = expected_daily_work_hours(schedule)
    return read


@router.get("", response_model=list[AttendanceRecordRead])
def list_attendance(
    employee_id: int | None = Query(default=None, ge=1),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    status_filter: AttendanceStatus | None = Query(default=None, alias="status"),
    take: int | None = Query(default=None, ge=1),
    skip: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> list[AttendanceRecordRead]:
    records = attendance.list_attendance(
        db,
        employee_id=employee_id,
        date_from=date_from,
        date_to=date_to,
        status=status_filter,
        take=take,
        skip=skip,
    )
    return [AttendanceRecordRead.model_validate(item) for item in records]


@router.post("", response_model=AttendanceRecordRead, status_code=status.HTTP_201_CREATED)
def record_attendance(
    payload: AttendanceRecordCreate,
    request: Request,
    db: Session = Depends(get_db),
) -> AttendanceRecordRead:
    record = attendance.record_attendance(db, payload)
    request.state.employee_id = record.employee_id
    request.state.attendance_id = record.id
    result = AttendanceRecordRead.model_validate(record)
    _audit(
        db,
        request,
        action="ATTENDANCE_RECORDED",
        entity_type="attendance_record",
        entity_id=record.id,
        details={"employee_id": record.employee_id, "status": record.status.value},
    )
    return result


@router.get("/employee/{employee_id}", response_model=list[AttendanceRecordRead])
def list_employee_attendance(
    employee_id: int,
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    status_filter: AttendanceStatus | None = Query(default=None, alias="status"),
    take: int | None = Query(default=None, ge=1),
    skip: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> list[AttendanceRecordRead]:
    records = attendance.list_attendance(
        db,
        employee_id=employee_id,
        date_from=date_from,
        date_to=date_to,
        status=status_filter,
        take=take,
        skip=skip,
    )
    return [AttendanceRecordRead.model_validate(item) for item in records]


@router.post(
    "/employee/{employee_id}/check-in",
    response_model=AttendanceRecordRead,
    status_code=status.HTTP_201_CREATED,
)
def check_in(
    employee_id: int,
    payload: CheckInRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> AttendanceRecordRead:
    request.state.employee_id = employee_id
    record = attendance.check_in(db, employee_id, payload)
    request.state.attendance_id = record.id
    result = AttendanceRecordRead.model_validate(record)
    _audit(
        db,
        request,
        action="ATTENDANCE_CHECK_IN",
        entity_type="attendance_record",
        entity_id=record.id,
        actor_type=AuditActorType.EMPLOYEE,
        details={
            "employee_id": employee_id,
            "status": record.status.value,
            "late_by_minutes": record.late_by_minutes,
        },
    )
    return result


@router.post("/employee/{employee_id}/check-out", response_model=AttendanceRecordRead)
def check_out(
    employee_id: int,
    payload: CheckOutRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> AttendanceRecordRead:
    request.state.employee_id = employee_id
    record = attendance.check_out(db, employee_id, payload)
    request.state.attendance_id = record.id
    result = AttendanceRecordRead.model_validate(record)
    _audit(
        db,
        request,
        action="ATTENDANCE_CHECK_OUT",
        entity_type="attendance_record",
        entity_id=record.id,
        actor_type=AuditActorType.EMPLOYEE,
        details={
            "employee_id": employee_id,
            "work_hours": record.work_hours,
            "overtime": record.overtime,
            "early_by_minutes": record.early_by_minutes,
        },
    )
    return result


# Work schedules


@router.get("/schedule/{employee_id}", response_model=WorkScheduleRead)
def get_schedule(employee_id: int, db: Session = Depends(get_db)) -> WorkScheduleRead:
    return _schedule_read(schedules.get_work_schedule(db, employee_id))


@router.post("/schedule", response_model=WorkScheduleRead)
def upsert_schedule(
    payload: WorkScheduleUpsert,
    request: Request,
    db: Session = Depends(get_db),
) -> WorkScheduleRead:
    schedule = schedules.upsert_work_schedule(db, payload)
    result = _schedule_read(schedule)
    _audit(
        db,
        request,
        action="WORK_SCHEDULE_SAVED",
        entity_type="work_schedule",
        entity_id=schedule.id,
        details={"employee_id": schedule.employee_id},
    )
    return result


@router.put("/schedule/{employee_id}", response_model=WorkScheduleRead)
def update_schedule(
    employee_id: int,
    payload: WorkScheduleUpdate,
    request: Request,
    db: Session = Depends(get_db),
) -> WorkScheduleRead:
    schedule = schedules.update_work_schedule(db, employee_id, payload)
    result = _schedule_read(schedule)
    _audit(
        db,
        request,
        action="WORK_SCHEDULE_UPDATED",
        entity_type="work_schedule",
        entity_id=schedule.id,
        details={"employee_id": employee_id, "fields": sorted(payload.model_fields_set)},
    )
    return result


@router.delete("/schedule/{employee_id}", response_model=SoftDeleteResponse)
def delete_schedule(
    employee_id: int,
    request: Request,
    db: Session = Depends(get_db),
) -> SoftDeleteResponse:
    schedule = schedules.delete_work_schedule(db, employee_id)
    _audit(
        db,
        request,
        action="WORK_SCHEDULE_DELETED",
        entity_type="work_schedule",
        entity_id=schedule.id,
        details={"employee_id": employee_id},
    )
    return SoftDeleteResponse(ok=True, id=schedule.id)


# Breaks


@router.post("/break", response_model=BreakRead, status_code=status.HTTP_201_CREATED)
def create_break(
    payload: BreakCreate,
    request: Request,
    db: Session = Depends(get_db),
) -> BreakRead:
    item = breaks.create_break(db, payload)
    request.state.attendance_id = item.attendance_id
    result = BreakRead.model_validate(item)
    _audit(
        db,
        request,
        action="BREAK_CREATED",
        entity_type="attendance_break",
        entity_id=item.id,
        details={"attendance_id": item.attendance_id, "type": item.type.value},
    )
    return result


@router.put("/break/{break_id}", response_model=BreakRead)
def update_break(
    break_id: int,
    payload: BreakUpdate,
    request: Request,
    db: Session = Depends(get_db),
) -> BreakRead:
    item = breaks.update_break(db, break_id, payload)
    request.state.attendance_id = item.attendance_id
    result = BreakRead.model_validate(item)
    _audit(
        db,
        request,
        action="BREAK_UPDATED",
        entity_type="attendance_break",
        entity_id=item.id,
        details={"attendance_id": item.attendance_id, "duration_minutes": item.duration_minutes},
    )
    return result


@router.delete("/break/{break_id}", response_model=SoftDeleteResponse)
def delete_break(
    break_id: int,
    request: Request,
    db: Session = Depends(get_db),
) -> SoftDeleteResponse:
    item = breaks.delete_break(db, break_id)
    _audit(
        db,
        request,
        action="BREAK_DELETED",
        entity_type="attendance_break",
        entity_id=break_id,
        details={"attendance_id": item.attendance_id},
    )
    return SoftDeleteResponse(ok=True, id=break_id)


# Regularizations


@router.post("/regularization", response_model=RegularizationRead, status_code=status.HTTP_201_CREATED)
def create_regularization(
    payload: RegularizationCreate,
    request: Request,
    db: Session = Depends(get_db),
) -> RegularizationRead:
    request.state.employee_id = payload.employee_id
    regularization = regularizations.create_regularization(db, payload)
    result = RegularizationRead.model_validate(regularization)
    _audit(
        db,
        request,
        action="REGULARIZATION_CREATED",
        entity_type="attendance_regularization",
        entity_id=regularization.id,
        actor_type=AuditActorType.EMPLOYEE,
        details={"employee_id": regularization.employee_id, "date": regularization.day_date.isoformat()},
    )
    return result


@router.put("/regularization/{regularization_id}/status", response_model=RegularizationRead)
def update_regularization_status(
    regularization_id: int,
    payload: RegularizationStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
) -> RegularizationRead:
    regularization = regularizations.update_regularization_status(db, regularization_id, payload)
    request.state.employee_id = regularization.employee_id
    result = RegularizationRead.model_validate(regularization)
    _audit(
        db,
        request,
        action=f"REGULARIZATION_{regularization.status.value}",
        entity_type="attendance_regularization",
        entity_id=regularization.id,
        details={
            "employee_id": regularization.employee_id,
            "approved_by_id": regularization.approved_by_id,
            "rejected_reason": regularization.rejected_reason,
        },
    )
    return result


@router.get("/regularization", response_model=list[RegularizationRead])
def list_regularizations(
    employee_id: int | None = Query(default=None, ge=1),
    status_filter: RegularizationStatus | None = Query(default=None, alias="status"),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    take: int | None = Query(default=None, ge=1),
    skip: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> list[RegularizationRead]:
    items = regularizations.list_regularizations(
        db,
        employee_id=employee_id,
        status=status_filter,
        date_from=date_from,
        date_to=date_to,
        take=take,
        skip=skip,
    )
    return [RegularizationRead.model_validate(item) for item in items]


@router.get("/regularization/{regularization_id}", response_model=RegularizationRead)
def get_regularization(regularization_id: int, db: Session = Depends(get_db)) -> RegularizationRead:
    return RegularizationRead.model_validate(regularizations.get_regularization(db, regularization_id))


# Leave requests


@router.post("/leave", response_model=LeaveRequestRead, status_code=status.HTTP_201_CREATED)
def create_leave_request(
    payload: LeaveRequestCreate,
    request: Request,
    db: Session = Depends(get_db),
) -> LeaveRequestRead:
    request.state.employee_id = payload.employee_id
    leave = leaves.create_leave_request(db, payload)
    result = LeaveRequestRead.model_validate(leave)
    _audit(
        db,
        request,
        action="LEAVE_REQUEST_CREATED",
        entity_type="leave_request",
        entity_id=leave.id,
        actor_type=AuditActorType.EMPLOYEE,
        details={
            "employee_id": leave.employee_id,
            "type": leave.type.value,
            "start_date": leave.start_date.isoformat(),
            "end_date": leave.end_date.isoformat(),
        },
    )
    return result


@router.put("/leave/{leave_id}/status", response_model=LeaveRequestRead)
def update_leave_status(
    leave_id: int,
    payload: LeaveStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
) -> LeaveRequestRead:
    leave = leaves.update_leave_status(db, leave_id, payload)
    request.state.employee_id = leave.employee_id
    result = LeaveRequestRead.model_validate(leave)
    _audit(
        db,
        request,
        action=f"LEAVE_REQUEST_{leave.status.value}",
        entity_type="leave_request",
        entity_id=leave.id,
        details={"employee_id": leave.employee_id, "approved_by_id": leave.approved_by_id},
    )
    return result


@router.get("/leave", response_model=list[LeaveRequestRead])
def list_leave_requests(
    employee_id: int | None = Query(default=None, ge=1),
    status_filter: LeaveStatus | None = Query(default=None, alias="status"),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    take: int | None = Query(default=None, ge=1),
    skip: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> list[LeaveRequestRead]:
    items = leaves.list_leave_requests(
        db,
        employee_id=employee_id,
        status=status_filter,
        date_from=date_from,
        date_to=date_to,
        take=take,
        skip=skip,
    )
    return [LeaveRequestRead.model_validate(item) for item in items]


@router.get("/leave/{leave_id}", response_model=LeaveRequestRead)
def get_leave_request(leave_id: int, db: Session = Depends(get_db)) -> LeaveRequestRead:
    return LeaveRequestRead.model_validate(leaves.get_leave_request(db, leave_id))


# Holidays


@router.get("/holiday/check", response_model=HolidayCheckResponse)
def check_holiday(
    day: date = Query(alias="date"),
    db: Session = Depends(get_db),
) -> HolidayCheckResponse:
    holiday = holidays.is_holiday(db, day)
    return HolidayCheckResponse(
        day_date=day,
        is_holiday=holiday is not None,
        holiday=HolidayRead.model_validate(holiday) if holiday is not None else None,
    )


@router.get("/holiday", response_model=list[HolidayRead])
def list_holidays(
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    holiday_type: HolidayType | None = Query(default=None, alias="type"),
    take: int | None = Query(default=None, ge=1),
    skip: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> list[HolidayRead]:
    items = holidays.list_holidays(
        db,
        date_from=date_from,
        date_to=date_to,
        holiday_type=holiday_type,
        take=take,
        skip=skip,
    )
    return [HolidayRead.model_validate(item) for item in items]


@router.post("/holiday", response_model=HolidayRead, status_code=status.HTTP_201_CREATED)
def create_holiday(
    payload: HolidayCreate,
    request: Request,
    db: Session = Depends(get_db),
) -> HolidayRead:
    holiday = holidays.create_holiday(db, payload)
    result = HolidayRead.model_validate(holiday)
    _audit(
        db,
        request,
        action="HOLIDAY_CREATED",
        entity_type="holiday",
        entity_id=holiday.id,
        details={"name": holiday.name, "date": holiday.day_date.isoformat()},
    )
    return result


@router.put("/holiday/{holiday_id}", response_model=HolidayRead)
def update_holiday(
    holiday_id: int,
    payload: HolidayUpdate,
    request: Request,
    db: Session = Depends(get_db),
) -> HolidayRead:
    holiday = holidays.update_holiday(db, holiday_id, payload)
    result = HolidayRead.model_validate(holiday)
    _audit(
        db,
        request,
        action="HOLIDAY_UPDATED",
        entity_type="holiday",
        entity_id=holiday.id,
        details={"fields": sorted(payload.model_fields_set)},
    )
    return result


@router.delete("/holiday/{holiday_id}", response_model=SoftDeleteResponse)
def delete_holiday(
    holiday_id: int,
    request: Request,
    db: Session = Depends(get_db),
) -> SoftDeleteResponse:
    holiday = holidays.delete_holiday(db, holiday_id)
    _audit(
        db,
        request,
        action="HOLIDAY_DELETED",
        entity_type="holiday",
        entity_id=holiday_id,
        details={"name": holiday.name},
    )
    return SoftDeleteResponse(ok=True, id=holiday_id)


# Analytics


@router.get("/analytics/summary", response_model=AttendanceSummaryRead)
def attendance_summary(
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    department_id: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
) -> AttendanceSummaryRead:
    summary = analytics.get_attendance_summary(
        db,
        date_from=date_from,
        date_to=date_to,
        department_id=department_id,
    )
    return AttendanceSummaryRead.model_validate(summary)


@router.get("/analytics/advanced", response_model=AdvancedAttendanceSummaryRead)
def advanced_attendance_summary(
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    department_id: int | None = Query(default=None, ge=1),
    employee_id: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
) -> AdvancedAttendanceSummaryRead:
    summary = analytics.get_advanced_attendance_summary(
        db,
        date_from=date_from,
        date_to=date_to,
        department_id=department_id,
        employee_id=employee_id,
    )
    return AdvancedAttendanceSummaryRead.model_validate(summary)


@router.get("/analytics/trends", response_model=list[AttendanceTrendBucketRead])
def attendance_trends(
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    employee_id: int | None = Query(default=None, ge=1),
    group_by: TrendGroupBy = Query(default="day"),
    db: Session = Depends(get_db),
) -> list[AttendanceTrendBucketRead]:
    buckets = analytics.get_attendance_trends(
        db,
        date_from=date_from,
        date_to=date_to,
        employee_id=employee_id,
        group_by=group_by,
    )
    return [AttendanceTrendBucketRead.model_validate(item) for item in buckets]


@router.get("/analytics/absence", response_model=list[AbsenceAnalyticsItemRead])
def absence_analytics(
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[AbsenceAnalyticsItemRead]:
    items = analytics.get_absence_analytics(db, date_from=date_from, date_to=date_to)
    return [AbsenceAnalyticsItemRead.model_validate(item) for item in items]


# Single attendance records. Declared last so the literal segments above win.


@router.get("/{attendance_id}/breaks", response_model=list[BreakRead])
def list_breaks(attendance_id: int, db: Session = Depends(get_db)) -> list[BreakRead]:
    return [BreakRead.model_validate(item) for item in breaks.list_breaks(db, attendance_id)]


@router.get("/{attendance_id}", response_model=AttendanceRecordRead)
def get_attendance(attendance_id: int, db: Session = Depends(get_db)) -> AttendanceRecordRead:
    return AttendanceRecordRead.model_validate(attendance.get_attendance(db, attendance_id))


@router.put("/{attendance_id}", response_model=AttendanceRecordRead)
def update_attendance(
    attendance_id: int,
    payload: AttendanceRecordUpdate,
    request: Request,
    db: Session = Depends(get_db),
) -> AttendanceRecordRead:
    record = attendance.update_attendance(db, attendance_id, payload)
    request.state.employee_id = record.employee_id
    request.state.attendance_id = record.id
    result = AttendanceRecordRead.model_validate(record)
    _audit(
        db,
        request,
        action="ATTENDANCE_UPDATED",
        entity_type="attendance_record",
        entity_id=record.id,
        details={"fields": sorted(payload.model_fields_set)},
    )
    return result
