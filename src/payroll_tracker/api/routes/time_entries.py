"""Time clock API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, status

from payroll_tracker.api.dependencies import DbSession
from payroll_tracker.api.schemas import (
    CheckInRequest,
    ErrorResponse,
    TimeEntryAdjustRequest,
    TimeEntryEditRequest,
    TimeEntryListResponse,
    TimeEntryResponse,
)
from payroll_tracker.models import DEFAULT_TIMEZONE, TimeEntry
from payroll_tracker.services import (
    AlreadyCheckedInError,
    EmployeeNotFoundError,
    EmployeeService,
    InvalidTransitionError,
    TimeClockService,
    TimeEntryNotFoundError,
)
from payroll_tracker.timeclock import InvalidTimeEditError, format_duration, format_local

router = APIRouter(prefix="/time-entries", tags=["time-entries"])


def _entry_response(entry: TimeEntry, timezone_name: str | None) -> TimeEntryResponse:
    """Response with wall-clock fields in the employee's own timezone."""
    zone = timezone_name or DEFAULT_TIMEZONE
    response = TimeEntryResponse.model_validate(entry)
    response.timezone = zone
    response.local_check_in = format_local(entry.check_in_time, zone, "%Y-%m-%d %H:%M")
    if entry.check_out_time is not None:
        response.local_check_out = format_local(entry.check_out_time, zone, "%Y-%m-%d %H:%M")
    response.duration = format_duration(entry.check_in_time, entry.check_out_time)
    return response


async def _list_response(
    service: TimeClockService, entries: list[TimeEntry]
) -> TimeEntryListResponse:
    zones = await service.employee_timezones({entry.employee_id for entry in entries})
    return TimeEntryListResponse(
        items=[_entry_response(entry, zones.get(entry.employee_id)) for entry in entries],
        total=len(entries),
    )


async def _employee_timezone(db: DbSession, employee_id: UUID) -> str:
    try:
        employee = await EmployeeService(db).get_employee(employee_id)
    except EmployeeNotFoundError:
        return DEFAULT_TIMEZONE
    return employee.timezone


# ============================================================================
# Check-in / check-out
# ============================================================================


@router.post(
    "/check-in",
    response_model=TimeEntryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def check_in(db: DbSession, payload: CheckInRequest) -> TimeEntryResponse:
    """Open a session for an employee."""
    try:
        employee = await EmployeeService(db).get_employee(payload.employee_id)
    except EmployeeNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    timezone_name = employee.timezone

    try:
        entry = await TimeClockService(db).check_in(employee, notes=payload.notes)
        await db.commit()
    except AlreadyCheckedInError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return _entry_response(entry, timezone_name)


@router.post(
    "/{entry_id}/check-out",
    response_model=TimeEntryResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def check_out(
    db: DbSession,
    entry_id: Annotated[UUID, Path()],
) -> TimeEntryResponse:
    """Close an open session."""
    service = TimeClockService(db)
    try:
        entry = await service.get_entry(entry_id)
        timezone_name = await _employee_timezone(db, entry.employee_id)
        entry = await service.check_out(entry_id, timezone_name=timezone_name)
        await db.commit()
    except TimeEntryNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Time entry not found")
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _entry_response(entry, timezone_name)


# ============================================================================
# Admin edits
# ============================================================================


@router.put(
    "/{entry_id}",
    response_model=TimeEntryResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def edit_entry(
    db: DbSession,
    entry_id: Annotated[UUID, Path()],
    payload: TimeEntryEditRequest,
) -> TimeEntryResponse:
    """Edit a session with local times of day in the employee's timezone."""
    service = TimeClockService(db)
    try:
        entry = await service.get_entry(entry_id)
        timezone_name = await _employee_timezone(db, entry.employee_id)
        entry = await service.edit_entry(
            entry_id,
            check_in=payload.check_in,
            check_out=payload.check_out,
            timezone_name=timezone_name,
            notes=payload.notes,
        )
        await db.commit()
    except TimeEntryNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Time entry not found")
    except InvalidTimeEditError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except AlreadyCheckedInError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return _entry_response(entry, timezone_name)


@router.post(
    "/{entry_id}/adjust",
    response_model=TimeEntryResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def adjust_entry(
    db: DbSession,
    entry_id: Annotated[UUID, Path()],
    payload: TimeEntryAdjustRequest,
) -> TimeEntryResponse:
    """Replace both timestamps of a session, recording the reason."""
    service = TimeClockService(db)
    try:
        entry = await service.adjust_entry(
            entry_id,
            check_in=payload.check_in_time,
            check_out=payload.check_out_time,
            reason=payload.reason,
        )
        timezone_name = await _employee_timezone(db, entry.employee_id)
        await db.commit()
    except TimeEntryNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Time entry not found")
    except InvalidTimeEditError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _entry_response(entry, timezone_name)


@router.delete(
    "/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_entry(
    db: DbSession,
    entry_id: Annotated[UUID, Path()],
) -> None:
    """Delete a session."""
    try:
        await TimeClockService(db).delete_entry(entry_id)
        await db.commit()
    except TimeEntryNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Time entry not found")


# ============================================================================
# Listings
# ============================================================================


@router.get("/today", response_model=TimeEntryListResponse)
async def list_today_entries(
    db: DbSession,
    employee_id: UUID | None = None,
) -> TimeEntryListResponse:
    """Sessions started today, each in its employee's own timezone."""
    service = TimeClockService(db)
    return await _list_response(service, await service.list_today_entries(employee_id))


@router.get("/recent", response_model=TimeEntryListResponse)
async def list_recent_entries(
    db: DbSession,
    employee_id: UUID | None = None,
) -> TimeEntryListResponse:
    """Sessions started in the last 48 hours."""
    service = TimeClockService(db)
    return await _list_response(service, await service.list_recent_entries(employee_id))


@router.get("/active", response_model=TimeEntryListResponse)
async def list_active_entries(db: DbSession) -> TimeEntryListResponse:
    """Open sessions."""
    service = TimeClockService(db)
    return await _list_response(service, await service.list_active_entries())


@router.get("/completed", response_model=TimeEntryListResponse)
async def list_completed_entries(
    db: DbSession,
    employee_ids: Annotated[list[UUID], Query()],
) -> TimeEntryListResponse:
    """Completed sessions available to the hourly calculator."""
    service = TimeClockService(db)
    return await _list_response(service, await service.list_completed_entries(employee_ids))
