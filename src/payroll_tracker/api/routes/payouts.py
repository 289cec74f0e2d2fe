"""Payout API endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, status

from payroll_tracker.api.dependencies import DbSession, ViewerEmail
from payroll_tracker.api.schemas import (
    DashboardStatsResponse,
    ErrorResponse,
    HourlyPayoutEditRequest,
    PayoutCalculateRequest,
    PayoutCalculateResponse,
    PayoutListResponse,
    PayoutResponse,
    PayoutUpdateRequest,
)
from payroll_tracker.calculators import LineItemBuilder, PayoutValidationError
from payroll_tracker.services import (
    EmployeeNotFoundError,
    EmployeeService,
    PayoutFilters,
    PayoutNotFoundError,
    PayoutService,
    TimeEntryNotFoundError,
)
from payroll_tracker.timeclock import InvalidTimeEditError

router = APIRouter(prefix="/payouts", tags=["payouts"])


# ============================================================================
# Calculator
# ============================================================================


@router.post(
    "/calculate",
    response_model=PayoutCalculateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def calculate_payouts(
    db: DbSession,
    payload: PayoutCalculateRequest,
) -> PayoutCalculateResponse:
    """Calculate payouts for the selected employees and record them."""
    try:
        result, payouts = await PayoutService(db).calculate_manual_payouts(
            calculation_type=payload.calculation_type,
            employee_ids=payload.employee_ids,
            project_value=payload.project_value,
            project_title=payload.project_title,
            is_first_time=payload.is_first_time,
            quoted_by_id=payload.quoted_by_id,
            start_time=payload.start_time,
            end_time=payload.end_time,
            time_entry_ids=payload.time_entry_ids,
        )
        await db.commit()
    except PayoutValidationError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except (EmployeeNotFoundError, TimeEntryNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return PayoutCalculateResponse(
        payouts=[PayoutResponse.model_validate(p) for p in payouts],
        total_amount=LineItemBuilder.sum_amounts(result.lines),
        warnings=result.warnings,
    )


# ============================================================================
# Reporting
# ============================================================================


@router.get(
    "",
    response_model=PayoutListResponse,
    responses={400: {"model": ErrorResponse}},
)
async def list_payouts(
    db: DbSession,
    viewer_email: ViewerEmail,
    employee_id: UUID | None = None,
    calculation_type: str | None = None,
    project_title: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> PayoutListResponse:
    """List payouts, newest first, with optional filters.

    Dates are calendar days in the viewer's timezone; ``date_to`` includes
    the whole day.
    """
    if date_from and date_to and date_from > date_to:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="date_from must not be after date_to",
        )

    timezone_name = await EmployeeService(db).get_viewer_timezone(viewer_email)
    payouts, total_amount = await PayoutService(db).list_payouts(
        PayoutFilters(
            employee_id=employee_id,
            calculation_type=calculation_type,
            project_title=project_title,
            date_from=date_from,
            date_to=date_to,
            timezone=timezone_name,
        )
    )
    return PayoutListResponse(
        items=[PayoutResponse.model_validate(p) for p in payouts],
        total=len(payouts),
        total_amount=total_amount,
    )


@router.get("/stats", response_model=DashboardStatsResponse)
async def dashboard_stats(
    db: DbSession,
    viewer_email: ViewerEmail,
) -> DashboardStatsResponse:
    """Headline numbers for the dashboard; the month is the viewer's."""
    timezone_name = await EmployeeService(db).get_viewer_timezone(viewer_email)
    stats = await PayoutService(db).dashboard_stats(timezone_name)
    return DashboardStatsResponse.model_validate(stats)


# ============================================================================
# Corrections
# ============================================================================


@router.patch(
    "/{payout_id}",
    response_model=PayoutResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_payout(
    db: DbSession,
    payout_id: Annotated[UUID, Path()],
    payload: PayoutUpdateRequest,
) -> PayoutResponse:
    """Correct a payout's amount, rate, value, hours or collaborator count."""
    try:
        payout = await PayoutService(db).update_payout(
            payout_id, payload.model_dump(exclude_unset=True)
        )
        await db.commit()
    except PayoutNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payout not found")
    except PayoutValidationError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    return PayoutResponse.model_validate(payout)


@router.post(
    "/{payout_id}/hourly-edit",
    response_model=PayoutResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def edit_hourly_payout(
    db: DbSession,
    payout_id: Annotated[UUID, Path()],
    payload: HourlyPayoutEditRequest,
) -> PayoutResponse:
    """Correct the clock times of an hourly payout."""
    try:
        payout = await PayoutService(db).edit_hourly_payout(
            payout_id,
            clock_in_time=payload.clock_in_time,
            clock_out_time=payload.clock_out_time,
            reason=payload.edit_reason,
        )
        await db.commit()
    except PayoutNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payout not found")
    except PayoutValidationError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except InvalidTimeEditError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return PayoutResponse.model_validate(payout)


@router.delete(
    "/{payout_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_payout(
    db: DbSession,
    payout_id: Annotated[UUID, Path()],
) -> None:
    """Delete a payout."""
    try:
        await PayoutService(db).delete_payout(payout_id)
        await db.commit()
    except PayoutNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payout not found")
