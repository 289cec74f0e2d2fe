"""Employee API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, status
from sqlalchemy.exc import IntegrityError

from payroll_tracker.api.dependencies import DbSession
from payroll_tracker.api.schemas import (
    EmployeeCreate,
    EmployeeListResponse,
    EmployeeResponse,
    EmployeeUpdate,
    ErrorResponse,
)
from payroll_tracker.services import (
    EmployeeNotFoundError,
    EmployeeService,
    EmployeeValidationError,
)

router = APIRouter(prefix="/employees", tags=["employees"])


@router.get("", response_model=EmployeeListResponse)
async def list_employees(
    db: DbSession,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    pay_scale_type: str | None = None,
) -> EmployeeListResponse:
    """List employees ordered by name."""
    employees = await EmployeeService(db).list_employees(
        status=status_filter, pay_scale_type=pay_scale_type
    )
    return EmployeeListResponse(
        items=[EmployeeResponse.model_validate(e) for e in employees],
        total=len(employees),
    )


@router.post(
    "",
    response_model=EmployeeResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_employee(db: DbSession, payload: EmployeeCreate) -> EmployeeResponse:
    """Create an employee."""
    try:
        employee = await EmployeeService(db).create_employee(payload.model_dump())
        await db.commit()
    except EmployeeValidationError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"An employee with email {payload.email} already exists",
        )
    return EmployeeResponse.model_validate(employee)


@router.get(
    "/{employee_id}",
    response_model=EmployeeResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_employee(
    db: DbSession,
    employee_id: Annotated[UUID, Path()],
) -> EmployeeResponse:
    """Get a specific employee by ID."""
    try:
        employee = await EmployeeService(db).get_employee(employee_id)
    except EmployeeNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    return EmployeeResponse.model_validate(employee)


@router.patch(
    "/{employee_id}",
    response_model=EmployeeResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def update_employee(
    db: DbSession,
    employee_id: Annotated[UUID, Path()],
    payload: EmployeeUpdate,
) -> EmployeeResponse:
    """Update an employee; omitted fields are left unchanged."""
    try:
        employee = await EmployeeService(db).update_employee(
            employee_id, payload.model_dump(exclude_unset=True)
        )
        await db.commit()
    except EmployeeNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    except EmployeeValidationError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"An employee with email {payload.email} already exists",
        )
    return EmployeeResponse.model_validate(employee)


@router.delete(
    "/{employee_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_employee(
    db: DbSession,
    employee_id: Annotated[UUID, Path()],
) -> None:
    """Delete an employee. Existing payouts and time entries are kept."""
    try:
        await EmployeeService(db).delete_employee(employee_id)
        await db.commit()
    except EmployeeNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
