"""Pydantic schemas for API request/response models."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from payroll_tracker.calculators import CalculationType


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    code: str | None = None


# ============================================================================
# Employee schemas
# ============================================================================


class EmployeeBase(BaseModel):
    """Fields shared by employee create and response schemas."""

    name: str
    email: str
    phone: str | None = None
    department: str | None = None
    position: str | None = None
    status: str = "active"
    pay_scale_type: str
    hourly_rate: Decimal | None = None
    project_rate_1_member: Decimal | None = None
    project_rate_2_members: Decimal | None = None
    project_rate_3_members: Decimal | None = None
    project_rate_4_members: Decimal | None = None
    project_rate_5_members: Decimal | None = None
    is_admin: bool = False
    timezone: str = "America/Chicago"


class EmployeeCreate(EmployeeBase):
    """Schema for creating an employee."""


class EmployeeUpdate(BaseModel):
    """Partial employee update; only sent fields change."""

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    department: str | None = None
    position: str | None = None
    status: str | None = None
    pay_scale_type: str | None = None
    hourly_rate: Decimal | None = None
    project_rate_1_member: Decimal | None = None
    project_rate_2_members: Decimal | None = None
    project_rate_3_members: Decimal | None = None
    project_rate_4_members: Decimal | None = None
    project_rate_5_members: Decimal | None = None
    is_admin: bool | None = None
    timezone: str | None = None


class EmployeeResponse(EmployeeBase):
    """Schema for employee response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: datetime


class EmployeeListResponse(BaseModel):
    """Schema for listing employees."""

    items: list[EmployeeResponse]
    total: int


# ============================================================================
# Time entry schemas
# ============================================================================


class CheckInRequest(BaseModel):
    """Schema for checking an employee in."""

    employee_id: UUID
    notes: str | None = None


class TimeEntryEditRequest(BaseModel):
    """Admin edit with local ``HH:MM`` times in the employee's timezone.

    An empty ``check_out`` reopens the session.
    """

    check_in: str = Field(..., pattern=r"^\d{1,2}:\d{2}$")
    check_out: str | None = None
    notes: str | None = None


class TimeEntryAdjustRequest(BaseModel):
    """Admin correction with full timestamps and a mandatory reason."""

    check_in_time: datetime
    check_out_time: datetime
    reason: str = Field(..., min_length=1)


class TimeEntryResponse(BaseModel):
    """Schema for time entry response, with local display fields."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    employee_id: UUID
    employee_name: str
    check_in_time: datetime
    check_out_time: datetime | None = None
    total_hours: Decimal | None = None
    status: str
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    timezone: str | None = None
    local_check_in: str | None = None
    local_check_out: str | None = None
    duration: str | None = None


class TimeEntryListResponse(BaseModel):
    """Schema for listing time entries."""

    items: list[TimeEntryResponse]
    total: int


# ============================================================================
# Payout schemas
# ============================================================================


class PayoutResponse(BaseModel):
    """Schema for payout response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    employee_id: UUID
    employee_name: str
    calculation_type: str
    payout_kind: str
    amount: Decimal
    rate: Decimal
    project_value: Decimal | None = None
    collaborators_count: int | None = None
    project_title: str | None = None
    quoted_by_id: UUID | None = None
    quoted_by_name: str | None = None
    is_first_time: bool
    hours_worked: Decimal | None = None
    clock_in_time: datetime | None = None
    clock_out_time: datetime | None = None
    edit_reason: str | None = None
    is_edited: bool
    source: str
    job_id: str | None = None
    created_at: datetime
    updated_at: datetime


class PayoutListResponse(BaseModel):
    """Schema for listing payouts with their total."""

    items: list[PayoutResponse]
    total: int
    total_amount: Decimal


class PayoutCalculateRequest(BaseModel):
    """Calculator request; project and hourly fields are mode specific."""

    calculation_type: CalculationType
    employee_ids: list[UUID]

    # Project mode
    project_value: Decimal | None = None
    project_title: str | None = None
    is_first_time: bool = False
    quoted_by_id: UUID | None = None

    # Hourly mode: either manual times or tracked sessions
    start_time: str | None = None
    end_time: str | None = None
    time_entry_ids: list[UUID] | None = None


class PayoutCalculateResponse(BaseModel):
    """Recorded payouts, their total and any skipped-employee warnings."""

    payouts: list[PayoutResponse]
    total_amount: Decimal
    warnings: list[str] = []


class PayoutUpdateRequest(BaseModel):
    """Admin correction of a payout."""

    amount: Decimal | None = None
    rate: Decimal | None = None
    project_value: Decimal | None = None
    hours_worked: Decimal | None = None
    collaborators_count: int | None = Field(default=None, ge=1)


class HourlyPayoutEditRequest(BaseModel):
    """Correct the clock times of an hourly payout."""

    clock_in_time: datetime
    clock_out_time: datetime
    edit_reason: str = Field(..., min_length=1)


class DashboardStatsResponse(BaseModel):
    """Headline dashboard numbers."""

    model_config = ConfigDict(from_attributes=True)

    active_employees: int
    average_hourly_rate: Decimal
    monthly_hourly_total: Decimal
    monthly_project_total: Decimal


# ============================================================================
# Webhook schemas
# ============================================================================


class ProjectWebhookRequest(BaseModel):
    """Body of ``POST /project-webhook``.

    Fields are optional here so that missing ones produce the webhook's own
    400 response instead of a schema error.
    """

    project_value: Decimal | None = None
    project_title: str | None = None
    quoted_by_name: str | None = None
    first_time: bool = False
    employees_assigned: list[str] | None = None
    job_id: str | None = None


class ProjectWebhookResponse(BaseModel):
    """Successful webhook response."""

    success: bool = True
    message: str
    payouts: list[PayoutResponse]


class ExistingPayout(BaseModel):
    """Existing row reported in a duplicate response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    employee_id: UUID
    employee_name: str
    job_id: str | None = None


# ============================================================================
# Settings schemas
# ============================================================================


class SettingsResponse(BaseModel):
    """Bonus percentages as stored."""

    settings: dict[str, str]


class SettingUpdateRequest(BaseModel):
    """New value for one setting."""

    setting_value: str


class ViewerTimezoneRequest(BaseModel):
    """Display timezone for the signed-in viewer."""

    timezone: str


class ViewerTimezoneResponse(BaseModel):
    """Display timezone with its current offset and abbreviation."""

    timezone: str
    offset: str
    abbreviation: str
