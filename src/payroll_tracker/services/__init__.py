"""Payroll tracker services."""

from payroll_tracker.services.employee_service import (
    EmployeeNotFoundError,
    EmployeeService,
    EmployeeValidationError,
)
from payroll_tracker.services.payout_service import (
    DashboardStats,
    DuplicatePayoutError,
    NoMatchingEmployeesError,
    PayoutFilters,
    PayoutNotFoundError,
    PayoutService,
)
from payroll_tracker.services.settings_service import SettingsService, SettingValidationError
from payroll_tracker.services.state_machine import (
    InvalidTransitionError,
    TimeEntryStateMachine,
    TimeEntryStatus,
)
from payroll_tracker.services.time_clock_service import (
    AlreadyCheckedInError,
    TimeClockService,
    TimeEntryNotFoundError,
)

__all__ = [
    "AlreadyCheckedInError",
    "DashboardStats",
    "DuplicatePayoutError",
    "EmployeeNotFoundError",
    "EmployeeService",
    "EmployeeValidationError",
    "InvalidTransitionError",
    "NoMatchingEmployeesError",
    "PayoutFilters",
    "PayoutNotFoundError",
    "PayoutService",
    "SettingValidationError",
    "SettingsService",
    "TimeClockService",
    "TimeEntryNotFoundError",
    "TimeEntryStateMachine",
    "TimeEntryStatus",
]
