"""ORM models for the payroll tracker tables."""

from payroll_tracker.models.base import Base, TimestampMixin, UTCDateTime
from payroll_tracker.models.employee import (
    DEFAULT_TIMEZONE,
    PROJECT_RATE_COLUMNS,
    Employee,
    UserProfile,
)
from payroll_tracker.models.payout import AppSetting, Payout
from payroll_tracker.models.time_entry import TimeEntry

__all__ = [
    "AppSetting",
    "Base",
    "DEFAULT_TIMEZONE",
    "Employee",
    "PROJECT_RATE_COLUMNS",
    "Payout",
    "TimeEntry",
    "TimestampMixin",
    "UTCDateTime",
    "UserProfile",
]
