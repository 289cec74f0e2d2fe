"""Time clock timezone conversion and edit helpers."""

from payroll_tracker.timeclock.editing import (
    InvalidTimeEditError,
    TimeEdit,
    apply_instant_edit,
    apply_time_of_day_edit,
)
from payroll_tracker.timeclock.timezones import (
    InvalidTimezoneError,
    elapsed_hours,
    format_duration,
    format_local,
    is_local_today,
    local_date,
    local_day_bounds,
    now_utc,
    resolve_timezone,
    to_local,
    to_utc,
    tz_abbreviation,
    utc_offset_label,
)

__all__ = [
    "InvalidTimeEditError",
    "InvalidTimezoneError",
    "TimeEdit",
    "apply_instant_edit",
    "apply_time_of_day_edit",
    "elapsed_hours",
    "format_duration",
    "format_local",
    "is_local_today",
    "local_date",
    "local_day_bounds",
    "now_utc",
    "resolve_timezone",
    "to_local",
    "to_utc",
    "tz_abbreviation",
    "utc_offset_label",
]
