"""Admin edits of time clock sessions in the employee's local time."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

from payroll_tracker.timeclock.timezones import elapsed_hours, resolve_timezone, to_local, to_utc


class InvalidTimeEditError(ValueError):
    """Raised when an edit cannot produce a valid session."""


@dataclass(frozen=True)
class TimeEdit:
    """UTC result of an edit; ``check_out_time`` is None for a reopened session."""

    check_in_time: datetime
    check_out_time: datetime | None
    total_hours: Decimal | None


def parse_wall_time(value: str) -> time:
    """Parse ``"HH:MM"`` as typed into the edit form."""
    try:
        hours_str, minutes_str = value.strip().split(":")
        return time(int(hours_str), int(minutes_str))
    except (AttributeError, ValueError) as e:
        raise InvalidTimeEditError(f"Invalid time {value!r}, expected HH:MM") from e


def apply_time_of_day_edit(
    original_check_in: datetime,
    check_in: str,
    check_out: str | None,
    tz: ZoneInfo | str | None,
) -> TimeEdit:
    """Rebuild a session from edited local times of day.

    Both times are placed on the original check-in's local calendar date in
    ``tz`` and converted back to UTC. A check-out earlier on the wall clock
    than the check-in is an overnight shift and moves to the next day. An
    empty check-out reopens the session.
    """
    zone = tz if isinstance(tz, ZoneInfo) else resolve_timezone(tz)
    base_date = to_local(original_check_in, zone).date()

    local_in = datetime.combine(base_date, parse_wall_time(check_in))
    new_check_in = to_utc(local_in, zone)

    if not check_out or not check_out.strip():
        return TimeEdit(check_in_time=new_check_in, check_out_time=None, total_hours=None)

    local_out = datetime.combine(base_date, parse_wall_time(check_out))
    if local_out < local_in:
        local_out += timedelta(days=1)
    new_check_out = to_utc(local_out, zone)

    if new_check_out < new_check_in:
        # Only reachable around a DST transition.
        raise InvalidTimeEditError("Check-out resolves to before check-in")

    return TimeEdit(
        check_in_time=new_check_in,
        check_out_time=new_check_out,
        total_hours=elapsed_hours(new_check_in, new_check_out),
    )


def apply_instant_edit(check_in: datetime, check_out: datetime) -> TimeEdit:
    """Validate an edit given as two full instants.

    Raises:
        InvalidTimeEditError: If check-out is not after check-in
    """
    if check_in.tzinfo is None or check_out.tzinfo is None:
        raise InvalidTimeEditError("Edited times must be timezone-aware")
    if check_out <= check_in:
        raise InvalidTimeEditError("Clock out time must be after clock in time")
    return TimeEdit(
        check_in_time=to_utc(check_in, None),
        check_out_time=to_utc(check_out, None),
        total_hours=elapsed_hours(check_in, check_out),
    )
