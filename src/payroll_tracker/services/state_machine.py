"""Time entry state machine with transition validation."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from payroll_tracker.models import TimeEntry


class TimeEntryStatus(str, Enum):
    """Time entry status values."""

    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class TimeEntryStateMachine:
    """State machine for time entry status transitions.

    Allowed transitions:
    - checked_in → checked_out (check-out)
    - checked_out → checked_in (admin edit that clears the check-out time)
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        TimeEntryStatus.CHECKED_IN: [TimeEntryStatus.CHECKED_OUT],
        TimeEntryStatus.CHECKED_OUT: [],  # Terminal for regular users
    }

    ADMIN_TRANSITIONS: dict[str, list[str]] = {
        TimeEntryStatus.CHECKED_IN: [TimeEntryStatus.CHECKED_OUT],
        TimeEntryStatus.CHECKED_OUT: [TimeEntryStatus.CHECKED_IN],
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str, admin: bool = False) -> bool:
        """Check if a transition is valid."""
        table = cls.ADMIN_TRANSITIONS if admin else cls.VALID_TRANSITIONS
        return to_status in table.get(from_status, [])

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str, admin: bool = False) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status, admin=admin):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def is_reopen(cls, from_status: str, to_status: str) -> bool:
        """Check if this transition is a reopen (checked_out → checked_in)."""
        return (
            from_status == TimeEntryStatus.CHECKED_OUT
            and to_status == TimeEntryStatus.CHECKED_IN
        )

    @classmethod
    def validate_entry(cls, entry: TimeEntry) -> list[str]:
        """Check that an entry's fields agree with its status.

        Returns list of error messages (empty if valid).
        """
        errors: list[str] = []

        if entry.status == TimeEntryStatus.CHECKED_IN:
            if entry.check_out_time is not None:
                errors.append("Checked-in entry has a check-out time")
            if entry.total_hours is not None:
                errors.append("Checked-in entry has total hours")
        elif entry.status == TimeEntryStatus.CHECKED_OUT:
            if entry.check_out_time is None:
                errors.append("Checked-out entry has no check-out time")
            if entry.total_hours is None:
                errors.append("Checked-out entry has no total hours")
            elif entry.total_hours < 0:
                errors.append(f"Checked-out entry has negative total hours {entry.total_hours}")
        else:
            errors.append(f"Unknown status '{entry.status}'")

        return errors
