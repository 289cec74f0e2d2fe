"""Time clock service: check-in, check-out and admin edits."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_tracker.models import Employee, TimeEntry
from payroll_tracker.services.state_machine import (
    InvalidTransitionError,
    TimeEntryStateMachine,
    TimeEntryStatus,
)
from payroll_tracker.timeclock import (
    InvalidTimeEditError,
    apply_instant_edit,
    apply_time_of_day_edit,
    elapsed_hours,
    format_local,
    is_local_today,
    now_utc,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(hours=48)


class AlreadyCheckedInError(Exception):
    """Raised when an employee with an open session checks in again."""

    def __init__(self, employee_id: UUID, employee_name: str):
        self.employee_id = employee_id
        self.employee_name = employee_name
        super().__init__(f"{employee_name} is already checked in")


class TimeEntryNotFoundError(Exception):
    """Raised when a time entry id does not exist."""

    def __init__(self, entry_id: UUID):
        self.entry_id = entry_id
        super().__init__(f"Time entry {entry_id} not found")


class TimeClockService:
    """Service for time clock sessions.

    Operations:
    - check_in: open a session (one open session per employee)
    - check_out: close a session, hours from UTC instants
    - edit_entry: admin edit with local times of day in the employee's zone
    - adjust_entry: admin edit with full instants and a mandatory reason
    - delete_entry: remove a session
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_entry(self, entry_id: UUID) -> TimeEntry:
        """Load a time entry.

        Raises:
            TimeEntryNotFoundError: If no such entry exists
        """
        entry = await self.session.get(TimeEntry, entry_id)
        if entry is None:
            raise TimeEntryNotFoundError(entry_id)
        return entry

    async def get_open_entry(self, employee_id: UUID) -> TimeEntry | None:
        """The employee's checked-in session, if any."""
        result = await self.session.execute(
            select(TimeEntry).where(
                TimeEntry.employee_id == employee_id,
                TimeEntry.status == TimeEntryStatus.CHECKED_IN.value,
            )
        )
        return result.scalars().first()

    async def check_in(
        self,
        employee: Employee,
        notes: str | None = None,
        at: datetime | None = None,
    ) -> TimeEntry:
        """Open a session for an employee.

        The read below gives a friendly error; the partial unique index on
        open sessions is what actually prevents two concurrent check-ins.

        Raises:
            AlreadyCheckedInError: If the employee already has an open session
        """
        employee_id, employee_name = employee.id, employee.name
        if await self.get_open_entry(employee_id) is not None:
            raise AlreadyCheckedInError(employee_id, employee_name)

        check_in_time = at or now_utc()
        entry = TimeEntry(
            employee_id=employee_id,
            employee_name=employee_name,
            check_in_time=check_in_time,
            status=TimeEntryStatus.CHECKED_IN.value,
            notes=notes or None,
            timezone_offset=None,
        )
        self.session.add(entry)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise AlreadyCheckedInError(employee_id, employee_name) from e

        logger.info(
            "Check-in: %s at %s (%s)",
            employee.name,
            format_local(check_in_time, employee.timezone),
            check_in_time.isoformat(),
        )
        return entry

    async def check_out(
        self,
        entry_id: UUID,
        at: datetime | None = None,
        timezone_name: str | None = None,
    ) -> TimeEntry:
        """Close an open session.

        Raises:
            TimeEntryNotFoundError: If no such entry exists
            InvalidTransitionError: If the entry is not checked in, or the
                check-out instant precedes the check-in
        """
        entry = await self.get_entry(entry_id)
        TimeEntryStateMachine.validate_transition(entry.status, TimeEntryStatus.CHECKED_OUT)

        check_out_time = at or now_utc()
        if check_out_time < entry.check_in_time:
            raise InvalidTransitionError(
                entry.status,
                TimeEntryStatus.CHECKED_OUT.value,
                "check-out precedes check-in",
            )

        entry.check_out_time = check_out_time
        entry.total_hours = elapsed_hours(entry.check_in_time, check_out_time)
        entry.status = TimeEntryStatus.CHECKED_OUT.value
        await self.session.flush()

        logger.info(
            "Check-out: %s at %s, %s hours",
            entry.employee_name,
            format_local(check_out_time, timezone_name),
            entry.total_hours,
        )
        return entry

    async def edit_entry(
        self,
        entry_id: UUID,
        check_in: str,
        check_out: str | None,
        timezone_name: str | None,
        notes: str | None = None,
    ) -> TimeEntry:
        """Admin edit using local ``HH:MM`` times in the employee's zone.

        An empty check-out reopens a completed session. Stored hours are
        always overwritten by the recomputed value.

        Raises:
            TimeEntryNotFoundError: If no such entry exists
            AlreadyCheckedInError: If reopening would leave two open sessions
            InvalidTimeEditError: If the times are malformed
        """
        entry = await self.get_entry(entry_id)
        edit = apply_time_of_day_edit(entry.check_in_time, check_in, check_out, timezone_name)

        if edit.check_out_time is None:
            if TimeEntryStateMachine.is_reopen(entry.status, TimeEntryStatus.CHECKED_IN):
                await self._ensure_can_reopen(entry)
            entry.status = TimeEntryStatus.CHECKED_IN.value
        else:
            entry.status = TimeEntryStatus.CHECKED_OUT.value

        entry.check_in_time = edit.check_in_time
        entry.check_out_time = edit.check_out_time
        entry.total_hours = edit.total_hours
        if notes is not None:
            entry.notes = notes or None

        self._ensure_consistent(entry)
        await self.session.flush()
        logger.info(
            "Edited time entry %s: %s -> %s (%s hours)",
            entry.id,
            edit.check_in_time.isoformat(),
            edit.check_out_time.isoformat() if edit.check_out_time else None,
            edit.total_hours,
        )
        return entry

    async def adjust_entry(
        self,
        entry_id: UUID,
        check_in: datetime,
        check_out: datetime,
        reason: str,
    ) -> TimeEntry:
        """Admin correction with full instants; the reason lands in the notes.

        Raises:
            TimeEntryNotFoundError: If no such entry exists
            InvalidTimeEditError: If the reason is blank or check-out is not
                after check-in
        """
        if not reason or not reason.strip():
            raise InvalidTimeEditError("Please provide a reason for this edit")

        entry = await self.get_entry(entry_id)
        edit = apply_instant_edit(check_in, check_out)

        entry.check_in_time = edit.check_in_time
        entry.check_out_time = edit.check_out_time
        entry.total_hours = edit.total_hours
        entry.status = TimeEntryStatus.CHECKED_OUT.value
        entry.notes = f"[Edited] {now_utc().isoformat()} - {reason.strip()}"

        self._ensure_consistent(entry)
        await self.session.flush()
        return entry

    async def delete_entry(self, entry_id: UUID) -> None:
        """Delete a session.

        Raises:
            TimeEntryNotFoundError: If no such entry exists
        """
        entry = await self.get_entry(entry_id)
        await self.session.delete(entry)
        await self.session.flush()
        logger.info("Deleted time entry %s for %s", entry_id, entry.employee_name)

    async def list_recent_entries(
        self,
        employee_id: UUID | None = None,
        now: datetime | None = None,
    ) -> list[TimeEntry]:
        """Entries checked in during the last 48 hours, newest first.

        The window is wide enough to contain "today" for every zone.
        """
        since = (now or now_utc()) - RECENT_WINDOW
        query = select(TimeEntry).where(TimeEntry.check_in_time >= since)
        if employee_id is not None:
            query = query.where(TimeEntry.employee_id == employee_id)
        result = await self.session.execute(query.order_by(TimeEntry.check_in_time.desc()))
        return list(result.scalars().all())

    async def list_today_entries(
        self,
        employee_id: UUID | None = None,
        now: datetime | None = None,
    ) -> list[TimeEntry]:
        """Entries whose check-in falls on today in the employee's own zone."""
        now = now or now_utc()
        entries = await self.list_recent_entries(employee_id=employee_id, now=now)
        zones = await self.employee_timezones({entry.employee_id for entry in entries})
        return [
            entry
            for entry in entries
            if is_local_today(entry.check_in_time, zones.get(entry.employee_id), now=now)
        ]

    async def list_active_entries(self) -> list[TimeEntry]:
        """All open sessions, oldest check-in first."""
        result = await self.session.execute(
            select(TimeEntry)
            .where(TimeEntry.status == TimeEntryStatus.CHECKED_IN.value)
            .order_by(TimeEntry.check_in_time)
        )
        return list(result.scalars().all())

    async def list_completed_entries(
        self,
        employee_ids: Sequence[UUID],
        limit: int = 50,
    ) -> list[TimeEntry]:
        """Completed sessions for the hourly calculator, newest first."""
        if not employee_ids:
            return []
        result = await self.session.execute(
            select(TimeEntry)
            .where(
                TimeEntry.employee_id.in_(list(employee_ids)),
                TimeEntry.status == TimeEntryStatus.CHECKED_OUT.value,
                TimeEntry.total_hours.is_not(None),
            )
            .order_by(TimeEntry.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_entries(self, entry_ids: Sequence[UUID]) -> list[TimeEntry]:
        """Load several entries.

        Raises:
            TimeEntryNotFoundError: For the first id that does not exist
        """
        if not entry_ids:
            return []
        result = await self.session.execute(
            select(TimeEntry).where(TimeEntry.id.in_(list(entry_ids)))
        )
        by_id = {entry.id: entry for entry in result.scalars().all()}
        for entry_id in entry_ids:
            if entry_id not in by_id:
                raise TimeEntryNotFoundError(entry_id)
        return [by_id[entry_id] for entry_id in entry_ids]

    async def _ensure_can_reopen(self, entry: TimeEntry) -> None:
        open_entry = await self.get_open_entry(entry.employee_id)
        if open_entry is not None and open_entry.id != entry.id:
            raise AlreadyCheckedInError(entry.employee_id, entry.employee_name)

    @staticmethod
    def _ensure_consistent(entry: TimeEntry) -> None:
        errors = TimeEntryStateMachine.validate_entry(entry)
        if errors:
            raise InvalidTimeEditError("; ".join(errors))

    async def employee_timezones(self, employee_ids: set[UUID]) -> dict[UUID, str]:
        """IANA timezone per employee id; deleted employees are absent."""
        if not employee_ids:
            return {}
        result = await self.session.execute(
            select(Employee.id, Employee.timezone).where(Employee.id.in_(employee_ids))
        )
        return {row.id: row.timezone for row in result.all()}
