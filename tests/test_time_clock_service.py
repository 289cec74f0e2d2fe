"""Tests for the time clock service against SQLite."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from payroll_tracker.calculators import (
    CalculationType,
    HourlyPayoutContext,
    PayoutEngine,
    sum_tracked_hours,
)
from payroll_tracker.models import TimeEntry
from payroll_tracker.services import (
    AlreadyCheckedInError,
    InvalidTransitionError,
    TimeClockService,
    TimeEntryNotFoundError,
)
from payroll_tracker.timeclock import InvalidTimeEditError
from tests.conftest import make_employee

pytestmark = pytest.mark.asyncio

UTC = timezone.utc
NINE_AM = datetime(2025, 3, 3, 9, 0, tzinfo=UTC)


class TestCheckInOut:
    """Check-in and check-out guards."""

    async def test_hourly_day_pays_170(self, session, hourly_employee):
        """09:00 to 17:30 UTC at $20/hr: 8.5 hours, $170.00."""
        service = TimeClockService(session)

        entry = await service.check_in(hourly_employee, at=NINE_AM)
        assert entry.status == "checked_in"
        assert entry.check_out_time is None

        entry = await service.check_out(entry.id, at=NINE_AM + timedelta(hours=8, minutes=30))
        assert entry.status == "checked_out"
        assert entry.total_hours == Decimal("8.5")

        result = PayoutEngine().calculate_hourly(
            HourlyPayoutContext(
                hours_worked=sum_tracked_hours([entry]),
                employees=[hourly_employee],
            )
        )
        assert result.lines[0].calculation_type == CalculationType.HOURLY
        assert result.lines[0].amount == Decimal("170.00")

    async def test_double_check_in_rejected(self, session, hourly_employee):
        service = TimeClockService(session)
        await service.check_in(hourly_employee, at=NINE_AM)

        with pytest.raises(AlreadyCheckedInError) as exc_info:
            await service.check_in(hourly_employee, at=NINE_AM + timedelta(minutes=5))

        assert exc_info.value.employee_id == hourly_employee.id

    async def test_storage_allows_one_open_entry(self, session, hourly_employee):
        """The partial unique index rejects a second open session."""
        for minute in (0, 1):
            session.add(
                TimeEntry(
                    employee_id=hourly_employee.id,
                    employee_name=hourly_employee.name,
                    check_in_time=NINE_AM + timedelta(minutes=minute),
                    status="checked_in",
                )
            )
        with pytest.raises(IntegrityError):
            await session.flush()

    async def test_check_in_after_check_out(self, session, hourly_employee):
        service = TimeClockService(session)
        first = await service.check_in(hourly_employee, at=NINE_AM)
        await service.check_out(first.id, at=NINE_AM + timedelta(hours=1))

        second = await service.check_in(hourly_employee, at=NINE_AM + timedelta(hours=2))
        assert second.id != first.id

    async def test_check_out_twice_rejected(self, session, hourly_employee):
        service = TimeClockService(session)
        entry = await service.check_in(hourly_employee, at=NINE_AM)
        await service.check_out(entry.id, at=NINE_AM + timedelta(hours=1))

        with pytest.raises(InvalidTransitionError):
            await service.check_out(entry.id, at=NINE_AM + timedelta(hours=2))

    async def test_check_out_before_check_in_rejected(self, session, hourly_employee):
        service = TimeClockService(session)
        entry = await service.check_in(hourly_employee, at=NINE_AM)

        with pytest.raises(InvalidTransitionError):
            await service.check_out(entry.id, at=NINE_AM - timedelta(minutes=1))

    async def test_unknown_entry(self, session):
        from uuid import uuid4

        with pytest.raises(TimeEntryNotFoundError):
            await TimeClockService(session).check_out(uuid4())


class TestAdminEdits:
    """Edits, reopen and deletion."""

    async def test_edit_overnight_in_employee_zone(self, session, hourly_employee):
        service = TimeClockService(session)
        # 22:00 CST on 2025-01-14
        entry = await service.check_in(
            hourly_employee, at=datetime(2025, 1, 15, 4, 0, tzinfo=UTC)
        )
        await service.check_out(entry.id, at=datetime(2025, 1, 15, 5, 0, tzinfo=UTC))

        entry = await service.edit_entry(
            entry.id, "21:00", "05:30", timezone_name=hourly_employee.timezone
        )

        assert entry.check_in_time == datetime(2025, 1, 15, 3, 0, tzinfo=UTC)
        assert entry.check_out_time == datetime(2025, 1, 15, 11, 30, tzinfo=UTC)
        assert entry.total_hours == Decimal("8.5")
        assert entry.status == "checked_out"

    async def test_edit_overwrites_total_hours(self, session, hourly_employee):
        service = TimeClockService(session)
        entry = await service.check_in(hourly_employee, at=datetime(2025, 7, 1, 14, 0, tzinfo=UTC))
        await service.check_out(entry.id, at=datetime(2025, 7, 1, 15, 0, tzinfo=UTC))
        entry.total_hours = Decimal("99")

        entry = await service.edit_entry(entry.id, "09:00", "10:15", "America/Chicago")
        assert entry.total_hours == Decimal("1.25")

    async def test_clearing_check_out_reopens(self, session, hourly_employee):
        service = TimeClockService(session)
        entry = await service.check_in(hourly_employee, at=NINE_AM)
        await service.check_out(entry.id, at=NINE_AM + timedelta(hours=2))

        entry = await service.edit_entry(entry.id, "03:00", None, "America/Chicago", notes="forgot")

        assert entry.status == "checked_in"
        assert entry.check_out_time is None
        assert entry.total_hours is None
        assert entry.notes == "forgot"
        assert (await service.get_open_entry(hourly_employee.id)).id == entry.id

    async def test_reopen_blocked_while_another_session_is_open(self, session, hourly_employee):
        service = TimeClockService(session)
        old = await service.check_in(hourly_employee, at=NINE_AM)
        await service.check_out(old.id, at=NINE_AM + timedelta(hours=1))
        await service.check_in(hourly_employee, at=NINE_AM + timedelta(hours=3))

        with pytest.raises(AlreadyCheckedInError):
            await service.edit_entry(old.id, "03:00", "", "America/Chicago")

    async def test_adjust_records_reason(self, session, hourly_employee):
        service = TimeClockService(session)
        entry = await service.check_in(hourly_employee, at=NINE_AM)

        entry = await service.adjust_entry(
            entry.id,
            check_in=NINE_AM,
            check_out=NINE_AM + timedelta(hours=6),
            reason="Left without clocking out",
        )

        assert entry.status == "checked_out"
        assert entry.total_hours == Decimal("6")
        assert entry.notes.startswith("[Edited] ")
        assert entry.notes.endswith(" - Left without clocking out")

    async def test_adjust_requires_reason(self, session, hourly_employee):
        service = TimeClockService(session)
        entry = await service.check_in(hourly_employee, at=NINE_AM)

        with pytest.raises(InvalidTimeEditError):
            await service.adjust_entry(entry.id, NINE_AM, NINE_AM + timedelta(hours=1), "  ")

    async def test_inconsistent_entry_is_refused(self):
        entry = TimeEntry(
            status="checked_out", check_in_time=NINE_AM, check_out_time=None, total_hours=None
        )

        with pytest.raises(InvalidTimeEditError, match="no check-out time"):
            TimeClockService._ensure_consistent(entry)

    async def test_delete(self, session, hourly_employee):
        service = TimeClockService(session)
        entry = await service.check_in(hourly_employee, at=NINE_AM)
        await service.delete_entry(entry.id)

        count = await session.scalar(select(func.count()).select_from(TimeEntry))
        assert count == 0


class TestListings:
    """Recent, today, active and completed listings."""

    async def test_today_uses_each_employees_zone(self, session):
        chicago = make_employee("Chi", pay_scale_type="hourly", hourly_rate=Decimal("10"))
        tokyo = make_employee(
            "Tok", pay_scale_type="hourly", hourly_rate=Decimal("10"), timezone="Asia/Tokyo"
        )
        session.add_all([chicago, tokyo])
        await session.flush()

        service = TimeClockService(session)
        # 2025-06-09 23:00 UTC: 18:00 on the 9th in Chicago, 08:00 on the 10th in Tokyo
        checked_in_at = datetime(2025, 6, 9, 23, 0, tzinfo=UTC)
        await service.check_in(chicago, at=checked_in_at)
        await service.check_in(tokyo, at=checked_in_at)

        # 01:00 on the 10th in Chicago
        now = datetime(2025, 6, 10, 6, 0, tzinfo=UTC)
        today = await service.list_today_entries(now=now)

        assert [entry.employee_name for entry in today] == ["Tok"]

    async def test_recent_window(self, session, hourly_employee):
        service = TimeClockService(session)
        old = await service.check_in(hourly_employee, at=NINE_AM - timedelta(days=3))
        await service.check_out(old.id, at=NINE_AM - timedelta(days=3) + timedelta(hours=1))
        await service.check_in(hourly_employee, at=NINE_AM)

        recent = await service.list_recent_entries(now=NINE_AM + timedelta(hours=1))
        assert len(recent) == 1

    async def test_active_and_completed(self, session, hourly_employee):
        service = TimeClockService(session)
        done = await service.check_in(hourly_employee, at=NINE_AM - timedelta(days=1))
        await service.check_out(done.id, at=NINE_AM - timedelta(hours=20))
        open_entry = await service.check_in(hourly_employee, at=NINE_AM)

        active = await service.list_active_entries()
        completed = await service.list_completed_entries([hourly_employee.id])

        assert [entry.id for entry in active] == [open_entry.id]
        assert [entry.id for entry in completed] == [done.id]
        assert await service.list_completed_entries([]) == []
