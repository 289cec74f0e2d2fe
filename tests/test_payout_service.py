"""Tests for the payout service: calculator, webhook intake and corrections."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from payroll_tracker.calculators import CalculationType, PayoutValidationError
from payroll_tracker.models import Payout
from payroll_tracker.services import (
    DuplicatePayoutError,
    EmployeeNotFoundError,
    NoMatchingEmployeesError,
    PayoutFilters,
    PayoutNotFoundError,
    PayoutService,
    SettingsService,
    TimeClockService,
)
from payroll_tracker.timeclock import InvalidTimeEditError
from tests.conftest import make_employee

pytestmark = pytest.mark.asyncio

UTC = timezone.utc


async def count_payouts(session) -> int:
    return await session.scalar(select(func.count()).select_from(Payout))


def project_row(employee, amount: str, created_at: datetime, **fields) -> Payout:
    return Payout(
        employee_id=employee.id,
        employee_name=employee.name,
        calculation_type=fields.pop("calculation_type", "project"),
        payout_kind="base",
        amount=Decimal(amount),
        rate=fields.pop("rate", Decimal("10")),
        source="manual",
        created_at=created_at,
        **fields,
    )


class TestProjectWebhook:
    """Webhook intake with job_id deduplication."""

    async def test_creates_auto_rows_with_quoted_by_bonus(self, session, project_employees):
        service = PayoutService(session)

        payouts = await service.process_project_webhook(
            project_value=Decimal("1000"),
            project_title="Kitchen Remodel",
            employees_assigned=["Ellen", "Frank"],
            quoted_by_name="Ellen",
            first_time=False,
            job_id="JOB-1",
        )

        by_kind = {(p.employee_name, p.payout_kind): p for p in payouts}
        assert by_kind[("Ellen", "base")].amount == Decimal("200.00")
        assert by_kind[("Frank", "base")].amount == Decimal("180.00")
        bonus = by_kind[("Ellen (Quoted By Bonus)", "quoted_by_bonus")]
        assert bonus.amount == Decimal("20.00")
        assert all(p.source == "auto" and p.job_id == "JOB-1" for p in payouts)
        assert all(p.collaborators_count == 2 for p in payouts)

    async def test_same_job_twice_is_rejected(self, session, project_employees):
        service = PayoutService(session)
        payload = dict(
            project_value=Decimal("500"),
            project_title="Deck",
            employees_assigned=["Ellen"],
            job_id="JOB-42",
        )
        first = await service.process_project_webhook(**payload)
        await session.commit()

        with pytest.raises(DuplicatePayoutError) as exc_info:
            await service.process_project_webhook(**payload)

        assert exc_info.value.job_id == "JOB-42"
        assert [p.id for p in exc_info.value.existing] == [p.id for p in first]
        assert await count_payouts(session) == 1

    async def test_same_job_for_other_employees_is_allowed(self, session, project_employees):
        service = PayoutService(session)
        await service.process_project_webhook(
            project_value=Decimal("500"),
            project_title="Deck",
            employees_assigned=["Ellen"],
            job_id="JOB-7",
        )
        await service.process_project_webhook(
            project_value=Decimal("500"),
            project_title="Deck",
            employees_assigned=["Frank"],
            job_id="JOB-7",
        )
        assert await count_payouts(session) == 2

    async def test_without_job_id_every_call_inserts(self, session, project_employees):
        service = PayoutService(session)
        for _ in range(2):
            await service.process_project_webhook(
                project_value=Decimal("100"),
                project_title="Fence",
                employees_assigned=["Frank"],
            )
        assert await count_payouts(session) == 2

    async def test_missing_fields(self, session, project_employees):
        with pytest.raises(PayoutValidationError) as exc_info:
            await PayoutService(session).process_project_webhook(
                project_value=Decimal("100"),
                project_title=None,
                employees_assigned=["Ellen"],
            )
        assert exc_info.value.message == PayoutValidationError.MISSING_FIELDS

    async def test_no_matching_employees(self, session, project_employees, hourly_employee):
        with pytest.raises(NoMatchingEmployeesError):
            await PayoutService(session).process_project_webhook(
                project_value=Decimal("100"),
                project_title="Fence",
                employees_assigned=["Nobody", hourly_employee.name],
            )

    async def test_inactive_assignee_ignored(self, session, project_employees):
        gone = make_employee("Gone", status="inactive", project_rate_1_member=Decimal("50"))
        session.add(gone)
        await session.flush()

        payouts = await PayoutService(session).process_project_webhook(
            project_value=Decimal("100"),
            project_title="Fence",
            employees_assigned=["Gone", "Frank"],
        )

        assert [p.employee_name for p in payouts] == ["Frank"]
        assert payouts[0].rate == Decimal("25")

    async def test_unknown_quoted_by_gets_no_bonus(self, session, project_employees):
        payouts = await PayoutService(session).process_project_webhook(
            project_value=Decimal("100"),
            project_title="Fence",
            employees_assigned=["Ellen"],
            quoted_by_name="Zed",
            first_time=True,
        )

        assert len(payouts) == 1
        assert payouts[0].quoted_by_name == "Zed"
        assert payouts[0].quoted_by_id is None

    async def test_zero_first_time_percentage_suppresses_bonus(self, session, project_employees):
        await SettingsService(session).update_setting("first_time_bonus_percentage", "0")

        payouts = await PayoutService(session).process_project_webhook(
            project_value=Decimal("100"),
            project_title="Fence",
            employees_assigned=["Ellen"],
            quoted_by_name="Ellen",
            first_time=True,
        )

        assert [p.payout_kind for p in payouts] == ["base"]


class TestManualCalculator:
    """Calculator screen payouts."""

    async def test_project_with_first_time_bonus(self, session, project_employees):
        ellen, frank = project_employees["Ellen"], project_employees["Frank"]

        result, payouts = await PayoutService(session).calculate_manual_payouts(
            calculation_type=CalculationType.PROJECT,
            employee_ids=[ellen.id, frank.id],
            project_value=Decimal("1000"),
            project_title="Patio",
            is_first_time=True,
            quoted_by_id=frank.id,
        )

        assert [p.amount for p in payouts] == [
            Decimal("200.00"),
            Decimal("180.00"),
            Decimal("300.00"),
        ]
        assert payouts[2].employee_name == "Frank (First Time Bonus)"
        assert payouts[2].payout_kind == "first_time_bonus"
        assert not payouts[0].is_first_time
        assert all(p.source == "manual" and p.job_id is None for p in payouts)
        assert result.total == Decimal("680.00")

    async def test_hourly_from_manual_times(self, session, hourly_employee, project_employees):
        result, payouts = await PayoutService(session).calculate_manual_payouts(
            calculation_type=CalculationType.HOURLY,
            employee_ids=[hourly_employee.id, project_employees["Ellen"].id],
            start_time="22:00",
            end_time="06:30",
        )

        assert len(payouts) == 1
        assert payouts[0].hours_worked == Decimal("8.50")
        assert payouts[0].amount == Decimal("170.00")
        assert payouts[0].project_value is None
        assert result.warnings == ["Employee Ellen is not paid hourly, skipped"]

    async def test_hourly_from_tracked_sessions(self, session, hourly_employee):
        clock = TimeClockService(session)
        start = datetime(2025, 3, 3, 9, 0, tzinfo=UTC)
        entry_ids = []
        for day in range(2):
            entry = await clock.check_in(hourly_employee, at=start + timedelta(days=day))
            await clock.check_out(entry.id, at=start + timedelta(days=day, hours=4))
            entry_ids.append(entry.id)

        _, payouts = await PayoutService(session).calculate_manual_payouts(
            calculation_type=CalculationType.HOURLY,
            employee_ids=[hourly_employee.id],
            time_entry_ids=entry_ids,
        )

        assert payouts[0].hours_worked == Decimal("8.00")
        assert payouts[0].amount == Decimal("160.00")
        assert payouts[0].clock_in_time == start
        assert payouts[0].clock_out_time == start + timedelta(days=1, hours=4)

    async def test_hourly_requires_times(self, session, hourly_employee):
        with pytest.raises(PayoutValidationError):
            await PayoutService(session).calculate_manual_payouts(
                calculation_type=CalculationType.HOURLY,
                employee_ids=[hourly_employee.id],
                start_time="09:00",
            )

    async def test_unknown_employee(self, session):
        with pytest.raises(EmployeeNotFoundError):
            await PayoutService(session).calculate_manual_payouts(
                calculation_type=CalculationType.PROJECT,
                employee_ids=[uuid4()],
                project_value=Decimal("100"),
            )

    async def test_no_employees_selected(self, session):
        with pytest.raises(PayoutValidationError):
            await PayoutService(session).calculate_manual_payouts(
                calculation_type=CalculationType.PROJECT,
                employee_ids=[],
                project_value=Decimal("100"),
            )


class TestReporting:
    """Filtered listings and dashboard numbers."""

    async def test_filters_and_total(self, session, project_employees, hourly_employee):
        ellen = project_employees["Ellen"]
        session.add_all(
            [
                project_row(ellen, "100.00", datetime(2025, 5, 1, 12, tzinfo=UTC),
                            project_title="Kitchen Remodel", project_value=Decimal("1000")),
                project_row(ellen, "50.00", datetime(2025, 5, 3, 12, tzinfo=UTC),
                            project_title="Back Deck", project_value=Decimal("500")),
                project_row(hourly_employee, "80.00", datetime(2025, 5, 2, 12, tzinfo=UTC),
                            calculation_type="hourly", hours_worked=Decimal("4")),
            ]
        )
        await session.flush()
        service = PayoutService(session)

        payouts, total = await service.list_payouts()
        assert [p.amount for p in payouts] == [
            Decimal("50.00"),
            Decimal("80.00"),
            Decimal("100.00"),
        ]
        assert total == Decimal("230.00")

        payouts, total = await service.list_payouts(PayoutFilters(project_title="kitchen"))
        assert total == Decimal("100.00")

        payouts, _ = await service.list_payouts(PayoutFilters(calculation_type="hourly"))
        assert [p.employee_name for p in payouts] == ["Hannah"]

        payouts, _ = await service.list_payouts(PayoutFilters(employee_id=ellen.id))
        assert len(payouts) == 2

    async def test_date_range_is_read_in_viewer_zone(self, session, project_employees):
        ellen = project_employees["Ellen"]
        # 2025-05-02 03:00 UTC is still May 1st in Chicago
        session.add(project_row(ellen, "10.00", datetime(2025, 5, 2, 3, tzinfo=UTC)))
        await session.flush()
        service = PayoutService(session)

        may_first = PayoutFilters(
            date_from=date(2025, 5, 1), date_to=date(2025, 5, 1), timezone="America/Chicago"
        )
        payouts, _ = await service.list_payouts(may_first)
        assert len(payouts) == 1

        may_second_utc = PayoutFilters(
            date_from=date(2025, 5, 2), date_to=date(2025, 5, 2), timezone="UTC"
        )
        payouts, _ = await service.list_payouts(may_second_utc)
        assert len(payouts) == 1

        may_second_chicago = PayoutFilters(
            date_from=date(2025, 5, 2), timezone="America/Chicago"
        )
        payouts, _ = await service.list_payouts(may_second_chicago)
        assert payouts == []

    async def test_dashboard_stats(self, session, project_employees, hourly_employee):
        ellen = project_employees["Ellen"]
        second = make_employee("Ivy", pay_scale_type="hourly", hourly_rate=Decimal("30"))
        session.add(second)
        session.add_all(
            [
                project_row(ellen, "100.00", datetime(2025, 6, 10, tzinfo=UTC)),
                project_row(ellen, "999.00", datetime(2025, 5, 31, 12, tzinfo=UTC)),
                project_row(hourly_employee, "40.00", datetime(2025, 6, 2, tzinfo=UTC),
                            calculation_type="hourly", hours_worked=Decimal("2")),
            ]
        )
        await session.flush()

        stats = await PayoutService(session).dashboard_stats(
            "America/Chicago", now=datetime(2025, 6, 15, tzinfo=UTC)
        )

        assert stats.active_employees == 4
        assert stats.average_hourly_rate == Decimal("25.00")
        assert stats.monthly_hourly_total == Decimal("40.00")
        assert stats.monthly_project_total == Decimal("100.00")


class TestCorrections:
    """Admin edits of recorded payouts."""

    async def _project_payout(self, session, project_employees) -> Payout:
        _, payouts = await PayoutService(session).calculate_manual_payouts(
            calculation_type=CalculationType.PROJECT,
            employee_ids=[project_employees["Ellen"].id, project_employees["Frank"].id],
            project_value=Decimal("1000"),
        )
        return payouts[0]

    async def _hourly_payout(self, session, employee) -> Payout:
        _, payouts = await PayoutService(session).calculate_manual_payouts(
            calculation_type=CalculationType.HOURLY,
            employee_ids=[employee.id],
            start_time="09:00",
            end_time="17:30",
        )
        return payouts[0]

    async def test_collaborator_change_rederives_tier_rate(self, session, project_employees):
        payout = await self._project_payout(session, project_employees)
        assert payout.rate == Decimal("20")

        payout = await PayoutService(session).update_payout(
            payout.id, {"collaborators_count": 3}
        )

        assert payout.rate == Decimal("15")
        assert payout.amount == Decimal("150.00")

    async def test_explicit_amount_wins(self, session, project_employees):
        payout = await self._project_payout(session, project_employees)

        payout = await PayoutService(session).update_payout(
            payout.id, {"rate": Decimal("50"), "amount": Decimal("123.45")}
        )

        assert payout.rate == Decimal("50")
        assert payout.amount == Decimal("123.45")

    async def test_project_value_change_recomputes(self, session, project_employees):
        payout = await self._project_payout(session, project_employees)

        payout = await PayoutService(session).update_payout(
            payout.id, {"project_value": Decimal("2000")}
        )

        assert payout.amount == Decimal("400.00")

    async def test_missing_tier_is_rejected(self, session, project_employees):
        _, payouts = await PayoutService(session).calculate_manual_payouts(
            calculation_type=CalculationType.PROJECT,
            employee_ids=[project_employees["Frank"].id],
            project_value=Decimal("1000"),
        )

        with pytest.raises(PayoutValidationError):
            await PayoutService(session).update_payout(payouts[0].id, {"collaborators_count": 4})

    async def test_hours_on_project_row_rejected(self, session, project_employees):
        payout = await self._project_payout(session, project_employees)

        with pytest.raises(PayoutValidationError):
            await PayoutService(session).update_payout(payout.id, {"hours_worked": Decimal("3")})

    async def test_required_fields_cannot_be_cleared(self, session, project_employees):
        payout = await self._project_payout(session, project_employees)
        service = PayoutService(session)

        for field in ("rate", "project_value", "collaborators_count"):
            with pytest.raises(PayoutValidationError):
                await service.update_payout(payout.id, {field: None})

    async def test_hourly_rate_and_hours_cannot_be_cleared(self, session, hourly_employee):
        payout = await self._hourly_payout(session, hourly_employee)
        service = PayoutService(session)

        for field in ("rate", "hours_worked"):
            with pytest.raises(PayoutValidationError):
                await service.update_payout(payout.id, {field: None})

        await session.refresh(payout)
        assert payout.rate == Decimal("20.00")

    async def test_hourly_hours_change_recomputes(self, session, hourly_employee):
        payout = await self._hourly_payout(session, hourly_employee)

        payout = await PayoutService(session).update_payout(
            payout.id, {"hours_worked": Decimal("5")}
        )

        assert payout.amount == Decimal("100.00")

    async def test_edit_hourly_clock_times(self, session, hourly_employee):
        payout = await self._hourly_payout(session, hourly_employee)
        clock_in = datetime(2025, 3, 3, 8, 0, tzinfo=UTC)

        payout = await PayoutService(session).edit_hourly_payout(
            payout.id, clock_in, clock_in + timedelta(hours=4), reason=" Wrong start "
        )

        assert payout.hours_worked == Decimal("4.00")
        assert payout.amount == Decimal("80.00")
        assert payout.is_edited
        assert payout.edit_reason == "Wrong start"

    async def test_edit_hourly_requires_reason(self, session, hourly_employee):
        payout = await self._hourly_payout(session, hourly_employee)
        clock_in = datetime(2025, 3, 3, 8, 0, tzinfo=UTC)

        with pytest.raises(InvalidTimeEditError):
            await PayoutService(session).edit_hourly_payout(
                payout.id, clock_in, clock_in + timedelta(hours=1), reason=""
            )

    async def test_edit_hourly_rejects_project_rows(self, session, project_employees):
        payout = await self._project_payout(session, project_employees)
        clock_in = datetime(2025, 3, 3, 8, 0, tzinfo=UTC)

        with pytest.raises(PayoutValidationError):
            await PayoutService(session).edit_hourly_payout(
                payout.id, clock_in, clock_in + timedelta(hours=1), reason="typo"
            )

    async def test_delete(self, session, hourly_employee):
        payout = await self._hourly_payout(session, hourly_employee)
        service = PayoutService(session)

        await service.delete_payout(payout.id)

        with pytest.raises(PayoutNotFoundError):
            await service.get_payout(payout.id)
