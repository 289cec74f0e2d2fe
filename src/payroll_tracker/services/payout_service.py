"""Payout service - calculator, webhook intake and payout maintenance."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_tracker.calculators import (
    BonusConfig,
    CalculationType,
    HourlyPayoutContext,
    LineItemBuilder,
    PayoutCalculationResult,
    PayoutEngine,
    PayoutKind,
    PayoutSource,
    PayoutValidationError,
    ProjectPayoutContext,
    RateNotFoundError,
    RateResolver,
    hours_between,
    sum_tracked_hours,
)
from payroll_tracker.models import Employee, Payout
from payroll_tracker.services.employee_service import EmployeeService
from payroll_tracker.services.settings_service import SettingsService
from payroll_tracker.services.time_clock_service import TimeClockService
from payroll_tracker.timeclock import (
    InvalidTimeEditError,
    apply_instant_edit,
    local_day_bounds,
    now_utc,
    resolve_timezone,
    to_local,
)

logger = logging.getLogger(__name__)


class NoMatchingEmployeesError(PayoutValidationError):
    """Raised when no assignee resolves to an active project employee."""

    def __init__(self) -> None:
        super().__init__(PayoutValidationError.NO_MATCHING_EMPLOYEES)


class DuplicatePayoutError(Exception):
    """Raised when a webhook job was already processed for these employees."""

    def __init__(self, job_id: str, existing: list[Payout]):
        self.job_id = job_id
        self.existing = existing
        super().__init__(f'Payouts for job_id "{job_id}" already exist for these employees')


class PayoutNotFoundError(Exception):
    """Raised when a payout id does not exist."""

    def __init__(self, payout_id: UUID):
        self.payout_id = payout_id
        super().__init__(f"Payout {payout_id} not found")


@dataclass
class PayoutFilters:
    """Report filters; all optional and combined with AND."""

    employee_id: UUID | None = None
    calculation_type: str | None = None
    project_title: str | None = None  # Case-insensitive substring
    date_from: date | None = None
    date_to: date | None = None  # Inclusive, through the end of the day
    timezone: str | None = None  # Zone the dates are read in


@dataclass
class DashboardStats:
    """Headline numbers for the admin dashboard."""

    active_employees: int
    average_hourly_rate: Decimal
    monthly_hourly_total: Decimal
    monthly_project_total: Decimal


class PayoutService:
    """Service for creating and maintaining payouts.

    Operations:
    - calculate_manual_payouts: calculator screen, rows tagged ``manual``
    - process_project_webhook: external intake, rows tagged ``auto``
      and deduplicated by ``job_id``
    - update_payout / edit_hourly_payout / delete_payout: admin corrections
    - list_payouts / dashboard_stats: reporting
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.employees = EmployeeService(session)
        self.settings = SettingsService(session)
        self.time_clock = TimeClockService(session)

    async def load_bonus_config(self) -> BonusConfig:
        """Fresh bonus percentages for one calculation."""
        return await self.settings.load_bonus_config()

    async def get_payout(self, payout_id: UUID) -> Payout:
        """Load a payout.

        Raises:
            PayoutNotFoundError: If no such payout exists
        """
        payout = await self.session.get(Payout, payout_id)
        if payout is None:
            raise PayoutNotFoundError(payout_id)
        return payout

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    async def calculate_manual_payouts(
        self,
        calculation_type: CalculationType,
        employee_ids: list[UUID],
        project_value: Decimal | None = None,
        project_title: str | None = None,
        is_first_time: bool = False,
        quoted_by_id: UUID | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
        time_entry_ids: list[UUID] | None = None,
    ) -> tuple[PayoutCalculationResult, list[Payout]]:
        """Run the calculator and record the resulting lines.

        Hourly work comes either from ``start_time``/``end_time`` (``HH:MM``,
        wrapping past midnight) or from completed time clock sessions.

        Raises:
            PayoutValidationError: On missing inputs or when nothing could
                be calculated
            EmployeeNotFoundError: If a selected employee does not exist
        """
        if not employee_ids:
            raise PayoutValidationError("Please select at least one employee")

        employees = await self.employees.get_employees(employee_ids)
        engine = PayoutEngine(await self.load_bonus_config())

        if calculation_type == CalculationType.PROJECT:
            quoted_by = (
                await self.employees.get_employee(quoted_by_id) if quoted_by_id else None
            )
            result = engine.calculate_project(
                ProjectPayoutContext(
                    project_value=project_value,
                    employees=employees,
                    project_title=project_title or None,
                    is_first_time=is_first_time,
                    quoted_by=quoted_by,
                )
            )
        else:
            result = engine.calculate_hourly(
                await self._hourly_context(employees, start_time, end_time, time_entry_ids)
            )

        payouts = [LineItemBuilder.to_payout(line, PayoutSource.MANUAL) for line in result.lines]
        self.session.add_all(payouts)
        await self.session.flush()

        logger.info(
            "Recorded %d %s payouts totalling %s",
            len(payouts),
            calculation_type.value,
            LineItemBuilder.sum_amounts(result.lines),
        )
        return result, payouts

    async def _hourly_context(
        self,
        employees: list[Employee],
        start_time: str | None,
        end_time: str | None,
        time_entry_ids: list[UUID] | None,
    ) -> HourlyPayoutContext:
        if time_entry_ids:
            entries = await self.time_clock.get_entries(time_entry_ids)
            return HourlyPayoutContext(
                hours_worked=sum_tracked_hours(entries),
                employees=employees,
                clock_in_time=min(entry.check_in_time for entry in entries),
                clock_out_time=max(entry.check_out_time for entry in entries),
            )
        if not start_time or not end_time:
            raise PayoutValidationError("Start and end times are required")
        return HourlyPayoutContext(
            hours_worked=hours_between(start_time, end_time),
            employees=employees,
        )

    async def process_project_webhook(
        self,
        project_value: Decimal | None,
        project_title: str | None,
        employees_assigned: list[str] | None,
        quoted_by_name: str | None = None,
        first_time: bool = False,
        job_id: str | None = None,
    ) -> list[Payout]:
        """Create ``auto`` payouts for a project reported by an external system.

        Validation runs in order: required fields, assignee lookup, rate
        lookup, then ``job_id`` deduplication. Without a ``job_id`` every
        call inserts new rows.

        Raises:
            PayoutValidationError: For missing fields or no calculable payouts
            NoMatchingEmployeesError: If no assignee is an active project employee
            DuplicatePayoutError: If ``job_id`` was already processed for any
                of the target employees
        """
        if not project_value or not project_title or not employees_assigned:
            raise PayoutValidationError(PayoutValidationError.MISSING_FIELDS)

        employees = await self.employees.find_active_project_employees_by_names(
            employees_assigned
        )
        if not employees:
            raise NoMatchingEmployeesError()

        quoted_by = await self.employees.find_by_name(quoted_by_name)
        logger.info("Quoted-by lookup %r -> %s", quoted_by_name, quoted_by.id if quoted_by else None)

        engine = PayoutEngine(await self.load_bonus_config())
        result = engine.calculate_project(
            ProjectPayoutContext(
                project_value=Decimal(str(project_value)),
                employees=employees,
                project_title=project_title,
                is_first_time=bool(first_time),
                quoted_by=quoted_by,
                quoted_by_name=quoted_by_name or None,
            )
        )

        job_id = job_id or None
        target_ids = list({line.employee_id for line in result.lines})
        if job_id:
            existing = await self._existing_auto_payouts(job_id, target_ids)
            if existing:
                logger.info("Duplicate webhook for job_id %s, %d existing rows", job_id, len(existing))
                raise DuplicatePayoutError(job_id, existing)
        else:
            logger.info("No job_id provided, skipping duplicate detection")

        payouts = [
            LineItemBuilder.to_payout(line, PayoutSource.AUTO, job_id=job_id)
            for line in result.lines
        ]
        self.session.add_all(payouts)
        try:
            await self.session.flush()
        except IntegrityError as e:
            # A concurrent call inserted the same job first.
            await self.session.rollback()
            if job_id is None:
                raise
            existing = await self._existing_auto_payouts(job_id, target_ids)
            raise DuplicatePayoutError(job_id, existing) from e

        logger.info(
            'Created %d payouts for project "%s" (job_id=%s)', len(payouts), project_title, job_id
        )
        return payouts

    async def _existing_auto_payouts(
        self, job_id: str, employee_ids: list[UUID]
    ) -> list[Payout]:
        result = await self.session.execute(
            select(Payout).where(
                Payout.job_id == job_id,
                Payout.source == PayoutSource.AUTO.value,
                Payout.employee_id.in_(employee_ids),
            )
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    async def list_payouts(
        self, filters: PayoutFilters | None = None
    ) -> tuple[list[Payout], Decimal]:
        """Payouts matching the filters, newest first, with their total."""
        filters = filters or PayoutFilters()
        query = select(Payout)

        if filters.employee_id:
            query = query.where(Payout.employee_id == filters.employee_id)
        if filters.calculation_type:
            query = query.where(Payout.calculation_type == filters.calculation_type)
        if filters.project_title:
            query = query.where(
                func.lower(Payout.project_title).contains(filters.project_title.lower())
            )
        if filters.date_from:
            start, _ = local_day_bounds(filters.date_from, filters.timezone)
            query = query.where(Payout.created_at >= start)
        if filters.date_to:
            _, end = local_day_bounds(filters.date_to, filters.timezone)
            query = query.where(Payout.created_at < end)

        result = await self.session.execute(query.order_by(Payout.created_at.desc()))
        payouts = list(result.scalars().all())
        total = LineItemBuilder.round_to_cents(
            sum((Decimal(p.amount) for p in payouts), Decimal("0"))
        )
        return payouts, total

    async def dashboard_stats(
        self,
        timezone_name: str | None = None,
        now: datetime | None = None,
    ) -> DashboardStats:
        """Active headcount, average hourly rate and this month's totals.

        "This month" starts at midnight on the 1st in ``timezone_name``.
        """
        zone = resolve_timezone(timezone_name)
        local_now = to_local(now or now_utc(), zone)
        month_start, _ = local_day_bounds(local_now.date().replace(day=1), zone)

        average = await self.session.scalar(
            select(func.avg(Employee.hourly_rate)).where(
                Employee.status == "active",
                Employee.pay_scale_type == "hourly",
                Employee.hourly_rate.is_not(None),
            )
        )

        rows = await self.session.execute(
            select(Payout.calculation_type, func.sum(Payout.amount))
            .where(Payout.created_at >= month_start)
            .group_by(Payout.calculation_type)
        )
        totals = {calculation_type: amount for calculation_type, amount in rows.all()}

        return DashboardStats(
            active_employees=await self.employees.count_active(),
            average_hourly_rate=LineItemBuilder.round_to_cents(Decimal(str(average or 0))),
            monthly_hourly_total=LineItemBuilder.round_to_cents(
                Decimal(str(totals.get(CalculationType.HOURLY.value) or 0))
            ),
            monthly_project_total=LineItemBuilder.round_to_cents(
                Decimal(str(totals.get(CalculationType.PROJECT.value) or 0))
            ),
        )

    # ------------------------------------------------------------------
    # Corrections
    # ------------------------------------------------------------------

    async def update_payout(self, payout_id: UUID, changes: dict[str, Any]) -> Payout:
        """Apply an admin correction to a payout.

        For project rows a new collaborator count re-derives the rate from
        the employee's tiers, and a new rate or project value recomputes the
        amount. An explicit ``amount`` always wins.

        Raises:
            PayoutNotFoundError: If no such payout exists
            PayoutValidationError: If the resulting row is inconsistent
        """
        payout = await self.get_payout(payout_id)
        is_project = payout.calculation_type == CalculationType.PROJECT.value

        if is_project and changes.get("hours_worked") is not None:
            raise PayoutValidationError("Project payouts do not carry hours worked")
        if not is_project and changes.get("project_value") is not None:
            raise PayoutValidationError("Hourly payouts do not carry a project value")

        required = (
            ("rate", "project_value", "collaborators_count")
            if is_project
            else ("rate", "hours_worked")
        )
        cleared = [key for key in required if key in changes and changes[key] is None]
        if cleared:
            raise PayoutValidationError(f"Cannot clear {', '.join(cleared)} on this payout")

        for key in ("rate", "project_value", "hours_worked", "collaborators_count"):
            if key in changes:
                setattr(payout, key, changes[key])

        recompute = False
        if is_project and "collaborators_count" in changes and "rate" not in changes:
            if payout.payout_kind == PayoutKind.BASE.value:
                payout.rate = await self._tier_rate(payout)
                recompute = True
        if is_project and ("rate" in changes or "project_value" in changes):
            recompute = True

        if changes.get("amount") is not None:
            payout.amount = LineItemBuilder.round_to_cents(Decimal(str(changes["amount"])))
        elif recompute and payout.project_value is not None:
            payout.amount = LineItemBuilder.percentage_of(
                Decimal(payout.project_value), Decimal(payout.rate)
            )
        elif not is_project and "hours_worked" in changes and payout.hours_worked is not None:
            payout.amount = LineItemBuilder.round_to_cents(
                Decimal(payout.rate) * Decimal(payout.hours_worked)
            )

        await self.session.flush()
        logger.info("Updated payout %s: amount %s", payout.id, payout.amount)
        return payout

    async def _tier_rate(self, payout: Payout) -> Decimal:
        count = payout.collaborators_count
        if count is None or count < 1:
            raise PayoutValidationError("Collaborator count must be at least 1")
        employee = await self.session.get(Employee, payout.employee_id)
        if employee is None:
            raise PayoutValidationError(
                f"Employee {payout.employee_name} no longer exists, set the rate explicitly"
            )
        try:
            return RateResolver.resolve_project_rate(employee, count)
        except RateNotFoundError as e:
            raise PayoutValidationError(str(e)) from e

    async def edit_hourly_payout(
        self,
        payout_id: UUID,
        clock_in_time: datetime,
        clock_out_time: datetime,
        reason: str,
    ) -> Payout:
        """Correct the clock times of an hourly payout and recompute it.

        Raises:
            PayoutNotFoundError: If no such payout exists
            PayoutValidationError: If the payout is not hourly
            InvalidTimeEditError: If the reason is blank or the times are
                out of order
        """
        if not reason or not reason.strip():
            raise InvalidTimeEditError("Please provide a reason for this edit")

        payout = await self.get_payout(payout_id)
        if payout.calculation_type != CalculationType.HOURLY.value:
            raise PayoutValidationError("Only hourly payouts have clock times")

        edit = apply_instant_edit(clock_in_time, clock_out_time)
        payout.clock_in_time = edit.check_in_time
        payout.clock_out_time = edit.check_out_time
        payout.hours_worked = LineItemBuilder.round_to_cents(edit.total_hours)
        payout.amount = LineItemBuilder.round_to_cents(Decimal(payout.rate) * edit.total_hours)
        payout.edit_reason = reason.strip()
        payout.is_edited = True

        await self.session.flush()
        logger.info("Edited hourly payout %s: %s hours", payout.id, payout.hours_worked)
        return payout

    async def delete_payout(self, payout_id: UUID) -> None:
        """Delete a payout.

        Raises:
            PayoutNotFoundError: If no such payout exists
        """
        payout = await self.get_payout(payout_id)
        await self.session.delete(payout)
        await self.session.flush()
        logger.info("Deleted payout %s (%s)", payout_id, payout.employee_name)
