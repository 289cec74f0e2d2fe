"""Payout calculation engine."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import time
from decimal import Decimal
from typing import TYPE_CHECKING

from payroll_tracker.calculators.bonus_config import BonusConfig
from payroll_tracker.calculators.line_builder import LineItemBuilder
from payroll_tracker.calculators.rate_resolver import RateNotFoundError, RateResolver
from payroll_tracker.calculators.types import (
    HourlyPayoutContext,
    PayoutCalculationResult,
    PayoutKind,
    ProjectPayoutContext,
)

if TYPE_CHECKING:
    from payroll_tracker.models import TimeEntry

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


class PayoutValidationError(Exception):
    """Raised for terminal input problems; never retried."""

    MISSING_FIELDS = "Missing required fields"
    NO_MATCHING_EMPLOYEES = "No matching project-based employees found"
    NO_PAYOUTS = "No payouts could be calculated"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def parse_time_of_day(value: str) -> time:
    """Parse ``"HH:MM"`` into a time."""
    try:
        hours_str, minutes_str = value.strip().split(":")
        return time(int(hours_str), int(minutes_str))
    except (AttributeError, ValueError) as e:
        raise PayoutValidationError(f"Invalid time of day {value!r}, expected HH:MM") from e


def hours_between(start: str, end: str) -> Decimal:
    """Hours between two times of day, wrapping past midnight.

    ``hours_between("22:00", "06:00") == 8``. Equal times give zero.
    """
    start_t = parse_time_of_day(start)
    end_t = parse_time_of_day(end)
    start_minutes = start_t.hour * 60 + start_t.minute
    end_minutes = end_t.hour * 60 + end_t.minute

    total_minutes = end_minutes - start_minutes
    if total_minutes < 0:
        total_minutes += MINUTES_PER_DAY

    return LineItemBuilder.round_hours(Decimal(total_minutes) / Decimal(60))


def sum_tracked_hours(entries: Iterable[TimeEntry]) -> Decimal:
    """Sum ``total_hours`` of completed time clock sessions.

    Raises:
        PayoutValidationError: If any entry is still checked in
    """
    total = Decimal("0")
    for entry in entries:
        if entry.status != "checked_out" or entry.total_hours is None:
            raise PayoutValidationError(
                f"Time entry {entry.id} for {entry.employee_name} is not checked out"
            )
        total += Decimal(entry.total_hours)
    return LineItemBuilder.round_hours(total)


class PayoutEngine:
    """Computes payout lines for project and hourly work.

    Project pipeline (stable order):
    1) One base line per project employee at the tier rate for the team size
       (employees without a rate for that tier are skipped with a warning)
    2) At most one bonus line for the quoted-by employee: first-time bonus
       for first-time projects, otherwise the quoted-by bonus

    Hourly pipeline: one line per hourly employee, ``rate × hours``.

    The engine is pure: bonus rates arrive as a BonusConfig and nothing is
    read from or written to the database here.
    """

    def __init__(self, bonus_config: BonusConfig | None = None):
        self.bonus_config = bonus_config or BonusConfig()

    def calculate_project(self, ctx: ProjectPayoutContext) -> PayoutCalculationResult:
        """Calculate base and bonus lines for a project.

        Raises:
            PayoutValidationError: On missing inputs or when no base line
                could be produced
        """
        if ctx.project_value is None or ctx.project_value <= 0 or not ctx.employees:
            raise PayoutValidationError(PayoutValidationError.MISSING_FIELDS)

        collaborators_count = ctx.effective_collaborators_count
        if collaborators_count < 1:
            raise PayoutValidationError("Collaborator count must be at least 1")

        result = PayoutCalculationResult()
        quoted_by_id = ctx.quoted_by.id if ctx.quoted_by else None
        quoted_by_name = ctx.quoted_by.name if ctx.quoted_by else ctx.quoted_by_name

        for employee in ctx.employees:
            if not employee.is_project:
                self._warn(result, f"Employee {employee.name} is not paid per project, skipped")
                continue
            try:
                rate = RateResolver.resolve_project_rate(employee, collaborators_count)
            except RateNotFoundError as e:
                self._warn(result, str(e))
                continue

            result.lines.append(
                LineItemBuilder.create_project_line(
                    employee=employee,
                    project_value=ctx.project_value,
                    rate=rate,
                    collaborators_count=collaborators_count,
                    project_title=ctx.project_title,
                    quoted_by_id=quoted_by_id,
                    quoted_by_name=quoted_by_name,
                )
            )

        if not result.lines:
            raise PayoutValidationError(PayoutValidationError.NO_PAYOUTS)

        if ctx.quoted_by is not None:
            if ctx.is_first_time:
                kind = PayoutKind.FIRST_TIME_BONUS
                percentage = self.bonus_config.first_time_bonus_percentage
            else:
                kind = PayoutKind.QUOTED_BY_BONUS
                percentage = self.bonus_config.quoted_by_bonus_percentage

            if percentage > 0:
                result.lines.append(
                    LineItemBuilder.create_bonus_line(
                        recipient=ctx.quoted_by,
                        kind=kind,
                        project_value=ctx.project_value,
                        percentage=percentage,
                        collaborators_count=collaborators_count,
                        project_title=ctx.project_title,
                    )
                )
            else:
                self._warn(result, f"{kind.value} percentage is 0, no bonus line")
        elif ctx.quoted_by_name:
            self._warn(result, f"Quoted-by employee {ctx.quoted_by_name!r} not found, no bonus")

        return result

    def calculate_hourly(self, ctx: HourlyPayoutContext) -> PayoutCalculationResult:
        """Calculate hourly lines.

        Raises:
            PayoutValidationError: On missing inputs or when no employee
                has an hourly rate
        """
        if not ctx.employees:
            raise PayoutValidationError(PayoutValidationError.MISSING_FIELDS)
        if ctx.hours_worked is None or ctx.hours_worked <= 0:
            raise PayoutValidationError("Hours worked must be greater than zero")

        result = PayoutCalculationResult()
        for employee in ctx.employees:
            if not employee.is_hourly:
                self._warn(result, f"Employee {employee.name} is not paid hourly, skipped")
                continue
            try:
                rate = RateResolver.resolve_hourly_rate(employee)
            except RateNotFoundError as e:
                self._warn(result, str(e))
                continue

            result.lines.append(
                LineItemBuilder.create_hourly_line(
                    employee=employee,
                    rate=rate,
                    hours_worked=ctx.hours_worked,
                    collaborators_count=len(ctx.employees),
                    clock_in_time=ctx.clock_in_time,
                    clock_out_time=ctx.clock_out_time,
                )
            )

        if not result.lines:
            raise PayoutValidationError(PayoutValidationError.NO_PAYOUTS)

        return result

    @staticmethod
    def _warn(result: PayoutCalculationResult, message: str) -> None:
        logger.warning(message)
        result.warnings.append(message)
