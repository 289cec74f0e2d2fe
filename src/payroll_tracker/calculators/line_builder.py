"""Payout line builder."""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from payroll_tracker.calculators.types import (
    CalculationType,
    PayoutKind,
    PayoutLine,
    PayoutSource,
)
from payroll_tracker.models import Payout

if TYPE_CHECKING:
    from payroll_tracker.models import Employee


class LineItemBuilder:
    """Builds payout lines and turns them into Payout rows.

    Rounding:
    - Amounts are computed from unrounded inputs and rounded half-up to
      cents once, when the line is built
    - Hours are kept at 4 decimals internally and stored at 2
    """

    HOURS_PRECISION = Decimal("0.0001")
    OUTPUT_PRECISION = Decimal("0.01")

    BONUS_LABELS: dict[PayoutKind, str] = {
        PayoutKind.FIRST_TIME_BONUS: "First Time Bonus",
        PayoutKind.QUOTED_BY_BONUS: "Quoted By Bonus",
    }

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return amount.quantize(LineItemBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def round_hours(hours: Decimal) -> Decimal:
        """Round hours to the internal 4-decimal precision."""
        return hours.quantize(LineItemBuilder.HOURS_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def percentage_of(value: Decimal, percentage: Decimal) -> Decimal:
        """``value × percentage / 100`` rounded to cents."""
        return LineItemBuilder.round_to_cents(value * percentage / Decimal("100"))

    @classmethod
    def bonus_display_name(cls, employee_name: str, kind: PayoutKind) -> str:
        """Suffix a bonus recipient's name, e.g. ``"Ana (First Time Bonus)"``."""
        return f"{employee_name} ({cls.BONUS_LABELS[kind]})"

    @staticmethod
    def create_project_line(
        employee: Employee,
        project_value: Decimal,
        rate: Decimal,
        collaborators_count: int,
        project_title: str | None = None,
        quoted_by_id: UUID | None = None,
        quoted_by_name: str | None = None,
    ) -> PayoutLine:
        """Create a base project payout line."""
        return PayoutLine(
            employee_id=employee.id,
            employee_name=employee.name,
            calculation_type=CalculationType.PROJECT,
            kind=PayoutKind.BASE,
            amount=LineItemBuilder.percentage_of(project_value, rate),
            rate=rate,
            project_value=project_value,
            collaborators_count=collaborators_count,
            project_title=project_title,
            quoted_by_id=quoted_by_id,
            quoted_by_name=quoted_by_name,
            is_first_time=False,
        )

    @classmethod
    def create_bonus_line(
        cls,
        recipient: Employee,
        kind: PayoutKind,
        project_value: Decimal,
        percentage: Decimal,
        collaborators_count: int,
        project_title: str | None = None,
    ) -> PayoutLine:
        """Create a bonus line for the quoted-by employee."""
        if kind == PayoutKind.BASE:
            raise ValueError("Bonus lines need a bonus kind")
        return PayoutLine(
            employee_id=recipient.id,
            employee_name=cls.bonus_display_name(recipient.name, kind),
            calculation_type=CalculationType.PROJECT,
            kind=kind,
            amount=cls.percentage_of(project_value, percentage),
            rate=percentage,
            project_value=project_value,
            collaborators_count=collaborators_count,
            project_title=project_title,
            quoted_by_id=recipient.id,
            quoted_by_name=recipient.name,
            is_first_time=kind == PayoutKind.FIRST_TIME_BONUS,
        )

    @staticmethod
    def create_hourly_line(
        employee: Employee,
        rate: Decimal,
        hours_worked: Decimal,
        collaborators_count: int | None = None,
        clock_in_time: datetime | None = None,
        clock_out_time: datetime | None = None,
    ) -> PayoutLine:
        """Create an hourly payout line (``rate × hours``)."""
        return PayoutLine(
            employee_id=employee.id,
            employee_name=employee.name,
            calculation_type=CalculationType.HOURLY,
            kind=PayoutKind.BASE,
            amount=LineItemBuilder.round_to_cents(rate * hours_worked),
            rate=rate,
            collaborators_count=collaborators_count,
            hours_worked=hours_worked,
            clock_in_time=clock_in_time,
            clock_out_time=clock_out_time,
        )

    @staticmethod
    def to_payout(
        line: PayoutLine,
        source: PayoutSource,
        job_id: str | None = None,
    ) -> Payout:
        """Convert a line into an unsaved Payout row."""
        hours = line.hours_worked
        return Payout(
            employee_id=line.employee_id,
            employee_name=line.employee_name,
            calculation_type=line.calculation_type.value,
            payout_kind=line.kind.value,
            amount=line.amount,
            rate=line.rate,
            project_value=line.project_value,
            collaborators_count=line.collaborators_count,
            project_title=line.project_title,
            quoted_by_id=line.quoted_by_id,
            quoted_by_name=line.quoted_by_name,
            is_first_time=line.is_first_time,
            hours_worked=LineItemBuilder.round_to_cents(hours) if hours is not None else None,
            clock_in_time=line.clock_in_time,
            clock_out_time=line.clock_out_time,
            source=source.value,
            job_id=job_id,
            is_edited=False,
        )

    @staticmethod
    def sum_amounts(lines: list[PayoutLine]) -> Decimal:
        """Total of line amounts."""
        total = Decimal("0")
        for line in lines:
            total += line.amount
        return LineItemBuilder.round_to_cents(total)
