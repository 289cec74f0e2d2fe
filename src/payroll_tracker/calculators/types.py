"""Type definitions for the payout calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from payroll_tracker.models import Employee


class CalculationType(str, Enum):
    """How a payout amount was derived."""

    HOURLY = "hourly"
    PROJECT = "project"


class PayoutKind(str, Enum):
    """Role of a payout line within one calculation."""

    BASE = "base"
    FIRST_TIME_BONUS = "first_time_bonus"
    QUOTED_BY_BONUS = "quoted_by_bonus"


class PayoutSource(str, Enum):
    """Provenance of a payout row."""

    MANUAL = "manual"
    AUTO = "auto"


@dataclass
class PayoutLine:
    """A candidate payout before persistence."""

    employee_id: UUID
    employee_name: str  # Display name, bonus lines carry a suffix
    calculation_type: CalculationType
    kind: PayoutKind
    amount: Decimal  # Rounded to cents
    rate: Decimal  # Percentage for project lines, currency/hour for hourly

    # Project fields
    project_value: Decimal | None = None
    collaborators_count: int | None = None
    project_title: str | None = None
    quoted_by_id: UUID | None = None
    quoted_by_name: str | None = None
    is_first_time: bool = False

    # Hourly fields
    hours_worked: Decimal | None = None
    clock_in_time: datetime | None = None
    clock_out_time: datetime | None = None

    @property
    def is_bonus(self) -> bool:
        return self.kind != PayoutKind.BASE


@dataclass
class ProjectPayoutContext:
    """Inputs for a project-based calculation."""

    project_value: Decimal
    employees: list[Employee]
    project_title: str | None = None
    is_first_time: bool = False
    quoted_by: Employee | None = None
    # Name as typed by the caller; recorded even if it resolved to nobody.
    quoted_by_name: str | None = None
    # Defaults to len(employees) when not given.
    collaborators_count: int | None = None

    @property
    def effective_collaborators_count(self) -> int:
        if self.collaborators_count is not None:
            return self.collaborators_count
        return len(self.employees)


@dataclass
class HourlyPayoutContext:
    """Inputs for an hourly calculation."""

    hours_worked: Decimal
    employees: list[Employee]
    clock_in_time: datetime | None = None
    clock_out_time: datetime | None = None


@dataclass
class PayoutCalculationResult:
    """Lines produced by one calculation plus non-fatal warnings."""

    lines: list[PayoutLine] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def base_lines(self) -> list[PayoutLine]:
        return [line for line in self.lines if not line.is_bonus]

    @property
    def bonus_lines(self) -> list[PayoutLine]:
        return [line for line in self.lines if line.is_bonus]

    @property
    def total(self) -> Decimal:
        return sum((line.amount for line in self.lines), Decimal("0"))
