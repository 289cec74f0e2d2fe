"""Pay rate resolution with collaborator-count tiers."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from payroll_tracker.models.employee import PROJECT_RATE_COLUMNS

if TYPE_CHECKING:
    from payroll_tracker.models import Employee


class RateNotFoundError(Exception):
    """Raised when an employee has no usable rate for the calculation."""

    def __init__(
        self,
        employee_id: UUID,
        employee_name: str,
        collaborators_count: int | None = None,
    ):
        self.employee_id = employee_id
        self.employee_name = employee_name
        self.collaborators_count = collaborators_count
        if collaborators_count is None:
            msg = f"No hourly rate found for employee {employee_name}"
        else:
            msg = (
                f"No rate found for employee {employee_name} "
                f"with {collaborators_count} collaborators"
            )
        super().__init__(msg)


class RateResolver:
    """Resolves the rate an employee is paid at.

    Project rates are percentages stored per collaboration tier (1 to 5
    members). Teams larger than the top tier reuse the top tier's rate; the
    lookup saturates, it does not interpolate. A zero or missing rate counts
    as "no rate".
    """

    MAX_TIER = max(PROJECT_RATE_COLUMNS)

    @classmethod
    def tier_for(cls, collaborators_count: int) -> int:
        """Map a collaborator count to the rate tier that applies."""
        if collaborators_count < 1:
            raise ValueError(f"collaborators_count must be >= 1, got {collaborators_count}")
        return min(collaborators_count, cls.MAX_TIER)

    @classmethod
    def project_rate_column(cls, collaborators_count: int) -> str:
        """Name of the employee column holding the rate for this count."""
        return PROJECT_RATE_COLUMNS[cls.tier_for(collaborators_count)]

    @classmethod
    def resolve_project_rate(cls, employee: Employee, collaborators_count: int) -> Decimal:
        """Resolve the project percentage for a team of the given size.

        Raises:
            RateNotFoundError: If the tier's rate is zero or unset
        """
        rate = getattr(employee, cls.project_rate_column(collaborators_count))
        if not rate:
            raise RateNotFoundError(employee.id, employee.name, collaborators_count)
        return Decimal(rate)

    @classmethod
    def resolve_hourly_rate(cls, employee: Employee) -> Decimal:
        """Resolve the hourly rate.

        Raises:
            RateNotFoundError: If the hourly rate is zero or unset
        """
        if not employee.hourly_rate:
            raise RateNotFoundError(employee.id, employee.name)
        return Decimal(employee.hourly_rate)
