"""Employee records service."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_tracker.models import PROJECT_RATE_COLUMNS, Employee, UserProfile
from payroll_tracker.models.employee import DEFAULT_TIMEZONE
from payroll_tracker.timeclock import resolve_timezone

logger = logging.getLogger(__name__)

EMPLOYEE_STATUSES = ("active", "inactive", "on_leave")
PAY_SCALE_TYPES = ("hourly", "project")

# Columns that can be changed but never set to null.
REQUIRED_FIELDS = ("name", "email", "status", "pay_scale_type", "timezone", "is_admin")


class EmployeeNotFoundError(Exception):
    """Raised when an employee id does not exist."""

    def __init__(self, employee_id: UUID):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} not found")


class EmployeeValidationError(Exception):
    """Raised when employee fields violate the pay scale rules."""


def validate_employee_fields(data: dict[str, Any]) -> list[str]:
    """Validate a full set of employee fields.

    Returns list of error messages (empty if valid).
    """
    errors: list[str] = []

    if not (data.get("name") or "").strip():
        errors.append("Name is required")
    if not (data.get("email") or "").strip():
        errors.append("Email is required")

    status = data.get("status", "active")
    if status not in EMPLOYEE_STATUSES:
        errors.append(f"Invalid status '{status}'")

    pay_scale_type = data.get("pay_scale_type")
    if pay_scale_type not in PAY_SCALE_TYPES:
        errors.append(f"Invalid pay scale type '{pay_scale_type}'")
    elif pay_scale_type == "hourly":
        rate = data.get("hourly_rate")
        if rate is None or Decimal(rate) <= 0:
            errors.append("Hourly employees need a positive hourly rate")
    else:
        rates = [data.get(column) for column in PROJECT_RATE_COLUMNS.values()]
        if not any(rate is not None and Decimal(rate) > 0 for rate in rates):
            errors.append("Project employees need at least one project rate")
        for column, rate in zip(PROJECT_RATE_COLUMNS.values(), rates):
            if rate is not None and not (Decimal("0") <= Decimal(rate) <= Decimal("100")):
                errors.append(f"{column} must be between 0 and 100")

    try:
        resolve_timezone(data.get("timezone"))
    except ValueError as e:
        errors.append(str(e))

    return errors


class EmployeeService:
    """Service for employee records and name lookups."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_employee(self, employee_id: UUID) -> Employee:
        """Load an employee.

        Raises:
            EmployeeNotFoundError: If no such employee exists
        """
        employee = await self.session.get(Employee, employee_id)
        if employee is None:
            raise EmployeeNotFoundError(employee_id)
        return employee

    async def list_employees(
        self,
        status: str | None = None,
        pay_scale_type: str | None = None,
    ) -> list[Employee]:
        """List employees ordered by name with optional filters."""
        query = select(Employee)
        if status:
            query = query.where(Employee.status == status)
        if pay_scale_type:
            query = query.where(Employee.pay_scale_type == pay_scale_type)
        result = await self.session.execute(query.order_by(Employee.name))
        return list(result.scalars().all())

    async def get_employees(self, employee_ids: Sequence[UUID]) -> list[Employee]:
        """Load several employees, preserving the requested order.

        Raises:
            EmployeeNotFoundError: For the first id that does not exist
        """
        if not employee_ids:
            return []
        result = await self.session.execute(
            select(Employee).where(Employee.id.in_(list(employee_ids)))
        )
        by_id = {employee.id: employee for employee in result.scalars().all()}
        missing = [employee_id for employee_id in employee_ids if employee_id not in by_id]
        if missing:
            raise EmployeeNotFoundError(missing[0])
        return [by_id[employee_id] for employee_id in employee_ids]

    async def find_active_project_employees_by_names(
        self, names: Sequence[str]
    ) -> list[Employee]:
        """Active project-paid employees whose name is in ``names``."""
        if not names:
            return []
        result = await self.session.execute(
            select(Employee)
            .where(
                Employee.name.in_(list(names)),
                Employee.status == "active",
                Employee.pay_scale_type == "project",
            )
            .order_by(Employee.name)
        )
        return list(result.scalars().all())

    async def find_by_name(self, name: str | None) -> Employee | None:
        """Look up one employee by exact name; ambiguous names resolve to nobody."""
        if not name:
            return None
        result = await self.session.execute(
            select(Employee).where(Employee.name == name).limit(2)
        )
        matches = list(result.scalars().all())
        if len(matches) != 1:
            if matches:
                logger.warning("Employee name %r is ambiguous, ignoring", name)
            return None
        return matches[0]

    async def create_employee(self, data: dict[str, Any]) -> Employee:
        """Create an employee after validating the pay scale rules.

        Raises:
            EmployeeValidationError: If the fields are invalid
        """
        fields = {"status": "active", "timezone": DEFAULT_TIMEZONE, "is_admin": False, **data}
        errors = validate_employee_fields(fields)
        if errors:
            raise EmployeeValidationError("; ".join(errors))

        employee = Employee(**self._clear_inactive_rates(fields))
        self.session.add(employee)
        await self.session.flush()
        logger.info("Created employee %s (%s)", employee.name, employee.pay_scale_type)
        return employee

    async def update_employee(self, employee_id: UUID, changes: dict[str, Any]) -> Employee:
        """Apply partial changes to an employee.

        Raises:
            EmployeeNotFoundError: If no such employee exists
            EmployeeValidationError: If the merged fields are invalid
        """
        employee = await self.get_employee(employee_id)
        cleared = [key for key in REQUIRED_FIELDS if key in changes and changes[key] is None]
        if cleared:
            raise EmployeeValidationError(f"Cannot clear {', '.join(cleared)}")

        merged = {**employee.to_dict(), **changes}
        errors = validate_employee_fields(merged)
        if errors:
            raise EmployeeValidationError("; ".join(errors))

        for key, value in self._clear_inactive_rates(merged).items():
            if key in changes or key in PROJECT_RATE_COLUMNS.values() or key == "hourly_rate":
                setattr(employee, key, value)
        await self.session.flush()
        return employee

    async def delete_employee(self, employee_id: UUID) -> None:
        """Delete an employee; payouts and time entries keep their name snapshot.

        Raises:
            EmployeeNotFoundError: If no such employee exists
        """
        employee = await self.get_employee(employee_id)
        await self.session.delete(employee)
        await self.session.flush()
        logger.info("Deleted employee %s", employee_id)

    async def get_viewer_timezone(self, email: str | None) -> str:
        """Display timezone for a viewer, from their profile."""
        if not email:
            return DEFAULT_TIMEZONE
        result = await self.session.execute(
            select(UserProfile.user_timezone).where(UserProfile.email == email)
        )
        return result.scalar_one_or_none() or DEFAULT_TIMEZONE

    async def set_viewer_timezone(self, email: str, timezone_name: str) -> UserProfile:
        """Store a viewer's display timezone, creating the profile if needed."""
        resolve_timezone(timezone_name)
        result = await self.session.execute(
            select(UserProfile).where(UserProfile.email == email)
        )
        profile = result.scalar_one_or_none()
        if profile is None:
            profile = UserProfile(email=email, user_timezone=timezone_name)
            self.session.add(profile)
        else:
            profile.user_timezone = timezone_name
        await self.session.flush()
        return profile

    async def count_active(self) -> int:
        """Number of active employees."""
        return await self.session.scalar(
            select(func.count()).select_from(Employee).where(Employee.status == "active")
        ) or 0

    @staticmethod
    def _clear_inactive_rates(fields: dict[str, Any]) -> dict[str, Any]:
        """Null the rate fields the pay scale does not use."""
        cleaned = dict(fields)
        if cleaned.get("pay_scale_type") == "hourly":
            for column in PROJECT_RATE_COLUMNS.values():
                cleaned[column] = None
        else:
            cleaned["hourly_rate"] = None
        return cleaned
