"""Employee and user profile models."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from payroll_tracker.models.base import Base, TimestampMixin, uuid_pk

DEFAULT_TIMEZONE = "America/Chicago"

# Collaborator count -> column holding the percentage for that tier.
PROJECT_RATE_COLUMNS: dict[int, str] = {
    1: "project_rate_1_member",
    2: "project_rate_2_members",
    3: "project_rate_3_members",
    4: "project_rate_4_members",
    5: "project_rate_5_members",
}


class Employee(Base, TimestampMixin):
    """Employee record with hourly or collaboration-tiered project pay."""

    __tablename__ = "employees"

    id: Mapped[UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    department: Mapped[str | None] = mapped_column(String, nullable=True)
    position: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    pay_scale_type: Mapped[str] = mapped_column(String, nullable=False)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    project_rate_1_member: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    project_rate_2_members: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    project_rate_3_members: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    project_rate_4_members: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    project_rate_5_members: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    timezone: Mapped[str] = mapped_column(
        String, nullable=False, default=DEFAULT_TIMEZONE, server_default=DEFAULT_TIMEZONE
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'inactive', 'on_leave')",
            name="employees_status_check",
        ),
        CheckConstraint(
            "pay_scale_type IN ('hourly', 'project')",
            name="employees_pay_scale_type_check",
        ),
        Index("idx_employees_status", "status"),
        Index("idx_employees_timezone", "timezone"),
    )

    @property
    def is_hourly(self) -> bool:
        return self.pay_scale_type == "hourly"

    @property
    def is_project(self) -> bool:
        return self.pay_scale_type == "project"


class UserProfile(Base, TimestampMixin):
    """Viewer profile; only the display timezone is used here."""

    __tablename__ = "user_profiles"

    id: Mapped[UUID] = uuid_pk()
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    user_timezone: Mapped[str] = mapped_column(
        String, nullable=False, default=DEFAULT_TIMEZONE, server_default=DEFAULT_TIMEZONE
    )
