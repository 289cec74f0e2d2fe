"""Payout and application setting models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from payroll_tracker.models.base import Base, TimestampMixin, UTCDateTime, uuid_pk


class Payout(Base, TimestampMixin):
    """A single payout line.

    Project and hourly rows share the table; ``project_value`` is null for
    hourly rows and ``hours_worked`` is null for project rows. The employee
    name is a snapshot taken at creation and survives employee deletion.
    """

    __tablename__ = "payouts"

    id: Mapped[UUID] = uuid_pk()
    employee_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    employee_name: Mapped[str] = mapped_column(String, nullable=False)
    calculation_type: Mapped[str] = mapped_column(String, nullable=False)
    payout_kind: Mapped[str] = mapped_column(
        String, nullable=False, default="base", server_default="base"
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # Project fields
    project_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    collaborators_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    project_title: Mapped[str | None] = mapped_column(String, nullable=True)
    quoted_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    quoted_by_name: Mapped[str | None] = mapped_column(String, nullable=True)
    is_first_time: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Hourly fields
    hours_worked: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    clock_in_time: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    clock_out_time: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    edit_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Provenance
    source: Mapped[str] = mapped_column(
        String, nullable=False, default="manual", server_default="manual"
    )
    job_id: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "calculation_type IN ('hourly', 'project')",
            name="payouts_calculation_type_check",
        ),
        CheckConstraint(
            "source IN ('manual', 'auto')",
            name="payouts_source_check",
        ),
        CheckConstraint(
            "payout_kind IN ('base', 'first_time_bonus', 'quoted_by_bonus')",
            name="payouts_kind_check",
        ),
        CheckConstraint(
            "(calculation_type = 'hourly' AND project_value IS NULL) OR "
            "(calculation_type = 'project' AND hours_worked IS NULL)",
            name="payouts_type_fields_check",
        ),
        # Webhook dedup key; manual rows and rows without a job_id are exempt.
        Index(
            "uq_payouts_auto_job_employee_kind",
            "job_id",
            "employee_id",
            "payout_kind",
            unique=True,
            postgresql_where=text("job_id IS NOT NULL AND source = 'auto'"),
            sqlite_where=text("job_id IS NOT NULL AND source = 'auto'"),
        ),
        Index("idx_payouts_created_at", "created_at"),
    )


class AppSetting(Base, TimestampMixin):
    """Global key/value setting edited from the admin settings screen."""

    __tablename__ = "app_settings"

    id: Mapped[UUID] = uuid_pk()
    setting_key: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    setting_value: Mapped[str] = mapped_column(String, nullable=False)
    setting_type: Mapped[str] = mapped_column(
        String, nullable=False, default="text", server_default="text"
    )
