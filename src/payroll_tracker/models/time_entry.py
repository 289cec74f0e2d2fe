"""Time clock entry model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Index, Integer, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from payroll_tracker.models.base import Base, TimestampMixin, UTCDateTime, uuid_pk


class TimeEntry(Base, TimestampMixin):
    """One check-in/check-out session.

    Instants are UTC. ``timezone_offset`` is a legacy per-entry offset in
    minutes kept for audit only; conversions use the employee's IANA zone.
    """

    __tablename__ = "time_entries"

    id: Mapped[UUID] = uuid_pk()
    # No foreign key: entries outlive the employee row.
    employee_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    employee_name: Mapped[str] = mapped_column(String, nullable=False)
    check_in_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    check_out_time: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    total_hours: Mapped[Decimal | None] = mapped_column(Numeric(10, 4), nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="checked_in")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    timezone_offset: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('checked_in', 'checked_out')",
            name="time_entries_status_check",
        ),
        CheckConstraint(
            "(status = 'checked_in' AND check_out_time IS NULL AND total_hours IS NULL) OR "
            "(status = 'checked_out' AND check_out_time IS NOT NULL AND total_hours IS NOT NULL)",
            name="time_entries_status_consistency_check",
        ),
        # At most one open session per employee.
        Index(
            "uq_time_entries_one_open_per_employee",
            "employee_id",
            unique=True,
            postgresql_where=text("status = 'checked_in'"),
            sqlite_where=text("status = 'checked_in'"),
        ),
        Index("idx_time_entries_check_in_time", "check_in_time"),
    )
