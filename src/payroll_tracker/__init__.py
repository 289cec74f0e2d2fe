"""Payroll tracker: project and hourly payouts with a timezone-aware time clock."""

__version__ = "0.1.0"
