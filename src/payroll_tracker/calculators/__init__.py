"""Payout calculation engine."""

from payroll_tracker.calculators.bonus_config import BonusConfig
from payroll_tracker.calculators.engine import (
    PayoutEngine,
    PayoutValidationError,
    hours_between,
    sum_tracked_hours,
)
from payroll_tracker.calculators.line_builder import LineItemBuilder
from payroll_tracker.calculators.rate_resolver import RateNotFoundError, RateResolver
from payroll_tracker.calculators.types import (
    CalculationType,
    HourlyPayoutContext,
    PayoutCalculationResult,
    PayoutKind,
    PayoutLine,
    PayoutSource,
    ProjectPayoutContext,
)

__all__ = [
    "BonusConfig",
    "CalculationType",
    "HourlyPayoutContext",
    "LineItemBuilder",
    "PayoutCalculationResult",
    "PayoutEngine",
    "PayoutKind",
    "PayoutLine",
    "PayoutSource",
    "PayoutValidationError",
    "ProjectPayoutContext",
    "RateNotFoundError",
    "RateResolver",
    "hours_between",
    "sum_tracked_hours",
]
