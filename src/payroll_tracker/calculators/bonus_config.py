"""Bonus percentage configuration.

Bonus percentages are edited by admins in the ``app_settings`` table. They
are loaded once per request into an immutable BonusConfig and handed to the
engine, so a calculation never reads settings behind the caller's back.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

logger = logging.getLogger(__name__)

FIRST_TIME_BONUS_KEY = "first_time_bonus_percentage"
QUOTED_BY_BONUS_KEY = "quoted_by_bonus_percentage"

DEFAULT_FIRST_TIME_BONUS = Decimal("30")
DEFAULT_QUOTED_BY_BONUS = Decimal("2")

BONUS_SETTING_DEFAULTS: dict[str, Decimal] = {
    FIRST_TIME_BONUS_KEY: DEFAULT_FIRST_TIME_BONUS,
    QUOTED_BY_BONUS_KEY: DEFAULT_QUOTED_BY_BONUS,
}


def parse_percentage(raw: str | None, default: Decimal) -> Decimal:
    """Parse a stored percentage, falling back to ``default``.

    Missing, unparseable, non-finite and negative values fall back. A stored
    zero is a real setting, not "unset": it switches the bonus off instead of
    restoring the default.
    """
    if raw is None or not str(raw).strip():
        return default
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        logger.warning("Unparseable bonus percentage %r, using default %s", raw, default)
        return default
    if not value.is_finite() or value < 0:
        logger.warning("Invalid bonus percentage %r, using default %s", raw, default)
        return default
    return value


@dataclass(frozen=True)
class BonusConfig:
    """
    Bonus rates applied to the quoted-by employee.

    Attributes:
        first_time_bonus_percentage: Percent of project value paid once for
            a first-time project. Default 30.
        quoted_by_bonus_percentage: Percent of project value paid for any
            other project. Default 2.
    """

    first_time_bonus_percentage: Decimal = DEFAULT_FIRST_TIME_BONUS
    quoted_by_bonus_percentage: Decimal = DEFAULT_QUOTED_BY_BONUS

    @classmethod
    def from_settings(cls, values: Mapping[str, str | None]) -> BonusConfig:
        """Build from raw ``setting_key -> setting_value`` pairs."""
        return cls(
            first_time_bonus_percentage=parse_percentage(
                values.get(FIRST_TIME_BONUS_KEY), DEFAULT_FIRST_TIME_BONUS
            ),
            quoted_by_bonus_percentage=parse_percentage(
                values.get(QUOTED_BY_BONUS_KEY), DEFAULT_QUOTED_BY_BONUS
            ),
        )
