"""Application settings service."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_tracker.calculators.bonus_config import BONUS_SETTING_DEFAULTS, BonusConfig
from payroll_tracker.models import AppSetting

logger = logging.getLogger(__name__)


class SettingValidationError(Exception):
    """Raised when a setting key or value is rejected."""


class SettingsService:
    """Reads and updates the global ``app_settings`` rows.

    Nothing is cached: each request gets the current values.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_values(self, keys: list[str] | None = None) -> dict[str, str]:
        """Raw ``setting_key -> setting_value`` pairs."""
        query = select(AppSetting)
        if keys is not None:
            query = query.where(AppSetting.setting_key.in_(keys))
        result = await self.session.execute(query)
        return {row.setting_key: row.setting_value for row in result.scalars().all()}

    async def load_bonus_config(self) -> BonusConfig:
        """Snapshot the bonus percentages for one calculation."""
        values = await self.get_values(list(BONUS_SETTING_DEFAULTS))
        return BonusConfig.from_settings(values)

    async def get_bonus_settings(self) -> dict[str, str]:
        """Bonus settings with defaults filled in for missing rows."""
        values = await self.get_values(list(BONUS_SETTING_DEFAULTS))
        return {
            key: values.get(key, str(default))
            for key, default in BONUS_SETTING_DEFAULTS.items()
        }

    async def update_setting(self, key: str, value: str) -> AppSetting:
        """Set a bonus percentage, creating the row if it does not exist.

        Raises:
            SettingValidationError: For unknown keys or values that are not
                a non-negative number
        """
        if key not in BONUS_SETTING_DEFAULTS:
            raise SettingValidationError(f"Unknown setting '{key}'")
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise SettingValidationError(f"{key} must be a number") from e
        if not number.is_finite() or number < 0:
            raise SettingValidationError(f"{key} must be a non-negative number")

        result = await self.session.execute(
            select(AppSetting).where(AppSetting.setting_key == key)
        )
        setting = result.scalar_one_or_none()
        if setting is None:
            setting = AppSetting(setting_key=key, setting_value=str(number), setting_type="number")
            self.session.add(setting)
        else:
            setting.setting_value = str(number)
        await self.session.flush()
        logger.info("Updated setting %s to %s", key, number)
        return setting
