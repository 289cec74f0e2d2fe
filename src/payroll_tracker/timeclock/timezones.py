"""Timezone conversion helpers for the time clock.

Every persisted instant is UTC. Employees (and viewers) own an IANA zone
name; wall-clock values only exist for display and for editing.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from payroll_tracker.models.employee import DEFAULT_TIMEZONE

HOURS_PRECISION = Decimal("0.0001")


class InvalidTimezoneError(ValueError):
    """Raised for a timezone name that is not in the IANA database."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown timezone '{name}'")


def resolve_timezone(name: str | None) -> ZoneInfo:
    """Resolve an IANA zone name; unset names fall back to America/Chicago."""
    if not name or not name.strip():
        name = DEFAULT_TIMEZONE
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidTimezoneError(name) from e


def _zone(tz: ZoneInfo | str | None) -> ZoneInfo:
    if isinstance(tz, ZoneInfo):
        return tz
    return resolve_timezone(tz)


def _require_aware(value: datetime, label: str) -> None:
    if value.tzinfo is None:
        raise ValueError(f"{label} must be timezone-aware")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_local(utc_instant: datetime, tz: ZoneInfo | str | None) -> datetime:
    """Project an instant into the wall clock of ``tz``.

    The result is aware (tzinfo is the zone), so ``fold`` survives for the
    repeated hour at the end of daylight saving time.
    """
    _require_aware(utc_instant, "utc_instant")
    return utc_instant.astimezone(_zone(tz))


def to_utc(local_wall_clock: datetime, tz: ZoneInfo | str | None) -> datetime:
    """Inverse of to_local.

    A naive value is read as wall-clock time in ``tz``; an aware value is
    simply converted. Times inside a spring-forward gap resolve with the
    offset in effect before the gap.
    """
    if local_wall_clock.tzinfo is None:
        local_wall_clock = local_wall_clock.replace(tzinfo=_zone(tz))
    return local_wall_clock.astimezone(timezone.utc)


def local_date(utc_instant: datetime, tz: ZoneInfo | str | None) -> date:
    """Calendar date of an instant in ``tz``."""
    return to_local(utc_instant, tz).date()


def local_day_bounds(day: date, tz: ZoneInfo | str | None) -> tuple[datetime, datetime]:
    """UTC instants of local midnight starting ``day`` and the next day."""
    zone = _zone(tz)
    start = to_utc(datetime.combine(day, time.min), zone)
    end = to_utc(datetime.combine(day + timedelta(days=1), time.min), zone)
    return start, end


def is_local_today(
    utc_instant: datetime,
    tz: ZoneInfo | str | None,
    now: datetime | None = None,
) -> bool:
    """Whether an instant falls on today's calendar date in ``tz``."""
    zone = _zone(tz)
    return local_date(utc_instant, zone) == local_date(now or now_utc(), zone)


def elapsed_hours(start: datetime, end: datetime) -> Decimal:
    """Elapsed hours between two instants, from UTC seconds.

    Raises:
        ValueError: If end is before start
    """
    _require_aware(start, "start")
    _require_aware(end, "end")
    seconds = Decimal(str((end - start).total_seconds()))
    if seconds < 0:
        raise ValueError(f"End {end.isoformat()} is before start {start.isoformat()}")
    return (seconds / Decimal(3600)).quantize(HOURS_PRECISION, rounding=ROUND_HALF_UP)


def format_duration(start: datetime, end: datetime | None = None, now: datetime | None = None) -> str:
    """Human duration such as ``"8h 30m"``; open sessions run until now."""
    end = end or now or now_utc()
    total_minutes = max(int((end - start).total_seconds() // 60), 0)
    return f"{total_minutes // 60}h {total_minutes % 60}m"


def utc_offset_label(tz: ZoneInfo | str | None, at: datetime | None = None) -> str:
    """Offset of ``tz`` at an instant, e.g. ``"UTC-5"`` or ``"UTC+5.5"``."""
    offset = to_local(at or now_utc(), tz).utcoffset() or timedelta(0)
    hours = Decimal(int(offset.total_seconds())) / Decimal(3600)
    if hours == hours.to_integral_value():
        hours = hours.to_integral_value()
    else:
        hours = hours.normalize()
    sign = "+" if hours >= 0 else ""
    return f"UTC{sign}{hours}"


def tz_abbreviation(tz: ZoneInfo | str | None, at: datetime | None = None) -> str:
    """Zone abbreviation at an instant, e.g. ``"CDT"``."""
    return to_local(at or now_utc(), tz).strftime("%Z")


def format_local(utc_instant: datetime, tz: ZoneInfo | str | None, fmt: str = "%H:%M") -> str:
    """Format an instant as wall-clock text in ``tz`` with its abbreviation."""
    local = to_local(utc_instant, tz)
    return f"{local.strftime(fmt)} {local.strftime('%Z')}"
