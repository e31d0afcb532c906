"""Clock and timezone helpers. Only the HTTP edge reads the clock; services take days as input."""

from datetime import date, datetime, timezone, tzinfo
from zoneinfo import ZoneInfo

from classroll.core.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def reference_tz() -> tzinfo:
    """Timezone in which calendar days are interpreted (REFERENCE_TIMEZONE)."""
    name = (settings.reference_timezone or "UTC").strip()
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def reference_now() -> datetime:
    return datetime.now(reference_tz())


def format_day(day: date) -> str:
    """'Oct 19, 2026'"""
    return f"{day.strftime('%b')} {day.day}, {day.year}"
