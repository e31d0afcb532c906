"""
Resolve a named timeframe into an inclusive calendar-day range.

"now" is always passed in. An aware datetime is first converted into the
reference timezone, then only its calendar day is used, so the same instant maps
to the same day on every server.
"""

from datetime import date, datetime, timedelta, tzinfo
from typing import Optional, Union

from classroll.core.enums import Timeframe
from classroll.core.timeutils import format_day, reference_tz

from .schemas import DateRange


TIMEFRAME_LABELS = {
    Timeframe.TODAY.value: "Today",
    Timeframe.WEEK.value: "This Week",
    Timeframe.MONTH.value: "This Month",
    Timeframe.YEAR.value: "This Year",
}


def _local_day(now: Union[datetime, date], tz: Optional[tzinfo]) -> date:
    if isinstance(now, datetime):
        if now.tzinfo is not None:
            now = now.astimezone(tz or reference_tz())
        return now.date()
    return now


def normalize_timeframe(timeframe: Optional[str]) -> str:
    """Lower-cased known timeframe; anything else falls back to 'today'."""
    value = (timeframe or "").strip().lower()
    if value in TIMEFRAME_LABELS:
        return value
    return Timeframe.TODAY.value


def resolve_date_range(
    timeframe: Optional[str],
    now: Union[datetime, date],
    tz: Optional[tzinfo] = None,
) -> DateRange:
    """
    today: start = end = today
    week:  Monday of the current week (Sunday counts as day 7) .. today
    month: 1st of the month .. today
    year:  January 1st .. today
    """
    key = normalize_timeframe(timeframe)
    today = _local_day(now, tz)

    if key == Timeframe.WEEK.value:
        # date.weekday(): Monday == 0 ... Sunday == 6
        start = today - timedelta(days=today.weekday())
    elif key == Timeframe.MONTH.value:
        start = today.replace(day=1)
    elif key == Timeframe.YEAR.value:
        start = today.replace(month=1, day=1)
    else:
        start = today

    return DateRange(start_date=start, end_date=today, timeframe=key)


def timeframe_label(timeframe: Optional[str]) -> str:
    return TIMEFRAME_LABELS.get(normalize_timeframe(timeframe), "Today")


def format_range_label(date_range: DateRange) -> str:
    """'Oct 12, 2026 - Oct 19, 2026'"""
    return f"{format_day(date_range.start_date)} - {format_day(date_range.end_date)}"
