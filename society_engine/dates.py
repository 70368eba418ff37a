"""
Business calendar helpers.

Every date comparison in the engine happens at calendar-day granularity in
the society's configured time zone, so a batch run just after midnight IST
and one just before it land on different business days.
"""

import calendar
from datetime import date, datetime
from typing import Optional, Union
from zoneinfo import ZoneInfo

from .config import get_config
from .errors import ValidationError

DateLike = Union[date, datetime]


def business_zone(name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(name or get_config().timezone)


def business_date(value: DateLike, zone: Optional[ZoneInfo] = None) -> date:
    """
    Reduce a date or aware datetime to the business calendar date.

    Raises:
        ValidationError: For naive datetimes, whose day is ambiguous
    """
    if isinstance(value, datetime):
        if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
            raise ValidationError(f"Datetime {value.isoformat()} has no time zone")
        return value.astimezone(zone or business_zone()).date()
    if isinstance(value, date):
        return value
    raise ValidationError(f"Expected a date or datetime, got {type(value).__name__}")


def today(zone: Optional[ZoneInfo] = None) -> date:
    zone = zone or business_zone()
    return datetime.now(zone).date()


def add_months(start_date: date, months: int) -> date:
    """Add months to a date, handling month-end edge cases"""
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def days_between(start: date, end: date) -> int:
    """Whole days from start to end; negative when end precedes start"""
    return (end - start).days
