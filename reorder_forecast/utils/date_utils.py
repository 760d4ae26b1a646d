# reorder_forecast/utils/date_utils.py
import calendar
from datetime import date, datetime, timedelta
from typing import Iterable, List, Union

SECONDS_PER_DAY = 86400.0


def add_days(start_date: datetime, days: float) -> datetime:
    """Add a (possibly fractional) number of days to a date.

    Args:
        start_date: Start date
        days: Number of days to add, negative to subtract

    Returns:
        New date
    """
    return start_date + timedelta(days=days)


def days_between(start_date: datetime, end_date: datetime) -> float:
    """Calculate the fractional number of days between two dates.

    Args:
        start_date: Start date
        end_date: End date

    Returns:
        Number of days, negative when end_date precedes start_date
    """
    delta = end_date - start_date
    return delta.total_seconds() / SECONDS_PER_DAY


def consecutive_gaps(dates: Iterable[datetime]) -> List[float]:
    """Gaps in days between consecutive dates, in the given order."""
    dates = list(dates)
    return [days_between(previous, current) for previous, current in zip(dates, dates[1:])]


def start_of_day(value: Union[date, datetime]) -> date:
    """Calendar date of a datetime (time of day discarded)."""
    if isinstance(value, datetime):
        return value.date()
    return value


def convert_to_datetime(value: Union[str, date, datetime], format_string: str = None) -> datetime:
    """Convert a string or date to a datetime.

    Args:
        value: ISO string, date or datetime
        format_string: Optional strptime format for strings

    Returns:
        Datetime object
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if format_string:
        return datetime.strptime(value, format_string)
    return datetime.fromisoformat(value)


def get_month_name(month: int) -> str:
    """English name of a calendar month (1-12)."""
    return calendar.month_name[month]
