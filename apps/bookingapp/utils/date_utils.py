# apps/bookingapp/utils/date_utils.py
import calendar
from datetime import date as date_cls
from datetime import datetime, time, timedelta

from core.exceptions import InvalidDataException


def get_weekday(date):
    """
    Get the day of week in our format (0 = Sunday, 6 = Saturday)

    Args:
        date: Date to convert

    Returns:
        Weekday number
    """
    weekday = date.weekday()

    # Python's Monday is 0 and Sunday is 6
    if weekday == 6:
        return 0
    return weekday + 1


def get_week_start(date):
    """
    Get the Sunday that starts the week containing the given date
    """
    return date - timedelta(days=get_weekday(date))


def add_months(date, months):
    """
    Add a number of months keeping the day of month.

    Days that don't exist in the target month (e.g. the 31st) are clamped to
    the last day of that month.
    """
    month_index = date.month - 1 + months
    year = date.year + month_index // 12
    month = month_index % 12 + 1
    _, last_day = calendar.monthrange(year, month)
    return date_cls(year, month, min(date.day, last_day))


def parse_date(value, field_name="date"):
    """
    Normalize a date given as a date, datetime or YYYY-MM-DD string

    Raises:
        InvalidDataException: if the value can't be read as a date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date_cls):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip()[:10], "%Y-%m-%d").date()
        except ValueError:
            pass
    raise InvalidDataException(f"Invalid {field_name}: {value!r} (expected YYYY-MM-DD)")


def parse_time(value, field_name="time"):
    """
    Normalize a time given as a time or an HH:MM[:SS] string

    Raises:
        InvalidDataException: if the value can't be read as a time
    """
    if isinstance(value, time):
        return value.replace(microsecond=0, tzinfo=None)
    if isinstance(value, str):
        for fmt in ("%H:%M:%S", "%H:%M"):
            try:
                return datetime.strptime(value.strip(), fmt).time()
            except ValueError:
                continue
    raise InvalidDataException(f"Invalid {field_name}: {value!r} (expected HH:MM or HH:MM:SS)")
