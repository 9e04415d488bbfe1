"""
Recurrence Service

Validates recurrence patterns and expands them into concrete dates.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional

from apps.bookingapp.config import SchedulingConfig
from apps.bookingapp.utils.date_utils import add_months, get_week_start, get_weekday, parse_date
from core.exceptions import InvalidDataException

logger = logging.getLogger(__name__)

WEEKLY = "weekly"
BIWEEKLY = "biweekly"
MONTHLY = "monthly"
FREQUENCIES = (WEEKLY, BIWEEKLY, MONTHLY)


@dataclass(frozen=True)
class RecurrencePattern:
    frequency: str
    days_of_week: List[int] = field(default_factory=list)
    interval: int = 1
    end_date: Optional[date] = None
    occurrences: Optional[int] = None

    @property
    def week_step(self):
        """Weeks between rotation windows"""
        return 2 if self.frequency == BIWEEKLY else self.interval

    def to_dict(self):
        return {
            "frequency": self.frequency,
            "days_of_week": list(self.days_of_week),
            "interval": self.interval,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "occurrences": self.occurrences,
        }


class RecurrenceService:
    @staticmethod
    def parse_pattern(data, start_date, config: Optional[SchedulingConfig] = None, max_occurrences=None):
        """
        Validate raw pattern data and build a RecurrencePattern.

        Args:
            data: Dict with ``frequency``, optional ``days_of_week`` and ``interval``,
                and at least one of ``end_date`` / ``occurrences``
            start_date: First date of the series
            config: Scheduling configuration
            max_occurrences: Shop cap on occurrences, never above the global cap

        Returns:
            RecurrencePattern

        Raises:
            InvalidDataException: with a message naming the offending field
        """
        config = config or SchedulingConfig.from_settings()
        if not isinstance(data, dict):
            raise InvalidDataException("Recurrence pattern is required")

        frequency = data.get("frequency")
        if frequency not in FREQUENCIES:
            raise InvalidDataException(
                f"frequency: must be one of {', '.join(FREQUENCIES)}",
                errors={"frequency": frequency},
            )

        days_of_week = data.get("days_of_week") or []
        if frequency in (WEEKLY, BIWEEKLY) and days_of_week:
            if not isinstance(days_of_week, (list, tuple)) or not all(
                isinstance(day, int) and not isinstance(day, bool) and 0 <= day <= 6
                for day in days_of_week
            ):
                raise InvalidDataException(
                    "days_of_week: must be a list of integers between 0 (Sunday) and 6 (Saturday)",
                    errors={"days_of_week": days_of_week},
                )
            days_of_week = sorted(set(days_of_week))
        else:
            days_of_week = []

        interval = data.get("interval", 1)
        if (
            not isinstance(interval, int)
            or isinstance(interval, bool)
            or not 1 <= interval <= config.max_series_interval
        ):
            raise InvalidDataException(
                f"interval: must be an integer between 1 and {config.max_series_interval}",
                errors={"interval": interval},
            )

        end_date = None
        if data.get("end_date"):
            end_date = parse_date(data["end_date"], "end_date")
            if end_date <= start_date:
                raise InvalidDataException(
                    "end_date: must be after the series start date",
                    errors={"end_date": end_date.isoformat()},
                )

        cap = min(max_occurrences or config.max_series_occurrences, config.max_series_occurrences)
        occurrences = data.get("occurrences")
        if occurrences is not None:
            if (
                not isinstance(occurrences, int)
                or isinstance(occurrences, bool)
                or not config.min_series_occurrences <= occurrences <= cap
            ):
                raise InvalidDataException(
                    f"occurrences: must be between {config.min_series_occurrences} and {cap}",
                    errors={"occurrences": occurrences},
                )
        elif end_date is None:
            raise InvalidDataException(
                "Recurrence pattern must define an end_date or a number of occurrences"
            )

        return RecurrencePattern(
            frequency=frequency,
            days_of_week=days_of_week,
            interval=interval,
            end_date=end_date,
            occurrences=occurrences,
        )

    @staticmethod
    def _next_weekly_date(pattern, current):
        if not pattern.days_of_week:
            return current + timedelta(weeks=pattern.week_step)

        weekday = get_weekday(current)
        for day in pattern.days_of_week:
            if day > weekday:
                return current + timedelta(days=day - weekday)

        next_week = get_week_start(current) + timedelta(weeks=pattern.week_step)
        return next_week + timedelta(days=pattern.days_of_week[0])

    @classmethod
    def generate(cls, pattern: RecurrencePattern, start_date, config: Optional[SchedulingConfig] = None, max_occurrences=None):
        """
        Expand a pattern into dates, starting with ``start_date`` itself.

        Generation stops at the requested number of occurrences, past the
        pattern's end date, at the occurrence cap, or past the hard limit of
        ``max_series_days`` from the start date, whichever comes first.

        Returns:
            Ordered list of dates
        """
        config = config or SchedulingConfig.from_settings()
        cap = min(max_occurrences or config.max_series_occurrences, config.max_series_occurrences)
        target = min(pattern.occurrences or cap, cap)
        hard_limit = start_date + timedelta(days=config.max_series_days)

        dates = [start_date]
        current = start_date
        while len(dates) < target:
            if pattern.frequency == MONTHLY:
                current = add_months(start_date, len(dates) * pattern.interval)
            else:
                current = cls._next_weekly_date(pattern, current)

            if current > hard_limit:
                logger.info(f"Series from {start_date} stopped at the {config.max_series_days}-day limit")
                break
            if pattern.end_date and current > pattern.end_date:
                break
            dates.append(current)

        return dates
