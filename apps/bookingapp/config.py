from dataclasses import dataclass
from datetime import time

from django.conf import settings

from apps.bookingapp.utils.date_utils import parse_time


@dataclass(frozen=True)
class SchedulingConfig:
    """Scheduling defaults, read from ``settings.SCHEDULING``"""

    default_timezone: str = "America/Mexico_City"
    default_service_duration: int = 30
    min_series_occurrences: int = 2
    max_series_occurrences: int = 52
    max_series_days: int = 365
    max_series_interval: int = 4
    default_origin: str = "api"
    walk_in_origin: str = "walk_in"
    list_page_size: int = 20
    list_max_page_size: int = 100
    end_of_day: time = time(23, 59)

    @classmethod
    def from_settings(cls):
        conf = getattr(settings, "SCHEDULING", {})
        defaults = cls()
        return cls(
            default_timezone=conf.get("DEFAULT_TIMEZONE", defaults.default_timezone),
            default_service_duration=conf.get(
                "DEFAULT_SERVICE_DURATION", defaults.default_service_duration
            ),
            min_series_occurrences=conf.get(
                "MIN_SERIES_OCCURRENCES", defaults.min_series_occurrences
            ),
            max_series_occurrences=conf.get(
                "MAX_SERIES_OCCURRENCES", defaults.max_series_occurrences
            ),
            max_series_days=conf.get("MAX_SERIES_DAYS", defaults.max_series_days),
            max_series_interval=conf.get("MAX_SERIES_INTERVAL", defaults.max_series_interval),
            default_origin=conf.get("DEFAULT_ORIGIN", defaults.default_origin),
            walk_in_origin=conf.get("WALK_IN_ORIGIN", defaults.walk_in_origin),
            list_page_size=conf.get("LIST_PAGE_SIZE", defaults.list_page_size),
            list_max_page_size=conf.get("LIST_MAX_PAGE_SIZE", defaults.list_max_page_size),
            end_of_day=parse_time(conf.get("END_OF_DAY", "23:59"), "END_OF_DAY"),
        )
