"""
Schedule rule reader.

Reads the recurring weekly windows and the one-off blackout blocks that
govern when a specialist can be booked. Read-only.
"""

import logging

from django.db.models import Q

from apps.bookingapp.utils.date_utils import get_weekday
from apps.bookingapp.utils.time_calculator import intervals_overlap, time_to_minutes
from apps.specialistsapp.models import BlackoutBlock, SpecialistWorkingHours

logger = logging.getLogger(__name__)


class ScheduleRulesService:
    @staticmethod
    def get_working_windows(specialist_id, date):
        """
        Get the bookable shifts of a specialist for a date.

        A window applies when it matches the date's weekday, is not a day
        off, accepts bookings and its validity range contains the date.

        Returns:
            List of SpecialistWorkingHours ordered by start hour
        """
        return list(
            SpecialistWorkingHours.objects.filter(
                Q(valid_from__isnull=True) | Q(valid_from__lte=date),
                Q(valid_until__isnull=True) | Q(valid_until__gte=date),
                specialist_id=specialist_id,
                weekday=get_weekday(date),
                is_off=False,
                accepts_bookings=True,
            ).order_by("from_hour")
        )

    @staticmethod
    def get_blackout_blocks(shop_id, specialist_id, start_date, end_date=None):
        """
        Get active blocks touching a date range that apply to a specialist,
        including shop-wide blocks.
        """
        end_date = end_date or start_date
        return list(
            BlackoutBlock.objects.filter(
                Q(specialist__isnull=True) | Q(specialist_id=specialist_id),
                shop_id=shop_id,
                is_active=True,
                start_date__lte=end_date,
                end_date__gte=start_date,
            ).order_by("start_date", "start_time")
        )

    @staticmethod
    def block_affects_slot(block, date, start_time, end_time):
        """
        Check whether a block intersects the slot ``[start_time, end_time)`` on ``date``
        """
        if not (block.start_date <= date <= block.end_date):
            return False

        if block.is_all_day:
            return True
        if block.is_half_bounded:
            return False

        return intervals_overlap(
            time_to_minutes(block.start_time),
            time_to_minutes(block.end_time),
            time_to_minutes(start_time),
            time_to_minutes(end_time),
        )

    @staticmethod
    def is_within_window(window, start_time, end_time):
        return window.from_hour <= start_time and end_time <= window.to_hour
