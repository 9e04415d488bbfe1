# apps/bookingapp/utils/time_calculator.py
"""
Minute-of-day arithmetic for appointment times.

Appointments never cross midnight, so times are handled as minutes since
00:00 of the appointment date. Buffer-widened intervals may extend outside
[0, 1440) and are compared as plain integers.
"""

from datetime import time

MINUTES_PER_DAY = 24 * 60


def time_to_minutes(value):
    """Convert a time to minutes since midnight (seconds are dropped)"""
    return value.hour * 60 + value.minute


def minutes_to_time(minutes):
    """Convert minutes since midnight to a time, clamped to the same day"""
    minutes = max(0, min(int(minutes), MINUTES_PER_DAY - 1))
    return time(minutes // 60, minutes % 60)


def format_minutes(minutes):
    """Format minutes since midnight as HH:MM"""
    return minutes_to_time(minutes).strftime("%H:%M")


def add_minutes(start_time, duration, end_of_day):
    """
    Calculate end time based on start time and duration

    A result past ``end_of_day`` is clamped to it instead of wrapping into
    the next day.

    Args:
        start_time: Start time
        duration: Duration in minutes
        end_of_day: Latest time an appointment may end (e.g. 23:59)

    Returns:
        End time
    """
    end_minutes = time_to_minutes(start_time) + int(duration)
    return minutes_to_time(min(end_minutes, time_to_minutes(end_of_day)))


def add_buffer_times(start_minutes, end_minutes, buffer_before, buffer_after):
    """
    Add buffer times to an appointment time range

    Args:
        start_minutes: Original start, minutes since midnight
        end_minutes: Original end, minutes since midnight
        buffer_before: Buffer before in minutes
        buffer_after: Buffer after in minutes

    Returns:
        Tuple of (new_start, new_end) in minutes since midnight
    """
    return (start_minutes - (buffer_before or 0), end_minutes + (buffer_after or 0))


def intervals_overlap(start_a, end_a, start_b, end_b):
    """Half-open interval overlap: [start_a, end_a) and [start_b, end_b)"""
    return start_a < end_b and end_a > start_b
