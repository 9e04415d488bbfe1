"""
Conflict Detection Service

Detects overlaps between a candidate slot and the specialist's existing
appointments on the same date. Each existing appointment occupies its own
time range widened by the preparation buffer of its first service and the
cleanup buffer of its last service (by execution order).
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from django.db.models import Prefetch

from apps.bookingapp.models import Appointment, ServiceAssignment
from apps.bookingapp.utils.time_calculator import (
    add_buffer_times,
    format_minutes,
    intervals_overlap,
    time_to_minutes,
)

logger = logging.getLogger(__name__)

ConflictResult = Dict[str, Any]  # Result of conflict check with details


@dataclass(frozen=True)
class BookedInterval:
    """Time occupied by an existing appointment, in minutes since midnight"""

    appointment_id: str
    customer_name: str
    start: int
    end: int
    effective_start: int
    effective_end: int

    def to_dict(self):
        return {
            "appointment_id": self.appointment_id,
            "customer_name": self.customer_name,
            "start_time": format_minutes(self.start),
            "end_time": format_minutes(self.end),
            "effective_start_time": format_minutes(self.effective_start),
            "effective_end_time": format_minutes(self.effective_end),
        }


class ConflictDetectionService:
    """
    Service for detecting specialist double-booking.
    """

    @staticmethod
    def get_booked_intervals(
        specialist_id, date, exclude_appointment_id=None
    ) -> List[BookedInterval]:
        """
        Get the buffer-widened intervals of a specialist's active appointments on a date.

        Args:
            specialist_id: ID of the specialist
            date: Date to load
            exclude_appointment_id: Optional appointment to leave out (update/reschedule)

        Returns:
            List of BookedInterval ordered by start time
        """
        appointments = (
            Appointment.objects.filter(specialist_id=specialist_id, date=date)
            .exclude(status__in=Appointment.INACTIVE_STATUSES)
            .select_related("customer")
            .prefetch_related(
                Prefetch(
                    "service_assignments",
                    queryset=ServiceAssignment.objects.select_related("service").order_by(
                        "execution_order"
                    ),
                )
            )
            .order_by("start_time")
        )
        if exclude_appointment_id:
            appointments = appointments.exclude(id=exclude_appointment_id)

        intervals = []
        for appointment in appointments:
            assignments = list(appointment.service_assignments.all())
            prep = assignments[0].service.buffer_before if assignments else 0
            cleanup = assignments[-1].service.buffer_after if assignments else 0

            start = time_to_minutes(appointment.start_time)
            end = time_to_minutes(appointment.end_time)
            effective_start, effective_end = add_buffer_times(start, end, prep, cleanup)

            intervals.append(
                BookedInterval(
                    appointment_id=str(appointment.id),
                    customer_name=appointment.customer.name,
                    start=start,
                    end=end,
                    effective_start=effective_start,
                    effective_end=effective_end,
                )
            )
        return intervals

    @staticmethod
    def find_conflicts(
        intervals: Iterable[BookedInterval], start_time, end_time
    ) -> List[BookedInterval]:
        """Get the intervals overlapping the candidate slot ``[start_time, end_time)``"""
        start = time_to_minutes(start_time)
        end = time_to_minutes(end_time)
        return [
            interval
            for interval in intervals
            if intervals_overlap(interval.effective_start, interval.effective_end, start, end)
        ]

    @classmethod
    def check_specialist_conflict(
        cls,
        specialist_id,
        date,
        start_time,
        end_time,
        exclude_appointment_id: Optional[str] = None,
    ) -> ConflictResult:
        """
        Check if a specialist has any conflicting appointments during the specified time slot.

        Args:
            specialist_id: ID of the specialist to check
            date: Date of the candidate slot
            start_time: Start time of the candidate slot
            end_time: End time of the candidate slot
            exclude_appointment_id: Optional ID of an appointment to exclude from conflict check

        Returns:
            Dict with conflict status and details
        """
        intervals = cls.get_booked_intervals(specialist_id, date, exclude_appointment_id)
        conflicts = cls.find_conflicts(intervals, start_time, end_time)

        if conflicts:
            first = conflicts[0]
            return {
                "has_conflict": True,
                "conflict_type": "specialist_schedule",
                "message": (
                    f"Slot {start_time.strftime('%H:%M')}-{end_time.strftime('%H:%M')} overlaps "
                    f"appointment {first.appointment_id} of {first.customer_name} "
                    f"({format_minutes(first.start)}-{format_minutes(first.end)}, "
                    f"occupied {format_minutes(first.effective_start)}-"
                    f"{format_minutes(first.effective_end)} with buffers)"
                ),
                "details": [conflict.to_dict() for conflict in conflicts],
            }

        return {
            "has_conflict": False,
            "conflict_type": None,
            "message": "No specialist scheduling conflicts detected",
            "details": [],
        }
