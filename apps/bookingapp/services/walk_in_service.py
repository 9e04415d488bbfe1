"""
Walk-In Service

Schedules customers who arrive without a booking. A specialist who is free
and on shift serves the walk-in right away; a specialist who is mid-service
takes the walk-in next, even if that runs past the end of the shift.

Also answers the front desk's real-time questions: who is waiting for whom,
and who could take a walk-in for a given service right now.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.db.models import Count, Exists, OuterRef, Q

from apps.bookingapp.config import SchedulingConfig
from apps.bookingapp.models import Appointment
from apps.bookingapp.utils.date_utils import get_weekday
from apps.bookingapp.utils.time_calculator import add_minutes, time_to_minutes
from apps.serviceapp.services.catalog_service import CatalogEntry
from apps.specialistsapp.models import WEEKDAY_CHOICES, Specialist
from apps.specialistsapp.services.schedule_rules_service import ScheduleRulesService
from core.exceptions import NoAvailabilityException, NotAvailableNowException

logger = logging.getLogger(__name__)

IMMEDIATE_STATUS = "in_progress"
QUEUED_STATUS = "confirmed"


@dataclass(frozen=True)
class WalkInSlot:
    date: object
    start_time: object
    end_time: object
    status: str
    allow_outside_shift: bool
    started_at: Optional[datetime] = None
    current_appointment_id: Optional[str] = None

    @property
    def is_immediate(self):
        return self.status == IMMEDIATE_STATUS


class WalkInService:
    @staticmethod
    def find_in_progress(specialist_id, date):
        """Get the appointment the specialist is serving right now, if any"""
        return (
            Appointment.objects.filter(
                specialist_id=specialist_id,
                date=date,
                status="in_progress",
                actual_end_time__isnull=True,
            )
            .order_by("-actual_start_time", "-start_time")
            .first()
        )

    @staticmethod
    def estimated_end(appointment, local_now, config: Optional[SchedulingConfig] = None):
        """
        Estimate when an in-progress appointment will finish, in shop local time.

        Uses the real end if known, else the real start plus the appointment
        duration, else now plus the duration. Estimates past midnight are
        clamped to the configured end of day.
        """
        config = config or SchedulingConfig.from_settings()
        tz = local_now.tzinfo
        duration = timedelta(minutes=appointment.duration or config.default_service_duration)

        if appointment.actual_end_time:
            end = appointment.actual_end_time.astimezone(tz)
        elif appointment.actual_start_time:
            end = appointment.actual_start_time.astimezone(tz) + duration
        else:
            end = local_now + duration

        if end.date() > local_now.date():
            return config.end_of_day
        return end.time().replace(second=0, microsecond=0, tzinfo=None)

    @staticmethod
    def is_on_shift_now(specialist_id, local_now):
        """Whether the specialist has a bookable shift covering the current minute"""
        now_time = local_now.time().replace(tzinfo=None)
        return any(
            window.from_hour <= now_time < window.to_hour
            for window in ScheduleRulesService.get_working_windows(specialist_id, local_now.date())
        )

    @classmethod
    def plan(cls, specialist_id, duration, local_now, config: Optional[SchedulingConfig] = None) -> WalkInSlot:
        """
        Compute the walk-in slot for a specialist.

        Args:
            specialist_id: Specialist serving the walk-in
            duration: Total duration of the requested services, in minutes
            local_now: Current datetime in the shop's time zone
            config: Scheduling configuration

        Returns:
            WalkInSlot; immediate slots start now with status ``in_progress``,
            queued slots start at the current appointment's estimated end with
            status ``confirmed``

        Raises:
            NotAvailableNowException: specialist neither serving nor on shift,
                or no time left today
        """
        config = config or SchedulingConfig.from_settings()
        today = local_now.date()
        now_time = local_now.time().replace(second=0, microsecond=0, tzinfo=None)
        current = cls.find_in_progress(specialist_id, today)

        if current is None:
            if not cls.is_on_shift_now(specialist_id, local_now):
                day_name = dict(WEEKDAY_CHOICES)[get_weekday(today)]
                logger.warning(
                    f"Walk-in rejected: specialist {specialist_id} is not working "
                    f"({day_name} {now_time.strftime('%H:%M')} {local_now.tzinfo})"
                )
                raise NotAvailableNowException(
                    f"The specialist is not available right now "
                    f"({day_name}, {now_time.strftime('%H:%M')}, {local_now.tzinfo})"
                )
            start_time = now_time
            status = IMMEDIATE_STATUS
            allow_outside_shift = False
        else:
            start_time = cls.estimated_end(current, local_now, config)
            status = QUEUED_STATUS
            allow_outside_shift = True

        if start_time >= config.end_of_day:
            raise NotAvailableNowException("There is no time left today for a walk-in")

        end_time = add_minutes(start_time, duration, config.end_of_day)
        slot = WalkInSlot(
            date=today,
            start_time=start_time,
            end_time=end_time,
            status=status,
            allow_outside_shift=allow_outside_shift,
            started_at=local_now if status == IMMEDIATE_STATUS else None,
            current_appointment_id=str(current.id) if current else None,
        )

        if slot.is_immediate:
            logger.info(
                f"Walk-in for specialist {specialist_id} starts now "
                f"({start_time.strftime('%H:%M')}-{end_time.strftime('%H:%M')})"
            )
        else:
            logger.info(
                f"Walk-in for specialist {specialist_id} queued after appointment {current.id} "
                f"({start_time.strftime('%H:%M')}-{end_time.strftime('%H:%M')})"
            )
        return slot

    @staticmethod
    def ranked_specialists(service_id, shop_id, today, specialist_id=None):
        """
        Specialists offering a service, free ones first, then by load today.

        Each specialist is annotated with ``busy`` (serving someone right now)
        and ``appointments_today`` (in progress or confirmed today).
        """
        busy_now = Appointment.objects.filter(
            specialist_id=OuterRef("pk"), date=today, status="in_progress"
        )
        specialists = Specialist.objects.filter(
            shop_id=shop_id,
            is_active=True,
            specialist_services__service_id=service_id,
            specialist_services__is_active=True,
        )
        if specialist_id:
            specialists = specialists.filter(id=specialist_id)

        return specialists.annotate(
            busy=Exists(busy_now),
            appointments_today=Count(
                "appointments",
                filter=Q(
                    appointments__date=today,
                    appointments__status__in=("in_progress", "confirmed"),
                ),
                distinct=True,
            ),
        ).order_by("busy", "appointments_today", "id")

    @classmethod
    def auto_assign(cls, service_id, shop, local_now):
        """
        Pick a specialist for a walk-in.

        Specialists offering the service are ranked by whether they are free
        right now, then by how many appointments they have today.

        Raises:
            NoAvailabilityException: nobody offers the service
        """
        specialist = cls.ranked_specialists(service_id, shop.id, local_now.date()).first()
        if specialist is None:
            raise NoAvailabilityException("No specialists available for the selected service")

        logger.info(
            f"Walk-in auto-assigned to {specialist.full_name} "
            f"(busy={specialist.busy}, appointments today={specialist.appointments_today})"
        )
        return specialist

    @classmethod
    def next_available(cls, specialist, local_now, config: Optional[SchedulingConfig] = None):
        """
        Earliest time today the specialist could take a walk-in, or None.

        A busy specialist is free at the estimated end of the current
        appointment; an idle one now if on shift, else at the start of the
        next shift today.
        """
        now_time = local_now.time().replace(second=0, microsecond=0, tzinfo=None)
        current = cls.find_in_progress(specialist.id, local_now.date())
        if current is not None:
            return cls.estimated_end(current, local_now, config)

        windows = ScheduleRulesService.get_working_windows(specialist.id, local_now.date())
        for window in windows:
            if window.from_hour <= now_time < window.to_hour:
                return now_time
            if window.from_hour > now_time:
                return window.from_hour
        return None

    @classmethod
    def immediate_availability(cls, service: CatalogEntry, shop_id, local_now, specialist_id=None):
        """
        Report who can take a walk-in for a service right now.

        Args:
            service: Catalog entry of the requested service
            shop_id: Shop where the customer is
            local_now: Current datetime in the shop's time zone
            specialist_id: Restrict the report to one specialist

        Returns:
            Dict with the ``service``, the ranked ``specialists`` (free now
            first, then fewest appointments today) and a ``timestamp``
        """
        config = SchedulingConfig.from_settings()
        specialists = []
        for specialist in cls.ranked_specialists(
            service.id, shop_id, local_now.date(), specialist_id
        ):
            on_shift = cls.is_on_shift_now(specialist.id, local_now)
            next_time = cls.next_available(specialist, local_now, config)
            specialists.append(
                {
                    "id": str(specialist.id),
                    "name": specialist.full_name,
                    "available_now": not specialist.busy and on_shift,
                    "busy": specialist.busy,
                    "on_shift": on_shift,
                    "appointments_today": specialist.appointments_today,
                    "next_available": next_time.strftime("%H:%M") if next_time else None,
                }
            )

        return {
            "service": {
                "id": service.id,
                "name": service.name,
                "duration": service.duration,
                "price": str(service.price),
            },
            "specialists": specialists,
            "timestamp": local_now.isoformat(),
        }

    @staticmethod
    def wait_queue(shop_id, local_now, specialist_id=None):
        """
        Customers at the shop who are waiting for or receiving a service today.

        Entries are grouped by specialist in arrival order. ``position`` is
        the place in the specialist's line; ``estimated_wait_minutes`` is the
        time left until the scheduled start (0 once in progress).
        """
        today = local_now.date()
        now_minutes = time_to_minutes(local_now.time().replace(tzinfo=None))
        appointments = (
            Appointment.objects.filter(
                shop_id=shop_id,
                date=today,
                status__in=("confirmed", "in_progress"),
                arrival_time__isnull=False,
                actual_end_time__isnull=True,
            )
            .select_related("customer", "specialist")
            .prefetch_related("service_assignments__service")
            .order_by("specialist_id", "arrival_time")
        )
        if specialist_id:
            appointments = appointments.filter(specialist_id=specialist_id)

        queue = []
        positions = {}
        for appointment in appointments:
            positions[appointment.specialist_id] = positions.get(appointment.specialist_id, 0) + 1
            waiting = max(0, int((local_now - appointment.arrival_time).total_seconds() // 60))
            if appointment.status == "in_progress":
                estimated_wait = 0
            else:
                estimated_wait = max(0, time_to_minutes(appointment.start_time) - now_minutes)

            queue.append(
                {
                    "appointment_id": str(appointment.id),
                    "specialist_id": str(appointment.specialist_id),
                    "specialist_name": appointment.specialist.full_name,
                    "customer_name": appointment.customer.name,
                    "status": appointment.status,
                    "origin": appointment.origin,
                    "start_time": appointment.start_time.strftime("%H:%M"),
                    "arrival_time": appointment.arrival_time.astimezone(local_now.tzinfo).isoformat(),
                    "duration": appointment.duration,
                    "services": [
                        {
                            "service_id": str(line.service_id),
                            "name": line.service.name,
                            "duration": line.applied_duration,
                        }
                        for line in appointment.service_assignments.all()
                    ],
                    "position": positions[appointment.specialist_id],
                    "minutes_waiting": waiting,
                    "estimated_wait_minutes": estimated_wait,
                }
            )

        average = sum(entry["minutes_waiting"] for entry in queue) / len(queue) if queue else 0
        return {
            "date": today.isoformat(),
            "queue": queue,
            "total_waiting": len(queue),
            "average_wait_minutes": round(average, 1),
        }
