"""
Appointment service for handling booking-related operations.

Entry point for every scheduling operation. Each public method runs in one
database transaction: all reads feeding the availability check and the final
write see the same snapshot. Internal results (ValidationResult,
AssignmentResult, SeriesResult) are turned into exceptions here.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from apps.bookingapp.config import SchedulingConfig
from apps.bookingapp.filters import AppointmentFilter
from apps.bookingapp.models import Appointment
from apps.bookingapp.services.audit_service import AuditService
from apps.bookingapp.services.availability_service import AvailabilityService, ValidationResult
from apps.bookingapp.services.booking_service import BookingService
from apps.bookingapp.services.dashboard_service import DashboardService
from apps.bookingapp.services.multi_service_booker import MultiServiceBooker, normalize_id
from apps.bookingapp.services.recurrence_service import RecurrenceService
from apps.bookingapp.services.round_robin_service import RoundRobinService
from apps.bookingapp.services.series_service import SeriesService
from apps.bookingapp.services.walk_in_service import WalkInService
from apps.bookingapp.utils.date_utils import parse_date, parse_time
from apps.bookingapp.utils.time_calculator import time_to_minutes
from apps.customersapp.services.customer_service import CustomerService
from apps.serviceapp.services.catalog_service import ServiceCatalog
from apps.shopapp.services.shop_service import ShopService
from apps.specialistsapp.services.specialist_lookup_service import SpecialistLookupService
from core.exceptions import (
    EmptySeriesException,
    FeatureNotAvailableException,
    InvalidDataException,
    InvalidTransitionException,
    NoAvailabilityException,
    ResourceNotFoundException,
    SchedulingConflictException,
)

logger = logging.getLogger(__name__)

DEFAULT_CANCEL_REASON = "Canceled by administrator"
DEFAULT_SERIES_CANCEL_REASON = "Series canceled by administrator"

INITIAL_STATUSES = ("pending", "confirmed")
STATUS_VALUES = tuple(value for value, _ in Appointment.STATUS_CHOICES)
ORIGIN_VALUES = tuple(value for value, _ in Appointment.ORIGIN_CHOICES)

# Fields accepted by update_appointment
UPDATABLE_FIELDS = (
    "customer_id",
    "specialist_id",
    "branch_id",
    "date",
    "start_time",
    "end_time",
    "status",
    "notes",
    "service_ids",
    "services_data",
    "total_price",
    "payment_method",
)

# Statuses each transition may start from
CANCELLABLE_STATUSES = ("pending", "confirmed", "no_show")
CONFIRMABLE_STATUSES = ("pending",)
CHECK_IN_STATUSES = ("pending", "confirmed")
STARTABLE_STATUSES = ("pending", "confirmed")
COMPLETABLE_STATUSES = ("in_progress", "confirmed")
NO_SHOW_STATUSES = ("pending", "confirmed")
RESCHEDULABLE_STATUSES = ("pending", "confirmed")

ORDERING_FIELDS = ("date", "start_time", "created_at", "status", "total_price")
DEFAULT_ORDERING = ("date", "start_time")


def _parse_price(value, field_name="total_price"):
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidDataException(f"Invalid {field_name}: {value!r}")
    if price < 0:
        raise InvalidDataException(f"{field_name} cannot be negative")
    return price


class AppointmentService:
    """
    Service for appointment-related operations.
    """

    # Helpers

    @staticmethod
    def _get_appointment(appointment_id, shop_id) -> Appointment:
        try:
            return Appointment.objects.select_related("customer", "specialist").get(
                id=appointment_id, shop_id=shop_id
            )
        except (Appointment.DoesNotExist, ValueError, ValidationError):
            raise ResourceNotFoundException(f"Appointment {appointment_id} not found")

    @staticmethod
    def _get_service_ids(data):
        """Requested service ids, accepting the single ``service_id`` form"""
        service_ids = data.get("service_ids")
        if not service_ids and data.get("service_id"):
            service_ids = [data["service_id"]]
        if not service_ids:
            raise InvalidDataException("service_ids: at least one service is required")
        if not isinstance(service_ids, (list, tuple)):
            raise InvalidDataException("service_ids: must be a list")
        return list(service_ids)

    @staticmethod
    def _raise_if_invalid(validation: ValidationResult):
        if not validation.valid:
            raise SchedulingConflictException(
                f"The requested time is not available: {validation.summary()}",
                errors=[error.to_dict() for error in validation.errors],
            )

    @staticmethod
    def _ensure_status(appointment, allowed, action):
        if appointment.status not in allowed:
            raise InvalidTransitionException(
                f"Cannot {action} an appointment with status '{appointment.status}'",
                errors={"status": appointment.status, "allowed": list(allowed)},
            )

    @staticmethod
    def _origin(data, config):
        origin = data.get("origin") or config.default_origin
        if origin not in ORIGIN_VALUES:
            raise InvalidDataException(f"origin: must be one of {', '.join(ORIGIN_VALUES)}")
        return origin

    @classmethod
    def _prepare_slot(cls, data, shop, booker):
        """Resolve services, date and times shared by single and series bookings"""
        aggregated = booker.resolve(
            cls._get_service_ids(data), shop.id, data.get("services_data")
        )
        if not data.get("date"):
            raise InvalidDataException("date: this field is required")
        if not data.get("start_time"):
            raise InvalidDataException("start_time: this field is required")

        booking_date = parse_date(data["date"])
        start_time = parse_time(data["start_time"], "start_time")
        if data.get("end_time"):
            end_time = parse_time(data["end_time"], "end_time")
        else:
            end_time = booker.compute_end_time(start_time, aggregated.total_duration)

        AvailabilityService.check_time_range(start_time, end_time)
        return aggregated, booking_date, start_time, end_time

    @staticmethod
    def _resolve_customer(data, shop):
        if not data.get("customer_id"):
            raise InvalidDataException("customer_id: this field is required")
        return CustomerService.get_active_customer(shop.id, data["customer_id"])

    @staticmethod
    def _resolve_branch_id(data, shop):
        if not data.get("branch_id"):
            return None
        return ShopService.get_branch(shop.id, data["branch_id"]).id

    # Queries

    @classmethod
    def get_appointment(cls, appointment_id, shop_id):
        return cls._get_appointment(appointment_id, shop_id)

    @staticmethod
    def list_appointments(shop_id, filters: Optional[Dict[str, Any]] = None):
        """
        List the appointments of a shop.

        Args:
            shop_id: Shop to list
            filters: Optional filters (see AppointmentFilter) plus ``ordering``,
                ``limit`` and ``offset``

        Returns:
            Dict with ``count``, ``limit``, ``offset`` and ``results``
        """
        config = SchedulingConfig.from_settings()
        filters = dict(filters or {})

        try:
            limit = int(filters.pop("limit", config.list_page_size))
            offset = int(filters.pop("offset", 0))
        except (TypeError, ValueError):
            raise InvalidDataException("limit and offset must be integers")
        limit = max(1, min(limit, config.list_max_page_size))
        offset = max(0, offset)

        ordering = []
        for field in str(filters.pop("ordering", "") or "").split(","):
            field = field.strip()
            if field.lstrip("-") in ORDERING_FIELDS:
                ordering.append(field)

        queryset = Appointment.objects.filter(shop_id=shop_id).select_related(
            "customer", "specialist"
        )
        filterset = AppointmentFilter(filters, queryset=queryset)
        if not filterset.is_valid():
            raise InvalidDataException("Invalid filters", errors=filterset.errors)

        queryset = filterset.qs.order_by(*(ordering or DEFAULT_ORDERING), "id")
        return {
            "count": queryset.count(),
            "limit": limit,
            "offset": offset,
            "results": list(
                queryset.prefetch_related("service_assignments__service")[offset : offset + limit]
            ),
        }

    # Booking

    @classmethod
    @transaction.atomic
    def create_appointment(cls, data, shop_id, user=None) -> Appointment:
        """
        Create an appointment.

        Args:
            data: Dict with ``customer_id``, ``service_ids`` (or ``service_id``),
                ``date``, ``start_time`` and optionally ``specialist_id``,
                ``end_time``, ``services_data``, ``branch_id``, ``notes``,
                ``status`` and ``origin``
            shop_id: Shop of the appointment
            user: User creating the appointment

        Returns:
            The created Appointment

        Raises:
            InvalidDataException: malformed input or inactive entities
            ResourceNotFoundException: unknown customer, specialist or services
            NoAvailabilityException: no specialist could be assigned
            SchedulingConflictException: the slot is not available
        """
        shop = ShopService.get_shop(shop_id)
        shop_settings = ShopService.get_settings(shop)
        config = SchedulingConfig.from_settings()
        booker = MultiServiceBooker(config=config)

        customer = cls._resolve_customer(data, shop)
        aggregated, booking_date, start_time, end_time = cls._prepare_slot(data, shop, booker)
        branch_id = cls._resolve_branch_id(data, shop)

        status = data.get("status") or "pending"
        if status not in INITIAL_STATUSES:
            raise InvalidDataException(
                f"status: new appointments must be {' or '.join(INITIAL_STATUSES)}"
            )

        auto_assigned = not data.get("specialist_id")
        if auto_assigned:
            assignment = RoundRobinService.assign(
                aggregated.first_service_id,
                shop.id,
                booking_date,
                start_time,
                end_time,
                required_service_ids=aggregated.service_ids,
                round_robin_enabled=shop_settings.round_robin_enabled,
            )
            if not assignment.assigned:
                raise NoAvailabilityException(
                    assignment.message,
                    errors={"candidates": assignment.candidates},
                )
            specialist = assignment.specialist
        else:
            specialist = SpecialistLookupService.get_active_specialist(
                shop.id, data["specialist_id"]
            )
            SpecialistLookupService.check_offerings(specialist, aggregated.service_ids)

        # Validate again right before writing, in the same transaction
        validation = AvailabilityService.validate(
            specialist.id, booking_date, start_time, end_time, shop_id=shop.id
        )
        cls._raise_if_invalid(validation)

        appointment = BookingService.persist_appointment(
            aggregated,
            shop.id,
            customer.id,
            specialist.id,
            booking_date,
            start_time,
            end_time,
            user=user,
            status=status,
            notes=data.get("notes") or "",
            origin=cls._origin(data, config),
            branch_id=branch_id,
        )

        AuditService.record(
            shop.id,
            "appointment_created",
            f"Appointment created for {customer.name} with {specialist.full_name}",
            appointment_id=appointment.id,
            user=user,
            metadata={
                "service_ids": aggregated.service_ids,
                "total_price": str(aggregated.total_price),
                "duration": aggregated.total_duration,
                "auto_assigned": auto_assigned,
                "warnings": [warning.to_dict() for warning in validation.warnings],
            },
        )
        return appointment

    @classmethod
    @transaction.atomic
    def update_appointment(cls, appointment_id, changes, shop_id, user=None) -> Appointment:
        """
        Update an appointment that is not completed or canceled.

        Date, time, specialist and service changes are validated again,
        ignoring the appointment itself. When services change, totals are
        recomputed and, unless a new end time is given, so is the end time.

        Raises:
            ResourceNotFoundException: unknown appointment
            InvalidTransitionException: the appointment is completed or canceled
            InvalidDataException: no applicable field or malformed values
            SchedulingConflictException: the new slot is not available
        """
        appointment = cls._get_appointment(appointment_id, shop_id)
        if appointment.is_locked:
            raise InvalidTransitionException(
                f"Appointment is {appointment.status} and can no longer be modified",
                errors={"status": appointment.status},
            )

        updates = {key: value for key, value in (changes or {}).items() if key in UPDATABLE_FIELDS}
        if not updates:
            raise InvalidDataException(
                f"No fields to update. Accepted fields: {', '.join(UPDATABLE_FIELDS)}"
            )

        config = SchedulingConfig.from_settings()
        booker = MultiServiceBooker(config=config)
        shop_id = appointment.shop_id

        if "customer_id" in updates:
            appointment.customer = CustomerService.get_active_customer(shop_id, updates["customer_id"])
        if "branch_id" in updates:
            appointment.branch_id = (
                ShopService.get_branch(shop_id, updates["branch_id"]).id
                if updates["branch_id"]
                else None
            )

        specialist = appointment.specialist
        if "specialist_id" in updates:
            specialist = SpecialistLookupService.get_active_specialist(shop_id, updates["specialist_id"])

        aggregated = None
        if "service_ids" in updates or "services_data" in updates:
            service_ids = updates.get("service_ids") or list(
                appointment.service_assignments.order_by("execution_order").values_list(
                    "service_id", flat=True
                )
            )
            aggregated = booker.resolve(service_ids, shop_id, updates.get("services_data"))

        if aggregated is not None or "specialist_id" in updates:
            service_ids = (
                aggregated.service_ids
                if aggregated is not None
                else [
                    normalize_id(service_id)
                    for service_id in appointment.service_assignments.values_list(
                        "service_id", flat=True
                    )
                ]
            )
            SpecialistLookupService.check_offerings(specialist, service_ids)

        new_date = parse_date(updates["date"]) if updates.get("date") else appointment.date
        new_start = (
            parse_time(updates["start_time"], "start_time")
            if updates.get("start_time")
            else appointment.start_time
        )
        if updates.get("end_time"):
            new_end = parse_time(updates["end_time"], "end_time")
        elif aggregated is not None or "start_time" in updates:
            duration = (
                aggregated.total_duration
                if aggregated is not None
                else appointment.duration
                or time_to_minutes(appointment.end_time) - time_to_minutes(appointment.start_time)
            )
            new_end = booker.compute_end_time(new_start, duration)
        else:
            new_end = appointment.end_time

        schedule_changed = (
            new_date != appointment.date
            or new_start != appointment.start_time
            or new_end != appointment.end_time
            or specialist.id != appointment.specialist_id
        )
        if schedule_changed:
            AvailabilityService.check_time_range(new_start, new_end)
            validation = AvailabilityService.validate(
                specialist.id,
                new_date,
                new_start,
                new_end,
                exclude_appointment_id=appointment.id,
                shop_id=shop_id,
            )
            cls._raise_if_invalid(validation)

        appointment.date = new_date
        appointment.start_time = new_start
        appointment.end_time = new_end
        appointment.specialist = specialist

        if aggregated is not None:
            appointment.total_price = aggregated.total_price
            appointment.duration = aggregated.total_duration
        if updates.get("total_price") is not None:
            appointment.total_price = _parse_price(updates["total_price"])
        if "notes" in updates:
            appointment.notes = updates["notes"] or ""
        if "payment_method" in updates:
            appointment.payment_method = updates["payment_method"] or ""
        if "status" in updates:
            if updates["status"] not in STATUS_VALUES:
                raise InvalidDataException(f"status: must be one of {', '.join(STATUS_VALUES)}")
            appointment.status = updates["status"]
            if appointment.status == "completed" and appointment.total_price > 0:
                appointment.is_paid = True

        appointment.updated_by = user
        # The appointment row (and its date) goes first; service lines follow it
        appointment.save()
        if aggregated is not None:
            BookingService.replace_service_assignments(appointment, aggregated)

        AuditService.record(
            shop_id,
            "appointment_updated",
            f"Appointment updated: {', '.join(sorted(updates))}",
            appointment_id=appointment.id,
            user=user,
            metadata={"fields": sorted(updates), "schedule_changed": schedule_changed},
        )
        logger.info(f"Appointment {appointment.id} updated ({', '.join(sorted(updates))})")
        return appointment

    # State transitions

    @classmethod
    @transaction.atomic
    def cancel_appointment(cls, appointment_id, shop_id, reason=None, user=None) -> Appointment:
        appointment = cls._get_appointment(appointment_id, shop_id)
        cls._ensure_status(appointment, CANCELLABLE_STATUSES, "cancel")

        previous_status = appointment.status
        appointment.mark_cancelled(reason=reason or DEFAULT_CANCEL_REASON, user=user)

        AuditService.record(
            appointment.shop_id,
            "appointment_canceled",
            f"Appointment canceled: {appointment.cancellation_reason}",
            appointment_id=appointment.id,
            user=user,
            metadata={"previous_status": previous_status, "reason": appointment.cancellation_reason},
        )
        logger.info(f"Appointment {appointment.id} canceled")
        return appointment

    @classmethod
    @transaction.atomic
    def confirm_attendance(cls, appointment_id, shop_id, user=None) -> Appointment:
        """Customer confirmed they will attend"""
        appointment = cls._get_appointment(appointment_id, shop_id)
        cls._ensure_status(appointment, CONFIRMABLE_STATUSES, "confirm")

        appointment.status = "confirmed"
        appointment.confirmed_by_customer_at = timezone.now()
        appointment.updated_by = user
        appointment.save(
            update_fields=["status", "confirmed_by_customer_at", "updated_by", "updated_at"]
        )

        AuditService.record(
            appointment.shop_id,
            "appointment_confirmed",
            "Attendance confirmed",
            appointment_id=appointment.id,
            user=user,
        )
        return appointment

    @classmethod
    @transaction.atomic
    def check_in(cls, appointment_id, shop_id, notes=None, user=None) -> Appointment:
        """Record the customer's arrival. The status doesn't change."""
        appointment = cls._get_appointment(appointment_id, shop_id)
        cls._ensure_status(appointment, CHECK_IN_STATUSES, "check in")

        appointment.arrival_time = timezone.now()
        appointment.append_note(notes)
        appointment.updated_by = user
        appointment.save(update_fields=["arrival_time", "notes", "updated_by", "updated_at"])

        AuditService.record(
            appointment.shop_id,
            "appointment_checked_in",
            "Customer checked in",
            appointment_id=appointment.id,
            user=user,
            metadata={"arrival_time": appointment.arrival_time.isoformat()},
        )
        return appointment

    @classmethod
    @transaction.atomic
    def start_service(cls, appointment_id, shop_id, user=None) -> Appointment:
        appointment = cls._get_appointment(appointment_id, shop_id)
        cls._ensure_status(appointment, STARTABLE_STATUSES, "start")

        appointment.status = "in_progress"
        appointment.actual_start_time = timezone.now()
        appointment.updated_by = user
        appointment.save(update_fields=["status", "actual_start_time", "updated_by", "updated_at"])

        AuditService.record(
            appointment.shop_id,
            "appointment_started",
            "Service started",
            appointment_id=appointment.id,
            user=user,
        )
        logger.info(f"Appointment {appointment.id} started")
        return appointment

    @classmethod
    @transaction.atomic
    def complete_service(
        cls,
        appointment_id,
        shop_id,
        total_price=None,
        payment_method=None,
        notes=None,
        user=None,
    ) -> Appointment:
        """
        Complete an appointment and mark it paid.

        Args:
            appointment_id: Appointment to complete
            shop_id: Shop of the appointment
            total_price: Final price, when it differs from the booked total
            payment_method: How the customer paid
            notes: Notes appended to the appointment
            user: User completing the appointment
        """
        appointment = cls._get_appointment(appointment_id, shop_id)
        cls._ensure_status(appointment, COMPLETABLE_STATUSES, "complete")

        previous_status = appointment.status
        appointment.status = "completed"
        appointment.actual_end_time = timezone.now()
        if total_price is not None:
            appointment.total_price = _parse_price(total_price)
        if payment_method:
            appointment.payment_method = payment_method
        appointment.is_paid = True
        appointment.append_note(notes)
        appointment.updated_by = user
        appointment.save()

        AuditService.record(
            appointment.shop_id,
            "appointment_completed",
            "Service completed",
            appointment_id=appointment.id,
            user=user,
            metadata={
                "previous_status": previous_status,
                "total_price": str(appointment.total_price),
                "payment_method": appointment.payment_method,
            },
        )
        logger.info(f"Appointment {appointment.id} completed")
        return appointment

    @classmethod
    @transaction.atomic
    def mark_no_show(cls, appointment_id, shop_id, reason=None, user=None) -> Appointment:
        appointment = cls._get_appointment(appointment_id, shop_id)
        cls._ensure_status(appointment, NO_SHOW_STATUSES, "mark as no-show")

        appointment.status = "no_show"
        if reason:
            appointment.append_note(f"No-show: {reason}")
        appointment.updated_by = user
        appointment.save(update_fields=["status", "notes", "updated_by", "updated_at"])

        AuditService.record(
            appointment.shop_id,
            "appointment_no_show",
            f"Customer did not show up{f': {reason}' if reason else ''}",
            appointment_id=appointment.id,
            user=user,
            metadata={"reason": reason or ""},
        )
        return appointment

    @classmethod
    @transaction.atomic
    def reschedule(cls, appointment_id, shop_id, data, user=None) -> Appointment:
        """
        Move an appointment to a new date and time with the same specialist.

        Args:
            appointment_id: Appointment to move
            shop_id: Shop of the appointment
            data: Dict with ``date``, ``start_time`` and optionally ``end_time``
                (defaults to the current length) and ``reason``
            user: User rescheduling the appointment

        Returns:
            The appointment, back in ``pending`` status
        """
        appointment = cls._get_appointment(appointment_id, shop_id)
        cls._ensure_status(appointment, RESCHEDULABLE_STATUSES, "reschedule")

        if not data.get("date") or not data.get("start_time"):
            raise InvalidDataException("date and start_time are required to reschedule")

        config = SchedulingConfig.from_settings()
        new_date = parse_date(data["date"])
        new_start = parse_time(data["start_time"], "start_time")
        if data.get("end_time"):
            new_end = parse_time(data["end_time"], "end_time")
        else:
            length = appointment.duration or (
                time_to_minutes(appointment.end_time) - time_to_minutes(appointment.start_time)
            )
            new_end = MultiServiceBooker(config=config).compute_end_time(new_start, length)

        AvailabilityService.check_time_range(new_start, new_end)
        validation = AvailabilityService.validate(
            appointment.specialist_id,
            new_date,
            new_start,
            new_end,
            exclude_appointment_id=appointment.id,
            shop_id=appointment.shop_id,
        )
        cls._raise_if_invalid(validation)

        previous = {
            "date": appointment.date.isoformat(),
            "start_time": appointment.start_time.strftime("%H:%M"),
            "end_time": appointment.end_time.strftime("%H:%M"),
        }
        appointment.date = new_date
        appointment.start_time = new_start
        appointment.end_time = new_end
        appointment.status = "pending"
        if data.get("reason"):
            appointment.append_note(f"Rescheduled: {data['reason']}")
        appointment.updated_by = user
        appointment.save()

        AuditService.record(
            appointment.shop_id,
            "appointment_rescheduled",
            f"Appointment moved from {previous['date']} {previous['start_time']} "
            f"to {new_date.isoformat()} {new_start.strftime('%H:%M')}",
            appointment_id=appointment.id,
            user=user,
            metadata={
                "previous": previous,
                "reason": data.get("reason") or "",
            },
        )
        logger.info(f"Appointment {appointment.id} rescheduled to {new_date} {new_start}")
        return appointment

    # Walk-ins

    @classmethod
    @transaction.atomic
    def create_walk_in(cls, data, shop_id, user=None) -> Appointment:
        """
        Create an appointment for a customer who is already at the shop.

        Args:
            data: Dict with ``service_ids`` (or ``service_id``), either
                ``customer_id`` or ``customer_name`` (plus optional
                ``phone_number``), and optionally ``specialist_id``,
                ``services_data``, ``branch_id``, ``notes`` and
                ``accepted_wait_minutes``
            shop_id: Shop where the customer arrived
            user: User registering the walk-in

        Raises:
            FeatureNotAvailableException: walk-ins are disabled for the shop
            NotAvailableNowException: the specialist can't take the walk-in today
            SchedulingConflictException: the computed slot is not available
        """
        shop = ShopService.get_shop(shop_id)
        if not ShopService.get_settings(shop).allow_walk_ins:
            raise FeatureNotAvailableException("Walk-ins are disabled for this shop")

        config = SchedulingConfig.from_settings()
        aggregated = MultiServiceBooker(config=config).resolve(
            cls._get_service_ids(data), shop.id, data.get("services_data")
        )
        branch_id = cls._resolve_branch_id(data, shop)
        local_now = ShopService.get_local_now(shop)

        if data.get("customer_id"):
            customer = CustomerService.get_active_customer(shop.id, data["customer_id"])
            customer_created = False
        else:
            customer, customer_created = CustomerService.find_or_create_walk_in(
                shop.id, data.get("customer_name"), data.get("phone_number")
            )

        auto_assigned = not data.get("specialist_id")
        if auto_assigned:
            specialist = WalkInService.auto_assign(aggregated.first_service_id, shop, local_now)
        else:
            specialist = SpecialistLookupService.get_active_specialist(shop.id, data["specialist_id"])
        SpecialistLookupService.check_offerings(specialist, aggregated.service_ids)

        slot = WalkInService.plan(specialist.id, aggregated.total_duration, local_now, config)
        AvailabilityService.check_time_range(slot.start_time, slot.end_time)
        validation = AvailabilityService.validate(
            specialist.id,
            slot.date,
            slot.start_time,
            slot.end_time,
            is_walk_in=True,
            allow_outside_shift=slot.allow_outside_shift,
            shop_id=shop.id,
        )
        cls._raise_if_invalid(validation)

        notes = data.get("notes") or f"Walk-in: {customer.name}"
        wait_note = (
            f"Accepted wait: {data.get('accepted_wait_minutes') or 0} min. "
            f"{'Specialist auto-assigned' if auto_assigned else 'Specialist requested'}."
        )
        appointment = BookingService.persist_appointment(
            aggregated,
            shop.id,
            customer.id,
            specialist.id,
            slot.date,
            slot.start_time,
            slot.end_time,
            user=user,
            status=slot.status,
            notes=f"{notes}\n{wait_note}",
            origin=config.walk_in_origin,
            branch_id=branch_id,
            arrival_time=local_now,
            actual_start_time=slot.started_at,
        )

        AuditService.record(
            shop.id,
            "walk_in_created",
            f"Walk-in created. {'Specialist auto-assigned' if auto_assigned else 'Specialist requested'}.",
            appointment_id=appointment.id,
            user=user,
            metadata={
                "status": slot.status,
                "auto_assigned": auto_assigned,
                "customer_created": customer_created,
                "queued_after": slot.current_appointment_id,
                "warnings": [warning.to_dict() for warning in validation.warnings],
            },
        )
        return appointment

    # Front desk

    @staticmethod
    def _specialist_filter(shop, specialist_id):
        if not specialist_id:
            return None
        return SpecialistLookupService.get_active_specialist(shop.id, specialist_id).id

    @classmethod
    def get_walk_in_queue(cls, shop_id, specialist_id=None):
        """Customers waiting for or receiving a service today, per specialist"""
        shop = ShopService.get_shop(shop_id)
        return WalkInService.wait_queue(
            shop.id, ShopService.get_local_now(shop), cls._specialist_filter(shop, specialist_id)
        )

    @classmethod
    def check_immediate_availability(cls, shop_id, service_id, specialist_id=None):
        """
        Rank the specialists who could take a walk-in for a service right now.

        Raises:
            InvalidDataException: no service given
            ResourceNotFoundException: the service doesn't exist or is inactive
        """
        if not service_id:
            raise InvalidDataException("service_id: this field is required")

        shop = ShopService.get_shop(shop_id)
        service = ServiceCatalog().get_service(normalize_id(service_id), shop.id)
        if service is None or not service.active:
            raise ResourceNotFoundException(
                "Service not found",
                errors=[{"code": "NOT_FOUND", "service_ids": [normalize_id(service_id)]}],
            )

        return WalkInService.immediate_availability(
            service,
            shop.id,
            ShopService.get_local_now(shop),
            cls._specialist_filter(shop, specialist_id),
        )

    @classmethod
    def get_today_dashboard(cls, shop_id, specialist_id=None):
        shop = ShopService.get_shop(shop_id)
        return DashboardService.today_dashboard(
            shop.id, ShopService.get_local_now(shop), cls._specialist_filter(shop, specialist_id)
        )

    @staticmethod
    def get_realtime_metrics(shop_id):
        shop = ShopService.get_shop(shop_id)
        return DashboardService.realtime_metrics(shop.id, ShopService.get_local_now(shop))

    # Recurring series

    @classmethod
    def _prepare_series(cls, data, shop, config):
        shop_settings = ShopService.get_settings(shop)
        booker = MultiServiceBooker(config=config)
        if not data.get("specialist_id"):
            raise InvalidDataException("specialist_id: required for a recurring series")

        aggregated, start_date, start_time, end_time = cls._prepare_slot(data, shop, booker)
        specialist = SpecialistLookupService.get_active_specialist(shop.id, data["specialist_id"])
        SpecialistLookupService.check_offerings(specialist, aggregated.service_ids)

        max_occurrences = shop_settings.max_series_occurrences
        pattern = RecurrenceService.parse_pattern(
            data.get("recurrence_pattern"), start_date, config, max_occurrences
        )
        return aggregated, specialist, pattern, start_date, start_time, end_time, max_occurrences

    @classmethod
    @transaction.atomic
    def create_recurring_series(cls, data, shop_id, user=None):
        """
        Create a recurring series of appointments.

        Dates that aren't available are skipped; the series fails only when
        no date at all can be booked.

        Args:
            data: Same fields as ``create_appointment`` (``specialist_id`` is
                required) plus ``recurrence_pattern``
            shop_id: Shop of the series
            user: User creating the series

        Returns:
            SeriesResult

        Raises:
            EmptySeriesException: no date of the series could be booked
        """
        shop = ShopService.get_shop(shop_id)
        config = SchedulingConfig.from_settings()
        customer = cls._resolve_customer(data, shop)
        (
            aggregated,
            specialist,
            pattern,
            start_date,
            start_time,
            end_time,
            max_occurrences,
        ) = cls._prepare_series(data, shop, config)

        result = SeriesService.create_series(
            aggregated,
            shop,
            customer.id,
            specialist.id,
            pattern,
            start_date,
            start_time,
            end_time,
            user=user,
            config=config,
            max_occurrences=max_occurrences,
            notes=data.get("notes") or "",
            origin=cls._origin(data, config),
            branch_id=cls._resolve_branch_id(data, shop),
        )
        if result.is_empty:
            raise EmptySeriesException(
                "None of the series dates are available",
                errors=result.skipped,
            )

        AuditService.record(
            shop.id,
            "series_created",
            f"Recurring series created: {len(result.created)} appointments, "
            f"{len(result.skipped)} dates skipped",
            appointment_id=result.created[0].id,
            user=user,
            metadata={
                "series_id": result.series_id,
                "pattern": pattern.to_dict(),
                "created": len(result.created),
                "skipped": [entry["date"] for entry in result.skipped],
            },
        )
        return result

    @classmethod
    @transaction.atomic
    def preview_recurring_series(cls, data, shop_id):
        """
        Report which dates of a recurring series can be booked, without saving anything.
        """
        shop = ShopService.get_shop(shop_id)
        config = SchedulingConfig.from_settings()
        (
            aggregated,
            specialist,
            pattern,
            start_date,
            start_time,
            end_time,
            max_occurrences,
        ) = cls._prepare_series(data, shop, config)

        preview = SeriesService.preview_series(
            shop,
            specialist.id,
            pattern,
            start_date,
            start_time,
            end_time,
            config=config,
            max_occurrences=max_occurrences,
        )
        preview["specialist_id"] = str(specialist.id)
        preview["total_price"] = str(aggregated.total_price)
        preview["duration"] = aggregated.total_duration
        return preview

    @staticmethod
    def get_series(series_id, shop_id):
        return SeriesService.get_series(series_id, shop_id)

    @staticmethod
    @transaction.atomic
    def cancel_series(series_id, shop_id, options=None, user=None):
        """
        Cancel the pending (and by default confirmed) appointments of a series.

        Args:
            series_id: Series to cancel
            shop_id: Shop of the series
            options: Dict with ``only_future`` (default True),
                ``include_confirmed`` (default True) and ``reason``
            user: User canceling the series

        Returns:
            Dict with ``canceled_count`` and per-appointment ``details``
        """
        options = options or {}
        shop = ShopService.get_shop(shop_id)
        reason = options.get("reason") or DEFAULT_SERIES_CANCEL_REASON

        result = SeriesService.cancel_series(
            series_id,
            shop,
            only_future=options.get("only_future", True),
            include_confirmed=options.get("include_confirmed", True),
            reason=reason,
            user=user,
        )

        AuditService.record(
            shop.id,
            "series_canceled",
            f"Series {series_id} canceled: {result['canceled_count']} appointments",
            user=user,
            metadata={
                "series_id": series_id,
                "reason": reason,
                "canceled": [detail["appointment_id"] for detail in result["details"]],
            },
        )
        return result
