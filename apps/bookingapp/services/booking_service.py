"""
Booking Service

Persists appointments together with their service lines. Callers run these
helpers inside their own transaction, after the slot has been validated.
"""

import logging

from django.db import transaction

from apps.bookingapp.models import Appointment, ServiceAssignment
from apps.bookingapp.services.multi_service_booker import AggregatedServices

logger = logging.getLogger(__name__)


class BookingService:
    """
    Service for writing Appointment and ServiceAssignment rows.

    Service lines always carry their appointment's date, so the appointment
    row is written before any of its lines are (re)inserted.
    """

    @staticmethod
    @transaction.atomic
    def persist_appointment(
        aggregated: AggregatedServices,
        shop_id,
        customer_id,
        specialist_id,
        date,
        start_time,
        end_time,
        user=None,
        **fields,
    ) -> Appointment:
        """
        Create an appointment and its service lines.

        Args:
            aggregated: Resolved services with totals
            shop_id: Shop of the appointment
            customer_id: Customer being served
            specialist_id: Specialist providing the services
            date: Date of the appointment
            start_time: Start time
            end_time: End time
            user: User creating the appointment
            **fields: Other Appointment fields (status, notes, origin, series data, ...)

        Returns:
            The created Appointment
        """
        appointment = Appointment.objects.create(
            shop_id=shop_id,
            customer_id=customer_id,
            specialist_id=specialist_id,
            date=date,
            start_time=start_time,
            end_time=end_time,
            total_price=aggregated.total_price,
            duration=aggregated.total_duration,
            created_by=user,
            updated_by=user,
            **fields,
        )
        BookingService.create_service_assignments(appointment, aggregated)

        logger.info(
            f"Appointment {appointment.id} saved for specialist {specialist_id} on {date} "
            f"{start_time.strftime('%H:%M')}-{end_time.strftime('%H:%M')} "
            f"({len(aggregated.lines)} services)"
        )
        return appointment

    @staticmethod
    def create_service_assignments(appointment, aggregated: AggregatedServices):
        return ServiceAssignment.objects.bulk_create(
            [
                ServiceAssignment(
                    appointment=appointment,
                    service_id=line.service_id,
                    date=appointment.date,
                    execution_order=line.execution_order,
                    applied_price=line.price,
                    applied_duration=line.duration,
                    discount=line.discount,
                    notes=line.notes,
                )
                for line in aggregated.lines
            ]
        )

    @staticmethod
    @transaction.atomic
    def replace_service_assignments(appointment, aggregated: AggregatedServices):
        """
        Replace all service lines of a saved appointment (delete then reinsert).
        """
        deleted, _ = ServiceAssignment.objects.filter(appointment=appointment).delete()
        created = BookingService.create_service_assignments(appointment, aggregated)
        logger.debug(
            f"Replaced {deleted} service lines of appointment {appointment.id} with {len(created)}"
        )
        return created
