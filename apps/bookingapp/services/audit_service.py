"""
Audit Service

Best-effort audit trail for appointment changes. Each write runs in its own
savepoint: a failing audit insert is rolled back alone, logged and dropped,
and never aborts the booking that triggered it.
"""

import logging

from django.db import DatabaseError, transaction

from apps.bookingapp.models import AppointmentAuditEvent

logger = logging.getLogger(__name__)


class AuditService:
    @staticmethod
    def record(shop_id, event_type, description="", appointment_id=None, user=None, metadata=None):
        """
        Record an audit event.

        Args:
            shop_id: Shop the event belongs to
            event_type: Event name (e.g. ``appointment_created``)
            description: Human readable description
            appointment_id: Related appointment, if any
            user: User who triggered the change, if any
            metadata: Extra JSON-serializable data

        Returns:
            The created AppointmentAuditEvent, or None when the write failed
        """
        try:
            with transaction.atomic():
                return AppointmentAuditEvent.objects.create(
                    shop_id=shop_id,
                    appointment_id=appointment_id,
                    event_type=event_type,
                    description=description,
                    user=user if getattr(user, "is_authenticated", False) else None,
                    metadata=metadata or {},
                )
        except DatabaseError as e:
            logger.warning(
                f"Failed to record audit event {event_type} for appointment {appointment_id}: {e}"
            )
            return None
