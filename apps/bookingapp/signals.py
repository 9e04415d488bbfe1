# apps/bookingapp/signals.py
import logging

from django.db.models.signals import post_save
from django.dispatch import receiver

from apps.bookingapp.models import Appointment, ServiceAssignment

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Appointment)
def appointment_post_save(sender, instance, created, **kwargs):
    """
    Handle post-save signal for Appointments.
    Keeps the date of the service lines in step with their appointment.
    """
    if created:
        return

    if instance.tracker.has_changed("date"):
        updated = ServiceAssignment.objects.filter(appointment_id=instance.id).exclude(
            date=instance.date
        ).update(date=instance.date)
        logger.debug(
            f"Appointment {instance.id} moved from {instance.tracker.previous('date')} "
            f"to {instance.date}; {updated} service lines updated"
        )

    if instance.tracker.has_changed("status"):
        logger.info(
            f"Appointment {instance.id} status changed from "
            f"{instance.tracker.previous('status')} to {instance.status}"
        )
