import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from model_utils import FieldTracker

from apps.customersapp.models import Customer
from apps.serviceapp.models import Service
from apps.shopapp.models import Branch, Shop
from apps.specialistsapp.models import Specialist


class Appointment(models.Model):
    """
    Booking of a customer with a specialist on one date.

    Appointments are never deleted; cancellation is a status change.
    """

    STATUS_CHOICES = (
        ("pending", _("Pending")),
        ("confirmed", _("Confirmed")),
        ("in_progress", _("In Progress")),
        ("completed", _("Completed")),
        ("canceled", _("Canceled")),
        ("no_show", _("No Show")),
    )

    ORIGIN_CHOICES = (
        ("api", _("API")),
        ("web", _("Web")),
        ("app", _("Mobile App")),
        ("phone", _("Phone")),
        ("walk_in", _("Walk-in")),
    )

    # Statuses whose date, time and specialist can no longer change
    LOCKED_STATUSES = ("completed", "canceled")
    # Statuses ignored when looking for overlapping appointments
    INACTIVE_STATUSES = ("canceled", "no_show")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shop = models.ForeignKey(
        Shop,
        on_delete=models.CASCADE,
        related_name="appointments",
        verbose_name=_("Shop"),
    )
    customer = models.ForeignKey(
        Customer,
        on_delete=models.PROTECT,
        related_name="appointments",
        verbose_name=_("Customer"),
    )
    specialist = models.ForeignKey(
        Specialist,
        on_delete=models.PROTECT,
        related_name="appointments",
        verbose_name=_("Specialist"),
    )
    branch = models.ForeignKey(
        Branch,
        on_delete=models.SET_NULL,
        related_name="appointments",
        verbose_name=_("Branch"),
        null=True,
        blank=True,
    )
    date = models.DateField(_("Date"))
    start_time = models.TimeField(_("Start Time"))
    end_time = models.TimeField(_("End Time"))
    status = models.CharField(
        _("Status"), max_length=20, choices=STATUS_CHOICES, default="pending"
    )
    total_price = models.DecimalField(
        _("Total Price"), max_digits=10, decimal_places=2, default=0
    )
    duration = models.PositiveIntegerField(_("Duration (minutes)"), default=0)
    notes = models.TextField(_("Notes"), blank=True)
    origin = models.CharField(
        _("Origin"), max_length=20, choices=ORIGIN_CHOICES, default="api"
    )

    # Recurring series
    series_id = models.CharField(
        _("Series ID"), max_length=64, null=True, blank=True, db_index=True
    )
    series_sequence = models.PositiveIntegerField(
        _("Sequence in Series"), null=True, blank=True
    )
    series_total = models.PositiveIntegerField(
        _("Total in Series"), null=True, blank=True
    )
    recurrence_pattern = models.JSONField(
        _("Recurrence Pattern"), null=True, blank=True
    )

    # Operational timestamps
    confirmed_by_customer_at = models.DateTimeField(
        _("Confirmed by Customer At"), null=True, blank=True
    )
    arrival_time = models.DateTimeField(_("Arrival Time"), null=True, blank=True)
    actual_start_time = models.DateTimeField(
        _("Actual Start Time"), null=True, blank=True
    )
    actual_end_time = models.DateTimeField(_("Actual End Time"), null=True, blank=True)

    is_paid = models.BooleanField(_("Paid"), default=False)
    payment_method = models.CharField(_("Payment Method"), max_length=30, blank=True)
    cancellation_reason = models.TextField(_("Cancellation Reason"), blank=True)
    cancelled_at = models.DateTimeField(_("Cancelled At"), null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="created_appointments",
        verbose_name=_("Created By"),
        null=True,
        blank=True,
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="updated_appointments",
        verbose_name=_("Updated By"),
        null=True,
        blank=True,
    )
    created_at = models.DateTimeField(_("Created At"), auto_now_add=True)
    updated_at = models.DateTimeField(_("Updated At"), auto_now=True)

    tracker = FieldTracker(fields=["status", "date", "start_time", "end_time", "specialist_id"])

    class Meta:
        verbose_name = _("Appointment")
        verbose_name_plural = _("Appointments")
        ordering = ["date", "start_time"]
        indexes = [
            models.Index(fields=["specialist", "date", "status"]),
            models.Index(fields=["shop", "date"]),
            models.Index(fields=["customer", "date"]),
            models.Index(fields=["series_id", "series_sequence"]),
            models.Index(fields=["created_at"]),
        ]

    def __str__(self):
        return f"{self.customer.name} - {self.date} {self.start_time.strftime('%H:%M')}"

    def clean(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValidationError(_("End time must be after start time"))

    @property
    def is_locked(self):
        return self.status in self.LOCKED_STATUSES

    def append_note(self, text):
        """Append a line to the appointment notes"""
        if not text:
            return
        self.notes = f"{self.notes}\n{text}" if self.notes else text

    def mark_cancelled(self, reason="", user=None):
        self.status = "canceled"
        self.cancellation_reason = reason
        self.cancelled_at = timezone.now()
        self.updated_by = user
        self.save(
            update_fields=[
                "status",
                "cancellation_reason",
                "cancelled_at",
                "updated_by",
                "updated_at",
            ]
        )


class ServiceAssignment(models.Model):
    """
    Service line item of an appointment.

    ``date`` always mirrors the parent appointment's date.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    appointment = models.ForeignKey(
        Appointment,
        on_delete=models.CASCADE,
        related_name="service_assignments",
        verbose_name=_("Appointment"),
    )
    service = models.ForeignKey(
        Service,
        on_delete=models.PROTECT,
        related_name="assignments",
        verbose_name=_("Service"),
    )
    date = models.DateField(_("Date"))
    execution_order = models.PositiveSmallIntegerField(_("Execution Order"))
    applied_price = models.DecimalField(
        _("Applied Price"), max_digits=10, decimal_places=2
    )
    applied_duration = models.PositiveIntegerField(_("Applied Duration (minutes)"))
    discount = models.DecimalField(
        _("Discount (%)"), max_digits=5, decimal_places=2, default=0
    )
    notes = models.TextField(_("Notes"), blank=True)

    class Meta:
        verbose_name = _("Service Assignment")
        verbose_name_plural = _("Service Assignments")
        ordering = ["execution_order"]
        unique_together = ("appointment", "execution_order")

    def __str__(self):
        return f"{self.appointment_id} #{self.execution_order} - {self.service.name}"


class AppointmentAuditEvent(models.Model):
    """Audit trail entry for appointment changes"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shop = models.ForeignKey(
        Shop,
        on_delete=models.CASCADE,
        related_name="appointment_audit_events",
        verbose_name=_("Shop"),
    )
    appointment = models.ForeignKey(
        Appointment,
        on_delete=models.SET_NULL,
        related_name="audit_events",
        verbose_name=_("Appointment"),
        null=True,
        blank=True,
    )
    event_type = models.CharField(_("Event Type"), max_length=50)
    description = models.TextField(_("Description"), blank=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="appointment_audit_events",
        verbose_name=_("User"),
        null=True,
        blank=True,
    )
    metadata = models.JSONField(_("Metadata"), default=dict, blank=True)
    created_at = models.DateTimeField(_("Created At"), auto_now_add=True)

    class Meta:
        verbose_name = _("Appointment Audit Event")
        verbose_name_plural = _("Appointment Audit Events")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["shop", "event_type"]),
            models.Index(fields=["appointment", "created_at"]),
        ]

    def __str__(self):
        return f"{self.event_type} ({self.created_at})"
