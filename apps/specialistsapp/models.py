import uuid

from django.core.exceptions import ValidationError
from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.serviceapp.models import Service
from apps.shopapp.models import Shop

WEEKDAY_CHOICES = (
    (0, _("Sunday")),
    (1, _("Monday")),
    (2, _("Tuesday")),
    (3, _("Wednesday")),
    (4, _("Thursday")),
    (5, _("Friday")),
    (6, _("Saturday")),
)


class Specialist(models.Model):
    """Professional who performs services for a shop"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shop = models.ForeignKey(
        Shop,
        on_delete=models.CASCADE,
        related_name="specialists",
        verbose_name=_("Shop"),
    )
    first_name = models.CharField(_("First Name"), max_length=100)
    last_name = models.CharField(_("Last Name"), max_length=100, blank=True)
    email = models.EmailField(_("Email"), blank=True, null=True)
    phone_number = models.CharField(_("Phone Number"), max_length=20, blank=True)
    is_active = models.BooleanField(_("Active"), default=True)
    services = models.ManyToManyField(
        Service,
        through="SpecialistService",
        related_name="specialists",
        verbose_name=_("Services"),
    )
    created_at = models.DateTimeField(_("Created At"), auto_now_add=True)
    updated_at = models.DateTimeField(_("Updated At"), auto_now=True)

    class Meta:
        verbose_name = _("Specialist")
        verbose_name_plural = _("Specialists")
        indexes = [
            models.Index(fields=["shop", "is_active"]),
        ]

    def __str__(self):
        return self.full_name

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()


class SpecialistService(models.Model):
    """Association between specialists and the services they offer"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    specialist = models.ForeignKey(
        Specialist,
        on_delete=models.CASCADE,
        related_name="specialist_services",
        verbose_name=_("Specialist"),
    )
    service = models.ForeignKey(
        Service,
        on_delete=models.CASCADE,
        related_name="specialist_services",
        verbose_name=_("Service"),
    )
    rotation_order = models.PositiveIntegerField(
        _("Rotation Order"),
        default=0,
        help_text=_("Position of the specialist in round-robin assignment"),
    )
    is_active = models.BooleanField(_("Active"), default=True)
    created_at = models.DateTimeField(_("Created At"), auto_now_add=True)

    class Meta:
        verbose_name = _("Specialist Service")
        verbose_name_plural = _("Specialist Services")
        unique_together = ("specialist", "service")
        ordering = ["rotation_order", "specialist_id"]

    def __str__(self):
        return f"{self.specialist.full_name} - {self.service.name}"


class SpecialistWorkingHours(models.Model):
    """Recurring weekly shift of a specialist"""

    WEEKDAY_CHOICES = WEEKDAY_CHOICES

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    specialist = models.ForeignKey(
        Specialist,
        on_delete=models.CASCADE,
        related_name="working_hours",
        verbose_name=_("Specialist"),
    )
    weekday = models.IntegerField(_("Weekday"), choices=WEEKDAY_CHOICES)
    from_hour = models.TimeField(_("From Hour"))
    to_hour = models.TimeField(_("To Hour"))
    is_off = models.BooleanField(_("Day Off"), default=False)
    accepts_bookings = models.BooleanField(_("Accepts Bookings"), default=True)
    valid_from = models.DateField(_("Valid From"), null=True, blank=True)
    valid_until = models.DateField(_("Valid Until"), null=True, blank=True)

    class Meta:
        verbose_name = _("Specialist Working Hours")
        verbose_name_plural = _("Specialist Working Hours")
        ordering = ["weekday", "from_hour"]
        indexes = [
            models.Index(fields=["specialist", "weekday"]),
        ]

    def __str__(self):
        return f"{self.specialist.full_name} - {self.get_weekday_display()}: {self.from_hour.strftime('%H:%M')} - {self.to_hour.strftime('%H:%M')}"

    def clean(self):
        if self.from_hour and self.to_hour and self.to_hour <= self.from_hour:
            raise ValidationError(_("End hour must be after start hour"))
        if self.valid_from and self.valid_until and self.valid_until < self.valid_from:
            raise ValidationError(_("Validity end date must not precede its start date"))


class BlackoutBlock(models.Model):
    """
    One-off period during which bookings are not allowed.

    A block without a specialist applies to the whole shop. A block without
    hours covers each day of its date range entirely.
    """

    CATEGORY_CHOICES = (
        ("vacation", _("Vacation")),
        ("holiday", _("Holiday")),
        ("sick_leave", _("Sick Leave")),
        ("training", _("Training")),
        ("maintenance", _("Maintenance")),
        ("personal", _("Personal")),
        ("other", _("Other")),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shop = models.ForeignKey(
        Shop,
        on_delete=models.CASCADE,
        related_name="blackout_blocks",
        verbose_name=_("Shop"),
    )
    specialist = models.ForeignKey(
        Specialist,
        on_delete=models.CASCADE,
        related_name="blackout_blocks",
        verbose_name=_("Specialist"),
        null=True,
        blank=True,
    )
    category = models.CharField(
        _("Category"), max_length=20, choices=CATEGORY_CHOICES, default="other"
    )
    title = models.CharField(_("Title"), max_length=255)
    start_date = models.DateField(_("Start Date"))
    end_date = models.DateField(_("End Date"))
    start_time = models.TimeField(_("Start Time"), null=True, blank=True)
    end_time = models.TimeField(_("End Time"), null=True, blank=True)
    is_active = models.BooleanField(_("Active"), default=True)
    created_at = models.DateTimeField(_("Created At"), auto_now_add=True)

    class Meta:
        verbose_name = _("Blackout Block")
        verbose_name_plural = _("Blackout Blocks")
        ordering = ["start_date", "start_time"]
        indexes = [
            models.Index(fields=["shop", "start_date", "end_date"]),
            models.Index(fields=["specialist", "start_date"]),
        ]

    def __str__(self):
        return f"{self.title} ({self.start_date} - {self.end_date})"

    @property
    def is_shop_wide(self):
        return self.specialist_id is None

    @property
    def is_all_day(self):
        return self.start_time is None and self.end_time is None

    @property
    def is_half_bounded(self):
        return (self.start_time is None) != (self.end_time is None)

    def clean(self):
        if self.end_date < self.start_date:
            raise ValidationError(_("End date must not precede start date"))
        if self.is_half_bounded:
            raise ValidationError(
                _("Give both start and end time, or neither for an all-day block")
            )
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValidationError(_("End time must be after start time"))
