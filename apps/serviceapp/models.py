import uuid

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.shopapp.models import Shop

from .enums import ServiceStatus


class Service(models.Model):
    """Service offered by a shop"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shop = models.ForeignKey(
        Shop, on_delete=models.CASCADE, related_name="services", verbose_name=_("Shop")
    )
    name = models.CharField(_("Name"), max_length=255)
    description = models.TextField(_("Description"), blank=True)
    price = models.DecimalField(_("Price"), max_digits=10, decimal_places=2)
    duration = models.PositiveIntegerField(
        _("Duration (minutes)"),
        validators=[MinValueValidator(1), MaxValueValidator(1440)],  # Max 24 hours
    )
    buffer_before = models.PositiveIntegerField(
        _("Preparation Buffer (minutes)"),
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(120)],
    )
    buffer_after = models.PositiveIntegerField(
        _("Cleanup Buffer (minutes)"),
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(120)],
    )
    status = models.CharField(
        _("Status"),
        max_length=10,
        choices=ServiceStatus.choices,
        default=ServiceStatus.ACTIVE,
    )
    order = models.PositiveIntegerField(
        _("Order"), default=0, help_text=_("Display order")
    )
    created_at = models.DateTimeField(_("Created At"), auto_now_add=True)
    updated_at = models.DateTimeField(_("Updated At"), auto_now=True)

    class Meta:
        verbose_name = _("Service")
        verbose_name_plural = _("Services")
        ordering = ["order", "name"]
        indexes = [
            models.Index(fields=["shop", "status"]),
        ]

    def __str__(self):
        return f"{self.name} ({self.shop.name})"

    @property
    def total_duration(self):
        """Total duration including buffers"""
        return self.buffer_before + self.duration + self.buffer_after

    @property
    def is_available(self):
        """Check if service can currently be booked"""
        return self.status == ServiceStatus.ACTIVE
