import uuid

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _


def default_shop_timezone():
    return settings.SCHEDULING["DEFAULT_TIMEZONE"]


class Shop(models.Model):
    """Organization (tenant) that owns specialists, services and appointments"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(_("Name"), max_length=255)
    username = models.CharField(_("Username"), max_length=50, unique=True)
    phone_number = models.CharField(_("Phone Number"), max_length=20, blank=True)
    email = models.EmailField(_("Email"), null=True, blank=True)
    timezone = models.CharField(
        _("Time Zone"), max_length=64, default=default_shop_timezone
    )
    is_active = models.BooleanField(_("Active"), default=True)
    created_at = models.DateTimeField(_("Created At"), auto_now_add=True)
    updated_at = models.DateTimeField(_("Updated At"), auto_now=True)

    class Meta:
        verbose_name = _("Shop")
        verbose_name_plural = _("Shops")
        ordering = ["name"]
        indexes = [
            models.Index(fields=["username"]),
            models.Index(fields=["is_active"]),
        ]

    def __str__(self):
        return self.name


class Branch(models.Model):
    """Physical location of a shop"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shop = models.ForeignKey(
        Shop, on_delete=models.CASCADE, related_name="branches", verbose_name=_("Shop")
    )
    name = models.CharField(_("Name"), max_length=255)
    address = models.TextField(_("Address"), blank=True)
    is_active = models.BooleanField(_("Active"), default=True)
    created_at = models.DateTimeField(_("Created At"), auto_now_add=True)

    class Meta:
        verbose_name = _("Branch")
        verbose_name_plural = _("Branches")
        ordering = ["name"]

    def __str__(self):
        return f"{self.shop.name} - {self.name}"


class ShopSettings(models.Model):
    """Scheduling configuration for a shop"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shop = models.OneToOneField(
        Shop, on_delete=models.CASCADE, related_name="settings", verbose_name=_("Shop")
    )
    allow_walk_ins = models.BooleanField(_("Allow Walk-ins"), default=True)
    round_robin_enabled = models.BooleanField(
        _("Round Robin Assignment"),
        default=False,
        help_text=_("Rotate automatic specialist assignment among qualifying staff"),
    )
    max_series_occurrences = models.PositiveIntegerField(
        _("Max Series Occurrences"),
        default=52,
        validators=[MinValueValidator(2), MaxValueValidator(52)],
    )

    class Meta:
        verbose_name = _("Shop Settings")
        verbose_name_plural = _("Shop Settings")

    def __str__(self):
        return f"Settings for {self.shop.name}"
