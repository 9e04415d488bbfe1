import uuid

from django.db import models
from django.utils.translation import gettext_lazy as _


class Customer(models.Model):
    """
    Client of a shop. Walk-in clients may be created with only a name.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shop = models.ForeignKey(
        "shopapp.Shop",
        on_delete=models.CASCADE,
        related_name="customers",
        verbose_name=_("Shop"),
    )
    name = models.CharField(_("Name"), max_length=255)
    phone_number = models.CharField(_("Phone Number"), max_length=20, blank=True)
    email = models.EmailField(_("Email"), null=True, blank=True)
    is_active = models.BooleanField(_("Active"), default=True)
    created_at = models.DateTimeField(_("Created At"), auto_now_add=True)
    updated_at = models.DateTimeField(_("Updated At"), auto_now=True)

    class Meta:
        verbose_name = _("Customer")
        verbose_name_plural = _("Customers")
        indexes = [
            models.Index(fields=["shop", "phone_number"]),
            models.Index(fields=["created_at"]),
        ]

    def __str__(self):
        return f"{self.name} ({self.phone_number or 'no phone'})"
