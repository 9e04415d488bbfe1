from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class SpecialistsAppConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.specialistsapp"
    verbose_name = _("Specialists")
