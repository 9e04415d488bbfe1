from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class ServiceAppConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.serviceapp"
    verbose_name = _("Services")
