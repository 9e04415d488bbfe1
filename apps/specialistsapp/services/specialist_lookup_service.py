import logging

from django.core.exceptions import ValidationError

from apps.specialistsapp.models import Specialist, SpecialistService
from core.exceptions import InvalidDataException, ResourceNotFoundException

logger = logging.getLogger(__name__)


class SpecialistLookupService:
    """
    Service class for resolving the specialist of an appointment
    """

    @staticmethod
    def get_active_specialist(shop_id, specialist_id):
        """
        Get a specialist of the shop, which must exist and be active
        """
        try:
            specialist = Specialist.objects.get(id=specialist_id, shop_id=shop_id)
        except (Specialist.DoesNotExist, ValueError, ValidationError):
            raise ResourceNotFoundException(f"Specialist {specialist_id} not found")

        if not specialist.is_active:
            raise InvalidDataException(f"Specialist {specialist.full_name} is inactive")

        return specialist

    @staticmethod
    def get_missing_offerings(specialist_id, service_ids):
        """Get the ids among ``service_ids`` the specialist doesn't actively offer"""
        offered = {
            str(service_id)
            for service_id in SpecialistService.objects.filter(
                specialist_id=specialist_id, service_id__in=service_ids, is_active=True
            ).values_list("service_id", flat=True)
        }
        return [service_id for service_id in service_ids if service_id not in offered]

    @classmethod
    def check_offerings(cls, specialist, service_ids):
        """
        Raise InvalidDataException unless the specialist offers every service
        """
        missing = cls.get_missing_offerings(specialist.id, service_ids)
        if missing:
            logger.warning(
                f"Specialist {specialist.id} does not offer services {', '.join(missing)}"
            )
            raise InvalidDataException(
                f"{specialist.full_name} does not offer the requested services: {', '.join(missing)}",
                errors={"service_ids": missing},
            )
