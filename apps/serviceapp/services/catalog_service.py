"""
Service catalog reader.

Exposes catalog services as plain ``CatalogEntry`` values so that scheduling
code never depends on the Service model directly.
"""

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from django.conf import settings

from apps.serviceapp.models import Service


@dataclass(frozen=True)
class CatalogEntry:
    id: str
    name: str
    price: Decimal
    duration: int
    prep_minutes: int
    cleanup_minutes: int
    active: bool


class ServiceCatalog:
    """Reads services of a shop from the catalog"""

    @staticmethod
    def _to_entry(service: Service) -> CatalogEntry:
        return CatalogEntry(
            id=str(service.id),
            name=service.name,
            price=service.price,
            duration=service.duration or settings.SCHEDULING["DEFAULT_SERVICE_DURATION"],
            prep_minutes=service.buffer_before,
            cleanup_minutes=service.buffer_after,
            active=service.is_available,
        )

    @staticmethod
    def _valid_ids(service_ids: Iterable) -> List[uuid.UUID]:
        # Malformed ids can't match a row; they surface as missing services
        valid = []
        for service_id in service_ids:
            try:
                valid.append(uuid.UUID(str(service_id)))
            except ValueError:
                continue
        return valid

    def get_service(self, service_id, shop_id) -> Optional[CatalogEntry]:
        """Get a single service of the shop, or None when it doesn't exist"""
        return self.get_services([service_id], shop_id).get(str(service_id))

    def get_services(self, service_ids: Iterable, shop_id) -> Dict[str, CatalogEntry]:
        """Get the existing services of the shop among ``service_ids``, keyed by id"""
        services = Service.objects.filter(id__in=self._valid_ids(service_ids), shop_id=shop_id)
        return {str(service.id): self._to_entry(service) for service in services}
