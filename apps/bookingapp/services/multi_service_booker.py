"""
Multi-Service Booker

Resolves the services requested for one appointment into ordered service
lines and their combined price and duration.
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional, Protocol

from apps.bookingapp.config import SchedulingConfig
from apps.bookingapp.utils.time_calculator import add_minutes
from apps.serviceapp.services.catalog_service import CatalogEntry, ServiceCatalog
from core.exceptions import InvalidDataException, ResourceNotFoundException

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class ServiceResolver(Protocol):
    def get_services(self, service_ids: Iterable, shop_id) -> Dict[str, CatalogEntry]:
        ...


@dataclass(frozen=True)
class ServiceLine:
    service_id: str
    name: str
    execution_order: int
    price: Decimal
    duration: int
    discount: Decimal
    notes: str
    prep_minutes: int
    cleanup_minutes: int

    @property
    def net_price(self):
        """Price after this line's percentage discount"""
        return self.price - (self.price * self.discount / 100)


@dataclass(frozen=True)
class AggregatedServices:
    lines: List[ServiceLine]
    total_price: Decimal
    total_duration: int

    @property
    def service_ids(self):
        return [line.service_id for line in self.lines]

    @property
    def first_service_id(self):
        return self.lines[0].service_id


def normalize_id(value):
    """Canonical string form of an id (UUIDs lower-cased with hyphens)"""
    try:
        return str(uuid.UUID(str(value)))
    except ValueError:
        return str(value)


def _to_decimal(value, field_name):
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidDataException(f"Invalid {field_name}: {value!r}")


class MultiServiceBooker:
    def __init__(self, resolver: Optional[ServiceResolver] = None, config: Optional[SchedulingConfig] = None):
        self.resolver = resolver or ServiceCatalog()
        self.config = config or SchedulingConfig.from_settings()

    def resolve(self, service_ids, shop_id, services_data=None) -> AggregatedServices:
        """
        Resolve requested services into ordered lines with totals.

        Args:
            service_ids: Requested services, in execution order
            shop_id: Shop the services must belong to
            services_data: Optional per-position overrides
                (``price``, ``duration``, ``discount``, ``notes``)

        Returns:
            AggregatedServices

        Raises:
            InvalidDataException: no services, or malformed overrides
            ResourceNotFoundException: unknown, foreign or inactive services
        """
        if not service_ids:
            raise InvalidDataException("At least one service is required")

        ids = [normalize_id(service_id) for service_id in service_ids]
        catalog = self.resolver.get_services(ids, shop_id)

        missing = [sid for sid in ids if sid not in catalog or not catalog[sid].active]
        if missing:
            raise ResourceNotFoundException(
                f"Services not found or inactive: {', '.join(dict.fromkeys(missing))}",
                errors=[{"code": "NOT_FOUND", "service_ids": list(dict.fromkeys(missing))}],
            )

        services_data = services_data or []
        lines = []
        for index, service_id in enumerate(ids):
            entry = catalog[service_id]
            override = services_data[index] if index < len(services_data) else {}
            lines.append(self._build_line(entry, index + 1, override or {}))

        total_price, total_duration = self.calculate_totals(lines)
        return AggregatedServices(lines=lines, total_price=total_price, total_duration=total_duration)

    def _build_line(self, entry: CatalogEntry, execution_order, override) -> ServiceLine:
        price = entry.price
        if override.get("price") is not None:
            price = _to_decimal(override["price"], "price")
            if price < 0:
                raise InvalidDataException(f"Price for service {entry.name} cannot be negative")

        duration = entry.duration or self.config.default_service_duration
        if override.get("duration") is not None:
            try:
                duration = int(override["duration"])
            except (TypeError, ValueError):
                raise InvalidDataException(f"Invalid duration: {override['duration']!r}")
            if duration < 1:
                raise InvalidDataException(f"Duration for service {entry.name} must be positive")

        discount = Decimal("0")
        if override.get("discount") is not None:
            discount = _to_decimal(override["discount"], "discount")
            if not (0 <= discount <= 100):
                raise InvalidDataException("Discount must be a percentage between 0 and 100")

        return ServiceLine(
            service_id=entry.id,
            name=entry.name,
            execution_order=execution_order,
            price=price,
            duration=duration,
            discount=discount,
            notes=override.get("notes") or "",
            prep_minutes=entry.prep_minutes,
            cleanup_minutes=entry.cleanup_minutes,
        )

    @staticmethod
    def calculate_totals(lines: Iterable[ServiceLine]):
        """Sum net prices (rounded to cents) and durations"""
        lines = list(lines)
        total_price = sum((line.net_price for line in lines), Decimal("0"))
        total_duration = sum(line.duration for line in lines)
        return total_price.quantize(CENTS, rounding=ROUND_HALF_UP), total_duration

    def compute_end_time(self, start_time, duration):
        """End time for a start and duration, clamped to the configured end of day"""
        return add_minutes(start_time, duration, self.config.end_of_day)
