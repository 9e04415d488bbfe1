"""
Round-Robin Assignment Service

Picks the specialist for an appointment booked without one. Specialists
offering the service are rotated by their rotation order; the rotation
resumes after whoever most recently received a booking for the service,
and skips anyone the availability check rejects.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from apps.bookingapp.models import ServiceAssignment
from apps.bookingapp.services.availability_service import AvailabilityService, ValidationResult
from apps.shopapp.services.shop_service import ShopService
from apps.specialistsapp.models import Specialist, SpecialistService

logger = logging.getLogger(__name__)

NO_AVAILABILITY = "NO_AVAILABILITY"


@dataclass
class AssignmentResult:
    specialist: Optional[Specialist] = None
    reason: Optional[str] = None
    message: str = ""
    candidates: List[str] = field(default_factory=list)
    validation: Optional[ValidationResult] = None

    @property
    def assigned(self):
        return self.specialist is not None


class RoundRobinService:
    @staticmethod
    def get_candidates(service_id, shop_id, required_service_ids=None) -> List[Specialist]:
        """
        Get active specialists offering a service, in rotation order.

        Args:
            service_id: Service to rotate on
            shop_id: Shop of the specialists
            required_service_ids: Other services every candidate must also offer

        Returns:
            Specialists ordered by rotation order, then id
        """
        offerings = (
            SpecialistService.objects.filter(
                service_id=service_id,
                is_active=True,
                specialist__is_active=True,
                specialist__shop_id=shop_id,
            )
            .select_related("specialist")
            .order_by("rotation_order", "specialist_id")
        )
        candidates = [offering.specialist for offering in offerings]

        for other_id in set(required_service_ids or []) - {str(service_id)}:
            offering_ids = set(
                SpecialistService.objects.filter(
                    service_id=other_id, is_active=True
                ).values_list("specialist_id", flat=True)
            )
            candidates = [c for c in candidates if c.id in offering_ids]

        return candidates

    @staticmethod
    def get_last_assigned_specialist_id(service_id, shop_id):
        """Get the specialist of the most recently created active booking for a service"""
        return (
            ServiceAssignment.objects.filter(
                service_id=service_id, appointment__shop_id=shop_id
            )
            .exclude(appointment__status="canceled")
            .order_by("-appointment__created_at")
            .values_list("appointment__specialist_id", flat=True)
            .first()
        )

    @classmethod
    def assign(
        cls,
        service_id,
        shop_id,
        date,
        start_time,
        end_time,
        required_service_ids=None,
        round_robin_enabled: Optional[bool] = None,
    ) -> AssignmentResult:
        """
        Select a specialist for the slot.

        Args:
            service_id: Service being booked (first service for multi-service bookings)
            shop_id: Shop of the booking
            date: Date of the slot
            start_time: Start of the slot
            end_time: End of the slot
            required_service_ids: All services of the booking
            round_robin_enabled: Override of the shop setting

        Returns:
            AssignmentResult, with ``reason`` set to NO_AVAILABILITY when nobody fits
        """
        candidates = cls.get_candidates(service_id, shop_id, required_service_ids)
        if not candidates:
            return AssignmentResult(
                reason=NO_AVAILABILITY,
                message="No active specialist offers the requested services",
            )

        names = [candidate.full_name for candidate in candidates]
        if round_robin_enabled is None:
            round_robin_enabled = ShopService.is_round_robin_enabled(shop_id)

        if not round_robin_enabled or len(candidates) == 1:
            specialist = candidates[0]
            validation = AvailabilityService.validate(
                specialist.id, date, start_time, end_time, shop_id=shop_id
            )
            if validation.valid:
                return AssignmentResult(specialist=specialist, candidates=names, validation=validation)
            return AssignmentResult(
                reason=NO_AVAILABILITY,
                message=f"{specialist.full_name} is not available: {validation.summary()}",
                candidates=names,
                validation=validation,
            )

        ids = [candidate.id for candidate in candidates]
        last_id = cls.get_last_assigned_specialist_id(service_id, shop_id)
        start_index = (ids.index(last_id) + 1) % len(ids) if last_id in ids else 0

        for offset in range(len(candidates)):
            specialist = candidates[(start_index + offset) % len(candidates)]
            validation = AvailabilityService.validate(
                specialist.id, date, start_time, end_time, shop_id=shop_id
            )
            if validation.valid:
                logger.info(
                    f"Round-robin assigned {specialist.full_name} for service {service_id} "
                    f"on {date} {start_time.strftime('%H:%M')}"
                )
                return AssignmentResult(specialist=specialist, candidates=names, validation=validation)

        return AssignmentResult(
            reason=NO_AVAILABILITY,
            message=f"No specialist is available for this slot. Checked: {', '.join(names)}",
            candidates=names,
        )
