"""
Series Service

Creates, previews and cancels recurring appointment series. A series has no
row of its own: it is the set of appointments sharing a ``series_id``.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from apps.bookingapp.config import SchedulingConfig
from apps.bookingapp.models import Appointment
from apps.bookingapp.services.availability_service import AvailabilityService
from apps.bookingapp.services.booking_service import BookingService
from apps.bookingapp.services.multi_service_booker import AggregatedServices
from apps.bookingapp.services.recurrence_service import RecurrencePattern, RecurrenceService
from apps.shopapp.services.shop_service import ShopService
from core.exceptions import ResourceNotFoundException

logger = logging.getLogger(__name__)


@dataclass
class SeriesResult:
    series_id: str
    pattern: RecurrencePattern
    requested: int
    created: List[Appointment] = field(default_factory=list)
    skipped: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def is_empty(self):
        return not self.created

    def to_dict(self):
        return {
            "series_id": self.series_id,
            "pattern": self.pattern.to_dict(),
            "requested": self.requested,
            "total_created": len(self.created),
            "total_skipped": len(self.skipped),
            "created": [
                {
                    "appointment_id": str(appointment.id),
                    "date": appointment.date.isoformat(),
                    "series_sequence": appointment.series_sequence,
                }
                for appointment in self.created
            ],
            "skipped": self.skipped,
        }


class SeriesService:
    @staticmethod
    def create_series(
        aggregated: AggregatedServices,
        shop,
        customer_id,
        specialist_id,
        pattern: RecurrencePattern,
        start_date,
        start_time,
        end_time,
        user=None,
        config: Optional[SchedulingConfig] = None,
        max_occurrences=None,
        **fields,
    ) -> SeriesResult:
        """
        Book one appointment per generated date.

        Dates are processed in order, so each date is validated against the
        appointments admitted earlier in the same series. Rejected dates are
        skipped with their reasons; they don't stop the series.

        Args:
            aggregated: Resolved services with totals
            shop: Shop of the series
            customer_id: Customer of every appointment
            specialist_id: Specialist of every appointment
            pattern: Validated recurrence pattern
            start_date: First date of the series
            start_time: Start time of every appointment
            end_time: End time of every appointment
            user: User creating the series
            config: Scheduling configuration
            max_occurrences: Shop cap on occurrences
            **fields: Other Appointment fields (notes, branch_id, origin, ...)

        Returns:
            SeriesResult; ``is_empty`` is True when no date was admitted
        """
        config = config or SchedulingConfig.from_settings()
        dates = RecurrenceService.generate(pattern, start_date, config, max_occurrences)
        result = SeriesResult(
            series_id=uuid.uuid4().hex,
            pattern=pattern,
            requested=len(dates),
        )

        for series_date in dates:
            validation = AvailabilityService.validate(
                specialist_id, series_date, start_time, end_time, shop_id=shop.id
            )
            if not validation.valid:
                result.skipped.append(
                    {
                        "date": series_date.isoformat(),
                        "reason": validation.summary(),
                        "errors": [error.to_dict() for error in validation.errors],
                    }
                )
                continue

            sequence = len(result.created) + 1
            appointment = BookingService.persist_appointment(
                aggregated,
                shop.id,
                customer_id,
                specialist_id,
                series_date,
                start_time,
                end_time,
                user=user,
                series_id=result.series_id,
                series_sequence=sequence,
                recurrence_pattern=pattern.to_dict() if sequence == 1 else None,
                **fields,
            )
            result.created.append(appointment)

        if result.created:
            total = len(result.created)
            Appointment.objects.filter(series_id=result.series_id).update(series_total=total)
            for appointment in result.created:
                appointment.series_total = total

        logger.info(
            f"Series {result.series_id}: {len(result.created)} of {result.requested} dates "
            f"booked, {len(result.skipped)} skipped"
        )
        return result

    @staticmethod
    def preview_series(
        shop,
        specialist_id,
        pattern: RecurrencePattern,
        start_date,
        start_time,
        end_time,
        config: Optional[SchedulingConfig] = None,
        max_occurrences=None,
    ):
        """
        Dry run of ``create_series``: validate every generated date without saving.

        Each date is checked on its own, so two dates of the previewed series
        never conflict with each other.

        Returns:
            Dict with ``available`` and ``unavailable`` dates and any warnings
        """
        config = config or SchedulingConfig.from_settings()
        dates = RecurrenceService.generate(pattern, start_date, config, max_occurrences)

        available = []
        unavailable = []
        for series_date in dates:
            validation = AvailabilityService.validate(
                specialist_id, series_date, start_time, end_time, shop_id=shop.id
            )
            entry = {
                "date": series_date.isoformat(),
                "start_time": start_time.strftime("%H:%M"),
                "end_time": end_time.strftime("%H:%M"),
            }
            if validation.valid:
                entry["warnings"] = [warning.to_dict() for warning in validation.warnings]
                available.append(entry)
            else:
                entry["reason"] = validation.summary()
                entry["errors"] = [error.to_dict() for error in validation.errors]
                unavailable.append(entry)

        requested = pattern.occurrences or len(dates)
        warnings = []
        if len(available) < requested:
            warnings.append(
                f"Only {len(available)} of {requested} requested appointments can be booked"
            )

        return {
            "pattern": pattern.to_dict(),
            "requested": requested,
            "total_available": len(available),
            "total_unavailable": len(unavailable),
            "available": available,
            "unavailable": unavailable,
            "warnings": warnings,
        }

    @staticmethod
    def get_series(series_id, shop_id):
        """Get the appointments of a series in sequence order"""
        appointments = list(
            Appointment.objects.filter(series_id=series_id, shop_id=shop_id)
            .select_related("customer", "specialist")
            .prefetch_related("service_assignments__service")
            .order_by("series_sequence", "date")
        )
        if not appointments:
            raise ResourceNotFoundException(f"Series {series_id} not found")
        return appointments

    @classmethod
    def cancel_series(
        cls,
        series_id,
        shop,
        only_future=True,
        include_confirmed=True,
        reason="",
        user=None,
    ):
        """
        Cancel the appointments of a series.

        Completed, in-progress, no-show and already canceled appointments are
        never touched.

        Args:
            series_id: Series to cancel
            shop: Shop of the series
            only_future: Only cancel appointments dated today or later (shop time)
            include_confirmed: Also cancel confirmed appointments
            reason: Cancellation reason stored on every canceled appointment
            user: User canceling the series

        Returns:
            Dict with ``canceled_count`` and per-appointment ``details``
        """
        appointments = cls.get_series(series_id, shop.id)
        cancellable = ("pending", "confirmed") if include_confirmed else ("pending",)
        today = ShopService.get_local_now(shop).date()

        details = []
        for appointment in appointments:
            if appointment.status not in cancellable:
                continue
            if only_future and appointment.date < today:
                continue

            previous_status = appointment.status
            appointment.mark_cancelled(reason=reason, user=user)
            details.append(
                {
                    "appointment_id": str(appointment.id),
                    "date": appointment.date.isoformat(),
                    "series_sequence": appointment.series_sequence,
                    "previous_status": previous_status,
                }
            )

        logger.info(
            f"Series {series_id}: canceled {len(details)} of {len(appointments)} appointments"
        )
        return {
            "series_id": series_id,
            "canceled_count": len(details),
            "details": details,
        }
