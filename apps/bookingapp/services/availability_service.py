"""
Availability Service

Combines the specialist's shifts, blackout blocks and existing appointments
into one admit/reject verdict. Every check runs, so a rejected slot reports
all of its problems at once. Warnings never block a booking.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from apps.bookingapp.services.conflict_detection_service import ConflictDetectionService
from apps.bookingapp.utils.date_utils import get_weekday
from apps.specialistsapp.models import WEEKDAY_CHOICES, Specialist
from apps.specialistsapp.services.schedule_rules_service import ScheduleRulesService
from core.exceptions import InvalidDataException, ResourceNotFoundException

logger = logging.getLogger(__name__)

NO_SHIFT = "NO_SHIFT"
OUTSIDE_SHIFT = "OUTSIDE_SHIFT"
OUTSIDE_SHIFT_ALLOWED = "OUTSIDE_SHIFT_ALLOWED"
BLOCKED = "BLOCKED"
CONFLICT = "CONFLICT"


@dataclass(frozen=True)
class ValidationIssue:
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self):
        return {"code": self.code, "message": self.message, "details": self.details}


@dataclass
class ValidationResult:
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def valid(self):
        return not self.errors

    @property
    def error_codes(self):
        return [error.code for error in self.errors]

    def summary(self):
        return "; ".join(error.message for error in self.errors)

    def to_dict(self):
        return {
            "valid": self.valid,
            "errors": [error.to_dict() for error in self.errors],
            "warnings": [warning.to_dict() for warning in self.warnings],
        }


class AvailabilityService:
    @staticmethod
    def check_time_range(start_time, end_time):
        """
        Reject ranges that end at or before their start (appointments can't cross midnight)
        """
        if end_time <= start_time:
            raise InvalidDataException(
                f"End time {end_time.strftime('%H:%M')} must be after start time "
                f"{start_time.strftime('%H:%M')}; appointments cannot cross midnight"
            )

    @staticmethod
    def _get_shop_id(specialist_id):
        shop_id = (
            Specialist.objects.filter(id=specialist_id).values_list("shop_id", flat=True).first()
        )
        if shop_id is None:
            raise ResourceNotFoundException(f"Specialist {specialist_id} not found")
        return shop_id

    @classmethod
    def validate(
        cls,
        specialist_id,
        date,
        start_time,
        end_time,
        exclude_appointment_id: Optional[str] = None,
        is_walk_in: bool = False,
        allow_outside_shift: bool = False,
        shop_id=None,
    ) -> ValidationResult:
        """
        Validate that a specialist can take the slot ``[start_time, end_time)`` on ``date``.

        Args:
            specialist_id: ID of the specialist
            date: Date of the slot
            start_time: Start of the slot
            end_time: End of the slot
            exclude_appointment_id: Appointment to ignore (the one being modified)
            is_walk_in: Whether the slot is for a walk-in
            allow_outside_shift: Downgrade "outside shift" to a warning
            shop_id: Shop of the specialist, looked up when not given

        Returns:
            ValidationResult with errors and warnings
        """
        if shop_id is None:
            shop_id = cls._get_shop_id(specialist_id)

        result = ValidationResult()
        cls._check_shift(result, specialist_id, date, start_time, end_time, allow_outside_shift)
        cls._check_blocks(result, shop_id, specialist_id, date, start_time, end_time)
        cls._check_appointments(
            result, specialist_id, date, start_time, end_time, exclude_appointment_id
        )

        slot = f"{date} {start_time.strftime('%H:%M')}-{end_time.strftime('%H:%M')}"
        if result.valid:
            logger.debug(
                f"Slot {slot} admitted for specialist {specialist_id} "
                f"(walk-in={is_walk_in}, warnings={len(result.warnings)})"
            )
        else:
            logger.info(
                f"Slot {slot} rejected for specialist {specialist_id}: {result.error_codes}"
            )
        return result

    @staticmethod
    def _check_shift(result, specialist_id, date, start_time, end_time, allow_outside_shift):
        windows = ScheduleRulesService.get_working_windows(specialist_id, date)

        if not windows:
            day_name = dict(WEEKDAY_CHOICES)[get_weekday(date)]
            result.errors.append(
                ValidationIssue(
                    code=NO_SHIFT,
                    message=f"Specialist has no working hours on {day_name}",
                    details={"date": date.isoformat(), "weekday": get_weekday(date)},
                )
            )
            return

        if any(
            ScheduleRulesService.is_within_window(window, start_time, end_time)
            for window in windows
        ):
            return

        details = {
            "windows": [
                {
                    "from_hour": window.from_hour.strftime("%H:%M"),
                    "to_hour": window.to_hour.strftime("%H:%M"),
                }
                for window in windows
            ]
        }
        slot = f"{start_time.strftime('%H:%M')}-{end_time.strftime('%H:%M')}"
        if allow_outside_shift:
            result.warnings.append(
                ValidationIssue(
                    code=OUTSIDE_SHIFT_ALLOWED,
                    message=f"Slot {slot} is outside the usual working hours (explicitly allowed)",
                    details=details,
                )
            )
        else:
            result.errors.append(
                ValidationIssue(
                    code=OUTSIDE_SHIFT,
                    message=f"Slot {slot} is outside the specialist's working hours",
                    details=details,
                )
            )

    @staticmethod
    def _check_blocks(result, shop_id, specialist_id, date, start_time, end_time):
        for block in ScheduleRulesService.get_blackout_blocks(shop_id, specialist_id, date):
            if not ScheduleRulesService.block_affects_slot(block, date, start_time, end_time):
                continue

            scope = "Shop block" if block.is_shop_wide else "Specialist block"
            result.errors.append(
                ValidationIssue(
                    code=BLOCKED,
                    message=f"{scope}: {block.title}",
                    details={
                        "block_id": str(block.id),
                        "category": block.category,
                        "title": block.title,
                        "start_date": block.start_date.isoformat(),
                        "end_date": block.end_date.isoformat(),
                        "blocked_hours": (
                            "all_day"
                            if block.is_all_day
                            else f"{block.start_time.strftime('%H:%M')}-{block.end_time.strftime('%H:%M')}"
                        ),
                        "is_shop_wide": block.is_shop_wide,
                    },
                )
            )

    @staticmethod
    def _check_appointments(
        result, specialist_id, date, start_time, end_time, exclude_appointment_id
    ):
        conflict = ConflictDetectionService.check_specialist_conflict(
            specialist_id, date, start_time, end_time, exclude_appointment_id
        )
        if conflict["has_conflict"]:
            result.errors.append(
                ValidationIssue(
                    code=CONFLICT,
                    message=conflict["message"],
                    details={
                        "specialist_id": str(specialist_id),
                        "date": date.isoformat(),
                        "conflicts": conflict["details"],
                    },
                )
            )
