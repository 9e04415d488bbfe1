"""
Custom exceptions for the Booking Engine.

This module defines the hierarchy of exceptions raised at the service
boundary. Each exception carries an HTTP status, a stable machine-readable
``code`` and an optional structured ``errors`` payload (for scheduling
rejections this is the validator's error list).
"""

from django.utils.translation import gettext_lazy as _
from rest_framework import status


class APIException(Exception):
    """Base exception for all API-related exceptions."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = _("An unexpected error occurred.")
    code = "ERROR"

    def __init__(self, message=None, status_code=None, errors=None, code=None):
        self.message = message or self.default_message
        if status_code:
            self.status_code = status_code
        if code:
            self.code = code
        self.errors = errors
        super().__init__(self.message)

    def to_dict(self):
        """Convert exception to dictionary representation."""
        error_dict = {
            "message": str(self.message),
            "status_code": self.status_code,
            "code": self.code,
        }

        if self.errors:
            error_dict["errors"] = self.errors

        return error_dict


class InvalidDataException(APIException):
    """Exception raised when request data is invalid."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = _("Invalid data provided.")
    code = "VALIDATION_ERROR"


class ResourceNotFoundException(APIException):
    """Exception raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = _("The requested resource was not found.")
    code = "NOT_FOUND"


class InvalidTransitionException(APIException):
    """Exception raised when an appointment cannot move to the requested state."""

    status_code = status.HTTP_409_CONFLICT
    default_message = _("This operation is not valid in the current state.")
    code = "INVALID_TRANSITION"


class SchedulingConflictException(APIException):
    """Exception raised when there's a scheduling conflict."""

    status_code = status.HTTP_409_CONFLICT
    default_message = _("A scheduling conflict was detected.")
    code = "SCHEDULING_CONFLICT"


class NoAvailabilityException(APIException):
    """Exception raised when no qualifying specialist can take the slot."""

    status_code = status.HTTP_409_CONFLICT
    default_message = _("No availability found for the requested time period.")
    code = "NO_AVAILABILITY"


class NotAvailableNowException(APIException):
    """Exception raised when a walk-in cannot be served or queued right now."""

    status_code = status.HTTP_409_CONFLICT
    default_message = _("The specialist is not available right now.")
    code = "NOT_AVAILABLE_NOW"


class EmptySeriesException(APIException):
    """Exception raised when no date of a recurring series could be booked."""

    status_code = status.HTTP_409_CONFLICT
    default_message = _("None of the requested dates could be booked.")
    code = "EMPTY_SERIES"


class FeatureNotAvailableException(APIException):
    """Exception raised when a feature is disabled for the organization."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = _("This feature is not enabled for this organization.")
    code = "FEATURE_DISABLED"
