"""
Global exception handler for the Booking Engine.

Every error leaves the API in the same envelope the custom exceptions use:

    {"message": ..., "status_code": ..., "code": ..., "errors": ...}

``errors`` is present only when there is structured detail to report (field
errors from a serializer, the conflict list of a failed validation, ...).
"""

import logging
import traceback
from typing import Any, Dict, Optional

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.utils import DatabaseError, IntegrityError
from django.http import Http404
from django.utils.translation import gettext_lazy as _
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from .custom_exceptions import APIException

logger = logging.getLogger(__name__)

# Headers of the DRF response that survive re-rendering
FORWARDED_HEADERS = ("WWW-Authenticate", "Allow", "Retry-After")

# Client errors that are logged as warnings rather than errors
EXPECTED_ERRORS = (
    exceptions.ValidationError,
    exceptions.NotAuthenticated,
    exceptions.AuthenticationFailed,
    exceptions.PermissionDenied,
    exceptions.NotFound,
    exceptions.MethodNotAllowed,
    Http404,
    PermissionDenied,
)


def get_error_code(exception: Exception) -> str:
    """
    Map an exception onto one of the stable error codes.

    Args:
        exception: The exception to get code for

    Returns:
        str: Upper-case error code
    """
    if isinstance(exception, APIException):
        return exception.code
    if isinstance(exception, exceptions.ValidationError):
        return "VALIDATION_ERROR"
    if isinstance(exception, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        return "AUTHENTICATION_REQUIRED"
    if isinstance(exception, (exceptions.PermissionDenied, PermissionDenied)):
        return "PERMISSION_DENIED"
    if isinstance(exception, (Http404, exceptions.NotFound, ObjectDoesNotExist)):
        return "NOT_FOUND"
    if isinstance(exception, IntegrityError):
        return "INTEGRITY_ERROR"
    if isinstance(exception, DatabaseError):
        return "DATABASE_ERROR"
    if isinstance(exception, exceptions.APIException):
        return str(exception.default_code).upper()

    return "INTERNAL_ERROR"


def get_error_message(exception: Exception) -> str:
    if isinstance(exception, exceptions.ValidationError):
        return _("Invalid input.")
    if hasattr(exception, "detail") and isinstance(exception.detail, str):
        return exception.detail

    if isinstance(exception, IntegrityError):
        return _("A conflict occurred with existing data.")
    if isinstance(exception, DatabaseError):
        return _("A database error occurred. Please try again later.")
    if isinstance(exception, (Http404, ObjectDoesNotExist)):
        return _("The requested resource was not found.")

    return _("An error occurred processing your request.")


def get_error_details(exception: Exception) -> Optional[Any]:
    """Structured detail for the ``errors`` key, if the exception has any."""
    if isinstance(exception, exceptions.ValidationError) and not isinstance(
        exception.detail, str
    ):
        return exception.detail

    if isinstance(exception, IntegrityError):
        error_str = str(exception).lower()
        if "unique constraint" in error_str:
            return {"type": "unique_constraint_violation"}
        if "foreign key constraint" in error_str:
            return {"type": "foreign_key_constraint_violation"}

    return None


def build_error_response(code, message, status_code, errors=None, headers=None) -> Response:
    data: Dict[str, Any] = {
        "message": str(message),
        "status_code": status_code,
        "code": code,
    }
    if errors:
        data["errors"] = errors
    return Response(data, status=status_code, headers=headers)


def exception_handler(exc: Exception, context: Dict[str, Any]) -> Response:
    """
    Custom exception handler for DRF views.

    Args:
        exc: The exception
        context: The exception context

    Returns:
        Response: Error response in the shared envelope
    """
    view_name = context.get("view").__class__.__name__

    # Scheduling and domain errors already know their status and payload
    if isinstance(exc, APIException):
        logger.warning(f"{exc.code}: {exc.message} ({view_name})")
        return Response(exc.to_dict(), status=exc.status_code)

    if isinstance(exc, DjangoValidationError):
        if hasattr(exc, "message_dict"):
            exc = exceptions.ValidationError(detail=exc.message_dict)
        else:
            exc = exceptions.ValidationError(detail=exc.messages)

    response = drf_exception_handler(exc, context)

    error_code = get_error_code(exc)
    error_message = get_error_message(exc)
    error_details = get_error_details(exc)

    if isinstance(exc, EXPECTED_ERRORS):
        logger.warning(f"{error_code} in {view_name}: {error_message} {error_details or ''}")
    else:
        logger.error(
            f"Exception: {error_code} - {error_message}\n"
            f"Context: {context}\n"
            f"Traceback: {traceback.format_exc()}"
        )

    if isinstance(exc, IntegrityError):
        return build_error_response(
            error_code, error_message, status.HTTP_409_CONFLICT, error_details
        )

    # DRF handled it: keep its status and challenge headers
    if response is not None:
        return build_error_response(
            error_code,
            error_message,
            response.status_code,
            error_details,
            headers={k: v for k, v in response.items() if k in FORWARDED_HEADERS},
        )

    return build_error_response(
        error_code, error_message, status.HTTP_500_INTERNAL_SERVER_ERROR, error_details
    )
