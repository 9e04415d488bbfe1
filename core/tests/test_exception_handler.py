# core/tests/test_exception_handler.py
from unittest.mock import patch

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.utils import IntegrityError
from django.http import Http404
from django.test import SimpleTestCase
from rest_framework import exceptions, status

from core.exceptions import InvalidDataException, SchedulingConflictException
from core.exceptions.exception_handler import exception_handler


class DummyView:
    pass


class ExceptionHandlerTest(SimpleTestCase):
    def setUp(self):
        self.context = {"view": DummyView()}

    def handle(self, exc):
        return exception_handler(exc, self.context)

    def test_domain_exception_uses_its_payload(self):
        conflict = [{"code": "CONFLICT", "message": "Taken"}]
        response = self.handle(SchedulingConflictException("Slot taken", errors=conflict))

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(
            response.data,
            {
                "message": "Slot taken",
                "status_code": 409,
                "code": "SCHEDULING_CONFLICT",
                "errors": conflict,
            },
        )

    def test_domain_exception_without_errors(self):
        response = self.handle(InvalidDataException("X-Shop-ID header is required"))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertNotIn("errors", response.data)

    def test_serializer_errors(self):
        response = self.handle(exceptions.ValidationError({"date": ["This field is required."]}))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "VALIDATION_ERROR")
        self.assertEqual(response.data["status_code"], 400)
        self.assertIn("date", response.data["errors"])

    def test_django_validation_error(self):
        response = self.handle(DjangoValidationError({"end_date": ["Must follow start."]}))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["code"], "VALIDATION_ERROR")
        self.assertIn("end_date", response.data["errors"])

    def test_authentication_keeps_challenge_header(self):
        exc = exceptions.NotAuthenticated()
        exc.auth_header = "Token"

        response = self.handle(exc)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data["code"], "AUTHENTICATION_REQUIRED")
        self.assertEqual(response["WWW-Authenticate"], "Token")

    def test_not_found(self):
        response = self.handle(Http404())

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["code"], "NOT_FOUND")

    def test_other_drf_errors_use_default_code(self):
        response = self.handle(exceptions.MethodNotAllowed("DELETE"))

        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
        self.assertEqual(response.data["code"], "METHOD_NOT_ALLOWED")

    def test_integrity_error_is_a_conflict(self):
        response = self.handle(IntegrityError("UNIQUE constraint failed: bookingapp_appointment.id"))

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "INTEGRITY_ERROR")
        self.assertEqual(response.data["errors"], {"type": "unique_constraint_violation"})

    @patch("core.exceptions.exception_handler.logger")
    def test_unexpected_error(self, mock_logger):
        response = self.handle(RuntimeError("boom"))

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data["code"], "INTERNAL_ERROR")
        self.assertNotIn("boom", response.data["message"])
        mock_logger.error.assert_called_once()
