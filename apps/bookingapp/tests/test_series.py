# apps/bookingapp/tests/test_series.py
from datetime import date, datetime, time
from unittest.mock import patch

import pytz
from django.test import TestCase

from apps.bookingapp.models import Appointment, AppointmentAuditEvent, ServiceAssignment
from apps.bookingapp.services.appointment_service import (
    DEFAULT_SERIES_CANCEL_REASON,
    AppointmentService,
)
from apps.bookingapp.tests.factories import AppointmentFactory
from apps.customersapp.tests.factories import CustomerFactory
from apps.serviceapp.tests.factories import ServiceFactory
from apps.shopapp.tests.factories import ShopFactory, ShopSettingsFactory
from apps.specialistsapp.tests.factories import (
    BlackoutBlockFactory,
    SpecialistFactory,
    SpecialistServiceFactory,
    create_weekly_hours,
)
from core.exceptions import (
    EmptySeriesException,
    InvalidDataException,
    ResourceNotFoundException,
)

MEXICO_CITY = pytz.timezone("America/Mexico_City")


class RecurringSeriesTestCase(TestCase):
    def setUp(self):
        """Set up test data"""
        self.shop = ShopFactory()
        self.service = ServiceFactory(shop=self.shop, duration=60)
        self.customer = CustomerFactory(shop=self.shop)
        self.specialist = SpecialistFactory(shop=self.shop)
        SpecialistServiceFactory(specialist=self.specialist, service=self.service)
        create_weekly_hours(self.specialist, time(9, 0), time(18, 0))

    def series_data(self, **pattern):
        pattern = pattern or {"frequency": "weekly", "days_of_week": [3], "occurrences": 5}
        return {
            "customer_id": self.customer.id,
            "specialist_id": self.specialist.id,
            "service_ids": [self.service.id],
            "date": date(2026, 1, 7),
            "start_time": time(10, 0),
            "recurrence_pattern": pattern,
        }


class CreateSeriesTest(RecurringSeriesTestCase):
    def test_every_date_is_booked(self):
        result = AppointmentService.create_recurring_series(self.series_data(), self.shop.id)

        self.assertEqual(result.requested, 5)
        self.assertEqual(len(result.created), 5)
        self.assertEqual(result.skipped, [])
        self.assertEqual(
            ServiceAssignment.objects.filter(appointment__series_id=result.series_id).count(), 5
        )

    def test_unavailable_dates_are_skipped(self):
        AppointmentFactory(
            shop=self.shop,
            specialist=self.specialist,
            date=date(2026, 1, 21),
            start_time=time(10, 30),
            end_time=time(11, 30),
        )

        result = AppointmentService.create_recurring_series(self.series_data(), self.shop.id)

        self.assertEqual(len(result.created), 4)
        self.assertEqual(len(result.skipped), 1)
        self.assertEqual(result.skipped[0]["date"], "2026-01-21")
        self.assertEqual(result.skipped[0]["errors"][0]["code"], "CONFLICT")

        appointments = list(
            Appointment.objects.filter(series_id=result.series_id).order_by("series_sequence")
        )
        self.assertEqual([a.series_sequence for a in appointments], [1, 2, 3, 4])
        self.assertEqual({a.series_total for a in appointments}, {4})
        self.assertEqual(
            [a.date for a in appointments],
            [date(2026, 1, 7), date(2026, 1, 14), date(2026, 1, 28), date(2026, 2, 4)],
        )
        self.assertEqual(appointments[0].recurrence_pattern["frequency"], "weekly")
        self.assertTrue(all(a.recurrence_pattern is None for a in appointments[1:]))
        self.assertEqual({a.series_total for a in result.created}, {4})

    def test_every_appointment_gets_the_series_times(self):
        result = AppointmentService.create_recurring_series(self.series_data(), self.shop.id)

        for appointment in result.created:
            self.assertEqual(appointment.start_time, time(10, 0))
            self.assertEqual(appointment.end_time, time(11, 0))
            self.assertEqual(appointment.customer_id, self.customer.id)

    def test_empty_series_saves_nothing(self):
        BlackoutBlockFactory(
            shop=self.shop, start_date=date(2026, 1, 1), end_date=date(2026, 3, 31)
        )

        with self.assertRaises(EmptySeriesException) as ctx:
            AppointmentService.create_recurring_series(self.series_data(), self.shop.id)

        self.assertEqual(len(ctx.exception.errors), 5)
        self.assertFalse(Appointment.objects.exclude(series_id=None).exists())

    def test_series_is_audited(self):
        result = AppointmentService.create_recurring_series(self.series_data(), self.shop.id)

        event = AppointmentAuditEvent.objects.get(event_type="series_created")
        self.assertEqual(event.metadata["series_id"], result.series_id)
        self.assertEqual(event.metadata["created"], 5)

    def test_specialist_is_required(self):
        data = self.series_data()
        del data["specialist_id"]

        with self.assertRaises(InvalidDataException):
            AppointmentService.create_recurring_series(data, self.shop.id)

    def test_shop_occurrence_cap(self):
        ShopSettingsFactory(shop=self.shop, max_series_occurrences=4)

        with self.assertRaises(InvalidDataException):
            AppointmentService.create_recurring_series(self.series_data(), self.shop.id)

    def test_invalid_pattern(self):
        with self.assertRaises(InvalidDataException):
            AppointmentService.create_recurring_series(
                self.series_data(frequency="daily", occurrences=3), self.shop.id
            )

    def test_to_dict(self):
        result = AppointmentService.create_recurring_series(self.series_data(), self.shop.id)
        data = result.to_dict()

        self.assertEqual(data["total_created"], 5)
        self.assertEqual(data["total_skipped"], 0)
        self.assertEqual(data["created"][0]["series_sequence"], 1)
        self.assertEqual(data["pattern"]["days_of_week"], [3])


class PreviewSeriesTest(RecurringSeriesTestCase):
    def test_preview_saves_nothing(self):
        AppointmentFactory(
            shop=self.shop,
            specialist=self.specialist,
            date=date(2026, 1, 21),
            start_time=time(10, 0),
            end_time=time(10, 30),
        )

        preview = AppointmentService.preview_recurring_series(self.series_data(), self.shop.id)

        self.assertEqual(preview["total_available"], 4)
        self.assertEqual(preview["total_unavailable"], 1)
        self.assertEqual(preview["unavailable"][0]["date"], "2026-01-21")
        self.assertEqual(
            preview["warnings"], ["Only 4 of 5 requested appointments can be booked"]
        )
        self.assertEqual(preview["total_price"], "100.00")
        self.assertEqual(preview["duration"], 60)
        self.assertEqual(Appointment.objects.count(), 1)

    def test_preview_without_problems_has_no_warnings(self):
        preview = AppointmentService.preview_recurring_series(self.series_data(), self.shop.id)

        self.assertEqual(preview["total_available"], 5)
        self.assertEqual(preview["warnings"], [])
        self.assertEqual(preview["available"][0]["start_time"], "10:00")


class CancelSeriesTest(RecurringSeriesTestCase):
    def setUp(self):
        super().setUp()
        self.result = AppointmentService.create_recurring_series(self.series_data(), self.shop.id)
        self.series_id = self.result.series_id
        # Jan 15th in the shop's time zone: the first two dates are past
        self.now_patcher = patch(
            "apps.bookingapp.services.series_service.ShopService.get_local_now",
            return_value=MEXICO_CITY.localize(datetime(2026, 1, 15, 9, 0)),
        )
        self.now_patcher.start()
        self.addCleanup(self.now_patcher.stop)

    def statuses(self):
        return list(
            Appointment.objects.filter(series_id=self.series_id)
            .order_by("series_sequence")
            .values_list("status", flat=True)
        )

    def test_only_future_appointments_are_canceled(self):
        result = AppointmentService.cancel_series(self.series_id, self.shop.id)

        self.assertEqual(result["canceled_count"], 3)
        self.assertEqual(
            self.statuses(), ["pending", "pending", "canceled", "canceled", "canceled"]
        )
        self.assertEqual(
            [detail["series_sequence"] for detail in result["details"]], [3, 4, 5]
        )
        canceled = Appointment.objects.filter(series_id=self.series_id, status="canceled")
        self.assertTrue(all(a.cancellation_reason == DEFAULT_SERIES_CANCEL_REASON for a in canceled))

    def test_cancel_past_dates_too(self):
        result = AppointmentService.cancel_series(
            self.series_id, self.shop.id, options={"only_future": False, "reason": "Moved away"}
        )

        self.assertEqual(result["canceled_count"], 5)
        self.assertEqual(
            set(
                Appointment.objects.filter(series_id=self.series_id).values_list(
                    "cancellation_reason", flat=True
                )
            ),
            {"Moved away"},
        )

    def test_confirmed_appointments_can_be_kept(self):
        Appointment.objects.filter(series_id=self.series_id, series_sequence=4).update(
            status="confirmed"
        )

        result = AppointmentService.cancel_series(
            self.series_id, self.shop.id, options={"include_confirmed": False}
        )

        self.assertEqual(result["canceled_count"], 2)
        self.assertEqual(self.statuses()[3], "confirmed")

    def test_finished_appointments_are_never_touched(self):
        Appointment.objects.filter(series_id=self.series_id, series_sequence=3).update(
            status="completed"
        )
        Appointment.objects.filter(series_id=self.series_id, series_sequence=5).update(
            status="no_show"
        )

        result = AppointmentService.cancel_series(
            self.series_id, self.shop.id, options={"only_future": False}
        )

        self.assertEqual(result["canceled_count"], 3)
        self.assertEqual(self.statuses()[2], "completed")
        self.assertEqual(self.statuses()[4], "no_show")

    def test_cancel_is_audited(self):
        AppointmentService.cancel_series(self.series_id, self.shop.id)

        event = AppointmentAuditEvent.objects.get(event_type="series_canceled")
        self.assertEqual(len(event.metadata["canceled"]), 3)

    def test_unknown_series(self):
        with self.assertRaises(ResourceNotFoundException):
            AppointmentService.cancel_series("0" * 32, self.shop.id)

    def test_series_of_another_shop(self):
        with self.assertRaises(ResourceNotFoundException):
            AppointmentService.get_series(self.series_id, ShopFactory().id)

    def test_get_series_in_sequence_order(self):
        appointments = AppointmentService.get_series(self.series_id, self.shop.id)
        self.assertEqual([a.series_sequence for a in appointments], [1, 2, 3, 4, 5])
