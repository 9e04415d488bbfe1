# apps/bookingapp/tests/test_walk_in.py
from datetime import date, datetime, time
from unittest.mock import patch

import pytz
from django.test import TestCase

from apps.bookingapp.config import SchedulingConfig
from apps.bookingapp.models import Appointment, AppointmentAuditEvent
from apps.bookingapp.services.appointment_service import AppointmentService
from apps.bookingapp.services.walk_in_service import (
    IMMEDIATE_STATUS,
    QUEUED_STATUS,
    WalkInService,
)
from apps.bookingapp.tests.factories import AppointmentFactory, ServiceAssignmentFactory
from apps.bookingapp.utils.time_calculator import add_minutes
from apps.customersapp.models import Customer
from apps.customersapp.tests.factories import CustomerFactory
from apps.serviceapp.enums import ServiceStatus
from apps.serviceapp.tests.factories import ServiceFactory
from apps.shopapp.tests.factories import ShopFactory, ShopSettingsFactory
from apps.specialistsapp.tests.factories import (
    SpecialistFactory,
    SpecialistServiceFactory,
    create_weekly_hours,
)
from core.exceptions import (
    FeatureNotAvailableException,
    InvalidDataException,
    NoAvailabilityException,
    NotAvailableNowException,
    ResourceNotFoundException,
    SchedulingConflictException,
)

MEXICO_CITY = pytz.timezone("America/Mexico_City")
TODAY = date(2026, 1, 7)


def local(hour, minute=0, day=TODAY):
    return MEXICO_CITY.localize(datetime(day.year, day.month, day.day, hour, minute))


class WalkInTestCase(TestCase):
    def setUp(self):
        """Set up test data"""
        self.shop = ShopFactory()
        self.service = ServiceFactory(shop=self.shop, duration=30)
        self.customer = CustomerFactory(shop=self.shop)
        self.specialist = SpecialistFactory(shop=self.shop)
        SpecialistServiceFactory(specialist=self.specialist, service=self.service)
        create_weekly_hours(self.specialist, time(9, 0), time(18, 0))
        self.config = SchedulingConfig()

    def set_now(self, now):
        patcher = patch(
            "apps.shopapp.services.shop_service.ShopService.get_local_now", return_value=now
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    def serving(self, specialist, started_at, duration=30, start=None):
        """Appointment the specialist is working on"""
        start = start or started_at.time()
        return AppointmentFactory(
            shop=self.shop,
            specialist=specialist,
            date=started_at.date(),
            start_time=start,
            end_time=add_minutes(start, duration, time(23, 59)),
            status="in_progress",
            actual_start_time=started_at,
            duration=duration,
        )

    def walk_in(self, **data):
        payload = {"service_ids": [self.service.id], "customer_id": self.customer.id}
        payload.update(data)
        return AppointmentService.create_walk_in(payload, self.shop.id)


class WalkInPlanTest(WalkInTestCase):
    def test_free_specialist_starts_now(self):
        slot = WalkInService.plan(self.specialist.id, 30, local(10, 5), self.config)

        self.assertTrue(slot.is_immediate)
        self.assertEqual(slot.status, IMMEDIATE_STATUS)
        self.assertEqual((slot.start_time, slot.end_time), (time(10, 5), time(10, 35)))
        self.assertEqual(slot.started_at, local(10, 5))
        self.assertFalse(slot.allow_outside_shift)

    def test_busy_specialist_is_queued(self):
        current = self.serving(self.specialist, local(9, 50))

        slot = WalkInService.plan(self.specialist.id, 30, local(10, 5), self.config)

        self.assertEqual(slot.status, QUEUED_STATUS)
        self.assertEqual((slot.start_time, slot.end_time), (time(10, 20), time(10, 50)))
        self.assertEqual(slot.current_appointment_id, str(current.id))
        self.assertIsNone(slot.started_at)
        self.assertTrue(slot.allow_outside_shift)

    def test_off_shift_specialist_is_not_available(self):
        with self.assertRaises(NotAvailableNowException):
            WalkInService.plan(self.specialist.id, 30, local(20, 0), self.config)

    def test_no_time_left_today(self):
        self.serving(self.specialist, local(23, 40), duration=60, start=time(17, 0))

        with self.assertRaises(NotAvailableNowException):
            WalkInService.plan(self.specialist.id, 30, local(23, 45), self.config)


class EstimatedEndTest(WalkInTestCase):
    def test_uses_actual_end_when_known(self):
        appointment = self.serving(self.specialist, local(9, 0))
        appointment.actual_end_time = local(9, 40)

        self.assertEqual(
            WalkInService.estimated_end(appointment, local(9, 45), self.config), time(9, 40)
        )

    def test_actual_start_plus_duration(self):
        appointment = self.serving(self.specialist, local(9, 10), duration=45)
        self.assertEqual(
            WalkInService.estimated_end(appointment, local(9, 30), self.config), time(9, 55)
        )

    def test_now_plus_duration_without_actual_start(self):
        appointment = self.serving(self.specialist, local(9, 10), duration=20)
        appointment.actual_start_time = None
        self.assertEqual(
            WalkInService.estimated_end(appointment, local(11, 0), self.config), time(11, 20)
        )

    def test_estimates_past_midnight_are_clamped(self):
        appointment = self.serving(self.specialist, local(23, 30), duration=60, start=time(17, 0))
        self.assertEqual(
            WalkInService.estimated_end(appointment, local(23, 35), self.config), time(23, 59)
        )


class CreateWalkInTest(WalkInTestCase):
    def test_immediate_walk_in(self):
        self.set_now(local(10, 5))

        appointment = self.walk_in(specialist_id=self.specialist.id)

        self.assertEqual(appointment.status, "in_progress")
        self.assertEqual(appointment.origin, "walk_in")
        self.assertEqual(appointment.start_time, time(10, 5))
        self.assertEqual(appointment.end_time, time(10, 35))
        self.assertEqual(appointment.arrival_time, local(10, 5))
        self.assertEqual(appointment.actual_start_time, local(10, 5))
        self.assertIn("Specialist requested", appointment.notes)

    def test_queued_walk_in_may_run_past_the_shift(self):
        self.serving(self.specialist, local(17, 45), start=time(17, 30))
        self.set_now(local(17, 50))

        appointment = self.walk_in(specialist_id=self.specialist.id, accepted_wait_minutes=25)

        self.assertEqual(appointment.status, "confirmed")
        self.assertEqual(appointment.start_time, time(18, 15))
        self.assertEqual(appointment.end_time, time(18, 45))
        self.assertIsNone(appointment.actual_start_time)
        self.assertIn("Accepted wait: 25 min.", appointment.notes)

        event = AppointmentAuditEvent.objects.get(event_type="walk_in_created")
        self.assertEqual(event.metadata["warnings"][0]["code"], "OUTSIDE_SHIFT_ALLOWED")

    def test_immediate_walk_in_must_end_within_shift(self):
        # 17:50 + 30 min runs past the 18:00 end of shift
        self.set_now(local(17, 50))

        with self.assertRaises(SchedulingConflictException) as ctx:
            self.walk_in(specialist_id=self.specialist.id)

        codes = [error["code"] for error in ctx.exception.errors]
        self.assertIn("OUTSIDE_SHIFT", codes)
        self.assertNotIn("OUTSIDE_SHIFT_ALLOWED", codes)
        self.assertFalse(Appointment.objects.filter(origin="walk_in").exists())

    def test_disabled_walk_ins(self):
        ShopSettingsFactory(shop=self.shop, allow_walk_ins=False)
        self.set_now(local(10, 5))

        with self.assertRaises(FeatureNotAvailableException):
            self.walk_in()

    def test_new_customer_is_created(self):
        self.set_now(local(10, 5))

        appointment = self.walk_in(
            customer_id=None, customer_name="Luis Ortega", phone_number="5512345678"
        )

        customer = Customer.objects.get(phone_number="5512345678")
        self.assertEqual(appointment.customer, customer)
        self.assertEqual(customer.name, "Luis Ortega")
        self.assertTrue(
            AppointmentAuditEvent.objects.get(event_type="walk_in_created").metadata[
                "customer_created"
            ]
        )

    def test_known_phone_reuses_customer(self):
        self.set_now(local(10, 5))

        appointment = self.walk_in(
            customer_id=None, customer_name="Someone", phone_number=self.customer.phone_number
        )

        self.assertEqual(appointment.customer, self.customer)
        self.assertEqual(Customer.objects.filter(shop=self.shop).count(), 1)

    def test_specialist_must_offer_the_service(self):
        other = SpecialistFactory(shop=self.shop)
        create_weekly_hours(other)
        self.set_now(local(10, 5))

        with self.assertRaises(InvalidDataException):
            self.walk_in(specialist_id=other.id)

    def test_auto_assign_prefers_free_specialist(self):
        free = SpecialistFactory(shop=self.shop)
        SpecialistServiceFactory(specialist=free, service=self.service)
        create_weekly_hours(free)
        self.serving(self.specialist, local(9, 50))
        self.set_now(local(10, 5))

        appointment = self.walk_in()

        self.assertEqual(appointment.specialist, free)
        self.assertEqual(appointment.status, "in_progress")
        self.assertIn("Specialist auto-assigned", appointment.notes)

    def test_auto_assign_without_candidates(self):
        self.set_now(local(10, 5))

        with self.assertRaises(NoAvailabilityException):
            self.walk_in(service_ids=[ServiceFactory(shop=self.shop).id])


class AutoAssignTest(WalkInTestCase):
    def test_fewest_appointments_today_wins(self):
        other = SpecialistFactory(shop=self.shop)
        SpecialistServiceFactory(specialist=other, service=self.service)
        AppointmentFactory(
            shop=self.shop,
            specialist=self.specialist,
            date=TODAY,
            status="confirmed",
            start_time=time(15, 0),
            end_time=time(15, 30),
        )

        self.assertEqual(WalkInService.auto_assign(self.service.id, self.shop, local(10, 0)), other)


class WaitQueueTest(WalkInTestCase):
    def setUp(self):
        super().setUp()
        self.other = SpecialistFactory(shop=self.shop)

    def arrived(self, specialist, arrival, start, status="confirmed", **kwargs):
        return AppointmentFactory(
            shop=self.shop,
            specialist=specialist,
            date=arrival.date(),
            start_time=start,
            end_time=add_minutes(start, 30, time(23, 59)),
            status=status,
            arrival_time=arrival,
            **kwargs,
        )

    def test_queue_per_specialist_in_arrival_order(self):
        serving = self.arrived(
            self.specialist, local(9, 55), time(10, 0), "in_progress", actual_start_time=local(10, 0)
        )
        waiting = self.arrived(self.specialist, local(10, 10), time(10, 40))
        ServiceAssignmentFactory(appointment=waiting, service=self.service)
        other_waiting = self.arrived(self.other, local(10, 20), time(10, 25))

        # Finished, not arrived, pending and yesterday's appointments are not in line
        self.arrived(
            self.specialist, local(9, 0), time(9, 0), "completed", actual_end_time=local(9, 30)
        )
        AppointmentFactory(shop=self.shop, specialist=self.specialist, date=TODAY, status="confirmed")
        self.arrived(self.other, local(9, 0), time(9, 0), "pending")
        self.arrived(self.other, local(10, 0, day=date(2026, 1, 6)), time(10, 0))

        result = WalkInService.wait_queue(self.shop.id, local(10, 30))

        self.assertEqual(result["date"], "2026-01-07")
        self.assertEqual(result["total_waiting"], 3)
        self.assertEqual(result["average_wait_minutes"], 21.7)

        entries = {entry["appointment_id"]: entry for entry in result["queue"]}
        self.assertEqual(
            set(entries), {str(serving.id), str(waiting.id), str(other_waiting.id)}
        )

        first = entries[str(serving.id)]
        self.assertEqual(
            (first["position"], first["minutes_waiting"], first["estimated_wait_minutes"]),
            (1, 35, 0),
        )
        second = entries[str(waiting.id)]
        self.assertEqual(
            (second["position"], second["minutes_waiting"], second["estimated_wait_minutes"]),
            (2, 20, 10),
        )
        self.assertEqual(second["start_time"], "10:40")
        self.assertEqual(second["customer_name"], waiting.customer.name)
        self.assertEqual(
            second["services"],
            [{"service_id": str(self.service.id), "name": self.service.name, "duration": 30}],
        )
        # Past its scheduled start: no wait left to estimate
        third = entries[str(other_waiting.id)]
        self.assertEqual(
            (third["position"], third["minutes_waiting"], third["estimated_wait_minutes"]),
            (1, 10, 0),
        )

    def test_filter_by_specialist(self):
        self.arrived(self.specialist, local(10, 10), time(10, 40))
        mine = self.arrived(self.other, local(10, 20), time(10, 45))
        self.set_now(local(10, 30))

        result = AppointmentService.get_walk_in_queue(self.shop.id, specialist_id=self.other.id)

        self.assertEqual([entry["appointment_id"] for entry in result["queue"]], [str(mine.id)])

    def test_empty_queue(self):
        self.set_now(local(10, 30))

        result = AppointmentService.get_walk_in_queue(self.shop.id)

        self.assertEqual(result["queue"], [])
        self.assertEqual((result["total_waiting"], result["average_wait_minutes"]), (0, 0))


class ImmediateAvailabilityTest(WalkInTestCase):
    def test_free_specialists_first(self):
        free = SpecialistFactory(shop=self.shop)
        SpecialistServiceFactory(specialist=free, service=self.service)
        create_weekly_hours(free)
        self.serving(self.specialist, local(9, 50))
        self.set_now(local(10, 5))

        result = AppointmentService.check_immediate_availability(self.shop.id, self.service.id)

        self.assertEqual(result["service"]["id"], str(self.service.id))
        self.assertEqual(result["service"]["duration"], 30)
        self.assertEqual(result["timestamp"], local(10, 5).isoformat())
        self.assertEqual(
            result["specialists"],
            [
                {
                    "id": str(free.id),
                    "name": free.full_name,
                    "available_now": True,
                    "busy": False,
                    "on_shift": True,
                    "appointments_today": 0,
                    "next_available": "10:05",
                },
                {
                    "id": str(self.specialist.id),
                    "name": self.specialist.full_name,
                    "available_now": False,
                    "busy": True,
                    "on_shift": True,
                    "appointments_today": 1,
                    "next_available": "10:20",
                },
            ],
        )

    def test_restrict_to_one_specialist(self):
        other = SpecialistFactory(shop=self.shop)
        SpecialistServiceFactory(specialist=other, service=self.service)
        self.set_now(local(10, 5))

        result = AppointmentService.check_immediate_availability(
            self.shop.id, self.service.id, specialist_id=self.specialist.id
        )

        self.assertEqual([row["id"] for row in result["specialists"]], [str(self.specialist.id)])

    def test_next_available_when_idle(self):
        self.assertEqual(WalkInService.next_available(self.specialist, local(12, 0)), time(12, 0))
        self.assertEqual(WalkInService.next_available(self.specialist, local(8, 0)), time(9, 0))
        self.assertIsNone(WalkInService.next_available(self.specialist, local(19, 0)))

    def test_off_shift_specialist_is_not_available_now(self):
        self.set_now(local(8, 0))

        row = AppointmentService.check_immediate_availability(self.shop.id, self.service.id)[
            "specialists"
        ][0]

        self.assertFalse(row["on_shift"])
        self.assertFalse(row["available_now"])
        self.assertEqual(row["next_available"], "09:00")

    def test_inactive_service_is_not_found(self):
        service = ServiceFactory(shop=self.shop, status=ServiceStatus.INACTIVE)
        self.set_now(local(10, 5))

        with self.assertRaises(ResourceNotFoundException) as ctx:
            AppointmentService.check_immediate_availability(self.shop.id, service.id)
        self.assertEqual(ctx.exception.errors[0]["code"], "NOT_FOUND")

    def test_service_is_required(self):
        with self.assertRaises(InvalidDataException):
            AppointmentService.check_immediate_availability(self.shop.id, None)
