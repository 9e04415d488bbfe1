# apps/bookingapp/tests/test_dashboard.py
from datetime import date, datetime, time
from decimal import Decimal
from unittest.mock import patch

import pytz
from django.test import TestCase

from apps.bookingapp.services.appointment_service import AppointmentService
from apps.bookingapp.services.dashboard_service import DashboardService
from apps.bookingapp.tests.factories import AppointmentFactory
from apps.bookingapp.utils.time_calculator import add_minutes
from apps.shopapp.tests.factories import ShopFactory
from apps.specialistsapp.tests.factories import SpecialistFactory

MEXICO_CITY = pytz.timezone("America/Mexico_City")
# A Wednesday; its week starts on Sunday 2026-01-04
TODAY = date(2026, 1, 7)
NOW = MEXICO_CITY.localize(datetime(2026, 1, 7, 12, 0))


class DashboardTestCase(TestCase):
    def setUp(self):
        """Set up test data"""
        self.shop = ShopFactory()
        self.specialist = SpecialistFactory(shop=self.shop)
        self.other = SpecialistFactory(shop=self.shop)

        patcher = patch(
            "apps.shopapp.services.shop_service.ShopService.get_local_now", return_value=NOW
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    def booking(self, start, status, day=TODAY, specialist=None, **kwargs):
        return AppointmentFactory(
            shop=self.shop,
            specialist=specialist or self.specialist,
            date=day,
            start_time=start,
            end_time=add_minutes(start, 30, time(23, 59)),
            status=status,
            **kwargs,
        )


class TodayDashboardTest(DashboardTestCase):
    def setUp(self):
        super().setUp()
        self.paid = self.booking(time(9, 0), "completed", is_paid=True, total_price=Decimal("150.00"))
        self.unpaid = self.booking(time(9, 30), "completed", total_price=Decimal("80.00"))
        self.canceled = self.booking(time(10, 0), "canceled")
        self.walk_in = self.booking(time(10, 30), "in_progress", origin="walk_in")
        self.pending = self.booking(time(11, 0), "pending", specialist=self.other)
        self.booking(time(9, 0), "completed", day=date(2026, 1, 6), is_paid=True)

    def test_counters_and_revenue(self):
        dashboard = DashboardService.today_dashboard(self.shop.id, NOW)

        self.assertEqual(dashboard["date"], "2026-01-07")
        self.assertIsNone(dashboard["specialist_id"])
        self.assertEqual(
            dashboard["metrics"],
            {
                "total": 5,
                "pending": 1,
                "confirmed": 0,
                "in_progress": 1,
                "completed": 2,
                "canceled": 1,
                "no_shows": 0,
                "walk_ins": 1,
                # Unpaid completions are not revenue
                "revenue": "150.00",
            },
        )
        self.assertEqual(
            list(dashboard["appointments"]),
            [self.paid, self.unpaid, self.canceled, self.walk_in, self.pending],
        )

    def test_one_specialist(self):
        dashboard = AppointmentService.get_today_dashboard(self.shop.id, specialist_id=self.other.id)

        self.assertEqual(dashboard["specialist_id"], str(self.other.id))
        self.assertEqual(list(dashboard["appointments"]), [self.pending])
        self.assertEqual(dashboard["metrics"]["total"], 1)
        self.assertEqual(dashboard["metrics"]["revenue"], "0.00")


class RealtimeMetricsTest(DashboardTestCase):
    def test_metrics(self):
        self.booking(time(9, 0), "completed", is_paid=True, origin="phone")
        self.booking(
            time(10, 0),
            "in_progress",
            origin="walk_in",
            arrival_time=MEXICO_CITY.localize(datetime(2026, 1, 7, 10, 0)),
            actual_start_time=MEXICO_CITY.localize(datetime(2026, 1, 7, 10, 15)),
        )
        # Earlier this week
        self.booking(
            time(9, 0), "completed", day=date(2026, 1, 5), is_paid=True,
            total_price=Decimal("50.00"), origin="phone",
        )
        self.booking(time(11, 0), "no_show", day=date(2026, 1, 5), origin="app")
        # Last week
        self.booking(
            time(9, 0), "completed", day=date(2026, 1, 3), is_paid=True,
            total_price=Decimal("70.00"), origin="phone",
        )

        result = AppointmentService.get_realtime_metrics(self.shop.id)

        self.assertEqual(
            result["metrics"],
            {
                "appointments_today": 2,
                "completed_today": 1,
                "in_progress_today": 1,
                "walk_ins_today": 1,
                "appointments_week": 4,
                "revenue_today": "100.00",
                "revenue_week": "150.00",
                "no_show_rate_pct": 25.0,
                "average_wait_minutes": 15.0,
            },
        )
        self.assertEqual(
            result["channels"],
            [
                {"origin": "phone", "total": 3, "percentage": 60.0},
                {"origin": "app", "total": 1, "percentage": 20.0},
                {"origin": "walk_in", "total": 1, "percentage": 20.0},
            ],
        )
        self.assertEqual(
            result["specialists_today"],
            [
                {
                    "specialist_id": str(self.specialist.id),
                    "name": self.specialist.full_name,
                    "appointments": 2,
                    "completed": 1,
                    "revenue": "100.00",
                }
            ],
        )
        self.assertEqual(result["timestamp"], NOW.isoformat())

    def test_no_history(self):
        metrics = DashboardService.realtime_metrics(self.shop.id, NOW)["metrics"]

        self.assertEqual(metrics["appointments_today"], 0)
        self.assertEqual(metrics["revenue_week"], "0.00")
        self.assertIsNone(metrics["no_show_rate_pct"])
        self.assertIsNone(metrics["average_wait_minutes"])
