# apps/bookingapp/tests/test_recurrence.py
from datetime import date

from django.test import SimpleTestCase

from apps.bookingapp.config import SchedulingConfig
from apps.bookingapp.services.recurrence_service import (
    BIWEEKLY,
    MONTHLY,
    WEEKLY,
    RecurrencePattern,
    RecurrenceService,
)
from core.exceptions import InvalidDataException

# A Wednesday
START = date(2026, 1, 7)


class RecurrenceGenerationTest(SimpleTestCase):
    def setUp(self):
        """Set up test data"""
        self.config = SchedulingConfig()

    def generate(self, data, start=START, max_occurrences=None, config=None):
        config = config or self.config
        pattern = RecurrenceService.parse_pattern(data, start, config, max_occurrences)
        return RecurrenceService.generate(pattern, start, config, max_occurrences)

    def test_weekly_on_one_day(self):
        dates = self.generate({"frequency": WEEKLY, "days_of_week": [3], "occurrences": 4})
        self.assertEqual(
            dates, [date(2026, 1, 7), date(2026, 1, 14), date(2026, 1, 21), date(2026, 1, 28)]
        )

    def test_weekly_on_several_days(self):
        dates = self.generate({"frequency": WEEKLY, "days_of_week": [3, 1], "occurrences": 4})
        self.assertEqual(
            dates, [date(2026, 1, 7), date(2026, 1, 12), date(2026, 1, 14), date(2026, 1, 19)]
        )

    def test_weekly_without_days_repeats_start_weekday(self):
        dates = self.generate({"frequency": WEEKLY, "interval": 2, "occurrences": 3})
        self.assertEqual(dates, [date(2026, 1, 7), date(2026, 1, 21), date(2026, 2, 4)])

    def test_biweekly_is_always_two_weeks(self):
        dates = self.generate(
            {"frequency": BIWEEKLY, "days_of_week": [3], "interval": 3, "occurrences": 3}
        )
        self.assertEqual(dates, [date(2026, 1, 7), date(2026, 1, 21), date(2026, 2, 4)])

    def test_monthly_clamps_to_month_end(self):
        dates = self.generate({"frequency": MONTHLY, "occurrences": 4}, start=date(2026, 1, 31))
        self.assertEqual(
            dates, [date(2026, 1, 31), date(2026, 2, 28), date(2026, 3, 31), date(2026, 4, 30)]
        )

    def test_monthly_interval(self):
        dates = self.generate(
            {"frequency": MONTHLY, "interval": 2, "occurrences": 3}, start=date(2026, 1, 15)
        )
        self.assertEqual(dates, [date(2026, 1, 15), date(2026, 3, 15), date(2026, 5, 15)])

    def test_end_date(self):
        dates = self.generate({"frequency": WEEKLY, "days_of_week": [3], "end_date": "2026-01-25"})
        self.assertEqual(dates, [date(2026, 1, 7), date(2026, 1, 14), date(2026, 1, 21)])

    def test_end_date_wins_over_occurrences(self):
        dates = self.generate(
            {"frequency": WEEKLY, "days_of_week": [3], "occurrences": 10, "end_date": "2026-01-25"}
        )
        self.assertEqual(len(dates), 3)

    def test_generation_stops_at_hard_limit(self):
        config = SchedulingConfig(max_series_days=30)
        dates = self.generate(
            {"frequency": WEEKLY, "days_of_week": [3], "occurrences": 10}, config=config
        )
        self.assertEqual(dates[-1], date(2026, 2, 4))
        self.assertEqual(len(dates), 5)

    def test_open_ended_series_stops_at_global_cap(self):
        dates = self.generate({"frequency": WEEKLY, "end_date": "2030-01-01"})
        self.assertEqual(len(dates), 52)

    def test_shop_cap(self):
        dates = self.generate({"frequency": WEEKLY, "end_date": "2026-12-31"}, max_occurrences=3)
        self.assertEqual(len(dates), 3)

    def test_days_are_ignored_for_monthly(self):
        pattern = RecurrenceService.parse_pattern(
            {"frequency": MONTHLY, "days_of_week": [1], "occurrences": 2}, START, self.config
        )
        self.assertEqual(pattern.days_of_week, [])

    def test_pattern_to_dict(self):
        pattern = RecurrencePattern(
            frequency=WEEKLY, days_of_week=[3], end_date=date(2026, 3, 1), occurrences=None
        )
        self.assertEqual(
            pattern.to_dict(),
            {
                "frequency": "weekly",
                "days_of_week": [3],
                "interval": 1,
                "end_date": "2026-03-01",
                "occurrences": None,
            },
        )


class RecurrencePatternValidationTest(SimpleTestCase):
    def assertRejected(self, data, field=None, max_occurrences=None):
        with self.assertRaises(InvalidDataException) as ctx:
            RecurrenceService.parse_pattern(data, START, SchedulingConfig(), max_occurrences)
        if field:
            self.assertIn(field, str(ctx.exception.message))

    def test_pattern_is_required(self):
        self.assertRejected(None)

    def test_unknown_frequency(self):
        self.assertRejected({"frequency": "daily", "occurrences": 3}, "frequency")

    def test_days_of_week_range(self):
        self.assertRejected(
            {"frequency": WEEKLY, "days_of_week": [7], "occurrences": 3}, "days_of_week"
        )
        self.assertRejected(
            {"frequency": WEEKLY, "days_of_week": ["1"], "occurrences": 3}, "days_of_week"
        )

    def test_interval_range(self):
        self.assertRejected({"frequency": WEEKLY, "interval": 0, "occurrences": 3}, "interval")
        self.assertRejected({"frequency": WEEKLY, "interval": 5, "occurrences": 3}, "interval")

    def test_end_date_must_follow_start(self):
        self.assertRejected({"frequency": WEEKLY, "end_date": "2026-01-07"}, "end_date")
        self.assertRejected({"frequency": WEEKLY, "end_date": "next week"}, "end_date")

    def test_end_date_or_occurrences_required(self):
        self.assertRejected({"frequency": WEEKLY, "days_of_week": [3]}, "end_date")

    def test_occurrences_bounds(self):
        self.assertRejected({"frequency": WEEKLY, "occurrences": 1}, "occurrences")
        self.assertRejected({"frequency": WEEKLY, "occurrences": 53}, "occurrences")
        self.assertRejected({"frequency": WEEKLY, "occurrences": 12}, "occurrences", max_occurrences=10)
