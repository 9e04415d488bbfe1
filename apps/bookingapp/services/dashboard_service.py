"""
Dashboard Service

Read-only summaries of a shop's day for the front desk: today's agenda with
its counters, and rolling operational metrics.
"""

import logging
from datetime import timedelta
from decimal import Decimal

from django.db.models import Count, Q, Sum

from apps.bookingapp.models import Appointment
from apps.bookingapp.utils.date_utils import get_week_start

logger = logging.getLogger(__name__)

# Only completed and paid appointments count as revenue
REVENUE_FILTER = Q(status="completed", is_paid=True)

NO_SHOW_WINDOW_DAYS = 30
CHANNEL_WINDOW_DAYS = 30
WAIT_TIME_WINDOW_DAYS = 7
TOP_SPECIALISTS = 10


def _money(value):
    return str((value or Decimal("0")).quantize(Decimal("0.01")))


class DashboardService:
    @staticmethod
    def today_dashboard(shop_id, local_now, specialist_id=None):
        """
        Get today's agenda and counters.

        Args:
            shop_id: Shop to summarize
            local_now: Current datetime in the shop's time zone
            specialist_id: Restrict to one specialist

        Returns:
            Dict with ``date``, ``specialist_id``, ``appointments`` (queryset
            in start time order) and ``metrics``
        """
        today = local_now.date()
        appointments = Appointment.objects.filter(shop_id=shop_id, date=today)
        if specialist_id:
            appointments = appointments.filter(specialist_id=specialist_id)

        metrics = appointments.aggregate(
            total=Count("id"),
            pending=Count("id", filter=Q(status="pending")),
            confirmed=Count("id", filter=Q(status="confirmed")),
            in_progress=Count("id", filter=Q(status="in_progress")),
            completed=Count("id", filter=Q(status="completed")),
            canceled=Count("id", filter=Q(status="canceled")),
            no_shows=Count("id", filter=Q(status="no_show")),
            walk_ins=Count("id", filter=Q(origin="walk_in")),
            revenue=Sum("total_price", filter=REVENUE_FILTER),
        )
        metrics["revenue"] = _money(metrics["revenue"])

        return {
            "date": today.isoformat(),
            "specialist_id": str(specialist_id) if specialist_id else None,
            "appointments": appointments.select_related("customer", "specialist")
            .prefetch_related("service_assignments__service")
            .order_by("start_time", "id"),
            "metrics": metrics,
        }

    @staticmethod
    def realtime_metrics(shop_id, local_now):
        """
        Get the shop's operational metrics as of now.

        Today's counters, the week so far (weeks start on Sunday), the no-show
        rate over the last 30 days, the average wait between arrival and start
        over the last 7 days, bookings per origin over the last 30 days and
        the busiest specialists today.
        """
        today = local_now.date()
        week_start = get_week_start(today)
        appointments = Appointment.objects.filter(shop_id=shop_id)

        summary = appointments.aggregate(
            appointments_today=Count("id", filter=Q(date=today)),
            completed_today=Count("id", filter=Q(date=today, status="completed")),
            in_progress_today=Count("id", filter=Q(date=today, status="in_progress")),
            walk_ins_today=Count("id", filter=Q(date=today, origin="walk_in")),
            appointments_week=Count("id", filter=Q(date__gte=week_start, date__lte=today)),
            revenue_today=Sum("total_price", filter=REVENUE_FILTER & Q(date=today)),
            revenue_week=Sum(
                "total_price", filter=REVENUE_FILTER & Q(date__gte=week_start, date__lte=today)
            ),
            no_shows_recent=Count(
                "id",
                filter=Q(
                    date__gte=today - timedelta(days=NO_SHOW_WINDOW_DAYS), status="no_show"
                ),
            ),
            attended_or_missed_recent=Count(
                "id",
                filter=Q(
                    date__gte=today - timedelta(days=NO_SHOW_WINDOW_DAYS),
                    status__in=("completed", "no_show"),
                ),
            ),
        )

        missed = summary.pop("no_shows_recent")
        decided = summary.pop("attended_or_missed_recent")
        summary["no_show_rate_pct"] = round(missed * 100 / decided, 2) if decided else None
        summary["revenue_today"] = _money(summary["revenue_today"])
        summary["revenue_week"] = _money(summary["revenue_week"])

        waits = [
            (started - arrived).total_seconds() / 60
            for arrived, started in appointments.filter(
                date__gte=today - timedelta(days=WAIT_TIME_WINDOW_DAYS),
                arrival_time__isnull=False,
                actual_start_time__isnull=False,
            ).values_list("arrival_time", "actual_start_time")
            if started >= arrived
        ]
        summary["average_wait_minutes"] = round(sum(waits) / len(waits), 1) if waits else None

        channel_rows = list(
            appointments.filter(date__gte=today - timedelta(days=CHANNEL_WINDOW_DAYS))
            .values("origin")
            .annotate(total=Count("id"))
            .order_by("-total", "origin")
        )
        channel_total = sum(row["total"] for row in channel_rows)
        channels = [
            {
                "origin": row["origin"],
                "total": row["total"],
                "percentage": round(row["total"] * 100 / channel_total, 2),
            }
            for row in channel_rows
        ]

        specialists = [
            {
                "specialist_id": str(row["specialist_id"]),
                "name": f"{row['specialist__first_name']} {row['specialist__last_name']}".strip(),
                "appointments": row["appointments"],
                "completed": row["completed"],
                "revenue": _money(row["revenue"]),
            }
            for row in appointments.filter(date=today)
            .values("specialist_id", "specialist__first_name", "specialist__last_name")
            .annotate(
                appointments=Count("id"),
                completed=Count("id", filter=Q(status="completed")),
                revenue=Sum("total_price", filter=REVENUE_FILTER),
            )
            .order_by("-appointments", "specialist_id")[:TOP_SPECIALISTS]
        ]

        logger.debug(f"Metrics for shop {shop_id}: {summary}")
        return {
            "metrics": summary,
            "channels": channels,
            "specialists_today": specialists,
            "timestamp": local_now.isoformat(),
        }
