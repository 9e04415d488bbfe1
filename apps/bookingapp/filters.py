# apps/bookingapp/filters.py
from django.db.models import Q
from django_filters import rest_framework as filters

from apps.bookingapp.models import Appointment


class AppointmentFilter(filters.FilterSet):
    """Filter for appointment listings"""

    # Status filtering, a single status or a comma separated list
    status = filters.CharFilter(method="filter_status")

    # Date filtering
    date_from = filters.DateFilter(field_name="date", lookup_expr="gte")
    date_to = filters.DateFilter(field_name="date", lookup_expr="lte")

    customer = filters.UUIDFilter(field_name="customer_id")
    specialist = filters.UUIDFilter(field_name="specialist_id")
    branch = filters.UUIDFilter(field_name="branch_id")
    service = filters.UUIDFilter(method="filter_service")
    series = filters.CharFilter(field_name="series_id")
    origin = filters.ChoiceFilter(field_name="origin", choices=Appointment.ORIGIN_CHOICES)

    # Free text over the customer's name and phone
    search = filters.CharFilter(method="filter_search")

    class Meta:
        model = Appointment
        fields = [
            "status",
            "date_from",
            "date_to",
            "customer",
            "specialist",
            "branch",
            "service",
            "series",
            "origin",
            "search",
        ]

    def filter_status(self, queryset, name, value):
        statuses = [status.strip() for status in value.split(",") if status.strip()]
        if statuses:
            return queryset.filter(status__in=statuses)
        return queryset

    def filter_service(self, queryset, name, value):
        return queryset.filter(service_assignments__service_id=value).distinct()

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(customer__name__icontains=value) | Q(customer__phone_number__icontains=value)
        )
