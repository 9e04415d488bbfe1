# apps/bookingapp/serializers.py
from django.utils.translation import gettext_lazy as _
from rest_framework import serializers

from apps.bookingapp.models import Appointment, AppointmentAuditEvent, ServiceAssignment


class ServiceAssignmentSerializer(serializers.ModelSerializer):
    """Serializer for the service lines of an appointment"""

    service_name = serializers.CharField(source="service.name", read_only=True)

    class Meta:
        model = ServiceAssignment
        fields = [
            "id",
            "service",
            "service_name",
            "execution_order",
            "applied_price",
            "applied_duration",
            "discount",
            "notes",
        ]
        read_only_fields = fields


class AppointmentSerializer(serializers.ModelSerializer):
    """Serializer for appointments"""

    customer_name = serializers.CharField(source="customer.name", read_only=True)
    specialist_name = serializers.CharField(source="specialist.full_name", read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    services = ServiceAssignmentSerializer(
        source="service_assignments", many=True, read_only=True
    )

    class Meta:
        model = Appointment
        fields = [
            "id",
            "shop",
            "branch",
            "customer",
            "customer_name",
            "specialist",
            "specialist_name",
            "date",
            "start_time",
            "end_time",
            "status",
            "status_display",
            "total_price",
            "duration",
            "services",
            "notes",
            "origin",
            "series_id",
            "series_sequence",
            "series_total",
            "recurrence_pattern",
            "confirmed_by_customer_at",
            "arrival_time",
            "actual_start_time",
            "actual_end_time",
            "is_paid",
            "payment_method",
            "cancellation_reason",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AppointmentAuditEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = AppointmentAuditEvent
        fields = ["id", "event_type", "description", "user", "metadata", "created_at"]
        read_only_fields = fields


class ServiceLineSerializer(serializers.Serializer):
    """Per-service overrides, matched to ``service_ids`` by position"""

    price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    duration = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    discount = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=0,
        max_value=100,
        required=False,
        allow_null=True,
    )
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ServiceSelectionSerializer(serializers.Serializer):
    service_ids = serializers.ListField(
        child=serializers.UUIDField(), required=False, allow_empty=False
    )
    service_id = serializers.UUIDField(required=False, help_text=_("Single service (legacy)"))
    services_data = ServiceLineSerializer(many=True, required=False)

    def validate(self, data):
        if not data.get("service_ids") and not data.get("service_id"):
            raise serializers.ValidationError(
                {"service_ids": _("At least one service is required")}
            )
        services_data = data.get("services_data")
        if services_data and len(services_data) > len(data.get("service_ids") or [1]):
            raise serializers.ValidationError(
                {"services_data": _("More service overrides than services")}
            )
        return data


class AppointmentCreateSerializer(ServiceSelectionSerializer):
    customer_id = serializers.UUIDField()
    specialist_id = serializers.UUIDField(required=False, allow_null=True)
    branch_id = serializers.UUIDField(required=False, allow_null=True)
    date = serializers.DateField()
    start_time = serializers.TimeField()
    end_time = serializers.TimeField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    status = serializers.ChoiceField(
        choices=[("pending", _("Pending")), ("confirmed", _("Confirmed"))], required=False
    )
    origin = serializers.ChoiceField(choices=Appointment.ORIGIN_CHOICES, required=False)


class AppointmentUpdateSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField(required=False)
    specialist_id = serializers.UUIDField(required=False)
    branch_id = serializers.UUIDField(required=False, allow_null=True)
    date = serializers.DateField(required=False)
    start_time = serializers.TimeField(required=False)
    end_time = serializers.TimeField(required=False)
    status = serializers.ChoiceField(choices=Appointment.STATUS_CHOICES, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    service_ids = serializers.ListField(
        child=serializers.UUIDField(), required=False, allow_empty=False
    )
    services_data = ServiceLineSerializer(many=True, required=False)
    total_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False
    )
    payment_method = serializers.CharField(required=False, allow_blank=True, max_length=30)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)


class CheckInSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class CompleteServiceSerializer(serializers.Serializer):
    total_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False
    )
    payment_method = serializers.CharField(required=False, allow_blank=True, max_length=30)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class RescheduleSerializer(serializers.Serializer):
    date = serializers.DateField()
    start_time = serializers.TimeField()
    end_time = serializers.TimeField(required=False)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)


class WalkInSerializer(ServiceSelectionSerializer):
    customer_id = serializers.UUIDField(required=False)
    customer_name = serializers.CharField(required=False, max_length=100)
    phone_number = serializers.CharField(required=False, allow_blank=True, max_length=20)
    specialist_id = serializers.UUIDField(required=False, allow_null=True)
    branch_id = serializers.UUIDField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    accepted_wait_minutes = serializers.IntegerField(required=False, min_value=0)

    def validate(self, data):
        data = super().validate(data)
        if not data.get("customer_id") and not data.get("customer_name"):
            raise serializers.ValidationError(
                {"customer_name": _("Provide an existing customer or a customer name")}
            )
        return data


class SeriesCreateSerializer(ServiceSelectionSerializer):
    customer_id = serializers.UUIDField(required=False)
    specialist_id = serializers.UUIDField()
    branch_id = serializers.UUIDField(required=False, allow_null=True)
    date = serializers.DateField(help_text=_("First date of the series"))
    start_time = serializers.TimeField()
    end_time = serializers.TimeField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=1000)
    origin = serializers.ChoiceField(choices=Appointment.ORIGIN_CHOICES, required=False)
    # Checked field by field by the recurrence service
    recurrence_pattern = serializers.JSONField()


class SeriesCancelSerializer(serializers.Serializer):
    only_future = serializers.BooleanField(required=False, default=True)
    include_confirmed = serializers.BooleanField(required=False, default=True)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)
