"""
Booking app views
Thin HTTP layer over AppointmentService. The shop (tenant) comes from the
X-Shop-ID header; errors are rendered by the project exception handler.
"""

from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.bookingapp import api_docs
from apps.bookingapp.models import Appointment
from apps.bookingapp.serializers import (
    AppointmentCreateSerializer,
    AppointmentSerializer,
    AppointmentUpdateSerializer,
    CheckInSerializer,
    CompleteServiceSerializer,
    ReasonSerializer,
    RescheduleSerializer,
    SeriesCancelSerializer,
    SeriesCreateSerializer,
    WalkInSerializer,
)
from apps.bookingapp.services.appointment_service import AppointmentService
from core.exceptions import InvalidDataException

SHOP_HEADER = "X-Shop-ID"


class AppointmentViewSet(viewsets.GenericViewSet):
    """
    API endpoint for managing appointments.

    Provides list, retrieve, create and partial update, plus actions for:
    - State transitions (cancel, confirm, check in, start, complete, no-show)
    - Rescheduling
    - Walk-ins, the walk-in queue and immediate availability
    - Today's dashboard and real-time metrics
    - Recurring series (create, preview, detail, cancel)
    """

    queryset = Appointment.objects.all()
    serializer_class = AppointmentSerializer
    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = "[0-9a-f-]+"

    def get_shop_id(self):
        shop_id = self.request.headers.get(SHOP_HEADER)
        if not shop_id:
            raise InvalidDataException(f"The {SHOP_HEADER} header is required")
        return shop_id

    def get_user(self):
        user = self.request.user
        return user if user and user.is_authenticated else None

    def validated(self, serializer_class):
        serializer = serializer_class(data=self.request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    def appointment_response(self, appointment, response_status=status.HTTP_200_OK):
        return Response(self.get_serializer(appointment).data, status=response_status)

    @api_docs.list_appointments_docs
    def list(self, request):
        page = AppointmentService.list_appointments(
            self.get_shop_id(), request.query_params.dict()
        )
        return Response(
            {
                "count": page["count"],
                "limit": page["limit"],
                "offset": page["offset"],
                "results": self.get_serializer(page["results"], many=True).data,
            }
        )

    @api_docs.retrieve_appointment_docs
    def retrieve(self, request, pk=None):
        return self.appointment_response(
            AppointmentService.get_appointment(pk, self.get_shop_id())
        )

    @api_docs.create_appointment_docs
    def create(self, request):
        appointment = AppointmentService.create_appointment(
            self.validated(AppointmentCreateSerializer), self.get_shop_id(), self.get_user()
        )
        return self.appointment_response(appointment, status.HTTP_201_CREATED)

    @api_docs.update_appointment_docs
    def partial_update(self, request, pk=None):
        serializer = AppointmentUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        appointment = AppointmentService.update_appointment(
            pk, serializer.validated_data, self.get_shop_id(), self.get_user()
        )
        return self.appointment_response(appointment)

    # State transitions

    @api_docs.cancel_docs
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        data = self.validated(ReasonSerializer)
        return self.appointment_response(
            AppointmentService.cancel_appointment(
                pk, self.get_shop_id(), reason=data.get("reason"), user=self.get_user()
            )
        )

    @api_docs.confirm_docs
    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):
        return self.appointment_response(
            AppointmentService.confirm_attendance(pk, self.get_shop_id(), user=self.get_user())
        )

    @api_docs.check_in_docs
    @action(detail=True, methods=["post"], url_path="check-in")
    def check_in(self, request, pk=None):
        data = self.validated(CheckInSerializer)
        return self.appointment_response(
            AppointmentService.check_in(
                pk, self.get_shop_id(), notes=data.get("notes"), user=self.get_user()
            )
        )

    @api_docs.start_docs
    @action(detail=True, methods=["post"])
    def start(self, request, pk=None):
        return self.appointment_response(
            AppointmentService.start_service(pk, self.get_shop_id(), user=self.get_user())
        )

    @api_docs.complete_docs
    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):
        data = self.validated(CompleteServiceSerializer)
        return self.appointment_response(
            AppointmentService.complete_service(
                pk,
                self.get_shop_id(),
                total_price=data.get("total_price"),
                payment_method=data.get("payment_method"),
                notes=data.get("notes"),
                user=self.get_user(),
            )
        )

    @api_docs.no_show_docs
    @action(detail=True, methods=["post"], url_path="no-show")
    def no_show(self, request, pk=None):
        data = self.validated(ReasonSerializer)
        return self.appointment_response(
            AppointmentService.mark_no_show(
                pk, self.get_shop_id(), reason=data.get("reason"), user=self.get_user()
            )
        )

    @api_docs.reschedule_docs
    @action(detail=True, methods=["post"])
    def reschedule(self, request, pk=None):
        return self.appointment_response(
            AppointmentService.reschedule(
                pk, self.get_shop_id(), self.validated(RescheduleSerializer), user=self.get_user()
            )
        )

    # Walk-ins

    @api_docs.walk_in_docs
    @action(detail=False, methods=["post"], url_path="walk-in")
    def walk_in(self, request):
        appointment = AppointmentService.create_walk_in(
            self.validated(WalkInSerializer), self.get_shop_id(), user=self.get_user()
        )
        return self.appointment_response(appointment, status.HTTP_201_CREATED)

    @api_docs.walk_in_queue_docs
    @action(detail=False, methods=["get"], url_path="walk-in/queue")
    def walk_in_queue(self, request):
        return Response(
            AppointmentService.get_walk_in_queue(
                self.get_shop_id(), specialist_id=request.query_params.get("specialist")
            )
        )

    @api_docs.immediate_availability_docs
    @action(detail=False, methods=["get"], url_path="walk-in/availability")
    def immediate_availability(self, request):
        return Response(
            AppointmentService.check_immediate_availability(
                self.get_shop_id(),
                request.query_params.get("service"),
                specialist_id=request.query_params.get("specialist"),
            )
        )

    # Front desk

    @api_docs.today_dashboard_docs
    @action(detail=False, methods=["get"], url_path="dashboard/today")
    def today_dashboard(self, request):
        dashboard = AppointmentService.get_today_dashboard(
            self.get_shop_id(), specialist_id=request.query_params.get("specialist")
        )
        dashboard["appointments"] = self.get_serializer(
            dashboard["appointments"], many=True
        ).data
        return Response(dashboard)

    @api_docs.realtime_metrics_docs
    @action(detail=False, methods=["get"])
    def metrics(self, request):
        return Response(AppointmentService.get_realtime_metrics(self.get_shop_id()))

    # Recurring series

    @api_docs.create_series_docs
    @action(detail=False, methods=["post"])
    def series(self, request):
        result = AppointmentService.create_recurring_series(
            self.validated(SeriesCreateSerializer), self.get_shop_id(), user=self.get_user()
        )
        return Response(result.to_dict(), status=status.HTTP_201_CREATED)

    @api_docs.preview_series_docs
    @action(detail=False, methods=["post"], url_path="series/preview")
    def series_preview(self, request):
        return Response(
            AppointmentService.preview_recurring_series(
                self.validated(SeriesCreateSerializer), self.get_shop_id()
            )
        )

    @api_docs.series_detail_docs
    @action(detail=False, methods=["get"], url_path=r"series/(?P<series_id>[0-9a-f]+)")
    def series_detail(self, request, series_id=None):
        appointments = AppointmentService.get_series(series_id, self.get_shop_id())
        return Response(self.get_serializer(appointments, many=True).data)

    @api_docs.cancel_series_docs
    @action(detail=False, methods=["post"], url_path=r"series/(?P<series_id>[0-9a-f]+)/cancel")
    def series_cancel(self, request, series_id=None):
        return Response(
            AppointmentService.cancel_series(
                series_id,
                self.get_shop_id(),
                options=self.validated(SeriesCancelSerializer),
                user=self.get_user(),
            )
        )
