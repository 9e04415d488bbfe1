"""
Booking API Documentation Helpers

Shared drf-yasg (Swagger) parameters and decorators for the booking views.
"""

from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema

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

# Shared reusable parameters

shop_header_param = openapi.Parameter(
    "X-Shop-ID",
    in_=openapi.IN_HEADER,
    description="Shop (tenant) the request operates on",
    type=openapi.TYPE_STRING,
    format=openapi.FORMAT_UUID,
    required=True,
)

list_params = [
    shop_header_param,
    openapi.Parameter("status", openapi.IN_QUERY, description="Status, or comma separated statuses", type=openapi.TYPE_STRING),
    openapi.Parameter("date_from", openapi.IN_QUERY, description="From date (YYYY-MM-DD)", type=openapi.TYPE_STRING),
    openapi.Parameter("date_to", openapi.IN_QUERY, description="To date (YYYY-MM-DD)", type=openapi.TYPE_STRING),
    openapi.Parameter("customer", openapi.IN_QUERY, description="Customer ID", type=openapi.TYPE_STRING),
    openapi.Parameter("specialist", openapi.IN_QUERY, description="Specialist ID", type=openapi.TYPE_STRING),
    openapi.Parameter("service", openapi.IN_QUERY, description="Service ID", type=openapi.TYPE_STRING),
    openapi.Parameter("series", openapi.IN_QUERY, description="Series ID", type=openapi.TYPE_STRING),
    openapi.Parameter("branch", openapi.IN_QUERY, description="Branch ID", type=openapi.TYPE_STRING),
    openapi.Parameter("search", openapi.IN_QUERY, description="Customer name or phone", type=openapi.TYPE_STRING),
    openapi.Parameter("ordering", openapi.IN_QUERY, description="e.g. -date,start_time", type=openapi.TYPE_STRING),
    openapi.Parameter("limit", openapi.IN_QUERY, description="Results per page (max 100)", type=openapi.TYPE_INTEGER),
    openapi.Parameter("offset", openapi.IN_QUERY, description="Results to skip", type=openapi.TYPE_INTEGER),
]

CONFLICT_RESPONSE = "Conflict - Slot not available, invalid transition or no availability"

# Swagger decorators for views

list_appointments_docs = swagger_auto_schema(
    operation_summary="List appointments",
    operation_description="Returns a limit/offset page of the shop's appointments.",
    manual_parameters=list_params,
    tags=["Bookings"],
)

retrieve_appointment_docs = swagger_auto_schema(
    operation_summary="Get an appointment",
    manual_parameters=[shop_header_param],
    responses={200: AppointmentSerializer(), 404: "Not Found"},
    tags=["Bookings"],
)

create_appointment_docs = swagger_auto_schema(
    operation_summary="Create an appointment",
    operation_description=(
        "Books an appointment. Without specialist_id a specialist is assigned "
        "automatically (round-robin when enabled for the shop)."
    ),
    manual_parameters=[shop_header_param],
    request_body=AppointmentCreateSerializer,
    responses={201: AppointmentSerializer(), 400: "Bad Request", 404: "Not Found", 409: CONFLICT_RESPONSE},
    tags=["Bookings"],
)

update_appointment_docs = swagger_auto_schema(
    operation_summary="Update an appointment",
    manual_parameters=[shop_header_param],
    request_body=AppointmentUpdateSerializer,
    responses={200: AppointmentSerializer(), 400: "Bad Request", 404: "Not Found", 409: CONFLICT_RESPONSE},
    tags=["Bookings"],
)


def transition_docs(summary, request_body=None):
    return swagger_auto_schema(
        operation_summary=summary,
        manual_parameters=[shop_header_param],
        request_body=request_body,
        responses={200: AppointmentSerializer(), 404: "Not Found", 409: CONFLICT_RESPONSE},
        tags=["Bookings", "Transitions"],
    )


cancel_docs = transition_docs("Cancel an appointment", ReasonSerializer)
confirm_docs = transition_docs("Confirm attendance")
check_in_docs = transition_docs("Check in the customer", CheckInSerializer)
start_docs = transition_docs("Start the service")
complete_docs = transition_docs("Complete the service", CompleteServiceSerializer)
no_show_docs = transition_docs("Mark as no-show", ReasonSerializer)
reschedule_docs = transition_docs("Reschedule an appointment", RescheduleSerializer)

walk_in_docs = swagger_auto_schema(
    operation_summary="Register a walk-in",
    operation_description=(
        "Starts the service now when the specialist is free and on shift, or "
        "queues it after the specialist's current appointment."
    ),
    manual_parameters=[shop_header_param],
    request_body=WalkInSerializer,
    responses={201: AppointmentSerializer(), 400: "Bad Request", 409: CONFLICT_RESPONSE},
    tags=["Bookings", "Walk-ins"],
)

specialist_filter_param = openapi.Parameter(
    "specialist", openapi.IN_QUERY, description="Specialist ID", type=openapi.TYPE_STRING
)

walk_in_queue_docs = swagger_auto_schema(
    operation_summary="Walk-in queue",
    operation_description=(
        "Customers who arrived today and have not finished, per specialist in "
        "arrival order, with minutes waited so far."
    ),
    manual_parameters=[shop_header_param, specialist_filter_param],
    responses={200: "Queue", 404: "Specialist not found"},
    tags=["Bookings", "Walk-ins"],
)

immediate_availability_docs = swagger_auto_schema(
    operation_summary="Who can take a walk-in now",
    operation_description=(
        "Specialists offering the service, free ones first, with whether they "
        "are on shift and when they are next available today."
    ),
    manual_parameters=[
        shop_header_param,
        openapi.Parameter(
            "service", openapi.IN_QUERY, description="Service ID", type=openapi.TYPE_STRING, required=True
        ),
        specialist_filter_param,
    ],
    responses={200: "Availability", 400: "Bad Request", 404: "Service not found"},
    tags=["Bookings", "Walk-ins"],
)

today_dashboard_docs = swagger_auto_schema(
    operation_summary="Today's dashboard",
    operation_description="Today's appointments in start time order with status counters and revenue.",
    manual_parameters=[shop_header_param, specialist_filter_param],
    responses={200: "Dashboard"},
    tags=["Bookings", "Dashboard"],
)

realtime_metrics_docs = swagger_auto_schema(
    operation_summary="Real-time metrics",
    operation_description=(
        "Today's and this week's counters and revenue, recent no-show rate, "
        "average wait, bookings per origin and the busiest specialists today."
    ),
    manual_parameters=[shop_header_param],
    responses={200: "Metrics"},
    tags=["Bookings", "Dashboard"],
)

create_series_docs = swagger_auto_schema(
    operation_summary="Create a recurring series",
    manual_parameters=[shop_header_param],
    request_body=SeriesCreateSerializer,
    responses={201: "Created - Series with booked and skipped dates", 409: "Conflict - No date available"},
    tags=["Bookings", "Series"],
)

preview_series_docs = swagger_auto_schema(
    operation_summary="Preview a recurring series",
    operation_description="Reports available and unavailable dates without booking anything.",
    manual_parameters=[shop_header_param],
    request_body=SeriesCreateSerializer,
    responses={200: "Success - Available and unavailable dates"},
    tags=["Bookings", "Series"],
)

series_detail_docs = swagger_auto_schema(
    operation_summary="Get the appointments of a series",
    manual_parameters=[shop_header_param],
    responses={200: AppointmentSerializer(many=True), 404: "Not Found"},
    tags=["Bookings", "Series"],
)

cancel_series_docs = swagger_auto_schema(
    operation_summary="Cancel a recurring series",
    manual_parameters=[shop_header_param],
    request_body=SeriesCancelSerializer,
    responses={200: "Success - Canceled count and details", 404: "Not Found"},
    tags=["Bookings", "Series"],
)
