from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from rest_framework import status
from django.db.models import Count

from events import datetime_utils
from events.models import Event, Participant
from events.serializers import PublicEventSerializer
from .generics import api_error


class PublicEventListView(APIView):
    """
    GET /api/public/events/?organization=<slug>
    Open, public events, soonest first.
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    def get(self, request):
        qs = (
            Event.objects
            .filter(status=Event.STATUS_OPEN, visibility=Event.VISIBILITY_PUBLIC)
            .select_related("organization")
            .prefetch_related("ticket_types", "bulk_discounts", "custom_fields")
            .annotate(_annotated_registered_count=Count("participants"))
            .order_by("event_date", "event_time")
        )

        organization = request.query_params.get("organization")
        if organization:
            qs = qs.filter(organization__slug=organization)

        events = [event for event in qs if event.effective_status == Event.STATUS_OPEN]
        return Response(PublicEventSerializer(events, many=True).data)


class PublicEventDetailView(APIView):
    """
    GET /api/public/events/<slug>/
    Private events are reachable by link; drafts are not.
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    def get(self, request, slug):
        event = (
            Event.objects
            .select_related("organization")
            .exclude(status=Event.STATUS_DRAFT)
            .filter(slug=slug)
            .first()
        )
        if event is None:
            return api_error("Event not found", status.HTTP_404_NOT_FOUND)
        return Response(PublicEventSerializer(event).data)


class PublicTicketView(APIView):
    """
    GET /api/public/ticket/<registration_id>/
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    def get(self, request, registration_id):
        participant = (
            Participant.objects
            .select_related("event", "ticket_type")
            .filter(registration_id=registration_id)
            .first()
        )
        if participant is None:
            return api_error("Ticket not found", status.HTTP_404_NOT_FOUND)

        event = participant.event
        is_paid = participant.is_paid
        return Response({
            "registration_id": participant.registration_id,
            "full_name": participant.full_name,
            "payment_status": participant.payment_status,
            "check_in_status": participant.check_in_status,
            "check_in_time": datetime_utils.format_for_api(participant.check_in_time),
            "attendance_type": participant.attendance_type,
            "ticket_name": participant.ticket_type.name if participant.ticket_type else None,
            # Unpaid tickets cannot be scanned, so the token stays hidden.
            "qr_code": participant.qr_code if is_paid else None,
            "event": {
                "id": event.id,
                "title": event.title,
                "slug": event.slug,
                "event_date": event.event_date,
                "event_time": event.event_time,
                "location": event.location,
                "starts_at": datetime_utils.event_start(event).isoformat(),
            },
        })
