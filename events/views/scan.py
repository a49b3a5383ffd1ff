from io import BytesIO

import qrcode
from django.http import HttpResponse
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework.authentication import SessionAuthentication, BasicAuthentication
from rest_framework.throttling import ScopedRateThrottle
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework import status

from core.permissions import user_can_manage_event
from events.checkin import check_in, find_participant
from events.models import Participant
from .generics import api_error, client_ip


class CheckInView(APIView):
    """
    POST /api/events/participants/<identifier>/check-in/
    Body: { "event_id": <optional expected event> }

    The identifier may be the participant id, the registration id or the
    scanned QR token.
    """
    authentication_classes = [JWTAuthentication, SessionAuthentication, BasicAuthentication]
    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "qr-scan"

    def post(self, request, identifier):
        participant = find_participant(identifier)
        if participant is not None and not user_can_manage_event(request.user, participant.event):
            return api_error("Not authorized to check in participants for this event.", status.HTTP_403_FORBIDDEN)

        data = request.data if isinstance(request.data, dict) else {}
        result = check_in(
            identifier,
            expected_event_id=data.get("event_id"),
            scanned_by=request.user,
            ip_address=client_ip(request),
        )
        return Response(result, status=status.HTTP_200_OK)


class TicketQRImageView(APIView):
    """
    GET /api/public/ticket/<registration_id>/qr/

    PNG of the participant's QR token, shown on the public ticket page.
    """
    authentication_classes = []
    permission_classes = []
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "qr-image"

    def get(self, request, registration_id):
        participant = Participant.objects.filter(registration_id=registration_id).first()
        if participant is None:
            return Response({"error": "Ticket not found"}, status=404)

        qr_img = qrcode.make(participant.qr_code)
        buffer = BytesIO()
        qr_img.save(buffer, format="PNG")
        buffer.seek(0)

        response = HttpResponse(buffer.getvalue(), content_type="image/png")
        response["Cache-Control"] = "no-store"
        return response
