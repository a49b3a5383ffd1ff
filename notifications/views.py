import logging

import requests
from django.db.models import Q
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework.authentication import SessionAuthentication, BasicAuthentication
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework import status

from core.models import Organization
from core.permissions import user_can_manage_event, user_can_manage_organization
from events.models import Participant
from events.views.generics import api_error

from .dispatcher import dispatch
from .messages import payment_pending_message_for, registration_message_for
from .resolver import resolve_whatsapp_config
from .waha import WahaClient

logger = logging.getLogger("etiket.notifications")


class ResendNotificationView(APIView):
    """
    POST /api/notifications/participants/<participant_id>/resend/

    Sends synchronously: the e-ticket message when paid, the payment
    instructions otherwise. Relay failures are returned as 502.
    """
    authentication_classes = [JWTAuthentication, SessionAuthentication, BasicAuthentication]
    permission_classes = [IsAuthenticated]

    def post(self, request, participant_id):
        participant = (
            Participant.objects
            .select_related("event", "ticket_type")
            .filter(Q(pk=participant_id) | Q(registration_id=participant_id))
            .first()
        )
        if participant is None:
            return api_error("Participant not found", status.HTTP_404_NOT_FOUND)

        if not user_can_manage_event(request.user, participant.event):
            return api_error("You do not have permission to manage this participant.", status.HTTP_403_FORBIDDEN)

        if not participant.phone:
            return api_error("Participant has no phone number.", status.HTTP_400_BAD_REQUEST)

        if participant.is_paid:
            template = "registration"
            message = registration_message_for(participant)
        else:
            template = "payment_pending"
            message = payment_pending_message_for(participant)

        result = dispatch(
            participant.event.organization_id,
            participant.phone,
            message,
            participant_id=participant.id,
        )
        if not result["success"]:
            return api_error(result["error"], status.HTTP_502_BAD_GATEWAY)

        return Response({
            "message": "WhatsApp notification sent",
            "participant_id": participant.id,
            "template": template,
            "message_id": result.get("message_id"),
        })


class WhatsAppStatusView(APIView):
    """
    GET /api/notifications/organizations/<organization_id>/whatsapp-status/
    """
    authentication_classes = [JWTAuthentication, SessionAuthentication, BasicAuthentication]
    permission_classes = [IsAuthenticated]

    def get(self, request, organization_id):
        if not Organization.objects.filter(pk=organization_id).exists():
            return api_error("Organization not found", status.HTTP_404_NOT_FOUND)

        if not user_can_manage_organization(request.user, organization_id):
            return api_error("Not authorized", status.HTTP_403_FORBIDDEN)

        resolution = resolve_whatsapp_config(organization_id)
        data = {
            "status": resolution.status,
            "reason": resolution.reason or None,
            "mode": None,
            "session": None,
            "base_url": None,
            "connected": False,
            "working": False,
            "session_status": None,
            "error": None,
        }
        if not resolution.ok:
            return Response(data)

        config = resolution.config
        data.update(mode=config.mode, session=config.session, base_url=config.base_url)

        try:
            response = WahaClient(config).session_status()
        except requests.RequestException as exc:
            logger.warning("WAHA session check failed for organization %s: %s", organization_id, exc)
            data["error"] = str(exc)
            return Response(data)

        if not response.ok:
            data["error"] = f"WAHA API error: {response.status_code}"
            return Response(data)

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        session_status = payload.get("status") if isinstance(payload, dict) else None
        data.update(
            connected=True,
            session_status=session_status,
            working=session_status == "WORKING",
        )
        return Response(data)
