import logging

from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.authentication import SessionAuthentication, BasicAuthentication
from rest_framework.pagination import LimitOffsetPagination
from rest_framework.throttling import ScopedRateThrottle
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework import status
from django.db import transaction
from django.db.models import Q

from core.permissions import user_can_manage_event
from events.models import Participant
from events.registration import normalize_registration_payload, register
from events.serializers import ParticipantSerializer
from .generics import api_error, get_managed_event

logger = logging.getLogger('etiket.events')


class RegisterView(APIView):
    """
    POST /api/events/register/
    POST /api/events/<event_id>/register/

    Body: a participant object, a list of them, or {"participants": [...]}.
    """
    authentication_classes = []
    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "registration"

    def post(self, request, event_id=None):
        event_id, entries, donation_requested = normalize_registration_payload(request.data, event_id)
        result = register(event_id, entries, donation_requested=donation_requested)
        return Response(result, status=status.HTTP_201_CREATED)


class EventParticipantsView(APIView):
    """
    GET /api/events/<event_id>/participants/?status=&payment=&search=&limit=&offset=
    """
    authentication_classes = [JWTAuthentication, SessionAuthentication, BasicAuthentication]
    permission_classes = [IsAuthenticated]

    def get(self, request, event_id):
        event, error = get_managed_event(request.user, event_id)
        if error:
            return error

        qs = (
            Participant.objects
            .filter(event=event)
            .select_related("ticket_type")
            .prefetch_related("field_responses__field")
            .order_by("-created_at")
        )

        check_in = request.query_params.get("status")
        if check_in:
            qs = qs.filter(check_in_status=check_in)

        payment = request.query_params.get("payment")
        if payment:
            qs = qs.filter(payment_status=payment)

        search = request.query_params.get("search")
        if search:
            qs = qs.filter(
                Q(full_name__icontains=search)
                | Q(email__icontains=search)
                | Q(registration_id__icontains=search)
            )

        paginator = LimitOffsetPagination()
        paginator.default_limit = 20
        result_page = paginator.paginate_queryset(qs, request)
        serializer = ParticipantSerializer(result_page, many=True)
        return paginator.get_paginated_response(serializer.data)


class ApprovePaymentView(APIView):
    """
    POST /api/events/participants/<participant_id>/approve-payment/

    Manual transfer confirmation by organization staff.
    """
    authentication_classes = [JWTAuthentication, SessionAuthentication, BasicAuthentication]
    permission_classes = [IsAuthenticated]

    def post(self, request, participant_id):
        participant = (
            Participant.objects
            .select_related("event")
            .filter(Q(pk=participant_id) | Q(registration_id=participant_id))
            .first()
        )
        if participant is None:
            return api_error("Participant not found", status.HTTP_404_NOT_FOUND)

        if not user_can_manage_event(request.user, participant.event):
            return api_error("You do not have permission to manage this participant.", status.HTTP_403_FORBIDDEN)

        from notifications.tasks import schedule_ticket_notifications

        with transaction.atomic():
            locked = Participant.objects.select_for_update().get(pk=participant.pk)
            if locked.is_paid:
                return api_error("Payment already confirmed")

            locked.payment_status = Participant.PAYMENT_PAID
            locked.save(update_fields=["payment_status", "updated_at"])
            schedule_ticket_notifications([locked])

        logger.info("Payment approved manually: participant=%s, by=%s", locked.id, request.user.id)

        return Response({
            "message": "Payment approved",
            "participant": {
                "id": locked.id,
                "full_name": locked.full_name,
                "registration_id": locked.registration_id,
                "payment_status": locked.payment_status,
                "qr_code": locked.qr_code,
            },
        })
