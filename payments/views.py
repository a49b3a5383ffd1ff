import logging

from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.exceptions import ParseError
from rest_framework import status

from events.models import Participant
from events.views.generics import api_error

from .checkout import create_payment, parse_amount
from .models import Payment
from .reconciler import apply_gateway_notification

logger = logging.getLogger("etiket.payments")


def _pick(data, *keys):
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


class CreatePaymentView(APIView):
    """
    POST /api/payments/create/
    Body: { "order_id" | "participant_id", "donation_amount"?, "customer_name"?,
            "customer_email"?, "customer_phone"? }
    """
    authentication_classes = []
    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "registration"

    def post(self, request):
        data = request.data if isinstance(request.data, dict) else {}

        result = create_payment(
            order_id=_pick(data, "order_id", "orderId"),
            participant_id=_pick(data, "participant_id", "participantId"),
            donation_amount=parse_amount(_pick(data, "donation_amount", "donationAmount")),
            customer={
                "name": _pick(data, "customer_name", "customerName"),
                "email": _pick(data, "customer_email", "customerEmail"),
                "phone": _pick(data, "customer_phone", "customerPhone"),
            },
        )
        return Response(result, status=status.HTTP_201_CREATED)


class PaymentNotificationView(APIView):
    """
    POST /api/payments/notification/

    Midtrans webhook. Always acknowledged with 200 so the gateway stops
    retrying; what happened is reported in the body.
    """
    authentication_classes = []
    permission_classes = [AllowAny]
    # Never throttled; a 429 would make the gateway retry.
    throttle_classes = []

    def post(self, request):
        try:
            payload = request.data
        except ParseError:
            logger.warning("Payment notification with malformed body ignored")
            return Response({"status": "ignored", "reason": "Malformed JSON"})

        try:
            result = apply_gateway_notification(payload)
        except Exception:
            logger.exception("Payment notification processing failed")
            return Response({"status": "ignored", "reason": "Processing error"})

        return Response(result)


class PaymentStatusView(APIView):
    """
    GET /api/payments/<order_id>/
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    def get(self, request, order_id):
        payment = Payment.objects.filter(order_id=order_id).first()
        participants = list(
            Participant.objects
            .select_related("event", "ticket_type")
            .filter(order_id=order_id)
            .order_by("created_at", "id")
        )
        if payment is None and not participants:
            return api_error("Payment not found", status.HTTP_404_NOT_FOUND)

        event = participants[0].event if participants else None
        if payment is not None:
            payment_status = payment.status
        else:
            payment_status = participants[0].payment_status

        return Response({
            "order_id": order_id,
            "payment_id": payment.id if payment else None,
            "status": payment_status,
            "amount": payment.amount if payment else None,
            "payment_type": payment.payment_type if payment else None,
            "event_id": event.id if event else None,
            "event_title": event.title if event else None,
            "participants": [
                {
                    "id": p.id,
                    "full_name": p.full_name,
                    "registration_id": p.registration_id,
                    "payment_status": p.payment_status,
                }
                for p in participants
            ],
        })
