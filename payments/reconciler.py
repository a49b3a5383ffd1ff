# etiket-backend/payments/reconciler.py
"""
Applies Midtrans payment notifications to payments, donations and the
participants of the order.
"""
import hashlib
import hmac
import logging

from django.db import transaction
from django.utils import timezone

from core.settings_store import load_midtrans_settings
from events.models import Participant

from .models import Donation, Payment

logger = logging.getLogger("etiket.payments")

SETTLED_STATUSES = ("capture", "settlement")
FAILED_STATUSES = ("cancel", "deny", "expire")


def map_transaction_status(transaction_status, fraud_status=None):
    """Gateway transaction status (+ fraud status) -> internal payment status."""
    if transaction_status in SETTLED_STATUSES:
        if fraud_status in (None, "", "accept"):
            return Participant.PAYMENT_PAID
        return Participant.PAYMENT_PENDING
    if transaction_status in FAILED_STATUSES:
        return Participant.PAYMENT_FAILED
    if transaction_status == "refund":
        return Participant.PAYMENT_REFUNDED
    return Participant.PAYMENT_PENDING


def expected_signature(order_id, status_code, gross_amount, server_key):
    raw = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hashlib.sha512(raw.encode("utf-8")).hexdigest()


def signature_is_valid(payload, server_key):
    expected = expected_signature(
        payload.get("order_id", ""),
        payload.get("status_code", ""),
        payload.get("gross_amount", ""),
        server_key,
    )
    return hmac.compare_digest(expected, str(payload.get("signature_key", "")))


def _ignored(reason):
    return {"status": "ignored", "reason": reason}


def _organization_for_order(participants, order_id):
    if participants:
        return participants[0].event.organization_id
    payment = (
        Payment.objects
        .select_related("participant__event")
        .filter(order_id=order_id, participant__isnull=False)
        .first()
    )
    return payment.participant.event.organization_id if payment else None


def apply_gateway_notification(payload):
    """
    Returns a summary dict; never raises for bad input so the webhook can
    always acknowledge.
    """
    if not isinstance(payload, dict):
        return _ignored("Malformed notification")

    order_id = payload.get("order_id")
    transaction_status = payload.get("transaction_status")
    if not order_id or not transaction_status:
        return _ignored("Missing order_id or transaction_status")

    order_id = str(order_id)
    new_status = map_transaction_status(transaction_status, payload.get("fraud_status"))
    payment_type = payload.get("payment_type")

    with transaction.atomic():
        participants = list(
            Participant.objects
            .select_for_update()
            .select_related("event")
            .filter(order_id=order_id)
        )
        payments = Payment.objects.filter(order_id=order_id)

        if not participants and not payments.exists():
            logger.info("Payment notification for unknown order %s", order_id)
            return _ignored("Unknown order")

        if payload.get("signature_key"):
            organization_id = _organization_for_order(participants, order_id)
            server_key = load_midtrans_settings(organization_id).server_key if organization_id else None
            if server_key and not signature_is_valid(payload, server_key):
                logger.warning("Rejected payment notification for %s: bad signature", order_id)
                return _ignored("Invalid signature")

        now = timezone.now()
        # Notifications without a payment_type keep the stored one.
        channel = {"payment_type": payment_type} if payment_type else {}
        payments.update(status=new_status, gateway_response=payload, updated_at=now, **channel)
        Donation.objects.filter(order_id=order_id).update(status=new_status, **channel)

        targets = participants
        if new_status == Participant.PAYMENT_PENDING:
            # Out-of-order "pending" must not undo a settled payment.
            targets = [p for p in participants if not p.is_paid]

        newly_paid = []
        if new_status == Participant.PAYMENT_PAID:
            newly_paid = [p for p in participants if not p.is_paid]

        Participant.objects.filter(pk__in=[p.pk for p in targets]).update(
            payment_status=new_status,
            updated_at=now,
        )

        scheduled = 0
        if newly_paid:
            from notifications.tasks import schedule_ticket_notifications
            scheduled = schedule_ticket_notifications(newly_paid)

    logger.info(
        "Payment notification applied: order=%s, transaction_status=%s, status=%s, participants=%s",
        order_id, transaction_status, new_status, len(targets),
    )
    return {
        "status": "ok",
        "order_id": order_id,
        "payment_status": new_status,
        "participants_updated": len(targets),
        "notifications_scheduled": scheduled,
    }
