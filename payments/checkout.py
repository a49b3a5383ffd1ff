# etiket-backend/payments/checkout.py
"""
Builds and opens a gateway payment for a registration order.
"""
import logging
import math
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import transaction

from core.exceptions import DomainError, NotFoundError
from core.settings_store import load_midtrans_settings
from events.models import BulkDiscount, Participant, generate_order_id

from .gateway import create_snap_transaction
from .models import Donation, Payment

logger = logging.getLogger("etiket.payments")


def parse_amount(value) -> int:
    """Whole rupiah; anything unparseable or negative counts as 0."""
    if value in (None, "", False):
        return 0
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return 0
    if amount <= 0:
        return 0
    return int(amount)


def _ticket_price(participant) -> int:
    return int(participant.ticket_type.price) if participant.ticket_type else 0


def best_discount(event, quantity):
    """Highest min_qty tier the order qualifies for, or None."""
    return (
        BulkDiscount.objects
        .filter(event=event, min_qty__lte=quantity)
        .order_by("-min_qty")
        .first()
    )


def calculate_order_total(participants, donation_amount=0):
    """
    Returns (total, item_details). Items always sum to the total: a
    negative DISCOUNT line for the group tier and a DONATION line.
    """
    items = [
        {
            "id": p.id,
            "price": _ticket_price(p),
            "quantity": 1,
            "name": f"Ticket: {p.full_name}"[:50],
        }
        for p in participants
    ]
    base = sum(item["price"] for item in items)

    discount = 0
    tier = best_discount(participants[0].event, len(participants)) if participants else None
    if tier is not None:
        if tier.discount_type == BulkDiscount.TYPE_PERCENT:
            discount = math.floor(base * tier.discount_value / 100)
        else:
            discount = int(tier.discount_value)
        discount = min(discount, base)

    if discount > 0:
        items.append({"id": "DISCOUNT", "price": -discount, "quantity": 1, "name": "Group Discount"})

    if donation_amount > 0:
        items.append({"id": "DONATION", "price": donation_amount, "quantity": 1, "name": "Donasi Event"})

    total = base - discount + donation_amount
    return total, items


def _load_order(order_id=None, participant_id=None):
    queryset = Participant.objects.select_related("event", "ticket_type").order_by("created_at", "id")
    if order_id:
        return list(queryset.filter(order_id=order_id)), order_id

    participant = queryset.filter(pk=participant_id).first()
    if participant is None:
        return [], None
    if not participant.order_id:
        participant.order_id = generate_order_id()
        participant.save(update_fields=["order_id", "updated_at"])
    return [participant], participant.order_id


def create_payment(order_id=None, participant_id=None, donation_amount=0, customer=None):
    """
    Open a Snap transaction for the order and store it as a pending Payment.

    Returns {"payment_id", "order_id", "token", "redirect_url"}.
    """
    if not order_id and not participant_id:
        raise DomainError("Participant ID or Order ID required")

    participants, order_id = _load_order(order_id=order_id, participant_id=participant_id)
    if not participants:
        raise NotFoundError("Participants/Event not found")

    if all(p.is_paid for p in participants):
        raise DomainError("Order is already paid")

    lead = participants[0]
    organization_id = lead.event.organization_id
    midtrans = load_midtrans_settings(organization_id)
    if not midtrans.server_key:
        logger.error("Midtrans is not configured for organization %s", organization_id)
        raise DomainError(
            "Payment gateway not configured for this organizer. Please contact the event organizer."
        )

    total, items = calculate_order_total(participants, donation_amount)
    if total <= 0:
        raise DomainError("Free orders should be handled directly")

    customer = customer or {}
    snap_payload = {
        "transaction_details": {"order_id": order_id, "gross_amount": total},
        "item_details": items,
        "customer_details": {
            "first_name": customer.get("name") or lead.full_name,
            "email": customer.get("email") or lead.email,
            "phone": customer.get("phone") or lead.phone or "",
        },
        "callbacks": {"finish": f"{settings.FRONTEND_URL}/payment/success"},
    }

    data = create_snap_transaction(midtrans.server_key, snap_payload, midtrans.is_production)

    with transaction.atomic():
        payment = Payment.objects.create(
            participant=lead,
            order_id=order_id,
            amount=total,
            status=Payment.STATUS_PENDING,
            gateway_response=data,
        )
        Participant.objects.filter(pk__in=[p.pk for p in participants]).exclude(
            payment_status=Participant.PAYMENT_PAID,
        ).update(payment_status=Participant.PAYMENT_PENDING)

        if donation_amount > 0:
            Donation.objects.create(
                participant=lead,
                order_id=order_id,
                amount=donation_amount,
                status=Payment.STATUS_PENDING,
                payment_type="midtrans",
            )

    logger.info("Payment created: payment=%s, order=%s, amount=%s", payment.id, order_id, total)
    return {
        "payment_id": payment.id,
        "order_id": order_id,
        "token": data.get("token"),
        "redirect_url": data.get("redirect_url"),
    }
