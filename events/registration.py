# etiket-backend/events/registration.py
"""
Registration intake.

One request registers one or more participants for a single event. The whole
batch is validated up front and persisted inside one transaction that holds
a row lock on the event, so the capacity check and the inserts cannot be
interleaved with another registration for the same event.
"""
import logging
from collections import Counter
from decimal import Decimal, InvalidOperation

from django.db import transaction

from core.exceptions import DomainError, NotFoundError
from core.settings_store import parse_flag

from . import datetime_utils
from .models import (
    Event,
    Participant,
    ParticipantFieldResponse,
    TicketType,
    build_qr_token,
    generate_order_id,
    generate_participant_id,
    generate_registration_id,
)
from .sanitizers import normalize_email, normalize_phone, sanitize_answer, sanitize_name, sanitize_text

logger = logging.getLogger('etiket.events')


class RegistrationError(DomainError):
    pass


# -----------------------------------------
# Input normalisation
# -----------------------------------------
def _wants_donation(data) -> bool:
    if not isinstance(data, dict):
        return False
    if parse_flag(data.get("include_donation")):
        return True
    amount = data.get("donation_amount")
    if amount in (None, ""):
        return False
    try:
        return Decimal(str(amount)) > 0
    except InvalidOperation:
        return False


def normalize_registration_payload(body, event_id=None):
    """
    Accept a bare list, a {"participants": [...]} wrapper or a single object.

    Returns (event_id, entries, donation_requested). An event id given in the
    URL wins over one in the body.
    """
    if isinstance(body, list):
        wrapper, entries = {}, body
    elif isinstance(body, dict) and isinstance(body.get("participants"), list):
        wrapper, entries = body, body["participants"]
    elif isinstance(body, dict):
        wrapper, entries = body, [body]
    else:
        raise RegistrationError("Invalid registration payload.")

    if any(not isinstance(entry, dict) for entry in entries):
        raise RegistrationError("Each participant must be an object.")

    if event_id is None:
        event_id = wrapper.get("event_id")
    if event_id in (None, ""):
        event_id = next((entry.get("event_id") for entry in entries if entry.get("event_id")), None)

    donation_requested = _wants_donation(wrapper) or any(_wants_donation(entry) for entry in entries)
    return event_id, list(entries), donation_requested


def _collect_answers(entry) -> dict:
    answers = {}
    for item in entry.get("custom_fields") or []:
        if not isinstance(item, dict):
            continue
        try:
            field_id = int(item.get("field_id"))
        except (TypeError, ValueError):
            continue
        answers[field_id] = sanitize_answer(item.get("response"))
    return answers


def _as_pk(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _attendance_type(entry):
    return entry.get("attendance_type") or Participant.ATTENDANCE_OFFLINE


# -----------------------------------------
# Registration
# -----------------------------------------
def register(event_id, entries, donation_requested=False):
    """
    Validate and persist a registration batch; returns the response payload.

    Raises RegistrationError (400) or NotFoundError (404). Nothing is written
    unless every participant passes validation.
    """
    if event_id in (None, ""):
        raise RegistrationError("Event ID is required.")
    if not entries:
        raise RegistrationError("At least one participant is required.")

    for index, entry in enumerate(entries, start=1):
        if not sanitize_name(entry.get("full_name")) or not normalize_email(entry.get("email")):
            raise RegistrationError(
                f"Participant {index}: full name and email are required.",
                participant_index=index,
            )
        if _attendance_type(entry) not in [value for value, _ in Participant.ATTENDANCE_CHOICES]:
            raise RegistrationError(
                f"Participant {index}: invalid attendance type.",
                participant_index=index,
            )

    event_pk = _as_pk(event_id)
    if event_pk is None:
        raise NotFoundError("Event not found.")

    answers_per_entry = [_collect_answers(entry) for entry in entries]

    with transaction.atomic():
        try:
            event = Event.objects.select_for_update().get(pk=event_pk)
        except Event.DoesNotExist:
            raise NotFoundError("Event not found.")

        if event.effective_status != Event.STATUS_OPEN:
            raise RegistrationError("Event is not accepting registrations.")

        fields = list(event.custom_fields.all())
        for index, answers in enumerate(answers_per_entry, start=1):
            for field in fields:
                if field.required and not answers.get(field.id):
                    raise RegistrationError(
                        f"Participant {index}: '{field.label}' is required.",
                        participant_index=index,
                        field_id=field.id,
                        field_label=field.label,
                    )

        ticket_types = _resolve_ticket_types(event, entries)

        if event.capacity:
            current = event.participants.count()
            if current + len(entries) > event.capacity:
                spots_left = max(0, event.capacity - current)
                logger.warning(
                    "Registration rejected: capacity exceeded for event %s. Requested: %s, Available: %s",
                    event.id, len(entries), spots_left,
                )
                raise RegistrationError(
                    f"Event is full. Only {spots_left} spots left.",
                    spots_left=spots_left,
                )

        _check_ticket_quotas(ticket_types, entries)

        order_id = generate_order_id()
        payment_status = (
            Participant.PAYMENT_PAID
            if event.is_free and not donation_requested
            else Participant.PAYMENT_PENDING
        )
        year = datetime_utils.to_local(datetime_utils.now()).year
        valid_field_ids = {field.id for field in fields}

        participants = []
        responses = []
        for entry, answers in zip(entries, answers_per_entry):
            participant_id = generate_participant_id()
            registration_id = generate_registration_id(year)
            ticket_type = ticket_types.get(_as_pk(entry.get("ticket_type_id")))

            participant = Participant.objects.create(
                id=participant_id,
                event=event,
                ticket_type=ticket_type,
                registration_id=registration_id,
                qr_code=build_qr_token(event.id, participant_id, registration_id),
                order_id=order_id,
                full_name=sanitize_name(entry.get("full_name")),
                email=normalize_email(entry.get("email")),
                phone=normalize_phone(entry.get("phone")),
                city=sanitize_text(entry.get("city"), max_length=100) or None,
                gender=sanitize_text(entry.get("gender"), max_length=16) or None,
                attendance_type=_attendance_type(entry),
                payment_status=payment_status,
            )
            participants.append(participant)

            for field_id, response in answers.items():
                if field_id in valid_field_ids and response:
                    responses.append(ParticipantFieldResponse(
                        participant=participant,
                        field_id=field_id,
                        response=response,
                    ))

        ParticipantFieldResponse.objects.bulk_create(responses)

        if payment_status == Participant.PAYMENT_PAID:
            from notifications.tasks import schedule_ticket_notifications
            schedule_ticket_notifications(participants)

    logger.info(
        "Registration created: event=%s, order=%s, participants=%s, payment_status=%s",
        event.id, order_id, len(participants), payment_status,
    )
    return _build_response(event, order_id, payment_status, participants)


def _resolve_ticket_types(event, entries) -> dict:
    requested = {_as_pk(entry.get("ticket_type_id")) for entry in entries if entry.get("ticket_type_id")}
    if None in requested:
        raise RegistrationError("Invalid ticket type.")
    if not requested:
        return {}

    found = {tt.id: tt for tt in TicketType.objects.filter(event=event, pk__in=requested)}
    missing = requested - set(found)
    if missing:
        raise RegistrationError(
            "Ticket type is not available for this event.",
            ticket_type_id=sorted(missing)[0],
        )
    return found


def _check_ticket_quotas(ticket_types, entries):
    wanted = Counter(_as_pk(entry.get("ticket_type_id")) for entry in entries if entry.get("ticket_type_id"))
    for ticket_id, count in wanted.items():
        ticket = ticket_types[ticket_id]
        if ticket.quota is None:
            continue
        sold = ticket.participants.count()
        if sold + count > ticket.quota:
            raise RegistrationError(
                f"Ticket '{ticket.name}' is sold out. Only {max(0, ticket.quota - sold)} left.",
                ticket_type_id=ticket.id,
            )


def _build_response(event, order_id, payment_status, participants):
    rows = [
        {
            "id": p.id,
            "full_name": p.full_name,
            "registration_id": p.registration_id,
            "qr_code": p.qr_code,
            "ticket_name": p.ticket_type.name if p.ticket_type else None,
            "ticket_price": p.ticket_type.price if p.ticket_type else 0,
        }
        for p in participants
    ]

    data = {
        "message": (
            "Registration successful!"
            if payment_status == Participant.PAYMENT_PAID
            else "Please complete payment"
        ),
        "order_id": order_id,
        "participant_count": len(participants),
        "payment_status": payment_status,
        "event_id": event.id,
        "event_title": event.title,
        "payment_mode": event.payment_mode,
        "whatsapp_cs": event.whatsapp_cs,
        "bank_name": event.bank_name,
        "account_holder_name": event.account_holder_name,
        "account_number": event.account_number,
        "redirect_url": f"/payment/{order_id}",
        "participants": rows,
    }

    # Single-participant clients read the flattened fields.
    if len(rows) == 1:
        data.update(rows[0])
    return data
