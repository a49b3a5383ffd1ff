# etiket-backend/events/checkin.py
"""
Check-in gate: admits a participant once, inside the check-in window, only
when the payment is confirmed. Every attempt leaves a ScanLog row.
"""
import logging

from django.conf import settings
from django.db import transaction
from rest_framework import status

from core.exceptions import DomainError

from . import datetime_utils
from .models import Participant, ScanLog

logger = logging.getLogger('etiket.events')


class CheckInRejected(DomainError):
    def __init__(self, reason, message, status_code=None, **context):
        super().__init__(message, status_code=status_code, **context)
        self.reason = reason

    def as_payload(self):
        payload = super().as_payload()
        payload["reason"] = self.reason
        return payload


def find_participant(identifier):
    """Match by internal id, then registration id, then QR token."""
    queryset = Participant.objects.select_related("event", "ticket_type")
    for lookup in ("pk", "registration_id", "qr_code"):
        participant = queryset.filter(**{lookup: identifier}).first()
        if participant is not None:
            return participant
    return None


def participant_summary(participant):
    return {
        "id": participant.id,
        "full_name": participant.full_name,
        "registration_id": participant.registration_id,
        "event_id": participant.event_id,
        "ticket_name": participant.ticket_type.name if participant.ticket_type else None,
        "payment_status": participant.payment_status,
        "check_in_status": participant.check_in_status,
        "check_in_time": datetime_utils.format_for_api(participant.check_in_time),
    }


def check_in(identifier, expected_event_id=None, scanned_by=None, ip_address=None, now=None):
    """
    Mark a participant as checked in.

    Raises CheckInRejected with one of the reasons not_found, wrong_event,
    not_open_yet, already_checked_in, payment_unconfirmed.
    """
    identifier = str(identifier).strip()
    current = now or datetime_utils.now()

    def reject(action, message, participant=None, status_code=None, **context):
        ScanLog.objects.create(
            event=participant.event if participant else None,
            participant=participant,
            scanned_by=scanned_by,
            identifier=identifier[:128],
            ip_address=ip_address,
            action=action,
        )
        logger.info("Check-in rejected: identifier=%s, reason=%s", identifier, action)
        return CheckInRejected(action, message, status_code=status_code, **context)

    participant = find_participant(identifier)
    if participant is None:
        raise reject(ScanLog.ACTION_NOT_FOUND, "Participant not found.", status_code=status.HTTP_404_NOT_FOUND)

    if expected_event_id not in (None, "") and str(participant.event_id) != str(expected_event_id):
        raise reject(
            ScanLog.ACTION_WRONG_EVENT,
            "This participant is registered for another event.",
            participant,
            participant_event_id=participant.event_id,
        )

    event = participant.event
    opens_at = datetime_utils.check_in_opens_at(event)
    if current < opens_at:
        starts_at = datetime_utils.event_start(event)
        raise reject(
            ScanLog.ACTION_NOT_OPEN_YET,
            f"Check-in is not open yet. The event starts {datetime_utils.format_for_display(starts_at)}; "
            f"check-in opens {_opening_window_label()} before.",
            participant,
            event_start=starts_at.isoformat(),
            check_in_opens=opens_at.isoformat(),
        )

    if participant.is_checked_in:
        raise reject(
            ScanLog.ACTION_ALREADY_CHECKED_IN,
            "Participant has already checked in.",
            participant,
            check_in_time=datetime_utils.format_for_api(participant.check_in_time),
        )

    if not participant.is_paid:
        raise reject(ScanLog.ACTION_PAYMENT_UNCONFIRMED, "Payment has not been confirmed.", participant)

    with transaction.atomic():
        locked = Participant.objects.select_for_update().get(pk=participant.pk)
        already = locked.is_checked_in
        if not already:
            locked.check_in_status = Participant.CHECK_IN_CHECKED_IN
            locked.check_in_time = current
            locked.save(update_fields=["check_in_status", "check_in_time", "updated_at"])
            ScanLog.objects.create(
                event=event,
                participant=locked,
                scanned_by=scanned_by,
                identifier=identifier[:128],
                ip_address=ip_address,
                action=ScanLog.ACTION_CHECK_IN,
            )

    if already:
        # Lost the race against a concurrent scan of the same ticket.
        raise reject(
            ScanLog.ACTION_ALREADY_CHECKED_IN,
            "Participant has already checked in.",
            participant,
            check_in_time=datetime_utils.format_for_api(locked.check_in_time),
        )

    participant.check_in_status = locked.check_in_status
    participant.check_in_time = locked.check_in_time
    logger.info("Participant checked in: participant=%s, event=%s", participant.id, event.id)

    return {
        "message": "Check-in successful",
        "participant": participant_summary(participant),
    }


def _opening_window_label():
    minutes = settings.CHECK_IN_OPENS_MINUTES_BEFORE
    if minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    return f"{minutes} minutes"
