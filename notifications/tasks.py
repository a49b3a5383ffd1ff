# notifications/tasks.py
import logging

from celery import shared_task
from django.db import transaction

from events.models import Participant

from .dispatcher import dispatch
from .messages import registration_message_for

logger = logging.getLogger("etiket.notifications")


@shared_task
def send_ticket_notification_task(participant_id: str):
    """
    Send the registration / e-ticket WhatsApp message to one participant.
    """
    try:
        participant = (
            Participant.objects
            .select_related("event", "ticket_type")
            .get(pk=participant_id)
        )
    except Participant.DoesNotExist:
        logger.warning("Ticket notification skipped: participant %s not found", participant_id)
        return "participant_not_found"

    if not participant.phone:
        return "no_phone"

    result = dispatch(
        participant.event.organization_id,
        participant.phone,
        registration_message_for(participant),
        participant_id=participant.id,
    )
    if not result["success"]:
        logger.warning(
            "Ticket notification failed for participant %s: %s", participant.id, result["error"]
        )
        return "failed"
    return "sent"


def _enqueue(participant_id):
    try:
        send_ticket_notification_task.delay(participant_id)
    except Exception:
        # Broker outage must not turn a committed registration into an error.
        logger.exception("Could not enqueue ticket notification for %s", participant_id)


def schedule_ticket_notifications(participants):
    """
    Queue one ticket notification per participant with a phone number,
    once the surrounding transaction commits. Returns how many were queued.
    """
    scheduled = 0
    for participant in participants:
        if not participant.phone:
            continue
        transaction.on_commit(lambda pid=participant.id: _enqueue(pid))
        scheduled += 1
    return scheduled
