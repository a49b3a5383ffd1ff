# etiket-backend/notifications/dispatcher.py
"""
WhatsApp delivery with human-like pacing.

dispatch() never raises: every outcome is returned as a result dict and
recorded on the participant row(s).
"""
import logging
import random
import time

from django.conf import settings
from django.utils import timezone

from events.models import Participant

from .resolver import resolve_whatsapp_config
from .waha import WahaClient, format_chat_id

logger = logging.getLogger("etiket.notifications")

ERROR_MAX_LENGTH = 1000


def counterpart_messaged_first(chat_id) -> bool:
    """Whether the recipient wrote to us first. Not tracked yet."""
    return False


def _pause(bounds_ms):
    low, high = bounds_ms
    time.sleep(random.randint(low, high) / 1000)


def _recipients(phone, participant_id):
    if participant_id:
        return Participant.objects.filter(pk=participant_id)
    if not phone:
        return Participant.objects.none()
    # Legacy callers without an id: every participant sharing the number.
    return Participant.objects.filter(phone=phone)


def _record_sent(phone, participant_id):
    _recipients(phone, participant_id).update(
        whatsapp_status=Participant.WHATSAPP_SENT,
        whatsapp_sent_at=timezone.now(),
        whatsapp_error=None,
    )


def _record_failed(phone, participant_id, error):
    _recipients(phone, participant_id).update(
        whatsapp_status=Participant.WHATSAPP_FAILED,
        whatsapp_error=error[:ERROR_MAX_LENGTH],
    )


def _message_id(response):
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    message_id = data.get("id")
    if isinstance(message_id, dict):
        message_id = message_id.get("_serialized")
    return message_id


def dispatch(organization_id, phone, message, participant_id=None):
    """
    Send `message` to `phone` through the organization's relay.

    Returns {"success": True, "message_id": ...} or
    {"success": False, "error": ...}.
    """
    try:
        resolution = resolve_whatsapp_config(organization_id)
        if not resolution.ok:
            logger.info(
                "WhatsApp not sent for organization %s: %s", organization_id, resolution.reason
            )
            _record_failed(phone, participant_id, resolution.reason)
            return {"success": False, "error": resolution.reason}

        client = WahaClient(resolution.config)
        chat_id = format_chat_id(phone)

        _pause(settings.WHATSAPP_INITIAL_DELAY_MS)

        if counterpart_messaged_first(chat_id):
            client.send_seen(chat_id)

        typing = client.start_typing(chat_id)
        if not typing.ok:
            logger.warning("WAHA startTyping failed for %s: %s", chat_id, typing.status_code)

        _pause(settings.WHATSAPP_TYPING_DELAY_MS)

        response = client.send_text(chat_id, message)
        if not response.ok:
            error = f"WAHA API error: {response.status_code} - {response.text}"
            logger.warning("WhatsApp send failed for %s: %s", chat_id, error)
            _record_failed(phone, participant_id, error)
            return {"success": False, "error": error}

        message_id = _message_id(response)
        _record_sent(phone, participant_id)
        logger.info("WhatsApp sent to %s (mode=%s, id=%s)", chat_id, resolution.config.mode, message_id)
        return {"success": True, "message_id": message_id}

    except Exception as exc:
        error = str(exc) or exc.__class__.__name__
        logger.exception("WhatsApp dispatch crashed for organization %s", organization_id)
        try:
            _record_failed(phone, participant_id, error)
        except Exception:
            logger.exception("Could not record WhatsApp failure for %s", participant_id or phone)
        return {"success": False, "error": error}
