# etiket-backend/events/state_machine.py
"""
Event State Machine for eTiket.

Enforces valid state transitions for event lifecycle:
draft → open → closed
         ↑       │
         └───────┘ (reopen)
open → draft (unpublish)

Any transition not in VALID_TRANSITIONS is rejected.
"""
from typing import Tuple
import logging

from .models import Event

logger = logging.getLogger('etiket.events')


# Valid state transitions: from_status -> list of allowed to_statuses
VALID_TRANSITIONS = {
    Event.STATUS_DRAFT: [Event.STATUS_OPEN],
    Event.STATUS_OPEN: [Event.STATUS_CLOSED, Event.STATUS_DRAFT],
    Event.STATUS_CLOSED: [Event.STATUS_OPEN],
}


def can_transition(event: Event, new_status: str) -> Tuple[bool, str]:
    """
    Check if an event can transition to a new status.

    Returns (can_transition: bool, reason: str)
    """
    current_status = event.status

    if new_status == current_status:
        return True, "Same status"

    if new_status not in dict(Event.STATUS_CHOICES):
        return False, f"Invalid status: {new_status}"

    allowed = VALID_TRANSITIONS.get(current_status, [])

    if new_status not in allowed:
        return False, f"Cannot transition from '{current_status}' to '{new_status}'"

    return True, ""


def transition(event: Event, new_status: str, actor=None, save: bool = True) -> Tuple[bool, str]:
    """
    Attempt to transition an event to a new status.

    Returns (success: bool, message: str)
    """
    can, reason = can_transition(event, new_status)

    if not can:
        logger.warning(
            "Invalid state transition attempted: event=%s, from=%s, to=%s, actor=%s. Reason: %s",
            event.id, event.status, new_status, getattr(actor, 'id', 'unknown'), reason,
        )
        return False, reason

    old_status = event.status
    event.status = new_status

    if save:
        event.save(update_fields=['status', 'updated_at'])

    logger.info(
        "Event state transition: event=%s, from=%s, to=%s, actor=%s",
        event.id, old_status, new_status, getattr(actor, 'id', 'unknown'),
    )

    return True, f"Transitioned from '{old_status}' to '{new_status}'"


def get_allowed_transitions(event: Event) -> list:
    return VALID_TRANSITIONS.get(event.status, [])
