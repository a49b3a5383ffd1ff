from rest_framework.response import Response
from rest_framework import status

from core.permissions import user_can_manage_event, user_is_system_admin
from events.models import Event


def api_error(message: str, status_code=status.HTTP_400_BAD_REQUEST, **context):
    """
    Small helper to standardize error responses across the API.
    Always returns: {"error": "<message>", ...context} with the given status code.
    """
    return Response({"error": message, **context}, status=status_code)


def client_ip(request):
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")


def managed_events_for(user):
    """Events the user may manage: their organization's, or all for system admins."""
    qs = Event.objects.select_related("organization")
    if user_is_system_admin(user):
        return qs
    if getattr(user, "organization_id", None) is None:
        return qs.none()
    return qs.filter(organization_id=user.organization_id)


def get_managed_event(user, event_id):
    """
    Returns (event, error_response). Exactly one of the two is None.
    """
    try:
        event = Event.objects.select_related("organization").get(pk=event_id)
    except Event.DoesNotExist:
        return None, api_error("Event not found", status.HTTP_404_NOT_FOUND)

    if not user_can_manage_event(user, event):
        return None, api_error("You do not have permission to manage this event.", status.HTTP_403_FORBIDDEN)

    return event, None
