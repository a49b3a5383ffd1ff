from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework.authentication import SessionAuthentication, BasicAuthentication
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework import status
from django.db.models import Count, Q

from core.models import Organization
from core.permissions import IsOrganizationStaff, user_is_system_admin
from events import state_machine
from events.models import Event, EventCustomField
from events.serializers import EventCustomFieldSerializer, EventSerializer
from .generics import api_error, get_managed_event, managed_events_for


class EventListCreateView(APIView):
    """
    GET  /api/events/            events of the caller's organization
    POST /api/events/            create an event (starts as draft)
    """
    authentication_classes = [JWTAuthentication, SessionAuthentication, BasicAuthentication]
    permission_classes = [IsAuthenticated, IsOrganizationStaff]

    def get(self, request):
        qs = managed_events_for(request.user)

        status_param = request.query_params.get("status")
        if status_param in dict(Event.STATUS_CHOICES):
            qs = qs.filter(status=status_param)

        search = request.query_params.get("search")
        if search:
            qs = qs.filter(Q(title__icontains=search) | Q(location__icontains=search))

        ordering = request.query_params.get("ordering")
        allowed_ordering = {"event_date", "-event_date", "created_at", "-created_at"}
        qs = qs.order_by(ordering if ordering in allowed_ordering else "-event_date")

        total_count = qs.count()

        try:
            limit_val = int(request.query_params.get("limit", 50))
            offset_val = int(request.query_params.get("offset", 0))
        except ValueError:
            return api_error("Invalid pagination params")

        limit_val = max(1, min(limit_val, 100))
        offset_val = max(0, offset_val)

        qs = qs.annotate(_annotated_registered_count=Count("participants"))
        qs = qs[offset_val: offset_val + limit_val]

        serializer = EventSerializer(qs, many=True, context={"request": request})
        return Response({
            "count": total_count,
            "results": serializer.data,
            "limit": limit_val,
            "offset": offset_val,
        })

    def post(self, request):
        organization_id = request.user.organization_id
        if user_is_system_admin(request.user) and request.data.get("organization_id"):
            organization_id = request.data.get("organization_id")

        organization = Organization.objects.filter(pk=organization_id).first() if organization_id else None
        if organization is None:
            return api_error("Organization is required to create an event.")

        serializer = EventSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)
        event = serializer.save(organization=organization, status=Event.STATUS_DRAFT)

        return Response(EventSerializer(event, context={"request": request}).data, status=status.HTTP_201_CREATED)


class EventDetailView(APIView):
    """
    GET / PUT / PATCH / DELETE /api/events/<event_id>/
    """
    authentication_classes = [JWTAuthentication, SessionAuthentication, BasicAuthentication]
    permission_classes = [IsAuthenticated]

    def get(self, request, event_id):
        event, error = get_managed_event(request.user, event_id)
        if error:
            return error
        return Response(EventSerializer(event, context={"request": request}).data)

    def put(self, request, event_id):
        return self._update(request, event_id, partial=False)

    def patch(self, request, event_id):
        return self._update(request, event_id, partial=True)

    def _update(self, request, event_id, partial):
        event, error = get_managed_event(request.user, event_id)
        if error:
            return error

        serializer = EventSerializer(event, data=request.data, partial=partial, context={"request": request})
        serializer.is_valid(raise_exception=True)
        event = serializer.save()
        return Response(EventSerializer(event, context={"request": request}).data)

    def delete(self, request, event_id):
        event, error = get_managed_event(request.user, event_id)
        if error:
            return error
        event.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class EventStatusView(APIView):
    """
    POST /api/events/<event_id>/status/
    Body: { "status": "draft" | "open" | "closed" }
    """
    authentication_classes = [JWTAuthentication, SessionAuthentication, BasicAuthentication]
    permission_classes = [IsAuthenticated]

    def post(self, request, event_id):
        event, error = get_managed_event(request.user, event_id)
        if error:
            return error

        new_status = request.data.get("status")
        ok, message = state_machine.transition(event, new_status, actor=request.user)
        if not ok:
            return api_error(
                message,
                allowed_transitions=state_machine.get_allowed_transitions(event),
            )

        return Response({
            "id": event.id,
            "status": event.status,
            "effective_status": event.effective_status,
            "message": message,
        })


class CustomFieldListCreateView(APIView):
    """
    GET  /api/events/<event_id>/custom-fields/
    POST /api/events/<event_id>/custom-fields/
    """
    authentication_classes = [JWTAuthentication, SessionAuthentication, BasicAuthentication]
    permission_classes = [IsAuthenticated]

    def get(self, request, event_id):
        event, error = get_managed_event(request.user, event_id)
        if error:
            return error
        return Response(EventCustomFieldSerializer(event.custom_fields.all(), many=True).data)

    def post(self, request, event_id):
        event, error = get_managed_event(request.user, event_id)
        if error:
            return error

        serializer = EventCustomFieldSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        field = serializer.save(event=event)
        return Response(EventCustomFieldSerializer(field).data, status=status.HTTP_201_CREATED)


class CustomFieldDetailView(APIView):
    """
    PATCH / DELETE /api/events/<event_id>/custom-fields/<field_id>/
    """
    authentication_classes = [JWTAuthentication, SessionAuthentication, BasicAuthentication]
    permission_classes = [IsAuthenticated]

    def _get_field(self, request, event_id, field_id):
        event, error = get_managed_event(request.user, event_id)
        if error:
            return None, error
        field = EventCustomField.objects.filter(event=event, pk=field_id).first()
        if field is None:
            return None, api_error("Custom field not found", status.HTTP_404_NOT_FOUND)
        return field, None

    def patch(self, request, event_id, field_id):
        field, error = self._get_field(request, event_id, field_id)
        if error:
            return error

        serializer = EventCustomFieldSerializer(field, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)

    def delete(self, request, event_id, field_id):
        field, error = self._get_field(request, event_id, field_id)
        if error:
            return error
        field.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
