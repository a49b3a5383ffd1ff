from django.urls import path
from .views import (
    EventListCreateView,
    EventDetailView,
    EventStatusView,
    CustomFieldListCreateView,
    CustomFieldDetailView,
    RegisterView,
    EventParticipantsView,
    ApprovePaymentView,
    CheckInView,
)

urlpatterns = [
    # Public registration
    path("register/", RegisterView.as_view(), name="event-register"),
    path("<int:event_id>/register/", RegisterView.as_view(), name="event-register-for-event"),

    # Event management (organization staff)
    path("", EventListCreateView.as_view(), name="event-list-create"),
    path("<int:event_id>/", EventDetailView.as_view(), name="event-detail"),
    path("<int:event_id>/status/", EventStatusView.as_view(), name="event-status"),
    path("<int:event_id>/custom-fields/", CustomFieldListCreateView.as_view(), name="event-custom-fields"),
    path("<int:event_id>/custom-fields/<int:field_id>/", CustomFieldDetailView.as_view(), name="event-custom-field-detail"),
    path("<int:event_id>/participants/", EventParticipantsView.as_view(), name="event-participants"),

    # Participants
    path("participants/<str:identifier>/check-in/", CheckInView.as_view(), name="participant-check-in"),
    path("participants/<str:participant_id>/approve-payment/", ApprovePaymentView.as_view(), name="participant-approve-payment"),
]
