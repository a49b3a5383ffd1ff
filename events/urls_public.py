from django.urls import path
from .views import (
    PublicEventListView,
    PublicEventDetailView,
    PublicTicketView,
    TicketQRImageView,
)

urlpatterns = [
    path("events/", PublicEventListView.as_view(), name="public-event-list"),
    path("events/<slug:slug>/", PublicEventDetailView.as_view(), name="public-event-detail"),
    path("ticket/<str:registration_id>/", PublicTicketView.as_view(), name="public-ticket"),
    path("ticket/<str:registration_id>/qr/", TicketQRImageView.as_view(), name="public-ticket-qr"),
]
