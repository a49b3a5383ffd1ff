from django.urls import path

from .views import ResendNotificationView, WhatsAppStatusView

urlpatterns = [
    path("participants/<str:participant_id>/resend/", ResendNotificationView.as_view(), name="participant-resend-notification"),
    path("organizations/<int:organization_id>/whatsapp-status/", WhatsAppStatusView.as_view(), name="organization-whatsapp-status"),
]
