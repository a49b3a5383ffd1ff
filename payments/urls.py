from django.urls import path

from .views import CreatePaymentView, PaymentNotificationView, PaymentStatusView

urlpatterns = [
    path("create/", CreatePaymentView.as_view(), name="payment-create"),
    path("notification/", PaymentNotificationView.as_view(), name="payment-notification"),
    path("<str:order_id>/", PaymentStatusView.as_view(), name="payment-status"),
]
