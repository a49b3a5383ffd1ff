from django.contrib import admin

from .models import Donation, Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "order_id", "participant", "amount", "status", "payment_type", "created_at")
    list_filter = ("status", "payment_type")
    search_fields = ("id", "order_id", "participant__full_name", "participant__email")
    readonly_fields = ("gateway_response", "created_at", "updated_at")


@admin.register(Donation)
class DonationAdmin(admin.ModelAdmin):
    list_display = ("id", "order_id", "participant", "amount", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("order_id", "participant__full_name")
