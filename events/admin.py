from django.contrib import admin
from .models import (
    Event, TicketType, BulkDiscount, EventCustomField,
    Participant, ParticipantFieldResponse, ScanLog
)


class TicketTypeInline(admin.TabularInline):
    model = TicketType
    extra = 0


class BulkDiscountInline(admin.TabularInline):
    model = BulkDiscount
    extra = 0


class EventCustomFieldInline(admin.TabularInline):
    model = EventCustomField
    extra = 0


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ('title', 'organization', 'status', 'event_mode', 'event_date', 'capacity', 'visibility')
    list_filter = ('status', 'event_mode', 'visibility', 'organization')
    search_fields = ('title', 'slug', 'description')
    date_hierarchy = 'event_date'
    prepopulated_fields = {'slug': ('title',)}
    inlines = [TicketTypeInline, BulkDiscountInline, EventCustomFieldInline]


class ParticipantFieldResponseInline(admin.TabularInline):
    model = ParticipantFieldResponse
    extra = 0


@admin.register(Participant)
class ParticipantAdmin(admin.ModelAdmin):
    list_display = ('registration_id', 'full_name', 'event', 'payment_status', 'check_in_status', 'whatsapp_status', 'created_at')
    list_filter = ('payment_status', 'check_in_status', 'whatsapp_status', 'event__organization')
    search_fields = ('id', 'registration_id', 'full_name', 'email', 'phone', 'order_id')
    readonly_fields = ('id', 'qr_code', 'created_at', 'updated_at')
    inlines = [ParticipantFieldResponseInline]


@admin.register(ScanLog)
class ScanLogAdmin(admin.ModelAdmin):
    list_display = ('scanned_by', 'action', 'event', 'identifier', 'created_at')
    list_filter = ('action', 'created_at')
    search_fields = ('scanned_by__username', 'identifier')
