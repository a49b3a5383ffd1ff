from django.db import transaction
from django.utils.text import slugify
from rest_framework import serializers

from . import datetime_utils
from .models import (
    BulkDiscount,
    Event,
    EventCustomField,
    Participant,
    TicketType,
)
from .sanitizers import (
    sanitize_title,
    sanitize_description,
    validate_capacity,
    validate_price,
    ValidationError as SanitizationError,
)


def _clean_number(validator, value):
    try:
        return validator(value)
    except SanitizationError as e:
        raise serializers.ValidationError(str(e))


# -----------------------------------------
# TICKETS & DISCOUNTS
# -----------------------------------------
class TicketTypeSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(read_only=True)
    sold = serializers.SerializerMethodField()
    available = serializers.SerializerMethodField()

    class Meta:
        model = TicketType
        fields = ["id", "name", "price", "quota", "sold", "available"]

    def get_sold(self, obj) -> int:
        return obj.participants.count()

    def get_available(self, obj):
        if obj.quota is None:
            return None
        return max(0, obj.quota - self.get_sold(obj))

    def validate_name(self, value):
        return sanitize_title(value)

    def validate_price(self, value):
        return _clean_number(validate_price, value)

    def validate_quota(self, value):
        if value is None:
            return None
        return _clean_number(validate_capacity, value)


class BulkDiscountSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(read_only=True)

    class Meta:
        model = BulkDiscount
        fields = ["id", "min_qty", "discount_type", "discount_value"]

    def validate_discount_value(self, value):
        return _clean_number(validate_price, value)

    def validate(self, attrs):
        if attrs.get("min_qty", 0) < 1:
            raise serializers.ValidationError({"min_qty": "min_qty must be at least 1."})
        if attrs.get("discount_type") == BulkDiscount.TYPE_PERCENT and attrs.get("discount_value", 0) > 100:
            raise serializers.ValidationError({"discount_value": "A percentage discount cannot exceed 100."})
        return attrs


# -----------------------------------------
# CUSTOM FIELDS
# -----------------------------------------
class EventCustomFieldSerializer(serializers.ModelSerializer):
    class Meta:
        model = EventCustomField
        fields = ["id", "event", "field_type", "label", "required", "options", "display_order", "created_at"]
        read_only_fields = ["id", "event", "created_at"]

    def validate_label(self, value):
        label = sanitize_title(value)
        if not label:
            raise serializers.ValidationError("Label is required.")
        return label

    def validate_options(self, value):
        if value in (None, ""):
            return []
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError("Options must be a list of strings.")
        return [item.strip() for item in value if item.strip()]

    def validate(self, attrs):
        field_type = attrs.get("field_type", getattr(self.instance, "field_type", EventCustomField.TYPE_TEXT))
        options = attrs.get("options", getattr(self.instance, "options", []))
        if field_type in (EventCustomField.TYPE_RADIO, EventCustomField.TYPE_CHECKBOX) and not options:
            raise serializers.ValidationError({"options": "Radio and checkbox fields need at least one option."})
        return attrs


# -----------------------------------------
# EVENT SERIALIZER
# -----------------------------------------
class EventSerializer(serializers.ModelSerializer):
    """
    Staff-facing event representation. Ticket types and bulk discounts are
    written as nested lists and replaced wholesale on update.
    """
    ticket_types = TicketTypeSerializer(many=True, required=False)
    bulk_discounts = BulkDiscountSerializer(many=True, required=False)
    custom_fields = EventCustomFieldSerializer(many=True, read_only=True)
    organization_name = serializers.CharField(source="organization.name", read_only=True)
    effective_status = serializers.CharField(read_only=True)
    registered_count = serializers.SerializerMethodField()
    starts_at = serializers.SerializerMethodField()
    slug = serializers.SlugField(max_length=255, required=False)

    class Meta:
        model = Event
        fields = [
            "id",
            "organization",
            "organization_name",
            "title",
            "slug",
            "description",
            "event_date",
            "event_time",
            "starts_at",
            "location",
            "capacity",
            "event_mode",
            "payment_mode",
            "status",
            "effective_status",
            "visibility",
            "auto_close",
            "whatsapp_cs",
            "bank_name",
            "account_holder_name",
            "account_number",
            "ticket_types",
            "bulk_discounts",
            "custom_fields",
            "registered_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "organization",
            "organization_name",
            "status",
            "effective_status",
            "registered_count",
            "created_at",
            "updated_at",
        ]

    def get_registered_count(self, obj) -> int:
        if hasattr(obj, "_annotated_registered_count"):
            return obj._annotated_registered_count or 0
        return obj.participants.count()

    def get_starts_at(self, obj):
        return datetime_utils.event_start(obj).isoformat() if obj.event_date else None

    def validate_title(self, value):
        title = sanitize_title(value)
        if not title:
            raise serializers.ValidationError("Title is required.")
        return title

    def validate_description(self, value):
        return sanitize_description(value)

    def validate_capacity(self, value):
        if value is None:
            return None
        return _clean_number(validate_capacity, value)

    def validate_slug(self, value):
        qs = Event.objects.filter(slug=value)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError("An event with this slug already exists.")
        return value

    @staticmethod
    def _unique_slug(title):
        base = slugify(title)[:240] or "event"
        slug = base
        suffix = 2
        while Event.objects.filter(slug=slug).exists():
            slug = f"{base}-{suffix}"
            suffix += 1
        return slug

    def _replace_children(self, event, tickets, discounts):
        if tickets is not None:
            # Participants keep their row; only the ticket reference goes.
            Participant.objects.filter(ticket_type__event=event).update(ticket_type=None)
            event.ticket_types.all().delete()
            TicketType.objects.bulk_create([TicketType(event=event, **item) for item in tickets])
        if discounts is not None:
            event.bulk_discounts.all().delete()
            BulkDiscount.objects.bulk_create([BulkDiscount(event=event, **item) for item in discounts])

    @transaction.atomic
    def create(self, validated_data):
        tickets = validated_data.pop("ticket_types", None)
        discounts = validated_data.pop("bulk_discounts", None)
        if not validated_data.get("slug"):
            validated_data["slug"] = self._unique_slug(validated_data["title"])
        event = super().create(validated_data)
        self._replace_children(event, tickets, discounts)
        return event

    @transaction.atomic
    def update(self, instance, validated_data):
        tickets = validated_data.pop("ticket_types", None)
        discounts = validated_data.pop("bulk_discounts", None)
        event = super().update(instance, validated_data)
        self._replace_children(event, tickets, discounts)
        return event


# -----------------------------------------
# PARTICIPANTS (staff)
# -----------------------------------------
class ParticipantSerializer(serializers.ModelSerializer):
    ticket_name = serializers.CharField(source="ticket_type.name", read_only=True, default=None)
    ticket_price = serializers.DecimalField(
        source="ticket_type.price", max_digits=12, decimal_places=2, read_only=True, default=None
    )
    check_in_time = serializers.SerializerMethodField()
    custom_field_responses = serializers.SerializerMethodField()

    class Meta:
        model = Participant
        fields = [
            "id",
            "event",
            "ticket_type",
            "ticket_name",
            "ticket_price",
            "registration_id",
            "qr_code",
            "order_id",
            "full_name",
            "email",
            "phone",
            "city",
            "gender",
            "payment_status",
            "check_in_status",
            "check_in_time",
            "attendance_type",
            "whatsapp_status",
            "whatsapp_sent_at",
            "whatsapp_error",
            "custom_field_responses",
            "created_at",
        ]
        read_only_fields = fields

    def get_check_in_time(self, obj):
        return datetime_utils.format_for_api(obj.check_in_time)

    def get_custom_field_responses(self, obj):
        return [
            {"field_id": item.field_id, "label": item.field.label, "response": item.response}
            for item in obj.field_responses.all()
        ]


# -----------------------------------------
# PUBLIC
# -----------------------------------------
class PublicCustomFieldSerializer(serializers.ModelSerializer):
    class Meta:
        model = EventCustomField
        fields = ["id", "field_type", "label", "required", "options", "display_order"]


class PublicEventSerializer(serializers.ModelSerializer):
    organization_name = serializers.CharField(source="organization.name", read_only=True)
    status = serializers.CharField(source="effective_status", read_only=True)
    ticket_types = TicketTypeSerializer(many=True, read_only=True)
    bulk_discounts = BulkDiscountSerializer(many=True, read_only=True)
    custom_fields = PublicCustomFieldSerializer(many=True, read_only=True)
    registered_count = serializers.SerializerMethodField()
    spots_left = serializers.SerializerMethodField()
    is_full = serializers.SerializerMethodField()

    class Meta:
        model = Event
        fields = [
            "id",
            "title",
            "slug",
            "description",
            "event_date",
            "event_time",
            "location",
            "capacity",
            "event_mode",
            "payment_mode",
            "status",
            "organization_name",
            "whatsapp_cs",
            "ticket_types",
            "bulk_discounts",
            "custom_fields",
            "registered_count",
            "spots_left",
            "is_full",
        ]

    def get_registered_count(self, obj) -> int:
        if hasattr(obj, "_annotated_registered_count"):
            return obj._annotated_registered_count or 0
        return obj.participants.count()

    def get_spots_left(self, obj):
        if not obj.capacity:
            return None
        return max(0, obj.capacity - self.get_registered_count(obj))

    def get_is_full(self, obj) -> bool:
        spots = self.get_spots_left(obj)
        return spots is not None and spots <= 0
