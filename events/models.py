# etiket-backend/events/models.py
import random
import time
import uuid

from django.conf import settings
from django.db import models


def generate_participant_id():
    return f"prt_{uuid.uuid4().hex[:12]}"


def generate_registration_id(year):
    """Human readable id shown on tickets: REG-<year>-<5 digits>."""
    return f"REG-{year}-{random.randint(0, 99999):05d}"


def generate_order_id():
    """Groups the participants of one registration batch and their payment."""
    return f"ORDER-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def build_qr_token(event_id, participant_id, registration_id):
    return f"{event_id}:{participant_id}:{registration_id}"


class Event(models.Model):
    STATUS_DRAFT = "draft"
    STATUS_OPEN = "open"
    STATUS_CLOSED = "closed"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_OPEN, "Open"),
        (STATUS_CLOSED, "Closed"),
    ]

    MODE_FREE = "free"
    MODE_PAID = "paid"

    MODE_CHOICES = [
        (MODE_FREE, "Free"),
        (MODE_PAID, "Paid"),
    ]

    PAYMENT_MANUAL = "manual"
    PAYMENT_GATEWAY = "gateway"

    PAYMENT_MODE_CHOICES = [
        (PAYMENT_MANUAL, "Manual transfer"),
        (PAYMENT_GATEWAY, "Payment gateway"),
    ]

    VISIBILITY_PUBLIC = "public"
    VISIBILITY_PRIVATE = "private"

    VISIBILITY_CHOICES = [
        (VISIBILITY_PUBLIC, "Public"),
        (VISIBILITY_PRIVATE, "Private"),
    ]

    organization = models.ForeignKey(
        "core.Organization",
        on_delete=models.CASCADE,
        related_name="events",
    )
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)
    description = models.TextField(blank=True)
    event_date = models.DateField()
    event_time = models.TimeField(blank=True, null=True)
    location = models.CharField(max_length=255, blank=True, null=True)
    capacity = models.PositiveIntegerField(blank=True, null=True, help_text="Empty = unlimited")

    event_mode = models.CharField(max_length=16, choices=MODE_CHOICES, default=MODE_FREE)
    payment_mode = models.CharField(max_length=16, choices=PAYMENT_MODE_CHOICES, default=PAYMENT_MANUAL)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_DRAFT)
    visibility = models.CharField(max_length=16, choices=VISIBILITY_CHOICES, default=VISIBILITY_PUBLIC)
    auto_close = models.BooleanField(default=False, help_text="Close automatically after the event starts")

    # Manual payment instructions
    whatsapp_cs = models.CharField(max_length=32, blank=True, null=True)
    bank_name = models.CharField(max_length=100, blank=True, null=True)
    account_holder_name = models.CharField(max_length=255, blank=True, null=True)
    account_number = models.CharField(max_length=64, blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(
                fields=['organization', 'event_date'],
                name='event_org_date_idx',
            ),
            models.Index(
                fields=['status', 'visibility'],
                name='event_status_vis_idx',
            ),
        ]

    def __str__(self):
        return self.title

    @property
    def starts_at(self):
        from .datetime_utils import event_start
        return event_start(self)

    @property
    def effective_status(self):
        """
        Stored status, except that an open auto-close event reads as closed
        once it is past its start + grace period.
        """
        from .datetime_utils import is_auto_closed
        if self.status == self.STATUS_OPEN and self.auto_close and is_auto_closed(self):
            return self.STATUS_CLOSED
        return self.status

    @property
    def is_free(self):
        return self.event_mode == self.MODE_FREE

    @property
    def has_bank_details(self):
        return bool(self.bank_name and self.account_holder_name and self.account_number)


class TicketType(models.Model):
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="ticket_types")
    name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    quota = models.PositiveIntegerField(blank=True, null=True, help_text="Empty = unlimited")

    def __str__(self):
        return f"{self.name} ({self.event.title})"


class BulkDiscount(models.Model):
    """Group pricing tier: applies when an order has at least min_qty tickets."""
    TYPE_PERCENT = "percent"
    TYPE_FIXED = "fixed"

    TYPE_CHOICES = [
        (TYPE_PERCENT, "Percent"),
        (TYPE_FIXED, "Fixed amount"),
    ]

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="bulk_discounts")
    min_qty = models.PositiveIntegerField()
    discount_type = models.CharField(max_length=16, choices=TYPE_CHOICES, default=TYPE_PERCENT)
    discount_value = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        ordering = ["-min_qty"]

    def __str__(self):
        return f"{self.event.title}: {self.min_qty}+ -> {self.discount_value} {self.discount_type}"


class EventCustomField(models.Model):
    """
    Organizer-defined question asked on the registration form.
    """
    TYPE_TEXT = "text"
    TYPE_TEXTAREA = "textarea"
    TYPE_RADIO = "radio"
    TYPE_CHECKBOX = "checkbox"

    TYPE_CHOICES = [
        (TYPE_TEXT, "Text"),
        (TYPE_TEXTAREA, "Textarea"),
        (TYPE_RADIO, "Radio"),
        (TYPE_CHECKBOX, "Checkbox"),
    ]

    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="custom_fields")
    field_type = models.CharField(max_length=16, choices=TYPE_CHOICES, default=TYPE_TEXT)
    label = models.CharField(max_length=255)
    required = models.BooleanField(default=False)
    options = models.JSONField(default=list, blank=True)
    display_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["display_order", "created_at"]

    def __str__(self):
        return f"{self.label} ({self.event.title})"

    @property
    def needs_options(self):
        return self.field_type in (self.TYPE_RADIO, self.TYPE_CHECKBOX)


class Participant(models.Model):
    PAYMENT_PENDING = "pending"
    PAYMENT_PAID = "paid"
    PAYMENT_FAILED = "failed"
    PAYMENT_REFUNDED = "refunded"

    PAYMENT_CHOICES = [
        (PAYMENT_PENDING, "Pending"),
        (PAYMENT_PAID, "Paid"),
        (PAYMENT_FAILED, "Failed"),
        (PAYMENT_REFUNDED, "Refunded"),
    ]

    CHECK_IN_NOT_ARRIVED = "not_arrived"
    CHECK_IN_CHECKED_IN = "checked_in"

    CHECK_IN_CHOICES = [
        (CHECK_IN_NOT_ARRIVED, "Not arrived"),
        (CHECK_IN_CHECKED_IN, "Checked in"),
    ]

    ATTENDANCE_OFFLINE = "offline"
    ATTENDANCE_ONLINE = "online"

    ATTENDANCE_CHOICES = [
        (ATTENDANCE_OFFLINE, "Offline"),
        (ATTENDANCE_ONLINE, "Online"),
    ]

    WHATSAPP_SENT = "sent"
    WHATSAPP_FAILED = "failed"

    WHATSAPP_CHOICES = [
        (WHATSAPP_SENT, "Sent"),
        (WHATSAPP_FAILED, "Failed"),
    ]

    id = models.CharField(primary_key=True, max_length=32, default=generate_participant_id, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="participants")
    ticket_type = models.ForeignKey(
        TicketType,
        on_delete=models.SET_NULL,
        related_name="participants",
        null=True,
        blank=True,
    )
    registration_id = models.CharField(max_length=32, db_index=True)
    qr_code = models.CharField(max_length=128, db_index=True)
    order_id = models.CharField(max_length=64, db_index=True, blank=True, null=True)

    full_name = models.CharField(max_length=255)
    email = models.EmailField()
    phone = models.CharField(max_length=32, blank=True, null=True)
    city = models.CharField(max_length=100, blank=True, null=True)
    gender = models.CharField(max_length=16, blank=True, null=True)

    payment_status = models.CharField(max_length=16, choices=PAYMENT_CHOICES, default=PAYMENT_PENDING)
    check_in_status = models.CharField(max_length=16, choices=CHECK_IN_CHOICES, default=CHECK_IN_NOT_ARRIVED)
    check_in_time = models.DateTimeField(blank=True, null=True)
    attendance_type = models.CharField(max_length=16, choices=ATTENDANCE_CHOICES, default=ATTENDANCE_OFFLINE)

    whatsapp_status = models.CharField(max_length=16, choices=WHATSAPP_CHOICES, blank=True, null=True)
    whatsapp_sent_at = models.DateTimeField(blank=True, null=True)
    whatsapp_error = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=['event', 'created_at'],
                name='prt_event_created_idx',
            ),
            models.Index(
                fields=['event', 'payment_status'],
                name='prt_event_payment_idx',
            ),
            models.Index(
                fields=['phone'],
                name='prt_phone_idx',
            ),
        ]

    def __str__(self):
        return f"{self.full_name} ({self.registration_id})"

    @property
    def is_paid(self):
        return self.payment_status == self.PAYMENT_PAID

    @property
    def is_checked_in(self):
        return self.check_in_status == self.CHECK_IN_CHECKED_IN


class ParticipantFieldResponse(models.Model):
    participant = models.ForeignKey(Participant, on_delete=models.CASCADE, related_name="field_responses")
    field = models.ForeignKey(EventCustomField, on_delete=models.CASCADE, related_name="responses")
    response = models.TextField(blank=True)

    class Meta:
        unique_together = ("participant", "field")

    def __str__(self):
        return f"{self.participant_id} / {self.field.label}"


class ScanLog(models.Model):
    """
    Audit log for check-in attempts.
    Stores who scanned, what identifier, which event/participant (if known),
    IP address, action type, and timestamp.
    """
    ACTION_CHECK_IN = "check_in"
    ACTION_NOT_FOUND = "not_found"
    ACTION_WRONG_EVENT = "wrong_event"
    ACTION_NOT_OPEN_YET = "not_open_yet"
    ACTION_ALREADY_CHECKED_IN = "already_checked_in"
    ACTION_PAYMENT_UNCONFIRMED = "payment_unconfirmed"

    ACTION_CHOICES = [
        (ACTION_CHECK_IN, "Check-in"),
        (ACTION_NOT_FOUND, "Not found"),
        (ACTION_WRONG_EVENT, "Wrong event"),
        (ACTION_NOT_OPEN_YET, "Not open yet"),
        (ACTION_ALREADY_CHECKED_IN, "Already checked in"),
        (ACTION_PAYMENT_UNCONFIRMED, "Payment unconfirmed"),
    ]

    event = models.ForeignKey(
        Event,
        on_delete=models.CASCADE,
        related_name="scan_logs",
        null=True,
        blank=True,
    )
    participant = models.ForeignKey(
        Participant,
        on_delete=models.SET_NULL,
        related_name="scan_logs",
        null=True,
        blank=True,
    )
    scanned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="scan_logs",
        null=True,
        blank=True,
    )
    identifier = models.CharField(max_length=128)
    ip_address = models.CharField(max_length=64, null=True, blank=True)
    action = models.CharField(max_length=32, choices=ACTION_CHOICES)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(
                fields=["event", "created_at"],
                name="scanlog_event_created_idx",
            ),
            models.Index(
                fields=["action", "created_at"],
                name="scanlog_action_created_idx",
            ),
        ]

    def __str__(self):
        return f"{self.scanned_by} - {self.identifier} - {self.action}"
