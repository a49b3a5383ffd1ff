from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import events.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("core", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("slug", models.SlugField(max_length=255, unique=True)),
                ("description", models.TextField(blank=True)),
                ("event_date", models.DateField()),
                ("event_time", models.TimeField(blank=True, null=True)),
                ("location", models.CharField(blank=True, max_length=255, null=True)),
                ("capacity", models.PositiveIntegerField(blank=True, help_text="Empty = unlimited", null=True)),
                (
                    "event_mode",
                    models.CharField(choices=[("free", "Free"), ("paid", "Paid")], default="free", max_length=16),
                ),
                (
                    "payment_mode",
                    models.CharField(
                        choices=[("manual", "Manual transfer"), ("gateway", "Payment gateway")],
                        default="manual",
                        max_length=16,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("draft", "Draft"), ("open", "Open"), ("closed", "Closed")],
                        default="draft",
                        max_length=16,
                    ),
                ),
                (
                    "visibility",
                    models.CharField(
                        choices=[("public", "Public"), ("private", "Private")],
                        default="public",
                        max_length=16,
                    ),
                ),
                (
                    "auto_close",
                    models.BooleanField(default=False, help_text="Close automatically after the event starts"),
                ),
                ("whatsapp_cs", models.CharField(blank=True, max_length=32, null=True)),
                ("bank_name", models.CharField(blank=True, max_length=100, null=True)),
                ("account_holder_name", models.CharField(blank=True, max_length=255, null=True)),
                ("account_number", models.CharField(blank=True, max_length=64, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="events",
                        to="core.organization",
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["organization", "event_date"], name="event_org_date_idx"),
                    models.Index(fields=["status", "visibility"], name="event_status_vis_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="TicketType",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("price", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("quota", models.PositiveIntegerField(blank=True, help_text="Empty = unlimited", null=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="ticket_types",
                        to="events.event",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="BulkDiscount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("min_qty", models.PositiveIntegerField()),
                (
                    "discount_type",
                    models.CharField(
                        choices=[("percent", "Percent"), ("fixed", "Fixed amount")],
                        default="percent",
                        max_length=16,
                    ),
                ),
                ("discount_value", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bulk_discounts",
                        to="events.event",
                    ),
                ),
            ],
            options={
                "ordering": ["-min_qty"],
            },
        ),
        migrations.CreateModel(
            name="EventCustomField",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "field_type",
                    models.CharField(
                        choices=[
                            ("text", "Text"),
                            ("textarea", "Textarea"),
                            ("radio", "Radio"),
                            ("checkbox", "Checkbox"),
                        ],
                        default="text",
                        max_length=16,
                    ),
                ),
                ("label", models.CharField(max_length=255)),
                ("required", models.BooleanField(default=False)),
                ("options", models.JSONField(blank=True, default=list)),
                ("display_order", models.IntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="custom_fields",
                        to="events.event",
                    ),
                ),
            ],
            options={
                "ordering": ["display_order", "created_at"],
            },
        ),
        migrations.CreateModel(
            name="Participant",
            fields=[
                (
                    "id",
                    models.CharField(
                        default=events.models.generate_participant_id,
                        editable=False,
                        max_length=32,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("registration_id", models.CharField(db_index=True, max_length=32)),
                ("qr_code", models.CharField(db_index=True, max_length=128)),
                ("order_id", models.CharField(blank=True, db_index=True, max_length=64, null=True)),
                ("full_name", models.CharField(max_length=255)),
                ("email", models.EmailField(max_length=254)),
                ("phone", models.CharField(blank=True, max_length=32, null=True)),
                ("city", models.CharField(blank=True, max_length=100, null=True)),
                ("gender", models.CharField(blank=True, max_length=16, null=True)),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("paid", "Paid"),
                            ("failed", "Failed"),
                            ("refunded", "Refunded"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                (
                    "check_in_status",
                    models.CharField(
                        choices=[("not_arrived", "Not arrived"), ("checked_in", "Checked in")],
                        default="not_arrived",
                        max_length=16,
                    ),
                ),
                ("check_in_time", models.DateTimeField(blank=True, null=True)),
                (
                    "attendance_type",
                    models.CharField(
                        choices=[("offline", "Offline"), ("online", "Online")],
                        default="offline",
                        max_length=16,
                    ),
                ),
                (
                    "whatsapp_status",
                    models.CharField(
                        blank=True,
                        choices=[("sent", "Sent"), ("failed", "Failed")],
                        max_length=16,
                        null=True,
                    ),
                ),
                ("whatsapp_sent_at", models.DateTimeField(blank=True, null=True)),
                ("whatsapp_error", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="participants",
                        to="events.event",
                    ),
                ),
                (
                    "ticket_type",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="participants",
                        to="events.tickettype",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["event", "created_at"], name="prt_event_created_idx"),
                    models.Index(fields=["event", "payment_status"], name="prt_event_payment_idx"),
                    models.Index(fields=["phone"], name="prt_phone_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ParticipantFieldResponse",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("response", models.TextField(blank=True)),
                (
                    "field",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="responses",
                        to="events.eventcustomfield",
                    ),
                ),
                (
                    "participant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="field_responses",
                        to="events.participant",
                    ),
                ),
            ],
            options={
                "unique_together": {("participant", "field")},
            },
        ),
        migrations.CreateModel(
            name="ScanLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("identifier", models.CharField(max_length=128)),
                ("ip_address", models.CharField(blank=True, max_length=64, null=True)),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("check_in", "Check-in"),
                            ("not_found", "Not found"),
                            ("wrong_event", "Wrong event"),
                            ("not_open_yet", "Not open yet"),
                            ("already_checked_in", "Already checked in"),
                            ("payment_unconfirmed", "Payment unconfirmed"),
                        ],
                        max_length=32,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "event",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="scan_logs",
                        to="events.event",
                    ),
                ),
                (
                    "participant",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="scan_logs",
                        to="events.participant",
                    ),
                ),
                (
                    "scanned_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="scan_logs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["event", "created_at"], name="scanlog_event_created_idx"),
                    models.Index(fields=["action", "created_at"], name="scanlog_action_created_idx"),
                ],
            },
        ),
    ]
