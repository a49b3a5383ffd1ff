from datetime import time, timedelta

from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
from django.utils import timezone

from core.constants import (
    SETTING_MIDTRANS_ENVIRONMENT,
    SETTING_MIDTRANS_SERVER_KEY,
    SETTING_NOTIFICATION_PREFERENCES,
)
from core.models import Organization
from core.settings_store import save_setting
from events.models import BulkDiscount, Event, EventCustomField, TicketType

User = get_user_model()


class Command(BaseCommand):
    help = "Seeds the database with a demo organization, staff accounts and events"

    def add_arguments(self, parser):
        parser.add_argument(
            "--midtrans-server-key",
            default="",
            help="Sandbox server key stored on the demo organization",
        )

    def handle(self, *args, **options):
        self.stdout.write("🌱 Seeding data...")

        # 1. Organization
        org, _ = Organization.objects.get_or_create(
            slug="komunitas-demo",
            defaults={"name": "Komunitas Demo"},
        )
        self.stdout.write(f"Used Organization: {org.name}")

        save_setting(SETTING_NOTIFICATION_PREFERENCES, {"whatsapp": {"enabled": True}}, org.id)
        if options["midtrans_server_key"]:
            save_setting(SETTING_MIDTRANS_SERVER_KEY, options["midtrans_server_key"], org.id)
            save_setting(SETTING_MIDTRANS_ENVIRONMENT, "sandbox", org.id)

        # 2. Users
        admin, _ = User.objects.get_or_create(
            username="admin",
            defaults={"email": "admin@example.com", "role": User.ROLE_ADMIN},
        )
        if not admin.check_password("admin"):
            admin.set_password("admin")
            admin.save()

        staff, _ = User.objects.get_or_create(
            username="panitia",
            defaults={"email": "panitia@example.com", "organization": org},
        )
        staff.set_password("password")
        staff.save()

        # 3. Events
        today = timezone.localdate()
        events_data = [
            {
                "slug": "meetup-python-jakarta",
                "title": "Meetup Python Jakarta",
                "description": "Sharing session about Django, Celery and async Python.",
                "event_date": today + timedelta(days=7),
                "event_time": time(19, 0),
                "location": "Co-working Space, Jakarta Selatan",
                "capacity": 80,
                "event_mode": Event.MODE_FREE,
                "tickets": [],
                "fields": [("Institusi", EventCustomField.TYPE_TEXT, [], True)],
            },
            {
                "slug": "konser-amal-2026",
                "title": "Konser Amal 2026",
                "description": "Charity concert. Proceeds go to the local library fund.",
                "event_date": today + timedelta(days=21),
                "event_time": time(18, 30),
                "location": "Gedung Kesenian, Bandung",
                "capacity": 300,
                "event_mode": Event.MODE_PAID,
                "payment_mode": Event.PAYMENT_GATEWAY,
                "tickets": [("Regular", 75000, 250), ("VIP", 150000, 50)],
                "discounts": [(3, BulkDiscount.TYPE_PERCENT, 10), (5, BulkDiscount.TYPE_PERCENT, 15)],
                "fields": [("Ukuran Kaos", EventCustomField.TYPE_RADIO, ["S", "M", "L", "XL"], False)],
            },
            {
                "slug": "workshop-data",
                "title": "Workshop Data Analysis",
                "description": "Hands-on pandas workshop. Bring a laptop.",
                "event_date": today + timedelta(days=14),
                "event_time": time(9, 0),
                "location": "Online",
                "capacity": 40,
                "event_mode": Event.MODE_PAID,
                "payment_mode": Event.PAYMENT_MANUAL,
                "bank_name": "BCA",
                "account_holder_name": "Komunitas Demo",
                "account_number": "1234567890",
                "tickets": [("Peserta", 50000, None)],
                "fields": [],
            },
        ]

        for data in events_data:
            tickets = data.pop("tickets")
            discounts = data.pop("discounts", [])
            fields = data.pop("fields")
            slug = data.pop("slug")

            event, created = Event.objects.get_or_create(
                slug=slug,
                defaults={**data, "organization": org, "status": Event.STATUS_OPEN},
            )
            if not created:
                self.stdout.write(f"Skipped existing event: {event.title}")
                continue

            for name, price, quota in tickets:
                TicketType.objects.create(event=event, name=name, price=price, quota=quota)
            for min_qty, discount_type, value in discounts:
                BulkDiscount.objects.create(
                    event=event, min_qty=min_qty, discount_type=discount_type, discount_value=value
                )
            for order, (label, field_type, choices, required) in enumerate(fields):
                EventCustomField.objects.create(
                    event=event,
                    label=label,
                    field_type=field_type,
                    options=choices,
                    required=required,
                    display_order=order,
                )
            self.stdout.write(f"Created event: {event.title}")

        self.stdout.write(self.style.SUCCESS("✅ Seeding complete!"))
