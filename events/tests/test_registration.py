# events/tests/test_registration.py
from datetime import date, timedelta
from unittest.mock import patch

from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from core.models import Organization
from events.models import Event, EventCustomField, Participant, ParticipantFieldResponse, TicketType
from events.registration import RegistrationError, normalize_registration_payload, register
from notifications.tasks import send_ticket_notification_task


def make_event(organization, **overrides):
    data = {
        "organization": organization,
        "title": "Jakarta Tech Meetup",
        "slug": f"meetup-{Event.objects.count() + 1}",
        "event_date": date.today() + timedelta(days=30),
        "status": Event.STATUS_OPEN,
        "event_mode": Event.MODE_FREE,
    }
    data.update(overrides)
    return Event.objects.create(**data)


class NormalizePayloadTest(TestCase):
    def test_bare_list(self):
        event_id, entries, donation = normalize_registration_payload(
            [{"event_id": 7, "full_name": "A", "email": "a@x.id"}, {"full_name": "B", "email": "b@x.id"}]
        )
        self.assertEqual(event_id, 7)
        self.assertEqual(len(entries), 2)
        self.assertFalse(donation)

    def test_wrapper_object(self):
        event_id, entries, donation = normalize_registration_payload(
            {"event_id": 3, "donation_amount": 25000, "participants": [{"full_name": "A", "email": "a@x.id"}]}
        )
        self.assertEqual(event_id, 3)
        self.assertEqual(len(entries), 1)
        self.assertTrue(donation)

    def test_single_object(self):
        event_id, entries, donation = normalize_registration_payload(
            {"event_id": 9, "full_name": "A", "email": "a@x.id", "include_donation": "true"}
        )
        self.assertEqual(event_id, 9)
        self.assertEqual(entries[0]["full_name"], "A")
        self.assertTrue(donation)

    def test_url_event_id_wins(self):
        event_id, _, _ = normalize_registration_payload({"event_id": 1, "full_name": "A", "email": "a@x.id"}, 5)
        self.assertEqual(event_id, 5)

    def test_zero_donation_is_not_a_donation(self):
        _, _, donation = normalize_registration_payload({"full_name": "A", "email": "a@x.id", "donation_amount": "0"})
        self.assertFalse(donation)

    def test_rejects_scalar_body(self):
        with self.assertRaises(RegistrationError):
            normalize_registration_payload("nope")


class RegistrationServiceTest(TestCase):
    def setUp(self):
        self.org = Organization.objects.create(name="Komunitas", slug="komunitas")
        self.event = make_event(self.org, capacity=3)

    def entry(self, n, **extra):
        data = {"full_name": f"Peserta {n}", "email": f"p{n}@mail.id", "phone": f"08123456{n:04d}"}
        data.update(extra)
        return data

    def test_free_event_without_donation_is_paid_and_schedules_dispatch(self):
        with patch.object(send_ticket_notification_task, "delay") as delay:
            with self.captureOnCommitCallbacks(execute=True) as callbacks:
                result = register(self.event.id, [self.entry(1)])

        self.assertEqual(result["payment_status"], Participant.PAYMENT_PAID)
        self.assertEqual(len(callbacks), 1)
        delay.assert_called_once_with(result["id"])

    def test_free_event_with_donation_stays_pending_without_dispatch(self):
        with patch.object(send_ticket_notification_task, "delay") as delay:
            with self.captureOnCommitCallbacks(execute=True) as callbacks:
                result = register(self.event.id, [self.entry(1)], donation_requested=True)

        self.assertEqual(result["payment_status"], Participant.PAYMENT_PENDING)
        self.assertEqual(callbacks, [])
        delay.assert_not_called()

    def test_paid_event_is_pending(self):
        event = make_event(self.org, event_mode=Event.MODE_PAID)
        with self.captureOnCommitCallbacks() as callbacks:
            result = register(event.id, [self.entry(1)])
        self.assertEqual(result["payment_status"], Participant.PAYMENT_PENDING)
        self.assertEqual(callbacks, [])

    def test_participants_without_phone_are_not_scheduled(self):
        with self.captureOnCommitCallbacks() as callbacks:
            register(self.event.id, [self.entry(1), self.entry(2, phone="")])
        self.assertEqual(len(callbacks), 1)

    def test_batch_up_to_capacity_is_admitted(self):
        result = register(self.event.id, [self.entry(n) for n in range(1, 4)])

        self.assertEqual(result["participant_count"], 3)
        self.assertEqual(Participant.objects.filter(event=self.event).count(), 3)
        order_ids = set(Participant.objects.filter(event=self.event).values_list("order_id", flat=True))
        self.assertEqual(order_ids, {result["order_id"]})
        self.assertNotIn("registration_id", result)

    def test_batch_over_capacity_is_rejected_entirely(self):
        with self.assertRaises(RegistrationError) as ctx:
            register(self.event.id, [self.entry(n) for n in range(1, 5)])

        self.assertIn("full", ctx.exception.message)
        self.assertEqual(Participant.objects.filter(event=self.event).count(), 0)

    def test_existing_participants_count_against_capacity(self):
        register(self.event.id, [self.entry(1), self.entry(2)])
        with self.assertRaises(RegistrationError) as ctx:
            register(self.event.id, [self.entry(3), self.entry(4)])
        self.assertEqual(ctx.exception.context["spots_left"], 1)
        self.assertEqual(Participant.objects.filter(event=self.event).count(), 2)

    def test_missing_required_field_aborts_batch(self):
        field = EventCustomField.objects.create(event=self.event, label="Institusi", required=True)
        entries = [
            self.entry(1, custom_fields=[{"field_id": field.id, "response": "UI"}]),
            self.entry(2, custom_fields=[{"field_id": field.id, "response": "  "}]),
        ]

        with self.assertRaises(RegistrationError) as ctx:
            register(self.event.id, entries)

        self.assertEqual(ctx.exception.context["participant_index"], 2)
        self.assertEqual(ctx.exception.context["field_label"], "Institusi")
        self.assertIn("Participant 2", ctx.exception.message)
        self.assertEqual(Participant.objects.count(), 0)
        self.assertEqual(ParticipantFieldResponse.objects.count(), 0)

    def test_custom_field_responses_are_stored(self):
        text = EventCustomField.objects.create(event=self.event, label="Institusi", required=True)
        multi = EventCustomField.objects.create(
            event=self.event,
            label="Topik",
            field_type=EventCustomField.TYPE_CHECKBOX,
            options=["AI", "Web", "Data"],
        )
        result = register(self.event.id, [self.entry(1, custom_fields=[
            {"field_id": text.id, "response": "UGM"},
            {"field_id": multi.id, "response": ["AI", "Data"]},
        ])])

        responses = dict(
            ParticipantFieldResponse.objects
            .filter(participant_id=result["id"])
            .values_list("field__label", "response")
        )
        self.assertEqual(responses, {"Institusi": "UGM", "Topik": "AI, Data"})

    def test_required_checkbox_needs_a_selection(self):
        EventCustomField.objects.create(
            event=self.event,
            label="Sesi",
            field_type=EventCustomField.TYPE_CHECKBOX,
            options=["Pagi"],
            required=True,
        )
        field_id = self.event.custom_fields.get().id
        with self.assertRaises(RegistrationError):
            register(self.event.id, [self.entry(1, custom_fields=[{"field_id": field_id, "response": []}])])

    def test_missing_name_or_email(self):
        with self.assertRaises(RegistrationError) as ctx:
            register(self.event.id, [self.entry(1), {"full_name": "No Email"}])
        self.assertEqual(ctx.exception.context["participant_index"], 2)

    def test_attendance_type_must_be_offline_or_online(self):
        with self.assertRaises(RegistrationError) as ctx:
            register(self.event.id, [self.entry(1), self.entry(2, attendance_type="vip-backstage")])
        self.assertEqual(ctx.exception.context["participant_index"], 2)
        self.assertEqual(Participant.objects.filter(event=self.event).count(), 0)

        result = register(self.event.id, [self.entry(3, attendance_type="online"), self.entry(4)])
        stored = Participant.objects.filter(order_id=result["order_id"]).order_by("email")
        self.assertEqual(
            list(stored.values_list("attendance_type", flat=True)),
            [Participant.ATTENDANCE_ONLINE, Participant.ATTENDANCE_OFFLINE],
        )

    def test_event_must_be_open(self):
        draft = make_event(self.org, status=Event.STATUS_DRAFT)
        with self.assertRaises(RegistrationError):
            register(draft.id, [self.entry(1)])

    def test_auto_closed_event_rejects_registration(self):
        past = make_event(self.org, event_date=date.today() - timedelta(days=2), auto_close=True)
        self.assertEqual(past.effective_status, Event.STATUS_CLOSED)
        with self.assertRaises(RegistrationError):
            register(past.id, [self.entry(1)])

    def test_ticket_type_must_belong_to_event(self):
        other = make_event(self.org)
        foreign_ticket = TicketType.objects.create(event=other, name="VIP", price=100000)
        with self.assertRaises(RegistrationError):
            register(self.event.id, [self.entry(1, ticket_type_id=foreign_ticket.id)])

    def test_ticket_quota_is_enforced(self):
        ticket = TicketType.objects.create(event=self.event, name="Early Bird", price=0, quota=1)
        register(self.event.id, [self.entry(1, ticket_type_id=ticket.id)])
        with self.assertRaises(RegistrationError):
            register(self.event.id, [self.entry(2, ticket_type_id=ticket.id)])

    def test_identifiers_have_expected_shape(self):
        result = register(self.event.id, [self.entry(1)])
        participant = Participant.objects.get(pk=result["id"])

        self.assertTrue(participant.id.startswith("prt_"))
        self.assertRegex(participant.registration_id, r"^REG-\d{4}-\d{5}$")
        self.assertEqual(
            participant.qr_code,
            f"{self.event.id}:{participant.id}:{participant.registration_id}",
        )
        self.assertTrue(participant.order_id.startswith("ORDER-"))
        self.assertEqual(result["redirect_url"], f"/payment/{participant.order_id}")


class RegistrationApiTest(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.org = Organization.objects.create(name="Komunitas", slug="komunitas")
        self.event = make_event(self.org, capacity=2)

    def test_register_single_object(self):
        r = self.client.post(
            reverse("event-register"),
            {"event_id": self.event.id, "full_name": "Budi", "email": "budi@mail.id"},
            format="json",
        )
        self.assertEqual(r.status_code, 201, r.data)
        self.assertEqual(r.data["participant_count"], 1)
        self.assertEqual(r.data["full_name"], "Budi")
        self.assertEqual(r.data["event_title"], self.event.title)
        self.assertEqual(r.data["participants"][0]["registration_id"], r.data["registration_id"])

    def test_register_wrapper_on_event_url(self):
        r = self.client.post(
            reverse("event-register-for-event", args=[self.event.id]),
            {"participants": [
                {"full_name": "Budi", "email": "budi@mail.id"},
                {"full_name": "Sari", "email": "sari@mail.id"},
            ]},
            format="json",
        )
        self.assertEqual(r.status_code, 201, r.data)
        self.assertEqual(r.data["participant_count"], 2)

    def test_over_capacity_returns_400(self):
        r = self.client.post(
            reverse("event-register"),
            [{"event_id": self.event.id, "full_name": f"P{n}", "email": f"p{n}@mail.id"} for n in range(3)],
            format="json",
        )
        self.assertEqual(r.status_code, 400)
        self.assertIn("error", r.data)
        self.assertEqual(Participant.objects.count(), 0)

    def test_missing_event_id_returns_400(self):
        r = self.client.post(reverse("event-register"), {"full_name": "Budi", "email": "b@mail.id"}, format="json")
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data["error"], "Event ID is required.")

    def test_unknown_event_returns_404(self):
        r = self.client.post(
            reverse("event-register"),
            {"event_id": 999999, "full_name": "Budi", "email": "b@mail.id"},
            format="json",
        )
        self.assertEqual(r.status_code, 404)
