# notifications/tests/test_views.py
from datetime import date, timedelta
from unittest.mock import Mock, patch

import requests
from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from core.constants import SETTING_WAHA_API_KEY, SETTING_WAHA_API_URL, SETTING_WAHA_SESSION
from core.models import Organization
from core.settings_store import save_setting
from events.models import Event, Participant, TicketType
from notifications.tasks import schedule_ticket_notifications, send_ticket_notification_task

User = get_user_model()


class NotificationTestBase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.org = Organization.objects.create(name="Org", slug="org")
        self.other_org = Organization.objects.create(name="Other", slug="other")
        self.staff = User.objects.create_user(username="staff", password="pass", organization=self.org)
        self.outsider = User.objects.create_user(username="outsider", password="pass", organization=self.other_org)
        save_setting(SETTING_WAHA_API_URL, "https://relay.example.com", self.org.id)
        save_setting(SETTING_WAHA_API_KEY, "secret", self.org.id)
        save_setting(SETTING_WAHA_SESSION, "tiket", self.org.id)

        self.event = Event.objects.create(
            organization=self.org,
            title="Konser Amal",
            slug="konser-amal",
            event_date=date.today() + timedelta(days=7),
            status=Event.STATUS_OPEN,
            event_mode=Event.MODE_PAID,
            bank_name="BCA",
            account_holder_name="Panitia",
            account_number="1234567890",
        )
        self.ticket = TicketType.objects.create(event=self.event, name="Regular", price=75000)

    def make_participant(self, **overrides):
        data = {
            "event": self.event,
            "ticket_type": self.ticket,
            "registration_id": f"REG-2026-{Participant.objects.count() + 1:05d}",
            "qr_code": f"qr-{Participant.objects.count() + 1}",
            "full_name": "Budi",
            "email": "budi@mail.id",
            "phone": "081234567890",
            "payment_status": Participant.PAYMENT_PAID,
        }
        data.update(overrides)
        return Participant.objects.create(**data)


@patch("notifications.dispatcher.time.sleep")
@patch("notifications.waha.requests.post")
class ResendNotificationTest(NotificationTestBase):
    def test_paid_participant_gets_ticket_message(self, post, sleep):
        participant = self.make_participant()
        post.return_value = Mock(ok=True, status_code=201, json=Mock(return_value={"id": "msg-1"}))
        self.client.force_authenticate(user=self.staff)

        r = self.client.post(reverse("participant-resend-notification", args=[participant.id]))

        self.assertEqual(r.status_code, 200, r.data)
        self.assertEqual(r.data["template"], "registration")
        self.assertEqual(r.data["message_id"], "msg-1")
        sent_text = post.call_args_list[-1].kwargs["json"]["text"]
        self.assertIn("PENDAFTARAN BERHASIL", sent_text)
        self.assertIn(participant.registration_id, sent_text)

    def test_pending_participant_gets_payment_instructions(self, post, sleep):
        participant = self.make_participant(payment_status=Participant.PAYMENT_PENDING)
        post.return_value = Mock(ok=True, status_code=201, json=Mock(return_value={"id": "msg-2"}))
        self.client.force_authenticate(user=self.staff)

        r = self.client.post(reverse("participant-resend-notification", args=[participant.registration_id]))

        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["template"], "payment_pending")
        sent_text = post.call_args_list[-1].kwargs["json"]["text"]
        self.assertIn("Rp 75.000", sent_text)
        self.assertIn("Bank: *BCA*", sent_text)

    def test_relay_failure_is_502(self, post, sleep):
        participant = self.make_participant()
        post.return_value = Mock(ok=False, status_code=503, text="unavailable")
        self.client.force_authenticate(user=self.staff)

        r = self.client.post(reverse("participant-resend-notification", args=[participant.id]))

        self.assertEqual(r.status_code, 502)
        self.assertEqual(r.data["error"], "WAHA API error: 503 - unavailable")

    def test_participant_without_phone(self, post, sleep):
        participant = self.make_participant(phone=None)
        self.client.force_authenticate(user=self.staff)
        r = self.client.post(reverse("participant-resend-notification", args=[participant.id]))
        self.assertEqual(r.status_code, 400)
        post.assert_not_called()

    def test_outsider_is_forbidden(self, post, sleep):
        participant = self.make_participant()
        self.client.force_authenticate(user=self.outsider)
        r = self.client.post(reverse("participant-resend-notification", args=[participant.id]))
        self.assertEqual(r.status_code, 403)
        post.assert_not_called()


@patch("notifications.waha.requests.get")
class WhatsAppStatusTest(NotificationTestBase):
    def test_working_session(self, get):
        get.return_value = Mock(ok=True, status_code=200, json=Mock(return_value={"status": "WORKING"}))
        self.client.force_authenticate(user=self.staff)

        r = self.client.get(reverse("organization-whatsapp-status", args=[self.org.id]))

        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["status"], "ok")
        self.assertEqual(r.data["mode"], "isolated")
        self.assertEqual(r.data["session"], "tiket")
        self.assertTrue(r.data["connected"])
        self.assertTrue(r.data["working"])
        self.assertEqual(get.call_args.args[0], "https://relay.example.com/api/sessions/tiket")

    def test_session_not_working(self, get):
        get.return_value = Mock(ok=True, status_code=200, json=Mock(return_value={"status": "SCAN_QR_CODE"}))
        self.client.force_authenticate(user=self.staff)
        r = self.client.get(reverse("organization-whatsapp-status", args=[self.org.id]))
        self.assertTrue(r.data["connected"])
        self.assertFalse(r.data["working"])
        self.assertEqual(r.data["session_status"], "SCAN_QR_CODE")

    def test_unreachable_relay(self, get):
        get.side_effect = requests.Timeout("timed out")
        self.client.force_authenticate(user=self.staff)
        r = self.client.get(reverse("organization-whatsapp-status", args=[self.org.id]))
        self.assertEqual(r.status_code, 200)
        self.assertFalse(r.data["connected"])
        self.assertEqual(r.data["error"], "timed out")

    def test_misconfigured_organization_skips_session_check(self, get):
        self.client.force_authenticate(user=self.outsider)
        r = self.client.get(reverse("organization-whatsapp-status", args=[self.other_org.id]))
        self.assertEqual(r.data["status"], "misconfigured")
        get.assert_not_called()

    def test_other_organization_is_forbidden(self, get):
        self.client.force_authenticate(user=self.outsider)
        r = self.client.get(reverse("organization-whatsapp-status", args=[self.org.id]))
        self.assertEqual(r.status_code, 403)


class TicketNotificationTaskTest(NotificationTestBase):
    @patch("notifications.tasks.dispatch")
    def test_task_sends_registration_message(self, dispatch):
        participant = self.make_participant()
        dispatch.return_value = {"success": True, "message_id": "m"}

        self.assertEqual(send_ticket_notification_task(participant.id), "sent")

        org_id, phone, message = dispatch.call_args.args
        self.assertEqual(org_id, self.org.id)
        self.assertEqual(phone, participant.phone)
        self.assertIn(participant.registration_id, message)
        self.assertEqual(dispatch.call_args.kwargs["participant_id"], participant.id)

    @patch("notifications.tasks.dispatch")
    def test_task_outcomes(self, dispatch):
        dispatch.return_value = {"success": False, "error": "down"}
        self.assertEqual(send_ticket_notification_task("prt_missing"), "participant_not_found")
        self.assertEqual(send_ticket_notification_task(self.make_participant(phone="").id), "no_phone")
        self.assertEqual(send_ticket_notification_task(self.make_participant().id), "failed")

    def test_schedule_runs_after_commit(self):
        first = self.make_participant()
        second = self.make_participant(phone=None)

        with patch.object(send_ticket_notification_task, "delay") as delay:
            with self.captureOnCommitCallbacks(execute=True):
                scheduled = schedule_ticket_notifications([first, second])

        self.assertEqual(scheduled, 1)
        delay.assert_called_once_with(first.id)

    def test_broker_failure_is_swallowed(self):
        participant = self.make_participant()
        with patch.object(send_ticket_notification_task, "delay", side_effect=ConnectionError("broker down")):
            with self.captureOnCommitCallbacks(execute=True):
                self.assertEqual(schedule_ticket_notifications([participant]), 1)
