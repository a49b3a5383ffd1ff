# events/tests/test_checkin.py
from datetime import date, datetime, time, timedelta
from datetime import timezone as dt_timezone

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APIClient

from core.models import Organization
from events.checkin import CheckInRejected, check_in, find_participant
from events.models import Event, Participant, ScanLog, build_qr_token

User = get_user_model()

WIB = dt_timezone(timedelta(hours=7))


def make_participant(event, n=1, **overrides):
    pid = f"prt_test{n:08d}"
    reg = f"REG-2026-{n:05d}"
    data = {
        "id": pid,
        "event": event,
        "registration_id": reg,
        "qr_code": build_qr_token(event.id, pid, reg),
        "order_id": f"ORDER-1-{n:08x}",
        "full_name": f"Peserta {n}",
        "email": f"p{n}@mail.id",
        "payment_status": Participant.PAYMENT_PAID,
    }
    data.update(overrides)
    return Participant.objects.create(**data)


@override_settings(CHECK_IN_OPENS_MINUTES_BEFORE=60, LOCAL_UTC_OFFSET_HOURS=7)
class CheckInServiceTest(TestCase):
    def setUp(self):
        self.org = Organization.objects.create(name="Komunitas", slug="komunitas")
        self.event = Event.objects.create(
            organization=self.org,
            title="Konser Amal",
            slug="konser-amal",
            event_date=date(2026, 5, 10),
            event_time=time(19, 0),
            status=Event.STATUS_OPEN,
        )
        self.starts_at = datetime(2026, 5, 10, 19, 0, tzinfo=WIB)
        self.during = self.starts_at - timedelta(minutes=30)
        self.participant = make_participant(self.event)

    def test_success_then_already_checked_in(self):
        result = check_in(self.participant.id, now=self.during)

        self.assertEqual(result["message"], "Check-in successful")
        self.assertEqual(result["participant"]["check_in_status"], Participant.CHECK_IN_CHECKED_IN)
        self.participant.refresh_from_db()
        self.assertTrue(self.participant.is_checked_in)
        self.assertEqual(self.participant.check_in_time, self.during)

        with self.assertRaises(CheckInRejected) as ctx:
            check_in(self.participant.id, now=self.during + timedelta(minutes=5))
        self.assertEqual(ctx.exception.reason, "already_checked_in")
        self.assertIsNotNone(ctx.exception.context["check_in_time"])

        actions = list(ScanLog.objects.order_by("id").values_list("action", flat=True))
        self.assertEqual(actions, [ScanLog.ACTION_CHECK_IN, ScanLog.ACTION_ALREADY_CHECKED_IN])

    def test_lookup_by_registration_id_and_qr_token(self):
        self.assertEqual(find_participant(self.participant.registration_id).pk, self.participant.pk)
        self.assertEqual(find_participant(self.participant.qr_code).pk, self.participant.pk)
        self.assertIsNone(find_participant("REG-0000-00000"))

        result = check_in(self.participant.qr_code, now=self.during)
        self.assertEqual(result["participant"]["id"], self.participant.id)

    def test_unknown_identifier(self):
        with self.assertRaises(CheckInRejected) as ctx:
            check_in("does-not-exist", now=self.during)

        self.assertEqual(ctx.exception.reason, "not_found")
        self.assertEqual(ctx.exception.status_code, 404)
        log = ScanLog.objects.get()
        self.assertEqual(log.action, ScanLog.ACTION_NOT_FOUND)
        self.assertIsNone(log.event_id)
        self.assertEqual(log.identifier, "does-not-exist")

    def test_wrong_event(self):
        with self.assertRaises(CheckInRejected) as ctx:
            check_in(self.participant.id, expected_event_id=self.event.id + 100, now=self.during)

        self.assertEqual(ctx.exception.reason, "wrong_event")
        self.assertEqual(ctx.exception.context["participant_event_id"], self.event.id)
        self.participant.refresh_from_db()
        self.assertFalse(self.participant.is_checked_in)

    def test_matching_expected_event_is_accepted(self):
        result = check_in(self.participant.id, expected_event_id=str(self.event.id), now=self.during)
        self.assertEqual(result["participant"]["event_id"], self.event.id)

    def test_window_boundary(self):
        opens = self.starts_at - timedelta(minutes=60)

        with self.assertRaises(CheckInRejected) as ctx:
            check_in(self.participant.id, now=opens - timedelta(seconds=1))
        self.assertEqual(ctx.exception.reason, "not_open_yet")
        self.assertIn("check_in_opens", ctx.exception.context)
        self.assertEqual(ctx.exception.context["event_start"], self.starts_at.isoformat())

        result = check_in(self.participant.id, now=opens)
        self.assertEqual(result["message"], "Check-in successful")

    def test_event_without_time_starts_at_midnight(self):
        self.event.event_time = None
        self.event.save()
        midnight = datetime(2026, 5, 10, 0, 0, tzinfo=WIB)

        with self.assertRaises(CheckInRejected):
            check_in(self.participant.id, now=midnight - timedelta(minutes=61))
        check_in(self.participant.id, now=midnight - timedelta(minutes=59))

    def test_unpaid_participant_is_rejected(self):
        pending = make_participant(self.event, 2, payment_status=Participant.PAYMENT_PENDING)

        with self.assertRaises(CheckInRejected) as ctx:
            check_in(pending.registration_id, now=self.during)

        self.assertEqual(ctx.exception.reason, "payment_unconfirmed")
        pending.refresh_from_db()
        self.assertFalse(pending.is_checked_in)

    def test_timing_is_checked_before_payment(self):
        pending = make_participant(self.event, 2, payment_status=Participant.PAYMENT_PENDING)
        with self.assertRaises(CheckInRejected) as ctx:
            check_in(pending.id, now=self.starts_at - timedelta(days=1))
        self.assertEqual(ctx.exception.reason, "not_open_yet")


class CheckInApiTest(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.org = Organization.objects.create(name="Komunitas", slug="komunitas")
        self.other_org = Organization.objects.create(name="Lain", slug="lain")
        self.staff = User.objects.create_user(username="gate", password="pass", organization=self.org)
        self.outsider = User.objects.create_user(username="outsider", password="pass", organization=self.other_org)

        # Started yesterday, so the window is open whatever the clock says.
        self.event = Event.objects.create(
            organization=self.org,
            title="Workshop",
            slug="workshop",
            event_date=date.today() - timedelta(days=1),
            status=Event.STATUS_OPEN,
        )
        self.participant = make_participant(self.event)

    def test_requires_authentication(self):
        r = self.client.post(reverse("participant-check-in", args=[self.participant.id]), {}, format="json")
        self.assertEqual(r.status_code, 401)

    def test_staff_checks_in(self):
        self.client.force_authenticate(user=self.staff)
        r = self.client.post(
            reverse("participant-check-in", args=[self.participant.registration_id]),
            {"event_id": self.event.id},
            format="json",
            REMOTE_ADDR="10.0.0.9",
        )
        self.assertEqual(r.status_code, 200, r.data)
        self.assertEqual(r.data["participant"]["registration_id"], self.participant.registration_id)

        log = ScanLog.objects.get()
        self.assertEqual(log.scanned_by, self.staff)
        self.assertEqual(log.ip_address, "10.0.0.9")

    def test_second_scan_returns_reason(self):
        self.client.force_authenticate(user=self.staff)
        url = reverse("participant-check-in", args=[self.participant.id])
        self.client.post(url, {}, format="json")
        r = self.client.post(url, {}, format="json")

        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data["reason"], "already_checked_in")
        self.assertIn("error", r.data)

    def test_unknown_identifier_is_404(self):
        self.client.force_authenticate(user=self.staff)
        r = self.client.post(reverse("participant-check-in", args=["nope"]), {}, format="json")
        self.assertEqual(r.status_code, 404)
        self.assertEqual(r.data["reason"], "not_found")

    def test_staff_of_another_organization_is_forbidden(self):
        self.client.force_authenticate(user=self.outsider)
        r = self.client.post(reverse("participant-check-in", args=[self.participant.id]), {}, format="json")

        self.assertEqual(r.status_code, 403)
        self.participant.refresh_from_db()
        self.assertFalse(self.participant.is_checked_in)
