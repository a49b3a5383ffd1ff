# notifications/tests/test_resolver.py
from django.test import SimpleTestCase, TestCase

from core.constants import (
    SETTING_NOTIFICATION_PREFERENCES,
    SETTING_WAHA_API_KEY,
    SETTING_WAHA_API_URL,
    SETTING_WAHA_ENABLED,
    SETTING_WAHA_SESSION,
)
from core.models import Organization
from core.settings_store import save_setting
from notifications.resolver import (
    MODE_GLOBAL,
    MODE_ISOLATED,
    STATE_DISABLED_GLOBAL,
    STATE_DISABLED_ORGANIZATION,
    STATE_ENABLED,
    STATUS_DISABLED_GLOBAL,
    STATUS_DISABLED_ORGANIZATION,
    STATUS_MISCONFIGURED,
    STATUS_OK,
    normalize_base_url,
    resolve_channel_state,
    resolve_whatsapp_config,
)


class ChannelStateTest(SimpleTestCase):
    def test_explicit_preference_off_wins(self):
        self.assertEqual(
            resolve_channel_state(False, True, True, isolated=True),
            STATE_DISABLED_ORGANIZATION,
        )

    def test_legacy_flag_applies_only_without_preference(self):
        self.assertEqual(
            resolve_channel_state(None, False, None, isolated=True),
            STATE_DISABLED_ORGANIZATION,
        )
        self.assertEqual(resolve_channel_state(True, False, None, isolated=True), STATE_ENABLED)

    def test_isolated_ignores_global_flag(self):
        self.assertEqual(resolve_channel_state(None, None, False, isolated=True), STATE_ENABLED)

    def test_global_flag_off(self):
        self.assertEqual(resolve_channel_state(None, None, False, isolated=False), STATE_DISABLED_GLOBAL)

    def test_unset_global_flag_means_enabled(self):
        self.assertEqual(resolve_channel_state(None, None, None, isolated=False), STATE_ENABLED)


class NormalizeBaseUrlTest(SimpleTestCase):
    def test_adds_scheme_and_strips_slash(self):
        self.assertEqual(normalize_base_url("waha.example.com/"), "https://waha.example.com")
        self.assertEqual(normalize_base_url(" http://10.0.0.2:3000// "), "http://10.0.0.2:3000")
        self.assertIsNone(normalize_base_url(None))


class ResolveConfigTest(TestCase):
    def setUp(self):
        self.org = Organization.objects.create(name="Org", slug="org")

    def configure_global(self, enabled=None):
        save_setting(SETTING_WAHA_API_URL, "https://relay.example.com/")
        save_setting(SETTING_WAHA_API_KEY, "global-key")
        if enabled is not None:
            save_setting(SETTING_WAHA_ENABLED, enabled)

    def configure_isolated(self):
        save_setting(SETTING_WAHA_API_URL, "org-relay.example.com", self.org.id)
        save_setting(SETTING_WAHA_API_KEY, "org-key", self.org.id)
        save_setting(SETTING_WAHA_SESSION, "org-session", self.org.id)

    def test_isolated_takes_precedence_over_global(self):
        self.configure_global(enabled="false")
        self.configure_isolated()

        result = resolve_whatsapp_config(self.org.id)

        self.assertEqual(result.status, STATUS_OK)
        self.assertEqual(result.config.mode, MODE_ISOLATED)
        self.assertEqual(result.config.base_url, "https://org-relay.example.com")
        self.assertEqual(result.config.api_key, "org-key")
        self.assertEqual(result.config.session, "org-session")

    def test_global_with_unset_flag_is_enabled(self):
        self.configure_global()

        result = resolve_whatsapp_config(self.org.id)

        self.assertTrue(result.ok)
        self.assertEqual(result.config.mode, MODE_GLOBAL)
        self.assertEqual(result.config.base_url, "https://relay.example.com")
        self.assertEqual(result.config.session, "default")

    def test_global_flag_string_false_disables(self):
        self.configure_global(enabled='"false"')
        result = resolve_whatsapp_config(self.org.id)
        self.assertEqual(result.status, STATUS_DISABLED_GLOBAL)
        self.assertFalse(result.ok)

    def test_global_flag_true_enables(self):
        self.configure_global(enabled=True)
        self.assertTrue(resolve_whatsapp_config(self.org.id).ok)

    def test_preferences_disable_channel(self):
        self.configure_isolated()
        save_setting(SETTING_NOTIFICATION_PREFERENCES, {"whatsapp": {"enabled": False}}, self.org.id)

        result = resolve_whatsapp_config(self.org.id)

        self.assertEqual(result.status, STATUS_DISABLED_ORGANIZATION)
        self.assertEqual(result.reason, "WhatsApp notifications are disabled for this organization")

    def test_legacy_flag_without_preferences(self):
        self.configure_global()
        self.org.waha_enabled = False
        self.org.save()

        self.assertEqual(resolve_whatsapp_config(self.org.id).status, STATUS_DISABLED_ORGANIZATION)

    def test_preferences_record_overrides_legacy_flag(self):
        self.configure_global()
        self.org.waha_enabled = False
        self.org.save()
        save_setting(SETTING_NOTIFICATION_PREFERENCES, {"email": True}, self.org.id)

        self.assertTrue(resolve_whatsapp_config(self.org.id).ok)

    def test_partial_org_settings_fall_back_to_global(self):
        save_setting(SETTING_WAHA_API_URL, "org-relay.example.com", self.org.id)
        self.configure_global()

        result = resolve_whatsapp_config(self.org.id)

        self.assertEqual(result.config.mode, MODE_GLOBAL)

    def test_missing_keys_are_reported(self):
        result = resolve_whatsapp_config(self.org.id)

        self.assertEqual(result.status, STATUS_MISCONFIGURED)
        self.assertIn("waha_api_url", result.reason)
        self.assertIn("waha_api_key", result.reason)

    def test_missing_key_only(self):
        save_setting(SETTING_WAHA_API_URL, "relay.example.com")
        result = resolve_whatsapp_config(self.org.id)
        self.assertEqual(result.reason, "WhatsApp relay is not configured: missing waha_api_key")
