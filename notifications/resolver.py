# etiket-backend/notifications/resolver.py
"""
Decides, per organization, whether WhatsApp delivery is possible and which
relay credentials to use.

Precedence (first match wins):
1. notification preferences explicitly disable the channel
2. no preference record at all and the legacy organization flag is off
3. organization-scoped URL + key present (isolated mode)
4. system flag explicitly off (global mode disabled)
5. system URL + key present (global mode), otherwise misconfigured
"""
import logging
from dataclasses import dataclass
from typing import Optional

from core.constants import SETTING_WAHA_API_KEY, SETTING_WAHA_API_URL, WAHA_DEFAULT_SESSION
from core.models import Organization
from core.settings_store import load_notification_preferences, load_waha_settings

logger = logging.getLogger("etiket.notifications")

STATE_ENABLED = "enabled"
STATE_DISABLED_ORGANIZATION = "disabled_organization"
STATE_DISABLED_GLOBAL = "disabled_global"

STATUS_OK = "ok"
STATUS_DISABLED_ORGANIZATION = STATE_DISABLED_ORGANIZATION
STATUS_DISABLED_GLOBAL = STATE_DISABLED_GLOBAL
STATUS_MISCONFIGURED = "misconfigured"

MODE_ISOLATED = "isolated"
MODE_GLOBAL = "global"


@dataclass(frozen=True)
class WahaConfig:
    base_url: str
    api_key: str
    session: str
    mode: str


@dataclass(frozen=True)
class ConfigResolution:
    status: str
    config: Optional[WahaConfig] = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK and self.config is not None


def normalize_base_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return url
    url = url.strip().rstrip("/")
    if "://" not in url:
        url = f"https://{url}"
    return url


def resolve_channel_state(
    preference: Optional[bool],
    legacy: Optional[bool],
    global_enabled: Optional[bool],
    *,
    isolated: bool,
) -> str:
    """
    `preference` is the explicit channel flag from notification preferences.
    `legacy` is the organization's old waha_enabled column; callers pass None
    whenever a preference record exists so it is only consulted as a fallback.
    """
    if preference is False:
        return STATE_DISABLED_ORGANIZATION
    if preference is None and legacy is False:
        return STATE_DISABLED_ORGANIZATION
    if isolated:
        return STATE_ENABLED
    if global_enabled is False:
        return STATE_DISABLED_GLOBAL
    return STATE_ENABLED


def resolve_whatsapp_config(organization_id) -> ConfigResolution:
    preferences = load_notification_preferences(organization_id)
    legacy = None
    if not preferences.exists:
        legacy = (
            Organization.objects
            .filter(pk=organization_id)
            .values_list("waha_enabled", flat=True)
            .first()
        )

    org_settings = load_waha_settings(organization_id)
    isolated = org_settings.is_complete
    system_settings = None if isolated else load_waha_settings(None)

    state = resolve_channel_state(
        preferences.whatsapp_enabled,
        legacy,
        system_settings.enabled if system_settings else None,
        isolated=isolated,
    )

    if state == STATE_DISABLED_ORGANIZATION:
        return ConfigResolution(
            STATUS_DISABLED_ORGANIZATION,
            reason="WhatsApp notifications are disabled for this organization",
        )
    if state == STATE_DISABLED_GLOBAL:
        return ConfigResolution(
            STATUS_DISABLED_GLOBAL,
            reason="WhatsApp notifications are disabled globally",
        )

    if isolated:
        return ConfigResolution(
            STATUS_OK,
            config=WahaConfig(
                base_url=normalize_base_url(org_settings.base_url),
                api_key=org_settings.api_key,
                session=org_settings.session or WAHA_DEFAULT_SESSION,
                mode=MODE_ISOLATED,
            ),
        )

    missing = [
        key
        for key, value in (
            (SETTING_WAHA_API_URL, system_settings.base_url),
            (SETTING_WAHA_API_KEY, system_settings.api_key),
        )
        if not value
    ]
    if missing:
        logger.warning(
            "WhatsApp relay misconfigured for organization %s: missing %s",
            organization_id, ", ".join(missing),
        )
        return ConfigResolution(
            STATUS_MISCONFIGURED,
            reason=f"WhatsApp relay is not configured: missing {', '.join(missing)}",
        )

    return ConfigResolution(
        STATUS_OK,
        config=WahaConfig(
            base_url=normalize_base_url(system_settings.base_url),
            api_key=system_settings.api_key,
            session=system_settings.session or WAHA_DEFAULT_SESSION,
            mode=MODE_GLOBAL,
        ),
    )
