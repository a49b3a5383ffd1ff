# core/settings_store.py
"""
Typed access to the `Setting` key/value table.

Rows are stored as loosely-typed text. Every known key has a parser, and
callers only ever see the parsed records below, so JSON decoding and flag
interpretation happen in exactly one place.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from .constants import (
    CHANNEL_WHATSAPP,
    SETTING_MIDTRANS_CLIENT_KEY,
    SETTING_MIDTRANS_ENVIRONMENT,
    SETTING_MIDTRANS_SERVER_KEY,
    SETTING_NOTIFICATION_PREFERENCES,
    SETTING_WAHA_API_KEY,
    SETTING_WAHA_API_URL,
    SETTING_WAHA_ENABLED,
    SETTING_WAHA_SESSION,
)
from .models import Setting

logger = logging.getLogger("etiket.core")


def _unquote(raw: str) -> str:
    return raw.strip().strip("'\"").strip()


def parse_text(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    value = _unquote(raw)
    return value or None


def parse_flag(raw: Any) -> Optional[bool]:
    """
    True/False for explicit flag values, None for anything else
    (including an unset or empty value).
    """
    if isinstance(raw, bool):
        return raw
    if raw is None:
        return None
    value = _unquote(str(raw)).lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    return None


def parse_switch(raw: Any) -> Optional[bool]:
    """
    The system relay switch is only off when stored as "false"; other
    falsy spellings leave it unset.
    """
    flag = parse_flag(raw)
    if flag is False and not (raw is False or _unquote(str(raw)).lower() == "false"):
        return None
    return flag


def parse_json(raw: Optional[str]) -> Any:
    if raw is None or not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Ignoring setting value that is not valid JSON: %r", raw[:80])
        return None


SETTING_PARSERS = {
    SETTING_WAHA_API_URL: parse_text,
    SETTING_WAHA_API_KEY: parse_text,
    SETTING_WAHA_SESSION: parse_text,
    SETTING_WAHA_ENABLED: parse_switch,
    SETTING_NOTIFICATION_PREFERENCES: parse_json,
    SETTING_MIDTRANS_SERVER_KEY: parse_text,
    SETTING_MIDTRANS_CLIENT_KEY: parse_text,
    SETTING_MIDTRANS_ENVIRONMENT: parse_text,
}


def read_settings(organization_id: Optional[int], keys: Iterable[str]) -> Dict[str, Any]:
    """
    Read and parse `keys` at one scope (organization_id=None is system scope).

    A key is present in the result whenever a row exists, even if its value
    parsed to None.
    """
    rows = Setting.objects.filter(key__in=list(keys))
    if organization_id is None:
        rows = rows.filter(organization__isnull=True)
    else:
        rows = rows.filter(organization_id=organization_id)

    values = {}
    for key, raw in rows.values_list("key", "value"):
        parser = SETTING_PARSERS.get(key, parse_text)
        values[key] = parser(raw)
    return values


def save_setting(key: str, value: Any, organization_id: Optional[int] = None) -> Setting:
    """Upsert a setting; non-string values are stored as JSON."""
    stored = value if isinstance(value, str) else json.dumps(value)
    setting, _ = Setting.objects.update_or_create(
        key=key,
        organization_id=organization_id,
        defaults={"value": stored},
    )
    return setting


# -----------------------------------------
# Typed records
# -----------------------------------------
@dataclass(frozen=True)
class NotificationPreferences:
    exists: bool
    whatsapp_enabled: Optional[bool] = None


@dataclass(frozen=True)
class WahaSettings:
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    session: Optional[str] = None
    enabled: Optional[bool] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.base_url and self.api_key)


@dataclass(frozen=True)
class MidtransSettings:
    server_key: Optional[str] = None
    client_key: Optional[str] = None
    environment: str = "sandbox"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def _channel_flag(preferences: Any, channel: str) -> Optional[bool]:
    """
    Accepts {"whatsapp": false}, {"whatsapp": {"enabled": false}} and
    {"whatsapp_enabled": false}.
    """
    if not isinstance(preferences, dict):
        return None

    entry = preferences.get(channel)
    if isinstance(entry, dict):
        return parse_flag(entry.get("enabled"))
    if entry is not None:
        return parse_flag(entry)
    return parse_flag(preferences.get(f"{channel}_enabled"))


def load_notification_preferences(organization_id: int) -> NotificationPreferences:
    values = read_settings(organization_id, [SETTING_NOTIFICATION_PREFERENCES])
    if SETTING_NOTIFICATION_PREFERENCES not in values:
        return NotificationPreferences(exists=False)

    return NotificationPreferences(
        exists=True,
        whatsapp_enabled=_channel_flag(values[SETTING_NOTIFICATION_PREFERENCES], CHANNEL_WHATSAPP),
    )


def load_waha_settings(organization_id: Optional[int] = None) -> WahaSettings:
    values = read_settings(
        organization_id,
        [SETTING_WAHA_API_URL, SETTING_WAHA_API_KEY, SETTING_WAHA_SESSION, SETTING_WAHA_ENABLED],
    )
    return WahaSettings(
        base_url=values.get(SETTING_WAHA_API_URL),
        api_key=values.get(SETTING_WAHA_API_KEY),
        session=values.get(SETTING_WAHA_SESSION),
        enabled=values.get(SETTING_WAHA_ENABLED),
    )


def load_midtrans_settings(organization_id: int) -> MidtransSettings:
    values = read_settings(
        organization_id,
        [SETTING_MIDTRANS_SERVER_KEY, SETTING_MIDTRANS_CLIENT_KEY, SETTING_MIDTRANS_ENVIRONMENT],
    )
    return MidtransSettings(
        server_key=values.get(SETTING_MIDTRANS_SERVER_KEY),
        client_key=values.get(SETTING_MIDTRANS_CLIENT_KEY),
        environment=values.get(SETTING_MIDTRANS_ENVIRONMENT) or "sandbox",
    )
