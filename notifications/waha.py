# etiket-backend/notifications/waha.py
"""Thin client for the WAHA WhatsApp HTTP relay."""
import re

import requests
from django.conf import settings

_NON_DIGITS = re.compile(r"\D")


def format_chat_id(phone: str) -> str:
    """
    Normalize a phone number into a relay chat address.

    "081234567890" -> "6281234567890@c.us"
    """
    prefix = settings.WHATSAPP_COUNTRY_PREFIX
    digits = _NON_DIGITS.sub("", phone or "")
    if not digits.startswith(prefix):
        if digits.startswith("0"):
            digits = prefix + digits[1:]
        else:
            digits = prefix + digits
    return digits + settings.WHATSAPP_CHAT_SUFFIX


class WahaClient:
    def __init__(self, config, timeout=None):
        self.config = config
        self.timeout = timeout or settings.WHATSAPP_REQUEST_TIMEOUT

    @property
    def headers(self):
        return {
            "X-Api-Key": self.config.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _post(self, action, chat_id, **extra):
        payload = {"session": self.config.session, "chatId": chat_id, **extra}
        return requests.post(
            f"{self.config.base_url}/api/{action}",
            json=payload,
            headers=self.headers,
            timeout=self.timeout,
        )

    def send_seen(self, chat_id):
        return self._post("sendSeen", chat_id)

    def start_typing(self, chat_id):
        return self._post("startTyping", chat_id)

    def send_text(self, chat_id, text):
        return self._post("sendText", chat_id, text=text)

    def session_status(self):
        return requests.get(
            f"{self.config.base_url}/api/sessions/{self.config.session}",
            headers=self.headers,
            timeout=self.timeout,
        )
