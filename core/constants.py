# core/constants.py

# --- Setting keys (Standard Registry) ---

# WhatsApp relay (WAHA); valid at organization scope (isolated mode)
# and at system scope (global mode)
SETTING_WAHA_API_URL = "waha_api_url"
SETTING_WAHA_API_KEY = "waha_api_key"
SETTING_WAHA_SESSION = "waha_session"
SETTING_WAHA_ENABLED = "waha_enabled"  # system scope only

# Per-organization channel toggles, JSON object
SETTING_NOTIFICATION_PREFERENCES = "notification_preferences"

# Payment gateway (Midtrans), organization scope only
SETTING_MIDTRANS_SERVER_KEY = "midtrans_server_key"
SETTING_MIDTRANS_CLIENT_KEY = "midtrans_client_key"
SETTING_MIDTRANS_ENVIRONMENT = "midtrans_environment"

WAHA_DEFAULT_SESSION = "default"

# Notification channels
CHANNEL_WHATSAPP = "whatsapp"
