"""Static configuration for wabridge.

All user-editable settings (filters, Telegram targets, topics, connection
policy, logging) live in a single JSON file for quick edits without touching
Python. Secrets stay in the environment (.env).
"""

import json
import os

from core.config import ConnectionConfig, ForwardingConfig

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Where to store the SQLite database (audit logs and topic map).
DB_PATH = os.path.join(PROJECT_ROOT, "wabridge.db")

CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _project_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Telegram side: where matches go, who gets alerts, and known forum topics.
_telegram = _CONFIG.get("telegram", {})
if "target_chat_id" not in _telegram:
    raise RuntimeError("telegram.target_chat_id is required in config.json")
TARGET_CHAT_ID = int(_telegram["target_chat_id"])
ADMIN_CHAT_ID = int(_telegram["admin_chat_id"]) if _telegram.get("admin_chat_id") else None
TOPICS = {str(name): int(thread_id) for name, thread_id in _telegram.get("topics", {}).items()}

_forwarding = _CONFIG.get("forwarding", {})
FORWARDING = ForwardingConfig(
    target_chat_id=TARGET_CHAT_ID,
    include_sender=bool(_telegram.get("include_sender", True)),
    topic_pattern=_forwarding.get("topic_pattern"),
)

# WhatsApp side: the session library is plugged in as "module:factory".
_whatsapp = _CONFIG.get("whatsapp", {})
SESSION_PROVIDER = _whatsapp.get("provider", "")
SESSION_PROVIDER_OPTIONS = _whatsapp.get("provider_options", {})
AUTH_DIR = _project_path(_whatsapp.get("auth_dir", "auth_info"))
QR_PATH = _project_path(_whatsapp.get("qr_path", "qrcode.svg"))
OWN_ID = _whatsapp.get("own_id")

# Reconnect and health check policy.
# - max_consecutive_failures: failures inside the window before shutting down
# - failure_window_minutes: a failure after this long starts a new count
# - reconnect_delay_seconds: pause before reopening after "restart required"
_connection = _CONFIG.get("connection", {})
CONNECTION = ConnectionConfig(
    max_consecutive_failures=int(_connection.get("max_consecutive_failures", 3)),
    failure_window_seconds=float(_connection.get("failure_window_minutes", 10)) * 60,
    reconnect_delay_seconds=float(_connection.get("reconnect_delay_seconds", 0)),
    health_check_interval_seconds=float(_connection.get("health_check_interval_seconds", 60)),
    health_check_timeout_seconds=float(_connection.get("health_check_timeout_seconds", 10)),
    shutdown_grace_seconds=float(_connection.get("shutdown_grace_seconds", 3)),
)

# Filters are pulled directly from config.json, keeping them alongside targets.
FILTERS_CONFIG = _CONFIG.get("filters", [])

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
