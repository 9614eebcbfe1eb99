"""
config.py
---------
Central configuration module. Loads all environment variables
from the .env file and exposes them as typed constants.
"""

import os
from dotenv import load_dotenv

load_dotenv()


# ── Telegram ──────────────────────────────────────────────
TELEGRAM_BOT_TOKEN: str = os.getenv("TELEGRAM_BOT_TOKEN", "")

# ── PostgreSQL ────────────────────────────────────────────
DB_HOST: str = os.getenv("DB_HOST", "localhost")
DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
DB_NAME: str = os.getenv("DB_NAME", "parkbot")
DB_USER: str = os.getenv("DB_USER", "parkbot_user")
DB_PASS: str = os.getenv("DB_PASS", "")
DB_POOL_MIN: int = int(os.getenv("DB_POOL_MIN", "1"))
DB_POOL_MAX: int = int(os.getenv("DB_POOL_MAX", "5"))

DATABASE_URL: str = os.getenv(
    "DATABASE_URL",
    f"postgresql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)

# ── Security ──────────────────────────────────────────────
# Telegram IDs that are treated as admins even before any role row exists.
_raw_ids = os.getenv("BOOTSTRAP_ADMIN_IDS", "")
BOOTSTRAP_ADMIN_IDS: list[int] = (
    [int(uid.strip()) for uid in _raw_ids.split(",") if uid.strip()]
    if _raw_ids
    else []
)

# ── Rate Limiting ─────────────────────────────────────────
RATE_LIMIT_MESSAGES: int = int(os.getenv("RATE_LIMIT_MESSAGES", "30"))
RATE_LIMIT_WINDOW_SECONDS: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))

# ── Locale ────────────────────────────────────────────────
TIMEZONE: str = os.getenv("TIMEZONE", "Asia/Beirut")
COUNTRY_CODE: str = os.getenv("COUNTRY_CODE", "961")
DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "$")

# ── Activity Log ──────────────────────────────────────────
ACTIVITY_WINDOW_DAYS: int = int(os.getenv("ACTIVITY_WINDOW_DAYS", "7"))

# ── SMS Gateway ───────────────────────────────────────────
SMS_GATEWAY_URL: str = os.getenv(
    "SMS_GATEWAY_URL", "https://gw3s.broadnet.me:8443/websmpp/websms"
)
SMS_USER: str = os.getenv("SMS_USER", "")
SMS_PASS: str = os.getenv("SMS_PASS", "")
SMS_SID: str = os.getenv("SMS_SID", "")
SMS_TIMEOUT_SECONDS: int = int(os.getenv("SMS_TIMEOUT_SECONDS", "30"))

# ── Reminders ─────────────────────────────────────────────
DEFAULT_REMINDER_TEMPLATE: str = os.getenv(
    "DEFAULT_REMINDER_TEMPLATE",
    "Hi {name}, your parking subscription is overdue. Please make your payment "
    "of ${fee} at your earliest convenience. Thank you!",
)

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
