"""
utils/phone.py
--------------
Phone number and message-text helpers used before any outbound dispatch.
"""

import re
from urllib.parse import quote

from config import COUNTRY_CODE

_NON_DIGITS = re.compile(r"\D")
_ARABIC_SCRIPT = re.compile("[\u0600-\u06FF]")

WHATSAPP_BASE_URL = "https://wa.me"


def normalize_phone(raw: str, country_code: str = COUNTRY_CODE) -> str:
    """
    Normalize a phone number to the gateway's international digit format.

    Rules:
        - Strip everything that is not a digit (a leading '+' goes too).
        - Already starts with the country code -> keep as is.
        - Starts with the trunk '0' -> drop it and prepend the country code.
        - Otherwise -> prepend the country code.

    Normalizing an already normalized number returns it unchanged.

    Examples:
        "03 123 456"      -> "9613123456"
        "+961 3 123 456"  -> "9613123456"
        "71123456"        -> "96171123456"
    """
    digits = _NON_DIGITS.sub("", raw or "")
    if not digits:
        return ""
    if digits.startswith(country_code):
        return digits
    if digits.startswith("0"):
        return country_code + digits[1:]
    return country_code + digits


def has_arabic(text: str) -> bool:
    """True when the text contains Arabic script (needs Unicode SMS encoding)."""
    return bool(_ARABIC_SCRIPT.search(text or ""))


def whatsapp_link(phone: str, text: str) -> str:
    """Build a chat-app deep link that opens a prefilled message to `phone`."""
    return f"{WHATSAPP_BASE_URL}/{normalize_phone(phone)}?text={quote(text, safe='')}"
