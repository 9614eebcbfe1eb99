"""
services/sms_service.py
-----------------------
Client for the third-party SMS gateway.

The gateway takes everything in the query string:
    {base}?user=..&pass=..&sid=..&mno=<phone[,phone..]>&type=<1|4>&text=<encoded>
type 4 is the Unicode encoding needed for Arabic text, type 1 plain Latin.
A response body starting with 'ERROR' means the gateway refused the message.
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import requests

from config import SMS_GATEWAY_URL, SMS_PASS, SMS_SID, SMS_TIMEOUT_SECONDS, SMS_USER
from utils.logger import get_logger
from utils.phone import has_arabic, normalize_phone

logger = get_logger(__name__)

TYPE_LATIN = "1"
TYPE_UNICODE = "4"


@dataclass
class SmsResult:
    """Outcome of one gateway call."""
    phone: str
    success: bool
    response: Optional[str] = None
    error: Optional[str] = None


class SmsService:
    """Sends SMS through the gateway, one HTTP call per request, no retries."""

    def __init__(
        self,
        base_url: str = SMS_GATEWAY_URL,
        user: str = SMS_USER,
        password: str = SMS_PASS,
        sid: str = SMS_SID,
        timeout: int = SMS_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url
        self.user = user
        self.password = password
        self.sid = sid
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.user and self.password and self.sid)

    @staticmethod
    def message_type(text: str) -> str:
        return TYPE_UNICODE if has_arabic(text) else TYPE_LATIN

    def build_url(self, phones: list[str], text: str) -> str:
        """
        Build the gateway URL for one or more recipients of the same text.

        Credentials are inserted verbatim; only the text is URL-encoded.
        """
        mno = ",".join(normalize_phone(p) for p in phones)
        return (
            f"{self.base_url}?user={self.user}&pass={self.password}&sid={self.sid}"
            f"&mno={mno}&type={self.message_type(text)}&text={quote(text, safe='')}"
        )

    def send(self, recipients: list[tuple[str, str]]) -> list[SmsResult]:
        """
        Send individual messages, one gateway call each.

        Args:
            recipients: (phone, text) pairs.

        Returns:
            One SmsResult per recipient, in order.
        """
        results = [self._dispatch([phone], text) for phone, text in recipients]
        ok = sum(1 for r in results if r.success)
        logger.info(f"SMS batch done: {ok} sent, {len(results) - ok} failed")
        return results

    def send_bulk(self, phones: list[str], text: str) -> SmsResult:
        """Send the same text to several phones in a single gateway call."""
        return self._dispatch(phones, text)

    def _dispatch(self, phones: list[str], text: str) -> SmsResult:
        if not self.is_configured:
            raise RuntimeError("SMS credentials not configured (SMS_USER / SMS_PASS / SMS_SID).")

        url = self.build_url(phones, text)
        target = ",".join(normalize_phone(p) for p in phones)
        logger.info(f"Sending SMS to {target}: {self._mask(url)}")
        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
            body = response.text.strip()
        except requests.RequestException as e:
            logger.error(f"SMS send failed for {target}: {e}")
            return SmsResult(phone=target, success=False, error=str(e))

        if body.startswith("ERROR"):
            logger.warning(f"SMS gateway refused {target}: {body}")
            return SmsResult(phone=target, success=False, error=body)
        return SmsResult(phone=target, success=True, response=body)

    def _mask(self, url: str) -> str:
        return url.replace(f"pass={self.password}", "pass=***") if self.password else url
