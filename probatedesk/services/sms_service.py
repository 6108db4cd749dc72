"""SMS delivery via the Twilio REST API.

Mirrors email_service: never raises, dev fallback logs and reports success.
"""

import logging

import httpx

from probatedesk.core.config import settings
from probatedesk.services.email_service import SendResult

logger = logging.getLogger(__name__)

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
TWILIO_TIMEOUT_SECONDS = 15.0


def _configured() -> bool:
    return bool(
        settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN and settings.TWILIO_FROM_NUMBER
    )


def send_sms(*, to: str, body: str) -> SendResult:
    """Send a text message."""
    if not _configured():
        if settings.is_production:
            logger.error("Twilio not configured; SMS not sent")
            return SendResult(success=False, error="SMS provider not configured")
        logger.info("[dev sms] to=***%s body=%r", to[-4:], body)
        return SendResult(success=True)

    url = TWILIO_MESSAGES_URL.format(sid=settings.TWILIO_ACCOUNT_SID)
    try:
        with httpx.Client(timeout=TWILIO_TIMEOUT_SECONDS) as client:
            response = client.post(
                url,
                data={"To": to, "From": settings.TWILIO_FROM_NUMBER, "Body": body},
                auth=(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN),
            )
    except httpx.HTTPError as exc:
        logger.warning("Twilio request failed", exc_info=exc)
        return SendResult(success=False, error="SMS request failed")

    if response.status_code >= 400:
        logger.warning("Twilio returned %s", response.status_code)
        return SendResult(success=False, error=f"SMS provider returned {response.status_code}")
    return SendResult(success=True, message_id=response.json().get("sid"))
