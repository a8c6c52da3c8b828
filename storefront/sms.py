# storefront/sms.py
from __future__ import annotations

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

# (phone_number, body) -> None; raise to signal a delivery failure
SmsSender = Callable[[str, str], None]

_sender: Optional[SmsSender] = None


def set_sms_sender(sender: Optional[SmsSender]) -> None:
    """Install the delivery backend. ``None`` restores the log-only fallback."""
    global _sender
    _sender = sender


def _log_only(phone_number: str, body: str) -> None:
    logger.warning("SMS provider not configured; message for %s not sent", phone_number)
    logger.info("SMS body: %s", body)


def send_otp_sms(phone_number: str, code: str, ttl_minutes: int) -> bool:
    """Deliver an OTP. Delivery failures are logged, the OTP stays valid."""
    body = f"Your verification code is: {code}. Valid for {ttl_minutes} minutes."
    sender = _sender or _log_only
    try:
        sender(phone_number, body)
        return True
    except Exception:
        logger.exception("SMS delivery to %s failed", phone_number)
        return False
