# storefront/otp.py
from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import Optional, Tuple
from uuid import uuid4

from sqlalchemy.orm import Session

from .auth import hash_secret, verify_secret
from .config import settings
from .db import utcnow
from .errors import NotFoundError, ValidationError
from .models import OTP
from .sms import send_otp_sms

logger = logging.getLogger(__name__)


def generate_code() -> str:
    return f"{secrets.randbelow(900000) + 100000}"


def generate_verification_id() -> str:
    return f"otp_{uuid4()}"


def cleanup_expired(db: Session) -> int:
    n = db.query(OTP).filter(OTP.expires_at < utcnow()).delete(synchronize_session=False)
    db.commit()
    return n


def issue_otp(db: Session, phone_number: str) -> Tuple[str, str]:
    """Stores a fresh OTP for ``phone_number`` and sends it. Returns (verification_id, code)."""
    cleanup_expired(db)

    code = generate_code()
    verification_id = generate_verification_id()
    db.add(
        OTP(
            phone_number=phone_number,
            otp_hash=hash_secret(code),
            verification_id=verification_id,
            expires_at=utcnow() + timedelta(minutes=settings.otp_ttl_min),
        )
    )
    db.commit()

    send_otp_sms(phone_number, code, settings.otp_ttl_min)
    return verification_id, code


def _find_valid(db: Session, verification_id: str, code: str, phone_number: str) -> Optional[OTP]:
    rec = (
        db.query(OTP)
        .filter(
            OTP.verification_id == verification_id,
            OTP.phone_number == phone_number,
            OTP.is_used.is_(False),
            OTP.expires_at > utcnow(),
        )
        .first()
    )
    if not rec or not verify_secret(code, rec.otp_hash):
        return None
    return rec


def check_otp(db: Session, verification_id: str, code: str, phone_number: str) -> None:
    """Verifies without consuming (signup flow)."""
    cleanup_expired(db)
    if not _find_valid(db, verification_id, code, phone_number):
        raise ValidationError("Invalid or expired OTP")


def verify_otp(db: Session, verification_id: str, code: str, phone_number: str) -> None:
    """Verifies and marks the OTP used (login flow)."""
    cleanup_expired(db)
    rec = _find_valid(db, verification_id, code, phone_number)
    if not rec:
        raise ValidationError("Invalid or expired OTP")
    rec.is_used = True
    db.commit()


def consume_otp(db: Session, verification_id: str) -> None:
    n = db.query(OTP).filter(OTP.verification_id == verification_id).delete(synchronize_session=False)
    db.commit()
    if not n:
        raise NotFoundError("OTP not found")
