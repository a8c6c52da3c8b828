# storefront/shopping/identity.py
"""Guest identity: one opaque session token -> one stable user id.

The id is the first 16 bytes of ``sha256(token)`` laid out as a UUID string,
so the same token always lands on the same placeholder user and cart without
a session table. This is the only place guest ids are derived.
"""
from __future__ import annotations

import hashlib
import logging
from typing import Optional
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import User

logger = logging.getLogger(__name__)

GUEST_ROLE = "guest"
GUEST_NAME = "Guest User"


def derive_guest_id(session_token: str) -> str:
    token = (session_token or "").strip()
    if not token:
        raise ValueError("session token must be a non-empty string")
    h = hashlib.sha256(token.encode("utf-8")).hexdigest()[:32]
    return f"{h[0:8]}-{h[8:12]}-{h[12:16]}-{h[16:20]}-{h[20:32]}"


def new_session_token() -> str:
    return f"guest_{uuid4().hex}"


def short_token(session_token: str) -> str:
    """Log-safe prefix of a session token."""
    t = session_token or ""
    return t[:12] + "..." if len(t) > 12 else t


def find_guest(db: Session, guest_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == guest_id, User.role == GUEST_ROLE).first()


def get_or_create_guest(db: Session, session_token: str) -> User:
    """Placeholder user for a guest session, created on first cart mutation."""
    guest_id = derive_guest_id(session_token)
    u = find_guest(db, guest_id)
    if u:
        return u

    u = User(
        id=guest_id,
        phone=f"guest_{guest_id}",
        name=GUEST_NAME,
        email=None,
        role=GUEST_ROLE,
        is_verified=False,
    )
    db.add(u)
    try:
        db.commit()
    except IntegrityError:
        # a concurrent request for the same session created it first
        db.rollback()
        u = find_guest(db, guest_id)
        if not u:
            raise
    else:
        logger.info("Created guest user %s for session %s", guest_id, short_token(session_token))
    return u
