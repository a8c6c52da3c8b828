# storefront/deps.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from .auth import decode_token
from .db import get_db
from .errors import AuthError, ValidationError
from .models import User
from .shopping.identity import GUEST_ROLE, derive_guest_id, new_session_token

GUEST_SESSION_HEADER = "X-Guest-Session-Id"


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    return token or None


def require_user(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    """Verifies the bearer token and re-reads the user row on every request."""
    token = _bearer_token(authorization)
    if not token:
        raise AuthError("Access token required")

    claims = decode_token(token)
    if not claims:
        raise AuthError("Invalid or expired token", status_code=403)

    u = db.query(User).filter(User.id == str(claims["id"])).first()
    if not u or u.role == GUEST_ROLE:
        raise AuthError("User not found")
    return u


def require_role(*roles: str) -> Callable[..., User]:
    def _dep(user: User = Depends(require_user)) -> User:
        if user.role not in roles:
            raise AuthError("Insufficient permissions", status_code=403)
        return user

    return _dep


require_admin = require_role("admin")


@dataclass
class GuestSession:
    token: str
    guest_id: str
    minted: bool = False


def guest_session(authed_path: str) -> Callable[..., GuestSession]:
    """Dependency for guest endpoints; rejects callers that already hold a token."""

    def _dep(
        authorization: Optional[str] = Header(default=None),
        x_guest_session_id: Optional[str] = Header(default=None, alias=GUEST_SESSION_HEADER),
    ) -> GuestSession:
        if _bearer_token(authorization):
            raise ValidationError(f"User is already authenticated. Use {authed_path} endpoints instead.")

        token = (x_guest_session_id or "").strip()
        minted = not token
        if minted:
            token = new_session_token()
        return GuestSession(token=token, guest_id=derive_guest_id(token), minted=minted)

    return _dep


def required_guest_token(
    x_guest_session_id: Optional[str] = Header(default=None, alias=GUEST_SESSION_HEADER),
) -> str:
    token = (x_guest_session_id or "").strip()
    if not token:
        raise ValidationError("Guest session ID required")
    return token
