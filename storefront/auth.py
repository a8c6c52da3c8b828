# storefront/auth.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import settings

pwd = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_secret(p: str) -> str:
    return pwd.hash(p)


def verify_secret(p: str, h: str) -> bool:
    try:
        return pwd.verify(p, h)
    except (ValueError, TypeError):
        return False


def user_claims(user: Any) -> Dict[str, Any]:
    return {
        "id": user.id,
        "phone": user.phone,
        "name": user.name,
        "email": user.email,
        "role": user.role,
    }


def create_token(user: Any, expires_delta: Optional[timedelta] = None) -> str:
    exp = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_min))
    payload = {**user_claims(user), "exp": exp}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Returns the claims of a valid token, None for bad signature/expiry/shape."""
    try:
        data = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])
    except JWTError:
        return None
    if not data.get("id"):
        return None
    return data
