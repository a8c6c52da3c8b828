# storefront/config.py
from __future__ import annotations

import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel

# Load .env locally (safe in prod too)
load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _list_env(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default) or ""
    return [p.strip() for p in raw.split(",") if p.strip()]


# -------------------
# Config (env-driven)
# -------------------
class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "development").strip().lower()
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./storefront.db")

    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    jwt_alg: str = os.getenv("JWT_ALG", "HS256")
    # default 7 days
    jwt_expire_min: int = _int_env("JWT_EXPIRE_MIN", 60 * 24 * 7)

    otp_ttl_min: int = _int_env("OTP_TTL_MIN", 5)
    order_number_prefix: str = os.getenv("ORDER_NUMBER_PREFIX", "REQ").strip() or "REQ"
    guest_cart_cache_ttl: int = _int_env("GUEST_CART_CACHE_TTL", 300)
    guest_cart_cache_max: int = _int_env("GUEST_CART_CACHE_MAX", 10000)

    cors_origins: List[str] = _list_env("CORS_ORIGINS", "*")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    port: int = _int_env("PORT", 8000)

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


settings = Settings()
