# storefront/schemas.py
"""
Request bodies. Field names follow the public JSON contract, so auth and
review payloads are camelCase while cart/order payloads are snake_case.
"""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

PHONE_PATTERN = r"^\+[1-9]\d{1,14}$"
OTP_PATTERN = r"^\d{6}$"


class _Trimmed(BaseModel):
    @field_validator("*", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


# -------------------
# Auth
# -------------------
class SendOtpIn(_Trimmed):
    phoneNumber: str = Field(..., pattern=PHONE_PATTERN)


class VerifyOtpIn(_Trimmed):
    verificationId: str = Field(..., min_length=1)
    otp: str = Field(..., pattern=OTP_PATTERN)
    phoneNumber: str = Field(..., pattern=PHONE_PATTERN)


class LoginIn(VerifyOtpIn):
    pass


class SignupIn(VerifyOtpIn):
    name: str = Field(..., min_length=2, max_length=100)
    email: Optional[EmailStr] = None

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email(cls, v: Any) -> Any:
        return None if isinstance(v, str) and not v.strip() else v


class ConsumeOtpIn(_Trimmed):
    verificationId: str = Field(..., min_length=1)


class ProfileUpdateIn(_Trimmed):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None


# -------------------
# Cart
# -------------------
class CartAddIn(BaseModel):
    product_id: str = Field(..., min_length=1)
    variant_id: str = Field(..., min_length=1)
    color_id: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=1)
    accessories: List[Any] = Field(default_factory=list)
    total_price: float = Field(..., gt=0)


class QuantityIn(BaseModel):
    quantity: int = Field(..., ge=0)


# -------------------
# Orders
# -------------------
class OrderIn(BaseModel):
    customer_info: Dict[str, Any]
    delivery_info: Dict[str, Any]
    payment_info: Dict[str, Any]
    order_notes: Optional[str] = None
    delivery_fee: float = Field(0.0, ge=0)


class OrderStatusIn(BaseModel):
    status: Literal["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"]
    notes: Optional[str] = None


class CancelOrderIn(BaseModel):
    reason: Optional[str] = None


# -------------------
# Catalog (admin)
# -------------------
class ProductIn(_Trimmed):
    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: str = "scooter"
    base_price: float = Field(..., ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    is_featured: bool = False


class ProductUpdateIn(_Trimmed):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = None
    base_price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    is_featured: Optional[bool] = None
    is_active: Optional[bool] = None


class AccessoryIn(_Trimmed):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    image_url: str = Field(..., min_length=1)


class AccessoryUpdateIn(_Trimmed):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    image_url: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None


# -------------------
# Content
# -------------------
class ReviewIn(_Trimmed):
    productId: str = Field(..., min_length=1)
    productName: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    title: str = Field(..., min_length=1, max_length=200)
    review: str = Field(..., min_length=1)
    userName: str = Field(..., min_length=1, max_length=100)
    userEmail: EmailStr


class ContactIn(_Trimmed):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=20)
    subject: str = Field(..., min_length=1, max_length=500)
    message: str = Field(..., min_length=1)


class ContactStatusIn(BaseModel):
    status: Literal["new", "in-progress", "resolved", "closed"]
