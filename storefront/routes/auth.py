# storefront/routes/auth.py
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import create_token
from ..config import settings
from ..db import get_db, new_id
from ..deps import require_user
from ..errors import ConflictError, NotFoundError, storage_errors
from ..models import User
from ..otp import check_otp, consume_otp, issue_otp, verify_otp
from ..responses import ok
from ..schemas import ConsumeOtpIn, LoginIn, ProfileUpdateIn, SendOtpIn, SignupIn, VerifyOtpIn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def serialize_user(u: User) -> Dict[str, Any]:
    return {
        "id": u.id,
        "phone": u.phone,
        "name": u.name,
        "email": u.email,
        "role": u.role,
        "is_verified": u.is_verified,
        "created_at": u.created_at,
    }


# -------------------
# OTP
# -------------------
@router.post("/send-otp")
def send_otp(payload: SendOtpIn, db: Session = Depends(get_db)):
    with storage_errors(db, "send OTP"):
        verification_id, code = issue_otp(db, payload.phoneNumber)

    data: Dict[str, Any] = {"verificationId": verification_id}
    if settings.is_development:
        data["otp"] = code
    return ok(data, "OTP sent successfully")


@router.post("/verify-otp-only")
def verify_otp_only(payload: VerifyOtpIn, db: Session = Depends(get_db)):
    with storage_errors(db, "verify OTP"):
        check_otp(db, payload.verificationId, payload.otp, payload.phoneNumber)
    return ok(message="OTP verified successfully")


@router.post("/consume-otp")
def consume(payload: ConsumeOtpIn, db: Session = Depends(get_db)):
    with storage_errors(db, "consume OTP"):
        consume_otp(db, payload.verificationId)
    return ok(message="OTP consumed successfully")


# -------------------
# Signup / login
# -------------------
@router.post("/signup", status_code=201)
def signup(payload: SignupIn, db: Session = Depends(get_db)):
    with storage_errors(db, "create user"):
        check_otp(db, payload.verificationId, payload.otp, payload.phoneNumber)

        if db.query(User.id).filter(User.phone == payload.phoneNumber).first():
            raise ConflictError("User already exists. Please login instead.")

        u = User(
            id=new_id(),
            phone=payload.phoneNumber,
            name=payload.name,
            email=str(payload.email) if payload.email else None,
            role="user",
            is_verified=True,
        )
        db.add(u)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("User already exists. Please login instead.")

        consume_otp(db, payload.verificationId)
        db.refresh(u)

    logger.info("User %s signed up", u.id)
    return ok({"user": serialize_user(u), "token": create_token(u)}, "User created successfully")


@router.post("/login")
def login(payload: LoginIn, db: Session = Depends(get_db)):
    with storage_errors(db, "login"):
        verify_otp(db, payload.verificationId, payload.otp, payload.phoneNumber)
        u = db.query(User).filter(User.phone == payload.phoneNumber, User.role != "guest").first()
        if not u:
            raise NotFoundError("User not found. Please signup first.")

    return ok({"user": serialize_user(u), "token": create_token(u)}, "Login successful")


# -------------------
# Profile
# -------------------
@router.get("/profile")
def get_profile(user: User = Depends(require_user)):
    return ok({"user": serialize_user(user)})


@router.put("/profile")
def update_profile(payload: ProfileUpdateIn, user: User = Depends(require_user), db: Session = Depends(get_db)):
    with storage_errors(db, "update profile"):
        if payload.name is not None:
            user.name = payload.name
        if payload.email is not None:
            user.email = str(payload.email)
        db.commit()
        db.refresh(user)
    return ok({"user": serialize_user(user)}, "Profile updated successfully")
