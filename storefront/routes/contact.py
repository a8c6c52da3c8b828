# storefront/routes/contact.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db, new_id, utcnow
from ..deps import require_admin
from ..errors import NotFoundError, ValidationError, storage_errors
from ..models import CONTACT_STATUSES, ContactMessage, User
from ..responses import ok
from ..schemas import ContactIn, ContactStatusIn

router = APIRouter(prefix="/contact", tags=["contact"])


def serialize_message(m: ContactMessage) -> Dict[str, Any]:
    return {
        "id": m.id,
        "name": m.name,
        "email": m.email,
        "phone": m.phone,
        "subject": m.subject,
        "message": m.message,
        "status": m.status,
        "created_at": m.created_at,
        "updated_at": m.updated_at,
    }


def _get_message(db: Session, message_id: str) -> ContactMessage:
    m = db.query(ContactMessage).filter(ContactMessage.id == message_id).first()
    if not m:
        raise NotFoundError("Contact message not found")
    return m


@router.post("/submit", status_code=201)
def submit_contact(payload: ContactIn, db: Session = Depends(get_db)):
    with storage_errors(db, "submit contact form"):
        m = ContactMessage(
            id=new_id(),
            name=payload.name,
            email=str(payload.email).lower(),
            phone=payload.phone or None,
            subject=payload.subject,
            message=payload.message,
            status="new",
        )
        db.add(m)
        db.commit()
        db.refresh(m)
    return ok(serialize_message(m), "Thank you for contacting us. We will get back to you soon.")


# -------------------
# Admin
# -------------------
@router.get("/messages")
def list_messages(
    status: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if status and status not in CONTACT_STATUSES:
        raise ValidationError("Invalid status. Valid statuses: " + ", ".join(CONTACT_STATUSES))
    with storage_errors(db, "fetch contact messages"):
        q = db.query(ContactMessage)
        if status:
            q = q.filter(ContactMessage.status == status)
        rows = q.order_by(ContactMessage.created_at.desc()).limit(limit).offset(offset).all()
    return ok([serialize_message(m) for m in rows])


@router.patch("/messages/{message_id}/status")
def update_message_status(
    message_id: str,
    payload: ContactStatusIn,
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "update contact message"):
        m = _get_message(db, message_id)
        m.status = payload.status
        m.updated_at = utcnow()
        db.commit()
        db.refresh(m)
    return ok(serialize_message(m), "Status updated successfully")


@router.delete("/messages/{message_id}")
def delete_message(message_id: str, _admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    with storage_errors(db, "delete contact message"):
        db.delete(_get_message(db, message_id))
        db.commit()
    return ok(message="Contact message deleted successfully")
