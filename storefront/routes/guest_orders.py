# storefront/routes/guest_orders.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import GuestSession, guest_session
from ..errors import EmptyCartError, storage_errors
from ..responses import ok
from ..schemas import OrderIn
from ..shopping import orders
from ..shopping.cache import guest_carts
from ..shopping.identity import find_guest, short_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/guest-orders", tags=["guest-orders"])

current_guest = guest_session("/orders")


@router.post("", status_code=201)
def create_guest_order(
    payload: OrderIn,
    session: GuestSession = Depends(current_guest),
    db: Session = Depends(get_db),
):
    try:
        with storage_errors(db, "create order"):
            # no placeholder yet means nothing was ever added
            if not find_guest(db, session.guest_id):
                raise EmptyCartError()
            order = orders.create_order(
                db,
                session.guest_id,
                payload.customer_info,
                payload.delivery_info,
                payload.payment_info,
                notes=payload.order_notes,
                delivery_fee=payload.delivery_fee,
            )
            data = orders.serialize_order(order)
    finally:
        guest_carts.invalidate(session.token)
    logger.info("Guest session %s placed order %s", short_token(session.token), data["order_number"])
    return ok(data, "Order created successfully", sessionId=session.token)


@router.get("/my-orders")
def guest_my_orders(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: GuestSession = Depends(current_guest),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "fetch orders"):
        data = orders.list_user_orders(db, session.guest_id, limit=limit, offset=offset)
    return ok(data, sessionId=session.token)


@router.get("/number/{order_number}")
def guest_order_by_number(
    order_number: str,
    session: GuestSession = Depends(current_guest),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "fetch order"):
        order = orders.get_order_by_number(db, order_number, user_id=session.guest_id)
        data = orders.order_detail(db, order)
    return ok(data, sessionId=session.token)


@router.get("/{order_id}")
def guest_order_by_id(order_id: str, session: GuestSession = Depends(current_guest), db: Session = Depends(get_db)):
    with storage_errors(db, "fetch order"):
        order = orders.get_order(db, order_id, user_id=session.guest_id)
        data = orders.order_detail(db, order)
    return ok(data, sessionId=session.token)
