# storefront/routes/guest_cart.py
"""Cart surface for unauthenticated sessions.

The owner is the placeholder user derived from ``X-Guest-Session-Id``; every
response echoes ``sessionId`` so a client without one learns the minted token.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import GuestSession, guest_session
from ..errors import storage_errors
from ..responses import ok
from ..schemas import CartAddIn, QuantityIn
from ..shopping import cart
from ..shopping.cache import guest_carts
from ..shopping.identity import get_or_create_guest, short_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/guest-cart", tags=["guest-cart"])

current_guest = guest_session("/cart")


def _view(db: Session, session: GuestSession):
    hit = guest_carts.get(session.token)
    if hit is not None:
        return hit
    stamp = guest_carts.stamp()
    view = cart.cart_view(db, session.guest_id)
    # a freshly minted token has no rows yet and may never come back
    if not session.minted:
        guest_carts.set(session.token, view, stamp=stamp)
    return view


@router.get("")
def get_guest_cart(session: GuestSession = Depends(current_guest), db: Session = Depends(get_db)):
    with storage_errors(db, "fetch guest cart"):
        return ok(_view(db, session), sessionId=session.token)


@router.post("/add", status_code=201)
def add_to_guest_cart(
    payload: CartAddIn,
    session: GuestSession = Depends(current_guest),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "add item to guest cart"):
        guest = get_or_create_guest(db, session.token)
        line = cart.add_item(
            db,
            guest.id,
            payload.product_id,
            payload.variant_id,
            payload.color_id,
            payload.quantity,
            payload.accessories,
            payload.total_price,
        )
    guest_carts.invalidate(session.token)
    logger.debug("Guest session %s added %s", short_token(session.token), payload.product_id)
    return ok(line, "Item added to cart successfully", sessionId=session.token)


@router.get("/summary")
def guest_cart_summary(session: GuestSession = Depends(current_guest), db: Session = Depends(get_db)):
    with storage_errors(db, "fetch guest cart summary"):
        return ok(_view(db, session)["summary"], sessionId=session.token)


@router.get("/check-empty")
def guest_check_empty(session: GuestSession = Depends(current_guest), db: Session = Depends(get_db)):
    with storage_errors(db, "check guest cart"):
        return ok({"is_empty": _view(db, session)["summary"]["is_empty"]}, sessionId=session.token)


@router.put("/items/{item_id}/quantity")
def guest_update_quantity(
    item_id: str,
    payload: QuantityIn,
    session: GuestSession = Depends(current_guest),
    db: Session = Depends(get_db),
):
    try:
        with storage_errors(db, "update guest cart item"):
            action, line = cart.set_quantity(db, session.guest_id, item_id, payload.quantity)
    finally:
        guest_carts.invalidate(session.token)
    msg = "Item removed from cart" if action == "removed" else "Cart item quantity updated"
    return ok(line, msg, sessionId=session.token)


@router.put("/items/{item_id}/increment")
def guest_increment(item_id: str, session: GuestSession = Depends(current_guest), db: Session = Depends(get_db)):
    try:
        with storage_errors(db, "update guest cart item"):
            line = cart.increment(db, session.guest_id, item_id)
    finally:
        guest_carts.invalidate(session.token)
    return ok(line, "Cart item quantity increased", sessionId=session.token)


@router.put("/items/{item_id}/decrement")
def guest_decrement(item_id: str, session: GuestSession = Depends(current_guest), db: Session = Depends(get_db)):
    try:
        with storage_errors(db, "update guest cart item"):
            action, line = cart.decrement(db, session.guest_id, item_id)
    finally:
        guest_carts.invalidate(session.token)
    msg = "Item removed from cart" if action == "removed" else "Cart item quantity decreased"
    return ok(line, msg, sessionId=session.token)


@router.delete("/items/{item_id}")
def guest_remove_item(item_id: str, session: GuestSession = Depends(current_guest), db: Session = Depends(get_db)):
    try:
        with storage_errors(db, "remove guest cart item"):
            line = cart.remove_item(db, session.guest_id, item_id)
    finally:
        guest_carts.invalidate(session.token)
    return ok(line, "Item removed from cart successfully", sessionId=session.token)


@router.delete("/clear")
def guest_clear(session: GuestSession = Depends(current_guest), db: Session = Depends(get_db)):
    try:
        with storage_errors(db, "clear guest cart"):
            n = cart.clear_cart(db, session.guest_id)
    finally:
        guest_carts.invalidate(session.token)
    return ok({"items_removed": n}, "Cart cleared successfully", sessionId=session.token)
