# storefront/routes/cart_transfer.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import require_user, required_guest_token
from ..errors import storage_errors
from ..models import User
from ..responses import ok
from ..shopping import cart
from ..shopping.cache import guest_carts
from ..shopping.identity import derive_guest_id, short_token
from ..shopping.merge import merge_cart

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cart-transfer", tags=["cart-transfer"])


@router.post("/transfer")
def transfer_guest_cart(
    guest_token: str = Depends(required_guest_token),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Fold the guest session's cart into the caller's cart."""
    guest_id = derive_guest_id(guest_token)
    logger.info("Transferring cart of guest session %s to user %s", short_token(guest_token), user.id)

    with storage_errors(db, "transfer cart"):
        result = merge_cart(db, guest_id, user.id)
    guest_carts.invalidate(guest_token)

    if not result.found:
        return ok(result.as_dict(), "No items to transfer")
    return ok(result.as_dict(), f"Successfully transferred {result.merged} items to your cart")


@router.get("/user-cart")
def user_cart(user: User = Depends(require_user), db: Session = Depends(get_db)):
    with storage_errors(db, "fetch cart"):
        view = cart.cart_view(db, user.id)
    return ok({"items": view["items"], "total": view["summary"]["total_price"], "summary": view["summary"]})
