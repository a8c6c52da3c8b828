# storefront/routes/cart.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import require_user
from ..errors import storage_errors
from ..models import User
from ..responses import ok
from ..schemas import CartAddIn, QuantityIn
from ..shopping import cart

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("")
def get_cart(user: User = Depends(require_user), db: Session = Depends(get_db)):
    with storage_errors(db, "fetch cart"):
        return ok(cart.cart_view(db, user.id))


@router.post("/add", status_code=201)
def add_to_cart(payload: CartAddIn, user: User = Depends(require_user), db: Session = Depends(get_db)):
    with storage_errors(db, "add item to cart"):
        line = cart.add_item(
            db,
            user.id,
            payload.product_id,
            payload.variant_id,
            payload.color_id,
            payload.quantity,
            payload.accessories,
            payload.total_price,
        )
    return ok(line, "Item added to cart successfully")


@router.get("/summary")
def cart_summary(user: User = Depends(require_user), db: Session = Depends(get_db)):
    with storage_errors(db, "fetch cart summary"):
        return ok(cart.summarize(cart.get_lines(db, user.id)))


@router.get("/check-empty")
def check_empty(user: User = Depends(require_user), db: Session = Depends(get_db)):
    with storage_errors(db, "check cart"):
        return ok({"is_empty": cart.is_empty(db, user.id)})


@router.get("/items/{item_id}")
def get_item(item_id: str, user: User = Depends(require_user), db: Session = Depends(get_db)):
    with storage_errors(db, "fetch cart item"):
        return ok(cart.serialize_lines(db, [cart.get_line(db, user.id, item_id)])[0])


@router.put("/items/{item_id}/quantity")
def update_quantity(
    item_id: str,
    payload: QuantityIn,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "update cart item"):
        action, line = cart.set_quantity(db, user.id, item_id, payload.quantity)
    if action == "removed":
        return ok(line, "Item removed from cart")
    return ok(line, "Cart item quantity updated")


@router.put("/items/{item_id}/increment")
def increment_item(item_id: str, user: User = Depends(require_user), db: Session = Depends(get_db)):
    with storage_errors(db, "update cart item"):
        line = cart.increment(db, user.id, item_id)
    return ok(line, "Cart item quantity increased")


@router.put("/items/{item_id}/decrement")
def decrement_item(item_id: str, user: User = Depends(require_user), db: Session = Depends(get_db)):
    with storage_errors(db, "update cart item"):
        action, line = cart.decrement(db, user.id, item_id)
    if action == "removed":
        return ok(line, "Item removed from cart")
    return ok(line, "Cart item quantity decreased")


@router.delete("/items/{item_id}")
def remove_item(item_id: str, user: User = Depends(require_user), db: Session = Depends(get_db)):
    with storage_errors(db, "remove cart item"):
        line = cart.remove_item(db, user.id, item_id)
    return ok(line, "Item removed from cart successfully")


@router.delete("/clear")
def clear(user: User = Depends(require_user), db: Session = Depends(get_db)):
    with storage_errors(db, "clear cart"):
        n = cart.clear_cart(db, user.id)
    return ok({"items_removed": n}, "Cart cleared successfully")
