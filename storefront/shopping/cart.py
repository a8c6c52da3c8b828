# storefront/shopping/cart.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import Float, cast, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from ..db import new_id, utcnow
from ..errors import NotFoundError, ValidationError
from ..models import CartItem, Product, ProductColor, ProductVariant

logger = logging.getLogger(__name__)

LINE_KEY = ("user_id", "product_id", "variant_id", "color_id")


# -------------------
# JSON helpers
# -------------------
def load_json_list(raw: Optional[str]) -> List[Any]:
    try:
        v = json.loads(raw or "[]")
        return v if isinstance(v, list) else []
    except (TypeError, ValueError):
        return []


def load_json_dict(raw: Optional[str]) -> Dict[str, Any]:
    try:
        v = json.loads(raw or "{}")
        return v if isinstance(v, dict) else {}
    except (TypeError, ValueError):
        return {}


def dump_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def money(x: Any) -> float:
    return round(float(x or 0.0), 2)


def unit_price(total_price: Any, quantity: int) -> float:
    qty = int(quantity or 0)
    if qty <= 0:
        return 0.0
    return money(float(total_price or 0.0) / qty)


# -------------------
# Read side
# -------------------
def get_lines(db: Session, user_id: str) -> List[CartItem]:
    return (
        db.query(CartItem)
        .filter(CartItem.user_id == user_id)
        .order_by(CartItem.created_at.desc(), CartItem.id)
        .all()
    )


def _by_id(db: Session, model: Any, ids: List[str]) -> Dict[str, Any]:
    if not ids:
        return {}
    return {row.id: row for row in db.query(model).filter(model.id.in_(set(ids))).all()}


def serialize_line(
    line: CartItem,
    product: Optional[Product] = None,
    variant: Optional[ProductVariant] = None,
    color: Optional[ProductColor] = None,
) -> Dict[str, Any]:
    return {
        "id": line.id,
        "user_id": line.user_id,
        "product_id": line.product_id,
        "variant_id": line.variant_id,
        "color_id": line.color_id,
        "quantity": line.quantity,
        "accessories": load_json_list(line.accessories_json),
        "total_price": money(line.total_price),
        "unit_price": unit_price(line.total_price, line.quantity),
        "product_name": product.name if product else None,
        "product_slug": product.slug if product else None,
        "variant_name": variant.name if variant else None,
        "color_name": color.name if color else None,
        "color_code": color.color_code if color else None,
        "created_at": line.created_at,
        "updated_at": line.updated_at,
    }


def serialize_lines(db: Session, lines: List[CartItem]) -> List[Dict[str, Any]]:
    products = _by_id(db, Product, [x.product_id for x in lines])
    variants = _by_id(db, ProductVariant, [x.variant_id for x in lines])
    colors = _by_id(db, ProductColor, [x.color_id for x in lines])
    return [
        serialize_line(x, products.get(x.product_id), variants.get(x.variant_id), colors.get(x.color_id))
        for x in lines
    ]


def cart_total(lines: List[CartItem]) -> float:
    return money(sum(float(x.total_price or 0.0) for x in lines))


def summarize(lines: List[CartItem]) -> Dict[str, Any]:
    return {
        "total_items": len(lines),
        "total_quantity": sum(int(x.quantity or 0) for x in lines),
        "total_price": cart_total(lines),
        "is_empty": not lines,
    }


def cart_view(db: Session, user_id: str) -> Dict[str, Any]:
    lines = get_lines(db, user_id)
    return {"items": serialize_lines(db, lines), "summary": summarize(lines)}


def get_line(db: Session, user_id: str, item_id: str) -> CartItem:
    line = db.query(CartItem).filter(CartItem.id == item_id, CartItem.user_id == user_id).first()
    if not line:
        raise NotFoundError("Cart item not found")
    return line


def is_empty(db: Session, user_id: str) -> bool:
    return db.query(CartItem.id).filter(CartItem.user_id == user_id).first() is None


# -------------------
# Write side
# -------------------
def _dialect_insert(db: Session):
    name = db.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert
    if name == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"cart upsert is not supported on {name!r}")


def upsert_line(
    db: Session,
    user_id: str,
    product_id: str,
    variant_id: str,
    color_id: str,
    quantity: int,
    accessories: List[Any],
    total_price: float,
) -> None:
    """Insert a line or add onto the existing one in a single statement.

    On conflict: quantities and totals are summed, accessories are replaced.
    Does not commit.
    """
    table = CartItem.__table__
    now = utcnow()
    insert = _dialect_insert(db)
    stmt = insert(table).values(
        id=new_id(),
        user_id=user_id,
        product_id=product_id,
        variant_id=variant_id,
        color_id=color_id,
        quantity=int(quantity),
        accessories_json=dump_json(accessories or []),
        total_price=money(total_price),
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c[k] for k in LINE_KEY],
        set_={
            "quantity": table.c.quantity + stmt.excluded.quantity,
            "total_price": table.c.total_price + stmt.excluded.total_price,
            "accessories_json": stmt.excluded.accessories_json,
            "updated_at": now,
        },
    )
    db.execute(stmt)


def find_line(db: Session, user_id: str, product_id: str, variant_id: str, color_id: str) -> Optional[CartItem]:
    return (
        db.query(CartItem)
        .filter(
            CartItem.user_id == user_id,
            CartItem.product_id == product_id,
            CartItem.variant_id == variant_id,
            CartItem.color_id == color_id,
        )
        .first()
    )


def add_item(
    db: Session,
    user_id: str,
    product_id: str,
    variant_id: str,
    color_id: str,
    quantity: int,
    accessories: List[Any],
    total_price: float,
) -> Dict[str, Any]:
    if int(quantity) <= 0:
        raise ValidationError("Quantity must be a positive integer")
    if float(total_price) < 0:
        raise ValidationError("total_price must not be negative")

    upsert_line(db, user_id, product_id, variant_id, color_id, quantity, accessories, total_price)
    db.commit()

    line = find_line(db, user_id, product_id, variant_id, color_id)
    logger.info("Cart line %s for user %s now has quantity %s", line.id, user_id, line.quantity)
    return serialize_lines(db, [line])[0]


def _rescaled_total(db: Session, new_quantity: Any) -> Any:
    # right-hand sides of an UPDATE see the pre-update row, so quantity is the old one
    expr = cast(CartItem.total_price, Float) * new_quantity / CartItem.quantity
    if db.get_bind().dialect.name == "sqlite":
        expr = func.round(expr, 2)
    return expr


def _updated(db: Session, user_id: str, item_id: str) -> Dict[str, Any]:
    db.commit()
    return serialize_lines(db, [get_line(db, user_id, item_id)])[0]


def set_quantity(db: Session, user_id: str, item_id: str, quantity: int) -> Tuple[str, Dict[str, Any]]:
    """Returns ("updated"|"removed", line)."""
    if quantity < 0:
        raise ValidationError("Invalid quantity")
    if quantity == 0:
        return "removed", remove_item(db, user_id, item_id)

    n = (
        db.query(CartItem)
        .filter(CartItem.id == item_id, CartItem.user_id == user_id)
        .update(
            {
                CartItem.total_price: _rescaled_total(db, quantity),
                CartItem.quantity: quantity,
                CartItem.updated_at: utcnow(),
            },
            synchronize_session=False,
        )
    )
    if not n:
        db.rollback()
        raise NotFoundError("Cart item not found")
    return "updated", _updated(db, user_id, item_id)


def increment(db: Session, user_id: str, item_id: str) -> Dict[str, Any]:
    n = (
        db.query(CartItem)
        .filter(CartItem.id == item_id, CartItem.user_id == user_id)
        .update(
            {
                CartItem.total_price: _rescaled_total(db, CartItem.quantity + 1),
                CartItem.quantity: CartItem.quantity + 1,
                CartItem.updated_at: utcnow(),
            },
            synchronize_session=False,
        )
    )
    if not n:
        db.rollback()
        raise NotFoundError("Cart item not found")
    return _updated(db, user_id, item_id)


def decrement(db: Session, user_id: str, item_id: str) -> Tuple[str, Dict[str, Any]]:
    """Quantity 1 removes the line; otherwise quantity - 1 with a rescaled total."""
    line = get_line(db, user_id, item_id)
    if line.quantity <= 1:
        return "removed", remove_item(db, user_id, item_id)

    n = (
        db.query(CartItem)
        .filter(CartItem.id == item_id, CartItem.user_id == user_id, CartItem.quantity > 1)
        .update(
            {
                CartItem.total_price: _rescaled_total(db, CartItem.quantity - 1),
                CartItem.quantity: CartItem.quantity - 1,
                CartItem.updated_at: utcnow(),
            },
            synchronize_session=False,
        )
    )
    if not n:
        # dropped to 1 (or vanished) since the read
        db.rollback()
        return "removed", remove_item(db, user_id, item_id)
    return "updated", _updated(db, user_id, item_id)


def remove_item(db: Session, user_id: str, item_id: str) -> Dict[str, Any]:
    line = get_line(db, user_id, item_id)
    data = serialize_lines(db, [line])[0]
    db.delete(line)
    db.commit()
    return data


def clear_cart(db: Session, user_id: str) -> int:
    n = db.query(CartItem).filter(CartItem.user_id == user_id).delete(synchronize_session=False)
    db.commit()
    return n
