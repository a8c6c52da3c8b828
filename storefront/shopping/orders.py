# storefront/shopping/orders.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..db import new_id, utcnow
from ..errors import EmptyCartError, InvalidTransitionError, NotFoundError, ValidationError
from ..models import (
    ORDER_STATUSES,
    CartItem,
    Order,
    OrderItem,
    OrderStatusHistory,
    Product,
    ProductColor,
    ProductVariant,
)
from .cart import cart_total, dump_json, get_lines, load_json_dict, load_json_list, money, unit_price

logger = logging.getLogger(__name__)

ORDER_NUMBER_ATTEMPTS = 3

# Forward-only lifecycle; cancellation is allowed from any pre-delivery state.
TRANSITIONS: Dict[str, frozenset] = {
    "pending": frozenset({"confirmed", "cancelled"}),
    "confirmed": frozenset({"processing", "cancelled"}),
    "processing": frozenset({"shipped", "cancelled"}),
    "shipped": frozenset({"delivered", "cancelled"}),
    "delivered": frozenset(),
    "cancelled": frozenset(),
}


def can_transition(current: str, new: str) -> bool:
    return new in TRANSITIONS.get(current, frozenset())


# -------------------
# Order numbers
# -------------------
def order_number_prefix(day: datetime) -> str:
    return f"{settings.order_number_prefix}-{day.strftime('%Y%m%d')}-"


def next_order_number(db: Session, now: Optional[datetime] = None) -> str:
    """PREFIX-YYYYMMDD-NNNN, the counter restarting every calendar day (UTC)."""
    prefix = order_number_prefix(now or utcnow())
    taken = db.query(Order.order_number).filter(Order.order_number.like(prefix + "%")).all()
    last = 0
    for (num,) in taken:
        tail = num[len(prefix):]
        if tail.isdigit():
            last = max(last, int(tail))
    return f"{prefix}{last + 1:04d}"


# -------------------
# Creation
# -------------------
def _snapshot_lines(db: Session, order_id: str, lines: List[CartItem]) -> None:
    for line in lines:
        db.add(
            OrderItem(
                id=new_id(),
                order_id=order_id,
                product_id=line.product_id,
                variant_id=line.variant_id,
                color_id=line.color_id,
                quantity=line.quantity,
                accessories_json=line.accessories_json or "[]",
                unit_price=unit_price(line.total_price, line.quantity),
                total_price=money(line.total_price),
            )
        )


def _append_history(db: Session, order_id: str, status: str, notes: Optional[str]) -> None:
    db.add(OrderStatusHistory(id=new_id(), order_id=order_id, status=status, notes=notes))


def _clear_cart(db: Session, lines: List[CartItem]) -> None:
    """Deletes the lines copied into the order; lines added meanwhile stay."""
    ids = [x.id for x in lines]
    db.query(CartItem).filter(CartItem.id.in_(ids)).delete(synchronize_session=False)


def _create_once(
    db: Session,
    owner_id: str,
    customer_info: Dict[str, Any],
    delivery_info: Dict[str, Any],
    payment_info: Dict[str, Any],
    notes: Optional[str],
    delivery_fee: float,
) -> Order:
    lines = get_lines(db, owner_id)
    if not lines:
        raise EmptyCartError()

    subtotal = cart_total(lines)
    now = utcnow()
    order = Order(
        id=new_id(),
        order_number=next_order_number(db, now),
        user_id=owner_id,
        status="pending",
        total_amount=subtotal,
        delivery_fee=money(delivery_fee),
        final_amount=money(subtotal + delivery_fee),
        customer_info_json=dump_json(customer_info),
        delivery_info_json=dump_json(delivery_info),
        payment_info_json=dump_json(payment_info),
        order_notes=notes,
        created_at=now,
        updated_at=now,
    )
    db.add(order)
    db.flush()

    _snapshot_lines(db, order.id, lines)
    _append_history(db, order.id, "pending", "Order created successfully")
    db.flush()
    _clear_cart(db, lines)

    db.commit()
    return order


def create_order(
    db: Session,
    owner_id: str,
    customer_info: Dict[str, Any],
    delivery_info: Dict[str, Any],
    payment_info: Dict[str, Any],
    notes: Optional[str] = None,
    delivery_fee: float = 0.0,
) -> Order:
    """Turn the owner's cart into an order in one transaction.

    Header, lines, the first history entry and the cart clear commit together;
    any failure rolls all of it back and leaves the cart as it was.
    """
    if delivery_fee < 0:
        raise ValidationError("delivery_fee must not be negative")

    attempt = 0
    while True:
        attempt += 1
        try:
            order = _create_once(db, owner_id, customer_info, delivery_info, payment_info, notes, delivery_fee)
        except IntegrityError:
            db.rollback()
            if attempt >= ORDER_NUMBER_ATTEMPTS:
                raise
            logger.warning("Order number collision for user %s, retrying (%s)", owner_id, attempt)
            continue
        except Exception:
            db.rollback()
            raise
        logger.info("Order %s created for user %s", order.order_number, owner_id)
        return order


# -------------------
# Status
# -------------------
def update_status(db: Session, order_id: str, new_status: str, notes: Optional[str] = None) -> Order:
    if new_status not in ORDER_STATUSES:
        raise ValidationError("Invalid status. Valid statuses: " + ", ".join(ORDER_STATUSES))

    order = db.query(Order).filter(Order.id == order_id).with_for_update().first()
    if not order:
        raise NotFoundError("Order not found")
    if not can_transition(order.status, new_status):
        raise InvalidTransitionError(f"Cannot change order status from {order.status} to {new_status}")

    order.status = new_status
    order.updated_at = utcnow()
    _append_history(db, order.id, new_status, notes)
    db.commit()
    logger.info("Order %s moved to %s", order.order_number, new_status)
    return order


def cancel_order(db: Session, order: Order, reason: Optional[str] = None) -> Order:
    if order.status == "cancelled":
        raise InvalidTransitionError("Order is already cancelled")
    if order.status == "delivered":
        raise InvalidTransitionError("Cannot cancel delivered order")
    return update_status(db, order.id, "cancelled", reason or "Cancelled by user")


# -------------------
# Reads
# -------------------
def get_order(db: Session, order_id: str, user_id: Optional[str] = None) -> Order:
    q = db.query(Order).filter(Order.id == order_id)
    if user_id:
        q = q.filter(Order.user_id == user_id)
    order = q.first()
    if not order:
        raise NotFoundError("Order not found")
    return order


def get_order_by_number(db: Session, order_number: str, user_id: Optional[str] = None) -> Order:
    q = db.query(Order).filter(Order.order_number == order_number)
    if user_id:
        q = q.filter(Order.user_id == user_id)
    order = q.first()
    if not order:
        raise NotFoundError("Order not found")
    return order


def serialize_order(order: Order, item_count: Optional[int] = None) -> Dict[str, Any]:
    out = {
        "id": order.id,
        "order_number": order.order_number,
        "user_id": order.user_id,
        "status": order.status,
        "total_amount": money(order.total_amount),
        "delivery_fee": money(order.delivery_fee),
        "final_amount": money(order.final_amount),
        "customer_info": load_json_dict(order.customer_info_json),
        "delivery_info": load_json_dict(order.delivery_info_json),
        "payment_info": load_json_dict(order.payment_info_json),
        "order_notes": order.order_notes,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }
    if item_count is not None:
        out["item_count"] = item_count
    return out


def _list_with_counts(q, limit: int, offset: int) -> List[Dict[str, Any]]:
    rows = (
        q.outerjoin(OrderItem, OrderItem.order_id == Order.id)
        .group_by(Order.id)
        .order_by(Order.created_at.desc(), Order.order_number.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return [serialize_order(o, int(n or 0)) for o, n in rows]


def list_user_orders(db: Session, user_id: str, limit: int = 10, offset: int = 0) -> List[Dict[str, Any]]:
    q = db.query(Order, func.count(OrderItem.id)).filter(Order.user_id == user_id)
    return _list_with_counts(q, limit, offset)


def list_all_orders(
    db: Session, limit: int = 20, offset: int = 0, status: Optional[str] = None
) -> List[Dict[str, Any]]:
    q = db.query(Order, func.count(OrderItem.id))
    if status:
        q = q.filter(Order.status == status)
    return _list_with_counts(q, limit, offset)


def order_detail(db: Session, order: Order) -> Dict[str, Any]:
    items = db.query(OrderItem).filter(OrderItem.order_id == order.id).order_by(OrderItem.created_at).all()
    products = {p.id: p for p in db.query(Product).filter(Product.id.in_({i.product_id for i in items})).all()}
    variants = {v.id: v for v in db.query(ProductVariant).filter(ProductVariant.id.in_({i.variant_id for i in items})).all()}
    colors = {c.id: c for c in db.query(ProductColor).filter(ProductColor.id.in_({i.color_id for i in items})).all()}

    history = (
        db.query(OrderStatusHistory)
        .filter(OrderStatusHistory.order_id == order.id)
        .order_by(OrderStatusHistory.created_at.desc())
        .all()
    )

    return {
        "order": serialize_order(order),
        "items": [
            {
                "id": i.id,
                "product_id": i.product_id,
                "variant_id": i.variant_id,
                "color_id": i.color_id,
                "quantity": i.quantity,
                "accessories": load_json_list(i.accessories_json),
                "unit_price": money(i.unit_price),
                "total_price": money(i.total_price),
                "product_name": getattr(products.get(i.product_id), "name", None),
                "variant_name": getattr(variants.get(i.variant_id), "name", None),
                "color_name": getattr(colors.get(i.color_id), "name", None),
            }
            for i in items
        ],
        "status_history": [
            {"id": h.id, "status": h.status, "notes": h.notes, "created_at": h.created_at} for h in history
        ],
    }


def statistics(db: Session, days: int = 30) -> Dict[str, Any]:
    since = utcnow() - timedelta(days=days)
    cols = [func.count(Order.id)]
    for s in ORDER_STATUSES:
        cols.append(func.sum(case((Order.status == s, 1), else_=0)))
    cols.append(func.coalesce(func.sum(Order.final_amount), 0))

    row = db.query(*cols).filter(Order.created_at >= since).one()
    out: Dict[str, Any] = {"total_orders": int(row[0] or 0)}
    for i, s in enumerate(ORDER_STATUSES, start=1):
        out[f"{s}_orders"] = int(row[i] or 0)
    out["total_revenue"] = money(row[-1])
    return out
