# storefront/routes/orders.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import require_admin, require_user
from ..errors import ValidationError, storage_errors
from ..models import ORDER_STATUSES, User
from ..responses import ok
from ..schemas import CancelOrderIn, OrderIn, OrderStatusIn
from ..shopping import orders

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", status_code=201)
def create_order(payload: OrderIn, user: User = Depends(require_user), db: Session = Depends(get_db)):
    with storage_errors(db, "create order"):
        order = orders.create_order(
            db,
            user.id,
            payload.customer_info,
            payload.delivery_info,
            payload.payment_info,
            notes=payload.order_notes,
            delivery_fee=payload.delivery_fee,
        )
        return ok(orders.serialize_order(order), "Order created successfully")


@router.get("/my-orders")
def my_orders(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "fetch orders"):
        return ok(orders.list_user_orders(db, user.id, limit=limit, offset=offset))


# -------------------
# Admin
# -------------------
@router.get("/admin/all")
def all_orders(
    status: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if status and status not in ORDER_STATUSES:
        raise ValidationError("Invalid status. Valid statuses: " + ", ".join(ORDER_STATUSES))
    with storage_errors(db, "fetch orders"):
        return ok(orders.list_all_orders(db, limit=limit, offset=offset, status=status))


@router.get("/admin/statistics")
def order_statistics(
    days: int = Query(30, ge=1, le=3650),
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "fetch order statistics"):
        return ok(orders.statistics(db, days=days))


@router.put("/{order_id}/status")
def update_order_status(
    order_id: str,
    payload: OrderStatusIn,
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "update order status"):
        order = orders.update_status(db, order_id, payload.status, payload.notes)
        return ok(orders.serialize_order(order), "Order status updated successfully")


# -------------------
# Owner
# -------------------
@router.get("/number/{order_number}")
def order_by_number(order_number: str, user: User = Depends(require_user), db: Session = Depends(get_db)):
    with storage_errors(db, "fetch order"):
        order = orders.get_order_by_number(db, order_number, user_id=user.id)
        return ok(orders.order_detail(db, order))


@router.put("/{order_id}/cancel")
def cancel_order(
    order_id: str,
    payload: Optional[CancelOrderIn] = None,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "cancel order"):
        order = orders.get_order(db, order_id, user_id=user.id)
        order = orders.cancel_order(db, order, payload.reason if payload else None)
        return ok(orders.serialize_order(order), "Order cancelled successfully")


@router.get("/{order_id}")
def order_by_id(order_id: str, user: User = Depends(require_user), db: Session = Depends(get_db)):
    with storage_errors(db, "fetch order"):
        order = orders.get_order(db, order_id, user_id=user.id)
        return ok(orders.order_detail(db, order))
