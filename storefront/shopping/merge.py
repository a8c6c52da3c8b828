# storefront/shopping/merge.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import CartItem, Order, User
from .cart import get_lines, load_json_list, upsert_line
from .identity import GUEST_ROLE

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    merged: int
    found: int
    source_id: str
    source_removed: bool = False

    @property
    def failed(self) -> int:
        return self.found - self.merged

    def as_dict(self) -> Dict[str, Any]:
        return {
            "itemsTransferred": self.merged,
            "totalItemsFound": self.found,
            "guestUserId": self.source_id,
        }


def _merge_line(db: Session, line: CartItem, dest_id: str) -> None:
    """Move one line onto ``dest_id`` and drop it from the source, in one transaction."""
    upsert_line(
        db,
        user_id=dest_id,
        product_id=line.product_id,
        variant_id=line.variant_id,
        color_id=line.color_id,
        quantity=line.quantity,
        accessories=load_json_list(line.accessories_json),
        total_price=line.total_price,
    )
    db.query(CartItem).filter(CartItem.id == line.id).delete(synchronize_session=False)
    db.commit()


def _remove_placeholder(db: Session, source_id: str) -> bool:
    """Delete the guest user once its cart is gone, unless it still owns orders."""
    if db.query(CartItem.id).filter(CartItem.user_id == source_id).first():
        return False
    if db.query(Order.id).filter(Order.user_id == source_id).first():
        logger.info("Keeping guest user %s: it owns orders", source_id)
        return False
    n = db.query(User).filter(User.id == source_id, User.role == GUEST_ROLE).delete(synchronize_session=False)
    db.commit()
    return bool(n)


def merge_cart(db: Session, source_id: str, dest_id: str) -> MergeResult:
    """Fold every cart line of ``source_id`` into ``dest_id``.

    Lines are keyed by (product, variant, color): on a match quantities and
    totals are summed and the source accessories win, otherwise the line is
    copied as is. Best effort: a failing line is logged and left in the source
    cart, the remaining lines still merge. The source user row may be missing
    (lines are looked up by id regardless).
    """
    if source_id == dest_id:
        raise ValueError("source and destination carts must differ")

    lines = get_lines(db, source_id)
    result = MergeResult(merged=0, found=len(lines), source_id=source_id)
    if not lines:
        return result

    # plain snapshots; the ORM rows expire on every per-line commit
    snapshot = [
        CartItem(
            id=x.id,
            product_id=x.product_id,
            variant_id=x.variant_id,
            color_id=x.color_id,
            quantity=x.quantity,
            accessories_json=x.accessories_json,
            total_price=x.total_price,
        )
        for x in lines
    ]

    for line in snapshot:
        try:
            _merge_line(db, line, dest_id)
            result.merged += 1
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(
                "Could not merge cart line %s (product=%s variant=%s color=%s): %s",
                line.id, line.product_id, line.variant_id, line.color_id, e,
            )

    try:
        result.source_removed = _remove_placeholder(db, source_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Could not delete guest user %s: %s", source_id, e)

    logger.info(
        "Merged %s/%s cart lines from %s into %s", result.merged, result.found, source_id, dest_id
    )
    return result
