# storefront/routes/reviews.py
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..catalog import resolve_product
from ..db import get_db, new_id
from ..deps import require_admin
from ..errors import NotFoundError, storage_errors
from ..models import Product, Review, User
from ..responses import ok
from ..schemas import ReviewIn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["reviews"])


def serialize_review(r: Review) -> Dict[str, Any]:
    return {
        "id": r.id,
        "product_id": r.product_id,
        "rating": r.rating,
        "title": r.title,
        "review": r.review,
        "user_name": r.user_name,
        "user_email": r.user_email,
        "created_at": r.created_at,
    }


def _refresh_product_rating(db: Session, product_id: str) -> None:
    avg, n = (
        db.query(func.avg(Review.rating), func.count(Review.id))
        .filter(Review.product_id == product_id)
        .one()
    )
    db.query(Product).filter(Product.id == product_id).update(
        {Product.rating: round(float(avg or 0.0), 2), Product.review_count: int(n or 0)},
        synchronize_session=False,
    )


@router.post("/submit", status_code=201)
def submit_review(payload: ReviewIn, db: Session = Depends(get_db)):
    with storage_errors(db, "submit review"):
        product = resolve_product(db, payload.productId)
        r = Review(
            id=new_id(),
            product_id=product.id,
            rating=payload.rating,
            title=payload.title,
            review=payload.review,
            user_name=payload.userName,
            user_email=str(payload.userEmail).lower(),
        )
        db.add(r)
        db.flush()
        _refresh_product_rating(db, product.id)
        db.commit()
        db.refresh(r)
    logger.info("Review %s submitted for product %s", r.id, r.product_id)
    return ok(serialize_review(r), "Review submitted successfully")


@router.get("/product/{product_id}")
def product_reviews(product_id: str, db: Session = Depends(get_db)):
    with storage_errors(db, "fetch reviews"):
        product = resolve_product(db, product_id)
        rows = (
            db.query(Review)
            .filter(Review.product_id == product.id)
            .order_by(Review.created_at.desc())
            .all()
        )
    avg = sum(r.rating for r in rows) / len(rows) if rows else 0.0
    return ok(
        {
            "reviews": [serialize_review(r) for r in rows],
            "averageRating": f"{avg:.1f}",
            "totalReviews": len(rows),
        }
    )


# -------------------
# Admin
# -------------------
@router.get("/all")
def all_reviews(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "fetch reviews"):
        rows = (
            db.query(Review, Product.name)
            .outerjoin(Product, Product.id == Review.product_id)
            .order_by(Review.created_at.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
    return ok([{**serialize_review(r), "product_name": name} for r, name in rows])


@router.delete("/{review_id}")
def delete_review(review_id: str, _admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    with storage_errors(db, "delete review"):
        r = db.query(Review).filter(Review.id == review_id).first()
        if not r:
            raise NotFoundError("Review not found")
        product_id = r.product_id
        db.delete(r)
        db.flush()
        _refresh_product_rating(db, product_id)
        db.commit()
    return ok(message="Review deleted successfully")
