# storefront/routes/products.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..catalog import (
    active_products,
    get_accessory,
    get_product,
    serialize_accessory,
    serialize_product,
    with_details,
)
from ..db import get_db, new_id
from ..deps import require_admin
from ..errors import ConflictError, NotFoundError, storage_errors
from ..models import Accessory, Product, User
from ..responses import ok
from ..schemas import AccessoryIn, AccessoryUpdateIn, ProductIn, ProductUpdateIn
from ..shopping.cart import money

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


# -------------------
# Accessories (before /{product_id} so the path is not swallowed)
# -------------------
@router.get("/accessories/all")
def list_accessories(db: Session = Depends(get_db)):
    with storage_errors(db, "fetch accessories"):
        rows = db.query(Accessory).filter(Accessory.is_active.is_(True)).order_by(Accessory.name).all()
        return ok([serialize_accessory(a) for a in rows])


@router.get("/accessories/{accessory_id}")
def accessory_by_id(accessory_id: str, db: Session = Depends(get_db)):
    with storage_errors(db, "fetch accessory"):
        return ok(serialize_accessory(get_accessory(db, accessory_id)))


@router.post("/accessories", status_code=201)
def create_accessory(payload: AccessoryIn, _admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    with storage_errors(db, "create accessory"):
        a = Accessory(id=new_id(), **payload.model_dump())
        a.price = money(a.price)
        db.add(a)
        db.commit()
        db.refresh(a)
    return ok(serialize_accessory(a), "Accessory created successfully")


@router.put("/accessories/{accessory_id}")
def update_accessory(
    accessory_id: str,
    payload: AccessoryUpdateIn,
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "update accessory"):
        a = get_accessory(db, accessory_id, active_only=False)
        for k, v in payload.model_dump(exclude_unset=True).items():
            setattr(a, k, money(v) if k == "price" else v)
        db.commit()
        db.refresh(a)
    return ok(serialize_accessory(a), "Accessory updated successfully")


@router.delete("/accessories/{accessory_id}")
def delete_accessory(accessory_id: str, _admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    with storage_errors(db, "delete accessory"):
        a = get_accessory(db, accessory_id, active_only=False)
        a.is_active = False
        db.commit()
    return ok(message="Accessory deleted successfully")


# -------------------
# Products
# -------------------
@router.get("")
def list_products(category: Optional[str] = None, featured: Optional[bool] = None, db: Session = Depends(get_db)):
    with storage_errors(db, "fetch products"):
        return ok(with_details(db, active_products(db, category=category, featured=featured)))


@router.get("/featured")
def featured_products(db: Session = Depends(get_db)):
    with storage_errors(db, "fetch featured products"):
        return ok(with_details(db, active_products(db, featured=True)))


@router.get("/category/{category}")
def products_by_category(category: str, db: Session = Depends(get_db)):
    with storage_errors(db, "fetch products"):
        return ok(with_details(db, active_products(db, category=category)))


@router.get("/slug/{slug}")
def product_by_slug(slug: str, db: Session = Depends(get_db)):
    with storage_errors(db, "fetch product"):
        p = get_product(db, slug=slug)
        return ok(with_details(db, [p], full=True)[0])


@router.get("/{product_id}")
def product_by_id(product_id: str, db: Session = Depends(get_db)):
    with storage_errors(db, "fetch product"):
        p = get_product(db, product_id=product_id)
        return ok(with_details(db, [p], full=True)[0])


@router.post("", status_code=201)
def create_product(payload: ProductIn, _admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    with storage_errors(db, "create product"):
        data = payload.model_dump()
        p = Product(id=new_id(), **data)
        p.base_price = money(p.base_price)
        db.add(p)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Product slug already exists")
        db.refresh(p)
    logger.info("Product %s created (%s)", p.id, p.slug)
    return ok(serialize_product(p), "Product created successfully")


@router.put("/{product_id}")
def update_product(
    product_id: str,
    payload: ProductUpdateIn,
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    with storage_errors(db, "update product"):
        p = db.query(Product).filter(Product.id == product_id).first()
        if not p:
            raise NotFoundError("Product not found")
        for k, v in payload.model_dump(exclude_unset=True).items():
            setattr(p, k, v)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Product slug already exists")
        db.refresh(p)
    return ok(serialize_product(p), "Product updated successfully")


@router.delete("/{product_id}")
def delete_product(product_id: str, _admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    with storage_errors(db, "delete product"):
        p = db.query(Product).filter(Product.id == product_id).first()
        if not p:
            raise NotFoundError("Product not found")
        p.is_active = False
        db.commit()
    logger.info("Product %s deactivated", product_id)
    return ok(message="Product deleted successfully")
