# storefront/catalog.py
from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from .errors import NotFoundError
from .models import (
    Accessory,
    Product,
    ProductColor,
    ProductFeature,
    ProductImage,
    ProductSpecification,
    ProductVariant,
)
from .shopping.cart import money


def _group(rows: List[Any]) -> Dict[str, List[Any]]:
    out: Dict[str, List[Any]] = defaultdict(list)
    for r in rows:
        out[r.product_id].append(r)
    return out


def _variant(v: ProductVariant) -> Dict[str, Any]:
    return {
        "id": v.id,
        "name": v.name,
        "battery_capacity": v.battery_capacity,
        "range_km": v.range_km,
        "top_speed_kmh": v.top_speed_kmh,
        "acceleration_sec": v.acceleration_sec,
        "price": money(v.price),
        "is_new": v.is_new,
    }


def _color(c: ProductColor) -> Dict[str, Any]:
    return {"id": c.id, "name": c.name, "color_code": c.color_code, "css_filter": c.css_filter}


def _image(i: ProductImage) -> Dict[str, Any]:
    return {
        "id": i.id,
        "image_url": i.image_url,
        "alt_text": i.alt_text,
        "display_order": i.display_order,
        "is_primary": i.is_primary,
        "variant_id": i.variant_id,
        "color_id": i.color_id,
    }


def serialize_product(p: Product) -> Dict[str, Any]:
    return {
        "id": p.id,
        "name": p.name,
        "slug": p.slug,
        "description": p.description,
        "category": p.category,
        "base_price": money(p.base_price),
        "original_price": money(p.original_price) if p.original_price is not None else None,
        "is_active": p.is_active,
        "is_featured": p.is_featured,
        "rating": float(p.rating or 0.0),
        "review_count": p.review_count or 0,
        "created_at": p.created_at,
        "updated_at": p.updated_at,
    }


def with_details(db: Session, products: List[Product], full: bool = False) -> List[Dict[str, Any]]:
    """Attach active variants/colors and images; specs and features when ``full``."""
    ids = [p.id for p in products]
    if not ids:
        return []

    variants = _group(
        db.query(ProductVariant)
        .filter(ProductVariant.product_id.in_(ids), ProductVariant.is_active.is_(True))
        .order_by(ProductVariant.price)
        .all()
    )
    colors = _group(
        db.query(ProductColor)
        .filter(ProductColor.product_id.in_(ids), ProductColor.is_active.is_(True))
        .order_by(ProductColor.name)
        .all()
    )
    images = _group(
        db.query(ProductImage)
        .filter(ProductImage.product_id.in_(ids))
        .order_by(ProductImage.display_order)
        .all()
    )

    specs: Dict[str, List[Any]] = {}
    features: Dict[str, List[Any]] = {}
    if full:
        specs = _group(
            db.query(ProductSpecification)
            .filter(ProductSpecification.product_id.in_(ids))
            .order_by(ProductSpecification.display_order)
            .all()
        )
        features = _group(
            db.query(ProductFeature)
            .filter(ProductFeature.product_id.in_(ids))
            .order_by(ProductFeature.display_order)
            .all()
        )

    out: List[Dict[str, Any]] = []
    for p in products:
        d = serialize_product(p)
        d["variants"] = [_variant(v) for v in variants.get(p.id, [])]
        d["colors"] = [_color(c) for c in colors.get(p.id, [])]
        d["images"] = [_image(i) for i in images.get(p.id, [])]
        if full:
            d["specifications"] = [
                {"id": s.id, "variant_id": s.variant_id, "spec_name": s.spec_name,
                 "spec_value": s.spec_value, "spec_unit": s.spec_unit}
                for s in specs.get(p.id, [])
            ]
            d["features"] = [
                {"id": f.id, "feature_name": f.feature_name, "feature_description": f.feature_description}
                for f in features.get(p.id, [])
            ]
        out.append(d)
    return out


def active_products(
    db: Session, category: Optional[str] = None, featured: Optional[bool] = None
) -> List[Product]:
    q = db.query(Product).filter(Product.is_active.is_(True))
    if category:
        q = q.filter(Product.category == category)
    if featured is not None:
        q = q.filter(Product.is_featured.is_(featured))
    return q.order_by(Product.created_at.desc()).all()


def get_product(db: Session, product_id: Optional[str] = None, slug: Optional[str] = None) -> Product:
    q = db.query(Product).filter(Product.is_active.is_(True))
    q = q.filter(Product.id == product_id) if product_id else q.filter(Product.slug == slug)
    p = q.first()
    if not p:
        raise NotFoundError("Product not found")
    return p


def resolve_product(db: Session, id_or_slug: str) -> Product:
    """Reviews address products by id or by slug."""
    p = db.query(Product).filter(Product.id == id_or_slug).first()
    if not p:
        p = db.query(Product).filter(Product.slug == id_or_slug).first()
    if not p:
        raise NotFoundError("Product not found")
    return p


def serialize_accessory(a: Accessory) -> Dict[str, Any]:
    return {
        "id": a.id,
        "name": a.name,
        "description": a.description,
        "price": money(a.price),
        "image_url": a.image_url,
        "is_active": a.is_active,
        "created_at": a.created_at,
    }


def get_accessory(db: Session, accessory_id: str, active_only: bool = True) -> Accessory:
    q = db.query(Accessory).filter(Accessory.id == accessory_id)
    if active_only:
        q = q.filter(Accessory.is_active.is_(True))
    a = q.first()
    if not a:
        raise NotFoundError("Accessory not found")
    return a
