# tests/conftest.py
from __future__ import annotations

import os

# settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "development"
os.environ["JWT_SECRET"] = "test-secret"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.auth import create_token
from storefront.db import Base, get_db, make_engine
from storefront.main import app
from storefront.models import (
    Accessory,
    Product,
    ProductColor,
    ProductImage,
    ProductVariant,
    User,
)
from storefront.shopping.cache import guest_carts

engine = make_engine("sqlite://", poolclass=StaticPool)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    guest_carts.clear()
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _make_user(db, phone, name, role="user"):
    u = User(phone=phone, name=name, email=None, role=role, is_verified=True)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture()
def user(db):
    return _make_user(db, "+15550000001", "Test User")


@pytest.fixture()
def other_user(db):
    return _make_user(db, "+15550000002", "Other User")


@pytest.fixture()
def admin(db):
    return _make_user(db, "+15550000099", "Admin", role="admin")


@pytest.fixture()
def auth_headers(user):
    return {"Authorization": f"Bearer {create_token(user)}"}


@pytest.fixture()
def other_headers(other_user):
    return {"Authorization": f"Bearer {create_token(other_user)}"}


@pytest.fixture()
def admin_headers(admin):
    return {"Authorization": f"Bearer {create_token(admin)}"}


@pytest.fixture()
def catalog(db):
    """One scooter with two variants and two colors, plus one accessory."""
    p = Product(
        name="Volt S1",
        slug="volt-s1",
        description="City scooter",
        category="scooter",
        base_price=100.0,
        is_featured=True,
    )
    db.add(p)
    db.flush()

    v1 = ProductVariant(product_id=p.id, name="Standard", range_km=80, price=100.0)
    v2 = ProductVariant(product_id=p.id, name="Long Range", range_km=140, price=150.0, is_new=True)
    c1 = ProductColor(product_id=p.id, name="Black", color_code="#000000")
    c2 = ProductColor(product_id=p.id, name="Red", color_code="#FF0000")
    db.add_all([v1, v2, c1, c2])
    db.flush()

    db.add(ProductImage(product_id=p.id, image_url="/img/s1.png", is_primary=True))
    acc = Accessory(name="Helmet", price=25.0, image_url="/img/helmet.png")
    db.add(acc)
    db.commit()

    return {
        "product": p.id,
        "slug": p.slug,
        "variants": [v1.id, v2.id],
        "colors": [c1.id, c2.id],
        "accessory": acc.id,
    }


@pytest.fixture()
def line_body(catalog):
    def _body(quantity=1, total_price=100.0, variant=0, color=0, accessories=None):
        return {
            "product_id": catalog["product"],
            "variant_id": catalog["variants"][variant],
            "color_id": catalog["colors"][color],
            "quantity": quantity,
            "accessories": accessories or [],
            "total_price": total_price,
        }

    return _body
