# tests/test_reviews_contact.py
from storefront.models import Product


def _review(product, rating=5, **extra):
    return {
        "productId": product,
        "rating": rating,
        "title": "Great ride",
        "review": "Smooth and quiet.",
        "userName": "Sam",
        "userEmail": "Sam@Example.com",
        **extra,
    }


def test_submit_review_by_slug_updates_rating(client, db, catalog):
    assert client.post("/reviews/submit", json=_review("volt-s1", 5)).status_code == 201
    r = client.post("/reviews/submit", json=_review(catalog["product"], 4))
    assert r.status_code == 201
    assert r.json()["data"]["user_email"] == "sam@example.com"

    db.expire_all()
    p = db.query(Product).filter(Product.id == catalog["product"]).one()
    assert p.review_count == 2
    assert p.rating == 4.5

    data = client.get(f"/reviews/product/{catalog['product']}").json()["data"]
    assert data["averageRating"] == "4.5"
    assert data["totalReviews"] == 2


def test_review_validation(client, catalog):
    assert client.post("/reviews/submit", json=_review("volt-s1", 6)).status_code == 400
    assert client.post("/reviews/submit", json=_review("volt-s1", userEmail="nope")).status_code == 400
    assert client.post("/reviews/submit", json=_review("missing-product")).status_code == 404


def test_no_reviews_yet(client, catalog):
    data = client.get("/reviews/product/volt-s1").json()["data"]
    assert data == {"reviews": [], "averageRating": "0.0", "totalReviews": 0}


def test_admin_review_management(client, db, catalog, auth_headers, admin_headers):
    rid = client.post("/reviews/submit", json=_review("volt-s1", 2)).json()["data"]["id"]

    assert client.get("/reviews/all", headers=auth_headers).status_code == 403
    rows = client.get("/reviews/all", headers=admin_headers).json()["data"]
    assert rows[0]["product_name"] == "Volt S1"

    assert client.delete(f"/reviews/{rid}", headers=admin_headers).status_code == 200
    assert client.delete(f"/reviews/{rid}", headers=admin_headers).status_code == 404

    db.expire_all()
    p = db.query(Product).filter(Product.id == catalog["product"]).one()
    assert (p.review_count, p.rating) == (0, 0.0)


def test_contact_submit(client):
    r = client.post(
        "/contact/submit",
        json={
            "name": "  Jo  ",
            "email": "JO@Example.COM",
            "subject": "Test ride",
            "message": "Can I book one?",
        },
    )
    assert r.status_code == 201
    data = r.json()["data"]
    assert data["name"] == "Jo"
    assert data["email"] == "jo@example.com"
    assert data["status"] == "new"


def test_contact_requires_fields(client):
    r = client.post("/contact/submit", json={"name": "Jo", "email": "jo@example.com"})
    assert r.status_code == 400


def test_contact_admin(client, auth_headers, admin_headers):
    mid = client.post(
        "/contact/submit",
        json={"name": "Jo", "email": "jo@example.com", "subject": "Hi", "message": "Hello"},
    ).json()["data"]["id"]

    assert client.get("/contact/messages", headers=auth_headers).status_code == 403
    assert len(client.get("/contact/messages?status=new", headers=admin_headers).json()["data"]) == 1

    r = client.patch(f"/contact/messages/{mid}/status", json={"status": "resolved"}, headers=admin_headers)
    assert r.json()["data"]["status"] == "resolved"
    bad = client.patch(f"/contact/messages/{mid}/status", json={"status": "archived"}, headers=admin_headers)
    assert bad.status_code == 400

    assert client.delete(f"/contact/messages/{mid}", headers=admin_headers).status_code == 200
    assert client.get("/contact/messages", headers=admin_headers).json()["data"] == []


def test_health(client):
    body = client.get("/health").json()
    assert body["success"] is True
    assert body["environment"] == "development"


def test_unknown_route_uses_envelope(client):
    r = client.get("/nowhere")
    assert r.status_code == 404
    assert r.json()["success"] is False
