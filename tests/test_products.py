# tests/test_products.py
from storefront.models import ProductFeature, ProductSpecification


def test_list_products_with_details(client, catalog):
    r = client.get("/products")
    assert r.status_code == 200
    [p] = r.json()["data"]
    assert p["slug"] == "volt-s1"
    assert [v["name"] for v in p["variants"]] == ["Standard", "Long Range"]
    assert [c["name"] for c in p["colors"]] == ["Black", "Red"]
    assert p["images"][0]["is_primary"] is True
    assert "specifications" not in p


def test_single_product_views(client, db, catalog):
    db.add(ProductSpecification(product_id=catalog["product"], spec_name="Motor", spec_value="3000", spec_unit="W"))
    db.add(ProductFeature(product_id=catalog["product"], feature_name="Cruise control"))
    db.commit()

    by_slug = client.get("/products/slug/volt-s1").json()["data"]
    by_id = client.get(f"/products/{catalog['product']}").json()["data"]
    assert by_slug["id"] == by_id["id"] == catalog["product"]
    assert by_id["specifications"][0]["spec_unit"] == "W"
    assert by_id["features"][0]["feature_name"] == "Cruise control"


def test_featured_and_category(client, catalog):
    assert len(client.get("/products/featured").json()["data"]) == 1
    assert len(client.get("/products/category/scooter").json()["data"]) == 1
    assert client.get("/products/category/bike").json()["data"] == []


def test_unknown_product(client, catalog):
    r = client.get("/products/does-not-exist")
    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "Product not found"}


def test_accessories(client, catalog):
    [a] = client.get("/products/accessories/all").json()["data"]
    assert a["name"] == "Helmet"
    assert client.get(f"/products/accessories/{catalog['accessory']}").json()["data"]["price"] == 25.0
    assert client.get("/products/accessories/nope").status_code == 404


def test_admin_product_crud(client, auth_headers, admin_headers):
    body = {"name": "Volt X", "slug": "volt-x", "base_price": 1999.99}
    assert client.post("/products", json=body, headers=auth_headers).status_code == 403

    r = client.post("/products", json=body, headers=admin_headers)
    assert r.status_code == 201
    pid = r.json()["data"]["id"]
    assert client.post("/products", json=body, headers=admin_headers).status_code == 400

    r = client.put(f"/products/{pid}", json={"is_featured": True, "base_price": 1899}, headers=admin_headers)
    assert r.json()["data"]["is_featured"] is True
    assert r.json()["data"]["base_price"] == 1899.0

    assert client.delete(f"/products/{pid}", headers=admin_headers).status_code == 200
    # soft delete hides it from the public views
    assert client.get(f"/products/{pid}").status_code == 404
    assert client.get("/products/slug/volt-x").status_code == 404


def test_admin_accessory_crud(client, admin_headers):
    r = client.post(
        "/products/accessories",
        json={"name": "Lock", "price": 15, "image_url": "/img/lock.png"},
        headers=admin_headers,
    )
    assert r.status_code == 201
    aid = r.json()["data"]["id"]

    r = client.put(f"/products/accessories/{aid}", json={"price": 12.5}, headers=admin_headers)
    assert r.json()["data"]["price"] == 12.5

    client.delete(f"/products/accessories/{aid}", headers=admin_headers)
    assert client.get(f"/products/accessories/{aid}").status_code == 404
