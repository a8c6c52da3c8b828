# tests/test_cart.py
import threading

import pytest
from sqlalchemy import event
from sqlalchemy.orm import Session

from storefront.db import Base, make_engine
from storefront.models import CartItem, User
from storefront.shopping.cart import upsert_line


def test_cart_requires_token(client):
    r = client.get("/cart")
    assert r.status_code == 401
    assert r.json() == {"success": False, "error": "Access token required"}


def test_bad_token_is_forbidden(client):
    r = client.get("/cart", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 403
    assert r.json()["success"] is False


def test_add_twice_merges_into_one_line(client, auth_headers, line_body):
    r1 = client.post("/cart/add", json=line_body(quantity=2, total_price=200), headers=auth_headers)
    assert r1.status_code == 201
    r2 = client.post("/cart/add", json=line_body(quantity=1, total_price=100), headers=auth_headers)
    assert r2.status_code == 201
    assert r2.json()["data"]["id"] == r1.json()["data"]["id"]

    items = client.get("/cart", headers=auth_headers).json()["data"]["items"]
    assert len(items) == 1
    assert items[0]["quantity"] == 3
    assert items[0]["total_price"] == 300.0
    assert items[0]["unit_price"] == 100.0
    assert items[0]["product_name"] == "Volt S1"
    assert items[0]["color_name"] == "Black"


def test_repeat_add_replaces_accessories(client, auth_headers, line_body):
    client.post("/cart/add", json=line_body(accessories=[{"id": "a1"}]), headers=auth_headers)
    r = client.post("/cart/add", json=line_body(accessories=[{"id": "a2"}]), headers=auth_headers)
    assert r.json()["data"]["accessories"] == [{"id": "a2"}]


def test_different_color_is_a_new_line(client, auth_headers, line_body):
    client.post("/cart/add", json=line_body(color=0), headers=auth_headers)
    client.post("/cart/add", json=line_body(color=1), headers=auth_headers)
    summary = client.get("/cart/summary", headers=auth_headers).json()["data"]
    assert summary == {"total_items": 2, "total_quantity": 2, "total_price": 200.0, "is_empty": False}


def test_add_rejects_bad_body(client, auth_headers, line_body):
    r = client.post("/cart/add", json=line_body(quantity=0), headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["success"] is False

    body = line_body()
    del body["color_id"]
    assert client.post("/cart/add", json=body, headers=auth_headers).status_code == 400


def test_decrement_at_one_removes_line(client, auth_headers, line_body):
    item = client.post("/cart/add", json=line_body(), headers=auth_headers).json()["data"]
    r = client.put(f"/cart/items/{item['id']}/decrement", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["message"] == "Item removed from cart"
    assert client.get("/cart/check-empty", headers=auth_headers).json()["data"] == {"is_empty": True}


def test_decrement_rescales_total(client, auth_headers, line_body):
    item = client.post("/cart/add", json=line_body(quantity=3, total_price=90), headers=auth_headers).json()["data"]
    r = client.put(f"/cart/items/{item['id']}/decrement", headers=auth_headers)
    data = r.json()["data"]
    assert data["quantity"] == 2
    assert data["total_price"] == 60.0


def test_increment_rescales_total(client, auth_headers, line_body):
    item = client.post("/cart/add", json=line_body(quantity=2, total_price=50), headers=auth_headers).json()["data"]
    data = client.put(f"/cart/items/{item['id']}/increment", headers=auth_headers).json()["data"]
    assert data["quantity"] == 3
    assert data["total_price"] == 75.0


def test_set_quantity(client, auth_headers, line_body):
    item = client.post("/cart/add", json=line_body(quantity=1, total_price=40), headers=auth_headers).json()["data"]
    url = f"/cart/items/{item['id']}/quantity"

    data = client.put(url, json={"quantity": 5}, headers=auth_headers).json()["data"]
    assert (data["quantity"], data["total_price"]) == (5, 200.0)

    assert client.put(url, json={"quantity": -1}, headers=auth_headers).status_code == 400

    r = client.put(url, json={"quantity": 0}, headers=auth_headers)
    assert r.json()["message"] == "Item removed from cart"
    assert client.get(f"/cart/items/{item['id']}", headers=auth_headers).status_code == 404


def test_items_are_scoped_to_owner(client, auth_headers, other_headers, line_body):
    item = client.post("/cart/add", json=line_body(), headers=auth_headers).json()["data"]
    assert client.get(f"/cart/items/{item['id']}", headers=other_headers).status_code == 404
    assert client.delete(f"/cart/items/{item['id']}", headers=other_headers).status_code == 404
    assert client.put(f"/cart/items/{item['id']}/increment", headers=other_headers).status_code == 404


def test_remove_and_clear(client, auth_headers, line_body):
    a = client.post("/cart/add", json=line_body(color=0), headers=auth_headers).json()["data"]
    client.post("/cart/add", json=line_body(color=1), headers=auth_headers)

    r = client.delete(f"/cart/items/{a['id']}", headers=auth_headers)
    assert r.status_code == 200
    assert len(client.get("/cart", headers=auth_headers).json()["data"]["items"]) == 1

    r = client.delete("/cart/clear", headers=auth_headers)
    assert r.json()["data"] == {"items_removed": 1}
    assert client.get("/cart/summary", headers=auth_headers).json()["data"]["is_empty"] is True


def test_concurrent_adds_never_duplicate(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'cart.db'}", connect_args={"timeout": 30})

    # serialize writers instead of failing fast on lock upgrades
    @event.listens_for(eng, "connect")
    def _autocommit(dbapi_conn, _record):
        dbapi_conn.isolation_level = None

    @event.listens_for(eng, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(bind=eng)
    with Session(eng) as s:
        s.add(User(id="u1", phone="+15550001111", name="Racer"))
        s.commit()

    threads_n, adds_each = 8, 5
    errors = []

    def worker():
        try:
            with Session(eng) as s:
                for _ in range(adds_each):
                    upsert_line(s, "u1", "p1", "v1", "c1", 1, [], 10.0)
                    s.commit()
        except Exception as e:  # surfaced by the assertion below
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(threads_n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    with Session(eng) as s:
        lines = s.query(CartItem).filter(CartItem.user_id == "u1").all()
    assert len(lines) == 1
    assert lines[0].quantity == threads_n * adds_each
    assert lines[0].total_price == pytest.approx(threads_n * adds_each * 10.0)
    eng.dispose()
