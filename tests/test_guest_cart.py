# tests/test_guest_cart.py
import time

from storefront.models import User
from storefront.shopping import cart as cart_module
from storefront.shopping.cart import upsert_line
from storefront.shopping.cache import GuestCartCache, guest_carts
from storefront.shopping.identity import derive_guest_id

SESSION = {"X-Guest-Session-Id": "abc123"}


def test_missing_session_mints_one(client):
    r = client.get("/guest-cart")
    assert r.status_code == 200
    body = r.json()
    assert body["sessionId"].startswith("guest_")
    assert body["data"]["items"] == []
    assert body["data"]["summary"]["is_empty"] is True


def test_unknown_session_reads_as_empty_cart(client, db):
    r = client.get("/guest-cart", headers=SESSION)
    assert r.json()["sessionId"] == "abc123"
    assert r.json()["data"]["summary"]["total_items"] == 0
    # reads never create the placeholder user
    assert db.query(User).filter(User.id == derive_guest_id("abc123")).first() is None


def test_bearer_token_rejected(client, auth_headers):
    r = client.get("/guest-cart", headers={**SESSION, **auth_headers})
    assert r.status_code == 400
    assert r.json()["error"] == "User is already authenticated. Use /cart endpoints instead."


def test_first_add_creates_guest_user(client, db, line_body):
    r = client.post("/guest-cart/add", json=line_body(quantity=2, total_price=200), headers=SESSION)
    assert r.status_code == 201
    assert r.json()["sessionId"] == "abc123"

    db.expire_all()
    guest = db.query(User).filter(User.id == derive_guest_id("abc123")).one()
    assert guest.role == "guest"
    assert guest.name == "Guest User"
    assert r.json()["data"]["user_id"] == guest.id


def test_repeat_add_sums_line(client, line_body):
    client.post("/guest-cart/add", json=line_body(quantity=2, total_price=200), headers=SESSION)
    client.post("/guest-cart/add", json=line_body(quantity=1, total_price=100), headers=SESSION)
    items = client.get("/guest-cart", headers=SESSION).json()["data"]["items"]
    assert len(items) == 1
    assert (items[0]["quantity"], items[0]["total_price"]) == (3, 300.0)


def test_mutations_invalidate_cached_view(client, line_body):
    # prime the cache with an empty cart
    assert client.get("/guest-cart", headers=SESSION).json()["data"]["items"] == []
    assert guest_carts.get("abc123") is not None

    item = client.post("/guest-cart/add", json=line_body(), headers=SESSION).json()["data"]
    assert guest_carts.get("abc123") is None
    assert len(client.get("/guest-cart", headers=SESSION).json()["data"]["items"]) == 1

    client.put(f"/guest-cart/items/{item['id']}/increment", headers=SESSION)
    summary = client.get("/guest-cart/summary", headers=SESSION).json()["data"]
    assert summary["total_quantity"] == 2

    client.delete("/guest-cart/clear", headers=SESSION)
    assert client.get("/guest-cart/check-empty", headers=SESSION).json()["data"] == {"is_empty": True}


def test_guest_decrement_and_remove(client, line_body):
    item = client.post("/guest-cart/add", json=line_body(quantity=2, total_price=30), headers=SESSION).json()["data"]
    data = client.put(f"/guest-cart/items/{item['id']}/decrement", headers=SESSION).json()["data"]
    assert (data["quantity"], data["total_price"]) == (1, 15.0)

    r = client.delete(f"/guest-cart/items/{item['id']}", headers=SESSION)
    assert r.status_code == 200
    assert client.delete(f"/guest-cart/items/{item['id']}", headers=SESSION).status_code == 404


def test_sessions_are_isolated(client, line_body):
    item = client.post("/guest-cart/add", json=line_body(), headers=SESSION).json()["data"]
    other = {"X-Guest-Session-Id": "zzz999"}
    assert client.get("/guest-cart", headers=other).json()["data"]["items"] == []
    assert client.put(f"/guest-cart/items/{item['id']}/increment", headers=other).status_code == 404


def test_cache_returns_copies():
    c = GuestCartCache(ttl_seconds=60)
    c.set("k", {"items": [1]})
    got = c.get("k")
    got["items"].append(2)
    assert c.get("k") == {"items": [1]}


def test_cache_expires():
    c = GuestCartCache(ttl_seconds=0.01)
    c.set("k", {"items": []})
    time.sleep(0.05)
    assert c.get("k") is None
    assert len(c) == 0


def test_cache_invalidate():
    c = GuestCartCache()
    c.set("k", {})
    c.invalidate("k")
    c.invalidate("missing")
    assert c.get("k") is None


def test_view_read_before_a_write_is_not_cached(client, db, line_body, monkeypatch):
    client.post("/guest-cart/add", json=line_body(quantity=1, total_price=100), headers=SESSION)
    real = cart_module.cart_view
    raced = []

    def view_then_write(session, owner_id):
        view = real(session, owner_id)
        if not raced:
            raced.append(True)
            # another request adds and invalidates before this view is stored
            upsert_line(db, owner_id, line_body()["product_id"], line_body()["variant_id"],
                        line_body()["color_id"], 1, [], 100.0)
            db.commit()
            guest_carts.invalidate("abc123")
        return view

    monkeypatch.setattr(cart_module, "cart_view", view_then_write)
    client.get("/guest-cart", headers=SESSION)

    items = client.get("/guest-cart", headers=SESSION).json()["data"]["items"]
    assert items[0]["quantity"] == 2


def test_minted_sessions_are_not_cached(client):
    for _ in range(50):
        assert client.get("/guest-cart").status_code == 200
    assert len(guest_carts) == 0


def test_cache_drops_set_after_invalidate():
    c = GuestCartCache()
    stamp = c.stamp()
    c.invalidate("k")
    assert c.set("k", {"items": [1]}, stamp=stamp) is False
    assert c.get("k") is None
    assert c.set("k", {"items": [2]}, stamp=c.stamp()) is True
    assert c.get("k") == {"items": [2]}


def test_cache_evicts_least_recently_used():
    c = GuestCartCache(max_entries=2)
    c.set("a", {})
    c.set("b", {})
    c.get("a")
    c.set("c", {})
    assert len(c) == 2
    assert c.get("b") is None
    assert c.get("a") == {}


def test_cache_purges_expired_entries_on_set():
    c = GuestCartCache(ttl_seconds=0.01)
    c.set("a", {})
    time.sleep(0.05)
    c.set("b", {})
    assert len(c) == 1
