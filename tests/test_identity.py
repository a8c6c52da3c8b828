# tests/test_identity.py
import re
import uuid

import pytest

from storefront.models import User
from storefront.shopping.identity import (
    GUEST_ROLE,
    derive_guest_id,
    get_or_create_guest,
    new_session_token,
    short_token,
)

UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")


def test_same_token_same_id():
    assert derive_guest_id("abc123") == derive_guest_id("abc123")


def test_id_has_uuid_shape():
    gid = derive_guest_id("abc123")
    assert UUID_RE.match(gid)
    # parseable as a UUID as well
    assert str(uuid.UUID(gid)) == gid


def test_known_value():
    # sha256("abc123") = 6ca13d52ca70c883e0f0bb101e425a89e8624de51db2d2392593af6a84118090
    assert derive_guest_id("abc123") == "6ca13d52-ca70-c883-e0f0-bb101e425a89"


def test_distinct_tokens_no_collisions():
    tokens = {new_session_token() for _ in range(10000)}
    ids = {derive_guest_id(t) for t in tokens}
    assert len(ids) == len(tokens)


def test_empty_token_rejected():
    with pytest.raises(ValueError):
        derive_guest_id("")
    with pytest.raises(ValueError):
        derive_guest_id("   ")


def test_short_token_truncates():
    assert short_token("guest_0123456789abcdef") == "guest_012345..."
    assert short_token("abc") == "abc"


def test_get_or_create_guest_is_idempotent(db):
    a = get_or_create_guest(db, "abc123")
    b = get_or_create_guest(db, "abc123")
    assert a.id == b.id == derive_guest_id("abc123")
    assert a.role == GUEST_ROLE
    assert a.phone == f"guest_{a.id}"
    assert a.is_verified is False
    assert db.query(User).filter(User.role == GUEST_ROLE).count() == 1
