# storefront/db.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterator
from uuid import uuid4

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import settings


def make_engine(url: str, **kwargs) -> Engine:
    connect_args = dict(kwargs.pop("connect_args", None) or {})
    if url.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
    kwargs.setdefault("pool_pre_ping", True)
    eng = create_engine(url, connect_args=connect_args, **kwargs)

    if eng.dialect.name == "sqlite":
        # cascades on users -> cart_items/orders rely on this
        @event.listens_for(eng, "connect")
        def _fk_pragma(dbapi_conn, _record):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()

    return eng


engine = make_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False)
Base = declarative_base()


def new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp; every DateTime column stores UTC without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
