# storefront/shopping/cache.py
from __future__ import annotations

import copy
import threading
import time
from collections import OrderedDict
from typing import Any, Dict, Optional, Tuple

from ..config import settings


class GuestCartCache:
    """Read accelerator for guest cart views, keyed by session token.

    Never authoritative: entries are only ever built from database rows, every
    guest mutation invalidates its entry, and a miss falls back to the rows.

    A reader takes a ``stamp()`` before reading the rows and hands it to
    ``set``; the write is dropped if the key was invalidated in between.
    """

    def __init__(self, ttl_seconds: float = 300.0, max_entries: int = 10000) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, Tuple[float, Dict[str, Any]]]" = OrderedDict()
        # key -> (clock at invalidation, monotonic time of invalidation)
        self._invalidated: Dict[str, Tuple[int, float]] = {}
        self._clock = 0
        self._lock = threading.Lock()

    def _expired(self, at: float, now: float) -> bool:
        return bool(self.ttl_seconds) and now - at > self.ttl_seconds

    def _purge(self, now: float) -> None:
        for k in [k for k, (at, _) in self._entries.items() if self._expired(at, now)]:
            del self._entries[k]
        for k in [k for k, (_, at) in self._invalidated.items() if self._expired(at, now)]:
            del self._invalidated[k]

    def stamp(self) -> int:
        with self._lock:
            return self._clock

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            hit = self._entries.get(key)
            if not hit:
                return None
            stored_at, value = hit
            if self._expired(stored_at, time.monotonic()):
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return copy.deepcopy(value)

    def set(self, key: str, value: Dict[str, Any], stamp: Optional[int] = None) -> bool:
        """Store ``value``; returns False when it was read before a newer invalidation."""
        with self._lock:
            now = time.monotonic()
            self._purge(now)
            last = self._invalidated.get(key)
            if stamp is not None and last and last[0] > stamp:
                return False
            self._entries[key] = (now, copy.deepcopy(value))
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
            return True

    def invalidate(self, key: str) -> None:
        with self._lock:
            now = time.monotonic()
            self._purge(now)
            self._clock += 1
            self._invalidated[key] = (self._clock, now)
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._invalidated.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


guest_carts = GuestCartCache(
    ttl_seconds=float(settings.guest_cart_cache_ttl),
    max_entries=settings.guest_cart_cache_max,
)
