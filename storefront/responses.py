# storefront/responses.py
from __future__ import annotations

from typing import Any, Dict, Optional


def ok(data: Any = None, message: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    """Success envelope: ``{"success": true, "data": ..., "message": ...}``."""
    out: Dict[str, Any] = {"success": True}
    if message is not None:
        out["message"] = message
    if data is not None:
        out["data"] = data
    out.update(extra)
    return out
