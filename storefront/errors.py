# storefront/errors.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class AppError(HTTPException):
    """Base for every error rendered as ``{"success": false, "error": ...}``."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(
            status_code=status_code or type(self).status_code,
            detail=message or self.default_message,
        )

    @property
    def message(self) -> str:
        return str(self.detail)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class EmptyCartError(ValidationError):
    default_message = "Cart is empty"


class InvalidTransitionError(ValidationError):
    default_message = "Invalid status transition"


class ConflictError(AppError):
    # duplicate phone on signup is reported as a plain 400
    status_code = 400
    default_message = "Resource already exists"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class AuthError(AppError):
    status_code = 401
    default_message = "Authentication required"


class InternalError(AppError):
    status_code = 500
    default_message = "Internal server error"


@contextmanager
def storage_errors(db: Session, action: str) -> Iterator[None]:
    """Roll back and convert storage failures into a generic InternalError.

    AppErrors raised inside the block pass through after the rollback.
    """
    try:
        yield
    except AppError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Storage failure while trying to %s", action)
        raise InternalError(f"Failed to {action}") from e
