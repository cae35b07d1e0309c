"""Errors raised by the portal services.

The API layer maps them onto status codes:

  PortalValidationError (and subclasses)  422
  *NotFoundError (LookupError)            404
  ConflictError                           409
  RemoteWriteError                        502
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from typing import TypeVar

from app.core.metrics import STORE_WRITE_FAILURES, STORE_WRITES
from app.repos.errors import DuplicateError, StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PortalValidationError(ValueError):
    """Caller input violates a precondition.  Raised before any store write."""


class NotEnrolledError(PortalValidationError):
    pass


class NotCompletedError(PortalValidationError):
    pass


class CourseNotFoundError(LookupError):
    pass


class UserNotFoundError(LookupError):
    pass


class CategoryNotFoundError(LookupError):
    pass


class ResourceNotFoundError(LookupError):
    pass


class PostNotFoundError(LookupError):
    pass


class ConflictError(Exception):
    pass


class RemoteWriteError(Exception):
    """A store write failed.  Nothing from the failed step was mirrored."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
        self.message = message


async def remote_write(operation: str, call: Awaitable[T]) -> T:
    """Await one store write, counting it and translating StoreError.

    DuplicateError becomes ConflictError; any other StoreError becomes
    RemoteWriteError carrying ``operation``.
    """
    STORE_WRITES.labels(operation=operation).inc()
    try:
        return await call
    except DuplicateError as e:
        raise ConflictError(str(e)) from e
    except StoreError as e:
        STORE_WRITE_FAILURES.labels(operation=operation).inc()
        logger.exception(
            "Store write failed  operation=%s", operation, extra={"operation": operation}
        )
        raise RemoteWriteError(operation, str(e)) from e
