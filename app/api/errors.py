"""Translate service errors into HTTP errors.

Endpoints wrap their service calls as

    try:
        ...
    except SERVICE_ERRORS as e:
        raise http_error(e) from None
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from app.services.errors import ConflictError, PortalValidationError, RemoteWriteError

logger = logging.getLogger(__name__)

SERVICE_ERRORS = (PortalValidationError, LookupError, ConflictError, RemoteWriteError)


def http_error(e: Exception) -> HTTPException:
    if isinstance(e, PortalValidationError):
        logger.warning("Rejected input: %s", e)
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(e)
        )
    if isinstance(e, LookupError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, RemoteWriteError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    raise TypeError(f"not a service error: {e!r}")
