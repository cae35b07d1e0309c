"""Ownership checks.

Plain functions, not dependencies: they need both the Principal and a
resource identifier.  Call them at the top of an endpoint body.
"""

from __future__ import annotations

from fastapi import HTTPException, status

from app.models.principal import Principal


def check_owner_or_admin(principal: Principal, resource_owner_id: str) -> None:
    """Raise 403 unless the principal owns the resource or is an admin."""
    if principal.user_id == resource_owner_id:
        return
    if principal.is_admin():
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You can only access your own resource",
    )
