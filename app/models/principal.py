from __future__ import annotations

from dataclasses import dataclass

from app.models.user import Role


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated access token.

    Endpoints receive this instead of a raw token.  The portal has exactly
    one role per identity, so the role is carried as a single value.
    """

    user_id: str
    role: Role

    def has_role(self, role: Role) -> bool:
        return self.role is role

    def is_admin(self) -> bool:
        return self.role is Role.ADMIN
