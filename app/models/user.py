from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID, uuid4


class Role(str, Enum):
    LEARNER = "learner"
    ADMIN = "admin"


@dataclass(frozen=True, slots=True)
class User:
    """A portal identity: employee (learner) or administrator."""

    id: UUID
    email: str
    password_hash: str
    name: str = ""
    role: Role = Role.LEARNER
    approved: bool = False
    points: int = 0
    badges: frozenset[str] = frozenset()
    profile_image_url: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def can_sign_in(self) -> bool:
        # Admins are never locked out by the approval flag.
        return self.approved or self.is_admin

    @staticmethod
    def new(
        *,
        email: str,
        password_hash: str,
        name: str = "",
        role: Role = Role.LEARNER,
        approved: bool = False,
    ) -> User:
        # Registration always starts unapproved unless an admin seeds the row.
        return User(
            id=uuid4(),
            email=email,
            password_hash=password_hash,
            name=name,
            role=role,
            approved=approved,
        )
