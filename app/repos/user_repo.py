from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.models.user import User
from app.repos.errors import DuplicateError, StoreError


class UserRepo(Protocol):
    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def get_by_email(self, email: str) -> User | None: ...
    async def list_all(self) -> list[User]: ...
    async def add(self, user: User) -> None: ...
    async def set_approved(self, user_id: UUID, approved: bool) -> User: ...
    async def increment_points(self, user_id: UUID, amount: int) -> int: ...
    async def replace_badges(self, user_id: UUID, badges: frozenset[str]) -> None: ...
    async def update_password_hash(self, user_id: UUID, password_hash: str) -> None: ...
    async def update_profile(
        self,
        user_id: UUID,
        *,
        name: str,
        email: str,
        profile_image_url: str | None,
    ) -> User | None: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, User] = {}

    def _require(self, user_id: UUID) -> User:
        u = self._by_id.get(user_id)
        if u is None:
            raise StoreError(f"user {user_id} not found")
        return u

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def get_by_email(self, email: str) -> User | None:
        return next((u for u in self._by_id.values() if u.email == email), None)

    async def list_all(self) -> list[User]:
        return list(self._by_id.values())

    async def add(self, user: User) -> None:
        if await self.get_by_email(user.email) is not None:
            raise DuplicateError("email already exists")
        self._by_id[user.id] = user

    async def set_approved(self, user_id: UUID, approved: bool) -> User:
        updated = replace(self._require(user_id), approved=approved)
        self._by_id[user_id] = updated
        return updated

    async def increment_points(self, user_id: UUID, amount: int) -> int:
        u = self._require(user_id)
        updated = replace(u, points=u.points + amount)
        self._by_id[user_id] = updated
        return updated.points

    async def replace_badges(self, user_id: UUID, badges: frozenset[str]) -> None:
        self._by_id[user_id] = replace(self._require(user_id), badges=badges)

    async def update_password_hash(self, user_id: UUID, password_hash: str) -> None:
        self._by_id[user_id] = replace(
            self._require(user_id), password_hash=password_hash
        )

    async def update_profile(
        self,
        user_id: UUID,
        *,
        name: str,
        email: str,
        profile_image_url: str | None,
    ) -> User | None:
        u = self._by_id.get(user_id)
        if u is None:
            return None
        other = await self.get_by_email(email)
        if other is not None and other.id != user_id:
            raise DuplicateError("email already exists")

        updated = replace(u, name=name, email=email, profile_image_url=profile_image_url)
        self._by_id[user_id] = updated
        return updated
