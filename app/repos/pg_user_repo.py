"""PostgreSQL implementation of UserRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.tables import UserRow
from app.models.user import Role, User
from app.repos.errors import StoreError
from app.repos.pg_session import store_session


class PgUserRepo:
    """Satisfies the UserRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, factory: async_sessionmaker[AsyncSession]) -> None:
        self._factory = factory

    async def get_by_id(self, user_id: UUID) -> User | None:
        async with store_session(self._factory) as s:
            row = await s.get(UserRow, user_id)
            return _row_to_user(row) if row is not None else None

    async def get_by_email(self, email: str) -> User | None:
        async with store_session(self._factory) as s:
            stmt = select(UserRow).where(UserRow.email == email)
            row = (await s.execute(stmt)).scalar_one_or_none()
            return _row_to_user(row) if row is not None else None

    async def list_all(self) -> list[User]:
        async with store_session(self._factory) as s:
            rows = (await s.execute(select(UserRow))).scalars().all()
            return [_row_to_user(r) for r in rows]

    async def add(self, user: User) -> None:
        async with store_session(self._factory) as s:
            s.add(
                UserRow(
                    id=user.id,
                    email=user.email,
                    password_hash=user.password_hash,
                    name=user.name,
                    role=user.role.value,
                    approved=user.approved,
                    points=user.points,
                    badges=sorted(user.badges),
                    profile_image_url=user.profile_image_url,
                )
            )

    async def set_approved(self, user_id: UUID, approved: bool) -> User:
        async with store_session(self._factory) as s:
            stmt = (
                update(UserRow)
                .where(UserRow.id == user_id)
                .values(approved=approved)
                .returning(UserRow)
            )
            row = (await s.execute(stmt)).scalar_one_or_none()
            if row is None:
                raise StoreError(f"user {user_id} not found")
            return _row_to_user(row)

    async def increment_points(self, user_id: UUID, amount: int) -> int:
        # Single UPDATE ... SET points = points + n: concurrent awards for
        # the same user serialize on the row lock instead of overwriting.
        async with store_session(self._factory) as s:
            stmt = (
                update(UserRow)
                .where(UserRow.id == user_id)
                .values(points=UserRow.points + amount)
                .returning(UserRow.points)
            )
            total = (await s.execute(stmt)).scalar_one_or_none()
            if total is None:
                raise StoreError(f"user {user_id} not found")
            return total

    async def replace_badges(self, user_id: UUID, badges: frozenset[str]) -> None:
        async with store_session(self._factory) as s:
            stmt = (
                update(UserRow).where(UserRow.id == user_id).values(badges=sorted(badges))
            )
            result = await s.execute(stmt)
            if result.rowcount == 0:
                raise StoreError(f"user {user_id} not found")

    async def update_password_hash(self, user_id: UUID, password_hash: str) -> None:
        async with store_session(self._factory) as s:
            await s.execute(
                update(UserRow)
                .where(UserRow.id == user_id)
                .values(password_hash=password_hash)
            )

    async def update_profile(
        self,
        user_id: UUID,
        *,
        name: str,
        email: str,
        profile_image_url: str | None,
    ) -> User | None:
        async with store_session(self._factory) as s:
            stmt = (
                update(UserRow)
                .where(UserRow.id == user_id)
                .values(name=name, email=email, profile_image_url=profile_image_url)
                .returning(UserRow)
            )
            row = (await s.execute(stmt)).scalar_one_or_none()
            return _row_to_user(row) if row is not None else None


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        name=row.name or "",
        role=Role(row.role),
        approved=row.approved,
        points=row.points,
        badges=frozenset(row.badges or ()),
        profile_image_url=row.profile_image_url,
    )
