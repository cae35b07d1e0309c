"""PostgreSQL implementation of CategoryRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.tables import CategoryRow
from app.models.course import CourseCategory
from app.repos.errors import DuplicateError
from app.repos.pg_session import store_session


class PgCategoryRepo:
    def __init__(self, factory: async_sessionmaker[AsyncSession]) -> None:
        self._factory = factory

    async def _name_taken(
        self, s: AsyncSession, name: str, exclude: UUID | None = None
    ) -> bool:
        stmt = select(CategoryRow.id).where(func.lower(CategoryRow.name) == name.lower())
        if exclude is not None:
            stmt = stmt.where(CategoryRow.id != exclude)
        return (await s.execute(stmt)).first() is not None

    async def get(self, category_id: UUID) -> CourseCategory | None:
        async with store_session(self._factory) as s:
            row = await s.get(CategoryRow, category_id)
            return CourseCategory(id=row.id, name=row.name) if row else None

    async def list_all(self) -> list[CourseCategory]:
        async with store_session(self._factory) as s:
            stmt = select(CategoryRow).order_by(func.lower(CategoryRow.name))
            return [
                CourseCategory(id=r.id, name=r.name)
                for r in (await s.execute(stmt)).scalars()
            ]

    async def add(self, category: CourseCategory) -> None:
        async with store_session(self._factory) as s:
            if await self._name_taken(s, category.name):
                raise DuplicateError("category name already exists")
            s.add(CategoryRow(id=category.id, name=category.name))

    async def rename(self, category_id: UUID, name: str) -> CourseCategory | None:
        async with store_session(self._factory) as s:
            row = await s.get(CategoryRow, category_id)
            if row is None:
                return None
            if await self._name_taken(s, name, exclude=category_id):
                raise DuplicateError("category name already exists")
            row.name = name
            return CourseCategory(id=row.id, name=name)

    async def delete(self, category_id: UUID) -> bool:
        async with store_session(self._factory) as s:
            result = await s.execute(
                delete(CategoryRow).where(CategoryRow.id == category_id)
            )
            return result.rowcount > 0
