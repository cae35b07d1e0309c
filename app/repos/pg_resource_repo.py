"""PostgreSQL implementation of ResourceRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.tables import ExternalResourceRow
from app.models.course import ExternalResource
from app.repos.pg_session import store_session


class PgResourceRepo:
    def __init__(self, factory: async_sessionmaker[AsyncSession]) -> None:
        self._factory = factory

    async def list_all(self) -> list[ExternalResource]:
        async with store_session(self._factory) as s:
            stmt = select(ExternalResourceRow).order_by(
                ExternalResourceRow.created_at.desc()
            )
            return [
                ExternalResource(
                    id=r.id,
                    title=r.title,
                    url=r.url,
                    description=r.description,
                    category_id=r.category_id,
                    created_at=r.created_at,
                )
                for r in (await s.execute(stmt)).scalars()
            ]

    async def add(self, resource: ExternalResource) -> None:
        async with store_session(self._factory) as s:
            s.add(
                ExternalResourceRow(
                    id=resource.id,
                    title=resource.title,
                    url=resource.url,
                    description=resource.description,
                    category_id=resource.category_id,
                    created_at=resource.created_at,
                )
            )

    async def delete(self, resource_id: UUID) -> bool:
        async with store_session(self._factory) as s:
            result = await s.execute(
                delete(ExternalResourceRow).where(ExternalResourceRow.id == resource_id)
            )
            return result.rowcount > 0
