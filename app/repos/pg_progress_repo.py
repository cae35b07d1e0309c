"""PostgreSQL implementation of ProgressRepo."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.tables import UserProgressRow
from app.models.progress import ProgressRecord
from app.repos.errors import StoreError
from app.repos.pg_session import store_session
from app.repos.progress_repo import check_fields


class PgProgressRepo:
    def __init__(self, factory: async_sessionmaker[AsyncSession]) -> None:
        self._factory = factory

    async def get(self, user_id: UUID, course_id: UUID) -> ProgressRecord | None:
        async with store_session(self._factory) as s:
            row = await s.get(UserProgressRow, (user_id, course_id))
            return _row_to_record(row) if row is not None else None

    async def list_for_user(self, user_id: UUID) -> list[ProgressRecord]:
        async with store_session(self._factory) as s:
            stmt = select(UserProgressRow).where(UserProgressRow.user_id == user_id)
            return [_row_to_record(r) for r in (await s.execute(stmt)).scalars()]

    async def list_all(self) -> list[ProgressRecord]:
        async with store_session(self._factory) as s:
            rows = (await s.execute(select(UserProgressRow))).scalars()
            return [_row_to_record(r) for r in rows]

    async def upsert(
        self, user_id: UUID, course_id: UUID, **fields: Any
    ) -> ProgressRecord:
        """INSERT ... ON CONFLICT (user_id, course_id) DO UPDATE on ``fields`` only."""
        check_fields(fields)
        if "completed_modules" in fields:
            fields["completed_modules"] = list(fields["completed_modules"])

        stmt = insert(UserProgressRow).values(
            user_id=user_id, course_id=course_id, **fields
        )
        if fields:
            stmt = stmt.on_conflict_do_update(
                index_elements=[UserProgressRow.user_id, UserProgressRow.course_id],
                set_={k: stmt.excluded[k] for k in fields},
            )
        else:
            stmt = stmt.on_conflict_do_nothing(
                index_elements=[UserProgressRow.user_id, UserProgressRow.course_id]
            )

        async with store_session(self._factory) as s:
            await s.execute(stmt)
            row = await s.get(UserProgressRow, (user_id, course_id), populate_existing=True)
            return _row_to_record(row)

    async def add_completed_module(
        self, user_id: UUID, course_id: UUID, module_id: UUID
    ) -> tuple[ProgressRecord, bool]:
        """array_append guarded by NOT @>, so the set is merged, never replaced.

        The UPDATE takes the row lock; a concurrent append for another
        module waits and then re-checks the guard against the new array.
        """
        column = UserProgressRow.completed_modules
        stmt = (
            update(UserProgressRow)
            .where(
                UserProgressRow.user_id == user_id,
                UserProgressRow.course_id == course_id,
                ~column.contains([module_id]),
            )
            .values(completed_modules=func.array_append(column, module_id, type_=column.type))
            .returning(UserProgressRow)
        )

        async with store_session(self._factory) as s:
            row = (await s.execute(stmt)).scalar_one_or_none()
            if row is not None:
                return _row_to_record(row), True
            row = await s.get(UserProgressRow, (user_id, course_id))
            if row is None:
                raise StoreError(
                    f"no progress for user {user_id} in course {course_id}"
                )
            return _row_to_record(row), False


def _row_to_record(row: UserProgressRow) -> ProgressRecord:
    return ProgressRecord(
        user_id=row.user_id,
        course_id=row.course_id,
        completed_modules=tuple(row.completed_modules or ()),
        quiz_score=row.quiz_score,
        completed_at=row.completed_at,
        rating=row.rating,
        last_viewed_at=row.last_viewed_at,
    )
