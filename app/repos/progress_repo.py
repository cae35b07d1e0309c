from __future__ import annotations

from dataclasses import replace
from typing import Any, Protocol
from uuid import UUID

from app.models.progress import PROGRESS_FIELDS, ProgressRecord
from app.repos.errors import StoreError


class ProgressRepo(Protocol):
    async def get(self, user_id: UUID, course_id: UUID) -> ProgressRecord | None: ...
    async def list_for_user(self, user_id: UUID) -> list[ProgressRecord]: ...
    async def list_all(self) -> list[ProgressRecord]: ...
    async def upsert(
        self, user_id: UUID, course_id: UUID, **fields: Any
    ) -> ProgressRecord: ...
    async def add_completed_module(
        self, user_id: UUID, course_id: UUID, module_id: UUID
    ) -> tuple[ProgressRecord, bool]: ...


def check_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - PROGRESS_FIELDS
    if unknown:
        raise ValueError(f"unknown progress fields: {sorted(unknown)}")


class InMemoryProgressRepo:
    """Progress records keyed by (user_id, course_id).

    upsert() only touches the fields it is given, the same partial-update
    semantics as INSERT ... ON CONFLICT DO UPDATE on the listed columns.
    """

    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], ProgressRecord] = {}

    async def get(self, user_id: UUID, course_id: UUID) -> ProgressRecord | None:
        return self._store.get((user_id, course_id))

    async def list_for_user(self, user_id: UUID) -> list[ProgressRecord]:
        return [p for (uid, _), p in self._store.items() if uid == user_id]

    async def list_all(self) -> list[ProgressRecord]:
        return list(self._store.values())

    async def upsert(
        self, user_id: UUID, course_id: UUID, **fields: Any
    ) -> ProgressRecord:
        check_fields(fields)
        if "completed_modules" in fields:
            fields["completed_modules"] = tuple(fields["completed_modules"])

        key = (user_id, course_id)
        current = self._store.get(key) or ProgressRecord(
            user_id=user_id, course_id=course_id
        )
        updated = replace(current, **fields)
        self._store[key] = updated
        return updated

    async def add_completed_module(
        self, user_id: UUID, course_id: UUID, module_id: UUID
    ) -> tuple[ProgressRecord, bool]:
        """Merge ``module_id`` into the stored set.  True when it was not there yet.

        Reads and writes the stored tuple without awaiting in between, so
        overlapping calls for the same record each see the other's module.
        """
        current = self._store.get((user_id, course_id))
        if current is None:
            raise StoreError(f"no progress for user {user_id} in course {course_id}")
        if module_id in current.completed_modules:
            return current, False
        updated = replace(
            current, completed_modules=(*current.completed_modules, module_id)
        )
        self._store[(user_id, course_id)] = updated
        return updated, True
