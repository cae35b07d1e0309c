from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.models.course import CourseCategory
from app.repos.errors import DuplicateError


class CategoryRepo(Protocol):
    async def get(self, category_id: UUID) -> CourseCategory | None: ...
    async def list_all(self) -> list[CourseCategory]: ...
    async def add(self, category: CourseCategory) -> None: ...
    async def rename(self, category_id: UUID, name: str) -> CourseCategory | None: ...
    async def delete(self, category_id: UUID) -> bool: ...


class InMemoryCategoryRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, CourseCategory] = {}

    def _name_taken(self, name: str, exclude: UUID | None = None) -> bool:
        folded = name.casefold()
        return any(
            c.name.casefold() == folded and c.id != exclude
            for c in self._by_id.values()
        )

    async def get(self, category_id: UUID) -> CourseCategory | None:
        return self._by_id.get(category_id)

    async def list_all(self) -> list[CourseCategory]:
        return sorted(self._by_id.values(), key=lambda c: c.name.casefold())

    async def add(self, category: CourseCategory) -> None:
        if self._name_taken(category.name):
            raise DuplicateError("category name already exists")
        self._by_id[category.id] = category

    async def rename(self, category_id: UUID, name: str) -> CourseCategory | None:
        current = self._by_id.get(category_id)
        if current is None:
            return None
        if self._name_taken(name, exclude=category_id):
            raise DuplicateError("category name already exists")
        updated = replace(current, name=name)
        self._by_id[category_id] = updated
        return updated

    async def delete(self, category_id: UUID) -> bool:
        return self._by_id.pop(category_id, None) is not None
