from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.models.course import ExternalResource


class ResourceRepo(Protocol):
    async def list_all(self) -> list[ExternalResource]: ...
    async def add(self, resource: ExternalResource) -> None: ...
    async def delete(self, resource_id: UUID) -> bool: ...


class InMemoryResourceRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, ExternalResource] = {}

    async def list_all(self) -> list[ExternalResource]:
        return sorted(self._by_id.values(), key=lambda r: r.created_at, reverse=True)

    async def add(self, resource: ExternalResource) -> None:
        self._by_id[resource.id] = resource

    async def delete(self, resource_id: UUID) -> bool:
        return self._by_id.pop(resource_id, None) is not None
