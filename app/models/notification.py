from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID, uuid4


class NotificationType(str, Enum):
    CERTIFICATE = "certificate"
    BADGE = "badge"
    ANNOUNCEMENT = "announcement"
    APPROVAL = "approval"
    COURSE = "course"


@dataclass(frozen=True, slots=True)
class Notification:
    id: UUID
    user_id: UUID
    type: NotificationType
    message: str
    created_at: int
    read: bool = False

    @staticmethod
    def new(
        *, user_id: UUID, type: NotificationType, message: str, created_at: int
    ) -> Notification:
        return Notification(
            id=uuid4(),
            user_id=user_id,
            type=type,
            message=message,
            created_at=created_at,
        )
