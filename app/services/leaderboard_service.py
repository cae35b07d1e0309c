"""Learner leaderboard, served through the read-through cache."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass

from app.core.config import SETTINGS
from app.models.user import Role
from app.repos.store import PortalStore
from app.services.cache import CacheService

logger = logging.getLogger(__name__)

LEADERBOARD_KEY = "leaderboard:learners"


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    rank: int
    user_id: str
    name: str
    points: int
    badges: list[str]


async def get_leaderboard(
    store: PortalStore, cache: CacheService
) -> list[LeaderboardEntry]:
    """Approved learners ordered by points (desc), then name."""
    cached = await cache.get(LEADERBOARD_KEY)
    if cached is not None:
        return [LeaderboardEntry(**e) for e in json.loads(cached)]

    users = await store.users.list_all()
    learners = sorted(
        (u for u in users if u.role is Role.LEARNER and u.approved),
        key=lambda u: (-u.points, u.name.casefold()),
    )
    entries = [
        LeaderboardEntry(
            rank=i,
            user_id=str(u.id),
            name=u.name,
            points=u.points,
            badges=sorted(u.badges),
        )
        for i, u in enumerate(learners, start=1)
    ]

    if SETTINGS.leaderboard_cache_ttl > 0:
        await cache.set(
            LEADERBOARD_KEY,
            json.dumps([asdict(e) for e in entries]),
            SETTINGS.leaderboard_cache_ttl,
        )
    return entries


async def invalidate_leaderboard(cache: CacheService) -> None:
    await cache.delete(LEADERBOARD_KEY)
    logger.debug("Leaderboard cache invalidated")
