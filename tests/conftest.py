from __future__ import annotations

import asyncio
import sys
from dataclasses import fields
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import portal_store, session_registry
from app.main import app
from app.models.course import Course, CourseCategory, CourseModule, QuizQuestion
from app.models.user import Role, User
from app.repos.errors import StoreError
from app.repos.store import PortalStore, build_in_memory_store
from app.services import auth_service, token_service
from app.services.cache import cache_service
from app.services.notification_feed import notification_feed

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DEFAULT_PASSWORD = "correct-horse-battery"


@pytest.fixture(autouse=True)
def reset_portal_store() -> None:
    """Swap fresh in-memory repos into the shared PortalStore."""
    fresh = build_in_memory_store()
    for f in fields(PortalStore):
        setattr(portal_store, f.name, getattr(fresh, f.name))


@pytest.fixture(autouse=True)
def reset_sessions() -> None:
    session_registry.clear()


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_feed_subscribers() -> None:
    if hasattr(notification_feed, "_queues"):
        notification_feed._queues.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


def mint_token(sub: str, role: str = "learner") -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=sub, role=role)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(str(user.id), user.role.value)}"}


# ---------------------------------------------------------------------------
# Data helpers (write straight into the shared in-memory store)
# ---------------------------------------------------------------------------


def add_user(
    email: str = "learner@example.com",
    *,
    name: str = "Lee Learner",
    role: Role = Role.LEARNER,
    approved: bool = True,
    password: str = DEFAULT_PASSWORD,
) -> User:
    user = User.new(
        email=email,
        password_hash=auth_service.hash_password(password),
        name=name,
        role=role,
        approved=approved,
    )
    asyncio.run(portal_store.users.add(user))
    return user


def make_course(
    title: str = "Data Privacy 101",
    *,
    modules: int = 2,
    questions: int = 2,
    passing_score: int = 70,
    category_id=None,
    created_at: int = 1_700_000_000,
) -> Course:
    return Course.new(
        title=title,
        description=f"About {title}",
        category_id=category_id,
        passing_score=passing_score,
        modules=tuple(
            CourseModule.new(position=i, title=f"{title} part {i}")
            for i in range(1, modules + 1)
        ),
        questions=tuple(
            QuizQuestion.new(
                position=i,
                prompt=f"Question {i}?",
                options=("wrong", "right", "also wrong"),
                correct_index=1,
            )
            for i in range(1, questions + 1)
        ),
        created_at=created_at,
    )


def add_course(title: str = "Data Privacy 101", **kwargs) -> Course:
    course = make_course(title, **kwargs)
    asyncio.run(portal_store.courses.add(course))
    return course


def add_category(name: str = "Compliance") -> CourseCategory:
    category = CourseCategory.new(name=name)
    asyncio.run(portal_store.categories.add(category))
    return category


@pytest.fixture
def learner() -> User:
    return add_user()


@pytest.fixture
def admin() -> User:
    return add_user("admin@example.com", name="Ada Admin", role=Role.ADMIN)


@pytest.fixture
def learner_headers(learner: User) -> dict[str, str]:
    return auth_headers(learner)


@pytest.fixture
def admin_headers(admin: User) -> dict[str, str]:
    return auth_headers(admin)


@pytest.fixture
def course() -> Course:
    return add_course()


# ---------------------------------------------------------------------------
# Failure injection
# ---------------------------------------------------------------------------


class FlakyRepo:
    """Wraps a repo; methods named in ``failing`` raise StoreError when awaited."""

    def __init__(self, inner: object, *failing: str) -> None:
        self._inner = inner
        self.failing: set[str] = set(failing)

    def __getattr__(self, name: str):
        attr = getattr(self._inner, name)
        if name not in self.failing:
            return attr

        async def _fail(*args, **kwargs):
            raise StoreError(f"{name} unavailable")

        return _fail
