"""PortalStore: every repository the portal talks to, as one object.

Services take a PortalStore instead of six separate repos.  Which
backend it holds is decided once, at import time of app.api.dependencies:
PostgreSQL when DATABASE_URL is set, in-memory otherwise.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.course import Course, CourseCategory, CourseModule, QuizQuestion
from app.models.user import Role, User
from app.repos.category_repo import CategoryRepo, InMemoryCategoryRepo
from app.repos.course_repo import CourseRepo, InMemoryCourseRepo
from app.repos.notification_repo import InMemoryNotificationRepo, NotificationRepo
from app.repos.pg_category_repo import PgCategoryRepo
from app.repos.pg_course_repo import PgCourseRepo
from app.repos.pg_notification_repo import PgNotificationRepo
from app.repos.pg_progress_repo import PgProgressRepo
from app.repos.pg_resource_repo import PgResourceRepo
from app.repos.pg_user_repo import PgUserRepo
from app.repos.progress_repo import InMemoryProgressRepo, ProgressRepo
from app.repos.resource_repo import InMemoryResourceRepo, ResourceRepo
from app.repos.user_repo import InMemoryUserRepo, UserRepo

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PortalStore:
    users: UserRepo
    courses: CourseRepo
    categories: CategoryRepo
    progress: ProgressRepo
    notifications: NotificationRepo
    resources: ResourceRepo


def build_in_memory_store() -> PortalStore:
    return PortalStore(
        users=InMemoryUserRepo(),
        courses=InMemoryCourseRepo(),
        categories=InMemoryCategoryRepo(),
        progress=InMemoryProgressRepo(),
        notifications=InMemoryNotificationRepo(),
        resources=InMemoryResourceRepo(),
    )


def build_pg_store(factory: async_sessionmaker[AsyncSession]) -> PortalStore:
    return PortalStore(
        users=PgUserRepo(factory),
        courses=PgCourseRepo(factory),
        categories=PgCategoryRepo(factory),
        progress=PgProgressRepo(factory),
        notifications=PgNotificationRepo(factory),
        resources=PgResourceRepo(factory),
    )


DEV_ADMIN_EMAIL = "admin@example.com"


async def seed_sample_data(store: PortalStore, admin_password_hash: str) -> None:
    """Seed an admin and one sample course for local development.

    Skips everything if the admin already exists.
    """
    if await store.users.get_by_email(DEV_ADMIN_EMAIL) is not None:
        return

    await store.users.add(
        User.new(
            email=DEV_ADMIN_EMAIL,
            password_hash=admin_password_hash,
            name="Portal Admin",
            role=Role.ADMIN,
            approved=True,
        )
    )

    category = CourseCategory.new(name="Onboarding")
    await store.categories.add(category)

    course = Course.new(
        title="Workplace Security Basics",
        description="Passwords, phishing and keeping company data safe.",
        category_id=category.id,
        passing_score=70,
        modules=(
            CourseModule.new(position=1, title="Strong passwords"),
            CourseModule.new(position=2, title="Spotting phishing"),
        ),
        questions=(
            QuizQuestion.new(
                position=1,
                prompt="Which of these is the strongest password?",
                options=("password123", "Tr0ub4dor&3", "correct horse battery staple"),
                correct_index=2,
            ),
        ),
        created_at=int(time.time()),
    )
    await store.courses.add(course)
    logger.info("Seeded dev data  admin=%s course=%s", DEV_ADMIN_EMAIL, course.id)
