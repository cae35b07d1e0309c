from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.admin import router as admin_router
from app.api.catalog import router as catalog_router
from app.api.certificates import router as certificates_router
from app.api.courses import router as courses_router
from app.api.dependencies import portal_store
from app.api.health import router as health_router
from app.api.logout import router as logout_router
from app.api.metrics_endpoint import router as metrics_router
from app.api.notifications import router as notifications_router
from app.api.profile import router as profile_router
from app.api.progress import router as progress_router
from app.api.register import router as register_router
from app.core.config import SETTINGS
from app.core.logging import setup_logging
from app.db.engine import async_session_factory, lifespan_db
from app.db.redis import lifespan_redis
from app.middleware.metrics import MetricsMiddleware
from app.middleware.request_context import RequestContextFilter, RequestContextMiddleware
from app.repos.store import seed_sample_data
from app.services.auth_service import hash_password
from app.services.notification_feed import RedisNotificationFeed, notification_feed

# Configure logging before anything else runs.
setup_logging(
    SETTINGS.log_level,
    json_format=SETTINGS.log_json,
    filters=[RequestContextFilter()],
)

logger = logging.getLogger(__name__)

DEV_ADMIN_PASSWORD = "admin-password"


@asynccontextmanager
async def lifespan_feed() -> AsyncGenerator[None, None]:
    """Run the Redis feed reader for the app's lifetime, if there is one."""
    if not isinstance(notification_feed, RedisNotificationFeed):
        yield
        return

    task = asyncio.create_task(notification_feed.run(), name="notification-feed")
    yield
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order (feed, Redis, DB).
    async with lifespan_db():
        async with lifespan_redis():
            if async_session_factory is None and SETTINGS.is_dev:
                await seed_sample_data(portal_store, hash_password(DEV_ADMIN_PASSWORD))
            async with lifespan_feed():
                yield


app = FastAPI(
    title="learning-portal",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last-added runs first: RequestContext (outermost) → Metrics → CORS → route.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(register_router)
app.include_router(logout_router)
app.include_router(profile_router)
app.include_router(courses_router)
app.include_router(progress_router)
app.include_router(certificates_router)
app.include_router(notifications_router)
app.include_router(catalog_router)
app.include_router(admin_router)

logger.info(
    "learning-portal started  env=%s log_level=%s port=%d docs=%s store=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
    "postgres" if async_session_factory is not None else "in_memory",
)
