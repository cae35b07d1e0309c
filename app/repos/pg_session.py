"""Per-call transactions for the PostgreSQL repositories.

Each repository method is one store call: it opens a session, runs in
its own transaction and commits before returning.  A caller that issues
several calls in a row (the reconciler does) therefore sees each one
committed before the next starts, and a later failure never rolls back
an earlier step.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.repos.errors import DuplicateError, StoreError


@asynccontextmanager
async def store_session(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    try:
        async with factory() as session, session.begin():
            yield session
    except IntegrityError as e:
        raise DuplicateError(str(e.orig)) from e
    except SQLAlchemyError as e:
        raise StoreError(str(e)) from e
