"""
Noteful Backend — Database Session Management
==============================================

What:  Async SQLAlchemy engine, session factory, declarative base and the
       per-request session dependency.
How:   `Database` owns one engine and one session factory. The app factory
       builds exactly one instance and stores it on `app.state.database`;
       route handlers receive sessions through `get_db_session`, and services
       receive the session as an explicit argument. Nothing in the service
       layer reaches for a module-level engine.

Connection Pooling Strategy (PostgreSQL):
    pool_size=20, max_overflow=10: at most 30 connections per worker
    pool_pre_ping: validates connections before use
    pool_recycle=3600: recycles connections every hour

SQLite (tests, local hacking) uses SQLAlchemy's default pool, since the
QueuePool sizing arguments do not apply to it.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

from sqlalchemy import DateTime, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator
from starlette.requests import Request

from noteful.config import Settings
from noteful.exceptions import InternalError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata drives Alembic."""
    pass


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC timestamp column.

    PostgreSQL stores TIMESTAMP WITH TIME ZONE natively, but SQLite hands
    back naive datetimes. Normalizing on the way in and out keeps
    `updated_at` comparisons and ordering consistent on both backends.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: Optional[datetime], dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_timestamp(previous: Optional[datetime]) -> datetime:
    """
    Current time, but strictly after `previous`.

    Two writes inside one clock tick would otherwise leave updated_at
    unchanged.
    """
    now = utcnow()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


class Database:
    """
    Store handle: one async engine plus its session factory.

    Constructed once at process start (see `noteful.main.create_app`) and
    passed down explicitly.
    """

    def __init__(self, settings: Settings):
        engine_kwargs = {"echo": settings.log_level == "DEBUG"}
        if not settings.is_sqlite:
            engine_kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_pre_ping=settings.db_pool_pre_ping,
                pool_recycle=3600,
            )
        self.engine: AsyncEngine = create_async_engine(settings.database_url, **engine_kwargs)
        # expire_on_commit=False: response models are built from ORM objects
        # after the write route has committed
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def create_all(self) -> None:
        """Creates every table directly (tests and local SQLite only; production uses Alembic)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


async def commit_session(db: AsyncSession) -> None:
    """
    Commits the request's writes. Write routes await this before returning,
    so a 2xx is only ever sent for a write that is already durable; a failed
    commit surfaces as InternalError (500) instead.
    """
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Commit failed: %s", e, exc_info=True)
        raise InternalError(
            message="Could not commit the transaction",
            context={"error_type": type(e).__name__},
        ) from e


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Rolls back on any error. Committing is the write route's job (see
    `commit_session`): this teardown may run after the response is sent,
    too late to report a failed commit. Anything left uncommitted is
    discarded when the session closes.

    Example usage in a route:
        @router.post("/notes")
        async def create_note(db: AsyncSession = Depends(get_db_session)):
            note = await note_service.create_note(db, ...)
            await commit_session(db)
            return note
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
