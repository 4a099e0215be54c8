"""Async relational store access with SQLAlchemy 2.0.

Provides:
- Declarative ``Base`` shared by every package's models
- ``Database``: engine and session factory with bounded units of work
- ``UTCDateTime`` column type that always hands back UTC-aware datetimes

Every store access goes through ``Database.session()`` (reads) or
``Database.transaction()`` (writes, committed on success and rolled back on
any error). Both are bounded by ``database_timeout_seconds``. Connection
failures and timeouts surface as ``InfrastructureError``; constraint
violations (``IntegrityError``) propagate so services can translate them
into domain errors.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import DateTime, event, text
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from learnhub.config.settings import Settings
from learnhub.core.exceptions import InfrastructureError


logger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (SQLite returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime column normalised to UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Any) -> Any:
        value = ensure_utc_aware(value)
        if value is not None:
            value = value.astimezone(UTC)
        return value

    def process_result_value(self, value: datetime | None, dialect: Any) -> Any:
        return ensure_utc_aware(value)


class Base(DeclarativeBase):
    """Declarative base for all tables."""


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Engine and session lifecycle for the relational store."""

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 10,
        max_overflow: int = 20,
        timeout_seconds: float = 10.0,
        echo: bool = False,
    ) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds

        engine_kwargs: dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
        # In-memory SQLite uses a static single-connection pool
        if ":memory:" not in url:
            engine_kwargs["pool_size"] = pool_size
            engine_kwargs["max_overflow"] = max_overflow

        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        if self.engine.dialect.name == "sqlite":
            event.listen(
                self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys
            )

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            timeout_seconds=settings.database_timeout_seconds,
            echo=settings.database_echo,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Read-only unit of work."""
        try:
            async with asyncio.timeout(self.timeout_seconds):
                async with self.session_factory() as session:
                    yield session
        except TimeoutError as e:
            logger.error("database_timeout", timeout=self.timeout_seconds)
            raise InfrastructureError("Database operation timed out") from e
        except (OperationalError, InterfaceError) as e:
            logger.error("database_unavailable", error=str(e))
            raise InfrastructureError("Database unavailable") from e

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Unit of work committed on success and rolled back on any error."""
        try:
            async with asyncio.timeout(self.timeout_seconds):
                async with self.session_factory() as session, session.begin():
                    yield session
        except TimeoutError as e:
            logger.error("database_timeout", timeout=self.timeout_seconds)
            raise InfrastructureError("Database operation timed out") from e
        except (OperationalError, InterfaceError) as e:
            logger.error("database_unavailable", error=str(e))
            raise InfrastructureError("Database unavailable") from e

    async def create_all(self) -> None:
        """Create missing tables for every imported model."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database_tables_ready", tables=sorted(Base.metadata.tables))

    async def ping(self) -> bool:
        """Check that the store answers a trivial query."""
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
        except InfrastructureError:
            return False
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("database_disconnected")
