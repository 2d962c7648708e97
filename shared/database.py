"""
Persistence sink for the Git LoC tracker.

This module provides:
- Async connection and session management over SQLite
- Idempotent schema creation for the loc_changes table
- An append-only repository for change records
- A service layer that maps failures onto the tracker's error taxonomy
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional, List, Dict, Any, AsyncGenerator
from datetime import datetime, timezone
from functools import wraps

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import select, func

from config.settings import get_database_url, settings
from shared.errors import FatalSetupError, SinkWriteError
from shared.models import (
    Base,
    LocChangeModel,
    LocChangeBase,
    LocChange,
    ModelConverter,
    ModelValidator,
)

logger = logging.getLogger(__name__)


def to_async_url(url: str) -> str:
    """Rewrite a plain SQLite URL to use the aiosqlite driver."""
    if url.startswith("sqlite+"):
        return url
    if url.startswith("sqlite:"):
        return "sqlite+aiosqlite:" + url[len("sqlite:"):]
    raise ValueError(f"Unsupported database URL: {url}")


class DatabaseManager:
    """Database connection and session management."""

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        self.url = url or get_database_url()
        self.echo = settings.database.echo if echo is None else echo
        self.async_engine = None
        self.AsyncSessionLocal = None
        self._initialized = False

    def initialize(self):
        """Initialize database connections."""
        if self._initialized:
            return

        self.async_engine = create_async_engine(to_async_url(self.url), echo=self.echo)
        self.AsyncSessionLocal = async_sessionmaker(
            self.async_engine, class_=AsyncSession, expire_on_commit=False
        )

        self._initialized = True
        logger.info(f"Database manager initialized for {self.url}")

    async def create_tables(self):
        """Create all database tables that do not exist yet."""
        if not self._initialized:
            self.initialize()

        async with self.async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")

    @asynccontextmanager
    async def get_async_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get an asynchronous database session."""
        if not self._initialized:
            self.initialize()

        async with self.AsyncSessionLocal() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def health_check(self) -> Dict[str, Any]:
        """Perform database health check."""
        try:
            async with self.get_async_session() as session:
                result = await session.execute(text("SELECT 1"))
                result.fetchone()

            return {"status": "healthy", "timestamp": datetime.now(timezone.utc)}
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {"status": "unhealthy", "error": str(e), "timestamp": datetime.now(timezone.utc)}

    async def close(self):
        """Close database connections."""
        if self.async_engine:
            await self.async_engine.dispose()
        self._initialized = False
        logger.info("Database connections closed")


def database_transaction(func):
    """Decorator running a repository method inside its manager's session."""

    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        async with self.manager.get_async_session() as session:
            try:
                return await func(self, *args, session=session, **kwargs)
            except SQLAlchemyError as e:
                logger.error(f"Database transaction failed: {e}")
                raise

    return wrapper


class LocChangeRepository:
    """Append-only repository for change records.

    Only inserts and reads are exposed; rows are never updated or deleted.
    """

    def __init__(self, manager: DatabaseManager):
        self.manager = manager

    @database_transaction
    async def create(self, change: LocChangeBase, session: AsyncSession) -> LocChange:
        """Insert a single change record."""
        instance = ModelConverter.change_to_model(change)
        session.add(instance)
        await session.flush()
        return ModelConverter.model_to_change(instance)

    @database_transaction
    async def get_by_repository(
        self, repo_name: str, limit: int = 100, session: AsyncSession = None
    ) -> List[LocChange]:
        """Get the most recent records for a repository, newest first."""
        result = await session.execute(
            select(LocChangeModel)
            .where(LocChangeModel.repo_name == repo_name)
            .order_by(LocChangeModel.id.desc())
            .limit(limit)
        )
        return [ModelConverter.model_to_change(row) for row in result.scalars().all()]

    @database_transaction
    async def count(self, session: AsyncSession) -> int:
        """Get total count of records."""
        result = await session.execute(select(func.count(LocChangeModel.id)))
        return result.scalar() or 0


class DatabaseService:
    """High-level sink used by the reconciliation loop."""

    def __init__(self, manager: DatabaseManager):
        self.manager = manager
        self.changes = LocChangeRepository(manager)

    async def store_change(self, change: LocChangeBase) -> LocChange:
        """Append a change record, raising SinkWriteError on any failure."""
        errors = ModelValidator.validate_change_data(change.model_dump())
        if errors:
            raise SinkWriteError(change.repo_name, f"Invalid change data: {errors}")

        try:
            return await self.changes.create(change)
        except (SQLAlchemyError, OSError) as e:
            raise SinkWriteError(change.repo_name, str(e), e) from e


async def init_database(manager: DatabaseManager) -> DatabaseService:
    """Connect to the sink and create its schema, or raise FatalSetupError."""
    try:
        manager.initialize()
        await manager.create_tables()
    except (SQLAlchemyError, OSError, ValueError) as e:
        raise FatalSetupError(f"Cannot initialize database {manager.url}: {e}") from e

    health = await manager.health_check()
    if health["status"] != "healthy":
        raise FatalSetupError(f"Database {manager.url} is unhealthy: {health.get('error')}")

    logger.info("Database initialized successfully")
    return DatabaseService(manager)


# Export commonly used functions and classes
__all__ = [
    "DatabaseManager",
    "LocChangeRepository",
    "DatabaseService",
    "database_transaction",
    "init_database",
    "to_async_url",
]
