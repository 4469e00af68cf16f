"""
Database handle for the storefront.

This module provides:
- The async engine and session factory, wrapped in an injectable Database object
- Schema creation, health check and transaction helper
- Translation of SQLAlchemy failures into store errors
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from storefront.base_service import BaseService
from storefront.database.models import Base


class StoreError(Exception):
    """Generic persistence failure."""

    def __init__(self, message: str = "Database operation failed", code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class RecordNotFound(StoreError):
    """The record targeted by an update or delete does not exist."""


class UniqueConstraintViolation(StoreError):
    """A unique column (email, sku) already holds the value."""


UNIQUE_VIOLATION_SQLSTATE = "23505"
SQLITE_UNIQUE_MESSAGE = "UNIQUE constraint failed"


def is_unique_violation(exc: SQLAlchemyError) -> bool:
    """True only for a unique-key conflict, not for other integrity failures."""
    if not isinstance(exc, IntegrityError):
        return False
    orig = getattr(exc, "orig", None)
    if getattr(orig, "sqlstate", None) == UNIQUE_VIOLATION_SQLSTATE:
        return True
    return SQLITE_UNIQUE_MESSAGE in str(orig)


def translate_store_error(exc: SQLAlchemyError) -> StoreError:
    """Map a SQLAlchemy exception to the store taxonomy, keeping the vendor code."""
    code = getattr(getattr(exc, "orig", None), "sqlstate", None) or getattr(exc, "code", None)
    if is_unique_violation(exc):
        return UniqueConstraintViolation("Unique constraint violated", code=code)
    return StoreError(str(exc.__class__.__name__), code=code)


class Database(BaseService):
    """
    Explicitly constructed database handle.

    Every repository call opens its own session from this handle, so independent
    reads can run concurrently.
    """

    def __init__(self, url: str, echo: bool = False, engine: Optional[AsyncEngine] = None):
        super().__init__("database")
        self.url = url
        if engine is None:
            engine_kwargs = {"echo": echo}
            if not url.startswith("sqlite"):
                engine_kwargs["pool_pre_ping"] = True
            engine = create_async_engine(url, **engine_kwargs)
        self.engine = engine
        self._session_factory = async_sessionmaker(self.engine, expire_on_commit=False, class_=AsyncSession)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session; SQLAlchemy errors leave as store errors."""
        async with self._session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as exc:
                await session.rollback()
                raise translate_store_error(exc) from exc

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Run a block inside one transaction.

        Commits when the block exits normally, rolls back and re-raises otherwise.
        """
        async with self.session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                self.logger.debug("Transaction rolled back")
                raise

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.log_event("database.schema_ready")

    async def health_check(self) -> bool:
        """Return True when ``SELECT 1`` succeeds."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as exc:
            self.log_error(exc, context="Database health check")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()
        self.log_event("database.disconnected")
