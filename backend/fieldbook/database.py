"""
Fieldbook Backend — Record Store Handle & Session Management
==============================================================

What:  The `RecordStore` handle (async engine + bounded connection pool),
       the declarative base, and the FastAPI session dependency.
How:   main.py constructs one RecordStore at startup (tests inject their own)
       and stores it on `app.state.record_store`. Request handlers receive it
       through `get_record_store()` and open one session per request through
       `get_db_session()`.

Connection Pooling:
    AsyncAdaptedQueuePool is set explicitly so every backend (PostgreSQL in
    production, SQLite in tests) gets the same bounded behaviour:
    pool_size:      Persistent connections
    max_overflow:   Temporary connections for spikes (total max = size + overflow)
    pool_timeout:   Seconds a request blocks waiting for a free connection;
                    on expiry SQLAlchemy raises TimeoutError, which the
                    locator reports as StoreUnavailableError
    pool_pre_ping:  Validates connections before use
    pool_recycle:   Recycles connections every hour

    The connection goes back to the pool when the session closes, and
    get_db_session() closes it on every exit path.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import AsyncAdaptedQueuePool

from fieldbook.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models (one shared metadata object)."""
    pass


class RecordStore:
    """
    Explicitly constructed handle to the relational record store.

    Owns an async engine with a bounded pool and a session factory. One
    instance is created per application (or per test) and passed into
    request handlers; nothing in the package imports a store globally.

    Example:
        store = RecordStore("sqlite+aiosqlite:///./dev.db", pool_size=2)
        async with store.session() as session:
            rows = await session.execute(select(FieldNote))
        await store.dispose()
    """

    def __init__(
        self,
        database_url: str,
        pool_size: int = 10,
        max_overflow: int = 5,
        pool_timeout: float = 10.0,
        pool_pre_ping: bool = True,
        echo: bool = False,
    ):
        self.database_url = database_url
        self.engine: AsyncEngine = create_async_engine(
            database_url,
            poolclass=AsyncAdaptedQueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_pre_ping=pool_pre_ping,
            pool_recycle=3600,
            echo=echo,
        )
        # expire_on_commit=False: row attributes stay readable after the
        # session closes (the shape merger runs after the locator returns)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "RecordStore":
        """Build a store from application settings."""
        return cls(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_pre_ping=settings.db_pool_pre_ping,
            echo=settings.log_level == "DEBUG",
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Open a session for one unit of work.

        The service only reads, so the transaction is rolled back rather than
        committed; the session is always closed, which returns the connection
        to the pool whether the caller succeeded or raised.
        """
        session = self.session_factory()
        try:
            yield session
        finally:
            try:
                await session.rollback()
            finally:
                await session.close()

    async def ping(self) -> bool:
        """Run `SELECT 1`; returns False instead of raising (health checks)."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Record store ping failed: %s", type(e).__name__)
            return False

    async def create_tables(self) -> None:
        """Create every mapped table that does not exist yet (tests and local dev)."""
        # Model classes register themselves with Base.metadata on import
        import fieldbook.models.record  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Close all pooled connections (application shutdown)."""
        await self.engine.dispose()


# ── Dependencies ──────────────────────────────────────────────────────────
def get_record_store(request: Request) -> RecordStore:
    """
    FastAPI dependency returning the store attached to the running app.

    Raises:
        RuntimeError if the application was started without a store, which is
        a wiring bug rather than a request error.
    """
    store: Optional[RecordStore] = getattr(request.app.state, "record_store", None)
    if store is None:
        raise RuntimeError("Record store is not configured on this application")
    return store


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides one session per request.

    Creating the session does not touch the store; a connection is checked
    out of the pool on the first query and returned when the session closes.

    Example usage in a route:
        @router.get("/api/{kind}/{slug}")
        async def get_record(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    store = get_record_store(request)
    async with store.session() as session:
        yield session
