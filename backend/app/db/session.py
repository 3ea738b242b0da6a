"""
Async engine, per-request sessions and database health for the planner.
"""

import logging
import time
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from typing import Any, AsyncGenerator, Dict, Optional
from urllib.parse import urlparse

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from app.core.settings import Settings, get_settings

# Registers every table on SQLModel.metadata
import app.db.base  # noqa: F401

logger = logging.getLogger(__name__)

# Sync URL prefixes and the async drivers that replace them
ASYNC_DRIVERS = {
    "postgresql://": "postgresql+asyncpg://",
    "sqlite://": "sqlite+aiosqlite://",
}


@dataclass
class ConnectionStats:
    opened: int = 0
    errors: int = 0
    last_check: Optional[float] = None
    status: str = "unknown"


def async_database_url(url: str) -> str:
    """Point a plain postgresql:// or sqlite:// URL at its async driver"""
    if not url:
        raise ValueError("DB_URL environment variable is required")
    if not urlparse(url).scheme:
        raise ValueError(f"Invalid database URL: {url!r}")
    for prefix, replacement in ASYNC_DRIVERS.items():
        if url.startswith(prefix):
            return replacement + url[len(prefix):]
    return url


class DatabaseManager:
    """Owns the engine and hands out sessions; created once per process"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.engine: Optional[AsyncEngine] = None
        self.async_session: Optional[async_sessionmaker] = None
        self.stats = ConnectionStats()

    def _prepare_database_url(self) -> str:
        return async_database_url(self.settings.DB_URL)

    def _engine_options(self, url: str) -> Dict[str, Any]:
        options: Dict[str, Any] = {"echo": self.settings.DB_ECHO, "pool_pre_ping": True}
        # SQLite runs without a sized pool
        if url.startswith("postgresql"):
            options.update(
                pool_size=self.settings.DB_POOL_SIZE,
                max_overflow=self.settings.DB_MAX_OVERFLOW,
                pool_timeout=self.settings.DB_POOL_TIMEOUT,
                pool_recycle=self.settings.DB_POOL_RECYCLE,
            )
        return options

    def _track(self, engine: AsyncEngine) -> None:
        stats = self.stats

        def opened(dbapi_connection, connection_record):
            stats.opened += 1

        def failed(exception_context):
            stats.errors += 1
            logger.error(f"Database error: {exception_context.original_exception}")

        event.listen(engine.sync_engine, "connect", opened)
        event.listen(engine.sync_engine, "handle_error", failed)

    async def initialize(self) -> None:
        url = self._prepare_database_url()
        try:
            self.engine = create_async_engine(url, **self._engine_options(url))
        except Exception as e:
            logger.error(f"Could not create database engine: {e}")
            raise
        self._track(self.engine)
        self.async_session = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)
        logger.info(f"Database engine ready ({urlparse(url).scheme})")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        if self.async_session is None:
            raise RuntimeError("Database manager not initialized")

        async with self.async_session() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                self.stats.errors += 1
                logger.error(f"Rolling back session after database error: {e}")
                await session.rollback()
                raise

    async def health_check(self) -> Dict[str, Any]:
        """Round-trip a trivial query and report latency plus connection counters"""
        started = time.perf_counter()
        try:
            async with self.get_session() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            self.stats.status = "unhealthy"
            report: Dict[str, Any] = {"status": "unhealthy", "error": str(e)}
        else:
            self.stats.status = "healthy"
            report = {
                "status": "healthy",
                "latency_ms": round((time.perf_counter() - started) * 1000, 2),
            }

        self.stats.last_check = time.time()
        report["connections"] = self.get_connection_stats()
        return report

    async def init_db(self) -> None:
        """Create any missing tables"""
        if self.engine is None:
            raise RuntimeError("Database engine not initialized")
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info(f"Ensured {len(SQLModel.metadata.tables)} tables exist")

    async def close(self) -> None:
        if self.engine is None:
            return
        await self.engine.dispose()
        self.engine = None
        self.async_session = None
        logger.info("Database engine disposed")

    def get_connection_stats(self) -> Dict[str, Any]:
        return asdict(self.stats)


db_manager = DatabaseManager()


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request"""
    async with db_manager.get_session() as session:
        yield session
