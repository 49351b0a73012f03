"""
Database connection, session management and repository selection
"""

from typing import AsyncGenerator, Optional
import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from installer_rewards.core.config import settings
from installer_rewards.repositories.base import RewardsRepository
from installer_rewards.repositories.memory import InMemoryRewardsRepository
from installer_rewards.repositories.sql import SqlRewardsRepository

logger = structlog.get_logger()

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None

# Shared store for STORAGE_BACKEND=memory
memory_repository = InMemoryRewardsRepository()


def database_url() -> str:
    """Resolve the async driver URL from settings"""
    if not settings.DATABASE_URL:
        raise RuntimeError("DATABASE_URL is not configured")
    # Convert postgresql:// to postgresql+asyncpg://
    return str(settings.DATABASE_URL).replace("postgresql://", "postgresql+asyncpg://")


def get_engine() -> AsyncEngine:
    """Create the async engine on first use"""
    global _engine, _session_factory
    if _engine is None:
        url = database_url()
        engine_kwargs = {"echo": False, "pool_pre_ping": True}
        if url.startswith("postgresql"):
            engine_kwargs.update(pool_size=5, max_overflow=10)
        _engine = create_async_engine(url, **engine_kwargs)
        _session_factory = async_sessionmaker(
            _engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )
        logger.info("Database engine created", driver=url.split("://", 1)[0])
    return _engine


async def get_repository() -> AsyncGenerator[RewardsRepository, None]:
    """Yield the repository for the configured storage backend"""
    if settings.STORAGE_BACKEND != "database":
        yield memory_repository
        return

    get_engine()
    async with _session_factory() as session:
        try:
            yield SqlRewardsRepository(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def close_database():
    """Close database connection"""
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("Database engine disposed")
