"""
Database Initialization Script
Creates the promotion tables and indexes
"""

import asyncio
import structlog

from installer_rewards.core.database import close_database, get_engine
from installer_rewards.core.schema import create_schema

logger = structlog.get_logger()


async def init_database():
    """Initialize database with tables and indexes"""
    engine = get_engine()

    try:
        async with engine.begin() as conn:
            logger.info("Creating tables and indexes")
            await create_schema(conn)
        logger.info("Database initialization completed")
    except Exception as e:
        logger.error("Database initialization failed", error=str(e))
        raise
    finally:
        await close_database()


if __name__ == "__main__":
    asyncio.run(init_database())
