import logging
from collections.abc import AsyncGenerator
from typing import Any

from fastapi import Depends
from fastapi_users.db import SQLAlchemyUserDatabase
from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from mentorlink.core.config import settings

from .models import User, metadata

logger = logging.getLogger(__name__)

engine = create_async_engine(settings.DATABASE_URL)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


# Dependency to get the raw SQLAlchemy AsyncSession
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


# Dependency to get the FastAPI Users database adapter
async def get_user_db(
    session: AsyncSession = Depends(get_db_session),
) -> SQLAlchemyUserDatabase[User, Any]:
    yield SQLAlchemyUserDatabase(session, User)


async def _missing_tables(conn: AsyncConnection) -> set[str]:
    existing = await conn.run_sync(
        lambda sync_conn: set(inspect(sync_conn).get_table_names())
    )
    return set(metadata.tables) - existing


async def check_database_health() -> bool:
    """Fails fast when the database is unreachable or behind the models.

    Raises instead of returning False so startup aborts.
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
            missing = await _missing_tables(conn)
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        raise

    if missing:
        logger.error(f"Missing required tables: {sorted(missing)}")
        raise RuntimeError(
            f"Database migration required. Missing tables: {sorted(missing)}"
        )
    logger.info(f"Database ready: {len(metadata.tables)} tables present")
    return True
