"""
Database engine, session factory and seed data.

The engine is created during application startup from
settings.database_url (postgresql+asyncpg in production, sqlite+aiosqlite in
tests) and disposed on shutdown.
"""

import structlog
from typing import Optional

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from api.src.config import Settings
from api.src.models.entities import Base, Ngo

logger = structlog.get_logger(__name__)

ORGANIZER_NGO_ID = 1


def create_engine(settings: Settings) -> AsyncEngine:
    """
    Create the async engine for the configured database.

    Args:
        settings: Application settings

    Returns:
        SQLAlchemy async engine
    """
    kwargs = {"echo": settings.database_echo}

    if not settings.is_sqlite:
        kwargs.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
            pool_pre_ping=True,
        )

    engine = create_async_engine(settings.database_url, **kwargs)

    logger.info(
        "database_engine_created",
        database=settings.database_url.split("@")[-1],
        dialect=engine.dialect.name
    )

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    """Create missing tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database_schema_ensured")


async def ping(engine: Optional[AsyncEngine]) -> bool:
    """
    Check database connectivity.

    Returns:
        True if a trivial query succeeds
    """
    if engine is None:
        return False

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))
        return False


async def ensure_seed_data(session: AsyncSession) -> None:
    """
    Insert reference data required by every deployment.

    Idempotent: rows that already exist are left untouched.

    Args:
        session: Open database session (committed by this function)
    """
    existing = await session.scalar(select(Ngo).where(Ngo.id == ORGANIZER_NGO_ID))

    if existing is None:
        session.add(
            Ngo(
                id=ORGANIZER_NGO_ID,
                name="Code for Romania",
                short_name="C4R",
                organizer=True,
                is_active=True,
            )
        )
        await session.commit()
        logger.info("seed_data_inserted", ngo_id=ORGANIZER_NGO_ID)
    else:
        logger.debug("seed_data_present", ngo_id=ORGANIZER_NGO_ID)
